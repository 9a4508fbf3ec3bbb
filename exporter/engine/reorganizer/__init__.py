# Path: exporter/engine/reorganizer/__init__.py
"""
Package Reorganizer Module

Classification of extracted archive contents into the canonical package.
"""

from exporter.engine.reorganizer.classifier import ArtifactKind
from exporter.engine.reorganizer.manifest import ArchiveManifest, ManifestStep, ManifestFile
from exporter.engine.reorganizer.package import ExtractedPackage, UnclassifiedArtifact
from exporter.engine.reorganizer.reorganizer import PackageReorganizer

__all__ = [
    'ArtifactKind',
    'ArchiveManifest',
    'ManifestStep',
    'ManifestFile',
    'ExtractedPackage',
    'UnclassifiedArtifact',
    'PackageReorganizer',
]
