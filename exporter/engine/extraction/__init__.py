# Path: exporter/engine/extraction/__init__.py
"""
Archive Extraction Module

Security-checked extraction of export archives.
"""

from exporter.engine.extraction.limits import (
    SecurityLimitsPolicy,
    SecurityViolation,
    get_default_policy,
)
from exporter.engine.extraction.archive_validator import ArchiveValidatorExtractor

__all__ = [
    'SecurityLimitsPolicy',
    'SecurityViolation',
    'get_default_policy',
    'ArchiveValidatorExtractor',
]
