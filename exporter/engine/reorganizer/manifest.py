# Path: exporter/engine/reorganizer/manifest.py
"""
Archive Manifest

Parsed form of the manifest.json shipped inside export archives.
PascalCase (server), camelCase and snake_case (cached) keys are accepted.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


def _pick(record: dict, *keys, default: Any = None) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return default


@dataclass
class ManifestStep:
    """One exported step (one artifact)."""
    id: str
    description: str = ''
    provider_system_name: str = ''
    storage_filename: Optional[str] = None
    data: Any = None
    dependencies: Optional[dict] = None

    @classmethod
    def from_dict(cls, record: dict) -> 'ManifestStep':
        return cls(
            id=str(_pick(record, 'Id', 'id', default='')),
            description=_pick(record, 'Description', 'description', default=''),
            provider_system_name=_pick(
                record, 'ExportProviderSystemName', 'exportProviderSystemName',
                'providerSystemName', 'provider_system_name', default=''
            ),
            storage_filename=_pick(record, 'StorageFilename', 'storageFilename', 'storage_filename'),
            data=_pick(record, 'Data', 'data'),
            dependencies=_pick(record, 'Dependencies', 'dependencies'),
        )

    def to_dict(self) -> dict[str, any]:
        return {
            'id': self.id,
            'description': self.description,
            'provider_system_name': self.provider_system_name,
            'storage_filename': self.storage_filename,
            'has_inline_data': self.data is not None,
            'dependencies': self.dependencies,
        }


@dataclass
class ManifestFile:
    """Binary file shipped alongside a step."""
    id: str
    original_filename: str = ''
    storage_filename: str = ''
    step_id: Optional[str] = None

    @classmethod
    def from_dict(cls, record: dict) -> 'ManifestFile':
        return cls(
            id=str(_pick(record, 'Id', 'id', default='')),
            original_filename=_pick(record, 'OriginalFilename', 'originalFilename', 'original_filename', default=''),
            storage_filename=_pick(record, 'StorageFilename', 'storageFilename', 'storage_filename', default=''),
            step_id=_pick(record, 'StepId', 'stepId', 'step_id'),
        )

    def to_dict(self) -> dict[str, any]:
        return {
            'id': self.id,
            'original_filename': self.original_filename,
            'storage_filename': self.storage_filename,
            'step_id': self.step_id,
        }


@dataclass
class ArchiveManifest:
    """
    Export archive manifest.

    Attributes:
        name: Package name
        created_by: User who created the export
        exported_from: Source environment
        created_on: Creation timestamp as reported
        source_version: Server version, 'major.minor.build.revision'
        steps: Exported steps in manifest order
        files: Binary files referenced by steps
    """
    name: str = ''
    created_by: str = ''
    exported_from: str = ''
    created_on: str = ''
    source_version: Optional[str] = None
    steps: list[ManifestStep] = field(default_factory=list)
    files: list[ManifestFile] = field(default_factory=list)

    @classmethod
    def from_dict(cls, record: dict) -> 'ArchiveManifest':
        """
        Build manifest from decoded JSON.

        Raises:
            ValueError: If record is not a JSON object
        """
        if not isinstance(record, dict):
            raise ValueError("manifest is not a JSON object")

        steps = _pick(record, 'ExportedSteps', 'exportedSteps', 'steps', default=[]) or []
        files = _pick(record, 'Files', 'files', default=[]) or []

        return cls(
            name=_pick(record, 'Name', 'name', default=''),
            created_by=_pick(record, 'CreatedBy', 'createdBy', 'created_by', default=''),
            exported_from=_pick(record, 'ExportedFrom', 'exportedFrom', 'exported_from', default=''),
            created_on=_pick(record, 'CreatedOn', 'createdOn', 'created_on', default=''),
            source_version=cls._parse_version(
                _pick(record, 'SharedoVersion', 'sharedoVersion', 'sourceVersion', 'source_version')
            ),
            steps=[ManifestStep.from_dict(s) for s in steps if isinstance(s, dict)],
            files=[ManifestFile.from_dict(f) for f in files if isinstance(f, dict)],
        )

    @staticmethod
    def _parse_version(value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, dict):
            parts = [
                _pick(value, 'Major', 'major', default=0),
                _pick(value, 'Minor', 'minor', default=0),
                _pick(value, 'Build', 'build', default=0),
                _pick(value, 'Revision', 'revision', default=0),
            ]
            return '.'.join(str(p) for p in parts)
        return str(value)

    def to_dict(self) -> dict[str, any]:
        return {
            'name': self.name,
            'created_by': self.created_by,
            'exported_from': self.exported_from,
            'created_on': self.created_on,
            'source_version': self.source_version,
            'steps': [s.to_dict() for s in self.steps],
            'files': [f.to_dict() for f in self.files],
        }


def load_manifest(path: Path) -> ArchiveManifest:
    """
    Read and parse a manifest file.

    Args:
        path: Path to manifest.json

    Returns:
        ArchiveManifest

    Raises:
        ValueError: Invalid JSON or not an object
        OSError: File unreadable
    """
    with open(path, 'r', encoding='utf-8-sig') as f:
        return ArchiveManifest.from_dict(json.load(f))


__all__ = ['ArchiveManifest', 'ManifestStep', 'ManifestFile', 'load_manifest']
