# Path: exporter/engine/reorganizer/reorganizer.py
"""
Package Reorganizer

Turns an extracted export archive into an ExtractedPackage.

Architecture:
- Manifest steps classified by provider system name
- Filename inference when there is no manifest (or no steps)
- Structural extras pulled from the primary work type
- Nothing dropped: unknown or unreadable artifacts become unclassified
  entries with a warning

CRITICAL PRINCIPLE: Data is never lost silently.
"""

import json
from pathlib import Path
from typing import Any, Optional

from exporter.core.logger import get_logger
from exporter.engine.result import ReorganizationWarning
from exporter.engine.reorganizer.classifier import (
    ArtifactKind,
    classify_provider,
    classify_filename,
)
from exporter.engine.reorganizer.manifest import ArchiveManifest, ManifestStep, load_manifest
from exporter.engine.reorganizer.package import ExtractedPackage, UnclassifiedArtifact
from exporter.constants import (
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')

MANIFEST_FILENAME = 'manifest.json'
DATA_DIRNAME = 'data'
JSON_SUFFIX = '.json'


def get_ci(record: Any, *names: str) -> Any:
    """
    Case-insensitive lookup of the first present, non-empty key.

    Args:
        record: Mapping to search (anything else yields None)
        names: Candidate key names

    Returns:
        Value or None
    """
    if not isinstance(record, dict):
        return None
    lowered = {str(key).lower(): key for key in record}
    for name in names:
        key = lowered.get(name.lower())
        if key is not None and record[key] not in (None, '', [], {}):
            return record[key]
    return None


class PackageReorganizer:
    """
    Reorganizes extracted export archives.

    Features:
    - PascalCase/camelCase manifest support
    - Inline step data or per-step storage files
    - Filename fallback classification
    - Work type extras (phase model, triggers, key dates, generators, ...)

    Example:
        reorganizer = PackageReorganizer()
        package = reorganizer.reorganize(Path('/tmp/export-x/extracted'))
        for warning in package.warnings:
            print(warning)
    """

    def reorganize(self, extracted_root: Path) -> ExtractedPackage:
        """
        Build the canonical package from an extracted tree.

        Args:
            extracted_root: Directory the archive was extracted into

        Returns:
            ExtractedPackage
        """
        logger.info(f"{LOG_INPUT} Reorganizing: {extracted_root}")

        package = ExtractedPackage()
        data_dir = extracted_root / DATA_DIRNAME
        if not data_dir.is_dir():
            data_dir = extracted_root

        manifest_path = extracted_root / MANIFEST_FILENAME
        if manifest_path.is_file():
            try:
                package.manifest = load_manifest(manifest_path)
                logger.info(f"{LOG_PROCESS} Found manifest: {package.manifest.name}")
            except (ValueError, OSError) as e:
                self._warn(package, MANIFEST_FILENAME, f"manifest unreadable, using file names: {e}")
        else:
            logger.info(f"{LOG_PROCESS} No manifest found, classifying by file name")

        if package.manifest and package.manifest.steps:
            self._classify_steps(package, package.manifest, data_dir, extracted_root)
        else:
            self._classify_files(package, data_dir)

        self._extract_extras(package)

        logger.info(f"{LOG_OUTPUT} Reorganized {package.artifact_count} artifacts: {package.summary()}")
        return package

    def _classify_steps(
        self,
        package: ExtractedPackage,
        manifest: ArchiveManifest,
        data_dir: Path,
        root: Path
    ) -> None:
        """Classify manifest steps, then keep any data file no step names."""
        referenced = set()

        for step in manifest.steps:
            source = step.storage_filename or step.id
            if step.storage_filename:
                referenced.add(Path(step.storage_filename).name)

            payload, error = self._load_step_payload(step, data_dir, root)
            if error:
                package.unclassified.append(UnclassifiedArtifact(
                    source=source, provider=step.provider_system_name, error=error
                ))
                self._warn(package, source, error)
                continue

            kind = classify_provider(step.provider_system_name)
            if kind == ArtifactKind.UNCLASSIFIED:
                package.unclassified.append(UnclassifiedArtifact(
                    source=source, provider=step.provider_system_name, data=payload
                ))
                self._warn(package, source, f"unrecognized provider '{step.provider_system_name}'")
            else:
                package.add(kind, payload)

        for path in self._data_files(data_dir):
            if path.name in referenced:
                continue
            payload, error = self._read_json(path)
            package.unclassified.append(UnclassifiedArtifact(
                source=path.name, data=payload, error=error
            ))
            self._warn(package, path.name, error or "data file not referenced by manifest")

    def _classify_files(self, package: ExtractedPackage, data_dir: Path) -> None:
        """Classify every JSON data file by name."""
        for path in self._data_files(data_dir):
            payload, error = self._read_json(path)
            if error:
                package.unclassified.append(UnclassifiedArtifact(source=path.name, error=error))
                self._warn(package, path.name, error)
                continue

            kind = classify_filename(path.name)
            if kind == ArtifactKind.UNCLASSIFIED:
                package.unclassified.append(UnclassifiedArtifact(source=path.name, data=payload))
                self._warn(package, path.name, "file name matches no known artifact kind")
            else:
                package.add(kind, payload)

    def _load_step_payload(
        self,
        step: ManifestStep,
        data_dir: Path,
        root: Path
    ) -> tuple[Any, Optional[str]]:
        """
        Inline data, or the JSON file named by the step.

        Returns:
            (payload, error); error is None on success
        """
        if step.data is not None:
            return step.data, None

        if not step.storage_filename:
            return None, "step has neither inline data nor a storage file"

        for directory in (data_dir, root):
            candidate = directory / step.storage_filename
            try:
                candidate.resolve().relative_to(root.resolve())
            except ValueError:
                return None, f"storage file outside package: {step.storage_filename}"
            if candidate.is_file():
                return self._read_json(candidate)

        return None, f"storage file not found: {step.storage_filename}"

    def _extract_extras(self, package: ExtractedPackage) -> None:
        """Pull structural extras out of the primary work type."""
        entity = package.primary_entity
        if not isinstance(entity, dict):
            return

        base = get_ci(entity, 'BaseSharedo')
        if not isinstance(base, dict):
            base = entity

        phase_model = get_ci(entity, 'PhaseModel')
        if isinstance(phase_model, dict):
            package.phase_model = get_ci(phase_model, 'Phases') or phase_model
            package.transitions = get_ci(phase_model, 'PhaseTransitions', 'Transitions')
        elif phase_model is not None:
            package.phase_model = phase_model

        if package.phase_model is None:
            package.phase_model = get_ci(entity, 'Phases')
        if package.transitions is None:
            package.transitions = get_ci(entity, 'PhaseTransitions', 'Transitions')

        package.triggers = get_ci(entity, 'Triggers')
        package.key_dates = get_ci(entity, 'KeyDates')
        package.aspects = get_ci(entity, 'Aspects')
        package.title_generator = get_ci(base, 'DefaultTitleTokenString') or \
            get_ci(entity, 'TitleGenerator')
        package.reference_generator = get_ci(base, 'DefaultReferencePattern') or \
            get_ci(entity, 'ReferenceGenerator')

        roles = get_ci(entity, 'ParticipantRoles')
        if roles and not package.participant_roles:
            package.participant_roles = list(roles) if isinstance(roles, list) else [roles]
            package.participant_roles_embedded = True

    @staticmethod
    def _data_files(data_dir: Path) -> list[Path]:
        return sorted(
            p for p in data_dir.iterdir()
            if p.is_file() and p.suffix.lower() == JSON_SUFFIX and p.name != MANIFEST_FILENAME
        )

    @staticmethod
    def _read_json(path: Path) -> tuple[Any, Optional[str]]:
        try:
            with open(path, 'r', encoding='utf-8-sig') as f:
                return json.load(f), None
        except (ValueError, OSError) as e:
            return None, f"unreadable JSON: {e}"

    @staticmethod
    def _warn(package: ExtractedPackage, source: str, reason: str) -> None:
        logger.warning(f"{LOG_PROCESS} {source}: {reason}")
        package.warnings.append(ReorganizationWarning(source=source, reason=reason))


__all__ = ['PackageReorganizer', 'get_ci']
