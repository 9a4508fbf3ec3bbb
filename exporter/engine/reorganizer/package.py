# Path: exporter/engine/reorganizer/package.py
"""
Extracted Package

Canonical, typed representation of an export archive's contents.

Architecture:
- One ordered list per artifact kind
- Primary work type plus any additional work types
- Structural extras pulled from the primary entity
- Unclassified artifacts retained with their source and any parse error
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from exporter.engine.result import ReorganizationWarning
from exporter.engine.reorganizer.classifier import ArtifactKind, BUCKET_FIELDS
from exporter.engine.reorganizer.manifest import ArchiveManifest


@dataclass
class UnclassifiedArtifact:
    """
    Artifact that matched no classification rule or could not be read.

    Attributes:
        source: File name or manifest step id
        provider: Provider system name, when known
        data: Decoded payload, None when unreadable
        error: Read/parse error, when any
    """
    source: str
    provider: Optional[str] = None
    data: Any = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, any]:
        return {
            'source': self.source,
            'provider': self.provider,
            'data': self.data,
            'error': self.error,
        }


EXTRA_FIELDS = (
    'phase_model',
    'transitions',
    'triggers',
    'key_dates',
    'aspects',
    'title_generator',
    'reference_generator',
)


@dataclass
class ExtractedPackage:
    """
    Canonical export package.

    Every input artifact is counted exactly once: in primary_entity,
    additional_entities, one kind bucket, or unclassified.

    Example:
        package = reorganizer.reorganize(workspace.extract_dir)
        print(package.primary_entity['SystemName'], len(package.forms))
    """
    primary_entity: Any = None
    additional_entities: list = field(default_factory=list)
    forms: list = field(default_factory=list)
    workflows: list = field(default_factory=list)
    business_rules: list = field(default_factory=list)
    approvals: list = field(default_factory=list)
    option_sets: list = field(default_factory=list)
    permissions: list = field(default_factory=list)
    templates: list = field(default_factory=list)
    participant_roles: list = field(default_factory=list)

    # Structural extras from the primary entity
    phase_model: Any = None
    transitions: Any = None
    triggers: Any = None
    key_dates: Any = None
    aspects: Any = None
    title_generator: Any = None
    reference_generator: Any = None

    unclassified: list[UnclassifiedArtifact] = field(default_factory=list)
    warnings: list[ReorganizationWarning] = field(default_factory=list)
    manifest: Optional[ArchiveManifest] = None

    # Set when participant_roles came from the primary entity, not from artifacts
    participant_roles_embedded: bool = False

    def add(self, kind: ArtifactKind, payload: Any) -> None:
        """
        Place a classified artifact.

        Args:
            kind: Artifact kind (not UNCLASSIFIED)
            payload: Decoded artifact
        """
        if kind == ArtifactKind.PRIMARY:
            if self.primary_entity is None:
                self.primary_entity = payload
            else:
                self.additional_entities.append(payload)
            return
        getattr(self, BUCKET_FIELDS[kind]).append(payload)

    def bucket(self, kind: ArtifactKind) -> list:
        """List holding artifacts of the given kind."""
        if kind == ArtifactKind.PRIMARY:
            primary = [self.primary_entity] if self.primary_entity is not None else []
            return primary + self.additional_entities
        if kind == ArtifactKind.UNCLASSIFIED:
            return self.unclassified
        return getattr(self, BUCKET_FIELDS[kind])

    @property
    def classified_count(self) -> int:
        """Number of input artifacts placed in a canonical bucket."""
        total = len(self.bucket(ArtifactKind.PRIMARY))
        for kind, name in BUCKET_FIELDS.items():
            if kind == ArtifactKind.PARTICIPANT_ROLE and self.participant_roles_embedded:
                continue
            total += len(getattr(self, name))
        return total

    @property
    def artifact_count(self) -> int:
        """Number of input artifacts, classified or not."""
        return self.classified_count + len(self.unclassified)

    @property
    def source_version(self) -> Optional[str]:
        return self.manifest.source_version if self.manifest else None

    def summary(self) -> dict[str, int]:
        """Counts per bucket, for logging."""
        counts = {'work_types': len(self.bucket(ArtifactKind.PRIMARY))}
        for name in BUCKET_FIELDS.values():
            counts[name] = len(getattr(self, name))
        counts['unclassified'] = len(self.unclassified)
        return counts

    def to_dict(self) -> dict[str, any]:
        """Convert to dictionary for logging/storage."""
        result = {
            'primary_entity': self.primary_entity,
            'additional_entities': self.additional_entities,
        }
        for name in BUCKET_FIELDS.values():
            result[name] = getattr(self, name)
        for name in EXTRA_FIELDS:
            result[name] = getattr(self, name)
        result['participant_roles_embedded'] = self.participant_roles_embedded
        result['unclassified'] = [u.to_dict() for u in self.unclassified]
        result['warnings'] = [w.to_dict() for w in self.warnings]
        result['manifest'] = self.manifest.to_dict() if self.manifest else None
        return result

    @classmethod
    def from_dict(cls, record: dict) -> 'ExtractedPackage':
        """Rebuild a package from to_dict() output."""
        package = cls(
            primary_entity=record.get('primary_entity'),
            additional_entities=list(record.get('additional_entities') or []),
            participant_roles_embedded=bool(record.get('participant_roles_embedded')),
        )
        for name in BUCKET_FIELDS.values():
            setattr(package, name, list(record.get(name) or []))
        for name in EXTRA_FIELDS:
            setattr(package, name, record.get(name))
        package.unclassified = [
            UnclassifiedArtifact(**u) for u in record.get('unclassified') or []
        ]
        package.warnings = [
            ReorganizationWarning(**w) for w in record.get('warnings') or []
        ]
        if record.get('manifest'):
            package.manifest = ArchiveManifest.from_dict(record['manifest'])
        return package


__all__ = ['ExtractedPackage', 'UnclassifiedArtifact']
