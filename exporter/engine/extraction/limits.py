# Path: exporter/engine/extraction/limits.py
"""
Archive Security Limits

Immutable resource limits applied to every downloaded export archive.

Architecture:
- Frozen policy dataclass, built once from configuration
- Process-wide default instance
- Violation records collected by the validator
"""

from dataclasses import dataclass
from typing import Optional

from exporter.core.config_loader import ConfigLoader
from exporter.constants import (
    DEFAULT_MAX_COMPRESSED_BYTES,
    DEFAULT_MAX_UNCOMPRESSED_BYTES,
    DEFAULT_MAX_COMPRESSION_RATIO,
    DEFAULT_MAX_FILE_COUNT,
    DEFAULT_EXTRACTION_TIMEOUT,
)


# ==============================================================================
# VIOLATION CODES
# ==============================================================================

VIOLATION_COMPRESSED_SIZE = 'compressed-size'
VIOLATION_FILE_COUNT = 'file-count'
VIOLATION_PATH_TRAVERSAL = 'path-traversal'
VIOLATION_UNCOMPRESSED_SIZE = 'uncompressed-size'
VIOLATION_COMPRESSION_RATIO = 'compression-ratio'
VIOLATION_DECLARED_SIZE = 'declared-size-exceeded'
VIOLATION_CORRUPT_ARCHIVE = 'corrupt-archive'


@dataclass(frozen=True)
class SecurityLimitsPolicy:
    """
    Resource limits for archive extraction.

    Attributes:
        max_compressed_bytes: Largest accepted archive file
        max_uncompressed_bytes: Largest accepted sum of declared member sizes
        max_compression_ratio: Largest accepted uncompressed/compressed ratio
        max_file_count: Largest accepted number of entries
        extraction_timeout: Wall-clock budget for extraction in seconds
    """
    max_compressed_bytes: int = DEFAULT_MAX_COMPRESSED_BYTES
    max_uncompressed_bytes: int = DEFAULT_MAX_UNCOMPRESSED_BYTES
    max_compression_ratio: float = DEFAULT_MAX_COMPRESSION_RATIO
    max_file_count: int = DEFAULT_MAX_FILE_COUNT
    extraction_timeout: float = DEFAULT_EXTRACTION_TIMEOUT

    @classmethod
    def from_config(cls, config: Optional[ConfigLoader] = None) -> 'SecurityLimitsPolicy':
        """
        Build policy from configuration.

        Args:
            config: Optional ConfigLoader instance

        Returns:
            SecurityLimitsPolicy with configured or default limits
        """
        config = config if config else ConfigLoader()
        return cls(
            max_compressed_bytes=config.get('max_compressed_bytes', DEFAULT_MAX_COMPRESSED_BYTES),
            max_uncompressed_bytes=config.get('max_uncompressed_bytes', DEFAULT_MAX_UNCOMPRESSED_BYTES),
            max_compression_ratio=config.get('max_compression_ratio', DEFAULT_MAX_COMPRESSION_RATIO),
            max_file_count=config.get('max_file_count', DEFAULT_MAX_FILE_COUNT),
            extraction_timeout=config.get('extraction_timeout', DEFAULT_EXTRACTION_TIMEOUT),
        )

    def to_dict(self) -> dict[str, any]:
        return {
            'max_compressed_bytes': self.max_compressed_bytes,
            'max_uncompressed_bytes': self.max_uncompressed_bytes,
            'max_compression_ratio': self.max_compression_ratio,
            'max_file_count': self.max_file_count,
            'extraction_timeout': self.extraction_timeout,
        }


@dataclass(frozen=True)
class SecurityViolation:
    """
    One failed archive safety check.

    Attributes:
        code: Violation code (VIOLATION_* constant)
        detail: Human-readable description
        member: Offending archive entry, when the check is per entry
    """
    code: str
    detail: str
    member: Optional[str] = None

    def __str__(self) -> str:
        if self.member:
            return f"{self.code} [{self.member}]: {self.detail}"
        return f"{self.code}: {self.detail}"


_default_policy: Optional[SecurityLimitsPolicy] = None


def get_default_policy() -> SecurityLimitsPolicy:
    """Process-wide policy, built from configuration on first use."""
    global _default_policy
    if _default_policy is None:
        _default_policy = SecurityLimitsPolicy.from_config()
    return _default_policy


__all__ = [
    'SecurityLimitsPolicy',
    'SecurityViolation',
    'get_default_policy',
    'VIOLATION_COMPRESSED_SIZE',
    'VIOLATION_FILE_COUNT',
    'VIOLATION_PATH_TRAVERSAL',
    'VIOLATION_UNCOMPRESSED_SIZE',
    'VIOLATION_COMPRESSION_RATIO',
    'VIOLATION_DECLARED_SIZE',
    'VIOLATION_CORRUPT_ARCHIVE',
]
