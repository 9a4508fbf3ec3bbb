# Path: exporter/engine/result.py
"""
Export Result Objects

Type-safe, structured results for export operations.
Replaces raw dictionaries with proper data classes.

Architecture:
- StatusSnapshot: One normalized status reading of a job
- DependencyReport: Dependency pre-check answer
- DownloadResult: Archive download
- ExtractionResult: Archive validation + extraction
- ReorganizationWarning: Non-fatal reorganizer finding
- ProgressEvent: Typed progress notification
- ExportOutcome: Terminal result of a whole export run
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from exporter.constants import RAW_STATE_UNKNOWN
from exporter.engine.job import JobState


@dataclass
class StatusSnapshot:
    """
    Normalized reading of a job's status.

    Attributes:
        state: Normalized job state
        raw_state: State text as the server reported it
        complete: Whether the package is ready for download
        percentage: Reported progress, None when not reported
        current_items: Descriptors of items in progress (None when not reported)
        queued_items: Count or descriptors of waiting items
        message: Server status message
        error: Server error message
        download_locator: URL or path of the finished archive
        strategy: Name of the status strategy that produced this snapshot
    """
    state: JobState
    raw_state: str = RAW_STATE_UNKNOWN
    complete: bool = False
    percentage: Optional[float] = None
    current_items: Optional[list] = None
    queued_items: Optional[Union[int, list]] = None
    message: Optional[str] = None
    error: Optional[str] = None
    download_locator: Optional[str] = None
    strategy: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def unknown(cls) -> 'StatusSnapshot':
        """Snapshot returned when no strategy understood the server."""
        return cls(state=JobState.UNKNOWN)

    @property
    def is_unknown(self) -> bool:
        return self.state == JobState.UNKNOWN

    def to_dict(self) -> dict[str, any]:
        """Convert to dictionary for logging/storage."""
        return {
            'state': self.state.value,
            'raw_state': self.raw_state,
            'complete': self.complete,
            'percentage': self.percentage,
            'current_items': self.current_items,
            'queued_items': self.queued_items,
            'message': self.message,
            'error': self.error,
            'download_locator': self.download_locator,
            'strategy': self.strategy,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class DependencyReport:
    """
    Result of the dependency pre-check.

    Attributes:
        entity_selector: Work type the check ran for
        mandatory: Dependencies the export cannot do without
        recommended: Dependencies the server suggests adding
    """
    entity_selector: str
    mandatory: list = field(default_factory=list)
    recommended: list = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def total(self) -> int:
        return len(self.mandatory) + len(self.recommended)

    def to_dict(self) -> dict[str, any]:
        """Convert to dictionary for logging/storage."""
        return {
            'entity_selector': self.entity_selector,
            'mandatory': self.mandatory,
            'recommended': self.recommended,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class DownloadResult:
    """
    Result of an archive download.

    Attributes:
        file_path: Path where the archive was written
        file_size: Final size on disk in bytes
        url: Source URL
        attempts: Number of attempts used
        resumed: Whether any attempt continued a partial file
        duration: Download duration in seconds
        status_code: HTTP status of the last response
    """
    file_path: Path
    file_size: int = 0
    url: str = ''
    attempts: int = 1
    resumed: bool = False
    duration: float = 0.0
    status_code: Optional[int] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def download_speed_mbps(self) -> float:
        """Calculate download speed in MB/s."""
        if self.duration > 0 and self.file_size > 0:
            mb = self.file_size / (1024 * 1024)
            return mb / self.duration
        return 0.0

    def to_dict(self) -> dict[str, any]:
        """Convert to dictionary for logging/storage."""
        return {
            'file_path': str(self.file_path),
            'file_size': self.file_size,
            'url': self.url,
            'attempts': self.attempts,
            'resumed': self.resumed,
            'duration': self.duration,
            'status_code': self.status_code,
            'download_speed_mbps': self.download_speed_mbps,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class ExtractionResult:
    """
    Result of archive validation and extraction.

    Attributes:
        extract_directory: Path where files were extracted
        files_extracted: Number of file members written
        bytes_extracted: Total bytes written
        archive_path: Path to archive file
        duration: Extraction duration in seconds
        members: Member names, in archive order
    """
    extract_directory: Path
    files_extracted: int = 0
    bytes_extracted: int = 0
    archive_path: Optional[Path] = None
    duration: float = 0.0
    members: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, any]:
        """Convert to dictionary for logging/storage."""
        return {
            'extract_directory': str(self.extract_directory),
            'files_extracted': self.files_extracted,
            'bytes_extracted': self.bytes_extracted,
            'archive_path': str(self.archive_path) if self.archive_path else None,
            'duration': self.duration,
            'members': self.members,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class ReorganizationWarning:
    """
    Non-fatal finding from the package reorganizer.

    Attributes:
        source: File name or manifest step id the warning concerns
        reason: Human-readable explanation
    """
    source: str
    reason: str

    def __str__(self) -> str:
        return f"{self.source}: {self.reason}"

    def to_dict(self) -> dict[str, any]:
        return {'source': self.source, 'reason': self.reason}


@dataclass
class ProgressEvent:
    """
    Progress notification published during an export run.

    Attributes:
        phase: Pipeline phase (see PHASE_* constants)
        percentage: Phase progress 0-100, None when unknown
        message: Short human-readable text
        eta_seconds: Estimated seconds remaining, when known
    """
    phase: str
    percentage: Optional[float] = None
    message: str = ''
    eta_seconds: Optional[float] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, any]:
        return {
            'phase': self.phase,
            'percentage': self.percentage,
            'message': self.message,
            'eta_seconds': self.eta_seconds,
            'timestamp': self.timestamp.isoformat(),
        }


class ExportStatus(Enum):
    """Terminal status of an export run."""
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    CANCELLED = 'cancelled'
    TIMED_OUT = 'timed_out'


@dataclass
class ExportOutcome:
    """
    Terminal result of one export run.

    Exactly one outcome is produced per run.

    Attributes:
        status: SUCCEEDED, FAILED, CANCELLED or TIMED_OUT
        entity_selector: Exported work type
        job_id: Server job id, when a job was created
        package: Canonical package (SUCCEEDED only)
        error: Exception that ended the run (FAILED only)
        warnings: Reorganizer warnings
        from_cache: Whether the package came from the export cache
        duration: Total run time in seconds
    """
    status: ExportStatus
    entity_selector: str = ''
    job_id: Optional[str] = None
    package: Optional[Any] = None
    error: Optional[BaseException] = None
    warnings: list[ReorganizationWarning] = field(default_factory=list)
    from_cache: bool = False
    duration: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def succeeded(self) -> bool:
        return self.status == ExportStatus.SUCCEEDED

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error else None

    def to_dict(self) -> dict[str, any]:
        """Convert to dictionary for logging/storage."""
        return {
            'status': self.status.value,
            'entity_selector': self.entity_selector,
            'job_id': self.job_id,
            'package': self.package.to_dict() if self.package else None,
            'error': self.error_message,
            'error_type': type(self.error).__name__ if self.error else None,
            'warnings': [w.to_dict() for w in self.warnings],
            'from_cache': self.from_cache,
            'duration': self.duration,
            'timestamp': self.timestamp.isoformat(),
        }


__all__ = [
    'StatusSnapshot',
    'DependencyReport',
    'DownloadResult',
    'ExtractionResult',
    'ReorganizationWarning',
    'ProgressEvent',
    'ExportStatus',
    'ExportOutcome',
]
