# Path: exporter/engine/errors.py
"""
Export Errors

Exception taxonomy for the export pipeline.

Transport failures are retried where they happen; everything raised from
here upward is final for the phase that raised it. The orchestrator turns
these into an ExportOutcome, so callers of run_export never see them.
"""

from typing import Optional


class ExportError(Exception):
    """Base class for all export pipeline errors."""
    pass


class JobCreationError(ExportError):
    """The server refused to create the export job or returned no job id."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DependencyCheckError(ExportError):
    """The dependency pre-check failed and the caller chose to abort."""

    def __init__(self, entity_selector: str, last_error: Optional[BaseException] = None):
        super().__init__(f"Dependency check for {entity_selector} failed: {last_error}")
        self.entity_selector = entity_selector
        self.last_error = last_error


class PollingUnknownShapeError(ExportError):
    """No status strategy understood the server for too many polls in a row."""

    def __init__(self, job_id: str, unknown_polls: int):
        super().__init__(
            f"Status of job {job_id} unreadable for {unknown_polls} consecutive polls"
        )
        self.job_id = job_id
        self.unknown_polls = unknown_polls


class JobFailed(ExportError):
    """The server reported the job as failed."""

    def __init__(self, remote_message: Optional[str] = None):
        super().__init__(remote_message or "Export job failed")
        self.remote_message = remote_message


class DownloadExhaustedError(ExportError):
    """The archive download failed on every attempt."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(f"Download failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class IncompleteDownloadError(ExportError):
    """
    Downloaded file is shorter than the size the server declared.

    Retried by the downloader like any transport failure; never escapes it.
    """

    def __init__(self, received: int, expected: int):
        super().__init__(f"Received {received} of {expected} bytes")
        self.received = received
        self.expected = expected


class ArchiveSecurityViolation(ExportError):
    """
    The archive failed one or more safety checks.

    Attributes:
        violations: Every failed check, as SecurityViolation records
    """

    def __init__(self, violations: list):
        summary = '; '.join(str(v) for v in violations) or 'unspecified violation'
        super().__init__(f"Archive rejected: {summary}")
        self.violations = list(violations)

    @property
    def codes(self) -> list[str]:
        """Violation codes, in detection order."""
        return [v.code for v in self.violations]


class ExtractionTimeout(ExportError):
    """Extraction did not finish within the configured time budget."""

    def __init__(self, timeout: float):
        super().__init__(f"Extraction exceeded {timeout:.1f}s")
        self.timeout = timeout


__all__ = [
    'ExportError',
    'JobCreationError',
    'DependencyCheckError',
    'PollingUnknownShapeError',
    'JobFailed',
    'DownloadExhaustedError',
    'IncompleteDownloadError',
    'ArchiveSecurityViolation',
    'ExtractionTimeout',
]
