# Path: exporter/engine/status_parsers.py
"""
Status Parsers

Strategies for reading export job status from the several endpoint
shapes the server may expose, and normalization into StatusSnapshot.

Architecture:
- One small strategy object per endpoint shape
- Strategies tried in a fixed order; first readable answer wins
- Field fallbacks applied in one place (normalize_status)
"""

from typing import Any, Optional

from exporter.engine.job import JobState
from exporter.engine.result import StatusSnapshot
from exporter.constants import (
    RAW_STATE_COMPLETE_VALUES,
    RAW_STATE_FAILED_VALUES,
    RAW_STATE_CANCELLED_VALUES,
    RAW_STATE_QUEUED_VALUES,
    RAW_STATE_CREATING_PACKAGE,
    RAW_STATE_PACKAGE_FAILED,
)
from exporter.engine.constants import (
    STRATEGY_MODELLER,
    STRATEGY_PACKAGE,
    STRATEGY_PANEL,
    STRATEGY_LEGACY,
    STRATEGY_CONFIGURATION,
    STRATEGY_LIST,
    STATUS_ENDPOINTS,
    DOWNLOAD_ENDPOINTS,
)

# Keys that mark a payload as a status record
STATUS_KEYS = (
    'complete', 'isComplete', 'state', 'status', 'exportState',
    'percentage', 'progress', 'percentComplete', 'packageAvailable', 'downloadUrl',
)


def _first(record: dict, *keys) -> Any:
    """First truthy value among keys."""
    for key in keys:
        value = record.get(key)
        if value:
            return value
    return None


def _present(record: dict, *keys) -> Any:
    """First value among keys that is present and not null (0 and [] count)."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def _as_list(value: Any) -> Optional[list]:
    if value is None:
        return None
    return list(value) if isinstance(value, (list, tuple)) else [value]


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def is_complete(record: dict) -> bool:
    """Completion flags as reported by any known shape."""
    return (
        record.get('complete') is True
        or record.get('isComplete') is True
        or record.get('state') in ('COMPLETE', 'Completed')
        or record.get('status') == 'Complete'
        or _as_number(record.get('percentage')) == 100
        or _as_number(record.get('progress')) == 100
    )


def map_state(raw_state: str, complete: bool) -> JobState:
    """
    Map a raw server state onto JobState.

    Args:
        raw_state: State text from the server
        complete: Normalized completion flag

    Returns:
        JobState
    """
    upper = raw_state.strip().upper()
    if upper in RAW_STATE_FAILED_VALUES:
        return JobState.FAILED
    if upper in RAW_STATE_CANCELLED_VALUES:
        return JobState.CANCELLED
    if complete:
        return JobState.COMPLETE
    if upper in RAW_STATE_QUEUED_VALUES:
        return JobState.QUEUED
    return JobState.RUNNING


def normalize_status(
    record: dict,
    job_id: str,
    strategy_name: Optional[str] = None,
    download_template: Optional[str] = None
) -> StatusSnapshot:
    """
    Normalize one status record.

    A job reported complete whose package is explicitly not yet available
    is treated as still running ('CREATING PACKAGE'), unless packaging
    itself failed.

    Args:
        record: Status record from the server
        job_id: Job the record belongs to
        strategy_name: Strategy that produced the record
        download_template: Download path template for that strategy

    Returns:
        StatusSnapshot
    """
    complete = is_complete(record)

    percentage = _as_number(_present(record, 'percentage', 'progress', 'percentComplete'))
    if percentage is None:
        percentage = 100.0 if complete else 0.0

    raw_state = _first(record, 'state', 'status', 'exportState')
    raw_state = str(raw_state) if raw_state else ('COMPLETE' if complete else 'RUNNING')

    package_available = record.get('packageAvailable') is not False and bool(
        record.get('packageAvailable') is True or record.get('downloadUrl') or complete
    )

    if complete and not package_available and raw_state.upper() != RAW_STATE_PACKAGE_FAILED:
        raw_state = RAW_STATE_CREATING_PACKAGE
        complete = False

    if record.get('complete') is True and record.get('packageAvailable') is True:
        complete = True

    # A state the server calls finished means finished, whatever the flags say
    if raw_state.upper() in RAW_STATE_COMPLETE_VALUES and package_available:
        complete = True

    download_locator = record.get('downloadUrl')
    if not download_locator and complete and download_template:
        remote_id = record.get('exportJobId') or record.get('id') or job_id
        download_locator = download_template.format(job_id=remote_id)

    return StatusSnapshot(
        state=map_state(raw_state, complete),
        raw_state=raw_state,
        complete=complete,
        percentage=percentage,
        current_items=_as_list(_present(record, 'current', 'currentItems')),
        queued_items=_present(record, 'queued', 'queuedItems'),
        message=_first(record, 'message', 'statusMessage'),
        error=_first(record, 'error', 'errorMessage'),
        download_locator=download_locator,
        strategy=strategy_name,
    )


class StatusStrategy:
    """
    Reads status from one endpoint shape.

    Example:
        strategy = StatusStrategy('package', '/api/package/export/{job_id}',
                                  '/api/package/export/{job_id}/download')
        snapshot = strategy.parse(reply.data, job_id)
    """

    def __init__(self, name: str, status_template: str, download_template: str):
        self.name = name
        self.status_template = status_template
        self.download_template = download_template

    def status_path(self, job_id: str) -> str:
        return self.status_template.format(job_id=job_id)

    def download_path(self, job_id: str) -> str:
        return self.download_template.format(job_id=job_id)

    def select(self, payload: Any, job_id: str) -> Optional[dict]:
        """Pick the status record out of a reply payload."""
        if isinstance(payload, dict) and any(key in payload for key in STATUS_KEYS):
            return payload
        return None

    def parse(self, payload: Any, job_id: str) -> Optional[StatusSnapshot]:
        """
        Parse a reply payload.

        Args:
            payload: Decoded JSON reply
            job_id: Job being polled

        Returns:
            StatusSnapshot, or None when this shape does not match
        """
        record = self.select(payload, job_id)
        if record is None:
            return None
        return normalize_status(record, job_id, self.name, self.download_template)

    def __repr__(self) -> str:
        return f"StatusStrategy({self.name!r})"


class ExportListStrategy(StatusStrategy):
    """Finds the job in the list of all exports."""

    def select(self, payload: Any, job_id: str) -> Optional[dict]:
        if isinstance(payload, dict):
            payload = payload.get('items') or payload.get('exports')
        if not isinstance(payload, list):
            return None
        for entry in payload:
            if not isinstance(entry, dict):
                continue
            if str(entry.get('exportJobId')) == job_id or str(entry.get('id')) == job_id:
                return entry
        return None


def default_strategies() -> list[StatusStrategy]:
    """Status strategies in probe order."""
    strategies = [
        StatusStrategy(name, STATUS_ENDPOINTS[name], DOWNLOAD_ENDPOINTS[name])
        for name in (
            STRATEGY_MODELLER,
            STRATEGY_PACKAGE,
            STRATEGY_PANEL,
            STRATEGY_LEGACY,
            STRATEGY_CONFIGURATION,
        )
    ]
    strategies.append(ExportListStrategy(
        STRATEGY_LIST,
        STATUS_ENDPOINTS[STRATEGY_LIST],
        DOWNLOAD_ENDPOINTS[STRATEGY_LIST]
    ))
    return strategies


__all__ = [
    'StatusStrategy',
    'ExportListStrategy',
    'default_strategies',
    'normalize_status',
    'map_state',
    'is_complete',
]
