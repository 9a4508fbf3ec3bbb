# Path: exporter/engine/job.py
"""
Export Job Model

State enumeration and in-memory record of a server-side export job.

Categories:
1. JobState - Normalized lifecycle state
2. ExportJob - Job record mutated only from status snapshots
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


# ==============================================================================
# JOB STATE
# ==============================================================================

class JobState(Enum):
    """
    Normalized lifecycle of an export job.

    QUEUED -> RUNNING -> {COMPLETE, FAILED, CANCELLED}
    TIMED_OUT is never reported by the server; the orchestrator imposes it.
    UNKNOWN marks a snapshot no status strategy could read.
    """
    QUEUED = 'queued'
    RUNNING = 'running'
    COMPLETE = 'complete'
    FAILED = 'failed'
    CANCELLED = 'cancelled'
    TIMED_OUT = 'timed_out'
    UNKNOWN = 'unknown'

    @property
    def is_terminal(self) -> bool:
        """True for states the job never leaves."""
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({
    JobState.COMPLETE,
    JobState.FAILED,
    JobState.CANCELLED,
    JobState.TIMED_OUT,
})


# ==============================================================================
# EXPORT JOB
# ==============================================================================

@dataclass
class ExportJob:
    """
    Server-side export job as seen by this client.

    Attributes:
        job_id: Opaque id returned by the server
        entity_selector: System name of the exported work type
        state: Normalized state
        percentage: Last reported progress (0-100)
        current_items: Descriptors of the items being exported now
        queued_items: Count or descriptors of items still waiting
        error_detail: Server error text, when reported
        download_locator: Where the archive can be fetched, once known
    """
    job_id: str
    entity_selector: str = ''
    state: JobState = JobState.QUEUED
    percentage: float = 0.0
    current_items: list = field(default_factory=list)
    queued_items: Union[int, list] = 0
    error_detail: Optional[str] = None
    download_locator: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def apply(self, snapshot) -> None:
        """
        Fold a status snapshot into the job.

        UNKNOWN snapshots carry no information and are ignored. Terminal
        states are sticky.

        Args:
            snapshot: StatusSnapshot from the poller
        """
        if snapshot.state == JobState.UNKNOWN or self.state.is_terminal:
            return

        self.state = snapshot.state
        if snapshot.percentage is not None:
            self.percentage = snapshot.percentage
        if snapshot.current_items is not None:
            self.current_items = list(snapshot.current_items)
        if snapshot.queued_items is not None:
            self.queued_items = snapshot.queued_items
        if snapshot.error:
            self.error_detail = snapshot.error
        if snapshot.download_locator:
            self.download_locator = snapshot.download_locator

    def to_dict(self) -> dict[str, any]:
        """Convert to dictionary for logging/storage."""
        return {
            'job_id': self.job_id,
            'entity_selector': self.entity_selector,
            'state': self.state.value,
            'percentage': self.percentage,
            'current_items': self.current_items,
            'queued_items': self.queued_items,
            'error_detail': self.error_detail,
            'download_locator': self.download_locator,
            'created_at': self.created_at.isoformat(),
        }


__all__ = ['JobState', 'TERMINAL_STATES', 'ExportJob']
