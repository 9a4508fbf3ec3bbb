# Path: exporter/engine/__init__.py
"""
Exporter Engine Module

Export job control, status polling, resumable download, safe archive
extraction and package reorganization.
"""

from .errors import (
    ExportError,
    JobCreationError,
    DependencyCheckError,
    PollingUnknownShapeError,
    JobFailed,
    DownloadExhaustedError,
    ArchiveSecurityViolation,
    ExtractionTimeout,
)
from .job import JobState, ExportJob
from .result import (
    StatusSnapshot,
    DependencyReport,
    DownloadResult,
    ExtractionResult,
    ReorganizationWarning,
    ProgressEvent,
    ExportStatus,
    ExportOutcome,
)
from .http_client import ExportHttpClient, StaticTokenProvider
from .job_client import ExportJobClient
from .status_poller import ExportStatusPoller
from .progress import ProgressTracker, ProgressChannel, CancellationToken
from .downloader import ResumableDownloader
from .extraction import ArchiveValidatorExtractor, SecurityLimitsPolicy
from .reorganizer import PackageReorganizer, ExtractedPackage, ArtifactKind
from .cache import ExportCache
from .orchestrator import ExportOrchestrator, run_export

__all__ = [
    'ExportError',
    'JobCreationError',
    'DependencyCheckError',
    'PollingUnknownShapeError',
    'JobFailed',
    'DownloadExhaustedError',
    'ArchiveSecurityViolation',
    'ExtractionTimeout',
    'JobState',
    'ExportJob',
    'StatusSnapshot',
    'DependencyReport',
    'DownloadResult',
    'ExtractionResult',
    'ReorganizationWarning',
    'ProgressEvent',
    'ExportStatus',
    'ExportOutcome',
    'ExportHttpClient',
    'StaticTokenProvider',
    'ExportJobClient',
    'ExportStatusPoller',
    'ProgressTracker',
    'ProgressChannel',
    'CancellationToken',
    'ResumableDownloader',
    'ArchiveValidatorExtractor',
    'SecurityLimitsPolicy',
    'PackageReorganizer',
    'ExtractedPackage',
    'ArtifactKind',
    'ExportCache',
    'ExportOrchestrator',
    'run_export',
]
