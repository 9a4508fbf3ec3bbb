# Path: exporter/__init__.py
"""
Exporter

Requests a server-generated work type export package, waits for the job,
downloads the archive with resume, unpacks it under security limits and
reorganizes it into a typed package.

Usage:
    import asyncio
    from exporter import run_export

    outcome = asyncio.run(run_export('matter-litigation'))
    if outcome.succeeded:
        print(outcome.package.summary())
"""

__version__ = '1.0.0'

from exporter.engine import (
    ExportOrchestrator,
    run_export,
    ExportOutcome,
    ExportStatus,
    ExtractedPackage,
    ProgressChannel,
    CancellationToken,
    StaticTokenProvider,
    SecurityLimitsPolicy,
)

__all__ = [
    'ExportOrchestrator',
    'run_export',
    'ExportOutcome',
    'ExportStatus',
    'ExtractedPackage',
    'ProgressChannel',
    'CancellationToken',
    'StaticTokenProvider',
    'SecurityLimitsPolicy',
    '__version__',
]
