# Path: exporter/engine/orchestrator.py
"""
Export Orchestrator

Main workflow orchestrator for export runs.
Coordinates: cache -> dependency check -> start -> poll -> download ->
extract -> reorganize -> cache.

Architecture:
- One run per call, one ExportOutcome per run
- Per-run poller, downloader and workspace (nothing mutable is shared)
- Cancellation checked at the top of every poll and before every phase
- Wall-clock budget on the poll phase
- Exceptions converted to outcomes at this level only
- Workspace removed on every exit path
- IPO logging throughout
"""

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Optional, Union

import aiohttp
from tenacity import (
    AsyncRetrying,
    RetryError,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from exporter.core.logger import get_logger
from exporter.core.config_loader import ConfigLoader
from exporter.core.workspace import WorkspaceHandle
from exporter.engine.cache import ExportCache
from exporter.engine.downloader import ResumableDownloader
from exporter.engine.errors import (
    ExportError,
    DependencyCheckError,
    JobFailed,
)
from exporter.engine.extraction import ArchiveValidatorExtractor, SecurityLimitsPolicy
from exporter.engine.http_client import ExportHttpClient
from exporter.engine.job import ExportJob, JobState
from exporter.engine.job_client import ExportJobClient
from exporter.engine.progress import CancellationToken, ProgressChannel, ProgressTracker
from exporter.engine.reorganizer import PackageReorganizer, ExtractedPackage
from exporter.engine.result import (
    DependencyReport,
    ExportOutcome,
    ExportStatus,
    StatusSnapshot,
)
from exporter.engine.retry_manager import RetryManager
from exporter.engine.status_parsers import StatusStrategy
from exporter.engine.status_poller import ExportStatusPoller
from exporter.constants import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_TIMEOUT,
    DEFAULT_DEPENDENCY_ATTEMPTS,
    DEFAULT_DEPENDENCY_RETRY_DELAY,
    DEFAULT_MAX_RETRY_DELAY,
    PHASE_CACHE,
    PHASE_DEPENDENCIES,
    PHASE_START,
    PHASE_POLL,
    PHASE_DOWNLOAD,
    PHASE_EXTRACT,
    PHASE_REORGANIZE,
    PHASE_DONE,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')

DependencyDecision = Callable[[str, BaseException], Union[bool, Awaitable[bool]]]


class _RunCancelled(Exception):
    """Internal: cancellation observed. remote=True when the server cancelled."""

    def __init__(self, remote: bool = False):
        super().__init__('cancelled')
        self.remote = remote


class _RunTimedOut(Exception):
    """Internal: poll phase exceeded its wall-clock budget."""

    def __init__(self, timeout: float):
        super().__init__(f"Export did not complete within {timeout:.1f}s")
        self.timeout = timeout


class _RunState:
    """Mutable per-run bookkeeping, visible to the outcome builder."""

    def __init__(self, entity_selector: str):
        self.entity_selector = entity_selector
        self.job: Optional[ExportJob] = None

    @property
    def job_id(self) -> Optional[str]:
        return self.job.job_id if self.job else None


def proceed_on_dependency_failure(entity_selector: str, error: BaseException) -> bool:
    """Default dependency decision: log and carry on with the export."""
    logger.warning(
        f"{LOG_PROCESS} Dependency check for {entity_selector} failed ({error}); proceeding"
    )
    return True


class ExportOrchestrator:
    """
    Coordinates a complete export run.

    Workflow:
    1. Optional cache lookup
    2. Dependency pre-check with exponential backoff
    3. Start the export job
    4. Poll until complete, failed, cancelled or timed out
    5. Download the archive into a per-run workspace
    6. Validate and extract the archive
    7. Reorganize into an ExtractedPackage
    8. Optional cache store

    CRITICAL: run_export() never raises for export failures. Every run ends
    in exactly one ExportOutcome.

    Example:
        async with ExportOrchestrator(base_url='https://tenant.example.com') as orchestrator:
            outcome = await orchestrator.run_export('matter-litigation')
            if outcome.succeeded:
                print(outcome.package.summary())
    """

    def __init__(
        self,
        http: Optional[ExportHttpClient] = None,
        base_url: Optional[str] = None,
        token_provider: Optional[Any] = None,
        config: Optional[ConfigLoader] = None,
        job_client: Optional[ExportJobClient] = None,
        strategies: Optional[list[StatusStrategy]] = None,
        policy: Optional[SecurityLimitsPolicy] = None,
        reorganizer: Optional[PackageReorganizer] = None,
        cache: Optional[ExportCache] = None,
        workspace_dir: Optional[Any] = None,
        poll_interval: Optional[float] = None,
        poll_timeout: Optional[float] = None,
        check_dependencies: Optional[bool] = None
    ):
        """
        Initialize export orchestrator.

        Args:
            http: Shared HTTP client (built from base_url/token_provider if None)
            base_url: Server root URL when http is None (from config if None)
            token_provider: Object with async get_token() when http is None
            config: Optional ConfigLoader instance
            job_client: Job endpoint client (built on http if None)
            strategies: Status strategies for the per-run poller (defaults if None)
            policy: Archive security limits (process-wide default if None)
            reorganizer: Package reorganizer (default if None)
            cache: Export cache (built from config when use_cache is set)
            workspace_dir: Parent of per-run workspaces (from config if None)
            poll_interval: Seconds between polls (from config if None)
            poll_timeout: Poll phase budget in seconds (from config if None)
            check_dependencies: Run the dependency pre-check (from config if None)
        """
        self.config = config if config else ConfigLoader()

        self._owns_http = http is None
        self.http = http if http is not None else ExportHttpClient(
            base_url=base_url,
            token_provider=token_provider,
            config=self.config
        )
        self.job_client = job_client if job_client else ExportJobClient(self.http, config=self.config)
        self.strategies = strategies
        self.extractor = ArchiveValidatorExtractor(policy=policy)
        self.reorganizer = reorganizer if reorganizer else PackageReorganizer()
        self.workspace_dir = workspace_dir

        if cache is not None:
            self.cache = cache
        elif self.config.get('use_cache', False):
            self.cache = ExportCache(server_url=self.http.base_url, config=self.config)
        else:
            self.cache = None

        self.poll_interval = poll_interval if poll_interval is not None else \
            self.config.get('poll_interval', DEFAULT_POLL_INTERVAL)
        self.poll_timeout = poll_timeout if poll_timeout is not None else \
            self.config.get('poll_timeout', DEFAULT_POLL_TIMEOUT)
        self.check_dependencies = check_dependencies if check_dependencies is not None else \
            self.config.get('check_dependencies', True)
        self.dependency_attempts = self.config.get('dependency_attempts', DEFAULT_DEPENDENCY_ATTEMPTS)
        self.dependency_retry_delay = self.config.get('retry_delay', DEFAULT_DEPENDENCY_RETRY_DELAY)

    async def run_export(
        self,
        entity_selector: str,
        profile: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
        progress: Optional[ProgressChannel] = None,
        on_dependency_failure: Optional[DependencyDecision] = None,
        timeout: Optional[float] = None,
        source_version: Optional[str] = None
    ) -> ExportOutcome:
        """
        Export one work type and return its outcome.

        Args:
            entity_selector: System name of the work type
            profile: Export profile name (configured default if None)
            cancellation: Token checked between polls and phases
            progress: Channel receiving ProgressEvent objects (closed on return)
            on_dependency_failure: Called as decision(selector, error) when the
                pre-check is exhausted; a falsy result aborts the run
            timeout: Poll phase budget in seconds (orchestrator default if None)
            source_version: Required source version for cache hits

        Returns:
            ExportOutcome (SUCCEEDED, FAILED, CANCELLED or TIMED_OUT)
        """
        logger.info(f"{LOG_INPUT} Export requested: {entity_selector}")

        start_time = time.time()
        cancellation = cancellation if cancellation is not None else CancellationToken()
        channel = progress if progress is not None else ProgressChannel()
        decision = on_dependency_failure if on_dependency_failure else proceed_on_dependency_failure
        budget = timeout if timeout is not None else self.poll_timeout
        run = _RunState(entity_selector)

        try:
            outcome = await self._execute(
                run, profile, cancellation, channel, decision, budget, source_version
            )
        except _RunCancelled as e:
            if not e.remote:
                await self._cancel_remote(run)
            logger.warning(f"{LOG_OUTPUT} Export cancelled: {entity_selector}")
            outcome = ExportOutcome(status=ExportStatus.CANCELLED, entity_selector=entity_selector)
        except _RunTimedOut as e:
            await self._cancel_remote(run)
            logger.error(f"{LOG_OUTPUT} {e}")
            outcome = ExportOutcome(status=ExportStatus.TIMED_OUT, entity_selector=entity_selector)
        except ExportError as e:
            logger.error(f"{LOG_OUTPUT} Export failed: {type(e).__name__}: {e}")
            outcome = ExportOutcome(status=ExportStatus.FAILED, entity_selector=entity_selector, error=e)
        except Exception as e:
            logger.error(f"{LOG_OUTPUT} Export failed unexpectedly: {e}", exc_info=True)
            outcome = ExportOutcome(status=ExportStatus.FAILED, entity_selector=entity_selector, error=e)

        if outcome.job_id is None:
            outcome.job_id = run.job_id
        outcome.duration = time.time() - start_time

        await channel.emit(
            PHASE_DONE,
            100.0 if outcome.succeeded else None,
            outcome.status.value
        )
        channel.close()

        logger.info(
            f"{LOG_OUTPUT} Export {entity_selector}: {outcome.status.value} "
            f"in {outcome.duration:.1f}s"
        )
        return outcome

    async def _execute(
        self,
        run: _RunState,
        profile: Optional[str],
        cancellation: CancellationToken,
        channel: ProgressChannel,
        decision: DependencyDecision,
        budget: float,
        source_version: Optional[str]
    ) -> ExportOutcome:
        """Run every phase; raises on anything that is not success."""
        selector = run.entity_selector

        if self.cache is not None:
            self._check_cancelled(cancellation)
            package = self.cache.get_cached_package(selector, source_version=source_version)
            if package is not None:
                await channel.emit(PHASE_CACHE, 100.0, 'Loaded from cache')
                return self._succeeded(selector, package, from_cache=True)

        if self.check_dependencies:
            self._check_cancelled(cancellation)
            await channel.emit(PHASE_DEPENDENCIES, None, 'Checking dependencies')
            await self._check_dependencies(selector, decision)

        self._check_cancelled(cancellation)
        await channel.emit(PHASE_START, None, 'Starting export')
        job_id = await self.job_client.start_export(selector, profile)
        run.job = ExportJob(job_id=job_id, entity_selector=selector)

        poller = ExportStatusPoller(self.http, strategies=self.strategies, config=self.config)
        snapshot = await self._poll_until_complete(run.job, poller, cancellation, channel, budget)

        locator = snapshot.download_locator or run.job.download_locator or \
            poller.download_path_for(job_id)

        with WorkspaceHandle(base_dir=self.workspace_dir, config=self.config) as workspace:
            self._check_cancelled(cancellation)
            await self._download(locator, workspace, channel)

            self._check_cancelled(cancellation)
            await channel.emit(PHASE_EXTRACT, None, 'Validating archive')
            extraction = await self.extractor.extract(workspace.archive_path, workspace.extract_dir)
            await channel.emit(PHASE_EXTRACT, 100.0, f"{extraction.files_extracted} files extracted")

            self._check_cancelled(cancellation)
            await channel.emit(PHASE_REORGANIZE, None, 'Reorganizing package')
            package = await asyncio.to_thread(self.reorganizer.reorganize, workspace.extract_dir)

        if self.cache is not None:
            self.cache.cache_package(selector, package)

        return self._succeeded(selector, package, job_id=job_id)

    async def _check_dependencies(self, selector: str, decision: DependencyDecision) -> Optional[DependencyReport]:
        """
        Dependency pre-check with exponential backoff.

        Raises:
            DependencyCheckError: Attempts exhausted and the decision was abort
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.dependency_attempts),
                wait=wait_exponential(multiplier=self.dependency_retry_delay, max=DEFAULT_MAX_RETRY_DELAY),
                retry=retry_if_exception_type((aiohttp.ClientError, asyncio.TimeoutError)),
                reraise=True
            ):
                with attempt:
                    return await self.job_client.analyze_dependencies(selector)
        except (aiohttp.ClientError, asyncio.TimeoutError, RetryError) as e:
            logger.warning(
                f"{LOG_PROCESS} Dependency check gave up after "
                f"{self.dependency_attempts} attempts: {e}"
            )
            proceed = decision(selector, e)
            if inspect.isawaitable(proceed):
                proceed = await proceed
            if not proceed:
                raise DependencyCheckError(selector, last_error=e) from e
        return None

    async def _poll_until_complete(
        self,
        job: ExportJob,
        poller: ExportStatusPoller,
        cancellation: CancellationToken,
        channel: ProgressChannel,
        budget: float
    ) -> StatusSnapshot:
        """
        Poll at a fixed cadence until the package is ready.

        Raises:
            JobFailed: Server reported failure
            PollingUnknownShapeError: Status unreadable past the grace count
            _RunCancelled: Token cancelled or server cancelled the job
            _RunTimedOut: Budget exhausted
        """
        logger.info(f"{LOG_PROCESS} Polling job {job.job_id} (budget {budget:.1f}s)")

        tracker = ProgressTracker()
        tracker.start()
        deadline = time.monotonic() + budget

        while True:
            self._check_cancelled(cancellation)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise _RunTimedOut(budget)

            # A hanging status API must not stretch the budget
            try:
                snapshot = await asyncio.wait_for(poller.poll(job.job_id), timeout=remaining)
            except asyncio.TimeoutError:
                raise _RunTimedOut(budget) from None
            job.apply(snapshot)

            if snapshot.is_unknown:
                poller.raise_if_unknown_grace_exceeded(job.job_id)
            elif snapshot.state == JobState.FAILED:
                raise JobFailed(snapshot.error or snapshot.message or snapshot.raw_state)
            elif snapshot.state == JobState.CANCELLED:
                logger.warning(f"{LOG_PROCESS} Server cancelled job {job.job_id}")
                raise _RunCancelled(remote=True)
            else:
                eta = tracker.record(snapshot.percentage)
                await channel.emit(PHASE_POLL, snapshot.percentage, snapshot.raw_state, eta)
                if snapshot.complete:
                    logger.info(f"{LOG_OUTPUT} Job {job.job_id} complete after {poller.poll_count} polls")
                    return snapshot

            remaining = deadline - time.monotonic()
            if await cancellation.sleep(max(0.0, min(self.poll_interval, remaining))):
                raise _RunCancelled()

    async def _download(self, locator: str, workspace: WorkspaceHandle, channel: ProgressChannel) -> None:
        url = self.http.url_for(locator)
        token = await self.http.token_provider.get_token()

        async def on_progress(percentage, written, total):
            await channel.emit(PHASE_DOWNLOAD, float(percentage), f"{written}/{total} bytes")

        await channel.emit(PHASE_DOWNLOAD, 0.0, 'Downloading package')
        async with ResumableDownloader(
            retry_manager=RetryManager(config=self.config),
            config=self.config
        ) as downloader:
            await downloader.download(
                url=url,
                destination=workspace.archive_path,
                auth_token=token,
                progress_callback=on_progress
            )

    async def _cancel_remote(self, run: _RunState) -> None:
        if run.job_id is None:
            return
        await self.job_client.cancel_export(run.job_id)
        if run.job and not run.job.state.is_terminal:
            run.job.state = JobState.CANCELLED

    @staticmethod
    def _check_cancelled(cancellation: CancellationToken) -> None:
        if cancellation.is_cancelled:
            raise _RunCancelled()

    @staticmethod
    def _succeeded(
        selector: str,
        package: ExtractedPackage,
        job_id: Optional[str] = None,
        from_cache: bool = False
    ) -> ExportOutcome:
        return ExportOutcome(
            status=ExportStatus.SUCCEEDED,
            entity_selector=selector,
            job_id=job_id,
            package=package,
            warnings=list(package.warnings),
            from_cache=from_cache,
        )

    async def close(self):
        """Close the HTTP client if this orchestrator created it."""
        if self._owns_http:
            await self.http.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


async def run_export(
    entity_selector: str,
    profile: Optional[str] = None,
    cancellation: Optional[CancellationToken] = None,
    progress: Optional[ProgressChannel] = None,
    base_url: Optional[str] = None,
    token_provider: Optional[Any] = None,
    config: Optional[ConfigLoader] = None,
    **options
) -> ExportOutcome:
    """
    Export one work type with a throwaway orchestrator.

    Args:
        entity_selector: System name of the work type
        profile: Export profile name
        cancellation: Optional cancellation token
        progress: Optional progress channel
        base_url: Server root URL (from config if None)
        token_provider: Object with async get_token() (config token if None)
        config: Optional ConfigLoader instance
        **options: Passed to ExportOrchestrator.run_export()

    Returns:
        ExportOutcome
    """
    async with ExportOrchestrator(
        base_url=base_url,
        token_provider=token_provider,
        config=config
    ) as orchestrator:
        return await orchestrator.run_export(
            entity_selector,
            profile=profile,
            cancellation=cancellation,
            progress=progress,
            **options
        )


__all__ = ['ExportOrchestrator', 'run_export', 'proceed_on_dependency_failure']
