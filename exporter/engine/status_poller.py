# Path: exporter/engine/status_poller.py
"""
Export Status Poller

Reads the status of one export job through the ordered strategy list.

Architecture:
- One poller per job
- Strategies probed in order on every poll; first readable answer wins
- Unreadable polls return an explicit UNKNOWN snapshot
- Consecutive UNKNOWN snapshots counted against a grace limit
"""

import asyncio
from typing import Optional
import aiohttp

from exporter.core.logger import get_logger
from exporter.core.config_loader import ConfigLoader
from exporter.engine.http_client import ExportHttpClient
from exporter.engine.errors import PollingUnknownShapeError
from exporter.engine.result import StatusSnapshot
from exporter.engine.status_parsers import StatusStrategy, default_strategies
from exporter.constants import (
    DEFAULT_UNKNOWN_GRACE_POLLS,
    LOG_PROCESS,
    LOG_OUTPUT,
)
from exporter.engine.constants import (
    STATUS_REQUEST_TIMEOUT,
    EXPECTED_INITIAL_UNKNOWN_POLLS,
)

logger = get_logger(__name__, 'engine')


class ExportStatusPoller:
    """
    Polls export job status.

    Features:
    - Multiple status endpoint shapes
    - Strategy switch logging
    - Grace period for unreadable status after job creation

    Example:
        poller = ExportStatusPoller(http)
        snapshot = await poller.poll(job_id)
        if snapshot.is_unknown:
            poller.raise_if_unknown_grace_exceeded(job_id)
    """

    def __init__(
        self,
        http: ExportHttpClient,
        strategies: Optional[list[StatusStrategy]] = None,
        unknown_grace: Optional[int] = None,
        config: Optional[ConfigLoader] = None
    ):
        """
        Initialize poller.

        Args:
            http: Shared HTTP client
            strategies: Status strategies in probe order (defaults if None)
            unknown_grace: Consecutive UNKNOWN polls tolerated (from config if None)
            config: Optional ConfigLoader instance
        """
        self.http = http
        self.config = config if config else ConfigLoader()
        self.strategies = strategies if strategies is not None else default_strategies()

        self.unknown_grace = unknown_grace if unknown_grace is not None else \
            self.config.get('unknown_grace_polls', DEFAULT_UNKNOWN_GRACE_POLLS)

        self.poll_count = 0
        self.unknown_polls = 0
        self.last_strategy: Optional[str] = None

    async def poll(self, job_id: str) -> StatusSnapshot:
        """
        Read the job status once.

        Args:
            job_id: Server job id

        Returns:
            StatusSnapshot (UNKNOWN when no strategy could read the status)
        """
        self.poll_count += 1

        for strategy in self.strategies:
            snapshot = await self._try_strategy(strategy, job_id)
            if snapshot is None:
                continue

            self._note_strategy(strategy.name)
            self.unknown_polls = 0
            logger.debug(
                f"{LOG_OUTPUT} Poll {self.poll_count}: {snapshot.raw_state} "
                f"{snapshot.percentage}% via {strategy.name}"
            )
            return snapshot

        self.unknown_polls += 1
        if self.unknown_polls <= EXPECTED_INITIAL_UNKNOWN_POLLS:
            logger.debug(f"{LOG_PROCESS} Status not yet available (poll {self.poll_count})")
        else:
            logger.warning(
                f"{LOG_PROCESS} No status strategy answered for job {job_id} "
                f"({self.unknown_polls} consecutive polls)"
            )
        return StatusSnapshot.unknown()

    def raise_if_unknown_grace_exceeded(self, job_id: str) -> None:
        """
        Fail once status has been unreadable for longer than the grace count.

        Raises:
            PollingUnknownShapeError: Consecutive UNKNOWN polls exceed the grace
        """
        if self.unknown_polls > self.unknown_grace:
            raise PollingUnknownShapeError(job_id, self.unknown_polls)

    def download_path_for(self, job_id: str) -> str:
        """Download path of the strategy that last answered."""
        for strategy in self.strategies:
            if strategy.name == self.last_strategy:
                return strategy.download_path(job_id)
        return self.strategies[0].download_path(job_id)

    async def _try_strategy(self, strategy: StatusStrategy, job_id: str) -> Optional[StatusSnapshot]:
        try:
            reply = await self.http.get_json(
                strategy.status_path(job_id),
                timeout=STATUS_REQUEST_TIMEOUT
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"{LOG_PROCESS} Strategy {strategy.name} failed: {e}")
            return None

        if not reply.ok:
            logger.debug(f"{LOG_PROCESS} Strategy {strategy.name} returned HTTP {reply.status}")
            return None

        return strategy.parse(reply.data, job_id)

    def _note_strategy(self, name: str) -> None:
        if name == self.last_strategy:
            return
        if self.last_strategy is None:
            logger.info(f"{LOG_PROCESS} Using {name} endpoint for status checks")
        else:
            logger.info(f"{LOG_PROCESS} Status strategy switched: {self.last_strategy} -> {name}")
        self.last_strategy = name


__all__ = ['ExportStatusPoller']
