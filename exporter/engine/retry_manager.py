# Path: exporter/engine/retry_manager.py
"""
Retry Manager

Backoff loop for archive download attempts.

Architecture:
- Each attempt is a fresh call; the attempt itself re-reads any partial file
- Delay doubles per failed attempt, capped by max_retry_delay
- Rate limiting, 5xx, connection drops and short bodies are transient
- Other 4xx replies end the loop immediately
"""

import asyncio
from typing import Awaitable, Callable, Optional, Any
import aiohttp

from exporter.core.logger import get_logger
from exporter.core.config_loader import ConfigLoader
from exporter.engine.errors import IncompleteDownloadError
from exporter.constants import (
    DEFAULT_DOWNLOAD_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_MAX_RETRY_DELAY,
    RETRYABLE_STATUS_CODES,
    LOG_PROCESS,
)

logger = get_logger(__name__, 'engine')

TRANSIENT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, IncompleteDownloadError, ConnectionError)


class RetryManager:
    """
    Attempt ceiling and backoff for one download.

    Example:
        manager = RetryManager(max_attempts=3, base_delay=1.0)
        await manager.retry_async(downloader._attempt, url, path, token, handler, result)
        print(manager.attempts_made)
    """

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        config: Optional[ConfigLoader] = None
    ):
        """
        Args:
            max_attempts: Attempts including the first (download_attempts if None)
            base_delay: First backoff delay in seconds (retry_delay if None)
            max_delay: Backoff ceiling in seconds (max_retry_delay if None)
            config: Optional ConfigLoader instance
        """
        self.config = config if config else ConfigLoader()

        self.max_attempts = max_attempts if max_attempts is not None else \
            self.config.get('download_attempts', DEFAULT_DOWNLOAD_ATTEMPTS)
        self.base_delay = base_delay if base_delay is not None else \
            self.config.get('retry_delay', DEFAULT_RETRY_DELAY)
        self.max_delay = max_delay if max_delay is not None else \
            self.config.get('max_retry_delay', DEFAULT_MAX_RETRY_DELAY)

        if self.max_attempts < 1:
            raise ValueError(f"download_attempts must be at least 1, got {self.max_attempts}")

        self.attempts_made = 0

    def calculate_delay(self, failed_attempt: int) -> float:
        """Seconds to wait after the 0-based failed_attempt."""
        return min(self.base_delay * (2 ** failed_attempt), self.max_delay)

    def is_retryable_error(self, error: BaseException) -> bool:
        if isinstance(error, aiohttp.ClientResponseError):
            return error.status in RETRYABLE_STATUS_CODES
        return isinstance(error, TRANSIENT_ERRORS)

    async def retry_async(self, attempt_fn: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Call attempt_fn until it succeeds, fails permanently or runs out of attempts.

        Returns:
            Whatever the successful attempt returned

        Raises:
            The last attempt's exception
        """
        self.attempts_made = 0

        while True:
            self.attempts_made += 1
            try:
                outcome = await attempt_fn(*args, **kwargs)
            except Exception as e:
                if not self.is_retryable_error(e):
                    logger.error(f"{LOG_PROCESS} Download attempt {self.attempts_made} failed permanently: {e}")
                    raise
                if self.attempts_made >= self.max_attempts:
                    logger.error(f"{LOG_PROCESS} Download gave up after {self.attempts_made} attempts: {e}")
                    raise

                delay = self.calculate_delay(self.attempts_made - 1)
                logger.warning(
                    f"{LOG_PROCESS} Download attempt {self.attempts_made}/{self.max_attempts} "
                    f"failed ({e}); next attempt in {delay:.2f}s"
                )
                await asyncio.sleep(delay)
                continue

            if self.attempts_made > 1:
                logger.info(f"{LOG_PROCESS} Download recovered on attempt {self.attempts_made}")
            return outcome


__all__ = ['RetryManager']
