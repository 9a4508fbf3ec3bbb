# Path: exporter/engine/downloader.py
"""
Resumable Downloader

Downloads the finished export archive with HTTP range resume.

Architecture:
- Each attempt re-reads the partial file size and re-issues Range
- 206 appends, 200 restarts from zero, 416 on a complete file succeeds
- Declared total length verified; a short file is a transport failure
- Retry policy delegated to RetryManager
"""

import asyncio
import re
import time
from pathlib import Path
from typing import Callable, Optional
import aiohttp

from exporter.core.logger import get_logger
from exporter.core.config_loader import ConfigLoader
from exporter.engine.errors import DownloadExhaustedError, IncompleteDownloadError
from exporter.engine.result import DownloadResult
from exporter.engine.retry_manager import RetryManager
from exporter.engine.stream_handler import StreamHandler
from exporter.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    HTTP_OK,
    HTTP_PARTIAL_CONTENT,
    HTTP_RANGE_NOT_SATISFIABLE,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)
from exporter.engine.constants import (
    HEADER_AUTHORIZATION,
    HEADER_ACCEPT,
    HEADER_RANGE,
    HEADER_CONTENT_RANGE,
    HEADER_CONTENT_LENGTH,
    BEARER_PREFIX,
    ACCEPT_ARCHIVE,
    MAX_CONCURRENT_CONNECTIONS,
    FORCE_CLOSE_CONNECTIONS,
)

logger = get_logger(__name__, 'engine')

CONTENT_RANGE_PATTERN = re.compile(r'bytes\s+(?:(\d+)-(\d+)|\*)/(\d+|\*)')


def parse_content_range(value: Optional[str]) -> tuple[Optional[int], Optional[int]]:
    """
    Parse a Content-Range header.

    Args:
        value: Header value, e.g. 'bytes 100-199/1000' or 'bytes */1000'

    Returns:
        (start, total); either is None when absent or unknown
    """
    if not value:
        return None, None
    match = CONTENT_RANGE_PATTERN.match(value.strip())
    if not match:
        return None, None
    start = int(match.group(1)) if match.group(1) is not None else None
    total = int(match.group(3)) if match.group(3) != '*' else None
    return start, total


class ResumableDownloader:
    """
    Archive downloader with resume and bounded retries.

    Features:
    - Streaming to disk (memory-efficient)
    - Range resume from partial files
    - Total length verification
    - Progress callbacks every 10%

    Example:
        async with ResumableDownloader() as downloader:
            result = await downloader.download(
                url='https://tenant.example.com/api/package/export/42/download',
                destination=workspace.archive_path,
                auth_token=token
            )
    """

    def __init__(
        self,
        retry_manager: Optional[RetryManager] = None,
        chunk_size: Optional[int] = None,
        timeout: Optional[float] = None,
        config: Optional[ConfigLoader] = None
    ):
        """
        Initialize downloader.

        Args:
            retry_manager: Retry policy (from config if None)
            chunk_size: Streaming chunk size (from config if None)
            timeout: Per-request total timeout in seconds (from config if None)
            config: Optional ConfigLoader instance
        """
        self.config = config if config else ConfigLoader()
        self.retry_manager = retry_manager if retry_manager else RetryManager(config=self.config)

        self.chunk_size = chunk_size if chunk_size is not None else \
            self.config.get('chunk_size', DEFAULT_CHUNK_SIZE)
        self.timeout = timeout if timeout is not None else \
            self.config.get('request_timeout', DEFAULT_TIMEOUT)
        self.connect_timeout = self.config.get('connect_timeout', DEFAULT_CONNECT_TIMEOUT)

        self._session: Optional[aiohttp.ClientSession] = None

    async def download(
        self,
        url: str,
        destination: Path,
        auth_token: Optional[str] = None,
        progress_callback: Optional[Callable] = None
    ) -> DownloadResult:
        """
        Download url to destination, resuming any partial file.

        Args:
            url: Absolute archive URL
            destination: File path (partial content is resumed)
            auth_token: Optional bearer token
            progress_callback: Called as callback(percentage, bytes, total)
                at 10% steps

        Returns:
            DownloadResult

        Raises:
            DownloadExhaustedError: Attempts exhausted or non-retryable failure
        """
        logger.info(f"{LOG_INPUT} Downloading: {url}")
        logger.info(f"{LOG_INPUT} Output: {destination}")

        start_time = time.time()
        destination.parent.mkdir(parents=True, exist_ok=True)

        stream_handler = StreamHandler(
            chunk_size=self.chunk_size,
            progress_callback=progress_callback,
            config=self.config
        )
        result = DownloadResult(file_path=destination, url=url)

        try:
            await self.retry_manager.retry_async(
                self._attempt, url, destination, auth_token, stream_handler, result
            )
        except Exception as e:
            attempts = self.retry_manager.attempts_made
            logger.error(f"{LOG_OUTPUT} Download failed after {attempts} attempt(s): {e}")
            raise DownloadExhaustedError(attempts, last_error=e) from e

        result.attempts = self.retry_manager.attempts_made
        result.file_size = destination.stat().st_size
        result.duration = time.time() - start_time

        logger.info(
            f"{LOG_OUTPUT} Download complete: {result.file_size} bytes "
            f"in {result.duration:.2f}s ({result.download_speed_mbps:.2f} MB/s)"
        )
        return result

    async def _attempt(
        self,
        url: str,
        destination: Path,
        auth_token: Optional[str],
        stream_handler: StreamHandler,
        result: DownloadResult
    ) -> None:
        """One request; raises on any failure so the retry manager decides."""
        offset = destination.stat().st_size if destination.exists() else 0

        headers = {HEADER_ACCEPT: ACCEPT_ARCHIVE}
        if auth_token:
            headers[HEADER_AUTHORIZATION] = f"{BEARER_PREFIX}{auth_token}"
        if offset > 0:
            headers[HEADER_RANGE] = f'bytes={offset}-'
            logger.info(f"{LOG_PROCESS} Resuming from byte {offset}")

        session = await self._get_session()

        async with session.get(
            url,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout, connect=self.connect_timeout)
        ) as response:
            result.status_code = response.status

            if response.status == HTTP_RANGE_NOT_SATISFIABLE and offset > 0:
                _, total = parse_content_range(response.headers.get(HEADER_CONTENT_RANGE))
                if total is None or total == offset:
                    logger.info(f"{LOG_PROCESS} Range not satisfiable, local file already complete")
                    result.resumed = True
                    return
                # Partial file does not match the remote archive
                destination.unlink()
                raise IncompleteDownloadError(offset, total)

            if response.status not in (HTTP_OK, HTTP_PARTIAL_CONTENT):
                response.raise_for_status()
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=f"Unexpected status {response.status}"
                )

            resume_from = 0
            expected_total = None

            if response.status == HTTP_PARTIAL_CONTENT:
                start, expected_total = parse_content_range(
                    response.headers.get(HEADER_CONTENT_RANGE)
                )
                if start is not None and start != offset:
                    destination.unlink()
                    raise IncompleteDownloadError(0, expected_total or 0)
                resume_from = offset
                result.resumed = result.resumed or offset > 0
            else:
                if offset > 0:
                    logger.info(f"{LOG_PROCESS} Server ignored Range, restarting from zero")
                content_length = response.headers.get(HEADER_CONTENT_LENGTH)
                expected_total = int(content_length) if content_length else None

            if expected_total is None and response.status == HTTP_PARTIAL_CONTENT:
                content_length = response.headers.get(HEADER_CONTENT_LENGTH)
                if content_length:
                    expected_total = offset + int(content_length)

            size = await stream_handler.stream_to_file(
                response_stream=response.content.iter_chunked(self.chunk_size),
                output_path=destination,
                total_size=expected_total,
                resume_from=resume_from
            )

        if expected_total is not None and size < expected_total:
            raise IncompleteDownloadError(size, expected_total)

    async def _get_session(self) -> aiohttp.ClientSession:
        """
        Get or create aiohttp session.

        Returns:
            Active ClientSession
        """
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=MAX_CONCURRENT_CONNECTIONS,
                force_close=FORCE_CLOSE_CONNECTIONS
            )
            # Archives arrive as stored bytes; no transparent decompression
            self._session = aiohttp.ClientSession(connector=connector, auto_decompress=False)
        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            await asyncio.sleep(0)
        self._session = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


__all__ = ['ResumableDownloader', 'parse_content_range']
