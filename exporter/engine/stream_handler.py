# Path: exporter/engine/stream_handler.py
"""
Stream Handler

Writes the export archive body to disk chunk by chunk.

Architecture:
- 'ab' when resuming from a partial file, 'wb' otherwise
- Progress reported once per step (10% default), never twice for the same step
- Reported step survives resumes, so a restart does not repeat 10%..N%
- aiofiles for non-blocking writes
"""

import inspect
from pathlib import Path
from typing import AsyncIterator, Callable, Optional
import aiofiles

from exporter.core.logger import get_logger
from exporter.core.config_loader import ConfigLoader
from exporter.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PROGRESS_STEP,
    LOG_PROCESS,
)

logger = get_logger(__name__, 'engine')

ProgressCallback = Callable[[int, int, int], object]


class StreamHandler:
    """
    Archive body writer shared by every attempt of one download.

    Example:
        handler = StreamHandler(progress_callback=on_progress)
        size = await handler.stream_to_file(
            response.content.iter_chunked(handler.chunk_size), archive_path,
            total_size=total, resume_from=offset
        )
    """

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        progress_step: int = DEFAULT_PROGRESS_STEP,
        progress_callback: Optional[ProgressCallback] = None,
        config: Optional[ConfigLoader] = None
    ):
        """
        Args:
            chunk_size: Read size in bytes (chunk_size config if None)
            progress_step: Percentage between progress reports
            progress_callback: callback(step_percentage, bytes_on_disk, total), sync or async
            config: Optional ConfigLoader instance
        """
        self.config = config if config else ConfigLoader()
        self.chunk_size = chunk_size if chunk_size is not None else \
            self.config.get('chunk_size', DEFAULT_CHUNK_SIZE)
        self.progress_step = progress_step
        self.progress_callback = progress_callback

        self.bytes_on_disk = 0
        self.reported_step = 0

    async def stream_to_file(
        self,
        response_stream: AsyncIterator[bytes],
        output_path: Path,
        total_size: Optional[int] = None,
        resume_from: int = 0
    ) -> int:
        """
        Append (resume_from > 0) or write the body to output_path.

        Returns:
            Size of output_path after the body has been consumed
        """
        mode = 'ab' if resume_from > 0 else 'wb'
        self.bytes_on_disk = resume_from
        received = 0

        logger.debug(f"{LOG_PROCESS} Writing {output_path.name} ({mode}, offset {resume_from})")

        async with aiofiles.open(output_path, mode) as f:
            async for chunk in response_stream:
                if not chunk:
                    continue
                await f.write(chunk)
                received += len(chunk)
                self.bytes_on_disk += len(chunk)
                await self._report(total_size)

        logger.info(
            f"{LOG_PROCESS} Received {received} bytes, "
            f"{self.bytes_on_disk} on disk for {output_path.name}"
        )
        return self.bytes_on_disk

    async def _report(self, total_size: Optional[int]) -> None:
        if not total_size or not self.progress_callback:
            return

        percentage = min(100, self.bytes_on_disk * 100 // total_size)
        step = percentage - percentage % self.progress_step
        if step <= self.reported_step:
            return

        self.reported_step = step
        reply = self.progress_callback(step, self.bytes_on_disk, total_size)
        if inspect.isawaitable(reply):
            await reply


__all__ = ['StreamHandler']
