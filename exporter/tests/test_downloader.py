# Path: exporter/tests/test_downloader.py
"""
Unit tests for the resumable downloader.

Tests:
- Range resume from a partial file
- Restart when the server ignores Range
- 416 on an already complete file
- Retry on 503, exhaustion after the attempt ceiling
- Progress callbacks in 10% steps
"""

import os

import aiohttp
import pytest
from aiohttp import web, test_utils

from exporter.engine.downloader import ResumableDownloader, parse_content_range
from exporter.engine.errors import DownloadExhaustedError

PAYLOAD = os.urandom(64 * 1024)


class ArchiveServer:
    """Serves PAYLOAD, optionally failing first or ignoring Range."""

    def __init__(self, failures: int = 0, failure_status: int = 503, honor_range: bool = True):
        self.failures = failures
        self.failure_status = failure_status
        self.honor_range = honor_range
        self.range_headers: list = []
        self.calls = 0
        self.server = None

    async def handle(self, request: web.Request) -> web.Response:
        self.calls += 1
        self.range_headers.append(request.headers.get('Range'))
        if self.calls <= self.failures:
            return web.Response(status=self.failure_status, text='unavailable')

        range_header = request.headers.get('Range')
        if range_header and self.honor_range:
            start = int(range_header.split('=', 1)[1].split('-', 1)[0])
            if start >= len(PAYLOAD):
                return web.Response(status=416, headers={'Content-Range': f'bytes */{len(PAYLOAD)}'})
            return web.Response(
                status=206,
                body=PAYLOAD[start:],
                headers={'Content-Range': f'bytes {start}-{len(PAYLOAD) - 1}/{len(PAYLOAD)}'}
            )
        return web.Response(body=PAYLOAD, content_type='application/zip')

    @property
    def url(self) -> str:
        return str(self.server.make_url('/package.zip'))

    async def __aenter__(self):
        app = web.Application()
        app.router.add_get('/package.zip', self.handle)
        self.server = test_utils.TestServer(app)
        await self.server.start_server()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.server.close()


def test_parse_content_range():
    """Content-Range values parse into (start, total)."""
    assert parse_content_range('bytes 100-199/1000') == (100, 1000)
    assert parse_content_range('bytes */1000') == (None, 1000)
    assert parse_content_range('bytes 0-9/*') == (0, None)
    assert parse_content_range(None) == (None, None)
    assert parse_content_range('garbage') == (None, None)


@pytest.mark.asyncio
async def test_resume_from_partial_file(tmp_path):
    """An existing partial file is continued with a Range request."""
    destination = tmp_path / 'package.zip'
    destination.write_bytes(PAYLOAD[:1000])

    async with ArchiveServer() as server:
        async with ResumableDownloader(chunk_size=1024) as downloader:
            result = await downloader.download(server.url, destination)

    assert server.range_headers == ['bytes=1000-'], f"Unexpected requests: {server.range_headers}"
    assert destination.read_bytes() == PAYLOAD, "Resumed file must equal the full archive"
    assert result.file_size == len(PAYLOAD)
    assert result.resumed is True
    assert result.status_code == 206


@pytest.mark.asyncio
async def test_restart_when_range_ignored(tmp_path):
    """A 200 reply to a ranged request replaces the partial file."""
    destination = tmp_path / 'package.zip'
    destination.write_bytes(b'stale bytes from another archive')

    async with ArchiveServer(honor_range=False) as server:
        async with ResumableDownloader(chunk_size=1024) as downloader:
            result = await downloader.download(server.url, destination)

    assert destination.read_bytes() == PAYLOAD
    assert result.resumed is False
    assert result.status_code == 200


@pytest.mark.asyncio
async def test_range_not_satisfiable_on_complete_file(tmp_path):
    """416 with a matching total means the local file is already complete."""
    destination = tmp_path / 'package.zip'
    destination.write_bytes(PAYLOAD)

    async with ArchiveServer() as server:
        async with ResumableDownloader() as downloader:
            result = await downloader.download(server.url, destination)

    assert server.calls == 1
    assert destination.read_bytes() == PAYLOAD
    assert result.file_size == len(PAYLOAD)


@pytest.mark.asyncio
async def test_retry_on_service_unavailable(tmp_path):
    """Retryable statuses are retried up to the attempt ceiling."""
    destination = tmp_path / 'package.zip'

    async with ArchiveServer(failures=2) as server:
        async with ResumableDownloader() as downloader:
            result = await downloader.download(server.url, destination)

    assert server.calls == 3
    assert result.attempts == 3
    assert destination.read_bytes() == PAYLOAD


@pytest.mark.asyncio
async def test_exhausted_after_attempt_ceiling(tmp_path):
    """A server that never recovers yields DownloadExhaustedError with the last error."""
    destination = tmp_path / 'package.zip'

    async with ArchiveServer(failures=100) as server:
        async with ResumableDownloader() as downloader:
            with pytest.raises(DownloadExhaustedError) as excinfo:
                await downloader.download(server.url, destination)

    assert server.calls == 3, f"Expected 3 attempts, server saw {server.calls}"
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.last_error, aiohttp.ClientResponseError)
    assert excinfo.value.last_error.status == 503


@pytest.mark.asyncio
async def test_not_found_is_not_retried(tmp_path):
    """Client errors other than 429 fail on the first attempt."""
    destination = tmp_path / 'package.zip'

    async with ArchiveServer(failures=100, failure_status=404) as server:
        async with ResumableDownloader() as downloader:
            with pytest.raises(DownloadExhaustedError) as excinfo:
                await downloader.download(server.url, destination)

    assert server.calls == 1
    assert excinfo.value.attempts == 1


@pytest.mark.asyncio
async def test_progress_reported_in_ten_percent_steps(tmp_path):
    """Progress callbacks fire at most once per 10% step, in increasing order."""
    destination = tmp_path / 'package.zip'
    reported = []

    async def on_progress(percentage, written, total):
        reported.append(percentage)

    async with ArchiveServer() as server:
        async with ResumableDownloader(chunk_size=1024) as downloader:
            await downloader.download(server.url, destination, progress_callback=on_progress)

    assert reported, "Expected progress callbacks"
    assert all(p % 10 == 0 for p in reported), f"Non-step percentages: {reported}"
    assert reported == sorted(set(reported)), f"Duplicate or unordered steps: {reported}"
    assert reported[-1] == 100
