# Path: exporter/tests/conftest.py
"""
Shared test fixtures for the exporter module.

Fixtures:
- exporter_env: isolated EXPORTER_* environment and a fresh ConfigLoader
- make_zip: builds ZIP archives from {name: bytes|str|dict} mappings
- export_server: factory for an in-process fake export server (aiohttp.web)
"""

import asyncio
import io
import json
import os
import zipfile
from pathlib import Path
from typing import Any, Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from exporter.core.config_loader import ConfigLoader


def _reset_config() -> None:
    ConfigLoader._instance = None
    ConfigLoader._initialized = False


@pytest.fixture(autouse=True)
def exporter_env(monkeypatch, tmp_path):
    """Fast, isolated configuration for every test."""
    for key in list(os.environ):
        if key.startswith('EXPORTER_'):
            monkeypatch.delenv(key, raising=False)

    monkeypatch.setenv('EXPORTER_BASE_URL', 'http://127.0.0.1:9')
    monkeypatch.setenv('EXPORTER_API_TOKEN', 'test-token')
    monkeypatch.setenv('EXPORTER_TEMP_DIR', str(tmp_path / 'work'))
    monkeypatch.setenv('EXPORTER_POLL_INTERVAL', '0.01')
    monkeypatch.setenv('EXPORTER_RETRY_DELAY', '0.01')
    monkeypatch.setenv('EXPORTER_MAX_RETRY_DELAY', '0.05')
    monkeypatch.setenv('EXPORTER_LOG_CONSOLE', 'false')

    _reset_config()
    yield tmp_path
    _reset_config()


def build_zip(entries: dict[str, Any], compression: int = zipfile.ZIP_DEFLATED) -> bytes:
    """ZIP bytes from {member name: bytes | str | JSON-able object}."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=compression) as archive:
        for name, content in entries.items():
            if isinstance(content, bytes):
                data = content
            elif isinstance(content, str):
                data = content.encode('utf-8')
            else:
                data = json.dumps(content).encode('utf-8')
            archive.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def make_zip(tmp_path):
    """Write a ZIP to disk and return its path."""
    def _make(entries: dict[str, Any], name: str = 'package.zip', **kwargs) -> Path:
        path = tmp_path / name
        path.write_bytes(build_zip(entries, **kwargs))
        return path
    return _make


def contract_type_x_archive() -> bytes:
    """Archive with a manifest, the work type, two forms and one workflow."""
    manifest = {
        'Name': 'contract-type-x export',
        'CreatedBy': 'tester@example.com',
        'ExportedFrom': 'https://tenant.example.com',
        'CreatedOn': '2024-03-01T10:00:00Z',
        'SharedoVersion': {'Major': 7, 'Minor': 2, 'Build': 0, 'Revision': 1},
        'ExportedSteps': [
            {'Id': 's1', 'ExportProviderSystemName': 'sharedo-type',
             'StorageFilename': 'sharedo-type-contract-type-x.json'},
            {'Id': 's2', 'ExportProviderSystemName': 'form-builder',
             'StorageFilename': 'form-builder-intake.json'},
            {'Id': 's3', 'ExportProviderSystemName': 'form-builder',
             'StorageFilename': 'form-builder-review.json'},
            {'Id': 's4', 'ExportProviderSystemName': 'execution-engine',
             'StorageFilename': 'execution-engine-approve.json'},
        ],
    }
    return build_zip({
        'manifest.json': manifest,
        'data/sharedo-type-contract-type-x.json': {
            'SystemName': 'contract-type-x',
            'PhaseModel': {
                'Phases': [{'SystemName': 'draft'}, {'SystemName': 'signed'}],
                'PhaseTransitions': [{'From': 'draft', 'To': 'signed'}],
            },
        },
        'data/form-builder-intake.json': {'SystemName': 'intake'},
        'data/form-builder-review.json': {'SystemName': 'review'},
        'data/execution-engine-approve.json': {'SystemName': 'approve'},
    })


def serve_bytes(request: web.Request, payload: bytes) -> web.Response:
    """Serve payload with single-range support."""
    range_header = request.headers.get('Range')
    if range_header:
        start = int(range_header.split('=', 1)[1].split('-', 1)[0])
        if start >= len(payload):
            return web.Response(status=416, headers={'Content-Range': f'bytes */{len(payload)}'})
        return web.Response(
            status=206,
            body=payload[start:],
            headers={'Content-Range': f'bytes {start}-{len(payload) - 1}/{len(payload)}'}
        )
    return web.Response(body=payload, content_type='application/zip')


class FakeExportServer:
    """
    In-process export server.

    Status replies are served from a script; the last entry repeats.
    Every request is recorded in `requests` as (method, path).
    """

    START_PATH = '/api/modeller/importexport/export/package'
    DEPENDENCY_PATH = '/api/modeller/importexport/export/added'
    STATUS_PATH = '/api/modeller/importexport/export/package/{job_id}/progress/'
    DOWNLOAD_PATH = '/modeller/__importexport/export/package/{job_id}/download'

    def __init__(
        self,
        statuses: Optional[list] = None,
        archive: Optional[bytes] = None,
        job_id: str = 'job-1',
        start_status: int = 200,
        start_reply: Any = None,
        dependency_failures: int = 0,
        status_path: Optional[str] = None,
        status_delay: float = 0.0
    ):
        self.statuses = list(statuses or [{'state': 'COMPLETE', 'complete': True, 'packageAvailable': True}])
        self.archive = archive if archive is not None else contract_type_x_archive()
        self.job_id = job_id
        self.start_status = start_status
        self.start_reply = start_reply if start_reply is not None else {'exportJobId': job_id}
        self.dependency_failures = dependency_failures
        self.status_path = status_path or self.STATUS_PATH
        self.status_delay = status_delay

        self.requests: list[tuple[str, str]] = []
        self.start_bodies: list = []
        self.start_headers: list = []
        self.status_polls = 0
        self.dependency_calls = 0
        self.cancelled: list[str] = []
        self.server: Optional[TestServer] = None

    @property
    def base_url(self) -> str:
        return str(self.server.make_url('')).rstrip('/')

    def _record(self, request: web.Request) -> None:
        self.requests.append((request.method, request.path))

    async def handle_start(self, request: web.Request) -> web.Response:
        self._record(request)
        self.start_bodies.append(await request.json())
        self.start_headers.append(dict(request.headers))
        if isinstance(self.start_reply, str):
            return web.Response(status=self.start_status, text=self.start_reply)
        return web.json_response(self.start_reply, status=self.start_status)

    async def handle_cancel(self, request: web.Request) -> web.Response:
        self._record(request)
        self.cancelled.append(request.match_info['job_id'])
        return web.json_response({'cancelled': True})

    async def handle_dependencies(self, request: web.Request) -> web.Response:
        self._record(request)
        self.dependency_calls += 1
        if self.dependency_calls <= self.dependency_failures:
            return web.Response(status=503, text='busy')
        return web.json_response({'dependencies': {'mandatory': [{'systemName': 'base-forms'}], 'recommended': []}})

    async def handle_me(self, request: web.Request) -> web.Response:
        self._record(request)
        return web.json_response({'email': 'tester@example.com'})

    async def handle_status(self, request: web.Request) -> web.Response:
        self._record(request)
        if self.status_delay:
            await asyncio.sleep(self.status_delay)
        index = min(self.status_polls, len(self.statuses) - 1)
        self.status_polls += 1
        reply = self.statuses[index]
        if isinstance(reply, int):
            return web.Response(status=reply)
        return web.json_response(reply)

    async def handle_download(self, request: web.Request) -> web.Response:
        self._record(request)
        return serve_bytes(request, self.archive)

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(self.START_PATH, self.handle_start)
        app.router.add_delete(self.START_PATH + '/{job_id}', self.handle_cancel)
        app.router.add_post(self.DEPENDENCY_PATH, self.handle_dependencies)
        app.router.add_get('/api/users/me', self.handle_me)
        app.router.add_get(self.status_path.format(job_id=self.job_id), self.handle_status)
        app.router.add_get(self.DOWNLOAD_PATH.format(job_id=self.job_id), self.handle_download)
        return app

    async def __aenter__(self) -> 'FakeExportServer':
        self.server = TestServer(self.build_app())
        await self.server.start_server()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.server.close()


@pytest.fixture
def export_server():
    """Factory: `async with export_server(statuses=[...]) as server:`."""
    return FakeExportServer


@pytest.fixture
def archive_bytes():
    """Factory for in-memory ZIP payloads."""
    return build_zip


@pytest.fixture
def contract_archive():
    return contract_type_x_archive()
