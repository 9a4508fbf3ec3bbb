# Path: exporter/tests/test_status_poller.py
"""
Unit tests for ExportStatusPoller.

Uses a scripted HTTP double: each path maps to a list of replies, the last
reply repeats.
"""

import asyncio

import aiohttp
import pytest

from exporter.engine.errors import PollingUnknownShapeError
from exporter.engine.http_client import ApiResponse
from exporter.engine.job import JobState
from exporter.engine.status_parsers import default_strategies
from exporter.engine.status_poller import ExportStatusPoller

MODELLER = '/api/modeller/importexport/export/package/job-1/progress/'
PACKAGE = '/api/package/export/job-1'
LISTING = '/api/package/exports'


class ScriptedHttp:
    """Mock HTTP client returning scripted replies per path."""

    def __init__(self, script: dict):
        self.script = {path: list(replies) for path, replies in script.items()}
        self.calls: list[str] = []

    async def get_json(self, path: str, timeout=None) -> ApiResponse:
        self.calls.append(path)
        replies = self.script.get(path)
        if not replies:
            return ApiResponse(status=404, data=None, text='not found')
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return ApiResponse(status=reply, data=None, text='')
        return ApiResponse(status=200, data=reply, text='')


@pytest.mark.asyncio
async def test_first_answering_strategy_wins():
    """Later strategies are not asked once one answers."""
    http = ScriptedHttp({MODELLER: [{'state': 'Running', 'percentage': 10}]})
    poller = ExportStatusPoller(http)

    snapshot = await poller.poll('job-1')

    assert snapshot.state == JobState.RUNNING
    assert snapshot.percentage == 10.0
    assert snapshot.strategy == 'modeller'
    assert http.calls == [MODELLER]
    assert poller.last_strategy == 'modeller'


@pytest.mark.asyncio
async def test_transport_errors_fall_through_to_next_strategy():
    """A failing endpoint is skipped, not fatal."""
    http = ScriptedHttp({
        MODELLER: [aiohttp.ClientConnectionError('reset')],
        PACKAGE: [asyncio.TimeoutError()],
        LISTING: [[{'id': 'job-1', 'status': 'Queued'}]],
    })
    poller = ExportStatusPoller(http)

    snapshot = await poller.poll('job-1')

    assert snapshot.strategy == 'list'
    assert snapshot.state == JobState.QUEUED
    assert http.calls[0] == MODELLER
    assert http.calls[-1] == LISTING


@pytest.mark.asyncio
async def test_strategy_switch_tracked():
    """The poller remembers which strategy answered last."""
    http = ScriptedHttp({
        MODELLER: [{'state': 'Running', 'percentage': 20}, 500],
        PACKAGE: [{'state': 'Running', 'percentage': 30}],
    })
    poller = ExportStatusPoller(http)

    first = await poller.poll('job-1')
    second = await poller.poll('job-1')

    assert first.strategy == 'modeller'
    assert second.strategy == 'package'
    assert poller.last_strategy == 'package'
    assert poller.download_path_for('job-1') == '/api/package/export/job-1/download'


@pytest.mark.asyncio
async def test_unknown_snapshot_when_nothing_answers():
    """No readable answer gives an explicit UNKNOWN snapshot, not an exception."""
    poller = ExportStatusPoller(ScriptedHttp({}))

    snapshot = await poller.poll('job-1')

    assert snapshot.is_unknown
    assert snapshot.state == JobState.UNKNOWN
    assert poller.unknown_polls == 1


@pytest.mark.asyncio
async def test_unknown_grace_then_error():
    """Unknown snapshots are tolerated up to the grace count."""
    poller = ExportStatusPoller(ScriptedHttp({}), unknown_grace=3)

    for _ in range(3):
        await poller.poll('job-1')
        poller.raise_if_unknown_grace_exceeded('job-1')

    await poller.poll('job-1')
    with pytest.raises(PollingUnknownShapeError) as excinfo:
        poller.raise_if_unknown_grace_exceeded('job-1')

    assert excinfo.value.unknown_polls == 4


@pytest.mark.asyncio
async def test_readable_answer_resets_unknown_count():
    """A readable snapshot clears the consecutive unknown count."""
    http = ScriptedHttp({MODELLER: [404, 404, {'state': 'Running', 'percentage': 5}]})
    poller = ExportStatusPoller(http, strategies=default_strategies()[:1])

    await poller.poll('job-1')
    await poller.poll('job-1')
    assert poller.unknown_polls == 2

    await poller.poll('job-1')
    assert poller.unknown_polls == 0
    assert poller.poll_count == 3
