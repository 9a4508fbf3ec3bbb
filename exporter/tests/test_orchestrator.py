# Path: exporter/tests/test_orchestrator.py
"""
End-to-end tests for ExportOrchestrator against the fake export server.

Tests:
- Single terminal outcome for a normal status sequence
- contract-type-x scenario (manifest, forms, workflow, phase model)
- Cancellation mid-poll with remote cancel
- Timeout (including a hanging status API), job failure, job creation failure, unreadable status
- Archive security violation
- Dependency pre-check decisions
- Cache hit on the second run
"""

import pytest

from exporter.engine.cache import ExportCache
from exporter.engine.errors import (
    ArchiveSecurityViolation,
    DependencyCheckError,
    JobCreationError,
    JobFailed,
    PollingUnknownShapeError,
)
from exporter.engine.orchestrator import ExportOrchestrator, run_export
from exporter.engine.progress import CancellationToken, ProgressChannel
from exporter.engine.result import ExportStatus

RUNNING = {'state': 'Running', 'percentage': 10}
COMPLETE = {'state': 'COMPLETE', 'complete': True, 'packageAvailable': True, 'percentage': 100}

NORMAL_SEQUENCE = [
    {'state': 'Queued', 'percentage': 0},
    {'state': 'Running', 'percentage': 10},
    {'state': 'Running', 'percentage': 55},
    {'state': 'Running', 'percentage': 55},
    COMPLETE,
]


def recording_channel():
    channel = ProgressChannel()
    events = []
    channel.add_listener(events.append)
    return channel, events


def workspace_leftovers(exporter_env):
    work = exporter_env / 'work'
    return list(work.iterdir()) if work.exists() else []


@pytest.mark.asyncio
async def test_single_terminal_outcome(export_server, exporter_env):
    """Queued, Running 10, 55, 55, Complete gives exactly one SUCCEEDED outcome."""
    channel, events = recording_channel()

    async with export_server(statuses=NORMAL_SEQUENCE) as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x', progress=channel)

    assert outcome.status == ExportStatus.SUCCEEDED, f"Unexpected outcome: {outcome.to_dict()}"
    assert outcome.job_id == 'job-1'
    assert server.status_polls == 5, f"Expected 5 polls, got {server.status_polls}"
    assert [e.phase for e in events].count('done') == 1
    assert [e.percentage for e in events if e.phase == 'poll'] == [0.0, 10.0, 55.0, 55.0, 100.0]
    assert server.cancelled == []
    assert workspace_leftovers(exporter_env) == [], "Workspace must be released"


@pytest.mark.asyncio
async def test_contract_type_x_end_to_end(export_server, contract_archive):
    """The packaged work type, two forms and one workflow land in their buckets."""
    async with export_server(statuses=[RUNNING, COMPLETE], archive=contract_archive) as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x', profile='VeryBasic')

    assert outcome.succeeded
    package = outcome.package
    assert package.primary_entity['SystemName'] == 'contract-type-x'
    assert [f['SystemName'] for f in package.forms] == ['intake', 'review']
    assert [w['SystemName'] for w in package.workflows] == ['approve']
    assert [p['SystemName'] for p in package.phase_model] == ['draft', 'signed']
    assert package.transitions == [{'From': 'draft', 'To': 'signed'}]
    assert package.unclassified == []
    assert outcome.warnings == []
    assert package.source_version == '7.2.0.1'
    assert server.start_bodies[0]['exportConfigName'] == 'VeryBasic'
    assert server.dependency_calls == 1


@pytest.mark.asyncio
async def test_cancel_mid_poll_attempts_remote_cancel(export_server, exporter_env):
    token = CancellationToken()
    channel = ProgressChannel()

    def cancel_on_progress(event):
        if event.phase == 'poll' and event.percentage == 10.0:
            token.cancel('test')

    channel.add_listener(cancel_on_progress)

    async with export_server(statuses=[RUNNING]) as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export(
                'contract-type-x', cancellation=token, progress=channel
            )

    assert outcome.status == ExportStatus.CANCELLED
    assert outcome.package is None
    assert server.cancelled == ['job-1'], "Remote cancel must be attempted"
    assert server.status_polls == 1
    assert workspace_leftovers(exporter_env) == []


@pytest.mark.asyncio
async def test_cancelled_before_start_creates_no_job(export_server):
    token = CancellationToken()
    token.cancel()

    async with export_server() as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x', cancellation=token)

    assert outcome.status == ExportStatus.CANCELLED
    assert outcome.job_id is None
    assert server.start_bodies == []
    assert server.cancelled == []


@pytest.mark.asyncio
async def test_server_side_cancel(export_server):
    """A job the server cancelled is reported CANCELLED without another DELETE."""
    async with export_server(statuses=[RUNNING, {'state': 'Cancelled'}]) as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x')

    assert outcome.status == ExportStatus.CANCELLED
    assert server.cancelled == []


@pytest.mark.asyncio
async def test_poll_timeout(export_server):
    async with export_server(statuses=[RUNNING]) as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x', timeout=0.2)

    assert outcome.status == ExportStatus.TIMED_OUT
    assert outcome.job_id == 'job-1'
    assert outcome.error is None
    assert server.cancelled == ['job-1']


@pytest.mark.asyncio
async def test_job_failure(export_server):
    statuses = [RUNNING, {'state': 'FAILED', 'errorMessage': 'work type not found'}]

    async with export_server(statuses=statuses) as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x')

    assert outcome.status == ExportStatus.FAILED
    assert isinstance(outcome.error, JobFailed)
    assert outcome.error.remote_message == 'work type not found'
    assert server.status_polls == 2, "The poll loop is not re-entered after failure"


@pytest.mark.asyncio
async def test_job_creation_failure(export_server):
    async with export_server(start_status=500, start_reply={'error': 'boom'}) as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x')

    assert outcome.status == ExportStatus.FAILED
    assert isinstance(outcome.error, JobCreationError)
    assert server.status_polls == 0


@pytest.mark.asyncio
async def test_unreadable_status_fails_after_grace(export_server):
    async with export_server(status_path='/nowhere/{job_id}') as server:
        async with ExportOrchestrator(base_url=server.base_url, check_dependencies=False) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x')

    assert outcome.status == ExportStatus.FAILED
    assert isinstance(outcome.error, PollingUnknownShapeError)
    assert outcome.error.unknown_polls == 21


@pytest.mark.asyncio
async def test_security_violation_fails_run(export_server, archive_bytes, exporter_env):
    archive = archive_bytes({'manifest.json': {'Name': 'x'}, '../../evil.json': {'x': 1}})

    async with export_server(archive=archive) as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x')

    assert outcome.status == ExportStatus.FAILED
    assert isinstance(outcome.error, ArchiveSecurityViolation)
    assert outcome.error.codes == ['path-traversal']
    assert workspace_leftovers(exporter_env) == []
    assert not (exporter_env / 'evil.json').exists()


@pytest.mark.asyncio
async def test_dependency_failure_proceeds_by_default(export_server):
    async with export_server(dependency_failures=10) as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x')

    assert outcome.succeeded
    assert server.dependency_calls == 3, "Three attempts before giving up"


@pytest.mark.asyncio
async def test_dependency_failure_abort(export_server):
    decisions = []

    async def abort(selector, error):
        decisions.append(selector)
        return False

    async with export_server(dependency_failures=10) as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x', on_dependency_failure=abort)

    assert outcome.status == ExportStatus.FAILED
    assert isinstance(outcome.error, DependencyCheckError)
    assert decisions == ['contract-type-x']
    assert server.start_bodies == [], "No job is created after an abort"


@pytest.mark.asyncio
async def test_dependency_retry_recovers(export_server):
    async with export_server(dependency_failures=2) as server:
        async with ExportOrchestrator(base_url=server.base_url) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x')

    assert outcome.succeeded
    assert server.dependency_calls == 3


@pytest.mark.asyncio
async def test_second_run_served_from_cache(export_server, tmp_path):
    async with export_server() as server:
        cache = ExportCache(server_url=server.base_url, cache_dir=tmp_path / 'cache')
        async with ExportOrchestrator(base_url=server.base_url, cache=cache) as orchestrator:
            first = await orchestrator.run_export('contract-type-x')
            second = await orchestrator.run_export('contract-type-x')

    assert first.succeeded and not first.from_cache
    assert second.succeeded and second.from_cache
    assert second.package.forms == first.package.forms
    assert len(server.start_bodies) == 1, "Cached run must not start a job"


@pytest.mark.asyncio
async def test_module_level_run_export(export_server):
    async with export_server() as server:
        outcome = await run_export('contract-type-x', base_url=server.base_url)

    assert outcome.succeeded
    assert outcome.to_dict()['status'] == 'succeeded'


@pytest.mark.asyncio
async def test_hanging_status_api_bounded_by_timeout(export_server):
    """A status request that hangs still ends the run close to the poll budget."""
    async with export_server(statuses=[RUNNING], status_delay=1.0) as server:
        async with ExportOrchestrator(base_url=server.base_url, check_dependencies=False) as orchestrator:
            outcome = await orchestrator.run_export('contract-type-x', timeout=0.2)

    assert outcome.status == ExportStatus.TIMED_OUT
    assert outcome.duration < 0.8, f"Expected to stop near 0.2s, took {outcome.duration:.2f}s"
    assert server.cancelled == ['job-1']
