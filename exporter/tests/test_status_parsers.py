# Path: exporter/tests/test_status_parsers.py
"""
Unit tests for status normalization and strategies.
"""

from exporter.engine.job import ExportJob, JobState
from exporter.engine.status_parsers import (
    StatusStrategy,
    ExportListStrategy,
    default_strategies,
    normalize_status,
    map_state,
    is_complete,
)


def test_default_strategy_order():
    """Strategies are probed in a fixed order."""
    names = [s.name for s in default_strategies()]
    assert names == ['modeller', 'package', 'panel', 'legacy', 'configuration', 'list']


def test_completion_flags():
    """Every known completion flag is recognized."""
    assert is_complete({'complete': True})
    assert is_complete({'isComplete': True})
    assert is_complete({'state': 'Completed'})
    assert is_complete({'status': 'Complete'})
    assert is_complete({'percentage': 100})
    assert is_complete({'progress': '100'})
    assert not is_complete({'state': 'Running', 'percentage': 99})


def test_map_state():
    """Raw states map onto the normalized lifecycle."""
    assert map_state('Queued', False) == JobState.QUEUED
    assert map_state('Running', False) == JobState.RUNNING
    assert map_state('whatever', True) == JobState.COMPLETE
    assert map_state('Package Creation Failed', False) == JobState.FAILED
    assert map_state('ERROR', True) == JobState.FAILED
    assert map_state('Cancelled', False) == JobState.CANCELLED


def test_running_snapshot_fields():
    """Field fallbacks are applied when reading a running job."""
    snapshot = normalize_status(
        {
            'status': 'Running',
            'progress': 55,
            'currentItems': ['form-builder: intake'],
            'queuedItems': 3,
            'statusMessage': 'Exporting forms',
        },
        'job-1',
        'package',
        '/api/package/export/{job_id}/download'
    )

    assert snapshot.state == JobState.RUNNING
    assert snapshot.percentage == 55.0
    assert snapshot.current_items == ['form-builder: intake']
    assert snapshot.queued_items == 3
    assert snapshot.message == 'Exporting forms'
    assert snapshot.complete is False
    assert snapshot.download_locator is None, "No locator before completion"
    assert snapshot.strategy == 'package'


def test_complete_without_package_is_creating_package():
    """Complete but package not yet available reads as still running."""
    snapshot = normalize_status({'complete': True, 'packageAvailable': False, 'percentage': 100}, 'job-1')

    assert snapshot.raw_state == 'CREATING PACKAGE'
    assert snapshot.complete is False
    assert snapshot.state == JobState.RUNNING


def test_package_creation_failure_not_masked():
    """PACKAGE CREATION FAILED stays a failure even when marked complete."""
    snapshot = normalize_status(
        {'complete': True, 'packageAvailable': False, 'state': 'PACKAGE CREATION FAILED',
         'errorMessage': 'disk full'},
        'job-1'
    )

    assert snapshot.state == JobState.FAILED
    assert snapshot.error == 'disk full'


def test_complete_uses_strategy_download_path():
    """Completed jobs without a URL get the answering strategy's download path."""
    snapshot = normalize_status(
        {'state': 'COMPLETE', 'complete': True, 'packageAvailable': True},
        'job-7',
        'legacy',
        '/api/exports/{job_id}/download'
    )

    assert snapshot.complete is True
    assert snapshot.state == JobState.COMPLETE
    assert snapshot.download_locator == '/api/exports/job-7/download'


def test_server_download_url_preferred():
    """A server-provided download URL wins over the template."""
    snapshot = normalize_status(
        {'complete': True, 'downloadUrl': 'https://files.example.com/x.zip'},
        'job-1',
        'package',
        '/api/package/export/{job_id}/download'
    )

    assert snapshot.download_locator == 'https://files.example.com/x.zip'


def test_strategy_rejects_foreign_shapes():
    """Payloads without any status key are not this strategy's shape."""
    strategy = StatusStrategy('package', '/s/{job_id}', '/d/{job_id}')

    assert strategy.parse({'hello': 'world'}, 'job-1') is None
    assert strategy.parse(['not', 'a', 'dict'], 'job-1') is None
    assert strategy.status_path('job-1') == '/s/job-1'


def test_list_strategy_finds_job():
    """The list strategy picks the matching export out of a listing."""
    strategy = ExportListStrategy('list', '/api/package/exports', '/api/package/export/{job_id}/download')
    listing = {'items': [
        {'exportJobId': 'other', 'state': 'Running', 'percentage': 10},
        {'exportJobId': 'job-1', 'state': 'COMPLETE', 'complete': True, 'packageAvailable': True},
    ]}

    snapshot = strategy.parse(listing, 'job-1')

    assert snapshot is not None
    assert snapshot.complete is True
    assert snapshot.download_locator == '/api/package/export/job-1/download'
    assert strategy.parse({'items': []}, 'job-1') is None


def test_zero_and_empty_counts_are_reported():
    """queued: 0 and current: [] are real answers, not missing fields."""
    snapshot = normalize_status(
        {'state': 'Running', 'percentage': 0, 'progress': 40, 'queued': 0, 'current': []},
        'job-1',
        'modeller',
        None
    )

    assert snapshot.queued_items == 0
    assert snapshot.current_items == []
    assert snapshot.percentage == 0.0


def test_absent_counts_are_none():
    snapshot = normalize_status({'state': 'Running'}, 'job-1', 'modeller', None)

    assert snapshot.queued_items is None
    assert snapshot.current_items is None


def test_job_clears_drained_queue():
    """A later zero count replaces the earlier backlog on the job."""
    job = ExportJob(job_id='job-1', entity_selector='contract-type-x')
    job.apply(normalize_status(
        {'state': 'Running', 'queued': 4, 'current': ['form-builder: intake']}, 'job-1', 'modeller', None
    ))
    job.apply(normalize_status(
        {'state': 'Running', 'queued': 0, 'current': []}, 'job-1', 'modeller', None
    ))

    assert job.queued_items == 0, f"Expected 0 queued, got {job.queued_items}"
    assert job.current_items == []


def test_job_keeps_counts_when_not_reported():
    job = ExportJob(job_id='job-1', entity_selector='contract-type-x')
    job.apply(normalize_status({'state': 'Running', 'queued': 2, 'current': ['a']}, 'job-1', 'modeller', None))
    job.apply(normalize_status({'state': 'Running', 'percentage': 50}, 'job-1', 'modeller', None))

    assert job.queued_items == 2
    assert job.current_items == ['a']
