# Path: exporter/tests/test_cli.py
"""
Tests for the exporter command line.
"""

import json
from pathlib import Path

import pytest

from exporter.cli.export_cli import EXIT_CODES, build_parser, run_export_command
from exporter.engine.result import ExportStatus


def test_parser_arguments():
    args = build_parser().parse_args([
        'contract-type-x', '-p', 'Full', '-t', '30', '-o', 'out.json', '--no-deps'
    ])

    assert args.entity_selector == 'contract-type-x'
    assert args.profile == 'Full'
    assert args.timeout == 30.0
    assert args.output == Path('out.json')
    assert args.no_deps is True
    assert args.base_url is None


def test_version_flag_exits_cleanly():
    with pytest.raises(SystemExit) as excinfo:
        build_parser().parse_args(['--version'])

    assert excinfo.value.code == 0


def test_exit_codes_cover_every_status():
    assert set(EXIT_CODES) == set(ExportStatus)
    assert EXIT_CODES[ExportStatus.SUCCEEDED] == 0
    assert EXIT_CODES[ExportStatus.CANCELLED] == 130


@pytest.mark.asyncio
async def test_export_command_writes_package(export_server, tmp_path):
    output = tmp_path / 'out' / 'package.json'

    async with export_server() as server:
        args = build_parser().parse_args([
            'contract-type-x', '--base-url', server.base_url, '--token', 'tok', '-o', str(output)
        ])
        code = await run_export_command(args)

    assert code == 0
    written = json.loads(output.read_text(encoding='utf-8'))
    assert written['primary_entity']['SystemName'] == 'contract-type-x'
    assert server.start_headers[0]['Authorization'] == 'Bearer tok'


@pytest.mark.asyncio
async def test_export_command_failure_exit_code(export_server, tmp_path):
    output = tmp_path / 'package.json'

    async with export_server(start_status=500) as server:
        args = build_parser().parse_args([
            'contract-type-x', '--base-url', server.base_url, '--no-deps', '-o', str(output)
        ])
        code = await run_export_command(args)

    assert code == 1
    assert not output.exists(), "Nothing is written for a failed run"
    assert server.dependency_calls == 0
