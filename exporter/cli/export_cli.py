# Path: exporter/cli/export_cli.py
"""
Export CLI

Command-line interface for exporting a work type package.

Architecture:
- argparse front end
- rich console output (progress bar, result panel, summary table)
- Progress bar fed from the orchestrator's ProgressChannel
- Ctrl-C cancels the run cooperatively (remote cancel is attempted)
"""

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn
from rich.logging import RichHandler

from exporter import __version__
from exporter.core.config_loader import ConfigLoader
from exporter.core.logger import configure_logging, get_logger
from exporter.engine.http_client import StaticTokenProvider
from exporter.engine.orchestrator import ExportOrchestrator
from exporter.engine.progress import CancellationToken, ProgressChannel
from exporter.engine.result import ExportOutcome, ExportStatus
from exporter.constants import LOG_OUTPUT

logger = get_logger(__name__, 'cli')

console = Console()

EXIT_CODES = {
    ExportStatus.SUCCEEDED: 0,
    ExportStatus.FAILED: 1,
    ExportStatus.TIMED_OUT: 2,
    ExportStatus.CANCELLED: 130,
}

STATUS_STYLES = {
    ExportStatus.SUCCEEDED: ('green', '✓'),
    ExportStatus.FAILED: ('red', '✗'),
    ExportStatus.TIMED_OUT: ('yellow', '⏱'),
    ExportStatus.CANCELLED: ('yellow', '■'),
}


def display_outcome(outcome: ExportOutcome) -> None:
    """Display export outcome with rich formatting."""
    color, symbol = STATUS_STYLES[outcome.status]
    status_text = f"[{color} bold]{symbol} {outcome.status.value.upper()}[/{color} bold]"

    lines = [
        status_text,
        f"Work type: {outcome.entity_selector}",
        f"Job: {outcome.job_id or 'N/A'}",
        f"Duration: {outcome.duration:.1f}s",
    ]
    if outcome.from_cache:
        lines.append("Source: cache")
    if outcome.error_message:
        lines.append(f"Error: {type(outcome.error).__name__}: {outcome.error_message}")

    console.print(Panel('\n'.join(lines), title="Export Result", border_style=color))

    if outcome.package is not None:
        summary_table = Table(title="Package Contents", show_header=True)
        summary_table.add_column("Collection", style="bold")
        summary_table.add_column("Count", justify="right")
        for name, count in outcome.package.summary().items():
            summary_table.add_row(name, str(count))
        console.print(summary_table)

    if outcome.warnings:
        warning_table = Table(title="Warnings", show_header=True, header_style="bold yellow")
        warning_table.add_column("#", style="dim", width=4)
        warning_table.add_column("Source", style="cyan")
        warning_table.add_column("Reason", style="white")
        for i, warning in enumerate(outcome.warnings, 1):
            reason = warning.reason
            warning_table.add_row(
                str(i),
                warning.source,
                reason[:80] + "..." if len(reason) > 80 else reason
            )
        console.print(warning_table)


async def follow_progress(events, progress: Progress, task_id) -> None:
    """Move the progress bar as events arrive, until the channel closes."""
    async for event in events:
        description = f"{event.phase}: {event.message}" if event.message else event.phase
        if event.eta_seconds is not None:
            description += f" (~{event.eta_seconds:.0f}s left)"
        if event.percentage is not None:
            progress.update(task_id, description=description, completed=event.percentage)
        else:
            progress.update(task_id, description=description)


def write_package(outcome: ExportOutcome, output: Path) -> None:
    """Write the canonical package as JSON."""
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, 'w', encoding='utf-8') as f:
        json.dump(outcome.package.to_dict(), f, indent=2, default=str)
    logger.info(f"{LOG_OUTPUT} Package written: {output}")
    console.print(f"\n[green]Package saved:[/green] {output}")


async def run_export_command(args: argparse.Namespace) -> int:
    """Run one export with progress display."""
    config = ConfigLoader()
    configure_logging(
        config,
        console_handler=RichHandler(rich_tracebacks=True, console=console, show_path=False)
    )

    cancellation = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancellation.cancel, 'interrupted by user')
    except (NotImplementedError, RuntimeError):
        # No signal handlers on this platform; KeyboardInterrupt still ends the run
        pass

    token_provider = StaticTokenProvider(args.token) if args.token else None
    channel = ProgressChannel()
    events = channel.subscribe()

    console.print(f"\n[bold]Exporting work type[/bold] {args.entity_selector}")
    console.print()

    try:
        async with ExportOrchestrator(
            base_url=args.base_url,
            token_provider=token_provider,
            config=config,
            check_dependencies=False if args.no_deps else None
        ) as orchestrator:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("{task.percentage:>3.0f}%"),
                console=console
            ) as progress:
                task_id = progress.add_task("Starting...", total=100)
                watcher = asyncio.create_task(follow_progress(events, progress, task_id))
                outcome = await orchestrator.run_export(
                    args.entity_selector,
                    profile=args.profile,
                    cancellation=cancellation,
                    progress=channel,
                    timeout=args.timeout
                )
                await watcher
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass

    display_outcome(outcome)

    if args.output and outcome.package is not None:
        write_package(outcome, args.output)

    return EXIT_CODES[outcome.status]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='exporter',
        description="Export a work type configuration package and unpack it safely",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export a work type using settings from .env
  exporter matter-litigation

  # Save the canonical package as JSON
  exporter matter-litigation --output litigation.json

  # Different server, explicit token, skip dependency check
  exporter contract-type-x --base-url https://tenant.example.com --token $TOKEN --no-deps
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Exporter {__version__}'
    )
    parser.add_argument(
        'entity_selector',
        help='System name of the work type to export'
    )
    parser.add_argument(
        '-p', '--profile',
        help='Export profile name (default from EXPORTER_EXPORT_PROFILE)'
    )
    parser.add_argument(
        '-t', '--timeout',
        type=float,
        help='Seconds to wait for the server to build the package'
    )
    parser.add_argument(
        '-o', '--output',
        type=Path,
        help='Write the canonical package as JSON to this file'
    )
    parser.add_argument(
        '--base-url',
        help='Export server root URL (default from EXPORTER_BASE_URL)'
    )
    parser.add_argument(
        '--token',
        help='Bearer token (default from EXPORTER_API_TOKEN)'
    )
    parser.add_argument(
        '--no-deps',
        action='store_true',
        help='Skip the dependency pre-check'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Show tracebacks on error'
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        return asyncio.run(run_export_command(args))

    except KeyboardInterrupt:
        console.print("\n[yellow]Export interrupted by user[/yellow]")
        return 130

    except Exception as e:
        console.print(f"\n[red bold]Error:[/red bold] {str(e)}")
        if args.verbose:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
