"""Console rendering and progress helpers for the migrator CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .models import TransferOutcome
from .orchestrator.models import RunSummary, VerificationReport
from .utils.events import BatchProgress


SKIPPED_PREVIEW_LIMIT = 10
MISSING_PREVIEW_LIMIT = 10
MISMATCH_PREVIEW_LIMIT = 5

console = Console()


def _echo(message: str) -> None:
    console.print(message, highlight=False)


def render_configuration_summary(config: Dict[str, Any], title: str = "asset-migrator") -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else escape(str(value))
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title=f"[bold green]{title}[/bold green]",
        subtitle="[dim]cloudinary -> s3[/dim]",
        border_style="blue",
    )
    console.print(panel)


class MigrationProgressDisplay:
    """Event-based console display for a migration run."""

    def __init__(self, verbose: bool = False):
        self._verbose = verbose
        self._batch_started_at: Optional[float] = None

    def _emit_timeline(self, status: str, name: str, detail: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        palette = {
            "DONE": "green",
            "SKIP": "yellow",
            "FAIL": "red",
            "INFO": "blue",
        }
        color = palette.get(status, "white")
        detail_label = f" cause={escape(detail)}" if detail else ""
        _echo(f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {escape(name)}{detail_label}")

    def on_batch_start(self, batch: int, batch_size: int) -> None:
        self._batch_started_at = time.monotonic()
        self._emit_timeline("INFO", f"batch {batch}: {batch_size} assets")

    def on_asset_complete(self, outcome: TransferOutcome) -> None:
        name = outcome.asset.filename
        if outcome.error:
            self._emit_timeline("FAIL", name, outcome.error)
        elif self._verbose and outcome.reason:
            self._emit_timeline("SKIP", name, outcome.reason)
        elif self._verbose:
            self._emit_timeline("DONE", name)

    def on_batch_complete(self, progress: BatchProgress) -> None:
        elapsed = ""
        if self._batch_started_at is not None:
            elapsed = f" [dim]({time.monotonic() - self._batch_started_at:.1f}s)[/dim]"
        _echo(
            f"[bold]Progress[/bold] migrated={progress.migrated} skipped={progress.skipped} "
            f"failed={progress.failed} total={progress.total}{elapsed}"
        )

    def on_catalog_error(self, error: Exception) -> None:
        self._emit_timeline("FAIL", "catalog", str(error))
        _echo("[red]Enumeration stopped; summarizing assets processed so far.[/red]")


def render_run_summary(summary: RunSummary, artifacts: Optional[Dict[str, Any]] = None) -> None:
    """Final counts, first skipped assets and every failed asset."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold", justify="right")
    table.add_column()
    table.add_row("Total assets processed", str(summary.total))
    table.add_row("Successfully migrated", f"[green]{summary.migrated}[/green]")
    table.add_row("Skipped (already exist)", f"[yellow]{summary.skipped}[/yellow]")
    table.add_row("Failed", f"[red]{summary.failed}[/red]")
    if summary.aborted:
        table.add_row("Stopped early", f"[red]{escape(str(summary.abort_reason))}[/red]")

    title = "Migration stopped" if summary.aborted else "Migration completed"
    console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style="green"))

    if summary.skipped_assets:
        _echo(f"\nSkipped assets (first {SKIPPED_PREVIEW_LIMIT}):")
        for outcome in summary.skipped_assets[:SKIPPED_PREVIEW_LIMIT]:
            _echo(f"  - {escape(outcome.asset.public_id)}: {escape(str(outcome.reason))}")
        remaining = len(summary.skipped_assets) - SKIPPED_PREVIEW_LIMIT
        if remaining > 0:
            _echo(f"  ... and {remaining} more")

    if summary.failed_assets:
        _echo("\n[red]Failed assets:[/red]")
        for outcome in summary.failed_assets:
            _echo(f"  - {escape(outcome.asset.public_id)}: {escape(str(outcome.error))}")

    for label, path in (artifacts or {}).items():
        _echo(f"[dim]{label} assets logged to: {escape(str(path))}[/dim]")


def render_verification_report(report: VerificationReport, report_path: Optional[Any] = None) -> None:
    """Summary block plus previews of missing and mismatched assets."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold", justify="right")
    table.add_column()
    table.add_row("Total checked", f"{report.total_checked:,}")
    table.add_row("Successfully migrated", f"[green]{report.verified:,}[/green]")
    table.add_row("Missing", f"[red]{len(report.missing_assets):,}[/red]")
    table.add_row("Size mismatches", f"[yellow]{len(report.size_mismatches):,}[/yellow]")
    if report.errors:
        table.add_row("Probe errors", f"[red]{len(report.errors):,}[/red]")
    table.add_row("Success rate", f"{report.success_rate:.2f}%")
    if report.aborted:
        table.add_row("Stopped early", f"[red]{escape(str(report.abort_reason))}[/red]")
    console.print(Panel(table, title="[bold]Migration Verification Report[/bold]", border_style="blue"))

    if report.missing_assets:
        _echo("\n[red]Missing assets:[/red]")
        for record in report.missing_assets[:MISSING_PREVIEW_LIMIT]:
            _echo(f"  - {escape(record.asset.filename)}")
        remaining = len(report.missing_assets) - MISSING_PREVIEW_LIMIT
        if remaining > 0:
            _echo(f"  ... and {remaining} more")

    if report.size_mismatches:
        _echo("\n[yellow]Size mismatches:[/yellow]")
        for record in report.size_mismatches[:MISMATCH_PREVIEW_LIMIT]:
            _echo(
                f"  - {escape(record.asset.public_id)}: source({record.expected_size}) "
                f"vs destination({record.actual_size})"
            )
        remaining = len(report.size_mismatches) - MISMATCH_PREVIEW_LIMIT
        if remaining > 0:
            _echo(f"  ... and {remaining} more")

    if report_path:
        _echo(f"\n[dim]Detailed report saved to: {escape(str(report_path))}[/dim]")

    if report.total_checked and report.success_rate == 100.0:
        _echo("\n[green]Migration verification completed successfully![/green]")
    else:
        _echo("\n[yellow]Migration verification found issues. Check the report above.[/yellow]")
