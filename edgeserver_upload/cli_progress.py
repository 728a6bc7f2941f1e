"""Console rendering and progress helpers for the deploy CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from .errors import ConfigurationError
from .models import ArchiveProgress, ArchiveResult, DeploymentConfig, UploadOutcome

BAR_WIDTH = 32
DIVIDER_WIDTH = 40
PLAIN_PERCENT_STEP = 10

AUTHOR = "@lvksh"
PROJECT_URL = "github.com/lvksh/edgeserver-upload"


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def _plain_bar(percent: int) -> str:
    filled = BAR_WIDTH * min(max(percent, 0), 100) // 100
    return "[" + "█" * filled + "░" * (BAR_WIDTH - filled) + "]"


class ArchiveProgressDisplay:
    """Archive progress renderer: live bar on a terminal, plain bar lines otherwise."""

    def __init__(self, console: Console):
        self._console = console
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None
        self._last_printed_percent = -1
        self._started = False

    def start(self, total_bytes: int) -> None:
        if self._started:
            return
        self._started = True
        if not self._console.is_terminal:
            return

        self._progress = Progress(
            TextColumn("[white]Packaging"),
            BarColumn(bar_width=BAR_WIDTH, complete_style="bright_green"),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            DownloadColumn(),
            TimeRemainingColumn(),
            expand=False,
            console=self._console,
        )
        self._progress.start()
        self._task_id = self._progress.add_task("archive", total=max(total_bytes, 1))

    def update(self, progress: ArchiveProgress) -> None:
        if not self._started:
            self.start(progress.total_bytes)

        if self._progress is not None and self._task_id is not None:
            total = max(progress.total_bytes, 1)
            self._progress.update(
                self._task_id,
                completed=min(progress.processed_bytes, total),
                total=total,
            )
            return

        percent = progress.percent
        if percent >= 100 or percent - self._last_printed_percent >= PLAIN_PERCENT_STEP:
            if percent != self._last_printed_percent:
                self._console.print(
                    f"  {_plain_bar(percent)} {percent:3d}% ({_human_size(progress.processed_bytes)}"
                    f"/{_human_size(progress.total_bytes)})",
                    highlight=False,
                )
                self._last_printed_percent = percent

    def stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None


class DeployOutput:
    """
    Output context for one deploy run.

    Built once by the CLI and passed to each stage.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self._archive_display: Optional[ArchiveProgressDisplay] = None

    def blank(self) -> None:
        self.console.print("")

    def divider(self) -> None:
        self.console.print("[bright_yellow]" + "-" * DIVIDER_WIDTH + "[/bright_yellow]")

    def section(self, title: str) -> None:
        self.blank()
        self.console.print(f"[bold]{title}[/bold]")
        self.divider()

    def banner(self, version: str) -> None:
        self.blank()
        self.console.print(f"[magenta]edgeserver upload[/magenta] action v{version}", highlight=False)
        self.divider()
        self.console.print(
            f"Authored by [grey50]{AUTHOR}[/grey50]  {PROJECT_URL}",
            highlight=False,
        )

    def configuration_summary(self, config: DeploymentConfig, extra: Optional[Dict[str, Any]] = None) -> None:
        """Render configuration with the token masked."""
        self.section("Configuration")
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold cyan", justify="right")
        table.add_column(style="white")

        rows: Dict[str, Any] = {
            "Server": config.server,
            "App ID": config.app_id,
            "Directory": config.directory,
            "Token": config.masked_token,
        }
        rows.update(extra or {})
        for key, value in rows.items():
            table.add_row(key, "-" if value is None else str(value))

        self.console.print(table)

    def validation_error(self, error: ConfigurationError) -> None:
        self.console.print(
            f"Error Validating [bright_yellow]{error.field}[/bright_yellow]\n"
            f"\t[white on bright_cyan] {escape(error.message)} [/white on bright_cyan]"
        )

    def stage(self, message: str) -> None:
        self.console.print(f"[cyan]{message}[/cyan]")

    def archive_started(self, total_bytes: int, file_count: int) -> None:
        self.console.print(
            f"Packaging {file_count} files ({_human_size(total_bytes)})",
            highlight=False,
        )
        self._archive_display = ArchiveProgressDisplay(self.console)
        self._archive_display.start(total_bytes)

    def archive_progress(self, progress: ArchiveProgress) -> None:
        if self._archive_display is None:
            self._archive_display = ArchiveProgressDisplay(self.console)
        self._archive_display.update(progress)

    def archive_finished(self, result: ArchiveResult) -> None:
        self._stop_archive_display()
        self.console.print(
            f"[green]Packaged:[/green] {result.path.name} "
            f"({result.file_count} files, {_human_size(result.size_bytes)})",
            highlight=False,
        )
        if result.blake3_hash:
            self.console.print(f"  blake3: {result.blake3_hash}", highlight=False)

    def outcome(self, outcome: UploadOutcome) -> None:
        if outcome.success:
            self.console.print(f"[bold green]{outcome.message}[/bold green]")
            return
        self.console.print(f"[red]{outcome.message}[/red]")

    def error(self, message: str) -> None:
        self._stop_archive_display()
        self.console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)

    def finished(self, success: bool) -> None:
        self._stop_archive_display()
        if success:
            self.console.print(
                Panel.fit("[bold green]Deployment complete[/bold green]", border_style="green")
            )

    def _stop_archive_display(self) -> None:
        if self._archive_display is not None:
            self._archive_display.stop()
            self._archive_display = None
