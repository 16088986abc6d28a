"""Rich-based status output for termreel.

Frames go to stdout; everything written here goes to stderr so it can be
redirected without disturbing playback.
"""

from typing import Any, Dict, List, Optional, TextIO

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme
from rich.box import ROUNDED

from .config import PlaybackConfig
from .utils.dependencies import DependencyReport

TERMREEL_THEME = {
    "brand": "bold cyan",
    "success": "bold green",
    "error": "bold red",
    "warning": "bold yellow",
    "info": "bold blue",
    "muted": "dim white",
    "path": "underline cyan",
    "number": "bold white",
}


class Console:
    """Console for status messages around playback.

    Args:
        quiet: Suppress everything except errors
        file: Stream to write to (stderr by default)
    """

    def __init__(self, quiet: bool = False, file: Optional[TextIO] = None):
        self.quiet = quiet
        self._console = RichConsole(
            theme=Theme(TERMREEL_THEME),
            stderr=file is None,
            file=file,
            highlight=False,
            markup=True,
        )

    def print(self, *args: Any, **kwargs: Any) -> None:
        if self.quiet:
            return
        self._console.print(*args, **kwargs)

    def banner(self, config: PlaybackConfig) -> None:
        """Print the one-line description of what is about to play."""
        height = config.height if config.height is not None else "auto"
        self.print(
            f"[brand]Playing[/brand] [path]{escape(str(config.input_path))}[/path] "
            f"[muted](fps={config.fps} width={config.width} height={height} "
            f"sound={config.sound} color={config.color})[/muted]"
        )

    def success(self, message: str) -> None:
        self.print(f"[success]✓[/success] {escape(message)}")

    def info(self, message: str) -> None:
        self.print(f"[info]ℹ[/info] {escape(message)}")

    def warning(self, message: str) -> None:
        self.print(f"[warning]![/warning] {escape(message)}")

    def error(self, message: str, hint: Optional[str] = None) -> None:
        """Print error message with optional hint; shown even when quiet."""
        self._console.print(f"[error]✗[/error] {escape(message)}")
        if hint:
            self._console.print(f"  [dim]Hint: {escape(hint)}[/dim]")

    def dependency_report(self, report: DependencyReport) -> None:
        """Print the dependency report as a table."""
        rows: List[Dict[str, str]] = []
        for name, info in report.dependencies.items():
            if info.installed and info.meets_minimum:
                status = "[success]OK[/success]"
            elif info.installed:
                status = "[warning]OLD[/warning]"
            else:
                status = "[error]MISSING[/error]"
            rows.append({
                "name": escape(name),
                "status": status,
                "version": escape(info.version or "-"),
                "path": escape(info.path or info.error_message or "-"),
            })

        table = Table(title="Dependencies", box=ROUNDED, header_style="bold cyan")
        for column in ("name", "status", "version", "path"):
            table.add_column(column.title())
        for row in rows:
            table.add_row(row["name"], row["status"], row["version"], row["path"])
        self.print(table)

        for warning in report.warnings:
            self.warning(warning)
