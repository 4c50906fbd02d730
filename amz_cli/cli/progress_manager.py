"""
Manages a Rich progress display for the track currently being downloaded.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

# Longest track name shown beside a bar
NAME_WIDTH = 32


class ProgressManager:
    """
    Shows one bar per active transfer. A transfer whose size is not known
    shows a pulsing bar instead of a percentage.
    """

    def __init__(self, console: Console, disabled: bool = False):
        self.console = console
        self.disabled = disabled
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=33),
            TextColumn("[progress.percentage]{task.fields[label]}"),
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self._started = False
        self.completed = 0
        self.failed = 0

    @staticmethod
    def _shorten(name: str) -> str:
        if len(name) > NAME_WIDTH:
            name = name[: NAME_WIDTH - 1] + "…"
        return escape(name.ljust(NAME_WIDTH))

    def add_track_task(self, description: str) -> Optional[TaskID]:
        if self.disabled:
            return None
        return self.progress.add_task(
            self._shorten(description), total=100, label="...", start=True
        )

    def update_task_progress(self, task_id: Optional[TaskID], percent: Optional[int]):
        """Sets a task's percentage, or switches it to a pulse when None."""
        if task_id is None or self.disabled:
            return
        if percent is None:
            self.progress.update(task_id, total=None, label="...")
        else:
            self.progress.update(
                task_id, total=100, completed=percent, label=f"{percent:>3d}%"
            )

    def remove_task(self, task_id: Optional[TaskID], success: bool = True):
        if success:
            self.completed += 1
        else:
            self.failed += 1
        if task_id is None or self.disabled:
            return
        if success:
            self.progress.update(task_id, total=100, completed=100, label="100%")
        self.progress.stop_task(task_id)

    async def __aenter__(self):
        if not self.disabled:
            self.progress.start()
            self._started = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._started:
            self.progress.stop()
            self._started = False
