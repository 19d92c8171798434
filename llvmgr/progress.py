"""Terminal progress reporting for multi-step installs."""

from __future__ import annotations

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn, TimeRemainingColumn

# Columns other than the message take about this many cells.
_FIXED_WIDTH = 55
_MIN_MESSAGE_WIDTH = 20


class TaskRef:
    """Handle to one row of the progress display."""

    def __init__(self, tasks: "Tasks", task_id: TaskID, name: str) -> None:
        self._tasks = tasks
        self._task_id = task_id
        self.name = name
        self.subtask: Optional[str] = None

    def set_subtask(self, subtask: str) -> None:
        self.subtask = subtask
        self._tasks._refresh(self)

    def set_subtask_with_percentage(self, subtask: str, percentage: float) -> None:
        self.subtask = subtask
        self._tasks._refresh(self, percentage)

    def set_percentage(self, percentage: float) -> None:
        """Percentage is between 0 and 1."""
        self._tasks._refresh(self, percentage)

    def finish(self) -> None:
        self.subtask = None
        self._tasks._refresh(self, 1.0)


class Tasks:
    """Numbered list of progress bars, one per install step."""

    def __init__(self, console: Optional[Console] = None, transient: bool = False) -> None:
        self.console = console or Console(stderr=True)
        self._progress = Progress(
            TextColumn("[bold dim]{task.fields[prefix]}"),
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(bar_width=40),
            TimeRemainingColumn(),
            console=self.console,
            transient=transient,
        )
        self._refs: List[TaskRef] = []

    def __enter__(self) -> "Tasks":
        self._progress.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self._progress.stop()

    @property
    def message_width(self) -> int:
        return max(self.console.width - _FIXED_WIDTH, _MIN_MESSAGE_WIDTH)

    def new_task(self, name: str) -> TaskRef:
        task_id = self._progress.add_task(name, total=100, prefix="")
        ref = TaskRef(self, task_id, name)
        self._refs.append(ref)
        for other in self._refs:
            self._refresh(other)
        return ref

    def _refresh(self, ref: TaskRef, percentage: Optional[float] = None) -> None:
        index = self._refs.index(ref)
        fields = {
            "description": self.format_message(ref.name, ref.subtask),
            "prefix": f"[{index + 1}/{len(self._refs)}]",
        }
        if percentage is not None:
            fields["completed"] = min(max(percentage, 0.0), 1.0) * 100
        self._progress.update(ref._task_id, **fields)

    def format_message(self, name: str, subtask: Optional[str]) -> str:
        message = f"{name} - {subtask}" if subtask else name
        width = self.message_width
        if len(message) > width:
            message = message[: width - 3] + "..."
        # cmake output contains square brackets
        return escape(message)
