"""MIDISYNTH progress reporting.

Pipeline phases report through a tiny protocol so library callers and tests
can run silently while the CLI draws ``rich`` progress bars.
"""

from __future__ import annotations

from typing import Protocol

from rich.progress import BarColumn, Progress, TaskID, TextColumn


class ProgressReporter(Protocol):
    def set_total(self, total: int) -> None: ...
    def advance(self, n: int = 1) -> None: ...
    def finish(self) -> None: ...


class NullProgress:
    """Reporter that ignores everything."""

    def set_total(self, total: int) -> None:
        pass

    def advance(self, n: int = 1) -> None:
        pass

    def finish(self) -> None:
        pass


class RichProgress:
    """One task on a shared rich Progress display.

    rich's Progress is thread-safe, so render workers may each own one.
    """

    def __init__(self, progress: Progress, label: str = "") -> None:
        self.progress = progress
        self.task: TaskID = progress.add_task(label, total=None)

    def set_total(self, total: int) -> None:
        self.progress.update(self.task, total=total)

    def advance(self, n: int = 1) -> None:
        self.progress.advance(self.task, n)

    def finish(self) -> None:
        # Cleared once done, like the bars of a finished phase
        self.progress.update(self.task, visible=False)


def make_progress() -> Progress:
    """Progress display used by the CLI for every phase."""
    return Progress(
        TextColumn("      "),
        BarColumn(bar_width=40, style="blue", complete_style="cyan"),
        TextColumn("{task.description}"),
        transient=True,
    )
