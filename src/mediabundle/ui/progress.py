from __future__ import annotations

from types import TracebackType

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


class ProgressReporter:
    """Render bundling progress events with rich.

    Feed it the ``(event, payload)`` pairs emitted by ``bundle()``:
    ``bundle:start`` opens a references bar, ``reference:*`` advances it and
    tallies outcomes, ``bundle:finalized`` closes it.
    """

    def __init__(self, console: Console | None = None, *, transient: bool = True) -> None:
        self.console = console or Console(stderr=True)
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=transient,
        )
        self._tasks: dict[str, TaskID] = {}
        self._totals: dict[str, int] = {}
        self.counts: dict[str, int] = {"embedded": 0, "relocated": 0, "skipped": 0}

    def __enter__(self) -> ProgressReporter:
        self.progress.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.progress.stop()

    def add_step(self, description: str, total: int | None = None) -> TaskID:
        return self.progress.add_task(description, total=total)

    def finish_task(self, task_id: TaskID) -> None:
        self.progress.remove_task(task_id)

    def _advance(self, key: str, description: str | None = None) -> None:
        task_id = self._tasks.get(key)
        if task_id is None:
            return
        self.progress.advance(task_id)
        if description:
            self.progress.update(task_id, description=description)

    def emit(self, event: str, payload: dict[str, int | str]) -> None:
        if event == "bundle:start":
            total = int(payload.get("references", 0))
            self._totals["references"] = total
            self._tasks["references"] = self.add_step("Bundling references", total=total)
        elif event.startswith("reference:"):
            outcome = event.split(":", 1)[1]
            if outcome in self.counts:
                self.counts[outcome] += 1
            self._advance("references", f"{outcome.capitalize()}: {payload.get('path', '')}")
        elif event == "bundle:finalized":
            task_id = self._tasks.pop("references", None)
            if task_id is not None:
                self.finish_task(task_id)
