"""
Save indicator: periodic re-projection and rich rendering.

The projector is pure, so something has to re-run it for relative labels to
age ("a few seconds ago" -> "3 minutes ago") while nothing is being saved.
:class:`StatusTicker` does that on a fixed interval and also whenever the
save state changes, and hands each *new* status to a render callback.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from datetime import datetime

from rich.text import Text

from procintake.autosave.state import SaveState
from procintake.autosave.status import SaveStatus, SaveStatusKind, project_status

_STYLES: dict[SaveStatusKind, tuple[str, str]] = {
    SaveStatusKind.ERROR: ("✖", "bold red"),
    SaveStatusKind.SAVING: ("⟳", "blue"),
    SaveStatusKind.UNSAVED: ("●", "dark_orange"),
    SaveStatusKind.SAVED: ("✔", "green"),
    SaveStatusKind.IDLE: ("○", "dim"),
}


def render_status(status: SaveStatus) -> Text:
    """Render a status as a single styled line."""
    icon, style = _STYLES[status.kind]
    return Text(f"{icon} {status.text}", style=style)


class StatusTicker:
    """
    Re-evaluates the save status on a cadence independent of save events.

    Parameters
    ----------
    source:
        Returns the current :class:`SaveState` (e.g. ``lambda: saver.state``).
    render:
        Called with each status that differs from the previously rendered one.
    interval:
        Seconds between periodic refreshes.
    """

    def __init__(
        self,
        source: Callable[[], SaveState],
        render: Callable[[SaveStatus], None],
        *,
        interval: float = 15.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._source = source
        self._render = render
        self._interval = interval
        self._clock = clock
        self._last: SaveStatus | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def last(self) -> SaveStatus | None:
        return self._last

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def refresh(self) -> SaveStatus:
        """Project the current state now; render it if it changed."""
        now = self._clock() if self._clock is not None else None
        status = project_status(self._source(), now)
        if status != self._last:
            self._last = status
            self._render(status)
        return status

    def on_state(self, state: SaveState) -> None:
        """State listener: plug into ``AutoSaver.subscribe``."""
        self.refresh()

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            self.refresh()
            await asyncio.sleep(self._interval)


__all__ = ["StatusTicker", "render_status"]
