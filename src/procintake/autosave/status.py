"""
Save status projector.

Maps a :class:`SaveState` to the small, discrete set of states an indicator
can show. This is a pure function of the state and the current time; callers
re-evaluate it periodically so that "a few seconds ago" ages into
"N minutes ago" without a new save.

Priority (first match wins)
---------------------------
1. ``last_error``            -> ERROR (carries the error text)
2. ``is_saving``             -> SAVING
3. ``has_unsaved_changes``   -> UNSAVED
4. ``last_saved``            -> SAVED (carries a relative-time label)
5. otherwise                 -> IDLE
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from procintake.autosave.state import SaveState


class SaveStatusKind(str, Enum):
    ERROR = "error"
    SAVING = "saving"
    UNSAVED = "unsaved"
    SAVED = "saved"
    IDLE = "idle"


@dataclass(frozen=True, slots=True)
class SaveStatus:
    """
    What presentation code gets to see.

    Attributes
    ----------
    kind : SaveStatusKind
        The discrete display state.
    message : str | None
        Error text, verbatim, for ``ERROR``.
    label : str | None
        Relative-time label for ``SAVED`` (e.g. "2 minutes ago").
    """

    kind: SaveStatusKind
    message: str | None = None
    label: str | None = None

    @property
    def text(self) -> str:
        """One-line human rendering of this status."""
        if self.kind is SaveStatusKind.ERROR:
            return f"Error saving: {self.message}"
        if self.kind is SaveStatusKind.SAVING:
            return "Saving changes..."
        if self.kind is SaveStatusKind.UNSAVED:
            return "Unsaved changes"
        if self.kind is SaveStatusKind.SAVED:
            return f"Saved {self.label}"
        return "No changes"


def format_relative(last_saved: datetime, now: datetime) -> str:
    """Relative label for a save time; falls back to local HH:MM after an hour."""
    minutes = int((now - last_saved).total_seconds() // 60)
    if minutes < 1:
        return "a few seconds ago"
    if minutes == 1:
        return "1 minute ago"
    if minutes < 60:
        return f"{minutes} minutes ago"
    local = last_saved.astimezone() if last_saved.tzinfo is not None else last_saved
    return local.strftime("%H:%M")


def project_status(state: SaveState, now: datetime | None = None) -> SaveStatus:
    """Project ``state`` onto a :class:`SaveStatus` (see module docstring for priority)."""
    if state.last_error is not None:
        return SaveStatus(SaveStatusKind.ERROR, message=state.last_error)
    if state.is_saving:
        return SaveStatus(SaveStatusKind.SAVING)
    if state.has_unsaved_changes:
        return SaveStatus(SaveStatusKind.UNSAVED)
    if state.last_saved is not None:
        if now is None:
            now = datetime.now(state.last_saved.tzinfo)
        return SaveStatus(SaveStatusKind.SAVED, label=format_relative(state.last_saved, now))
    return SaveStatus(SaveStatusKind.IDLE)


__all__ = ["SaveStatus", "SaveStatusKind", "format_relative", "project_status"]
