"""
Save state record and auto-save configuration.

Design Notes
------------
- **Immutability**: ``SaveState`` is a frozen value. The orchestrator swaps
  in a new instance on every transition, so a reader holding a reference
  never sees it change underneath them, and a query made right after a
  state-changing call always reflects that call.
- **Timestamps**: ``last_saved`` is an aware ``datetime`` in local time, which
  is what the status projector formats for the clock-time label.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class SaveState:
    """
    Observable state of one auto-save session.

    Attributes
    ----------
    is_saving : bool
        True while a persistence call is in flight.
    last_saved : datetime | None
        When the most recent successful save completed; ``None`` if never saved.
    has_unsaved_changes : bool
        True when the live snapshot differs from the last committed one.
    last_error : str | None
        Message of the most recent failed attempt; cleared by the next success.
    """

    is_saving: bool = False
    last_saved: datetime | None = None
    has_unsaved_changes: bool = False
    last_error: str | None = None


@dataclass(frozen=True, slots=True)
class AutoSaveConfig:
    """Recognized auto-save options (``delay`` is in seconds)."""

    delay: float = 3.0
    enabled: bool = True

    def __post_init__(self) -> None:
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay!r}")


__all__ = ["AutoSaveConfig", "SaveState"]
