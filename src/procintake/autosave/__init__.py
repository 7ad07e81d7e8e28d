"""Debounced auto-save engine.

Public surface:
    from procintake.autosave import AutoSaver, AutoSaveConfig, SaveState, project_status
"""

from __future__ import annotations

from procintake.autosave.debounce import Debouncer
from procintake.autosave.orchestrator import AutoSaver
from procintake.autosave.snapshot import ChangeDetector, snapshots_equal, to_snapshot
from procintake.autosave.state import AutoSaveConfig, SaveState
from procintake.autosave.status import SaveStatus, SaveStatusKind, format_relative, project_status

__all__ = [
    "AutoSaveConfig",
    "AutoSaver",
    "ChangeDetector",
    "Debouncer",
    "SaveState",
    "SaveStatus",
    "SaveStatusKind",
    "format_relative",
    "project_status",
    "snapshots_equal",
    "to_snapshot",
]
