"""
Editing session: the host side of the auto-save engine.

An :class:`EditSession` owns the live :class:`ProcessForm` being edited and
one :class:`AutoSaver`. Every mutation goes through the session, which
feeds the new snapshot to the saver, so the engine always sees the current
form. The session also provides the "unsaved changes" leave guard and the
local draft fallback.

Modes
-----
- **edit** (``form_id`` and a persistence callback given): auto-save active.
- **create** (no ``form_id``): changes are tracked so the leave guard still
  works, but nothing is auto-saved; the form is submitted explicitly.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import Any

from procintake.autosave.orchestrator import AutoSaver, ErrorHook, SaveCallback, StateListener
from procintake.autosave.snapshot import Snapshot
from procintake.autosave.state import AutoSaveConfig, SaveState
from procintake.autosave.status import SaveStatus, project_status
from procintake.contracts.form import Problem, ProcessForm
from procintake.core.errors import ConfigError, DraftStoreError
from procintake.core.settings import get_logger, load_settings
from procintake.host.drafts import DraftStore

logger = get_logger("procintake.session")


async def _no_backend(snapshot: Snapshot) -> None:
    raise ConfigError("this session has no persistence backend")


class EditSession:
    """
    One editing session over one form.

    Parameters
    ----------
    form:
        Initial form content (e.g. the record loaded from the backend). It is
        adopted as the committed baseline, so loading never counts as an edit.
    form_id:
        Id of the existing record; ``None`` means create mode.
    save:
        Async persistence callback used by auto-save in edit mode.
    config:
        Auto-save options; defaults to the values from settings.
    drafts:
        Optional local fallback store, written after failed saves.
    on_error:
        Forwarded to :class:`AutoSaver` (e.g. to show a toast).
    """

    def __init__(
        self,
        form: ProcessForm | None = None,
        *,
        form_id: str | None = None,
        save: SaveCallback | None = None,
        config: AutoSaveConfig | None = None,
        drafts: DraftStore | None = None,
        on_error: ErrorHook | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.form_id = form_id
        self._form = form if form is not None else ProcessForm()
        self._drafts = drafts
        self._backend = save

        cfg = config if config is not None else load_settings().autosave_config()
        if not self.is_edit_mode:
            cfg = replace(cfg, enabled=False)
        self._saver = AutoSaver(self._persist, config=cfg, on_error=on_error, clock=clock)
        self._saver.observe(self._form)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    @property
    def is_edit_mode(self) -> bool:
        return self.form_id is not None and self._backend is not None

    @property
    def form(self) -> ProcessForm:
        return self._form

    @property
    def saver(self) -> AutoSaver:
        return self._saver

    @property
    def state(self) -> SaveState:
        return self._saver.state

    @property
    def has_unsaved_changes(self) -> bool:
        return self._saver.has_unsaved_changes

    def snapshot(self) -> Snapshot:
        return self._form.model_dump(mode="json")

    def status(self, now: datetime | None = None) -> SaveStatus:
        return project_status(self._saver.state, now)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        return self._saver.subscribe(listener)

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #
    def update(self, **fields: Any) -> None:
        """Set one or more form fields (validated) and notify the saver."""
        unknown = sorted(set(fields) - set(ProcessForm.model_fields))
        if unknown:
            raise KeyError(f"unknown form field(s): {', '.join(unknown)}")
        data = self._form.model_dump()
        data.update(fields)
        self._apply(ProcessForm.model_validate(data))

    def set_field(self, name: str, value: Any) -> None:
        self.update(**{name: value})

    def add_problem(self, problem: str = "", impact: str = "") -> Problem:
        row = Problem(id=self._form.next_problem_id(), problem=problem, impact=impact)
        self._apply(self._form.model_copy(update={"problems": [*self._form.problems, row]}))
        return row

    def update_problem(
        self, problem_id: int, *, problem: str | None = None, impact: str | None = None
    ) -> None:
        if all(row.id != problem_id for row in self._form.problems):
            raise KeyError(f"no problem with id {problem_id}")
        changes = {k: v for k, v in (("problem", problem), ("impact", impact)) if v is not None}
        rows = [
            row.model_copy(update=changes) if row.id == problem_id else row
            for row in self._form.problems
        ]
        self._apply(self._form.model_copy(update={"problems": rows}))

    def remove_problem(self, problem_id: int) -> bool:
        """Remove a pain-point row; the last remaining row is kept."""
        if len(self._form.problems) <= 1:
            return False
        rows = [p for p in self._form.problems if p.id != problem_id]
        if len(rows) == len(self._form.problems):
            return False
        self._apply(self._form.model_copy(update={"problems": rows}))
        return True

    def restore_draft(self) -> bool:
        """Apply a locally stored draft for this form, if one exists."""
        if self._drafts is None or self.form_id is None:
            return False
        data = self._drafts.load(self.form_id)
        if data is None:
            return False
        self._apply(ProcessForm.model_validate(data))
        logger.info("Restored local draft for form %s", self.form_id)
        return True

    # ------------------------------------------------------------------ #
    # Saving and teardown
    # ------------------------------------------------------------------ #
    async def save_now(self, *, force: bool = False) -> bool:
        return await self._saver.save_now(force=force)

    def confirm_leave(self, ask: Callable[[], bool]) -> bool:
        """
        Leave guard. Returns True when leaving may proceed.

        With no unsaved changes this never calls ``ask``; otherwise the user's
        answer from ``ask()`` decides.
        """
        if not self._saver.has_unsaved_changes:
            return True
        return bool(ask())

    def close(self) -> None:
        self._saver.close()

    async def aclose(self) -> None:
        await self._saver.aclose()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _apply(self, form: ProcessForm) -> None:
        self._form = form
        self._saver.observe(form)

    async def _persist(self, snapshot: Snapshot) -> None:
        backend = self._backend or _no_backend
        try:
            await backend(snapshot)
        except Exception:
            self._write_fallback(snapshot)
            raise
        self._clear_fallback()

    def _clear_fallback(self) -> None:
        if self._drafts is None or self.form_id is None:
            return
        try:
            self._drafts.delete(self.form_id)
        except (DraftStoreError, OSError) as exc:
            logger.error("Could not remove local draft for form %s: %s", self.form_id, exc)

    def _write_fallback(self, snapshot: Snapshot) -> None:
        if self._drafts is None or self.form_id is None:
            return
        try:
            path = self._drafts.save(self.form_id, snapshot)
            logger.info("Save failed; local draft written to %s", path)
        except DraftStoreError as exc:
            logger.error("Local draft fallback failed: %s", exc)


__all__ = ["EditSession"]
