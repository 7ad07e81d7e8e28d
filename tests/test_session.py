"""
Tests for EditSession, the host glue around the auto-save engine.

Scenarios
---------
1. Loading a record is not an edit; field edits are auto-saved in edit mode.
2. Create mode tracks changes for the leave guard but never auto-saves.
3. Failed saves write a local draft; the next success clears it.
4. The leave guard only asks when there are unsaved changes.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from procintake.autosave.state import AutoSaveConfig
from procintake.autosave.status import SaveStatusKind
from procintake.contracts.form import ProcessForm
from procintake.host.drafts import DraftStore
from procintake.host.session import EditSession

DELAY = 0.05


def _loaded_form() -> ProcessForm:
    return ProcessForm(process_name="Invoice approval", department="Finance", request_date="2025-01-10")


@pytest.mark.asyncio
async def test_edit_mode_autosaves_field_changes() -> None:
    saved: list[dict[str, Any]] = []

    async def save(snapshot: dict[str, Any]) -> None:
        saved.append(snapshot)

    session = EditSession(
        _loaded_form(), form_id="f-1", save=save, config=AutoSaveConfig(delay=DELAY)
    )
    assert session.is_edit_mode
    assert session.has_unsaved_changes is False

    session.update(process_name="Invoice approval v2", tools=["Excel", "SAP"])
    assert session.status().kind is SaveStatusKind.UNSAVED

    await asyncio.sleep(DELAY * 3)

    assert len(saved) == 1
    assert saved[0]["process_name"] == "Invoice approval v2"
    assert saved[0]["tools"] == ["Excel", "SAP"]
    assert session.status().kind is SaveStatusKind.SAVED
    await session.aclose()


@pytest.mark.asyncio
async def test_create_mode_never_autosaves() -> None:
    session = EditSession(ProcessForm(request_date="2025-01-10"), config=AutoSaveConfig(delay=DELAY))
    assert not session.is_edit_mode

    session.set_field("process_name", "New process")
    await asyncio.sleep(DELAY * 3)

    assert session.has_unsaved_changes is True
    assert await session.save_now() is False
    assert session.state.last_saved is None
    session.close()


@pytest.mark.asyncio
async def test_problem_rows_are_tracked_in_order() -> None:
    saved: list[dict[str, Any]] = []

    async def save(snapshot: dict[str, Any]) -> None:
        saved.append(snapshot)

    session = EditSession(_loaded_form(), form_id="f-2", save=save, config=AutoSaveConfig(delay=DELAY))
    row = session.add_problem("Manual re-keying", "2h/day lost")
    session.update_problem(1, problem="Approvals by email")
    assert await session.save_now() is True

    problems = saved[-1]["problems"]
    assert [p["id"] for p in problems] == [1, row.id]
    assert problems[0]["problem"] == "Approvals by email"

    assert session.remove_problem(1) is True
    assert session.remove_problem(row.id) is False  # last row is kept
    with pytest.raises(KeyError):
        session.update_problem(99, impact="x")
    await session.aclose()


def test_unknown_field_is_rejected() -> None:
    session = EditSession(_loaded_form())
    with pytest.raises(KeyError):
        session.update(not_a_field="x")
    session.close()


@pytest.mark.asyncio
async def test_failed_save_writes_local_draft_and_success_clears_it(tmp_path: Path) -> None:
    drafts = DraftStore(tmp_path / "drafts")
    fail = {"on": True}
    errors: list[str] = []

    async def save(snapshot: dict[str, Any]) -> None:
        if fail["on"]:
            raise ConnectionError("network down")

    session = EditSession(
        _loaded_form(),
        form_id="f-3",
        save=save,
        config=AutoSaveConfig(delay=DELAY),
        drafts=drafts,
        on_error=errors.append,
    )
    session.update(main_steps="1. receive 2. approve")
    await asyncio.sleep(DELAY * 3)

    assert errors == ["network down"]
    assert session.status().kind is SaveStatusKind.ERROR
    stored = drafts.load("f-3")
    assert stored is not None and stored["main_steps"] == "1. receive 2. approve"

    fail["on"] = False
    assert await session.save_now() is True
    assert drafts.load("f-3") is None
    await session.aclose()


def test_restore_draft_marks_session_dirty(tmp_path: Path) -> None:
    drafts = DraftStore(tmp_path)
    draft = _loaded_form().model_copy(update={"kpi_metrics": "cycle time"})
    drafts.save("f-4", draft.model_dump(mode="json"))

    session = EditSession(_loaded_form(), form_id="f-4", drafts=drafts, config=AutoSaveConfig(enabled=False))
    assert session.restore_draft() is True
    assert session.form.kpi_metrics == "cycle time"
    assert session.has_unsaved_changes is True
    session.close()


def test_confirm_leave_only_asks_when_dirty() -> None:
    session = EditSession(_loaded_form(), config=AutoSaveConfig(enabled=False))
    asked: list[bool] = []

    def ask() -> bool:
        asked.append(True)
        return False

    assert session.confirm_leave(ask) is True
    assert asked == []

    session.set_field("department", "Treasury")
    assert session.confirm_leave(ask) is False
    assert session.confirm_leave(lambda: True) is True
    assert asked == [True]
    session.close()


@pytest.mark.asyncio
async def test_draft_cleanup_error_does_not_fail_a_successful_save(tmp_path: Path) -> None:
    """A key the draft store rejects must not turn a backend success into an error."""
    saved: list[dict[str, Any]] = []
    errors: list[str] = []

    async def save(snapshot: dict[str, Any]) -> None:
        saved.append(snapshot)

    session = EditSession(
        _loaded_form(),
        form_id="??",
        save=save,
        config=AutoSaveConfig(delay=DELAY),
        drafts=DraftStore(tmp_path),
        on_error=errors.append,
    )
    session.update(department="Treasury")
    await asyncio.sleep(DELAY * 3)

    assert len(saved) == 1
    assert errors == []
    assert session.state.last_error is None
    assert session.state.last_saved is not None
    assert session.has_unsaved_changes is False
    await session.aclose()
