"""Tests for the periodic status ticker and the rich renderer."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from procintake.autosave.state import SaveState
from procintake.autosave.status import SaveStatus, SaveStatusKind
from procintake.host.indicator import StatusTicker, render_status


def test_render_status_is_styled_text() -> None:
    text = render_status(SaveStatus(SaveStatusKind.ERROR, message="network down"))
    assert "Error saving: network down" in text.plain
    assert "red" in str(text.style)


def test_refresh_ages_the_saved_label_without_new_saves() -> None:
    """Re-projection on a tick turns 'a few seconds ago' into 'N minutes ago'."""
    saved_at = datetime(2025, 1, 1, 9, 0).astimezone()
    now = [saved_at]
    rendered: list[SaveStatus] = []
    ticker = StatusTicker(
        lambda: SaveState(last_saved=saved_at),
        rendered.append,
        clock=lambda: now[0],
    )

    ticker.refresh()
    ticker.refresh()  # unchanged: not re-rendered
    now[0] = saved_at + timedelta(minutes=3)
    ticker.refresh()

    assert [s.label for s in rendered] == ["a few seconds ago", "3 minutes ago"]


def test_on_state_listener_renders_transitions() -> None:
    state = [SaveState()]
    rendered: list[SaveStatusKind] = []
    ticker = StatusTicker(lambda: state[0], lambda s: rendered.append(s.kind))

    state[0] = SaveState(is_saving=True)
    ticker.on_state(state[0])
    state[0] = SaveState(has_unsaved_changes=True, last_error="x")
    ticker.on_state(state[0])

    assert rendered == [SaveStatusKind.SAVING, SaveStatusKind.ERROR]
    assert ticker.last is not None and ticker.last.kind is SaveStatusKind.ERROR


@pytest.mark.asyncio
async def test_start_and_stop_background_ticks() -> None:
    calls: list[SaveStatus] = []
    ticker = StatusTicker(SaveState, calls.append, interval=0.01)

    ticker.start()
    await asyncio.sleep(0.05)
    assert ticker.running
    await ticker.stop()

    assert not ticker.running
    assert [s.kind for s in calls] == [SaveStatusKind.IDLE]


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        StatusTicker(SaveState, lambda s: None, interval=0)
