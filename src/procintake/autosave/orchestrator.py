"""
Auto-save orchestrator: debounced, serialized persistence of form snapshots.

Lifecycle
---------
``observe()`` feeds snapshots in. The first one becomes the committed
baseline; any later one that differs marks the session dirty and (re)arms
the debounce timer, while one equal to the baseline drops the pending save
and clears the dirty flag. When the timer fires, a save starts unless one is
already in flight.

State machine
-------------
    Idle --(debounce fired | save_now)--> Saving
    Saving --(callback returned)--> Idle   [baseline committed, clean]
    Saving --(callback raised)----> Idle   [last_error set, still dirty]

Only one save is ever in flight. A firing that arrives while saving is
dropped, and once the in-flight save resolves a fresh debounce cycle is
started if the latest snapshot still differs from the committed baseline.

Teardown (``close()``) cancels pending timers but never aborts an in-flight
save: its outcome is still applied to the state.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import datetime
from typing import Any

from procintake.autosave.debounce import Debouncer
from procintake.autosave.snapshot import ChangeDetector, Snapshot, to_snapshot
from procintake.autosave.state import AutoSaveConfig, SaveState
from procintake.core.settings import get_logger

SaveCallback = Callable[[Snapshot], Awaitable[None]]
ErrorHook = Callable[[str], Any]
StateListener = Callable[[SaveState], None]

logger = get_logger("procintake.autosave")


def _local_now() -> datetime:
    return datetime.now().astimezone()


class AutoSaver:
    """
    Owns the save state, the committed baseline and the single debounce timer
    of one editing session.

    Parameters
    ----------
    save:
        Async persistence callback. Returning normally means success; raising
        means failure, and ``str(exc)`` becomes ``last_error``.
    config:
        Debounce delay (seconds) and master on/off switch.
    on_error:
        Notified once per failed attempt with the error message. May be sync
        or async; its own failures are logged and otherwise ignored.
    clock:
        Source of ``last_saved`` timestamps (aware local time by default).
    """

    def __init__(
        self,
        save: SaveCallback,
        *,
        config: AutoSaveConfig | None = None,
        on_error: ErrorHook | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._save = save
        self._config = config or AutoSaveConfig()
        self._enabled = self._config.enabled
        self._on_error = on_error
        self._clock = clock or _local_now

        self._detector = ChangeDetector()
        self._debouncer: Debouncer[Snapshot] = Debouncer(self._on_debounce, self._config.delay)
        self._state = SaveState()
        self._latest: Snapshot | None = None
        self._task: asyncio.Task[bool] | None = None
        self._deferred = False
        self._closed = False
        self._listeners: list[StateListener] = []
        self._background: set[asyncio.Future[Any]] = set()

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> SaveState:
        """The authoritative current state (an immutable value)."""
        return self._state

    @property
    def is_saving(self) -> bool:
        return self._state.is_saving

    @property
    def has_unsaved_changes(self) -> bool:
        return self._state.has_unsaved_changes

    @property
    def config(self) -> AutoSaveConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> bool:
        """True while a debounced save is waiting for its timer."""
        return self._debouncer.pending

    @property
    def committed(self) -> Snapshot | None:
        return self._detector.committed

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        if value == self._enabled:
            return
        self._enabled = value
        if not value:
            self._debouncer.cancel()
            logger.debug("Auto-save disabled; pending save dropped.")
        elif self._state.has_unsaved_changes and self._latest is not None and not self._closed:
            self._debouncer.trigger(self._latest)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener(state)`` after every transition; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #
    def observe(self, value: Any) -> bool:
        """
        Feed the live form state.

        Returns True when the snapshot diverges from the committed baseline
        (and therefore a save is, or would be, scheduled).
        """
        if self._closed:
            return False
        snapshot = to_snapshot(value)
        self._latest = snapshot
        if not self._detector.observe(snapshot):
            # Reverted to the committed baseline: the pending payload is stale.
            self._debouncer.cancel()
            if self._state.is_saving:
                # The in-flight save moves the baseline; re-check once it lands.
                self._deferred = True
            elif self._state.has_unsaved_changes:
                self._set_state(has_unsaved_changes=False)
            return False
        if not self._state.has_unsaved_changes:
            self._set_state(has_unsaved_changes=True)
        if self._enabled:
            self._debouncer.trigger(snapshot)
        return True

    async def save_now(self, *, force: bool = False) -> bool:
        """
        Bypass the debounce window and save the latest snapshot immediately.

        A no-op (returning False) when disabled, closed, already saving, or
        when nothing is dirty. ``force=True`` saves the latest observed
        snapshot even when it matches the committed baseline.

        Returns
        -------
        bool
            True if a save ran and succeeded.
        """
        self._debouncer.cancel()
        if self._closed or not self._enabled:
            return False
        if self._state.is_saving:
            self._deferred = True
            return False
        snapshot = self._latest
        if snapshot is None:
            return False
        if not force and not self._state.has_unsaved_changes:
            return False
        task = self._start(snapshot)
        # Shielded: cancelling the caller must not abort a half-completed write.
        return await asyncio.shield(task)

    def close(self) -> None:
        """Cancel pending timers and stop reacting to new snapshots."""
        if self._closed:
            return
        self._closed = True
        self._debouncer.close()
        logger.debug("Auto-save session closed (in flight: %s).", self._state.is_saving)

    async def aclose(self) -> None:
        """:meth:`close`, then wait for an in-flight save to settle."""
        self.close()
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _on_debounce(self, snapshot: Snapshot) -> None:
        if not self._enabled or self._closed:
            return
        if self._state.is_saving:
            logger.debug("Save already in flight; deferring debounced save.")
            self._deferred = True
            return
        self._start(snapshot)

    def _start(self, snapshot: Snapshot) -> asyncio.Task[bool]:
        # Flip the flag synchronously so the in-flight guard holds before the task runs.
        self._set_state(is_saving=True)
        task = asyncio.get_running_loop().create_task(self._run(snapshot))
        self._task = task
        return task

    async def _run(self, snapshot: Snapshot) -> bool:
        logger.info("Auto-saving %d field(s)...", len(snapshot))
        succeeded = False
        error: str | None = None
        try:
            await self._save(snapshot)
            succeeded = True
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            logger.warning("Auto-save failed: %s", error)
        finally:
            self._task = None
            if succeeded:
                self._detector.commit(snapshot)
                self._set_state(
                    is_saving=False,
                    last_saved=self._clock(),
                    has_unsaved_changes=self._latest_differs(),
                    last_error=None,
                )
            elif error is not None:
                self._set_state(
                    is_saving=False,
                    has_unsaved_changes=self._latest_differs(),
                    last_error=error,
                )
            else:
                self._set_state(is_saving=False)

        if succeeded:
            logger.info("Auto-save successful at %s", self._state.last_saved)
        elif error is not None:
            self._notify_error(error)
        self._resume_deferred()
        return succeeded

    def _latest_differs(self) -> bool:
        return self._latest is not None and self._detector.differs(self._latest)

    def _resume_deferred(self) -> None:
        if not self._deferred:
            return
        self._deferred = False
        latest = self._latest
        if self._closed or not self._enabled or latest is None:
            return
        if self._detector.differs(latest):
            self._debouncer.trigger(latest)

    def _notify_error(self, message: str) -> None:
        if self._on_error is None:
            return
        try:
            result = self._on_error(message)
            if inspect.isawaitable(result):
                future = asyncio.ensure_future(result)
                self._background.add(future)
                future.add_done_callback(self._reap)
        except Exception:
            logger.exception("Auto-save error hook raised; ignoring.")

    def _reap(self, future: asyncio.Future[Any]) -> None:
        self._background.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error("Auto-save error hook failed: %s", future.exception())

    def _set_state(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Save-state listener raised; ignoring.")


__all__ = ["AutoSaver", "ErrorHook", "SaveCallback", "StateListener"]
