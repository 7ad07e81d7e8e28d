"""
Trailing-edge debounce on top of the asyncio event loop.

A :class:`Debouncer` wraps a side-effecting ``func(payload)`` and a delay.
Every :meth:`Debouncer.trigger` records the payload and restarts the timer;
only when the timer expires without another trigger does ``func`` run, once,
with the latest payload. There is never a leading-edge call and never more
than one scheduled firing.

One instance is meant to live for a whole editing session: it owns its
timer handle and pending payload, and :meth:`Debouncer.close` disposes of it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Generic, TypeVar

P = TypeVar("P")

_MISSING = object()


class Debouncer(Generic[P]):
    """
    Delay-and-coalesce wrapper around ``func``.

    Parameters
    ----------
    func:
        Called with the latest payload on expiry (or on :meth:`flush`).
    delay:
        Debounce window in seconds.
    loop:
        Event loop used for scheduling. Defaults to the running loop at the
        time of the first :meth:`trigger`.
    """

    __slots__ = ("_func", "_delay", "_loop", "_handle", "_payload", "_closed")

    def __init__(
        self,
        func: Callable[[P], object],
        delay: float,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay!r}")
        self._func = func
        self._delay = delay
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._payload: object = _MISSING
        self._closed = False

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #
    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True when a payload is waiting for the timer to expire."""
        return self._handle is not None

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #
    def trigger(self, payload: P) -> None:
        """Record ``payload`` as the latest and (re)start the timer."""
        if self._closed:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._payload = payload
        self._handle = self._loop.call_later(self._delay, self._expire)

    def cancel(self) -> None:
        """Drop the running timer and the pending payload without calling ``func``."""
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._payload = _MISSING

    def flush(self) -> None:
        """Run ``func`` now with the pending payload; no-op if nothing is pending."""
        if self._handle is None:
            return
        self._handle.cancel()
        self._expire()

    def close(self) -> None:
        """Cancel anything pending and refuse further triggers."""
        self.cancel()
        self._closed = True

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _expire(self) -> None:
        payload = self._payload
        # Clear before calling so a re-trigger from inside func starts a fresh cycle.
        self._handle = None
        self._payload = _MISSING
        if payload is _MISSING:
            return
        self._func(payload)  # type: ignore[arg-type]


__all__ = ["Debouncer"]
