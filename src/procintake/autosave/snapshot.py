"""
Snapshot normalization, deep equality and the change detector.

A *snapshot* is the data that would be saved: a JSON-like mapping of field
names to values, possibly with nested lists of sub-records. Snapshots are
compared by structure, never by identity:

- mapping keys are order-insensitive,
- sequence elements are order-sensitive,
- types are strict (``True`` != ``1``, ``1`` != ``"1"``, ``None`` != ``""``),
- an absent key differs from a key holding an empty value.

Pydantic models are accepted anywhere a snapshot is expected and are reduced
with ``model_dump(mode="json")`` first.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

Snapshot = dict[str, Any]

_UNSET = object()


def to_snapshot(value: Any) -> Snapshot:
    """
    Return a detached, JSON-like copy of ``value`` suitable for comparison.

    Strategies:
    - ``BaseModel`` -> ``model_dump(mode="json")``.
    - ``Mapping``   -> new dict with recursively converted values.
    - anything else -> ``TypeError`` (a snapshot must be a mapping at the top).
    """
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Mapping):
        return {str(k): _detach(v) for k, v in value.items()}
    raise TypeError(f"snapshot must be a mapping or pydantic model, got {type(value).__name__}")


def _detach(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Mapping):
        return {str(k): _detach(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_detach(v) for v in value]
    return copy.deepcopy(value)


def snapshots_equal(a: Any, b: Any) -> bool:
    """Deep structural equality with strict scalar types."""
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if a.keys() != b.keys():
            return False
        return all(snapshots_equal(a[k], b[k]) for k in a)
    if isinstance(a, list | tuple) and isinstance(b, list | tuple):
        if len(a) != len(b):
            return False
        return all(snapshots_equal(x, y) for x, y in zip(a, b, strict=True))
    if type(a) is not type(b):
        # int/float with equal value are the same JSON number.
        numeric = (int, float)
        if (
            isinstance(a, numeric)
            and isinstance(b, numeric)
            and not isinstance(a, bool)
            and not isinstance(b, bool)
        ):
            return a == b
        return False
    return bool(a == b)


class ChangeDetector:
    """
    Tracks the last committed snapshot and classifies new observations.

    The first snapshot ever observed becomes the baseline silently, so that the
    initial load of a record is never mistaken for a user edit.
    """

    __slots__ = ("_committed",)

    def __init__(self) -> None:
        self._committed: Any = _UNSET

    @property
    def has_baseline(self) -> bool:
        return self._committed is not _UNSET

    @property
    def committed(self) -> Snapshot | None:
        """A copy of the committed baseline, or ``None`` before the first observation."""
        if self._committed is _UNSET:
            return None
        return copy.deepcopy(self._committed)

    def observe(self, snapshot: Snapshot) -> bool:
        """
        Compare ``snapshot`` against the baseline.

        Returns
        -------
        bool
            True when ``snapshot`` diverges from the committed baseline. The
            first observation adopts the baseline and returns False.
        """
        if self._committed is _UNSET:
            self._committed = copy.deepcopy(snapshot)
            return False
        return not snapshots_equal(snapshot, self._committed)

    def differs(self, snapshot: Snapshot) -> bool:
        """Like :meth:`observe` but never adopts a baseline."""
        if self._committed is _UNSET:
            return False
        return not snapshots_equal(snapshot, self._committed)

    def commit(self, snapshot: Snapshot) -> None:
        """Adopt a deep copy of ``snapshot`` as the new baseline."""
        self._committed = copy.deepcopy(snapshot)

    def reset(self) -> None:
        """Forget the baseline; the next observation is adopted silently again."""
        self._committed = _UNSET


__all__ = ["ChangeDetector", "Snapshot", "snapshots_equal", "to_snapshot"]
