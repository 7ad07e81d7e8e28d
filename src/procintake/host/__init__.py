"""Host integration: editing sessions, the save indicator and the draft fallback."""

from __future__ import annotations

from procintake.host.drafts import DraftStore
from procintake.host.indicator import StatusTicker, render_status
from procintake.host.session import EditSession

__all__ = ["DraftStore", "EditSession", "StatusTicker", "render_status"]
