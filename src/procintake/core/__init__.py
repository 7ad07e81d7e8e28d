"""Core package initializer for procintake.

Shared plumbing used by every layer:
    from procintake.core.settings import settings, load_settings, Settings, get_logger
    from procintake.core.errors import ProcintakeError, ApiError
"""

from __future__ import annotations

__all__ = ["__doc__"]
