"""procintake package bootstrap.

Process intake forms with a debounced auto-save engine. The interesting
logic lives in :mod:`procintake.autosave`; the HTTP client, the development
backend and the CLI are thin layers around it.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.3.0"
