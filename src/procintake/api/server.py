"""
ASGI Entry Point for the development forms backend.

This module exposes the `app` object required by ASGI servers (Uvicorn).
It loads environment variables from `.env` first so that settings read at
import time see them.

Usage
-----
Run via the module entry point:
    $ python -m procintake.api.server

Or via uvicorn directly:
    $ uvicorn procintake.api.server:app --reload
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from procintake.api.app import create_app

# Load .env BEFORE the factory runs so settings pick it up.
load_dotenv(dotenv_path=Path(".env"))

app = create_app()


def main(host: str = "127.0.0.1", port: int = 8000, reload: bool = False) -> None:
    """Run the backend locally for development."""
    uvicorn.run(
        "procintake.api.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
