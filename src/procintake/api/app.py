"""
FastAPI Application Factory for the development forms backend.

This module initializes the FastAPI application instance. It is responsible for:
1.  **Middleware Setup**: CORS so browser front-ends can talk to it locally.
2.  **Exception Handling**: Global handlers so every error is a JSON `Envelope`.
3.  **Routing**: Mounting the forms router and the health probe.
4.  **Lifecycle**: Initializing the in-memory form store on startup.

Design Pattern
--------------
We use an **Application Factory** pattern (`create_app`). This allows for:
-   Easy testing (spinning up separate app instances per test).
-   Serving the same app from `uvicorn` and from the CLI `serve` command.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from procintake import __version__
from procintake.api.routers import forms
from procintake.api.schemas import Envelope
from procintake.api.store import FormStore
from procintake.core.settings import get_logger, load_settings

logger = get_logger("procintake.api")


def _envelope_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=Envelope.fail(error).model_dump())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    ASGI Lifespan context manager.

    - **Startup**: Initialize the in-memory form store singleton.
    - **Shutdown**: Nothing to release; records are volatile.
    """
    FormStore.get_instance()
    logger.info("Forms backend started (env=%s).", load_settings().environment)

    yield

    logger.info("Forms backend shutting down.")


def create_app() -> FastAPI:
    """
    Construct and configure the forms FastAPI application.

    Returns
    -------
    FastAPI
        The configured ASGI application ready to be served by Uvicorn.
    """
    app = FastAPI(
        title="procintake forms API",
        description="Development backend for process intake forms",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Global Exception Handlers
    # -----------------------------------------------------------------------
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all: unhandled exceptions become a 500 envelope."""
        logger.exception("Unhandled error on %s", request.url.path)
        return _envelope_response(500, f"Internal Server Error: {exc}")

    @app.exception_handler(KeyError)
    async def key_error_handler(request: Request, exc: KeyError) -> JSONResponse:
        """Map lookups of unknown records to HTTP 404."""
        return _envelope_response(404, str(exc.args[0]) if exc.args else "Not found")

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        """Map Python ValueErrors to HTTP 400 Bad Request."""
        return _envelope_response(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Request bodies / query params that fail validation -> 422 envelope."""
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(p) for p in first.get("loc", ()))
        return _envelope_response(422, f"{location}: {first.get('msg', 'invalid request')}")

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    app.include_router(forms.router)

    @app.get("/health", tags=["System"])
    async def health_check() -> dict[str, str]:
        """Simple liveness probe."""
        return {
            "status": "ok",
            "environment": load_settings().environment,
            "version": __version__,
        }

    return app


__all__ = ["create_app"]
