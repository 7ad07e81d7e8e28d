# -----------------------------------------------------------------------------
# This module provides a small, synchronous HTTP client for the forms backend:
#   - reads base URL / API key / timeout from `procintake.core.settings`
#   - exposes the CRUD, status and stats operations used by the CLI
#   - adapts `update_form()` into the async persistence callback expected by
#     the auto-save engine (`draft_saver()`)
#
# The implementation uses only the Python standard library (`urllib.request`).
# Unit tests are expected to *mock* the internal `_request()` method so that
# no real HTTP calls are made during CI.
#
# Wire format
# -----------
# Every backend response is a JSON envelope:
#     {"success": bool, "message": str | None, "data": Any, "error": str | None}
# A non-2xx status or `success: false` is raised as `ApiError`.
# -----------------------------------------------------------------------------
from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from procintake import __version__
from procintake.contracts.form import FormRecord, FormStatus, ProcessForm, ProcessStats
from procintake.core.errors import ApiError
from procintake.core.settings import Settings, get_logger, load_settings

logger = get_logger("procintake.api.client")


def obfuscate_url(url: str) -> str:
    """Mask the middle of the host part of ``url`` for log output."""
    parts = urllib.parse.urlsplit(url)
    host = parts.netloc
    if len(host) > 8:
        host = host[:4] + "****" + host[-4:]
    return urllib.parse.urlunsplit((parts.scheme, host, parts.path, "", ""))


@dataclass(slots=True)
class FormsApiClient:
    """Client for the forms backend with a typed, exception-based API.

    Parameters
    ----------
    base_url:
        Root URL of the backend, e.g. ``"http://127.0.0.1:8000"``.
    api_key:
        Optional key sent in the ``X-API-Key`` header.
    timeout_seconds:
        Network timeout for each request.
    """

    base_url: str
    api_key: str | None = None
    timeout_seconds: float = 10.0

    # --------------------------------------------------------------------- #
    # Constructors
    # --------------------------------------------------------------------- #
    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> FormsApiClient:
        """Construct a client from ``PROCINTAKE_API_URL`` / ``_API_KEY`` / ``_API_TIMEOUT``."""
        s = settings or load_settings()
        return cls(base_url=s.api_url, api_key=s.api_key, timeout_seconds=s.api_timeout)

    # --------------------------------------------------------------------- #
    # Public API
    # --------------------------------------------------------------------- #
    def list_forms(
        self,
        *,
        search: str | None = None,
        status: FormStatus | None = None,
        limit: int | None = None,
        last_key: str | None = None,
    ) -> tuple[list[FormRecord], str | None]:
        """Return one page of records and the key to resume from (if any)."""
        query: dict[str, str] = {}
        if search:
            query["search"] = search
        if status is not None:
            query["status"] = status.value
        if limit is not None:
            query["limit"] = str(limit)
        if last_key:
            query["lastKey"] = last_key
        data = self._call("GET", "/forms", query=query)
        items = [FormRecord.model_validate(item) for item in data.get("items", [])]
        return items, data.get("lastKey")

    def get_form(self, form_id: str) -> FormRecord:
        return FormRecord.model_validate(self._call("GET", f"/forms/{_quote(form_id)}"))

    def create_form(self, form: ProcessForm) -> FormRecord:
        """Submit a new form; it is validated for submission first."""
        body = form.validate_for_submit().model_dump(mode="json", by_alias=True)
        return FormRecord.model_validate(self._call("POST", "/forms", payload=body))

    def update_form(self, form_id: str, form: ProcessForm | Mapping[str, Any]) -> FormRecord:
        """Replace the stored form body (drafts are not validated)."""
        model = form if isinstance(form, ProcessForm) else ProcessForm.model_validate(form)
        body = model.model_dump(mode="json", by_alias=True)
        data = self._call("PUT", f"/forms/{_quote(form_id)}", payload=body)
        return FormRecord.model_validate(data)

    def delete_form(self, form_id: str) -> None:
        self._call("DELETE", f"/forms/{_quote(form_id)}")

    def update_status(self, form_id: str, status: FormStatus) -> FormRecord:
        data = self._call(
            "PATCH", f"/forms/{_quote(form_id)}/status", payload={"status": status.value}
        )
        return FormRecord.model_validate(data)

    def stats(self) -> ProcessStats:
        return ProcessStats.model_validate(self._call("GET", "/stats"))

    def test_connection(self) -> bool:
        """Return True if the backend answers its health probe."""
        try:
            body = self._request("GET", "/health")
        except ApiError as exc:
            logger.warning("Backend unreachable: %s", exc)
            return False
        return body.get("status") == "ok"

    def draft_saver(self, form_id: str) -> Callable[[Mapping[str, Any]], Awaitable[None]]:
        """Return an async persistence callback that PUTs snapshots of ``form_id``.

        The blocking request runs in a worker thread so the event loop (and
        the debounce timer) stays responsive while the save is in flight.
        """

        async def _save(snapshot: Mapping[str, Any]) -> None:
            await asyncio.to_thread(self.update_form, form_id, snapshot)

        return _save

    # --------------------------------------------------------------------- #
    # Internal helpers (test seams)
    # --------------------------------------------------------------------- #
    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Client": "procintake",
            "X-Version": __version__,
        }
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def _call(
        self,
        method: str,
        path: str,
        *,
        payload: Mapping[str, Any] | None = None,
        query: Mapping[str, str] | None = None,
    ) -> Any:
        """Perform a request and unwrap the ``data`` member of the envelope."""
        body = self._request(method, path, payload=payload, query=query)
        if not body.get("success", False):
            raise ApiError(str(body.get("error") or body.get("message") or "request failed"))
        return body.get("data")

    def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Mapping[str, Any] | None = None,
        query: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """Perform an HTTP request and decode the JSON response.

        This method is intentionally kept small and synchronous, and serves as
        the main seam for unit tests: tests can monkeypatch :meth:`_request`
        to return a stubbed envelope without performing any real network I/O.

        Raises
        ------
        ApiError
            If the request fails for any reason, the status is not 2xx, or the
            response body cannot be decoded as JSON.
        """
        url = self.base_url.rstrip("/") + path
        if query:
            url += "?" + urllib.parse.urlencode(query)
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        request = urllib.request.Request(url=url, data=data, headers=self._headers(), method=method)
        logger.debug("%s %s", method, obfuscate_url(url))

        try:
            with urllib.request.urlopen(request, timeout=self.timeout_seconds) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            raise ApiError(_http_error_message(exc), status=exc.code) from exc
        except urllib.error.URLError as exc:
            raise ApiError(f"connection error: {exc.reason}") from exc
        except TimeoutError as exc:
            raise ApiError("request timed out") from exc

        try:
            decoded: dict[str, Any] = json.loads(raw.decode("utf-8")) if raw else {}
        except json.JSONDecodeError as exc:
            raise ApiError("failed to decode backend response as JSON") from exc
        return decoded


def _quote(segment: str) -> str:
    return urllib.parse.quote(segment, safe="")


def _http_error_message(exc: urllib.error.HTTPError) -> str:
    """Prefer the backend's own ``error`` text; fall back to the status line."""
    try:
        body = json.loads(exc.read().decode("utf-8", errors="ignore"))
    except (json.JSONDecodeError, OSError):
        body = None
    if isinstance(body, dict):
        detail = body.get("error") or body.get("message") or body.get("detail")
        if detail:
            return str(detail)
    return f"HTTP error {exc.code}: {exc.reason}"


__all__ = ["FormsApiClient", "obfuscate_url"]
