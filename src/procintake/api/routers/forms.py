"""
API Routes for intake form records.

Endpoints
---------
- `GET /forms`: List records (search, status filter, limit, lastKey paging).
- `POST /forms`: Submit a new form (validated for submission).
- `GET /forms/{form_id}`: Fetch one record.
- `PUT /forms/{form_id}`: Replace the form body (used by auto-save; drafts
  are stored unvalidated).
- `PATCH /forms/{form_id}/status`: Move a record between review states.
- `DELETE /forms/{form_id}`: Remove a record.
- `GET /stats`: Dashboard aggregates.

Design Decisions
----------------
- **Envelope responses**: every route returns `Envelope`; errors raised as
  `KeyError` / `ValueError` are turned into 404 / 400 envelopes by the
  app-level exception handlers.
- **Idempotent PUT**: replaying the same draft body is harmless, which the
  auto-save engine relies on when it retries after a failure.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Query, status

from procintake.api.schemas import Envelope, FormPage, StatusUpdate
from procintake.api.store import get_form_store
from procintake.contracts.form import FormRecord, FormStatus, ProcessForm

router = APIRouter(tags=["Forms"])


def _dump(record: FormRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


@router.get("/forms", response_model=Envelope, summary="List form records")
async def list_forms(
    search: str | None = None,
    status_filter: Annotated[FormStatus | None, Query(alias="status")] = None,
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
    last_key: Annotated[str | None, Query(alias="lastKey")] = None,
) -> Envelope:
    """Filter by free-text search and status, then page with `limit`/`lastKey`."""
    page, total, next_key = get_form_store().query(
        search=search, status=status_filter, limit=limit, last_key=last_key
    )
    body = FormPage(items=page, total=total, count=len(page), last_key=next_key)
    return Envelope.ok(body.model_dump(mode="json", by_alias=True))


@router.post(
    "/forms",
    response_model=Envelope,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a new form",
)
async def create_form(form: ProcessForm) -> Envelope:
    record = get_form_store().create(form.validate_for_submit())
    return Envelope.ok(_dump(record), message="Form submitted")


@router.get("/forms/{form_id}", response_model=Envelope, summary="Get one form record")
async def get_form(form_id: str) -> Envelope:
    return Envelope.ok(_dump(get_form_store().get(form_id)))


@router.put("/forms/{form_id}", response_model=Envelope, summary="Replace a form body")
async def update_form(form_id: str, form: ProcessForm) -> Envelope:
    return Envelope.ok(_dump(get_form_store().replace(form_id, form)), message="Form saved")


@router.patch(
    "/forms/{form_id}/status", response_model=Envelope, summary="Change a record's status"
)
async def update_status(form_id: str, update: StatusUpdate) -> Envelope:
    return Envelope.ok(_dump(get_form_store().set_status(form_id, update.status)))


@router.delete("/forms/{form_id}", response_model=Envelope, summary="Delete a form record")
async def delete_form(form_id: str) -> Envelope:
    get_form_store().delete(form_id)
    return Envelope.ok(message=f"Form {form_id} deleted")


@router.get("/stats", response_model=Envelope, summary="Dashboard statistics")
async def stats() -> Envelope:
    return Envelope.ok(get_form_store().stats().model_dump(mode="json", by_alias=True))


__all__ = ["router"]
