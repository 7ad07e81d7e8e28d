"""
Request/response schemas of the forms backend.

Every endpoint answers with the same :class:`Envelope`, mirroring the JSON
shape the original serverless backend returned, so clients can branch on
``success`` without inspecting status codes.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from procintake.contracts.form import FormRecord, FormStatus


class Envelope(BaseModel):
    success: bool
    message: str | None = None
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, data: Any = None, message: str | None = None) -> Envelope:
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str) -> Envelope:
        return cls(success=False, error=error)


class StatusUpdate(BaseModel):
    status: FormStatus


class FormPage(BaseModel):
    """One page of the list view."""

    items: list[FormRecord] = Field(default_factory=list)
    total: int = 0
    count: int = 0
    last_key: str | None = Field(default=None, serialization_alias="lastKey")


__all__ = ["Envelope", "FormPage", "StatusUpdate"]
