"""Typed contracts (Pydantic v2) for intake forms and stored records."""

from __future__ import annotations

from procintake.contracts.form import FormRecord, FormStatus, Problem, ProcessForm, ProcessStats

__all__ = ["FormRecord", "FormStatus", "Problem", "ProcessForm", "ProcessStats"]
