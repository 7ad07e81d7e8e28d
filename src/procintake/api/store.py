"""
In-Memory Form Store for the development backend.

This module implements a simple dictionary-backed store for intake form
records.

Responsibilities
----------------
- **Create**: Generate UUIDs for new submissions and mark them PENDING.
- **Read**: Retrieve one record, or a filtered, paged listing.
- **Update**: Replace a form body (auto-saved drafts) or move its status.
- **Delete**: Remove a record.

Note on Persistence
-------------------
This is a volatile memory store. If the server restarts, all records are
lost. That is fine for local development and tests; a deployment would
point the client at a real backend instead.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import ClassVar

from procintake.contracts.form import FormRecord, FormStatus, ProcessForm, ProcessStats


class FormStore:
    """
    A simple dictionary-backed store for FormRecord objects.

    Records are kept in insertion order, which is also the listing order.
    Missing ids raise ``KeyError``; the app maps that to HTTP 404.
    """

    # Singleton instance placeholder (initialized in app startup)
    _instance: ClassVar[FormStore | None] = None

    def __init__(self) -> None:
        self._forms: dict[str, FormRecord] = {}

    @classmethod
    def get_instance(cls) -> FormStore:
        """Accessor for the global singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def clear(self) -> None:
        self._forms.clear()

    def __len__(self) -> int:
        return len(self._forms)

    def create(self, form: ProcessForm) -> FormRecord:
        """Register a new record in PENDING state and return it."""
        now = datetime.now(UTC)
        record = FormRecord(
            id=str(uuid.uuid4()),
            status=FormStatus.PENDING,
            created_at=now,
            updated_at=now,
            form=form,
        )
        self._forms[record.id] = record
        return record

    def get(self, form_id: str) -> FormRecord:
        try:
            return self._forms[form_id]
        except KeyError:
            raise KeyError(f"Form {form_id} not found") from None

    def replace(self, form_id: str, form: ProcessForm) -> FormRecord:
        """Overwrite the form body; idempotent for identical payloads."""
        record = self.get(form_id)
        updated = record.model_copy(update={"form": form, "updated_at": datetime.now(UTC)})
        self._forms[form_id] = updated
        return updated

    def set_status(self, form_id: str, status: FormStatus) -> FormRecord:
        record = self.get(form_id)
        updated = record.model_copy(update={"status": status, "updated_at": datetime.now(UTC)})
        self._forms[form_id] = updated
        return updated

    def delete(self, form_id: str) -> None:
        self.get(form_id)
        del self._forms[form_id]

    def query(
        self,
        *,
        search: str | None = None,
        status: FormStatus | None = None,
        limit: int | None = None,
        last_key: str | None = None,
    ) -> tuple[list[FormRecord], int, str | None]:
        """
        Filter and page the records.

        Returns
        -------
        tuple
            ``(page, total_matching, next_key)`` where ``next_key`` is the id
            of the last item of the page when more matches follow.
        """
        matches = [r for r in self._forms.values() if r.matches(search, status)]
        start = 0
        if last_key:
            ids = [r.id for r in matches]
            if last_key not in ids:
                raise ValueError(f"unknown lastKey: {last_key}")
            start = ids.index(last_key) + 1
        end = len(matches) if limit is None else start + limit
        page = matches[start:end]
        next_key = page[-1].id if page and end < len(matches) else None
        return page, len(matches), next_key

    def stats(self) -> ProcessStats:
        return ProcessStats.from_records(self._forms.values())


# Global accessor for convenience
def get_form_store() -> FormStore:
    return FormStore.get_instance()


__all__ = ["FormStore", "get_form_store"]
