"""Process intake form contracts.

This module defines the Pydantic v2 models exchanged between the editing
session, the HTTP client and the development backend:

- `Problem`      : one pain point (description + impact) in an ordered list.
- `ProcessForm`  : the questionnaire itself. Every field has a default so a
  half-filled form is a valid *draft*; `validate_for_submit()` enforces the
  fields required for a final submission.
- `FormStatus`   : review status of a submitted record.
- `FormRecord`   : a stored form with id, status and timestamps.
- `ProcessStats` : dashboard aggregates computed from a list of records.

Notes
-----
- Drafts are saved as-is; only final submission is validated.
- Wire names use camelCase aliases so payloads match the JavaScript clients
  of the original backend; Python code uses snake_case.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Fields a submitted form must not leave blank.
REQUIRED_TEXT_FIELDS: tuple[str, ...] = (
    "requester_name",
    "department",
    "request_date",
    "process_name",
    "general_description",
    "process_objective",
    "main_steps",
    "process_owner",
    "main_participants",
    "beneficiaries",
    "business_rules",
    "required_functionality",
    "interface_type",
    "expected_results",
)
REQUIRED_LIST_FIELDS: tuple[str, ...] = ("tools", "survey_reasons")


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Problem(_WireModel):
    """One entry of the ordered pain-point list."""

    id: int = Field(ge=1)
    problem: str = ""
    impact: str = ""

    def is_blank(self) -> bool:
        return not self.problem.strip() and not self.impact.strip()


class ProcessForm(_WireModel):
    """The intake questionnaire (general info, participants, rules, tooling, system requirements)."""

    # General information
    requester_name: str = ""
    department: str = ""
    request_date: str = Field(default_factory=lambda: date.today().isoformat())
    process_name: str = ""
    general_description: str = ""
    process_objective: str = ""
    main_steps: str = ""

    # Tooling
    tools: list[str] = Field(default_factory=list)
    other_tools: str | None = None

    # Participants
    process_owner: str = ""
    main_participants: str = ""
    beneficiaries: str = ""

    # Rules and compliance
    business_rules: str = ""
    exceptional_cases: str | None = None
    escalation_procedures: str | None = None
    regulations: str | None = None
    internal_policies: str | None = None
    security_requirements: str | None = None
    audits_and_controls: str | None = None
    kpi_metrics: str | None = None
    quantifiable_objectives: str | None = None

    # Desired system
    required_functionality: str = ""
    interface_type: str = ""
    required_integrations: str | None = None
    non_functional_requirements: str | None = None
    survey_reasons: list[str] = Field(default_factory=list)
    other_reason: str | None = None
    expected_results: str = ""
    support_systems: str | None = None
    databases_involved: str | None = None
    existing_integrations: str | None = None
    information_source: str | None = None
    information_destination: str | None = None

    problems: list[Problem] = Field(default_factory=lambda: [Problem(id=1)])

    def missing_fields(self) -> list[str]:
        """Return the names of required fields that are still blank."""
        missing = [name for name in REQUIRED_TEXT_FIELDS if not getattr(self, name).strip()]
        missing += [name for name in REQUIRED_LIST_FIELDS if not getattr(self, name)]
        return missing

    def validate_for_submit(self) -> ProcessForm:
        """Raise ``ValueError`` unless every required field is filled.

        Returns a copy without blank problem rows, which is what gets submitted.
        """
        missing = self.missing_fields()
        if missing:
            raise ValueError(f"required fields missing: {', '.join(missing)}")
        problems = [p for p in self.problems if not p.is_blank()]
        return self.model_copy(update={"problems": problems})

    def next_problem_id(self) -> int:
        return max((p.id for p in self.problems), default=0) + 1


class FormStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"


class FormRecord(_WireModel):
    """A stored form as returned by the backend."""

    id: str
    status: FormStatus = FormStatus.PENDING
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    form: ProcessForm = Field(default_factory=ProcessForm)

    def matches(self, search: str | None = None, status: FormStatus | None = None) -> bool:
        """List-view filter: case-insensitive search over name/requester/department."""
        if status is not None and self.status != status:
            return False
        if not search:
            return True
        needle = search.lower()
        haystack = (self.form.process_name, self.form.requester_name, self.form.department)
        return any(needle in value.lower() for value in haystack)


class RecentForm(_WireModel):
    id: str
    process_name: str
    requester_name: str
    created_at: datetime


class ProcessStats(_WireModel):
    """Dashboard aggregates."""

    total: int = 0
    by_status: dict[FormStatus, int] = Field(default_factory=dict)
    by_department: dict[str, int] = Field(default_factory=dict)
    recent: list[RecentForm] = Field(default_factory=list)

    @classmethod
    def from_records(cls, records: Iterable[FormRecord], recent: int = 5) -> ProcessStats:
        items = list(records)
        by_status = Counter(r.status for r in items)
        by_department = Counter(r.form.department or "Unassigned" for r in items)
        newest = sorted(items, key=lambda r: r.created_at, reverse=True)[:recent]
        return cls(
            total=len(items),
            by_status={s: by_status.get(s, 0) for s in FormStatus},
            by_department=dict(by_department),
            recent=[
                RecentForm(
                    id=r.id,
                    process_name=r.form.process_name,
                    requester_name=r.form.requester_name,
                    created_at=r.created_at,
                )
                for r in newest
            ],
        )


__all__ = [
    "FormRecord",
    "FormStatus",
    "Problem",
    "ProcessForm",
    "ProcessStats",
    "RecentForm",
    "REQUIRED_LIST_FIELDS",
    "REQUIRED_TEXT_FIELDS",
]
