# tests/test_api_integration.py
"""
Integration Tests for the development forms backend.

Focus
-----
These tests verify the HTTP contract (envelope shape, status codes) and the
record lifecycle against the in-memory store.

Scenarios
---------
1. **Health Check**: Verify service is up.
2. **Lifecycle**: Submit -> Get -> Auto-save PUT -> Status change -> Delete.
3. **List view**: Search, status filter and lastKey paging.
4. **Error Handling**: 400 on incomplete submission, 404 on missing records.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from procintake import __version__
from procintake.api.app import create_app
from procintake.api.store import get_form_store


def _payload(name: str = "Invoice approval", department: str = "Finance") -> dict[str, Any]:
    return {
        "requesterName": "Ana",
        "department": department,
        "requestDate": "2025-01-10",
        "processName": name,
        "generalDescription": "d",
        "processObjective": "o",
        "mainSteps": "s",
        "tools": ["Excel"],
        "processOwner": "CFO",
        "mainParticipants": "AP",
        "beneficiaries": "Suppliers",
        "businessRules": "r",
        "requiredFunctionality": "f",
        "interfaceType": "web",
        "surveyReasons": ["automation"],
        "expectedResults": "e",
    }


@pytest.fixture  # type: ignore[misc]
def client() -> Generator[TestClient, None, None]:
    """Clean API client per test; the store singleton is cleared first."""
    get_form_store().clear()
    app = create_app()
    with TestClient(app) as c:
        yield c


def test_health_check(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == __version__
    assert data["environment"] in {"dev", "test", "prod"}


def test_record_lifecycle(client: TestClient) -> None:
    created = client.post("/forms", json=_payload())
    assert created.status_code == 201, created.text
    body = created.json()
    assert body["success"] is True
    form_id = body["data"]["id"]
    assert body["data"]["status"] == "pending"

    fetched = client.get(f"/forms/{form_id}").json()["data"]
    assert fetched["form"]["processName"] == "Invoice approval"

    # Auto-save style PUT: drafts are stored without submission validation.
    draft = {"processName": "Invoice approval v2", "department": ""}
    saved = client.put(f"/forms/{form_id}", json=draft)
    assert saved.status_code == 200
    assert saved.json()["data"]["form"]["processName"] == "Invoice approval v2"
    # Replaying the same body is harmless.
    assert client.put(f"/forms/{form_id}", json=draft).status_code == 200

    moved = client.patch(f"/forms/{form_id}/status", json={"status": "completed"})
    assert moved.json()["data"]["status"] == "completed"

    deleted = client.delete(f"/forms/{form_id}")
    assert deleted.json()["success"] is True
    assert client.get(f"/forms/{form_id}").status_code == 404


def test_list_search_filter_and_paging(client: TestClient) -> None:
    ids = [
        client.post("/forms", json=_payload(name, dept)).json()["data"]["id"]
        for name, dept in [("Payroll", "HR"), ("Hiring", "HR"), ("Invoices", "Finance")]
    ]
    client.patch(f"/forms/{ids[1]}/status", json={"status": "in_review"})

    hr = client.get("/forms", params={"search": "hr"}).json()["data"]
    assert hr["total"] == 2

    reviewing = client.get("/forms", params={"status": "in_review"}).json()["data"]
    assert [item["id"] for item in reviewing["items"]] == [ids[1]]

    first = client.get("/forms", params={"limit": 2}).json()["data"]
    assert first["count"] == 2 and first["lastKey"] == ids[1]
    rest = client.get("/forms", params={"limit": 2, "lastKey": first["lastKey"]}).json()["data"]
    assert [item["id"] for item in rest["items"]] == [ids[2]]
    assert rest["lastKey"] is None


def test_stats_endpoint(client: TestClient) -> None:
    client.post("/forms", json=_payload("A", "HR"))
    client.post("/forms", json=_payload("B", "HR"))
    data = client.get("/stats").json()["data"]
    assert data["total"] == 2
    assert data["byStatus"]["pending"] == 2
    assert data["byDepartment"] == {"HR": 2}


def test_incomplete_submission_is_400(client: TestClient) -> None:
    response = client.post("/forms", json={"processName": "Half done"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "required fields missing" in body["error"]


def test_missing_record_is_404(client: TestClient) -> None:
    response = client.get("/forms/ghost")
    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "message": None,
        "data": None,
        "error": "Form ghost not found",
    }


def test_invalid_status_is_422(client: TestClient) -> None:
    form_id = client.post("/forms", json=_payload()).json()["data"]["id"]
    response = client.patch(f"/forms/{form_id}/status", json={"status": "archived"})
    assert response.status_code == 422
    assert response.json()["success"] is False
