# tests/test_cli.py
"""
Tests for the procintake command-line interface (CLI).

Scope
-----
1.  **Command Registration**: `--help` lists the record commands.
2.  **Record actions**: list / show / delete / status against a mocked client.
3.  **Editing session**: scripted stdin drives `edit` through save and quit.
4.  **Error Handling**: backend failures exit with code 1.

The backend client is replaced by patching `procintake.cli._client`, so no
HTTP traffic happens. `result.output` is used since Typer writes usage
errors to stderr.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from procintake.cli import app
from procintake.contracts.form import FormRecord, FormStatus, ProcessForm, ProcessStats
from procintake.core.errors import ApiError
from procintake.core.settings import load_settings


def _record(status: FormStatus = FormStatus.PENDING) -> FormRecord:
    form = ProcessForm(process_name="Invoice approval", requester_name="Ana", department="Finance")
    return FormRecord(id="f-1", status=status, form=form)


@pytest.fixture  # type: ignore[misc]
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture  # type: ignore[misc]
def client() -> Any:
    mock = MagicMock()
    with patch("procintake.cli._client", return_value=mock):
        yield mock


@pytest.fixture  # type: ignore[misc]
def draft_dir(tmp_path: Path, monkeypatch: Any) -> Any:
    """Point the local draft store at a temp dir for the edit command."""
    monkeypatch.setenv("PROCINTAKE_DRAFT_DIR", str(tmp_path / "drafts"))
    load_settings.cache_clear()
    yield tmp_path / "drafts"
    load_settings.cache_clear()


def test_cli_help_shows_usage(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0, f"Help failed: {result.output}"
    for command in ("list", "show", "edit", "stats", "serve"):
        assert command in result.output


def test_list_renders_table(runner: CliRunner, client: MagicMock) -> None:
    client.list_forms.return_value = ([_record()], "f-1")

    result = runner.invoke(app, ["list", "--status", "pending", "-s", "invoice"])

    assert result.exit_code == 0, result.output
    assert "Invoice" in result.output
    assert "lastKey=f-1" in result.output
    client.list_forms.assert_called_once_with(
        search="invoice", status=FormStatus.PENDING, limit=None
    )


def test_show_prints_fields(runner: CliRunner, client: MagicMock) -> None:
    client.get_form.return_value = _record(FormStatus.IN_REVIEW)

    result = runner.invoke(app, ["show", "f-1"])

    assert result.exit_code == 0, result.output
    assert "in_review" in result.output
    assert "requester_name" in result.output


def test_delete_with_yes_skips_prompt(runner: CliRunner, client: MagicMock) -> None:
    result = runner.invoke(app, ["delete", "f-1", "--yes"])
    assert result.exit_code == 0, result.output
    client.delete_form.assert_called_once_with("f-1")


def test_delete_cancelled_at_prompt(runner: CliRunner, client: MagicMock) -> None:
    result = runner.invoke(app, ["delete", "f-1"], input="n\n")
    assert result.exit_code == 0, result.output
    assert "Cancelled" in result.output
    client.delete_form.assert_not_called()


def test_status_command(runner: CliRunner, client: MagicMock) -> None:
    client.update_status.return_value = _record(FormStatus.COMPLETED)

    result = runner.invoke(app, ["status", "f-1", "completed"])

    assert result.exit_code == 0, result.output
    client.update_status.assert_called_once_with("f-1", FormStatus.COMPLETED)
    assert "completed" in result.output


def test_stats_dashboard(runner: CliRunner, client: MagicMock) -> None:
    client.stats.return_value = ProcessStats.from_records([_record(), _record(FormStatus.COMPLETED)])

    result = runner.invoke(app, ["stats"])

    assert result.exit_code == 0, result.output
    assert "Total: 2" in result.output
    assert "Finance" in result.output


def test_backend_error_exits_with_code_1(runner: CliRunner, client: MagicMock) -> None:
    client.get_form.side_effect = ApiError("Form ghost not found", status=404)

    result = runner.invoke(app, ["show", "ghost"])

    assert result.exit_code == 1
    assert "Form ghost not found" in result.output


def test_edit_session_saves_and_quits(runner: CliRunner, client: MagicMock, draft_dir: Path) -> None:
    saved: list[dict[str, Any]] = []

    async def save(snapshot: dict[str, Any]) -> None:
        saved.append(snapshot)

    client.get_form.return_value = _record()
    client.draft_saver.return_value = save

    result = runner.invoke(
        app,
        ["edit", "f-1", "--delay", "60"],
        input="process_name=Invoice approval v2\ntools=Excel, SAP\n:save\n:quit\n",
    )

    assert result.exit_code == 0, result.output
    client.draft_saver.assert_called_once_with("f-1")
    assert len(saved) == 1
    assert saved[0]["process_name"] == "Invoice approval v2"
    assert saved[0]["tools"] == ["Excel", "SAP"]
    assert "Saved" in result.output


def test_edit_failed_save_keeps_local_draft(
    runner: CliRunner, client: MagicMock, draft_dir: Path
) -> None:
    async def save(snapshot: dict[str, Any]) -> None:
        raise ApiError("backend unavailable", status=503)

    client.get_form.return_value = _record()
    client.draft_saver.return_value = save

    # ":quit" asks because the change is still unsaved; "y" confirms leaving.
    result = runner.invoke(
        app,
        ["edit", "f-1", "--delay", "60"],
        input="department=Treasury\n:save\n:quit\ny\n",
    )

    assert result.exit_code == 0, result.output
    assert "backend unavailable" in result.output
    assert (draft_dir / "f-1.json").exists()


def test_edit_unknown_form_exits_with_code_1(runner: CliRunner, client: MagicMock) -> None:
    client.get_form.side_effect = ApiError("Form ghost not found", status=404)

    result = runner.invoke(app, ["edit", "ghost"])

    assert result.exit_code == 1
    assert "Could not open form ghost" in result.output


def test_edit_with_corrupt_local_draft_exits_with_code_1(
    runner: CliRunner, client: MagicMock, draft_dir: Path
) -> None:
    draft_dir.mkdir(parents=True)
    (draft_dir / "f-1.json").write_text("{not json", encoding="utf-8")
    client.get_form.return_value = _record()

    result = runner.invoke(app, ["edit", "f-1"], input=":quit\n")

    assert result.exit_code == 1
    assert "Could not open form f-1" in result.output
