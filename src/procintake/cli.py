# src/procintake/cli.py
"""
procintake Command Line Interface (CLI).

This module implements the user-facing terminal interface using `typer` and `rich`.

Features
--------
- **List view**: Browse submitted forms with search and status filters.
- **Record actions**: Show, delete, and move records between review states.
- **Dashboard**: Totals per status and department, most recent submissions.
- **Editing session**: Edit an existing record field by field with auto-save,
  a live save indicator, and an unsaved-changes guard on exit.
- **Dev backend**: Serve the in-memory forms API locally.

Usage
-----
    $ procintake serve
    $ procintake list --status pending --search billing
    $ procintake edit 3f1c... --delay 2
"""

from __future__ import annotations

import asyncio
import json
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from procintake.api.client import FormsApiClient
from procintake.autosave.state import AutoSaveConfig
from procintake.contracts.form import REQUIRED_LIST_FIELDS, FormRecord, FormStatus, ProcessForm
from procintake.core.errors import ApiError, ProcintakeError
from procintake.core.settings import load_settings
from procintake.host.drafts import DraftStore
from procintake.host.indicator import StatusTicker, render_status
from procintake.host.session import EditSession

# Ensure env vars (like PROCINTAKE_API_URL) are loaded before any logic runs
load_dotenv()

app = typer.Typer(
    help="procintake: process intake forms with auto-saving edits.",
    rich_markup_mode="markdown",
)
console = Console()

_STATUS_STYLE = {
    FormStatus.PENDING: "yellow",
    FormStatus.IN_REVIEW: "blue",
    FormStatus.COMPLETED: "green",
}

_EDIT_HELP = (
    "[dim]field=value[/dim] set a field (lists: comma separated) · "
    "[dim]+problem text | impact[/dim] · [dim]-problem ID[/dim] · "
    "[dim]:save[/dim] · [dim]:status[/dim] · [dim]:show[/dim] · [dim]:quit[/dim]"
)


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _client() -> FormsApiClient:
    """Helper: build the backend client from settings (patched in tests)."""
    return FormsApiClient.from_settings()


def _fail(message: str) -> typer.Exit:
    console.print(f"[bold red]❌ {message}[/bold red]")
    return typer.Exit(code=1)


def _status_badge(status: FormStatus) -> str:
    return f"[{_STATUS_STYLE[status]}]{status.value}[/{_STATUS_STYLE[status]}]"


def _render_record(record: FormRecord) -> None:
    """Helper: print every non-empty field of a record."""
    form = record.form
    console.rule(f"[bold]{form.process_name or 'Untitled process'}[/bold]")
    console.print(f"Id: {record.id}   Status: {_status_badge(record.status)}")
    console.print(
        f"Created: {record.created_at:%Y-%m-%d %H:%M}   "
        f"Updated: {record.updated_at:%Y-%m-%d %H:%M}\n"
    )
    _render_form(form)


def _render_form(form: ProcessForm) -> None:
    for name, value in form.model_dump(exclude={"problems"}).items():
        if value in (None, "", []):
            continue
        shown = ", ".join(value) if isinstance(value, list) else str(value)
        console.print(f"[bold cyan]{name}[/bold cyan]: {shown}")
    for problem in form.problems:
        if problem.is_blank():
            continue
        console.print(f" • #{problem.id} {problem.problem} [dim](impact: {problem.impact})[/dim]")


def _parse_value(name: str, raw: str) -> Any:
    """Helper: convert CLI text into the field's value."""
    if name in REQUIRED_LIST_FIELDS:
        return [part.strip() for part in raw.split(",") if part.strip()]
    annotation = ProcessForm.model_fields[name].annotation
    if raw == "" and annotation == (str | None):
        return None
    return raw


async def _handle_line(session: EditSession, line: str) -> bool:
    """Apply one editing command; returns False when the session should end."""
    if line in (":quit", ":q"):
        leave = session.confirm_leave(
            lambda: Confirm.ask("You have unsaved changes. Leave anyway?", default=False)
        )
        return not leave
    if line == ":save":
        saved = await session.save_now(force=True)
        console.print(render_status(session.status()))
        if not saved and session.state.last_error is None:
            console.print("[dim]Nothing was saved.[/dim]")
        return True
    if line == ":status":
        console.print(render_status(session.status()))
        return True
    if line == ":show":
        _render_form(session.form)
        return True
    if line.startswith("+problem"):
        text, _, impact = line.removeprefix("+problem").partition("|")
        row = session.add_problem(text.strip(), impact.strip())
        console.print(f"[dim]Added problem #{row.id}[/dim]")
        return True
    if line.startswith("-problem"):
        try:
            removed = session.remove_problem(int(line.removeprefix("-problem").strip()))
        except ValueError:
            removed = False
        if not removed:
            console.print("[yellow]No such problem (the last row is always kept).[/yellow]")
        return True
    name, sep, raw = line.partition("=")
    name = name.strip()
    if not sep or name not in ProcessForm.model_fields or name == "problems":
        console.print(f"[yellow]Unrecognized command.[/yellow] {_EDIT_HELP}")
        return True
    try:
        session.set_field(name, _parse_value(name, raw.strip()))
    except ValueError as exc:
        console.print(f"[yellow]Invalid value for {name}: {exc}[/yellow]")
    return True


async def _edit_loop(client: FormsApiClient, form_id: str, config: AutoSaveConfig) -> None:
    """Run an interactive editing session until the user quits."""
    record = await asyncio.to_thread(client.get_form, form_id)
    session = EditSession(
        record.form,
        form_id=form_id,
        save=client.draft_saver(form_id),
        config=config,
        drafts=DraftStore(),
        on_error=lambda message: console.print(f"[red]Save failed:[/red] {message}"),
    )
    try:
        restored = session.restore_draft()
    except ProcintakeError:
        session.close()
        raise
    if restored:
        console.print("[yellow]Restored unsaved local draft from a previous session.[/yellow]")

    ticker = StatusTicker(lambda: session.state, lambda s: console.print(render_status(s)))
    unsubscribe = session.subscribe(ticker.on_state)
    ticker.start()
    try:
        while True:
            try:
                line = await asyncio.to_thread(Prompt.ask, "[bold]edit[/bold]", console=console)
            except EOFError:
                line = ":quit"
            if not await _handle_line(session, line.strip()):
                break
    finally:
        await ticker.stop()
        unsubscribe()
        await session.aclose()


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command("list")  # type: ignore[misc]
def list_forms(
    search: Annotated[
        str | None,
        typer.Option("--search", "-s", help="Match process name, requester or department."),
    ] = None,
    status: Annotated[
        FormStatus | None, typer.Option("--status", help="Only records in this status.")
    ] = None,
    limit: Annotated[int | None, typer.Option("--limit", "-n", min=1, help="Page size.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print raw JSON.")] = False,
) -> None:
    """List submitted forms (the list view)."""
    try:
        records, next_key = _client().list_forms(search=search, status=status, limit=limit)
    except ApiError as e:
        raise _fail(f"Could not load forms: {e}") from e

    if as_json:
        console.print_json(json.dumps([r.model_dump(mode="json", by_alias=True) for r in records]))
        return

    table = Table(title=f"Forms ({len(records)})")
    table.add_column("Id", style="dim", no_wrap=True)
    table.add_column("Process")
    table.add_column("Requester")
    table.add_column("Department")
    table.add_column("Status")
    table.add_column("Created")
    for r in records:
        table.add_row(
            r.id,
            r.form.process_name,
            r.form.requester_name,
            r.form.department,
            _status_badge(r.status),
            f"{r.created_at:%Y-%m-%d}",
        )
    console.print(table)
    if next_key:
        console.print(f"[dim]More results available (lastKey={next_key}).[/dim]")


@app.command()  # type: ignore[misc]
def show(form_id: Annotated[str, typer.Argument(help="Record id.")]) -> None:
    """Show one record in full (the detail view)."""
    try:
        record = _client().get_form(form_id)
    except ApiError as e:
        raise _fail(f"Could not load form {form_id}: {e}") from e
    _render_record(record)


@app.command()  # type: ignore[misc]
def delete(
    form_id: Annotated[str, typer.Argument(help="Record id.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt.")] = False,
) -> None:
    """Delete a record."""
    if not yes and not Confirm.ask(f"Delete form {form_id}?", default=False):
        console.print("[dim]Cancelled.[/dim]")
        return
    try:
        _client().delete_form(form_id)
    except ApiError as e:
        raise _fail(f"Delete failed: {e}") from e
    console.print(f"[green]✅ Deleted {form_id}[/green]")


@app.command()  # type: ignore[misc]
def status(
    form_id: Annotated[str, typer.Argument(help="Record id.")],
    new_status: Annotated[FormStatus, typer.Argument(help="Target status.")],
) -> None:
    """Move a record to another review status."""
    try:
        record = _client().update_status(form_id, new_status)
    except ApiError as e:
        raise _fail(f"Status change failed: {e}") from e
    console.print(f"[green]✅ {record.id} is now[/green] {_status_badge(record.status)}")


@app.command()  # type: ignore[misc]
def stats() -> None:
    """Dashboard: totals per status and department, most recent submissions."""
    try:
        data = _client().stats()
    except ApiError as e:
        raise _fail(f"Could not load stats: {e}") from e

    summary = "  ".join(
        f"{_status_badge(s)}: {data.by_status.get(s, 0)}" for s in FormStatus
    )
    console.print(Panel.fit(f"[bold]Total: {data.total}[/bold]\n{summary}", title="Forms"))

    table = Table(title="By department")
    table.add_column("Department")
    table.add_column("Forms", justify="right")
    for dept, count in sorted(data.by_department.items(), key=lambda kv: -kv[1]):
        table.add_row(dept, str(count))
    console.print(table)

    for item in data.recent:
        when = f"{item.created_at:%Y-%m-%d}"
        console.print(f" • {item.process_name} [dim]({item.requester_name}, {when})[/dim]")


@app.command()  # type: ignore[misc]
def edit(
    form_id: Annotated[str, typer.Argument(help="Record id to edit.")],
    delay: Annotated[
        float | None,
        typer.Option("--delay", "-d", min=0, help="Auto-save debounce window in seconds."),
    ] = None,
) -> None:
    """
    Edit an existing record interactively with auto-save.

    Changes are saved in the background after a quiet period; `:save` saves
    immediately and `:quit` asks before discarding unsaved changes.
    """
    base = load_settings().autosave_config()
    config = AutoSaveConfig(delay=base.delay if delay is None else delay, enabled=base.enabled)
    console.print(
        Panel.fit(
            f"[bold cyan]Editing form[/bold cyan] {form_id}\n{_EDIT_HELP}",
            border_style="cyan",
        )
    )
    try:
        asyncio.run(_edit_loop(_client(), form_id, config))
    except ProcintakeError as e:
        raise _fail(f"Could not open form {form_id}: {e}") from e


@app.command()  # type: ignore[misc]
def serve(
    host: Annotated[str, typer.Option(help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Bind port.")] = 8000,
    reload: Annotated[bool, typer.Option(help="Reload on code changes.")] = False,
) -> None:
    """Run the in-memory development backend."""
    from procintake.api.server import main as run_server

    run_server(host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
