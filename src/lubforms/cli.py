"""
lubforms command line.

Commands:
- lubforms inspect <form.json>: Show steps, rows, visibility and requiredness
- lubforms validate <form.json> <values.json>: Validate a value snapshot
- lubforms fetch <form_id>: Fetch a form definition from the API
- lubforms submit <form_id> <values.json>: Drive a full session and submit
- lubforms confirm <token>: Confirm a double opt-in submission
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from rich.text import Text

from lubforms import __version__
from lubforms.core.config import LubFormsConfig
from lubforms.core.errors import FormApiError
from lubforms.core.ir import FormDefinition, SessionStatus
from lubforms.runtime.client import LubFormsClient
from lubforms.runtime.logging import get_logger, setup_logging
from lubforms.runtime.renderers import get_field_renderer
from lubforms.runtime.schema_compiler import ValidationResult
from lubforms.runtime.session import FormSession, utm_from_url
from lubforms.runtime.step_partitioner import layout_rows
from lubforms.runtime.visibility import is_required, is_visible

app = typer.Typer(
    help="Inspect, validate and submit server-defined forms",
    no_args_is_help=True,
)

console = Console()
logger = get_logger("CLI")

_config = LubFormsConfig()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"lubforms {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="Log level (default: LUBFORMS_LOG_LEVEL)")
    ] = None,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", help="API base URL (default: LUBFORMS_BASE_URL)"),
    ] = None,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version"),
    ] = False,
) -> None:
    """Configure logging and API access for all commands."""
    global _config
    _config = LubFormsConfig.from_env(log_level=log_level, base_url=base_url)
    setup_logging(_config.log_level, _config.log_dir)


# =============================================================================
# Offline commands
# =============================================================================


@app.command("inspect")
def inspect_form(
    form_path: Annotated[Path, typer.Argument(help="Form definition JSON file")],
    values_path: Annotated[
        Path | None, typer.Option("--values", "-v", help="Value snapshot JSON file")
    ] = None,
) -> None:
    """Show steps, layout rows and per-field visibility/requiredness."""
    form = _load_form(form_path)
    values = _load_values(values_path) if values_path else {}
    session = FormSession.from_definition(form)
    session.set_values(values)
    values = session.values

    console.print(f"[bold]{form.name or form.id}[/bold]  layout={form.layout}")
    for index, view in enumerate(session.steps):
        table = Table(title=f"Step {index + 1}: {view.step.name or view.step.id}")
        table.add_column("Row", style="dim")
        table.add_column("Field")
        table.add_column("Type")
        table.add_column("Width")
        table.add_column("Visible")
        table.add_column("Required")
        table.add_column("Preview")

        shown = [f for f in view.fields if is_visible(f, values)]
        row_of = {
            f.name: row_index
            for row_index, row in enumerate(layout_rows(shown, form.layout), start=1)
            for f in row
        }
        for field in view.fields:
            renderer = get_field_renderer(field.field_type)
            if renderer is None:
                logger.warning("No renderer for field type %s", field.field_type)
            visible = field.name in row_of
            table.add_row(
                str(row_of.get(field.name, "-")),
                field.name,
                str(field.field_type),
                str(field.width),
                "[green]yes[/green]" if visible else "[dim]no[/dim]",
                "yes" if is_required(field, values) else "",
                Text(renderer.render(field, values.get(field.name)) if renderer else ""),
            )
        console.print(table)


@app.command("validate")
def validate_values(
    form_path: Annotated[Path, typer.Argument(help="Form definition JSON file")],
    values_path: Annotated[Path, typer.Argument(help="Value snapshot JSON file")],
    step: Annotated[
        int | None, typer.Option("--step", "-s", help="Validate only this step (1-based)")
    ] = None,
    output_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Validate a value snapshot against the compiled schema."""
    form = _load_form(form_path)
    session = FormSession.from_definition(form)
    session.set_values(_load_values(values_path))

    if step is not None:
        if not 1 <= step <= session.total_steps:
            console.print(f"[red]Step must be between 1 and {session.total_steps}[/red]")
            raise typer.Exit(2)
        result = session.validate_step(step - 1)
    else:
        result = session.validate()

    if output_json:
        console.print_json(
            json.dumps({"valid": result.valid, "errors": result.errors, "data": result.data},
                       default=str)
        )
    else:
        _print_result(result)

    if not result.valid:
        raise typer.Exit(1)


# =============================================================================
# API commands
# =============================================================================


@app.command("fetch")
def fetch_form(
    form_id: Annotated[str, typer.Argument(help="Form id")],
    output_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Fetch a form definition from the public API."""
    form = asyncio.run(_fetch(form_id))

    if output_json:
        console.print_json(form.model_dump_json(by_alias=True))
        return

    console.print(f"[bold]{form.name or form.id}[/bold]")
    if form.description:
        console.print(form.description)
    console.print(
        f"{len(form.active_fields)} active field(s), "
        f"{'multi-step' if form.is_multi_step else 'single step'}, layout={form.layout}"
    )


@app.command("submit")
def submit_form(
    form_id: Annotated[str, typer.Argument(help="Form id")],
    values_path: Annotated[Path, typer.Argument(help="Value snapshot JSON file")],
    referrer: Annotated[
        str | None, typer.Option("--referrer", help="Referrer URL; utm_* params are extracted")
    ] = None,
) -> None:
    """Load a form, fill it, step through it and submit."""
    values = _load_values(values_path)
    session = asyncio.run(_submit(form_id, values, referrer))

    if session.status == SessionStatus.SUCCESS and session.response is not None:
        console.print(f"[green]{session.response.message or 'Submitted'}[/green]")
        console.print(f"submission_id={session.response.submission_id}")
        if session.response.requires_confirmation:
            console.print("[yellow]Check your inbox to confirm the submission.[/yellow]")
        return

    if session.errors:
        _print_result(ValidationResult(valid=False, errors=session.errors))
    if session.error is not None:
        console.print(f"[red]{session.error.error}[/red]")
    raise typer.Exit(1)


@app.command("confirm")
def confirm_opt_in(token: Annotated[str, typer.Argument(help="Confirmation token")]) -> None:
    """Confirm a double opt-in submission."""
    result = asyncio.run(_confirm(token))
    style = "green" if result.success else "red"
    console.print(f"[{style}]{result.message or ('Confirmed' if result.success else 'Failed')}[/]")
    if not result.success:
        raise typer.Exit(1)


async def _fetch(form_id: str) -> FormDefinition:
    async with LubFormsClient(_config.base_url, timeout=_config.timeout) as client:
        try:
            return await client.get_form(form_id)
        except FormApiError as exc:
            _fail(exc)


async def _submit(form_id: str, values: dict[str, Any], referrer: str | None) -> FormSession:
    async with LubFormsClient(_config.base_url, timeout=_config.timeout) as client:
        session = FormSession(form_id, client)
        await session.load()
        if session.status == SessionStatus.ERROR:
            return session

        session.set_values(values)
        while not session.is_last_step:
            if not session.next_step():
                return session

        await session.submit(
            referrer=referrer,
            utm_parameters=utm_from_url(referrer) if referrer else None,
        )
        return session


async def _confirm(token: str) -> Any:
    async with LubFormsClient(_config.base_url, timeout=_config.timeout) as client:
        try:
            return await client.confirm_opt_in(token)
        except FormApiError as exc:
            _fail(exc)


# =============================================================================
# Helpers
# =============================================================================


def _load_form(path: Path) -> FormDefinition:
    try:
        return FormDefinition.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as exc:
        console.print(f"[red]Cannot read {path}: {exc}[/red]")
        raise typer.Exit(2) from exc
    except ValidationError as exc:
        console.print(f"[red]Invalid form definition in {path}[/red]")
        console.print(str(exc), markup=False)
        raise typer.Exit(2) from exc


def _load_values(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        console.print(f"[red]Cannot read values from {path}: {exc}[/red]")
        raise typer.Exit(2) from exc
    if not isinstance(data, dict):
        console.print(f"[red]{path} must contain a JSON object[/red]")
        raise typer.Exit(2)
    return data


def _print_result(result: ValidationResult) -> None:
    if result.valid:
        console.print("[green]Valid[/green]")
        return
    table = Table(title="Validation errors")
    table.add_column("Field")
    table.add_column("Message", style="red")
    for name, message in result.errors.items():
        table.add_row(name, message)
    console.print(table)


def _fail(exc: FormApiError) -> NoReturn:
    status = f" (HTTP {exc.status_code})" if exc.status_code else ""
    console.print(f"[red]{exc.api_error.error}{status}[/red]")
    raise typer.Exit(1) from exc


def main() -> None:
    app()


if __name__ == "__main__":
    main()
