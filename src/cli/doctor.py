"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table

from adapters.graphql_client import QuestbookGraphQLSource
from core.config import AppSettings, write_user_env_vars
from core.interfaces.data_source import FetchError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_endpoint(settings: AppSettings) -> tuple[bool, str]:
    source = QuestbookGraphQLSource(settings)
    try:
        sections = await source.fetch_sections(settings.section_ids)
    except FetchError as exc:
        return False, str(exc)
    grants = sum(len(section.grants) for section in sections)
    return True, f"{len(sections)} sections, {grants} grants"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show the effective configuration."""

    settings = AppSettings()

    table = Table(title="grant-pulse Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("GraphQL URL", "OK", settings.graphql_url)
    table.add_row("Timeout", "OK", f"{settings.http_timeout_seconds:g}s")
    table.add_row("Default window", "OK", settings.default_window.label())
    table.add_row("Row cap", "OK", str(settings.result_limit))
    if settings.section_ids:
        table.add_row("Sections", "OK", ", ".join(settings.section_ids))
    else:
        table.add_row("Sections", "EMPTY", "No section ids configured -> nothing to show")

    # Connectivity
    ok_http, detail_http = asyncio.run(_check_endpoint(settings))
    table.add_row("Sections query", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not ok_http:
        raise typer.Exit(code=1)


@app.command(name="set-sections")
def set_sections(
    section_ids: list[str] = typer.Argument(..., help="Section ids to load, e.g. Arbitrum ENS."),
) -> None:
    """Store the section ids in the user config .env."""

    cleaned = [value.strip() for value in section_ids if value.strip()]
    if not cleaned:
        raise typer.BadParameter("at least one section id is required")

    env_path = write_user_env_vars({"GRANT_PULSE_SECTION_IDS": json.dumps(cleaned)})
    _console.print(f"[green]Saved sections to:[/green] {env_path}")
