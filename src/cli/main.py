"""grant-pulse CLI (Typer + Rich).

Commands:
- `cards`: section cards in the terminal, optional HTML/JSON export.
- `newsletter`: newsletter text for every visible section.
- `summary`: plain-text stats block of one section.
- `interactive`: keyboard-driven dashboard (window, toggle, view switch).
- `doctor`: configuration and connectivity checks.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Prompt
from rich.status import Status

from adapters.graphql_client import QuestbookGraphQLSource
from adapters.json_exporter import export_snapshot_json
from adapters.report_exporter import (
    export_dashboard_html,
    export_text,
    render_newsletter,
    render_section_summary,
)
from cli import doctor
from cli.ui_components import (
    build_newsletter_panel,
    build_section_card,
    print_banner,
)
from core.config import AppSettings
from core.domain.window import TimeWindow
from core.interfaces.data_source import GrantsDataSource
from core.services.dashboard_pipeline import (
    DashboardController,
    DashboardSnapshot,
    PipelineHooks,
    load_dashboard,
)
from core.services.view_state import DashboardState, FetchKind, ViewMode

app = typer.Typer(no_args_is_help=True, help="Questbook grant analytics in the terminal.")
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)

_WINDOW_HELP = "Time window: weekly (w), monthly (m) or overall (o)."


def build_source(settings: AppSettings) -> GrantsDataSource:
    return QuestbookGraphQLSource(settings)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=_err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _parse_window(value: str | None, settings: AppSettings) -> TimeWindow:
    if value is None:
        return settings.default_window
    try:
        return TimeWindow.parse(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--window") from exc


def _warn(message: str) -> None:
    _err_console.print(f"[red]✖ {message}[/red]")


class LoadingReporter:
    """Shows which fetches are still running in the active spinner."""

    def __init__(self) -> None:
        self.status: Status | None = None
        self.pending: set[FetchKind] = set()

    def started(self, kind: FetchKind) -> None:
        self.pending.add(kind)
        self._refresh()

    def finished(self, kind: FetchKind, ok: bool) -> None:
        self.pending.discard(kind)
        self._refresh()

    def describe(self) -> str:
        names = ", ".join(kind.value for kind in FetchKind if kind in self.pending)
        return f"Loading {names}…" if names else "Loading grants data…"

    def _refresh(self) -> None:
        if self.status is not None:
            self.status.update(self.describe())

    def hooks(self) -> PipelineHooks:
        return PipelineHooks(warning=_warn, fetch_started=self.started, fetch_finished=self.finished)

    @contextmanager
    def spinner(self) -> Iterator[Status]:
        with _console.status(self.describe(), spinner="dots") as status:
            self.status = status
            try:
                yield status
            finally:
                self.status = None


def _load_snapshot(settings: AppSettings, window: TimeWindow, only_accepting: bool) -> DashboardSnapshot:
    reporter = LoadingReporter()
    with reporter.spinner():
        controller = asyncio.run(
            load_dashboard(
                source=build_source(settings),
                settings=settings,
                window=window,
                only_accepting=only_accepting,
                hooks=reporter.hooks(),
            )
        )
    return controller.snapshot()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr."),
) -> None:
    configure_logging(verbose)


@app.command()
def cards(
    window: str | None = typer.Option(None, "--window", "-w", help=_WINDOW_HELP),
    accepting: bool = typer.Option(False, "--accepting", "-a", help="Only grants accepting applications."),
    html: Path | None = typer.Option(None, "--html", help="Also export the cards as HTML."),
    json_path: Path | None = typer.Option(None, "--json", help="Also export the stats as JSON."),
) -> None:
    """Show one card per section with totals and the domain breakdown."""

    settings = AppSettings()
    selected = _parse_window(window, settings)
    snapshot = _load_snapshot(settings, selected, accepting)

    if _console.is_terminal:
        print_banner(_console)
    if not snapshot.reports:
        _console.print("[yellow]No sections to show.[/yellow]")
    for report in snapshot.reports:
        _console.print(build_section_card(report, ipfs_gateway_url=settings.ipfs_gateway_url))

    if html:
        path = export_dashboard_html(
            snapshot.reports,
            selected,
            html,
            ipfs_gateway_url=settings.ipfs_gateway_url,
            only_accepting=accepting,
            now=snapshot.generated_at,
        )
        _console.print(f"[green]HTML saved to:[/green] {path}")
    if json_path:
        path = export_snapshot_json(
            reports=snapshot.reports,
            window=selected,
            generated_at=snapshot.generated_at.isoformat(timespec="seconds"),
            output_path=json_path,
        )
        _console.print(f"[green]JSON saved to:[/green] {path}")


@app.command()
def newsletter(
    window: str | None = typer.Option(None, "--window", "-w", help=_WINDOW_HELP),
    accepting: bool = typer.Option(False, "--accepting", "-a", help="Only grants accepting applications."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the text to a file."),
) -> None:
    """Print the newsletter-format report for every section."""

    settings = AppSettings()
    selected = _parse_window(window, settings)
    snapshot = _load_snapshot(settings, selected, accepting)
    text = render_newsletter(snapshot.reports, selected, snapshot.generated_at)

    if output:
        export_text(text, output)
        _console.print(f"[green]Newsletter saved to:[/green] {output}")
        return
    typer.echo(text, nl=False)


@app.command()
def summary(
    section: str = typer.Argument(..., help="Section id or name (case-insensitive)."),
    window: str | None = typer.Option(None, "--window", "-w", help=_WINDOW_HELP),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the text to a file."),
) -> None:
    """Print the stats block of one section, ready to paste."""

    settings = AppSettings()
    selected = _parse_window(window, settings)
    snapshot = _load_snapshot(settings, selected, only_accepting=False)

    wanted = section.strip().lower()
    match = next(
        (
            r
            for r in snapshot.reports
            if wanted in (r.section.id.lower(), r.section.name.lower())
        ),
        None,
    )
    if match is None:
        _warn(f"Section not found: {section}")
        raise typer.Exit(code=1)

    text = render_section_summary(match.section, match.stats)
    if output:
        export_text(text, output)
        _console.print(f"[green]Summary saved to:[/green] {output}")
        return
    typer.echo(text, nl=False)


def _render_state(controller: DashboardController, settings: AppSettings) -> None:
    snapshot = controller.snapshot()
    state = controller.state
    _console.rule(
        f"{state.window.label()} • {state.view_mode.value}"
        + (" • accepting only" if state.only_accepting else "")
    )
    if state.view_mode is ViewMode.NEWSLETTER:
        text = render_newsletter(snapshot.reports, state.window, snapshot.generated_at)
        _console.print(build_newsletter_panel(text))
        return
    if not snapshot.reports:
        _console.print("[yellow]No sections to show.[/yellow]")
    loading = state.is_loading(FetchKind.TRANSFERS) or state.is_loading(FetchKind.APPLICATIONS)
    for report in snapshot.reports:
        _console.print(
            build_section_card(report, loading=loading, ipfs_gateway_url=settings.ipfs_gateway_url)
        )


async def _interactive(settings: AppSettings, window: TimeWindow, accepting: bool) -> None:
    reporter = LoadingReporter()
    controller = DashboardController(
        source=build_source(settings),
        settings=settings,
        state=DashboardState(window=window, only_accepting=accepting),
        hooks=reporter.hooks(),
    )
    with reporter.spinner():
        await controller.load()

    actions = {
        "w": "weekly",
        "m": "monthly",
        "o": "overall",
        "a": "toggle accepting",
        "v": "switch view",
        "r": "reload",
        "e": "export newsletter",
        "q": "quit",
    }
    prompt = " ".join(f"[bold]{key}[/bold]={label}" for key, label in actions.items())

    while True:
        _render_state(controller, settings)
        choice = await asyncio.to_thread(
            Prompt.ask, prompt, choices=list(actions), default="q", console=_console
        )
        if choice == "q":
            break
        if choice in ("w", "m", "o"):
            if controller.change_window(TimeWindow.parse(choice)):
                with reporter.spinner():
                    await controller.wait()
        elif choice == "a":
            controller.state.toggle_accepting()
        elif choice == "v":
            mode = ViewMode.NEWSLETTER if controller.state.view_mode is ViewMode.CARDS else ViewMode.CARDS
            controller.state.set_view_mode(mode)
        elif choice == "r":
            with reporter.spinner():
                await controller.load()
        elif choice == "e":
            raw = await asyncio.to_thread(
                Prompt.ask, "Output file", default="newsletter.txt", console=_console
            )
            snapshot = controller.snapshot()
            text = render_newsletter(snapshot.reports, controller.state.window, snapshot.generated_at)
            path = export_text(text, Path(raw))
            _console.print(f"[green]All stats saved in newsletter format to:[/green] {path}")


@app.command()
def interactive(
    window: str | None = typer.Option(None, "--window", "-w", help=_WINDOW_HELP),
    accepting: bool = typer.Option(False, "--accepting", "-a", help="Start with only accepting grants."),
) -> None:
    """Interactive dashboard: change window, toggle filters, switch views."""

    settings = AppSettings()
    selected = _parse_window(window, settings)
    if _console.is_terminal:
        print_banner(_console)
    asyncio.run(_interactive(settings, selected, accepting))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
