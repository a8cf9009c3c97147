"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Lets the one-shot commands and the interactive mode share the same cards.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import SectionReport
from core.services.aggregation import is_domain_accepting
from core.services.formatter import format_count, format_currency, with_token


def print_banner(console: Console) -> None:
    """Print the welcome banner.

    Why here:
    - Avoids circular imports (main <-> doctor).
    - Lets non-interactive modes (file exports, pipes) skip it.
    """

    title = Text("GRANT-PULSE", style="bold cyan")
    subtitle = Text("Questbook grants • Proposals • Payouts", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_totals_table(report: SectionReport) -> Table:
    totals = report.stats.totals
    table = Table(show_header=True, header_style="dim", expand=True, box=None)
    table.add_column("Total Proposals", justify="center")
    table.add_column("Approved", justify="center")
    table.add_column("Total Paid", justify="center")
    table.add_row(
        Text(format_count(totals.total_proposals), style="bold"),
        Text(format_count(totals.approved_proposals), style="bold"),
        Text(format_currency(totals.paid_amount), style="bold"),
    )
    return table


def build_domains_table(report: SectionReport) -> Table:
    table = Table(title="Domain Breakdown", title_justify="left", expand=True)
    table.add_column("Domain", style="white", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Proposals", justify="right")
    table.add_column("Allocated", justify="right")
    table.add_column("Paid", justify="right")

    for domain, stats in report.stats.domain_groups.items():
        if is_domain_accepting(report.section, domain):
            status = Text("Accepting", style="green")
        else:
            status = Text("Closed", style="dim")
        table.add_row(
            domain,
            status,
            f"{format_count(stats.total_proposals)} ({format_count(stats.approved_proposals)} approved)",
            with_token(format_currency(stats.allocated_amount), stats.token_label),
            with_token(format_currency(stats.paid_amount), stats.token_label),
        )
    return table


def build_section_card(
    report: SectionReport,
    *,
    loading: bool = False,
    ipfs_gateway_url: str | None = None,
) -> Panel:
    """Card for one section: totals on top, domains below."""

    parts: list[object] = []
    if ipfs_gateway_url and report.section.logo_ipfs_hash:
        logo = ipfs_gateway_url.rstrip("/") + "/" + report.section.logo_ipfs_hash
        parts.append(Text(logo, style="dim"))
    parts.append(build_totals_table(report))
    if report.stats.domain_groups:
        parts.append(build_domains_table(report))
    if loading:
        parts.append(Text("Loading transfers/applications…", style="yellow"))

    title = Text(report.section.name or report.section.id, style="bold")
    return Panel(Group(*parts), title=title, title_align="left", border_style="bright_blue")


def build_newsletter_panel(text: str) -> Panel:
    """Panel wrapping the newsletter text, shown verbatim."""

    return Panel(Text(text), title=Text("Newsletter Format", style="bold"), border_style="bright_blue")
