"""Report rendering and export.

Why it lives in adapters:
- Text/HTML rendering is an infrastructure detail (Jinja2 templates).
- The Core only knows `Section`, `SectionStats` and `SectionReport`.

Both text renderers are total: given well-formed stats they always return a
string and touch nothing else. The `export_*` helpers only write their file.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.domain.models import Section, SectionReport, SectionStats
from core.domain.window import TimeWindow, utc_now
from core.services.aggregation import is_domain_accepting
from core.services.formatter import (
    format_count,
    format_currency,
    format_report_date,
    with_token,
)


_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

NEWSLETTER_RULE = "───────────────────────"


def _get_env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["currency"] = format_currency
    env.filters["with_token"] = with_token
    env.filters["number"] = format_count
    return env


@dataclass(frozen=True)
class SectionCard:
    """Per-section values the HTML cards need beyond the stats."""

    report: SectionReport
    logo_url: str | None
    accepting_domains: frozenset[str]


def render_section_summary(section: Section, stats: SectionStats) -> str:
    """Plain-text block for one section (what "copy stats" puts out)."""

    template = _get_env().get_template("section_summary.txt.j2")
    return template.render(section=section, stats=stats)


def render_newsletter(
    reports: Sequence[SectionReport],
    window: TimeWindow,
    now: datetime | None = None,
) -> str:
    """Full multi-section newsletter for `window`.

    The title carries the local calendar date of `now`.
    """

    now = now or utc_now()
    template = _get_env().get_template("newsletter.txt.j2")
    return template.render(
        reports=reports,
        period=window.label(),
        report_date=format_report_date(now.astimezone()),
        rule=NEWSLETTER_RULE,
    )


def build_section_cards(
    reports: Sequence[SectionReport],
    *,
    ipfs_gateway_url: str,
) -> list[SectionCard]:
    cards: list[SectionCard] = []
    for report in reports:
        section = report.section
        logo_url = None
        if section.logo_ipfs_hash:
            logo_url = ipfs_gateway_url.rstrip("/") + "/" + section.logo_ipfs_hash
        accepting = frozenset(
            domain
            for domain in report.stats.domain_groups
            if is_domain_accepting(section, domain)
        )
        cards.append(SectionCard(report=report, logo_url=logo_url, accepting_domains=accepting))
    return cards


def render_dashboard_html(
    reports: Sequence[SectionReport],
    window: TimeWindow,
    *,
    ipfs_gateway_url: str = "https://ipfs.io/ipfs/",
    only_accepting: bool = False,
    now: datetime | None = None,
) -> str:
    """Render the cards view as a self-contained HTML page."""

    now = now or utc_now()
    template = _get_env().get_template("dashboard.html")
    return template.render(
        cards=build_section_cards(reports, ipfs_gateway_url=ipfs_gateway_url),
        period=window.label(),
        generated_at=now.isoformat(timespec="seconds"),
        only_accepting=only_accepting,
    )


def export_text(text: str, output_path: Path) -> Path:
    """Write a rendered summary/newsletter to `output_path` (UTF-8)."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    return output_path


def export_dashboard_html(
    reports: Sequence[SectionReport],
    window: TimeWindow,
    output_path: Path,
    *,
    ipfs_gateway_url: str = "https://ipfs.io/ipfs/",
    only_accepting: bool = False,
    now: datetime | None = None,
) -> Path:
    """Export the cards view as HTML."""

    html = render_dashboard_html(
        reports,
        window,
        ipfs_gateway_url=ipfs_gateway_url,
        only_accepting=only_accepting,
        now=now,
    )
    return export_text(html, output_path)
