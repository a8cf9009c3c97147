"""Formatting helpers shared by the text and HTML renderers.

The templates live in `adapters/templates`; this module only prepares the
values they display, so the numbers shown in the terminal, in the copied
summary and in the newsletter all come from the same functions.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Iterable, Sequence

from core.domain.models import FundTransfer, GrantApplication, Section, SectionReport
from core.services.aggregation import as_number, compute_dashboard_stats, section_usd_value


def format_currency(amount: float) -> str:
    """Scale to thousands and round half away from zero: 1500 -> "2K"."""

    value = Decimal(str(as_number(amount)))
    with localcontext() as ctx:
        # Room for every integer digit, however large the amount.
        ctx.prec = max(ctx.prec, value.adjusted() + 2)
        thousands = value / Decimal(1000)
        rounded = thousands.quantize(Decimal(1), rounding=ROUND_HALF_UP)
    if rounded == 0:
        rounded = Decimal(0)
    return f"{rounded}K"


def with_token(value: str, label: str | None) -> str:
    """Append the token label, if any, to an already formatted amount."""

    return f"{value} {label}" if label else value


def format_count(value: int) -> str:
    return f"{value:,}"


def format_report_date(moment: datetime) -> str:
    """Short numeric date (m/d/yyyy) used in the newsletter title."""

    return f"{moment.month}/{moment.day}/{moment.year}"


def build_section_reports(
    sections: Iterable[Section],
    transfers: Sequence[FundTransfer],
    applications: Sequence[GrantApplication],
) -> list[SectionReport]:
    """Aggregate every section and attach the USD value of its transfers."""

    sections = list(sections)
    stats = compute_dashboard_stats(sections, transfers, applications)
    return [
        SectionReport(
            section=section,
            stats=section_stats,
            usd_value=section_usd_value(section, transfers),
        )
        for section, section_stats in zip(sections, stats)
    ]

