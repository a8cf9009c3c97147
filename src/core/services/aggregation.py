"""Stats aggregation engine.

Turns the raw API rows (sections, transfers, applications) into per-section
and per-domain rollups. Everything here is a pure function: no I/O, no
mutation of the inputs, and no exceptions for malformed numbers (they count
as zero).
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from core.domain.models import (
    DomainStats,
    FundTransfer,
    GrantApplication,
    Section,
    SectionStats,
    SectionTotals,
)
from core.domain.window import TimeWindow, window_bounds


def as_number(value: Any) -> float:
    """Coerce an upstream numeric field; anything unusable becomes 0."""

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _as_count(value: Any) -> int:
    return int(as_number(value))


def _milestones_total(application: GrantApplication) -> float:
    return sum((as_number(m.amount) for m in application.milestones), 0.0)


def compute_section_stats(
    section: Section,
    transfers: Sequence[FundTransfer],
    applications: Sequence[GrantApplication],
) -> SectionStats:
    """Aggregate one section into totals plus per-domain buckets.

    Domains are keyed by grant title. When several grants share a title the
    proposal counters keep the last grant's values, while paid/allocated
    amounts accumulate over all of them.
    """

    buckets: dict[str, dict[str, Any]] = {}

    for grant in section.grants:
        bucket = buckets.setdefault(
            grant.title,
            {
                "total_proposals": 0,
                "approved_proposals": 0,
                "paid_amount": 0.0,
                "allocated_amount": 0.0,
                "token_label": "",
            },
        )
        bucket["total_proposals"] = _as_count(grant.number_of_applications)
        bucket["approved_proposals"] = _as_count(grant.number_of_applications_selected)

        for transfer in transfers:
            if transfer.grant_id != grant.id:
                continue
            bucket["paid_amount"] += as_number(transfer.amount)
            label = transfer.token_label
            if label and not bucket["token_label"]:
                bucket["token_label"] = label

        bucket["allocated_amount"] += sum(
            (_milestones_total(app) for app in applications if app.grant_id == grant.id),
            0.0,
        )

    domain_groups = {title: DomainStats(**values) for title, values in buckets.items()}
    totals = SectionTotals(
        total_proposals=sum(_as_count(g.number_of_applications) for g in section.grants),
        approved_proposals=sum(_as_count(g.number_of_applications_selected) for g in section.grants),
        paid_amount=sum((d.paid_amount for d in domain_groups.values()), 0.0),
        allocated_amount=sum((d.allocated_amount for d in domain_groups.values()), 0.0),
    )
    return SectionStats(totals=totals, domain_groups=domain_groups)


def compute_dashboard_stats(
    sections: Iterable[Section],
    transfers: Sequence[FundTransfer],
    applications: Sequence[GrantApplication],
) -> list[SectionStats]:
    return [compute_section_stats(section, transfers, applications) for section in sections]


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def filter_transfers_in_window(
    transfers: Iterable[FundTransfer],
    window: TimeWindow,
    now: datetime | None = None,
) -> list[FundTransfer]:
    """Keep transfers created at or after the window's lower bound.

    Rows without a timestamp are dropped.
    """

    lower, _ = window_bounds(window, now)
    lower = _as_utc(lower)
    return [
        transfer
        for transfer in transfers
        if transfer.created_at is not None and _as_utc(transfer.created_at) >= lower
    ]


def filter_accepting_sections(sections: Iterable[Section]) -> list[Section]:
    """Restrict each section to accepting grants; drop sections left empty."""

    filtered: list[Section] = []
    for section in sections:
        grants = tuple(g for g in section.grants if g.accepting_applications)
        if grants:
            filtered.append(section.model_copy(update={"grants": grants}))
    return filtered


def section_grant_ids(sections: Iterable[Section]) -> list[str]:
    return [grant.id for section in sections for grant in section.grants]


def section_usd_value(section: Section, transfers: Iterable[FundTransfer]) -> float:
    """USD value of the transfers paid out by grants of `section`."""

    grant_ids = {grant.id for grant in section.grants}
    return sum(
        (as_number(t.token_usd_value) for t in transfers if t.grant_id in grant_ids),
        0.0,
    )


def is_domain_accepting(section: Section, domain: str) -> bool:
    """Badge state of a domain: the first grant carrying that title decides."""

    for grant in section.grants:
        if grant.title == domain:
            return grant.accepting_applications
    return False
