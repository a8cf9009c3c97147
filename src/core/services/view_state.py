"""Dashboard view state.

All mutable state of the dashboard (selected window, toggles, fetched
collections, loading flags) lives in one explicit struct, changed only via
the transition methods below. The aggregation and formatting functions take
slices of this state as plain arguments.

Every fetch is stamped with a generation number per kind. A result is
applied only if its generation is still the latest one issued for that kind,
so a slow response to an old request cannot overwrite newer data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Sequence

from core.domain.models import FundTransfer, GrantApplication, Section
from core.domain.window import TimeWindow
from core.services.aggregation import (
    filter_accepting_sections,
    filter_transfers_in_window,
    section_grant_ids,
)


class FetchKind(str, Enum):
    SECTIONS = "sections"
    TRANSFERS = "transfers"
    APPLICATIONS = "applications"


class ViewMode(str, Enum):
    CARDS = "cards"
    NEWSLETTER = "newsletter"


@dataclass
class DashboardState:
    """Application state owned by the view layer."""

    window: TimeWindow = TimeWindow.WEEKLY
    view_mode: ViewMode = ViewMode.CARDS
    only_accepting: bool = False
    sections: list[Section] = field(default_factory=list)
    transfers: list[FundTransfer] = field(default_factory=list)
    applications: list[GrantApplication] = field(default_factory=list)
    loading: dict[FetchKind, bool] = field(
        default_factory=lambda: {kind: False for kind in FetchKind}
    )
    generations: dict[FetchKind, int] = field(
        default_factory=lambda: {kind: 0 for kind in FetchKind}
    )

    # --- transitions -------------------------------------------------------

    def on_window_changed(self, window: TimeWindow) -> bool:
        """Select a new window. Returns False when it is already selected."""

        if window is self.window:
            return False
        self.window = window
        return True

    def toggle_accepting(self) -> bool:
        self.only_accepting = not self.only_accepting
        return self.only_accepting

    def set_view_mode(self, mode: ViewMode) -> None:
        self.view_mode = mode

    def begin_fetch(self, kind: FetchKind) -> int:
        """Issue a new generation for `kind` and mark it as loading."""

        self.generations[kind] += 1
        self.loading[kind] = True
        return self.generations[kind]

    def is_current(self, kind: FetchKind, generation: int) -> bool:
        return self.generations[kind] == generation

    def on_fetch_succeeded(self, kind: FetchKind, generation: int, data: Sequence) -> bool:
        """Replace the collection of `kind` wholesale, unless the result is stale."""

        if not self.is_current(kind, generation):
            return False
        if kind is FetchKind.SECTIONS:
            self.sections = list(data)
        elif kind is FetchKind.TRANSFERS:
            self.transfers = list(data)
        else:
            self.applications = list(data)
        self.loading[kind] = False
        return True

    def on_fetch_failed(self, kind: FetchKind, generation: int) -> bool:
        """Clear the loading flag; already loaded data is kept."""

        if not self.is_current(kind, generation):
            return False
        self.loading[kind] = False
        return True

    # --- queries -----------------------------------------------------------

    def is_loading(self, kind: FetchKind | None = None) -> bool:
        if kind is None:
            return any(self.loading.values())
        return self.loading[kind]

    def visible_sections(self) -> list[Section]:
        if self.only_accepting:
            return filter_accepting_sections(self.sections)
        return list(self.sections)

    def windowed_transfers(self, now: datetime | None = None) -> list[FundTransfer]:
        return filter_transfers_in_window(self.transfers, self.window, now)

    def grant_ids(self) -> list[str]:
        return section_grant_ids(self.sections)
