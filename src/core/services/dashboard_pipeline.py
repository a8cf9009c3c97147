"""Dashboard fetch orchestration.

This module owns the fetching side of the dashboard: it triggers the three
queries, feeds their results into `DashboardState` and keeps side-effects
(printing, spinners) out of the core logic. The CLI only reacts to the
`PipelineHooks` callbacks and renders the state.

Concurrency model:
- The sections query runs first; transfers and applications depend on its
  grant ids and then run concurrently, in any completion order.
- Each fetch is an `asyncio.Task` keyed by kind. Launching a fetch of a kind
  cancels the superseded task of the same kind, and the generation check in
  `DashboardState` drops any stale result that still slips through.
- A failure is logged, reported through `hooks.warning` and otherwise
  ignored: sibling fetches keep running and loaded data is kept.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Sequence

from core.config import AppSettings
from core.domain.models import SectionReport
from core.domain.window import TimeWindow, query_timestamps, utc_now
from core.interfaces.data_source import FetchError, GrantsDataSource
from core.services.formatter import build_section_reports
from core.services.view_state import DashboardState, FetchKind

logger = logging.getLogger(__name__)


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (loading indicators, warnings)."""

    warning: Callable[[str], None] | None = None
    fetch_started: Callable[[FetchKind], None] | None = None
    fetch_finished: Callable[[FetchKind, bool], None] | None = None


@dataclass
class DashboardSnapshot:
    """What the views render: visible sections with their stats."""

    window: TimeWindow
    generated_at: datetime
    reports: list[SectionReport]
    warnings: list[str] = field(default_factory=list)


class DashboardController:
    """Drives `DashboardState` from a `GrantsDataSource`."""

    def __init__(
        self,
        *,
        source: GrantsDataSource,
        settings: AppSettings | None = None,
        state: DashboardState | None = None,
        hooks: PipelineHooks | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.source = source
        self.settings = settings or AppSettings()
        self.state = state or DashboardState(window=self.settings.default_window)
        self.hooks = hooks or PipelineHooks()
        self.warnings: list[str] = []
        self._clock = clock
        self._tasks: dict[FetchKind, asyncio.Task[bool]] = {}

    # --- fetch plumbing ----------------------------------------------------

    def _launch(
        self,
        kind: FetchKind,
        fetch: Callable[[], Awaitable[Sequence]],
    ) -> asyncio.Task[bool]:
        previous = self._tasks.get(kind)
        if previous is not None and not previous.done():
            logger.debug("Cancelling superseded %s fetch", kind.value)
            previous.cancel()
        generation = self.state.begin_fetch(kind)
        if self.hooks.fetch_started:
            self.hooks.fetch_started(kind)
        task = asyncio.create_task(self._run(kind, generation, fetch))
        self._tasks[kind] = task
        return task

    async def _run(
        self,
        kind: FetchKind,
        generation: int,
        fetch: Callable[[], Awaitable[Sequence]],
    ) -> bool:
        try:
            data = await fetch()
        except FetchError as exc:
            logger.warning("Error fetching %s: %s", kind.value, exc)
            applied = self.state.on_fetch_failed(kind, generation)
            if applied:
                message = f"Failed to load {kind.value}"
                self.warnings.append(message)
                if self.hooks.warning:
                    self.hooks.warning(message)
            if self.hooks.fetch_finished and applied:
                self.hooks.fetch_finished(kind, False)
            return False

        applied = self.state.on_fetch_succeeded(kind, generation, data)
        if applied:
            logger.debug("Loaded %d %s", len(data), kind.value)
        else:
            logger.debug("Discarded stale %s result (generation %d)", kind.value, generation)
        if self.hooks.fetch_finished and applied:
            self.hooks.fetch_finished(kind, True)
        return applied

    async def wait(self) -> None:
        """Wait for every in-flight fetch; cancelled ones are skipped."""

        pending = [task for task in self._tasks.values() if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # --- actions -----------------------------------------------------------

    async def load_sections(self) -> bool:
        """Fetch sections, then (re)load transfers and applications."""

        section_ids = list(self.settings.section_ids)
        task = self._launch(FetchKind.SECTIONS, lambda: self.source.fetch_sections(section_ids))
        try:
            loaded = await task
        except asyncio.CancelledError:
            if self._tasks.get(FetchKind.SECTIONS) is not task:
                return False
            raise
        if loaded and self.state.sections:
            self.refresh_activity()
        return loaded

    def refresh_activity(self) -> list[asyncio.Task[bool]]:
        """Launch the transfers and applications fetches for the current window."""

        grant_ids = self.state.grant_ids()
        if not grant_ids:
            return []
        lower, upper = query_timestamps(self.state.window, self._clock())
        return [
            self._launch(
                FetchKind.TRANSFERS,
                lambda: self.source.fetch_fund_transfers(grant_ids, lower, upper),
            ),
            self._launch(
                FetchKind.APPLICATIONS,
                lambda: self.source.fetch_grant_applications(grant_ids, lower, upper),
            ),
        ]

    def change_window(self, window: TimeWindow) -> bool:
        """Select `window` and refetch if it changed and sections are loaded."""

        if not self.state.on_window_changed(window):
            return False
        if self.state.sections:
            self.refresh_activity()
        return True

    async def load(self) -> DashboardSnapshot:
        await self.load_sections()
        await self.wait()
        return self.snapshot()

    # --- views -------------------------------------------------------------

    def snapshot(self, now: datetime | None = None) -> DashboardSnapshot:
        """Aggregate the current state; missing data counts as zero."""

        now = now or self._clock()
        transfers = self.state.windowed_transfers(now)
        reports = build_section_reports(
            self.state.visible_sections(),
            transfers,
            self.state.applications,
        )
        return DashboardSnapshot(
            window=self.state.window,
            generated_at=now,
            reports=reports,
            warnings=list(self.warnings),
        )


async def load_dashboard(
    *,
    source: GrantsDataSource,
    settings: AppSettings | None = None,
    window: TimeWindow | None = None,
    only_accepting: bool = False,
    hooks: PipelineHooks | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> DashboardController:
    """Build a controller, run the initial fetches and return it."""

    settings = settings or AppSettings()
    state = DashboardState(
        window=window or settings.default_window,
        only_accepting=only_accepting,
    )
    controller = DashboardController(
        source=source,
        settings=settings,
        state=state,
        hooks=hooks,
        clock=clock,
    )
    await controller.load()
    return controller
