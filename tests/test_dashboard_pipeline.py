"""
Tests for the dashboard controller: fetch ordering, failure isolation,
partial data and stale-response handling.
"""

from __future__ import annotations

import asyncio

from conftest import NOW, FakeSource, make_application, make_transfer
from core.domain.window import TimeWindow, query_timestamps
from core.services.dashboard_pipeline import DashboardController, PipelineHooks, load_dashboard
from core.services.view_state import DashboardState, FetchKind


def _clock():
    return NOW


class GatedSource(FakeSource):
    """Applications block until `release` is set."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.release = asyncio.Event()

    async def fetch_grant_applications(self, grant_ids, lower, upper):
        await self.release.wait()
        return await super().fetch_grant_applications(grant_ids, lower, upper)


class WindowedSource(FakeSource):
    """Returns a different transfer per window; the first call is slow."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.first_call = True
        self.slow_started = asyncio.Event()

    async def fetch_fund_transfers(self, grant_ids, lower, upper):
        self.calls.append(("transfers", list(grant_ids), lower, upper))
        if self.first_call:
            self.first_call = False
            self.slow_started.set()
            await asyncio.sleep(3600)
            return [make_transfer("g1", 1, transfer_id="stale")]
        return [make_transfer("g1", 7000, transfer_id="fresh")]


class TestLoad:
    def test_full_load(self, settings, arbitrum_section, ens_section):
        source = FakeSource(
            sections=[arbitrum_section, ens_section],
            transfers=[make_transfer("g1", 5000, label="ARB", usd=5100)],
            applications=[make_application("g1", 2000, 1000)],
        )

        controller = asyncio.run(
            load_dashboard(source=source, settings=settings, window=TimeWindow.WEEKLY, clock=_clock)
        )
        snapshot = controller.snapshot()

        assert [c[0] for c in source.calls] == ["sections", "transfers", "applications"]
        assert source.calls[0] == ("sections", ["Arbitrum", "ENS"])
        lower, upper = query_timestamps(TimeWindow.WEEKLY, NOW)
        assert source.calls[1] == ("transfers", ["g1", "g2"], lower, upper)
        assert source.calls[2] == ("applications", ["g1", "g2"], lower, upper)

        arbitrum = snapshot.reports[0]
        assert arbitrum.stats.totals.paid_amount == 5000
        assert arbitrum.stats.totals.allocated_amount == 3000
        assert arbitrum.usd_value == 5100
        assert snapshot.window is TimeWindow.WEEKLY
        assert snapshot.warnings == []
        assert not controller.state.is_loading()

    def test_accepting_only(self, settings, arbitrum_section, ens_section):
        source = FakeSource(sections=[arbitrum_section, ens_section])

        controller = asyncio.run(
            load_dashboard(source=source, settings=settings, only_accepting=True, clock=_clock)
        )

        assert [r.section.id for r in controller.snapshot().reports] == ["Arbitrum"]

    def test_uses_default_window_from_settings(self, settings, arbitrum_section):
        settings = settings.model_copy(update={"default_window": TimeWindow.OVERALL})

        controller = asyncio.run(
            load_dashboard(source=FakeSource(sections=[arbitrum_section]), settings=settings, clock=_clock)
        )

        assert controller.state.window is TimeWindow.OVERALL

    def test_no_grants_skips_activity_queries(self, settings):
        source = FakeSource(sections=[])

        asyncio.run(load_dashboard(source=source, settings=settings, clock=_clock))

        assert [c[0] for c in source.calls] == ["sections"]


class TestFailures:
    def test_fetch_hooks_bracket_every_fetch(self, settings, arbitrum_section):
        events: list[tuple] = []
        hooks = PipelineHooks(
            fetch_started=lambda kind: events.append(("started", kind)),
            fetch_finished=lambda kind, ok: events.append(("finished", kind, ok)),
        )
        source = FakeSource(sections=[arbitrum_section], fail=["applications"])

        asyncio.run(load_dashboard(source=source, settings=settings, hooks=hooks, clock=_clock))

        assert events[:2] == [("started", FetchKind.SECTIONS), ("finished", FetchKind.SECTIONS, True)]
        assert ("finished", FetchKind.TRANSFERS, True) in events
        assert ("finished", FetchKind.APPLICATIONS, False) in events
        assert len(events) == 6

    def test_transfer_failure_is_isolated(self, settings, arbitrum_section):
        warnings: list[str] = []
        source = FakeSource(
            sections=[arbitrum_section],
            applications=[make_application("g1", 2000, 1000)],
            fail=["transfers"],
        )

        controller = asyncio.run(
            load_dashboard(
                source=source,
                settings=settings,
                hooks=PipelineHooks(warning=warnings.append),
                clock=_clock,
            )
        )
        snapshot = controller.snapshot()

        assert warnings == ["Failed to load transfers"]
        assert snapshot.warnings == ["Failed to load transfers"]
        assert snapshot.reports[0].stats.totals.allocated_amount == 3000
        assert snapshot.reports[0].stats.totals.paid_amount == 0
        assert not controller.state.is_loading()

    def test_section_failure_stops_the_chain(self, settings):
        warnings: list[str] = []
        source = FakeSource(fail=["sections"])

        controller = asyncio.run(
            load_dashboard(
                source=source,
                settings=settings,
                hooks=PipelineHooks(warning=warnings.append),
                clock=_clock,
            )
        )

        assert warnings == ["Failed to load sections"]
        assert [c[0] for c in source.calls] == ["sections"]
        assert controller.snapshot().reports == []

    def test_failed_refresh_keeps_previous_data(self, settings, arbitrum_section):
        source = FakeSource(
            sections=[arbitrum_section],
            transfers=[make_transfer("g1", 5000)],
        )

        async def scenario():
            controller = DashboardController(source=source, settings=settings, clock=_clock)
            await controller.load()
            source.fail.add("transfers")
            controller.change_window(TimeWindow.MONTHLY)
            await controller.wait()
            return controller

        controller = asyncio.run(scenario())

        assert controller.state.window is TimeWindow.MONTHLY
        assert controller.snapshot().reports[0].stats.totals.paid_amount == 5000
        assert controller.warnings == ["Failed to load transfers"]


class TestConcurrency:
    def test_partial_data_then_recompute(self, settings, arbitrum_section):
        source = GatedSource(
            sections=[arbitrum_section],
            transfers=[make_transfer("g1", 5000)],
            applications=[make_application("g1", 2000)],
        )

        async def scenario():
            controller = DashboardController(source=source, settings=settings, clock=_clock)
            await controller.load_sections()
            for _ in range(5):
                await asyncio.sleep(0)
            partial = controller.snapshot()
            loading = controller.state.is_loading(FetchKind.APPLICATIONS)
            source.release.set()
            await controller.wait()
            return partial, loading, controller.snapshot()

        partial, loading, complete = asyncio.run(scenario())

        assert loading is True
        assert partial.reports[0].stats.totals.paid_amount == 5000
        assert partial.reports[0].stats.totals.allocated_amount == 0
        assert complete.reports[0].stats.totals.allocated_amount == 2000

    def test_window_change_cancels_stale_fetch(self, settings, arbitrum_section):
        source = WindowedSource(sections=[arbitrum_section])

        async def scenario():
            controller = DashboardController(
                source=source,
                settings=settings,
                state=DashboardState(window=TimeWindow.WEEKLY),
                clock=_clock,
            )
            await controller.load_sections()
            await source.slow_started.wait()
            assert controller.change_window(TimeWindow.OVERALL) is True
            assert controller.change_window(TimeWindow.OVERALL) is False
            await controller.wait()
            return controller

        controller = asyncio.run(scenario())

        assert [t.id for t in controller.state.transfers] == ["fresh"]
        assert controller.state.generations[FetchKind.TRANSFERS] == 2
        transfer_calls = [c for c in source.calls if c[0] == "transfers"]
        assert transfer_calls[0][2] == query_timestamps(TimeWindow.WEEKLY, NOW)[0]
        assert transfer_calls[1][2] == query_timestamps(TimeWindow.OVERALL, NOW)[0]
        assert not controller.state.is_loading()

    def test_window_change_before_sections_only_records_selection(self, settings):
        source = FakeSource()
        controller = DashboardController(source=source, settings=settings, clock=_clock)

        assert controller.change_window(TimeWindow.MONTHLY) is True
        assert source.calls == []
