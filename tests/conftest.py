"""
Pytest configuration and fixtures for grant-pulse tests.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Sequence

import pytest

from core.config import AppSettings
from core.domain.models import FundTransfer, GrantApplication, Section
from core.interfaces.data_source import FetchError

NOW = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed "current instant" used across tests."""
    return NOW


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> AppSettings:
    """Settings isolated from any .env on the machine."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    return AppSettings(_env_file=None, section_ids=["Arbitrum", "ENS"])


@pytest.fixture
def arbitrum_section() -> Section:
    return Section.model_validate(
        {
            "_id": "Arbitrum",
            "sectionName": "Arbitrum",
            "sectionLogoIpfsHash": "QmLogo",
            "grants": [
                {
                    "_id": "g1",
                    "title": "Infra",
                    "numberOfApplications": 10,
                    "numberOfApplicationsSelected": 3,
                    "acceptingApplications": True,
                },
            ],
        }
    )


@pytest.fixture
def ens_section() -> Section:
    return Section.model_validate(
        {
            "_id": "ENS",
            "sectionName": "ENS",
            "grants": [
                {
                    "_id": "g2",
                    "title": "Public Goods",
                    "numberOfApplications": 4,
                    "numberOfApplicationsSelected": 1,
                    "acceptingApplications": False,
                },
            ],
        }
    )


def make_transfer(
    grant_id: str | None,
    amount: object,
    *,
    label: str | None = None,
    created_at: str | None = "2024-03-30T10:00:00Z",
    usd: object = None,
    transfer_id: str = "t",
) -> FundTransfer:
    grant: dict | None = None
    if grant_id is not None:
        grant = {"_id": grant_id, "title": "x"}
        if label is not None:
            grant["reward"] = {"token": {"label": label}}
    return FundTransfer.model_validate(
        {
            "_id": transfer_id,
            "amount": amount,
            "tokenUSDValue": usd,
            "createdAt": created_at,
            "grant": grant,
        }
    )


def make_application(grant_id: str | None, *amounts: object, app_id: str = "a") -> GrantApplication:
    return GrantApplication.model_validate(
        {
            "_id": app_id,
            "grant": {"_id": grant_id} if grant_id is not None else None,
            "milestones": [{"amount": a} for a in amounts],
        }
    )


class FakeSource:
    """In-memory `GrantsDataSource` recording the calls it gets."""

    def __init__(
        self,
        sections: Sequence[Section] = (),
        transfers: Sequence[FundTransfer] = (),
        applications: Sequence[GrantApplication] = (),
        *,
        fail: Sequence[str] = (),
    ) -> None:
        self.sections = list(sections)
        self.transfers = list(transfers)
        self.applications = list(applications)
        self.fail = set(fail)
        self.calls: list[tuple] = []

    async def fetch_sections(self, section_ids):
        self.calls.append(("sections", list(section_ids)))
        await asyncio.sleep(0)
        if "sections" in self.fail:
            raise FetchError("sections unavailable")
        return list(self.sections)

    async def fetch_fund_transfers(self, grant_ids, lower, upper):
        self.calls.append(("transfers", list(grant_ids), lower, upper))
        await asyncio.sleep(0)
        if "transfers" in self.fail:
            raise FetchError("transfers unavailable")
        return list(self.transfers)

    async def fetch_grant_applications(self, grant_ids, lower, upper):
        self.calls.append(("applications", list(grant_ids), lower, upper))
        await asyncio.sleep(0)
        if "applications" in self.fail:
            raise FetchError("applications unavailable")
        return list(self.applications)
