"""Contract for grant data sources.

Why Protocol:
- The controller only needs three async queries; the GraphQL adapter
  implements them, tests plug in an in-memory fake without inheritance.
- `FetchError` is part of the contract: implementations wrap every
  transport, HTTP and payload problem into it, so callers handle one kind.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from core.domain.models import FundTransfer, GrantApplication, Section


class FetchError(Exception):
    """A query could not produce data (network, HTTP status or payload)."""


@runtime_checkable
class GrantsDataSource(Protocol):
    """Minimal set of queries the dashboard runs.

    Design rules:
    - Every method is async because it does network I/O.
    - `lower`/`upper` are Unix seconds; results are capped by the source.
    """

    async def fetch_sections(self, section_ids: Sequence[str]) -> list[Section]:
        ...

    async def fetch_fund_transfers(
        self,
        grant_ids: Sequence[str],
        lower: int,
        upper: int,
    ) -> list[FundTransfer]:
        ...

    async def fetch_grant_applications(
        self,
        grant_ids: Sequence[str],
        lower: int,
        upper: int,
    ) -> list[GrantApplication]:
        ...
