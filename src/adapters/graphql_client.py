"""Questbook GraphQL data source.

The three queries the dashboard needs (sections, fund transfers, grant
applications). Query text is produced by pure builder functions so it can be
inspected and tested without the network.

Every failure (transport error, timeout, non-2xx status, GraphQL `errors`,
missing `data`, rows that do not match the models) is raised as
`FetchError`; callers never see httpx or pydantic exceptions.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import FundTransfer, GrantApplication, Section
from core.interfaces.data_source import FetchError, GrantsDataSource

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class GraphQLResponseError(FetchError):
    """The endpoint answered, but not with usable data."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _string_list(values: Sequence[str]) -> str:
    # JSON string literals are valid GraphQL string literals.
    return "[" + ", ".join(json.dumps(str(v)) for v in values) + "]"


def build_sections_query(section_ids: Sequence[str]) -> str:
    return f"""
query Sections {{
  sections(filter: {{ _operators: {{ _id: {{ in: {_string_list(section_ids)} }} }} }}) {{
    _id
    sectionName
    sectionLogoIpfsHash
    grants {{
      _id
      title
      numberOfApplications
      acceptingApplications
      numberOfApplicationsSelected
    }}
  }}
}}
""".strip()


def build_fund_transfers_query(
    grant_ids: Sequence[str],
    lower: int,
    upper: int,
    *,
    limit: int = 10_000,
    status: str | None = None,
) -> str:
    status_filter = f"status: {json.dumps(status)}, " if status else ""
    return f"""
query FundTransfers {{
  fundTransfers(
    limit: {int(limit)},
    filter: {{
      {status_filter}_operators: {{
        grant: {{ in: {_string_list(grant_ids)} }},
        createdAtS: {{ gte: {int(lower)}, lte: {int(upper)} }}
      }}
    }}
  ) {{
    _id
    amount
    sender
    to
    tokenName
    tokenUSDValue
    createdAt
    grant {{
      _id
      title
      reward {{
        token {{
          label
        }}
      }}
    }}
  }}
}}
""".strip()


def build_grant_applications_query(
    grant_ids: Sequence[str],
    lower: int,
    upper: int,
    *,
    limit: int = 10_000,
    state: str = "approved",
) -> str:
    return f"""
query GrantApplications {{
  grantApplications(
    limit: {int(limit)},
    filter: {{
      state: {json.dumps(state)},
      _operators: {{
        grant: {{ in: {_string_list(grant_ids)} }},
        updatedAtS: {{ gte: {int(lower)}, lte: {int(upper)} }}
      }}
    }}
  ) {{
    _id
    grant {{
      _id
    }}
    milestones {{
      amount
    }}
  }}
}}
""".strip()


def extract_rows(payload: Any, field: str) -> list[dict[str, Any]]:
    """Pull `data.<field>` out of a GraphQL response body."""

    if not isinstance(payload, dict):
        raise GraphQLResponseError("GraphQL response is not a JSON object.")
    errors = payload.get("errors")
    if errors:
        messages = [
            str(e.get("message")) if isinstance(e, dict) else str(e)
            for e in errors
        ]
        raise GraphQLResponseError("GraphQL errors: " + "; ".join(messages))
    data = payload.get("data")
    if not isinstance(data, dict) or field not in data:
        raise GraphQLResponseError(f"GraphQL response has no data.{field}.")
    rows = data[field]
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise GraphQLResponseError(f"data.{field} is not a list.")
    return rows


def parse_rows(rows: list[dict[str, Any]], model: type[ModelT]) -> list[ModelT]:
    try:
        return [model.model_validate(row) for row in rows]
    except ValidationError as exc:
        raise GraphQLResponseError(f"Malformed {model.__name__} row: {exc}") from exc


class QuestbookGraphQLSource(GrantsDataSource):
    """`GrantsDataSource` backed by the Questbook GraphQL API."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._transport = transport

    async def execute(self, query: str, field: str) -> list[dict[str, Any]]:
        """POST one query and return the rows under `data.<field>`."""

        url = self._settings.graphql_url
        logger.debug("GraphQL %s -> %s", field, url)
        try:
            async with build_async_client(self._settings, transport=self._transport) as client:
                response = await client.post(url, json={"query": query})
        except httpx.HTTPError as exc:
            raise FetchError(f"Request for {field} failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise GraphQLResponseError(
                f"GraphQL endpoint returned HTTP {response.status_code} for {field}.",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise GraphQLResponseError(f"Response for {field} is not JSON.") from exc

        rows = extract_rows(payload, field)
        if len(rows) >= self._settings.result_limit:
            logger.debug("%s hit the %d row cap; results may be truncated", field, len(rows))
        return rows

    async def fetch_sections(self, section_ids: Sequence[str]) -> list[Section]:
        rows = await self.execute(build_sections_query(section_ids), "sections")
        return parse_rows(rows, Section)

    async def fetch_fund_transfers(
        self,
        grant_ids: Sequence[str],
        lower: int,
        upper: int,
    ) -> list[FundTransfer]:
        query = build_fund_transfers_query(
            grant_ids,
            lower,
            upper,
            limit=self._settings.result_limit,
            status=self._settings.transfer_status,
        )
        rows = await self.execute(query, "fundTransfers")
        return parse_rows(rows, FundTransfer)

    async def fetch_grant_applications(
        self,
        grant_ids: Sequence[str],
        lower: int,
        upper: int,
    ) -> list[GrantApplication]:
        query = build_grant_applications_query(
            grant_ids,
            lower,
            upper,
            limit=self._settings.result_limit,
            state=self._settings.application_state,
        )
        rows = await self.execute(query, "grantApplications")
        return parse_rows(rows, GrantApplication)
