"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict parsing of the GraphQL payloads at the edge, with the camelCase
  wire names kept as aliases and snake_case attributes in Python.
- Fetched entities are frozen snapshots: the aggregation layer only reads them.

Note:
- These models describe *what* the data is, not *how* it is fetched.
- Amount and counter fields keep the raw upstream value (numbers or numeric
  strings); coercion to numbers happens in `core.services.aggregation`.
- An unparseable `createdAt` becomes `None`, so only that row falls out of
  the time window instead of the whole response failing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.config import ConfigDict


_SNAPSHOT_CONFIG = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class Grant(BaseModel):
    """A funding track inside a section. Its title is the domain key."""

    model_config = _SNAPSHOT_CONFIG

    id: str = Field(..., alias="_id", description="Grant identifier.")
    title: str = Field(default="", description="Grant title, used as the domain key.")
    number_of_applications: Any = Field(
        default=None,
        alias="numberOfApplications",
        description="Total proposals submitted to the grant (raw).",
    )
    accepting_applications: bool = Field(
        default=False,
        alias="acceptingApplications",
        description="Whether the grant is currently open for proposals.",
    )
    number_of_applications_selected: Any = Field(
        default=None,
        alias="numberOfApplicationsSelected",
        description="Proposals that were approved (raw).",
    )


class Section(BaseModel):
    """Top-level funding program grouping one or more grants."""

    model_config = _SNAPSHOT_CONFIG

    id: str = Field(..., alias="_id", description="Section identifier.")
    name: str = Field(default="", alias="sectionName", description="Display name.")
    logo_ipfs_hash: str | None = Field(
        default=None,
        alias="sectionLogoIpfsHash",
        description="IPFS hash of the section logo.",
    )
    grants: tuple[Grant, ...] = Field(default_factory=tuple, description="Grants, in API order.")

    @field_validator("grants", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return () if value is None else value


class RewardToken(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    label: str | None = None


class GrantReward(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    token: RewardToken | None = None


class TransferGrantRef(BaseModel):
    """Grant embedded in a fund transfer row."""

    model_config = _SNAPSHOT_CONFIG

    id: str | None = Field(default=None, alias="_id")
    title: str | None = None
    reward: GrantReward | None = None


class FundTransfer(BaseModel):
    """An executed payment against a grant."""

    model_config = _SNAPSHOT_CONFIG

    id: str = Field(..., alias="_id", description="Transfer identifier.")
    amount: Any = Field(default=None, description="Token-denominated amount (raw).")
    sender: str | None = None
    to: str | None = None
    token_name: str | None = Field(default=None, alias="tokenName")
    token_usd_value: Any = Field(
        default=None,
        alias="tokenUSDValue",
        description="USD value reported for the transfer (raw).",
    )
    created_at: datetime | None = Field(default=None, alias="createdAt")
    grant: TransferGrantRef | None = None

    @field_validator("created_at", mode="wrap")
    @classmethod
    def _unparseable_as_none(
        cls, value: Any, handler: ValidatorFunctionWrapHandler
    ) -> datetime | None:
        try:
            return handler(value)
        except ValidationError:
            return None

    @property
    def grant_id(self) -> str | None:
        return self.grant.id if self.grant else None

    @property
    def token_label(self) -> str | None:
        """Reward-token label of the paid grant, if the row carries one."""

        if self.grant and self.grant.reward and self.grant.reward.token:
            return self.grant.reward.token.label or None
        return None


class ApplicationGrantRef(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    id: str | None = Field(default=None, alias="_id")


class Milestone(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    amount: Any = None


class GrantApplication(BaseModel):
    """An approved proposal; its milestones are the allocated funding."""

    model_config = _SNAPSHOT_CONFIG

    id: str = Field(..., alias="_id", description="Application identifier.")
    grant: ApplicationGrantRef | None = None
    milestones: tuple[Milestone, ...] = Field(default_factory=tuple)

    @field_validator("milestones", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return () if value is None else value

    @property
    def grant_id(self) -> str | None:
        return self.grant.id if self.grant else None


class DomainStats(BaseModel):
    """Per-domain rollup (derived, recomputed on every aggregation)."""

    total_proposals: int = 0
    approved_proposals: int = 0
    paid_amount: float = 0
    allocated_amount: float = 0
    token_label: str = ""


class SectionTotals(BaseModel):
    total_proposals: int = 0
    approved_proposals: int = 0
    paid_amount: float = 0
    allocated_amount: float = 0


class SectionStats(BaseModel):
    """Section rollup: totals plus the per-domain breakdown."""

    totals: SectionTotals = Field(default_factory=SectionTotals)
    domain_groups: dict[str, DomainStats] = Field(default_factory=dict)


class SectionReport(BaseModel):
    """A section paired with its computed stats, as exported to JSON."""

    section: Section
    stats: SectionStats
    usd_value: float = 0
