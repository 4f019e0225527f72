"""Population rollup and rollup filter models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from principal_activity.models.activity import ActivityStatus, EngagementTier


class RankedPrincipal(BaseModel):
    """Entry in a rollup's top-N ranking."""

    model_config = ConfigDict(frozen=True)

    rank: int
    principal_id: str
    principal_name: str
    engagement_score: int
    activity_status: ActivityStatus
    last_activity_date: Optional[datetime] = None


def _zero_status_counts() -> dict[ActivityStatus, int]:
    return {status: 0 for status in ActivityStatus}


def _zero_tier_counts() -> dict[EngagementTier, int]:
    return {tier: 0 for tier in EngagementTier}


class PopulationRollup(BaseModel):
    """Cross-principal statistics over a batch of summaries."""

    model_config = ConfigDict(frozen=True)

    total_principals: int = 0
    status_counts: dict[ActivityStatus, int] = Field(default_factory=_zero_status_counts)
    tier_counts: dict[EngagementTier, int] = Field(default_factory=_zero_tier_counts)
    average_engagement_score: float = 0.0
    top_principals: list[RankedPrincipal] = Field(default_factory=list)
    principals_with_products: int = 0
    principals_with_opportunities: int = 0
    pending_follow_ups: int = 0
    failed_principal_ids: list[str] = Field(default_factory=list)


class RollupFilter(BaseModel):
    """Optional narrowing of the population before a rollup is computed."""

    activity_statuses: list[ActivityStatus] = Field(default_factory=list)
    organization_types: list[str] = Field(default_factory=list)
    has_opportunities: Optional[bool] = None
    has_products: Optional[bool] = None
    min_engagement_score: Optional[int] = Field(default=None, ge=0, le=100)
    max_engagement_score: Optional[int] = Field(default=None, ge=0, le=100)
    search: Optional[str] = Field(default=None, description="Case-insensitive name substring")
    active_only: bool = False

    @model_validator(mode="after")
    def _check_score_range(self) -> "RollupFilter":
        if (
            self.min_engagement_score is not None
            and self.max_engagement_score is not None
            and self.min_engagement_score > self.max_engagement_score
        ):
            raise ValueError("min_engagement_score must not exceed max_engagement_score")
        return self

    def is_empty(self) -> bool:
        return self == RollupFilter()
