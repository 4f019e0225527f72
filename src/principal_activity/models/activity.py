"""Derived activity models: events, bundles, timelines and summaries."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from principal_activity.models.records import (
    Contact,
    DistributorRelationship,
    Interaction,
    Opportunity,
    Principal,
    ProductAssociation,
)


class EventKind(str, Enum):
    INTERACTION = "interaction"
    OPPORTUNITY_CREATED = "opportunity_created"
    OPPORTUNITY_STAGE_CHANGED = "opportunity_stage_changed"
    PRODUCT_ASSOCIATED = "product_associated"
    DISTRIBUTOR_LINKED = "distributor_linked"


# Tie-break order for events sharing a timestamp
KIND_PRIORITY: dict[EventKind, int] = {
    EventKind.OPPORTUNITY_CREATED: 0,
    EventKind.OPPORTUNITY_STAGE_CHANGED: 1,
    EventKind.INTERACTION: 2,
    EventKind.PRODUCT_ASSOCIATED: 3,
    EventKind.DISTRIBUTOR_LINKED: 4,
}


class ActivityStatus(str, Enum):
    NO_ACTIVITY = "NO_ACTIVITY"
    ACTIVE = "ACTIVE"
    COOLING = "COOLING"
    DORMANT = "DORMANT"
    AT_RISK = "AT_RISK"


class EngagementTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActivityEvent(BaseModel):
    """Single point-in-time occurrence on a principal's timeline."""

    model_config = ConfigDict(frozen=True)

    principal_id: str
    kind: EventKind
    timestamp: datetime
    label: str
    reference_id: str = Field(..., description="ID of the source record")


class RawActivityBundle(BaseModel):
    """
    Everything fetched for one principal during a single aggregation.
    Never persisted; built fresh for each summary.
    """

    principal: Principal
    contacts: list[Contact] = Field(default_factory=list)
    interactions: list[Interaction] = Field(default_factory=list)
    opportunities: list[Opportunity] = Field(default_factory=list)
    product_associations: list[ProductAssociation] = Field(default_factory=list)
    distributor_relationships: list[DistributorRelationship] = Field(default_factory=list)


class Timeline(BaseModel):
    """Chronological events plus the count of records dropped for lacking a timestamp."""

    model_config = ConfigDict(frozen=True)

    principal_id: str
    events: tuple[ActivityEvent, ...] = ()
    skipped_events: int = 0


class PrincipalActivitySummary(BaseModel):
    """Per-principal activity summary consumed by the presentation layer."""

    model_config = ConfigDict(frozen=True)

    principal_id: str
    principal_name: str
    organization_type: Optional[str] = None
    is_active: bool = True
    principal_created_at: Optional[datetime] = None
    principal_updated_at: Optional[datetime] = None

    contact_count: int = 0
    total_opportunities: int = 0
    active_opportunities: int = 0
    won_opportunities: int = 0
    product_count: int = 0
    distributor_count: int = 0

    total_interactions: int = 0
    interactions_last_30_days: int = 0
    interactions_last_90_days: int = 0
    positive_interactions: int = 0
    last_interaction_type: Optional[str] = None
    avg_interaction_rating: float = 0.0
    follow_ups_required: int = 0
    overdue_follow_ups: int = 0
    next_follow_up_date: Optional[datetime] = None

    last_activity_date: Optional[datetime] = None
    activity_status: ActivityStatus = ActivityStatus.NO_ACTIVITY
    engagement_score: int = Field(default=0, ge=0, le=100)
    engagement_tier: EngagementTier = EngagementTier.LOW

    summary_generated_at: datetime
