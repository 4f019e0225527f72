"""Source records read from the record store (read-only to the engine)."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so comparisons never mix aware and naive."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Stages after which an opportunity no longer counts toward the pipeline
CLOSED_STAGES = ("Closed - Won", "Closed - Lost")


class SourceRecord(BaseModel):
    """Base for store rows: unknown columns are ignored, timestamps are UTC."""

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="after")
    @classmethod
    def _normalize_datetimes(cls, value):
        if isinstance(value, datetime):
            return as_utc(value)
        return value


class Principal(SourceRecord):
    """Organization acting as a manufacturer/brand."""

    id: str
    name: str
    organization_type: Optional[str] = None
    industry: Optional[str] = None
    status: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Contact(SourceRecord):
    id: str
    principal_id: str
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    updated_at: Optional[datetime] = None


class Interaction(SourceRecord):
    """Logged touchpoint with a principal."""

    id: str
    principal_id: str
    opportunity_id: Optional[str] = None
    subject: str = ""
    interaction_type: str = "EMAIL"  # EMAIL | CALL | IN_PERSON | DEMO | FOLLOW_UP | SAMPLE_DELIVERY
    status: str = "COMPLETED"  # SCHEDULED | COMPLETED | CANCELLED | NO_SHOW
    outcome: Optional[str] = None  # POSITIVE | NEUTRAL | NEGATIVE | NEEDS_FOLLOW_UP
    interaction_date: Optional[datetime] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    follow_up_required: bool = False
    follow_up_date: Optional[datetime] = None


class StageChange(SourceRecord):
    from_stage: Optional[str] = None
    to_stage: str
    changed_at: Optional[datetime] = None


class Opportunity(SourceRecord):
    """Sales opportunity with its recorded stage transitions."""

    id: str
    principal_id: str
    name: str = ""
    stage: str = "New Lead"
    is_won: bool = False
    probability_percent: Optional[int] = Field(default=None, ge=0, le=100)
    created_at: Optional[datetime] = None
    stage_history: list[StageChange] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return not self.is_won and self.stage not in CLOSED_STAGES


class ProductAssociation(SourceRecord):
    id: str
    principal_id: str
    product_id: str
    product_name: str = ""
    category: Optional[str] = None
    is_primary_principal: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None


class DistributorRelationship(SourceRecord):
    id: str
    principal_id: str
    distributor_id: str
    distributor_name: str = ""
    is_active: bool = True
    linked_at: Optional[datetime] = None
