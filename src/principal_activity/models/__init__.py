"""Data models for source records, derived activity and rollups."""

from principal_activity.models.activity import (
    ActivityEvent,
    ActivityStatus,
    EngagementTier,
    EventKind,
    PrincipalActivitySummary,
    RawActivityBundle,
    Timeline,
)
from principal_activity.models.records import (
    Contact,
    DistributorRelationship,
    Interaction,
    Opportunity,
    Principal,
    ProductAssociation,
    StageChange,
)
from principal_activity.models.rollup import PopulationRollup, RankedPrincipal, RollupFilter
from principal_activity.models.settings import EngineSettings, ScoringWeights

__all__ = [
    "ActivityEvent",
    "ActivityStatus",
    "Contact",
    "DistributorRelationship",
    "EngagementTier",
    "EngineSettings",
    "EventKind",
    "Interaction",
    "Opportunity",
    "PopulationRollup",
    "Principal",
    "PrincipalActivitySummary",
    "ProductAssociation",
    "RankedPrincipal",
    "RawActivityBundle",
    "RollupFilter",
    "ScoringWeights",
    "StageChange",
    "Timeline",
]
