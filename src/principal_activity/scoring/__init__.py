"""Deterministic engagement scoring and activity-status classification."""

from .engagement import (
    EngagementScore,
    breadth_term,
    classify_status,
    pipeline_term,
    recency_term,
    score_bundle,
    tier_for_score,
    volume_term,
)

__all__ = [
    "EngagementScore",
    "breadth_term",
    "classify_status",
    "pipeline_term",
    "recency_term",
    "score_bundle",
    "tier_for_score",
    "volume_term",
]
