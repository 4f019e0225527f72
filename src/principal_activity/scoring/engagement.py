"""Engagement score terms, activity-status classification and tiers."""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from principal_activity.models.activity import ActivityStatus, EngagementTier, RawActivityBundle
from principal_activity.models.records import as_utc
from principal_activity.models.settings import ScoringWeights

from .metrics import (
    active_distributor_count,
    active_opportunity_count,
    active_product_count,
    days_between,
    interactions_within,
    last_activity_at,
    overdue_follow_ups,
)


@dataclass(frozen=True)
class EngagementScore:
    """Result of scoring one bundle at one instant."""

    score: int  # 0-100
    status: ActivityStatus
    tier: EngagementTier
    days_since_last_activity: Optional[float]
    recency: float
    volume: float
    pipeline: float
    breadth: float


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def recency_term(days_since_last_activity: Optional[float], weights: ScoringWeights) -> float:
    """Linear decay from recency_max at day 0 to zero at recency_window_days."""
    if days_since_last_activity is None:
        return 0.0
    raw = weights.recency_max * max(0.0, 1 - days_since_last_activity / weights.recency_window_days)
    return _clamp(raw, 0.0, weights.recency_max)


def volume_term(interactions_last_30_days: int, weights: ScoringWeights) -> float:
    return _clamp(weights.volume_per_interaction * interactions_last_30_days, 0.0, weights.volume_max)


def pipeline_term(active_opportunities: int, weights: ScoringWeights) -> float:
    return _clamp(weights.pipeline_per_opportunity * active_opportunities, 0.0, weights.pipeline_max)


def breadth_term(product_count: int, distributor_count: int, weights: ScoringWeights) -> float:
    return _clamp(
        weights.breadth_per_relationship * (product_count + distributor_count),
        0.0,
        weights.breadth_max,
    )


def classify_status(
    days_since_last_activity: Optional[float],
    has_overdue_follow_up: bool,
    weights: ScoringWeights,
) -> ActivityStatus:
    """
    Bucket a principal by recency. COOLING or DORMANT principals with an overdue
    follow-up are reported as AT_RISK instead.
    """
    if days_since_last_activity is None:
        return ActivityStatus.NO_ACTIVITY
    if days_since_last_activity <= weights.active_window_days:
        return ActivityStatus.ACTIVE
    if has_overdue_follow_up:
        return ActivityStatus.AT_RISK
    if days_since_last_activity <= weights.cooling_window_days:
        return ActivityStatus.COOLING
    return ActivityStatus.DORMANT


def tier_for_score(score: int, weights: ScoringWeights) -> EngagementTier:
    if score >= weights.high_tier_min:
        return EngagementTier.HIGH
    if score >= weights.medium_tier_min:
        return EngagementTier.MEDIUM
    return EngagementTier.LOW


def score_bundle(
    bundle: RawActivityBundle,
    now: datetime,
    weights: Optional[ScoringWeights] = None,
) -> EngagementScore:
    """
    Score a bundle at `now` (naive instants are taken as UTC). Pure: the same bundle
    and instant always give the same result.
    Total over any bundle; an empty one scores 0 with NO_ACTIVITY.
    """
    weights = weights or ScoringWeights()
    now = as_utc(now)

    last = last_activity_at(bundle, now)
    days = days_between(last, now) if last is not None else None

    recency = recency_term(days, weights)
    volume = volume_term(interactions_within(bundle.interactions, now, weights.active_window_days), weights)
    pipeline = pipeline_term(active_opportunity_count(bundle), weights)
    breadth = breadth_term(active_product_count(bundle), active_distributor_count(bundle), weights)

    # Round half up so x.5 never depends on banker's rounding
    score = int(_clamp(math.floor(recency + volume + pipeline + breadth + 0.5), 0, 100))
    status = classify_status(days, overdue_follow_ups(bundle.interactions, now) > 0, weights)

    return EngagementScore(
        score=score,
        status=status,
        tier=tier_for_score(score, weights),
        days_since_last_activity=days,
        recency=recency,
        volume=volume,
        pipeline=pipeline,
        breadth=breadth,
    )
