"""Summary building: aggregate, then score and reconstruct the timeline on the same bundle."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from principal_activity.aggregation import DEFAULT_TIMEOUT, ActivityAggregator
from principal_activity.models.activity import (
    PrincipalActivitySummary,
    RawActivityBundle,
    Timeline,
)
from principal_activity.models.records import as_utc
from principal_activity.models.settings import ScoringWeights
from principal_activity.scoring import EngagementScore, score_bundle
from principal_activity.scoring.metrics import (
    active_distributor_count,
    active_opportunity_count,
    active_product_count,
    average_rating,
    interactions_within,
    last_activity_at,
    next_follow_up,
    overdue_follow_ups,
    pending_follow_ups,
)
from principal_activity.timeline import build_timeline

logger = logging.getLogger(__name__)


def _last_interaction_type(bundle: RawActivityBundle, now: datetime) -> Optional[str]:
    dated = [
        i for i in bundle.interactions if i.interaction_date is not None and i.interaction_date <= now
    ]
    if not dated:
        return None
    return max(dated, key=lambda i: (i.interaction_date, i.id)).interaction_type


def compose_summary(
    bundle: RawActivityBundle,
    engagement: EngagementScore,
    now: datetime,
    weights: ScoringWeights,
) -> PrincipalActivitySummary:
    """Merge bundle counts and the engagement result into the output record."""
    now = as_utc(now)
    principal = bundle.principal
    interactions = bundle.interactions
    return PrincipalActivitySummary(
        principal_id=principal.id,
        principal_name=principal.name,
        organization_type=principal.organization_type,
        is_active=principal.is_active,
        principal_created_at=principal.created_at,
        principal_updated_at=principal.updated_at,
        contact_count=len(bundle.contacts),
        total_opportunities=len(bundle.opportunities),
        active_opportunities=active_opportunity_count(bundle),
        won_opportunities=sum(1 for o in bundle.opportunities if o.is_won),
        product_count=active_product_count(bundle),
        distributor_count=active_distributor_count(bundle),
        total_interactions=len(interactions),
        interactions_last_30_days=interactions_within(interactions, now, weights.active_window_days),
        interactions_last_90_days=interactions_within(interactions, now, weights.cooling_window_days),
        positive_interactions=sum(1 for i in interactions if i.outcome == "POSITIVE"),
        last_interaction_type=_last_interaction_type(bundle, now),
        avg_interaction_rating=average_rating(interactions),
        follow_ups_required=pending_follow_ups(interactions, now),
        overdue_follow_ups=overdue_follow_ups(interactions, now),
        next_follow_up_date=next_follow_up(interactions, now),
        last_activity_date=last_activity_at(bundle, now),
        activity_status=engagement.status,
        engagement_score=engagement.score,
        engagement_tier=engagement.tier,
        summary_generated_at=now,
    )


def summarize_bundle(
    bundle: RawActivityBundle,
    now: datetime,
    weights: Optional[ScoringWeights] = None,
) -> PrincipalActivitySummary:
    """Synchronous summary of an already-fetched bundle."""
    weights = weights or ScoringWeights()
    return compose_summary(bundle, score_bundle(bundle, now, weights), now, weights)


class SummaryBuilder:
    """
    Produces PrincipalActivitySummary values. Only the aggregation step can fail;
    scoring and timeline reconstruction are total.
    """

    def __init__(self, aggregator: ActivityAggregator, weights: Optional[ScoringWeights] = None):
        self._aggregator = aggregator
        self._weights = weights or ScoringWeights()

    @property
    def aggregator(self) -> ActivityAggregator:
        return self._aggregator

    async def build_with_timeline(
        self,
        principal_id: str,
        now: Optional[datetime] = None,
        *,
        timeout: Any = DEFAULT_TIMEOUT,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> tuple[PrincipalActivitySummary, Timeline]:
        """Aggregate once, then score and build the timeline concurrently on that bundle."""
        now = as_utc(now) if now is not None else datetime.now(timezone.utc)
        bundle = await self._aggregator.aggregate(
            principal_id, timeout=timeout, cancel_event=cancel_event
        )
        engagement, timeline = await asyncio.gather(
            asyncio.to_thread(score_bundle, bundle, now, self._weights),
            asyncio.to_thread(build_timeline, bundle),
        )
        summary = compose_summary(bundle, engagement, now, self._weights)
        logger.debug(
            "Summary for %s: status=%s score=%d events=%d",
            principal_id,
            summary.activity_status.value,
            summary.engagement_score,
            len(timeline.events),
        )
        return summary, timeline

    async def build(
        self,
        principal_id: str,
        now: Optional[datetime] = None,
        *,
        timeout: Any = DEFAULT_TIMEOUT,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PrincipalActivitySummary:
        summary, _ = await self.build_with_timeline(
            principal_id, now, timeout=timeout, cancel_event=cancel_event
        )
        return summary
