"""Population rollup: statistics over many principal summaries."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from principal_activity.errors import ActivityEngineError, PartialRollupFailure
from principal_activity.filtering import SummaryFilterEngine
from principal_activity.models.activity import ActivityStatus, EngagementTier, PrincipalActivitySummary
from principal_activity.models.records import as_utc
from principal_activity.models.rollup import PopulationRollup, RankedPrincipal, RollupFilter
from principal_activity.summary import SummaryBuilder

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 10


def _ranking_key(summary: PrincipalActivitySummary) -> tuple:
    """Score descending, then most recent activity (None last), then id ascending."""
    last = summary.last_activity_date
    return (
        -summary.engagement_score,
        last is None,
        -last.timestamp() if last is not None else 0.0,
        summary.principal_id,
    )


def rank_principals(
    summaries: Iterable[PrincipalActivitySummary], top_n: int = DEFAULT_TOP_N
) -> list[RankedPrincipal]:
    """Top-N summaries by engagement, fully deterministic."""
    if top_n < 0:
        raise ValueError("top_n must be >= 0")
    ordered = sorted(summaries, key=_ranking_key)[:top_n]
    return [
        RankedPrincipal(
            rank=i + 1,
            principal_id=s.principal_id,
            principal_name=s.principal_name,
            engagement_score=s.engagement_score,
            activity_status=s.activity_status,
            last_activity_date=s.last_activity_date,
        )
        for i, s in enumerate(ordered)
    ]


def compute_rollup(
    summaries: Iterable[PrincipalActivitySummary],
    top_n: int = DEFAULT_TOP_N,
    *,
    failed_principal_ids: Optional[list[str]] = None,
) -> PopulationRollup:
    """
    Aggregate statistics over summaries. Total: an empty input yields a
    zero-valued rollup with mean engagement 0.
    """
    items = list(summaries)
    status_counts = {status: 0 for status in ActivityStatus}
    tier_counts = {tier: 0 for tier in EngagementTier}
    for s in items:
        status_counts[s.activity_status] += 1
        tier_counts[s.engagement_tier] += 1

    mean = round(sum(s.engagement_score for s in items) / len(items), 2) if items else 0.0

    return PopulationRollup(
        total_principals=len(items),
        status_counts=status_counts,
        tier_counts=tier_counts,
        average_engagement_score=mean,
        top_principals=rank_principals(items, top_n),
        principals_with_products=sum(1 for s in items if s.product_count > 0),
        principals_with_opportunities=sum(1 for s in items if s.total_opportunities > 0),
        pending_follow_ups=sum(s.follow_ups_required for s in items),
        failed_principal_ids=sorted(failed_principal_ids or []),
    )


class PopulationRollupBuilder:
    """
    Builds summaries for many principals concurrently and rolls them up.
    By default the first failure cancels the remaining work and is raised.
    With tolerate_partial_failures, failed principals are excluded and reported
    through PartialRollupFailure, which carries the rollup over the rest.
    """

    def __init__(
        self,
        summary_builder: SummaryBuilder,
        *,
        max_concurrency: int = 8,
        tolerate_partial_failures: bool = False,
        top_n: int = DEFAULT_TOP_N,
    ):
        self._summary_builder = summary_builder
        self._max_concurrency = max_concurrency
        self._tolerate = tolerate_partial_failures
        self._top_n = top_n

    async def collect_summaries(
        self,
        principal_ids: list[str],
        now: datetime,
        *,
        tolerate_partial_failures: bool,
    ) -> tuple[list[PrincipalActivitySummary], dict[str, ActivityEngineError]]:
        """Summaries for the given ids plus errors for those that failed (tolerant mode only)."""
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _one(principal_id: str) -> PrincipalActivitySummary:
            async with semaphore:
                return await self._summary_builder.build(principal_id, now)

        tasks = {pid: asyncio.ensure_future(_one(pid)) for pid in principal_ids}
        if not tasks:
            return [], {}

        try:
            if tolerate_partial_failures:
                await asyncio.wait(tasks.values())
            else:
                await asyncio.wait(tasks.values(), return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks.values():
                task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            raise

        pending = [t for t in tasks.values() if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        summaries: list[PrincipalActivitySummary] = []
        errors: dict[str, ActivityEngineError] = {}
        for pid, task in tasks.items():
            if task.cancelled():
                continue
            exc = task.exception()
            if exc is None:
                summaries.append(task.result())
            elif tolerate_partial_failures and isinstance(exc, ActivityEngineError):
                errors[pid] = exc
            else:
                raise exc
        return summaries, errors

    async def build(
        self,
        principal_ids: Optional[list[str]] = None,
        *,
        criteria: Optional[RollupFilter] = None,
        now: Optional[datetime] = None,
        top_n: Optional[int] = None,
        tolerate_partial_failures: Optional[bool] = None,
    ) -> PopulationRollup:
        """
        Roll up the given principals (all principals when None).
        Every summary is generated at the same `now` so the population is consistent.
        """
        now = as_utc(now) if now is not None else datetime.now(timezone.utc)
        top_n = self._top_n if top_n is None else top_n
        tolerate = self._tolerate if tolerate_partial_failures is None else tolerate_partial_failures
        if principal_ids is None:
            principal_ids = await self._summary_builder.aggregator.read_principal_ids()

        summaries, errors = await self.collect_summaries(
            principal_ids, now, tolerate_partial_failures=tolerate
        )
        if criteria is not None and not criteria.is_empty():
            summaries = SummaryFilterEngine(criteria).filter_passed(summaries)

        failed = sorted(errors)
        rollup = compute_rollup(summaries, top_n, failed_principal_ids=failed)
        logger.info(
            "Rollup over %d principal(s): mean engagement %.2f, %d failed",
            rollup.total_principals,
            rollup.average_engagement_score,
            len(failed),
        )
        if failed:
            for pid in failed:
                logger.warning("Principal %s excluded from rollup: %s", pid, errors[pid])
            raise PartialRollupFailure(rollup, failed, errors)
        return rollup
