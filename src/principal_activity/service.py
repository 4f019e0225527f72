"""Read-only activity service exposed to the presentation layer."""

import asyncio
from datetime import datetime
from typing import Optional

from principal_activity.aggregation import ActivityAggregator
from principal_activity.models.activity import PrincipalActivitySummary, Timeline
from principal_activity.models.rollup import PopulationRollup, RollupFilter
from principal_activity.models.settings import EngineSettings
from principal_activity.rollup import PopulationRollupBuilder
from principal_activity.sources.base import BaseSourceReader
from principal_activity.sources.registry import SourceRegistry
from principal_activity.summary import SummaryBuilder


class ActivityService:
    """
    Entry point for summaries, timelines and population rollups.
    Every call recomputes from current store state; nothing is cached or mutated.
    """

    def __init__(self, reader: BaseSourceReader, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        self._reader = reader
        self._aggregator = ActivityAggregator(
            reader,
            timeout=self.settings.source_timeout_seconds,
            retry_backoff_seconds=self.settings.retry_backoff_seconds,
        )
        self._summaries = SummaryBuilder(self._aggregator, self.settings.weights)
        self._rollups = PopulationRollupBuilder(
            self._summaries,
            max_concurrency=self.settings.max_concurrency,
            tolerate_partial_failures=self.settings.tolerate_partial_failures,
            top_n=self.settings.default_top_n,
        )

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "ActivityService":
        return cls(SourceRegistry.from_settings(settings), settings)

    async def get_principal_summary(
        self,
        principal_id: str,
        *,
        now: Optional[datetime] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PrincipalActivitySummary:
        return await self._summaries.build(principal_id, now, cancel_event=cancel_event)

    async def get_timeline(
        self,
        principal_id: str,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Timeline:
        _, timeline = await self._summaries.build_with_timeline(principal_id, cancel_event=cancel_event)
        return timeline

    async def get_principal_dashboard(
        self,
        principal_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> tuple[PrincipalActivitySummary, Timeline]:
        """Summary and timeline from a single aggregation."""
        return await self._summaries.build_with_timeline(principal_id, now)

    async def get_population_rollup(
        self,
        criteria: Optional[RollupFilter] = None,
        *,
        principal_ids: Optional[list[str]] = None,
        now: Optional[datetime] = None,
        top_n: Optional[int] = None,
        tolerate_partial_failures: Optional[bool] = None,
    ) -> PopulationRollup:
        return await self._rollups.build(
            principal_ids,
            criteria=criteria,
            now=now,
            top_n=top_n,
            tolerate_partial_failures=tolerate_partial_failures,
        )

    async def list_principal_ids(self) -> list[str]:
        return await self._aggregator.read_principal_ids()

    async def aclose(self) -> None:
        await self._reader.aclose()

    async def __aenter__(self) -> "ActivityService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
