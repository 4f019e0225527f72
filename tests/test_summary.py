"""Tests for SummaryBuilder and compose_summary."""

from datetime import datetime, timedelta

import pytest

from principal_activity.aggregation import ActivityAggregator
from principal_activity.errors import PrincipalNotFound, SourceUnavailable
from principal_activity.models.activity import ActivityStatus, EngagementTier
from principal_activity.models.records import Interaction
from principal_activity.summary import SummaryBuilder, summarize_bundle

from .conftest import FakeSourceReader


def _builder(reader: FakeSourceReader) -> SummaryBuilder:
    return SummaryBuilder(ActivityAggregator(reader, retry_backoff_seconds=0.0))


class TestSummaryBuilder:
    """Tests for build / build_with_timeline."""

    async def test_summary_fields(self, active_reader: FakeSourceReader, now: datetime) -> None:
        summary = await _builder(active_reader).build("p1", now)
        assert summary.principal_id == "p1"
        assert summary.principal_name == "Acme Foods"
        assert summary.organization_type == "PRINCIPAL"
        assert summary.contact_count == 1
        assert summary.total_opportunities == 1
        assert summary.active_opportunities == 1
        assert summary.won_opportunities == 0
        assert summary.product_count == 1
        assert summary.distributor_count == 1
        assert summary.total_interactions == 1
        assert summary.interactions_last_30_days == 1
        assert summary.interactions_last_90_days == 1
        assert summary.positive_interactions == 1
        assert summary.last_interaction_type == "CALL"
        assert summary.avg_interaction_rating == 4.0
        assert summary.last_activity_date == now - timedelta(days=5)
        assert summary.activity_status == ActivityStatus.ACTIVE
        # 37.78 recency + 5 volume + 4 pipeline + 6 breadth
        assert summary.engagement_score == 53
        assert summary.engagement_tier == EngagementTier.MEDIUM
        assert summary.summary_generated_at == now

    async def test_no_activity_principal(self, fake_reader: FakeSourceReader, now: datetime) -> None:
        """A principal with no records is a valid NO_ACTIVITY summary, not an error."""
        summary, timeline = await _builder(fake_reader).build_with_timeline("p1", now)
        assert summary.activity_status == ActivityStatus.NO_ACTIVITY
        assert summary.engagement_score == 0
        assert summary.last_activity_date is None
        assert summary.avg_interaction_rating == 0.0
        assert timeline.events == ()

    async def test_follow_up_counts(self, fake_reader: FakeSourceReader, now: datetime) -> None:
        fake_reader.interactions.extend(
            [
                Interaction(
                    id="i1",
                    principal_id="p1",
                    interaction_date=now - timedelta(days=50),
                    follow_up_required=True,
                    follow_up_date=now - timedelta(days=2),
                ),
                Interaction(
                    id="i2",
                    principal_id="p1",
                    interaction_date=now - timedelta(days=60),
                    follow_up_required=True,
                    follow_up_date=now + timedelta(days=4),
                ),
                Interaction(
                    id="i3",
                    principal_id="p1",
                    interaction_date=now - timedelta(days=70),
                    follow_up_required=True,
                    follow_up_date=now + timedelta(days=9),
                ),
            ]
        )
        summary = await _builder(fake_reader).build("p1", now)
        assert summary.follow_ups_required == 2
        assert summary.overdue_follow_ups == 1
        assert summary.next_follow_up_date == now + timedelta(days=4)
        assert summary.activity_status == ActivityStatus.AT_RISK
        assert summary.interactions_last_30_days == 0
        assert summary.interactions_last_90_days == 3

    async def test_timeline_matches_bundle(self, active_reader: FakeSourceReader, now: datetime) -> None:
        _, timeline = await _builder(active_reader).build_with_timeline("p1", now)
        assert len(timeline.events) == 4
        assert [e.reference_id for e in timeline.events] == ["dr1", "pa1", "o1", "i1"]

    async def test_regeneration_is_idempotent(self, active_reader: FakeSourceReader, now: datetime) -> None:
        builder = _builder(active_reader)
        first = await builder.build("p1", now)
        second = await builder.build("p1", now)
        assert first == second

    async def test_matches_synchronous_summary(self, active_reader: FakeSourceReader, now: datetime) -> None:
        bundle = await ActivityAggregator(active_reader).aggregate("p1")
        assert summarize_bundle(bundle, now) == await _builder(active_reader).build("p1", now)

    async def test_aggregation_errors_propagate(self, active_reader: FakeSourceReader, now: datetime) -> None:
        with pytest.raises(PrincipalNotFound):
            await _builder(active_reader).build("nope", now)
        active_reader.failures["interactions"] = 2
        with pytest.raises(SourceUnavailable):
            await _builder(active_reader).build("p1", now)

    async def test_summary_is_immutable(self, active_reader: FakeSourceReader, now: datetime) -> None:
        summary = await _builder(active_reader).build("p1", now)
        with pytest.raises(Exception):
            summary.engagement_score = 99

    async def test_follow_up_due_now_counts_as_overdue(
        self, fake_reader: FakeSourceReader, now: datetime
    ) -> None:
        fake_reader.interactions.append(
            Interaction(
                id="i1",
                principal_id="p1",
                interaction_date=now - timedelta(days=40),
                follow_up_required=True,
                follow_up_date=now,
            )
        )
        summary = await _builder(fake_reader).build("p1", now)
        assert summary.overdue_follow_ups == 1
        assert summary.follow_ups_required == 0
        assert summary.next_follow_up_date is None

    async def test_naive_now_is_taken_as_utc(self, active_reader: FakeSourceReader, now: datetime) -> None:
        summary = await _builder(active_reader).build("p1", now.replace(tzinfo=None))
        assert summary == await _builder(active_reader).build("p1", now)
        assert summary.summary_generated_at == now
        assert summary.engagement_score == 53

    async def test_compose_with_naive_now(self, active_reader: FakeSourceReader, now: datetime) -> None:
        bundle = await ActivityAggregator(active_reader).aggregate("p1")
        summary = summarize_bundle(bundle, now.replace(tzinfo=None))
        assert summary.interactions_last_30_days == 1
        assert summary.summary_generated_at.tzinfo is not None
