"""Unit tests for timeline reconstruction."""

from datetime import datetime, timedelta

from principal_activity.models.activity import EventKind, RawActivityBundle
from principal_activity.models.records import (
    DistributorRelationship,
    Interaction,
    Opportunity,
    Principal,
    ProductAssociation,
    StageChange,
)
from principal_activity.timeline import build_timeline


def _make_bundle(**kwargs) -> RawActivityBundle:
    defaults = {"principal": Principal(id="p1", name="Acme Foods")}
    defaults.update(kwargs)
    return RawActivityBundle(**defaults)


class TestBuildTimeline:
    """Tests for build_timeline."""

    def test_empty_bundle_gives_empty_timeline(self) -> None:
        timeline = build_timeline(_make_bundle())
        assert timeline.events == ()
        assert timeline.skipped_events == 0
        assert timeline.principal_id == "p1"

    def test_maps_every_record_kind(self, now: datetime) -> None:
        """Opportunity yields creation plus one event per stage change."""
        bundle = _make_bundle(
            interactions=[Interaction(id="i1", principal_id="p1", subject="Call", interaction_date=now - timedelta(days=1))],
            opportunities=[
                Opportunity(
                    id="o1",
                    principal_id="p1",
                    name="Menu",
                    created_at=now - timedelta(days=10),
                    stage_history=[
                        StageChange(from_stage="New Lead", to_stage="Initial Outreach", changed_at=now - timedelta(days=8)),
                        StageChange(from_stage="Initial Outreach", to_stage="Demo Scheduled", changed_at=now - timedelta(days=4)),
                    ],
                )
            ],
            product_associations=[
                ProductAssociation(id="pa1", principal_id="p1", product_id="x", product_name="Paprika", created_at=now - timedelta(days=30))
            ],
            distributor_relationships=[
                DistributorRelationship(id="d1", principal_id="p1", distributor_id="d", distributor_name="Sysco", linked_at=now - timedelta(days=40))
            ],
        )
        timeline = build_timeline(bundle)
        kinds = [e.kind for e in timeline.events]
        assert kinds == [
            EventKind.DISTRIBUTOR_LINKED,
            EventKind.PRODUCT_ASSOCIATED,
            EventKind.OPPORTUNITY_CREATED,
            EventKind.OPPORTUNITY_STAGE_CHANGED,
            EventKind.OPPORTUNITY_STAGE_CHANGED,
            EventKind.INTERACTION,
        ]
        assert timeline.events[3].label == "Menu: Stage: New Lead -> Initial Outreach"
        assert timeline.events[3].reference_id == "o1"
        assert timeline.events[0].label == "Distributor Linked: Sysco"

    def test_events_are_chronological(self, now: datetime) -> None:
        interactions = [
            Interaction(id=f"i{d}", principal_id="p1", interaction_date=now - timedelta(days=d))
            for d in (7, 1, 30, 3, 12)
        ]
        timeline = build_timeline(_make_bundle(interactions=interactions))
        stamps = [e.timestamp for e in timeline.events]
        assert stamps == sorted(stamps)

    def test_ties_break_by_kind_priority(self, now: datetime) -> None:
        """Same timestamp: created < stage change < interaction < product < distributor."""
        ts = now - timedelta(days=2)
        bundle = _make_bundle(
            distributor_relationships=[DistributorRelationship(id="d1", principal_id="p1", distributor_id="d", linked_at=ts)],
            product_associations=[ProductAssociation(id="pa1", principal_id="p1", product_id="x", created_at=ts)],
            interactions=[Interaction(id="i1", principal_id="p1", interaction_date=ts)],
            opportunities=[
                Opportunity(
                    id="o1",
                    principal_id="p1",
                    created_at=ts,
                    stage_history=[StageChange(to_stage="Initial Outreach", changed_at=ts)],
                )
            ],
        )
        kinds = [e.kind for e in build_timeline(bundle).events]
        assert kinds == [
            EventKind.OPPORTUNITY_CREATED,
            EventKind.OPPORTUNITY_STAGE_CHANGED,
            EventKind.INTERACTION,
            EventKind.PRODUCT_ASSOCIATED,
            EventKind.DISTRIBUTOR_LINKED,
        ]

    def test_same_instant_stage_changes_keep_history_order(self, now: datetime) -> None:
        ts = now - timedelta(days=3)
        opp = Opportunity(
            id="o1",
            principal_id="p1",
            name="Menu",
            stage_history=[
                StageChange(from_stage="Initial Outreach", to_stage="Sample/Visit Offered", changed_at=ts),
                StageChange(from_stage="New Lead", to_stage="Initial Outreach", changed_at=ts),
            ],
        )
        labels = [e.label for e in build_timeline(_make_bundle(opportunities=[opp])).events]
        assert labels == [
            "Menu: Stage: Initial Outreach -> Sample/Visit Offered",
            "Menu: Stage: New Lead -> Initial Outreach",
        ]

    def test_missing_timestamps_are_skipped_and_counted(self, now: datetime) -> None:
        bundle = _make_bundle(
            interactions=[
                Interaction(id="i1", principal_id="p1"),
                Interaction(id="i2", principal_id="p1", interaction_date=now),
            ],
            opportunities=[
                Opportunity(id="o1", principal_id="p1", stage_history=[StageChange(to_stage="Demo Scheduled")])
            ],
        )
        timeline = build_timeline(bundle)
        assert len(timeline.events) == 1
        assert timeline.events[0].reference_id == "i2"
        assert timeline.skipped_events == 3

    def test_inactive_associations_are_not_events(self, now: datetime) -> None:
        bundle = _make_bundle(
            product_associations=[ProductAssociation(id="pa1", principal_id="p1", product_id="x", is_active=False, created_at=now)],
            distributor_relationships=[DistributorRelationship(id="d1", principal_id="p1", distributor_id="d", is_active=False, linked_at=now)],
        )
        timeline = build_timeline(bundle)
        assert timeline.events == ()
        assert timeline.skipped_events == 0

    def test_interaction_label_falls_back_to_type(self, now: datetime) -> None:
        bundle = _make_bundle(
            interactions=[Interaction(id="i1", principal_id="p1", interaction_type="DEMO", interaction_date=now)]
        )
        assert build_timeline(bundle).events[0].label == "Interaction: DEMO"

    def test_repeated_builds_are_identical(self, now: datetime) -> None:
        """Input order does not affect output order."""
        ts = now - timedelta(days=1)
        forward = [Interaction(id=f"i{n}", principal_id="p1", interaction_date=ts) for n in range(5)]
        first = build_timeline(_make_bundle(interactions=forward))
        second = build_timeline(_make_bundle(interactions=list(reversed(forward))))
        assert first == second
        assert first == build_timeline(_make_bundle(interactions=forward))

    def test_naive_timestamps_are_treated_as_utc(self, now: datetime) -> None:
        naive = now.replace(tzinfo=None) - timedelta(hours=1)
        bundle = _make_bundle(
            interactions=[
                Interaction(id="i1", principal_id="p1", interaction_date=naive),
                Interaction(id="i2", principal_id="p1", interaction_date=now - timedelta(hours=2)),
            ]
        )
        events = build_timeline(bundle).events
        assert [e.reference_id for e in events] == ["i2", "i1"]
        assert events[1].timestamp.tzinfo is not None
