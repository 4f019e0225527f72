"""Counting helpers shared by the scorer and the summary builder.

Only records at or before `now` count as activity; future-dated records
(scheduled interactions, pre-dated associations) appear on the timeline but
never make a principal look recently active.
"""

from datetime import datetime
from typing import Iterator, Optional

from principal_activity.models.activity import RawActivityBundle
from principal_activity.models.records import Interaction

SECONDS_PER_DAY = 86400.0


def iter_activity_timestamps(bundle: RawActivityBundle) -> Iterator[Optional[datetime]]:
    """Yield every timestamp that can appear on the timeline (None included)."""
    for interaction in bundle.interactions:
        yield interaction.interaction_date
    for opp in bundle.opportunities:
        yield opp.created_at
        for change in opp.stage_history:
            yield change.changed_at
    for assoc in bundle.product_associations:
        if assoc.is_active:
            yield assoc.created_at
    for rel in bundle.distributor_relationships:
        if rel.is_active:
            yield rel.linked_at


def last_activity_at(bundle: RawActivityBundle, now: datetime) -> Optional[datetime]:
    """Most recent activity timestamp at or before now; None when there is none."""
    past = [ts for ts in iter_activity_timestamps(bundle) if ts is not None and ts <= now]
    return max(past) if past else None


def days_between(earlier: datetime, now: datetime) -> float:
    return (now - earlier).total_seconds() / SECONDS_PER_DAY


def interactions_within(interactions: list[Interaction], now: datetime, days: int) -> int:
    """Count interactions dated within the last `days` days (inclusive)."""
    count = 0
    for i in interactions:
        if i.interaction_date is None or i.interaction_date > now:
            continue
        if days_between(i.interaction_date, now) <= days:
            count += 1
    return count


def overdue_follow_ups(interactions: list[Interaction], now: datetime) -> int:
    """Follow-ups due at or before now."""
    return sum(
        1
        for i in interactions
        if i.follow_up_required and i.follow_up_date is not None and i.follow_up_date <= now
    )


def pending_follow_ups(interactions: list[Interaction], now: datetime) -> int:
    """Follow-ups still ahead of their due date."""
    return sum(
        1
        for i in interactions
        if i.follow_up_required and i.follow_up_date is not None and i.follow_up_date > now
    )


def next_follow_up(interactions: list[Interaction], now: datetime) -> Optional[datetime]:
    upcoming = [
        i.follow_up_date
        for i in interactions
        if i.follow_up_required and i.follow_up_date is not None and i.follow_up_date > now
    ]
    return min(upcoming) if upcoming else None


def average_rating(interactions: list[Interaction]) -> float:
    """Mean of recorded ratings rounded to 2 places; 0.0 when none are rated."""
    ratings = [i.rating for i in interactions if i.rating is not None]
    if not ratings:
        return 0.0
    return round(sum(ratings) / len(ratings), 2)


def active_opportunity_count(bundle: RawActivityBundle) -> int:
    return sum(1 for o in bundle.opportunities if o.is_active)


def active_product_count(bundle: RawActivityBundle) -> int:
    return sum(1 for a in bundle.product_associations if a.is_active)


def active_distributor_count(bundle: RawActivityBundle) -> int:
    return sum(1 for r in bundle.distributor_relationships if r.is_active)
