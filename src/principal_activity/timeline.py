"""Timeline reconstruction: merge source records into one ordered event sequence."""

import logging
from datetime import datetime
from typing import Optional

from principal_activity.models.activity import (
    KIND_PRIORITY,
    ActivityEvent,
    EventKind,
    RawActivityBundle,
    Timeline,
)

logger = logging.getLogger(__name__)


def _interaction_label(subject: str, interaction_type: str) -> str:
    return subject.strip() or f"Interaction: {interaction_type}"


def _stage_label(from_stage: Optional[str], to_stage: str) -> str:
    if from_stage:
        return f"Stage: {from_stage} -> {to_stage}"
    return f"Stage: {to_stage}"


def _candidates(bundle: RawActivityBundle) -> list[tuple[EventKind, Optional[datetime], str, str]]:
    """(kind, timestamp, label, reference_id) for every record that maps to an event."""
    out: list[tuple[EventKind, Optional[datetime], str, str]] = []
    for i in bundle.interactions:
        out.append(
            (EventKind.INTERACTION, i.interaction_date, _interaction_label(i.subject, i.interaction_type), i.id)
        )
    for opp in bundle.opportunities:
        out.append(
            (EventKind.OPPORTUNITY_CREATED, opp.created_at, f"New Opportunity: {opp.name}", opp.id)
        )
        for change in opp.stage_history:
            out.append(
                (
                    EventKind.OPPORTUNITY_STAGE_CHANGED,
                    change.changed_at,
                    f"{opp.name}: {_stage_label(change.from_stage, change.to_stage)}",
                    opp.id,
                )
            )
    for assoc in bundle.product_associations:
        if not assoc.is_active:
            continue
        label = f"Product Added: {assoc.product_name}"
        if assoc.is_primary_principal:
            label += " (Primary Principal)"
        out.append((EventKind.PRODUCT_ASSOCIATED, assoc.created_at, label, assoc.id))
    for rel in bundle.distributor_relationships:
        if not rel.is_active:
            continue
        out.append(
            (EventKind.DISTRIBUTOR_LINKED, rel.linked_at, f"Distributor Linked: {rel.distributor_name}", rel.id)
        )
    return out


def build_timeline(bundle: RawActivityBundle) -> Timeline:
    """
    Build the chronological timeline for a bundle.
    Ordered by timestamp ascending, then kind priority, then reference id; stage
    changes sharing all three keep their stage-history order.
    Records without a timestamp are skipped and counted, never fatal.
    """
    principal_id = bundle.principal.id
    events: list[ActivityEvent] = []
    skipped = 0
    for kind, timestamp, label, reference_id in _candidates(bundle):
        if timestamp is None:
            skipped += 1
            continue
        events.append(
            ActivityEvent(
                principal_id=principal_id,
                kind=kind,
                timestamp=timestamp,
                label=label,
                reference_id=reference_id,
            )
        )

    events.sort(key=lambda e: (e.timestamp, KIND_PRIORITY[e.kind], e.reference_id))

    if skipped:
        logger.info("Timeline for %s skipped %d event(s) without a timestamp", principal_id, skipped)
    return Timeline(principal_id=principal_id, events=tuple(events), skipped_events=skipped)
