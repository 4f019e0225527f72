"""Filter rules: each returns (passed, explanation, rule_id)."""

from typing import Optional

from principal_activity.models.activity import PrincipalActivitySummary
from principal_activity.models.rollup import RollupFilter


def _normalize_for_match(text: Optional[str]) -> str:
    """Lowercase and strip for matching; empty string if None."""
    return (text or "").lower().strip()


def apply_status_rule(summary: PrincipalActivitySummary, criteria: RollupFilter) -> tuple[bool, str, str]:
    """Activity status must be one of criteria.activity_statuses when any are given."""
    if not criteria.activity_statuses:
        return True, "Status filter not set", "status"
    if summary.activity_status in criteria.activity_statuses:
        return True, f"Matches status: {summary.activity_status.value}", "status"
    wanted = ", ".join(s.value for s in criteria.activity_statuses)
    return False, f"Excluded: status {summary.activity_status.value} not in [{wanted}]", "status"


def apply_organization_type_rule(
    summary: PrincipalActivitySummary, criteria: RollupFilter
) -> tuple[bool, str, str]:
    """Organization type match is case-insensitive; principals without a type are excluded."""
    if not criteria.organization_types:
        return True, "Organization type filter not set", "organization_type"
    wanted = [_normalize_for_match(t) for t in criteria.organization_types]
    org_type = _normalize_for_match(summary.organization_type)
    if not org_type:
        return False, "Excluded: principal has no organization type", "organization_type"
    if org_type in wanted:
        return True, f"Matches organization type: {summary.organization_type}", "organization_type"
    return False, f"Excluded: organization type {summary.organization_type} not requested", "organization_type"


def apply_opportunities_rule(
    summary: PrincipalActivitySummary, criteria: RollupFilter
) -> tuple[bool, str, str]:
    if criteria.has_opportunities is None:
        return True, "Opportunities filter not set", "opportunities"
    has = summary.total_opportunities > 0
    if has == criteria.has_opportunities:
        return True, f"Has opportunities: {has}", "opportunities"
    expected = "with" if criteria.has_opportunities else "without"
    return False, f"Excluded: wanted principals {expected} opportunities", "opportunities"


def apply_products_rule(summary: PrincipalActivitySummary, criteria: RollupFilter) -> tuple[bool, str, str]:
    if criteria.has_products is None:
        return True, "Products filter not set", "products"
    has = summary.product_count > 0
    if has == criteria.has_products:
        return True, f"Has products: {has}", "products"
    expected = "with" if criteria.has_products else "without"
    return False, f"Excluded: wanted principals {expected} products", "products"


def apply_score_range_rule(
    summary: PrincipalActivitySummary, criteria: RollupFilter
) -> tuple[bool, str, str]:
    """Engagement score within [min, max]; either bound may be open."""
    low = criteria.min_engagement_score
    high = criteria.max_engagement_score
    if low is None and high is None:
        return True, "Engagement range filter not set", "engagement"
    score = summary.engagement_score
    if low is not None and score < low:
        return False, f"Excluded: engagement {score} below minimum {low}", "engagement"
    if high is not None and score > high:
        return False, f"Excluded: engagement {score} above maximum {high}", "engagement"
    return True, f"Engagement {score} within range", "engagement"


def apply_search_rule(summary: PrincipalActivitySummary, criteria: RollupFilter) -> tuple[bool, str, str]:
    term = _normalize_for_match(criteria.search)
    if not term:
        return True, "Search not set", "search"
    if term in _normalize_for_match(summary.principal_name):
        return True, f"Name matches search '{criteria.search}'", "search"
    return False, f"Excluded: name does not contain '{criteria.search}'", "search"


def apply_active_rule(summary: PrincipalActivitySummary, criteria: RollupFilter) -> tuple[bool, str, str]:
    if not criteria.active_only:
        return True, "Active-only filter not set", "active"
    if summary.is_active:
        return True, "Principal is active", "active"
    return False, "Excluded: principal is inactive", "active"
