"""Filter engine with pluggable rules and explanation trail."""

from typing import Callable, Optional

from pydantic import BaseModel, Field

from principal_activity.models.activity import PrincipalActivitySummary
from principal_activity.models.rollup import RollupFilter

from .rules import (
    apply_active_rule,
    apply_opportunities_rule,
    apply_organization_type_rule,
    apply_products_rule,
    apply_score_range_rule,
    apply_search_rule,
    apply_status_rule,
)


class FilterResult(BaseModel):
    """Result of filtering a summary against a RollupFilter."""

    passed: bool = Field(..., description="All rules passed")
    explanations: list[str] = Field(default_factory=list)
    summary: PrincipalActivitySummary = Field(..., description="The summary that was filtered")
    excluded_by_rule: Optional[str] = Field(
        default=None,
        description="First rule that excluded (status|organization_type|opportunities|products|engagement|search|active)",
    )


RuleFn = Callable[[PrincipalActivitySummary, RollupFilter], tuple[bool, str, str]]


class SummaryFilterEngine:
    """
    Applies RollupFilter criteria to summaries.
    Every rule runs so the explanation trail is complete; the first failing
    rule is recorded as the exclusion reason.
    """

    def __init__(self, criteria: Optional[RollupFilter] = None):
        self.criteria = criteria or RollupFilter()
        self._rules: list[RuleFn] = [
            apply_status_rule,
            apply_organization_type_rule,
            apply_opportunities_rule,
            apply_products_rule,
            apply_score_range_rule,
            apply_search_rule,
            apply_active_rule,
        ]

    def filter(self, summary: PrincipalActivitySummary) -> FilterResult:
        """Apply all rules and return FilterResult with explanation trail."""
        explanations: list[str] = []
        all_passed = True
        excluded_by: Optional[str] = None

        for rule_fn in self._rules:
            passed, explanation, rule_id = rule_fn(summary, self.criteria)
            explanations.append(explanation)
            if not passed:
                all_passed = False
                if excluded_by is None:
                    excluded_by = rule_id

        return FilterResult(
            passed=all_passed,
            explanations=explanations,
            summary=summary,
            excluded_by_rule=excluded_by,
        )

    def filter_many(self, summaries: list[PrincipalActivitySummary]) -> list[FilterResult]:
        """Filter multiple summaries; returns all with full results."""
        return [self.filter(s) for s in summaries]

    def filter_passed(self, summaries: list[PrincipalActivitySummary]) -> list[PrincipalActivitySummary]:
        """Return only the summaries that passed every rule, in input order."""
        return [r.summary for r in self.filter_many(summaries) if r.passed]
