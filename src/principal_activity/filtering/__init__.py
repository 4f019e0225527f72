"""Rule-based filtering of principal summaries before a rollup."""

from .engine import FilterResult, SummaryFilterEngine

__all__ = ["FilterResult", "SummaryFilterEngine"]
