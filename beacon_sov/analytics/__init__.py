"""
Analytics module for Share-of-Voice aggregation.

Public API:
    - SOVFilter: Provider/tag/category/date restriction
    - AggregateResult: Ranked per-brand share row
    - aggregate: Ranked Share-of-Voice rows for every tracked brand
    - aggregate_trend: Per-bucket rows (daily, weekly, monthly)
    - summarize_share: Own-brand versus competitor totals
    - query_breakdown: Per-query brand coverage
"""

from beacon_sov.analytics.aggregator import (
    AggregateResult,
    QueryBreakdown,
    ShareSummary,
    SOVFilter,
    TrendBucket,
    aggregate,
    aggregate_trend,
    available_tags,
    query_breakdown,
    summarize_share,
)

__all__ = [
    "AggregateResult",
    "QueryBreakdown",
    "SOVFilter",
    "ShareSummary",
    "TrendBucket",
    "aggregate",
    "aggregate_trend",
    "available_tags",
    "query_breakdown",
    "summarize_share",
]
