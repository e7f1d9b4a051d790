"""
Share-of-Voice aggregation for BeaconSOV.

Computes per-brand mention and recommendation counts, percentage shares,
rankings, and time-series trends from accumulated mention facts. Results
are computed on demand and never stored as the durable record.

Key rules:
- Every tracked brand appears in every result set, even with zero counts
- Zero total mentions yields 0.0 shares (never NaN, never an exception)
- Ranking is by sov_percent descending; ties keep brand input order
- Filter dimensions compose with AND; an empty dimension does not restrict
- Within the tag dimension a query matches if it carries ANY selected tag

Example:
    >>> results = aggregate(facts, brands, SOVFilter(provider="openai"))
    >>> [(r.brand_name, r.rank, r.sov_percent) for r in results]
    [('HubSpot', 1, 75.0), ('Acme', 2, 25.0)]
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

from ..config.constants import GRANULARITIES
from ..exceptions import AggregationError
from ..models import Brand, Query, ScopedFact
from ..utils.time import start_of_week

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SOVFilter:
    """
    Restriction applied to the fact set before counting.

    Attributes:
        provider: Keep only responses from this provider
        tags: Keep only queries carrying at least one of these tags
        categories: Keep only queries in one of these categories
        date_from: Keep responses on or after this UTC date
        date_to: Keep responses on or before this UTC date
    """

    provider: str | None = None
    tags: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    date_from: date | None = None
    date_to: date | None = None

    def __post_init__(self):
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise AggregationError(
                f"date_from {self.date_from} is after date_to {self.date_to}"
            )

    def matches(self, fact: ScopedFact) -> bool:
        """Return True if the fact passes every specified dimension."""
        if self.provider and fact.provider != self.provider:
            return False
        if self.tags and not set(self.tags).intersection(fact.query_tags):
            return False
        if self.categories and fact.query_category not in self.categories:
            return False
        if self.date_from or self.date_to:
            day = fact.response_date
            if self.date_from and day < self.date_from:
                return False
            if self.date_to and day > self.date_to:
                return False
        return True


@dataclass
class AggregateResult:
    """
    Share-of-Voice row for one brand within one filter (and bucket).

    Attributes:
        brand_id: Brand identifier
        brand_name: Canonical brand name
        is_competitor: True for competitors
        mention_count: Facts with mentioned=True
        recommend_count: Facts with recommended=True
        sov_percent: mention_count / total mentions * 100 (0.0 when no mentions)
        recommend_sov_percent: Same share computed over recommendations
        rank: 1-based position after sorting by sov_percent
    """

    brand_id: str
    brand_name: str
    is_competitor: bool
    mention_count: int = 0
    recommend_count: int = 0
    sov_percent: float = 0.0
    recommend_sov_percent: float = 0.0
    rank: int = 0


@dataclass
class TrendBucket:
    """Aggregate results for one time bucket (key like 2025-11-02 or 2025-11)."""

    bucket_key: str
    results: list[AggregateResult]


@dataclass
class ShareSummary:
    """Own-brand versus competitor totals for one result set."""

    own_mentions: int
    competitor_mentions: int
    total_mentions: int
    own_sov_percent: float
    competitor_sov_percent: float


@dataclass
class BrandQueryStats:
    """Per-brand counts within one query."""

    brand_id: str
    brand_name: str
    is_competitor: bool
    mention_count: int = 0
    recommend_count: int = 0
    providers: list[str] = field(default_factory=list)


@dataclass
class QueryBreakdown:
    """
    Which brands one query's responses mention.

    Attributes:
        query_id: Query identifier
        query_text: Question text
        tags: Query tags
        response_count: Distinct responses in scope for this query
        brands: Per-brand stats in brand input order
        own_sov_percent: Share of this query's mentions that are own brands
        leader_brand_id: Brand with the highest share (None without mentions)
        leader_sov_percent: The leader's share
    """

    query_id: str
    query_text: str
    tags: tuple[str, ...]
    response_count: int
    brands: list[BrandQueryStats]
    own_sov_percent: float = 0.0
    leader_brand_id: str | None = None
    leader_sov_percent: float = 0.0


def share_percent(count: int, total: int) -> float:
    """
    Percentage share guarded against a zero total.

    Example:
        >>> share_percent(30, 40)
        75.0
        >>> share_percent(0, 0)
        0.0
    """
    if total <= 0:
        return 0.0
    return count / total * 100


def apply_filter(
    facts: Iterable[ScopedFact], sov_filter: SOVFilter | None = None
) -> list[ScopedFact]:
    """Return the facts that pass the filter (all facts when filter is None)."""
    if sov_filter is None:
        return list(facts)
    return [fact for fact in facts if sov_filter.matches(fact)]


def _count(
    facts: Iterable[ScopedFact], brands: Sequence[Brand]
) -> list[AggregateResult]:
    results = {
        brand.id: AggregateResult(
            brand_id=brand.id,
            brand_name=brand.name,
            is_competitor=brand.is_competitor,
        )
        for brand in brands
    }

    for fact in facts:
        row = results.get(fact.brand_id)
        if row is None:
            # Brand no longer tracked in this scope
            continue
        if fact.mentioned:
            row.mention_count += 1
        if fact.recommended:
            row.recommend_count += 1

    return list(results.values())


def _rank(rows: list[AggregateResult]) -> list[AggregateResult]:
    total_mentions = sum(row.mention_count for row in rows)
    total_recommendations = sum(row.recommend_count for row in rows)

    for row in rows:
        row.sov_percent = share_percent(row.mention_count, total_mentions)
        row.recommend_sov_percent = share_percent(
            row.recommend_count, total_recommendations
        )

    # sorted() is stable, so ties keep brand input order
    ranked = sorted(rows, key=lambda row: row.sov_percent, reverse=True)
    for index, row in enumerate(ranked):
        row.rank = index + 1
    return ranked


def aggregate(
    facts: Iterable[ScopedFact],
    brands: Sequence[Brand],
    sov_filter: SOVFilter | None = None,
) -> list[AggregateResult]:
    """
    Compute ranked Share-of-Voice rows for every tracked brand.

    Process:
    1. Keep facts passing the filter
    2. Count mentions and recommendations per tracked brand
    3. Compute shares against the totals (0.0 when a total is zero)
    4. Sort by sov_percent descending (stable) and assign ranks

    Args:
        facts: Scoped mention facts
        brands: Tracked brands; defines which rows appear and tie order
        sov_filter: Optional restriction

    Returns:
        One AggregateResult per brand, ranked. Empty only if brands is empty.
    """
    scoped = apply_filter(facts, sov_filter)
    rows = _rank(_count(scoped, brands))
    logger.debug(
        f"Aggregated {len(scoped)} facts into {len(rows)} brand rows "
        f"(total mentions: {sum(row.mention_count for row in rows)})"
    )
    return rows


def bucket_start(day: date, granularity: str) -> date:
    """
    First day of the bucket containing ``day``.

    daily: the day itself; weekly: the Sunday starting its week;
    monthly: the first of its month.

    Raises:
        AggregationError: If granularity is unknown
    """
    if granularity == "daily":
        return day
    if granularity == "weekly":
        return start_of_week(day)
    if granularity == "monthly":
        return day.replace(day=1)
    raise AggregationError(
        f"Unknown granularity '{granularity}'. Expected one of: {', '.join(GRANULARITIES)}"
    )


def bucket_key(day: date, granularity: str) -> str:
    """
    Sortable bucket key: YYYY-MM-DD for daily/weekly, YYYY-MM for monthly.

    Example:
        >>> bucket_key(date(2025, 11, 5), "weekly")
        '2025-11-02'
    """
    start = bucket_start(day, granularity)
    if granularity == "monthly":
        return start.strftime("%Y-%m")
    return start.isoformat()


def _next_bucket(start: date, granularity: str) -> date:
    if granularity == "daily":
        return start + timedelta(days=1)
    if granularity == "weekly":
        return start + timedelta(days=7)
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def aggregate_trend(
    facts: Iterable[ScopedFact],
    brands: Sequence[Brand],
    granularity: str = "weekly",
    sov_filter: SOVFilter | None = None,
    fill_gaps: bool = False,
) -> list[TrendBucket]:
    """
    Compute ranked Share-of-Voice rows per time bucket.

    Facts are grouped by the UTC date of their response into daily, weekly
    (Sunday-aligned) or monthly buckets; each bucket is aggregated
    independently. Buckets are returned in chronological order.

    Args:
        facts: Scoped mention facts
        brands: Tracked brands
        granularity: "daily", "weekly" or "monthly"
        sov_filter: Optional restriction applied before bucketing
        fill_gaps: Emit all-zero buckets between the first and last observed bucket

    Raises:
        AggregationError: If granularity is unknown
    """
    if granularity not in GRANULARITIES:
        raise AggregationError(
            f"Unknown granularity '{granularity}'. Expected one of: {', '.join(GRANULARITIES)}"
        )

    grouped: dict[date, list[ScopedFact]] = defaultdict(list)
    for fact in apply_filter(facts, sov_filter):
        grouped[bucket_start(fact.response_date, granularity)].append(fact)

    if not grouped:
        return []

    starts = sorted(grouped)
    if fill_gaps:
        filled = []
        current = starts[0]
        while current <= starts[-1]:
            filled.append(current)
            current = _next_bucket(current, granularity)
        starts = filled

    return [
        TrendBucket(
            bucket_key=bucket_key(start, granularity),
            results=_rank(_count(grouped.get(start, []), brands)),
        )
        for start in starts
    ]


def summarize_share(results: Sequence[AggregateResult]) -> ShareSummary:
    """
    Split a result set into own-brand and competitor totals.

    The two percentages sum to 100 whenever there is at least one mention.
    """
    own = sum(row.mention_count for row in results if not row.is_competitor)
    competitor = sum(row.mention_count for row in results if row.is_competitor)
    total = own + competitor
    return ShareSummary(
        own_mentions=own,
        competitor_mentions=competitor,
        total_mentions=total,
        own_sov_percent=share_percent(own, total),
        competitor_sov_percent=share_percent(competitor, total),
    )


def query_breakdown(
    facts: Iterable[ScopedFact],
    brands: Sequence[Brand],
    queries: Sequence[Query],
    sov_filter: SOVFilter | None = None,
) -> list[QueryBreakdown]:
    """
    Per-query view of which brands were mentioned, where, and how often.

    Queries are returned in input order. Queries whose tags or category are
    excluded by the filter are omitted; queries with no facts in scope are
    kept with zero counts.
    """
    by_query: dict[str, list[ScopedFact]] = defaultdict(list)
    for fact in apply_filter(facts, sov_filter):
        by_query[fact.query_id].append(fact)

    breakdowns = []
    for query in queries:
        if sov_filter is not None and not _query_in_scope(query, sov_filter):
            continue

        query_facts = by_query.get(query.id, [])
        stats = {
            brand.id: BrandQueryStats(
                brand_id=brand.id,
                brand_name=brand.name,
                is_competitor=brand.is_competitor,
            )
            for brand in brands
        }
        providers: dict[str, set[str]] = defaultdict(set)

        for fact in query_facts:
            row = stats.get(fact.brand_id)
            if row is None:
                continue
            if fact.mentioned:
                row.mention_count += 1
                providers[fact.brand_id].add(fact.provider)
            if fact.recommended:
                row.recommend_count += 1

        for brand_id, provider_set in providers.items():
            stats[brand_id].providers = sorted(provider_set)

        ranked = aggregate(query_facts, brands)
        leader = ranked[0] if ranked and ranked[0].mention_count > 0 else None

        breakdowns.append(
            QueryBreakdown(
                query_id=query.id,
                query_text=query.text,
                tags=tuple(query.tags),
                response_count=len({fact.response_id for fact in query_facts}),
                brands=list(stats.values()),
                own_sov_percent=summarize_share(ranked).own_sov_percent,
                leader_brand_id=leader.brand_id if leader else None,
                leader_sov_percent=leader.sov_percent if leader else 0.0,
            )
        )

    return breakdowns


def _query_in_scope(query: Query, sov_filter: SOVFilter) -> bool:
    if sov_filter.tags and not set(sov_filter.tags).intersection(query.tags):
        return False
    if sov_filter.categories and query.category not in sov_filter.categories:
        return False
    return True


def available_tags(queries: Iterable[Query]) -> list[str]:
    """Sorted unique tags across queries, for building filter choices."""
    return sorted({tag for query in queries for tag in query.tags})

