"""
Tests for analytics.aggregator module.

Tests cover:
- Share-of-voice counts, percentages and ranks
- Zero totals (0.0 shares, never NaN or exceptions)
- Every tracked brand present, ties kept in brand order
- Filters: provider, tags (ANY), categories, inclusive UTC date range
- Trend buckets: daily, weekly (Sunday start), monthly, gap filling
- Own vs competitor summary and per-query breakdown
"""

import math
from datetime import date

import pytest

from beacon_sov.analytics.aggregator import (
    SOVFilter,
    aggregate,
    aggregate_trend,
    apply_filter,
    available_tags,
    bucket_key,
    query_breakdown,
    share_percent,
    summarize_share,
)
from beacon_sov.exceptions import AggregationError
from beacon_sov.models import Brand, Query, ScopedFact

ACME = Brand(id="b-acme", name="Acme")
HUBSPOT = Brand(id="b-hubspot", name="HubSpot", is_competitor=True)
SALESFORCE = Brand(id="b-salesforce", name="Salesforce", is_competitor=True)
BRANDS = [ACME, HUBSPOT, SALESFORCE]


def make_fact(
    brand_id: str,
    response_id: str = "r1",
    mentioned: bool = True,
    recommended: bool = False,
    provider: str = "openai",
    timestamp_utc: str = "2025-11-05T12:00:00Z",
    query_id: str = "q1",
    tags: tuple[str, ...] = ("crm",),
    category: str | None = "software",
) -> ScopedFact:
    return ScopedFact(
        response_id=response_id,
        brand_id=brand_id,
        mentioned=mentioned,
        recommended=recommended,
        query_id=query_id,
        provider=provider,
        model_name="test-model",
        timestamp_utc=timestamp_utc,
        query_tags=tags,
        query_category=category,
    )


def mentions(brand_id: str, count: int, **kwargs) -> list[ScopedFact]:
    return [
        make_fact(brand_id, response_id=f"{brand_id}-{i}", **kwargs)
        for i in range(count)
    ]


def by_brand(results):
    return {row.brand_id: row for row in results}


class TestSharePercent:
    """Test suite for share_percent."""

    def test_simple_share(self):
        assert share_percent(30, 40) == 75.0

    def test_zero_total_is_zero(self):
        assert share_percent(0, 0) == 0.0


class TestSOVFilter:
    """Test suite for SOVFilter."""

    def test_empty_filter_matches_everything(self):
        assert SOVFilter().matches(make_fact("b-acme"))

    def test_inverted_date_range_raises(self):
        with pytest.raises(AggregationError, match="after"):
            SOVFilter(date_from=date(2025, 11, 10), date_to=date(2025, 11, 1))

    def test_same_day_range_is_valid(self):
        sov_filter = SOVFilter(date_from=date(2025, 11, 5), date_to=date(2025, 11, 5))
        assert sov_filter.matches(make_fact("b-acme"))


class TestAggregate:
    """Test suite for aggregate()."""

    def test_shares_and_ranks(self):
        """30 HubSpot and 10 Acme mentions give 75% / 25%."""
        facts = mentions("b-hubspot", 30) + mentions("b-acme", 10)
        results = aggregate(facts, [ACME, HUBSPOT])

        assert [(r.brand_id, r.rank, r.sov_percent) for r in results] == [
            ("b-hubspot", 1, 75.0),
            ("b-acme", 2, 25.0),
        ]
        assert results[0].mention_count == 30
        assert results[1].mention_count == 10

    def test_every_brand_present_with_zero(self):
        facts = mentions("b-hubspot", 3)
        rows = by_brand(aggregate(facts, BRANDS))

        assert set(rows) == {"b-acme", "b-hubspot", "b-salesforce"}
        assert rows["b-salesforce"].mention_count == 0
        assert rows["b-salesforce"].sov_percent == 0.0

    def test_zero_mentions_gives_zero_shares(self):
        facts = [make_fact("b-acme", mentioned=False)]
        results = aggregate(facts, BRANDS)

        for row in results:
            assert row.sov_percent == 0.0
            assert row.recommend_sov_percent == 0.0
            assert not math.isnan(row.sov_percent)

    def test_no_facts(self):
        results = aggregate([], BRANDS)

        assert [r.brand_id for r in results] == ["b-acme", "b-hubspot", "b-salesforce"]
        assert [r.rank for r in results] == [1, 2, 3]

    def test_no_brands(self):
        assert aggregate(mentions("b-acme", 2), []) == []

    def test_shares_sum_to_100(self):
        facts = (
            mentions("b-acme", 7) + mentions("b-hubspot", 5) + mentions("b-salesforce", 1)
        )
        results = aggregate(facts, BRANDS)

        assert sum(r.sov_percent for r in results) == pytest.approx(100.0)

    def test_ranks_are_contiguous(self):
        facts = mentions("b-salesforce", 4) + mentions("b-acme", 2)
        results = aggregate(facts, BRANDS)

        assert [r.rank for r in results] == [1, 2, 3]
        assert [r.brand_id for r in results] == ["b-salesforce", "b-acme", "b-hubspot"]

    def test_ties_keep_brand_order(self):
        facts = mentions("b-salesforce", 2) + mentions("b-hubspot", 2)
        results = aggregate(facts, BRANDS)

        assert [r.brand_id for r in results] == ["b-hubspot", "b-salesforce", "b-acme"]

    def test_recommendation_share(self):
        facts = [
            make_fact("b-acme", response_id="r1", recommended=True),
            make_fact("b-acme", response_id="r2"),
            make_fact("b-hubspot", response_id="r1", recommended=True),
            make_fact("b-hubspot", response_id="r3", recommended=True),
        ]
        rows = by_brand(aggregate(facts, BRANDS))

        assert rows["b-acme"].recommend_count == 1
        assert rows["b-hubspot"].recommend_count == 2
        assert rows["b-acme"].recommend_sov_percent == pytest.approx(100 / 3)

    def test_unmentioned_facts_not_counted(self):
        facts = mentions("b-acme", 2) + [make_fact("b-acme", mentioned=False)]
        rows = by_brand(aggregate(facts, BRANDS))

        assert rows["b-acme"].mention_count == 2

    def test_facts_for_untracked_brands_ignored(self):
        facts = mentions("b-acme", 1) + mentions("b-retired", 5)
        rows = by_brand(aggregate(facts, BRANDS))

        assert "b-retired" not in rows
        assert rows["b-acme"].sov_percent == 100.0

    def test_provider_filter(self):
        facts = mentions("b-acme", 3, provider="openai") + mentions(
            "b-hubspot", 5, provider="google"
        )
        rows = by_brand(aggregate(facts, BRANDS, SOVFilter(provider="openai")))

        assert rows["b-acme"].mention_count == 3
        assert rows["b-hubspot"].mention_count == 0
        assert rows["b-acme"].sov_percent == 100.0

    def test_tag_filter_matches_any_tag(self):
        facts = (
            mentions("b-acme", 1, tags=("crm",))
            + mentions("b-hubspot", 2, tags=("marketing", "smb"))
            + mentions("b-salesforce", 4, tags=("enterprise",))
        )
        rows = by_brand(aggregate(facts, BRANDS, SOVFilter(tags=("crm", "smb"))))

        assert rows["b-acme"].mention_count == 1
        assert rows["b-hubspot"].mention_count == 2
        assert rows["b-salesforce"].mention_count == 0

    def test_category_filter(self):
        facts = mentions("b-acme", 2, category="software") + mentions(
            "b-hubspot", 2, category=None
        )
        rows = by_brand(aggregate(facts, BRANDS, SOVFilter(categories=("software",))))

        assert rows["b-acme"].mention_count == 2
        assert rows["b-hubspot"].mention_count == 0

    def test_date_range_is_inclusive(self):
        facts = (
            mentions("b-acme", 1, timestamp_utc="2025-11-01T00:00:00Z")
            + mentions("b-hubspot", 1, timestamp_utc="2025-11-03T23:59:59Z")
            + mentions("b-salesforce", 1, timestamp_utc="2025-11-04T00:00:00Z")
        )
        sov_filter = SOVFilter(date_from=date(2025, 11, 1), date_to=date(2025, 11, 3))
        rows = by_brand(aggregate(facts, BRANDS, sov_filter))

        assert rows["b-acme"].mention_count == 1
        assert rows["b-hubspot"].mention_count == 1
        assert rows["b-salesforce"].mention_count == 0

    def test_filter_dimensions_combine_with_and(self):
        facts = (
            mentions("b-acme", 1, provider="openai", tags=("crm",))
            + mentions("b-hubspot", 1, provider="google", tags=("crm",))
            + mentions("b-salesforce", 1, provider="openai", tags=("erp",))
        )
        rows = by_brand(
            aggregate(facts, BRANDS, SOVFilter(provider="openai", tags=("crm",)))
        )

        assert [rows[b].mention_count for b in ("b-acme", "b-hubspot", "b-salesforce")] == [
            1,
            0,
            0,
        ]

    def test_filter_with_no_matches_keeps_all_brands(self):
        results = aggregate(mentions("b-acme", 2), BRANDS, SOVFilter(provider="google"))

        assert len(results) == 3
        assert all(r.sov_percent == 0.0 for r in results)

    def test_apply_filter_without_filter_returns_all(self):
        facts = mentions("b-acme", 3)
        assert apply_filter(facts) == facts


class TestBucketKey:
    """Test suite for bucket_key()."""

    def test_daily(self):
        assert bucket_key(date(2025, 11, 5), "daily") == "2025-11-05"

    def test_weekly_starts_on_sunday(self):
        # Wednesday 2025-11-05 -> Sunday 2025-11-02
        assert bucket_key(date(2025, 11, 5), "weekly") == "2025-11-02"

    def test_monthly(self):
        assert bucket_key(date(2025, 11, 5), "monthly") == "2025-11"

    def test_unknown_granularity(self):
        with pytest.raises(AggregationError, match="Unknown granularity"):
            bucket_key(date(2025, 11, 5), "hourly")


class TestAggregateTrend:
    """Test suite for aggregate_trend()."""

    def test_weekly_buckets(self):
        facts = (
            mentions("b-acme", 1, timestamp_utc="2025-11-01T10:00:00Z")  # Saturday
            + mentions("b-hubspot", 1, timestamp_utc="2025-11-02T10:00:00Z")  # Sunday
            + mentions("b-hubspot", 1, timestamp_utc="2025-11-08T10:00:00Z")  # Saturday
        )
        buckets = aggregate_trend(facts, BRANDS, granularity="weekly")

        assert [b.bucket_key for b in buckets] == ["2025-10-26", "2025-11-02"]
        assert by_brand(buckets[0].results)["b-acme"].sov_percent == 100.0
        assert by_brand(buckets[1].results)["b-hubspot"].mention_count == 2

    def test_daily_buckets(self):
        facts = mentions("b-acme", 1, timestamp_utc="2025-11-05T23:59:59Z") + mentions(
            "b-hubspot", 1, timestamp_utc="2025-11-06T00:00:00Z"
        )
        buckets = aggregate_trend(facts, BRANDS, granularity="daily")

        assert [b.bucket_key for b in buckets] == ["2025-11-05", "2025-11-06"]

    def test_monthly_buckets(self):
        facts = (
            mentions("b-acme", 3, timestamp_utc="2025-11-30T12:00:00Z")
            + mentions("b-hubspot", 1, timestamp_utc="2025-11-01T12:00:00Z")
            + mentions("b-hubspot", 2, timestamp_utc="2025-12-01T12:00:00Z")
        )
        buckets = aggregate_trend(facts, BRANDS, granularity="monthly")

        assert [b.bucket_key for b in buckets] == ["2025-11", "2025-12"]
        november = by_brand(buckets[0].results)
        assert november["b-acme"].sov_percent == 75.0
        assert november["b-hubspot"].sov_percent == 25.0

    def test_each_bucket_lists_every_brand(self):
        buckets = aggregate_trend(mentions("b-acme", 1), BRANDS, granularity="daily")

        assert len(buckets) == 1
        assert {r.brand_id for r in buckets[0].results} == {b.id for b in BRANDS}

    def test_observed_buckets_only_by_default(self):
        facts = mentions("b-acme", 1, timestamp_utc="2025-09-10T12:00:00Z") + mentions(
            "b-acme", 1, timestamp_utc="2025-11-10T12:00:00Z"
        )
        buckets = aggregate_trend(facts, BRANDS, granularity="monthly")

        assert [b.bucket_key for b in buckets] == ["2025-09", "2025-11"]

    def test_fill_gaps(self):
        facts = mentions("b-acme", 1, timestamp_utc="2025-11-10T12:00:00Z") + mentions(
            "b-acme", 1, timestamp_utc="2026-01-10T12:00:00Z"
        )
        buckets = aggregate_trend(facts, BRANDS, granularity="monthly", fill_gaps=True)

        assert [b.bucket_key for b in buckets] == ["2025-11", "2025-12", "2026-01"]
        assert all(r.sov_percent == 0.0 for r in buckets[1].results)

    def test_fill_gaps_weekly(self):
        facts = mentions("b-acme", 1, timestamp_utc="2025-11-03T12:00:00Z") + mentions(
            "b-acme", 1, timestamp_utc="2025-11-20T12:00:00Z"
        )
        buckets = aggregate_trend(facts, BRANDS, granularity="weekly", fill_gaps=True)

        assert [b.bucket_key for b in buckets] == [
            "2025-11-02",
            "2025-11-09",
            "2025-11-16",
        ]

    def test_filter_applied_before_bucketing(self):
        facts = mentions("b-acme", 1, provider="google") + mentions(
            "b-hubspot", 1, provider="openai"
        )
        buckets = aggregate_trend(
            facts, BRANDS, granularity="daily", sov_filter=SOVFilter(provider="openai")
        )

        assert by_brand(buckets[0].results)["b-hubspot"].sov_percent == 100.0

    def test_no_facts_no_buckets(self):
        assert aggregate_trend([], BRANDS, granularity="weekly") == []

    def test_unknown_granularity(self):
        with pytest.raises(AggregationError):
            aggregate_trend([], BRANDS, granularity="yearly")


class TestSummarizeShare:
    """Test suite for summarize_share()."""

    def test_own_vs_competitor(self):
        facts = mentions("b-acme", 1) + mentions("b-hubspot", 2) + mentions(
            "b-salesforce", 1
        )
        summary = summarize_share(aggregate(facts, BRANDS))

        assert summary.own_mentions == 1
        assert summary.competitor_mentions == 3
        assert summary.own_sov_percent == 25.0
        assert summary.competitor_sov_percent == 75.0

    def test_zero_mentions(self):
        summary = summarize_share(aggregate([], BRANDS))

        assert summary.total_mentions == 0
        assert summary.own_sov_percent == 0.0
        assert summary.competitor_sov_percent == 0.0


class TestQueryBreakdown:
    """Test suite for query_breakdown()."""

    @pytest.fixture
    def queries(self):
        return [
            Query(id="q1", text="Best CRM?", category="software", tags=("crm",)),
            Query(id="q2", text="Best ERP?", category="software", tags=("erp",)),
        ]

    def test_per_query_stats(self, queries):
        facts = [
            make_fact("b-acme", response_id="r1", provider="openai", recommended=True),
            make_fact("b-hubspot", response_id="r1", provider="openai"),
            make_fact("b-hubspot", response_id="r2", provider="google"),
            make_fact("b-salesforce", response_id="r2", mentioned=False),
        ]
        breakdown = query_breakdown(facts, BRANDS, queries)

        assert [b.query_id for b in breakdown] == ["q1", "q2"]
        q1 = breakdown[0]
        assert q1.response_count == 2
        stats = {s.brand_id: s for s in q1.brands}
        assert stats["b-hubspot"].mention_count == 2
        assert stats["b-hubspot"].providers == ["google", "openai"]
        assert stats["b-acme"].recommend_count == 1
        assert stats["b-salesforce"].providers == []
        assert q1.leader_brand_id == "b-hubspot"
        assert q1.own_sov_percent == pytest.approx(100 / 3)

    def test_query_without_facts(self, queries):
        breakdown = query_breakdown([], BRANDS, queries)

        assert breakdown[1].response_count == 0
        assert breakdown[1].leader_brand_id is None
        assert breakdown[1].own_sov_percent == 0.0

    def test_tag_filter_drops_out_of_scope_queries(self, queries):
        breakdown = query_breakdown([], BRANDS, queries, SOVFilter(tags=("erp",)))

        assert [b.query_id for b in breakdown] == ["q2"]


class TestAvailableTags:
    """Test suite for available_tags()."""

    def test_sorted_unique(self):
        queries = [
            Query(id="q1", text="a", tags=("travel", "points")),
            Query(id="q2", text="b", tags=("travel", "beginner")),
            Query(id="q3", text="c"),
        ]
        assert available_tags(queries) == ["beginner", "points", "travel"]
