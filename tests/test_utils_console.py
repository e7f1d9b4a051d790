"""
Tests for utils.console module - dual-mode CLI output utilities.

This module tests console output functions to ensure:
- OutputMode correctly manages format/quiet state
- Output functions (success, error, warning, info) work in all modes
- Share-of-voice, trend and breakdown displays adapt to modes
- JSON buffering and flushing works correctly in agent mode
- Proper stderr vs stdout routing
"""

import json

import pytest

from beacon_sov.analytics.aggregator import (
    AggregateResult,
    BrandQueryStats,
    QueryBreakdown,
    ShareSummary,
    TrendBucket,
)
from beacon_sov.utils.console import (
    OutputMode,
    error,
    info,
    output_mode,
    print_analysis_summary,
    print_banner,
    print_breakdown_table,
    print_sov_table,
    print_trend_table,
    spinner,
    success,
    warning,
)

# ========================================================================
# Fixtures
# ========================================================================


@pytest.fixture(autouse=True)
def reset_output_mode():
    """Reset global output_mode to default state around each test."""
    output_mode.reset()
    yield
    output_mode.reset()


@pytest.fixture
def results():
    return [
        AggregateResult("hubspot", "HubSpot", True, 3, 1, 75.0, 100.0, 1),
        AggregateResult("acme", "Acme", False, 1, 0, 25.0, 0.0, 2),
    ]


@pytest.fixture
def summary():
    return ShareSummary(
        own_mentions=1,
        competitor_mentions=3,
        total_mentions=4,
        own_sov_percent=25.0,
        competitor_sov_percent=75.0,
    )


@pytest.fixture
def run_result():
    return {
        "run_id": "2025-11-02T08-00-00Z",
        "total_queries": 2,
        "analyzed_queries": 1,
        "responses": 4,
        "skipped_empty": 0,
        "mentions": 3,
        "recommendations": 1,
        "errors": [{"query_id": "q2", "error_message": "upstream unavailable"}],
    }


def use_json_mode():
    output_mode.format = "json"


# ========================================================================
# OutputMode
# ========================================================================


class TestOutputMode:
    """Test OutputMode state and JSON buffering."""

    def test_defaults(self):
        mode = OutputMode()

        assert mode.is_human() is True
        assert mode.is_agent() is False
        assert mode.quiet is False

    def test_invalid_format_raises_error(self):
        with pytest.raises(ValueError, match="Invalid format: xml"):
            OutputMode(format_type="xml")

    def test_flush_json_writes_and_clears(self, capsys):
        mode = OutputMode(format_type="json")
        mode.add_json("count", 5)

        mode.flush_json()

        assert json.loads(capsys.readouterr().out) == {"count": 5}
        assert mode._json_buffer == {}

    def test_flush_json_noop_in_human_mode(self, capsys):
        mode = OutputMode()
        mode.add_json("count", 5)

        mode.flush_json()

        assert capsys.readouterr().out == ""

    def test_flush_empty_buffer_writes_nothing(self, capsys):
        OutputMode(format_type="json").flush_json()
        assert capsys.readouterr().out == ""

    def test_reset(self):
        mode = OutputMode(format_type="json", quiet=True)
        mode.add_json("k", "v")

        mode.reset()

        assert (mode.format, mode.quiet, mode._json_buffer) == ("text", False, {})


# ========================================================================
# Message functions
# ========================================================================


class TestMessages:
    """Test success/error/warning/info in each mode."""

    def test_success_human(self, capsys):
        success("Config loaded")
        assert "Config loaded" in capsys.readouterr().out

    def test_success_agent_buffers(self, capsys):
        use_json_mode()
        success("Config loaded")

        assert capsys.readouterr().out == ""
        assert output_mode._json_buffer == {
            "status": "success",
            "message": "Config loaded",
        }

    def test_success_quiet_silent(self, capsys):
        output_mode.quiet = True
        success("Config loaded")

        assert capsys.readouterr().out == ""

    def test_error_goes_to_stderr(self, capsys):
        error("Something broke")
        captured = capsys.readouterr()

        assert "Something broke" in captured.err
        assert captured.out == ""

    def test_error_agent_buffers(self):
        use_json_mode()
        error("Something broke")

        assert output_mode._json_buffer["status"] == "error"
        assert output_mode._json_buffer["error"] == "Something broke"

    def test_warnings_accumulate_in_agent_mode(self):
        use_json_mode()
        warning("first")
        warning("second")

        assert output_mode._json_buffer["warnings"] == ["first", "second"]

    def test_info_only_in_human_mode(self, capsys):
        info("visible")
        use_json_mode()
        info("hidden")

        out = capsys.readouterr().out
        assert "visible" in out
        assert "hidden" not in out

    def test_spinner_runs_body_in_every_mode(self):
        calls = []
        for fmt in ("text", "json"):
            output_mode.format = fmt
            with spinner("Working..."):
                calls.append(fmt)

        assert calls == ["text", "json"]

    def test_banner_silent_in_agent_mode(self, capsys):
        use_json_mode()
        print_banner("0.1.0")

        assert capsys.readouterr().out == ""

    def test_banner_human(self, capsys):
        print_banner("0.1.0")
        assert "BeaconSOV v0.1.0" in capsys.readouterr().out


# ========================================================================
# Display functions
# ========================================================================


class TestPrintSovTable:
    """Test print_sov_table() in each mode."""

    def test_human(self, capsys, results, summary):
        print_sov_table(results, summary)
        out = capsys.readouterr().out

        assert "HubSpot" in out
        assert "75.0%" in out
        assert "Own brands" in out

    def test_agent(self, results, summary):
        use_json_mode()
        print_sov_table(results, summary)

        assert output_mode._json_buffer["results"][0]["brand_id"] == "hubspot"
        assert output_mode._json_buffer["summary"]["own_sov_percent"] == 25.0

    def test_quiet(self, capsys, results):
        output_mode.quiet = True
        print_sov_table(results)

        assert capsys.readouterr().out.splitlines() == [
            "1\thubspot\t3\t1\t75.00",
            "2\tacme\t1\t0\t25.00",
        ]


class TestPrintTrendTable:
    """Test print_trend_table() in each mode."""

    def test_agent(self, results):
        use_json_mode()
        print_trend_table([TrendBucket("2025-11-02", results)])

        (bucket,) = output_mode._json_buffer["buckets"]
        assert bucket["bucket"] == "2025-11-02"
        assert len(bucket["results"]) == 2

    def test_quiet(self, capsys, results):
        output_mode.quiet = True
        print_trend_table([TrendBucket("2025-11", results)])

        assert "2025-11\thubspot\t3\t75.00" in capsys.readouterr().out

    def test_human_empty(self, capsys):
        print_trend_table([])
        assert "No responses in range" in capsys.readouterr().out

    def test_human(self, capsys, results):
        print_trend_table([TrendBucket("2025-11-02", results)])
        out = capsys.readouterr().out

        assert "2025-11-02" in out
        assert "Acme" in out


class TestPrintBreakdownTable:
    """Test print_breakdown_table() in each mode."""

    @pytest.fixture
    def breakdowns(self):
        return [
            QueryBreakdown(
                query_id="q1",
                query_text="Best CRM?",
                tags=("crm",),
                response_count=2,
                brands=[
                    BrandQueryStats("acme", "Acme", False, 1, 0, ["openai"]),
                    BrandQueryStats("hubspot", "HubSpot", True, 1, 1, ["google"]),
                ],
                own_sov_percent=50.0,
                leader_brand_id="acme",
                leader_sov_percent=50.0,
            ),
            QueryBreakdown("q2", "Cheapest CRM?", (), 0, []),
        ]

    def test_human(self, capsys, breakdowns):
        print_breakdown_table(breakdowns)
        out = capsys.readouterr().out

        assert "Best CRM?" in out
        assert "Acme (50.0%)" in out

    def test_agent(self, breakdowns):
        use_json_mode()
        print_breakdown_table(breakdowns)

        queries = output_mode._json_buffer["queries"]
        assert queries[0]["brands"][1]["providers"] == ["google"]
        assert queries[1]["leader_brand_id"] is None

    def test_quiet(self, capsys, breakdowns):
        output_mode.quiet = True
        print_breakdown_table(breakdowns)

        assert capsys.readouterr().out.splitlines() == [
            "q1\t2\t50.00\tacme",
            "q2\t0\t0.00\t",
        ]


class TestPrintAnalysisSummary:
    """Test print_analysis_summary() in each mode."""

    def test_human_partial_failure(self, capsys, run_result):
        print_analysis_summary(run_result)
        captured = capsys.readouterr()

        assert "Partial Failures" in captured.out
        assert "q2: upstream unavailable" in captured.err

    def test_agent_flushes_everything(self, capsys, run_result):
        use_json_mode()
        success("Loaded")
        print_analysis_summary(run_result)

        data = json.loads(capsys.readouterr().out)
        assert data["status"] == "success"
        assert data["analyzed_queries"] == 1
        assert data["errors"][0]["query_id"] == "q2"

    def test_quiet(self, capsys, run_result):
        output_mode.quiet = True
        print_analysis_summary(run_result)

        assert capsys.readouterr().out.strip() == "2025-11-02T08-00-00Z\t1\t2\t4\t3"
