"""
Tests for the sources package.

Tests cover:
- FetchedResponse validation and normalization
- Mapping raw vendor task payloads (parse_provider_payload)
- MockResponseSource determinism and per-provider variations
- FileResponseSource loading YAML and JSON, and its error paths
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from beacon_sov.exceptions import ResponseSourceError
from beacon_sov.models import Query
from beacon_sov.sources import (
    FetchedResponse,
    FileResponseSource,
    MockResponseSource,
    build_fetched_response,
    load_responses_file,
    parse_provider_payload,
)
from beacon_sov.sources.mock_source import MOCK_VARIANTS


@pytest.fixture
def query():
    return Query(id="best-travel-card", text="Best travel card for beginners?")


def vendor_task(platform="openai", model="gpt-4o", text="Try HubSpot.", status="Ok."):
    return {
        "data": {"ai_platform": platform, "model": model},
        "result": [{"response_text": text}],
        "status_message": status,
    }


class TestFetchedResponse:
    """Test suite for FetchedResponse model."""

    def test_provider_normalized(self):
        response = FetchedResponse(provider="  OpenAI ", response="text")
        assert response.provider == "openai"

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            FetchedResponse(provider="bing", response="text")

    def test_blank_model_becomes_unknown(self):
        assert FetchedResponse(provider="google", model="  ").model == "unknown"
        assert FetchedResponse(provider="google", model=None).model == "unknown"

    def test_missing_response_is_empty(self):
        response = FetchedResponse(provider="anthropic", response=None)

        assert response.response == ""
        assert response.has_text is False

    def test_whitespace_response_has_no_text(self):
        assert FetchedResponse(provider="openai", response=" \n ").has_text is False

    def test_has_text(self):
        assert FetchedResponse(provider="openai", response="Acme").has_text is True


class TestBuildFetchedResponse:
    """Test suite for build_fetched_response()."""

    def test_valid_record(self):
        response = build_fetched_response(
            {"provider": "perplexity", "model": "pplx", "response": "Acme"}
        )
        assert response.status == "ok"

    def test_invalid_record_wrapped(self):
        with pytest.raises(ResponseSourceError, match="Invalid response record"):
            build_fetched_response({"provider": "bing"})


class TestParseProviderPayload:
    """Test suite for parse_provider_payload()."""

    def test_maps_nested_fields(self):
        response = parse_provider_payload(vendor_task(platform="anthropic"))

        assert response == FetchedResponse(
            provider="anthropic", model="gpt-4o", response="Try HubSpot.", status="Ok."
        )

    def test_missing_result_maps_to_empty_text(self):
        task = vendor_task()
        del task["result"]

        assert parse_provider_payload(task).response == ""

    def test_missing_status_is_unknown(self):
        task = vendor_task()
        del task["status_message"]

        assert parse_provider_payload(task).status == "unknown"

    def test_missing_platform_raises(self):
        task = vendor_task()
        del task["data"]["ai_platform"]

        with pytest.raises(ResponseSourceError):
            parse_provider_payload(task)

    def test_non_mapping_payload_raises(self):
        with pytest.raises(ResponseSourceError, match="must be a mapping"):
            parse_provider_payload(["not", "a", "dict"])

    def test_bad_shape_raises(self):
        with pytest.raises(ResponseSourceError, match="Unexpected provider payload"):
            parse_provider_payload({"data": "openai", "result": []})


class TestMockResponseSource:
    """Test suite for MockResponseSource."""

    def test_one_response_per_provider(self, query):
        responses = MockResponseSource().fetch(query)

        assert [r.provider for r in responses] == [v[0] for v in MOCK_VARIANTS]
        assert all(r.has_text for r in responses)

    def test_query_text_in_answer(self, query):
        responses = MockResponseSource().fetch(query)
        assert query.text in responses[0].response

    def test_providers_differ(self, query):
        responses = MockResponseSource().fetch(query)
        assert len({r.response for r in responses}) == len(responses)

    def test_deterministic(self, query):
        source = MockResponseSource()
        assert source.fetch(query) == source.fetch(query)

    def test_fixed_responses(self, query):
        source = MockResponseSource(responses={query.id: "Only Acme."})
        responses = source.fetch(query)

        assert {r.response for r in responses} == {"Only Acme."}

    def test_custom_status(self, query):
        source = MockResponseSource(status="canned")
        assert {r.status for r in source.fetch(query)} == {"canned"}


class TestFileResponseSource:
    """Test suite for load_responses_file() and FileResponseSource."""

    def test_yaml_with_mixed_entries(self, tmp_path, query):
        path = tmp_path / "responses.yaml"
        path.write_text(
            "responses:\n"
            "  best-travel-card:\n"
            "    - provider: openai\n"
            "      model: gpt-4o\n"
            "      response: The Points Guy is the best start.\n"
            "    - data: {ai_platform: google, model: gemini-pro}\n"
            "      result: [{response_text: Try NerdWallet.}]\n"
            "      status_message: Ok.\n",
            encoding="utf-8",
        )

        responses = FileResponseSource(path).fetch(query)

        assert [r.provider for r in responses] == ["openai", "google"]
        assert responses[1].response == "Try NerdWallet."

    def test_json_bare_mapping(self, tmp_path):
        path = tmp_path / "responses.json"
        path.write_text(
            json.dumps({"q1": [{"provider": "anthropic", "response": "Acme"}]}),
            encoding="utf-8",
        )

        loaded = load_responses_file(path)

        assert list(loaded) == ["q1"]
        assert loaded["q1"][0].model == "unknown"

    def test_unknown_query_yields_nothing(self, tmp_path):
        path = tmp_path / "responses.yaml"
        path.write_text("responses: {}\n", encoding="utf-8")

        source = FileResponseSource(path)

        assert source.fetch(Query(id="other", text="?")) == []
        assert source.query_ids == []

    def test_fetch_returns_copy(self, tmp_path, query):
        path = tmp_path / "responses.yaml"
        path.write_text(
            "best-travel-card:\n  - provider: openai\n    response: Acme\n",
            encoding="utf-8",
        )
        source = FileResponseSource(path)

        source.fetch(query).clear()

        assert len(source.fetch(query)) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(ResponseSourceError, match="not found"):
            FileResponseSource(tmp_path / "missing.yaml")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "responses.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ResponseSourceError, match="Failed to read"):
            load_responses_file(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "responses.yaml"
        path.write_text("- provider: openai\n", encoding="utf-8")

        with pytest.raises(ResponseSourceError, match="must contain a mapping"):
            load_responses_file(path)

    def test_entries_must_be_list(self, tmp_path):
        path = tmp_path / "responses.yaml"
        path.write_text("responses:\n  q1: just text\n", encoding="utf-8")

        with pytest.raises(ResponseSourceError, match="must be a list"):
            load_responses_file(path)

    def test_invalid_entry(self, tmp_path):
        path = tmp_path / "responses.yaml"
        path.write_text("responses:\n  q1:\n    - provider: bing\n", encoding="utf-8")

        with pytest.raises(ResponseSourceError, match="Invalid response record"):
            load_responses_file(path)

    def test_example_file_loads(self):
        example = Path(__file__).parent.parent / "examples" / "responses.yaml"
        loaded = load_responses_file(example)

        assert loaded["best-travel-card"][3].has_text is False
        assert loaded["best-travel-card"][2].provider == "google"
