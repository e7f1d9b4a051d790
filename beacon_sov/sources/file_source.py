"""
File-backed response source.

Reads previously fetched responses from a YAML or JSON file keyed by query
id. Each entry may be either a typed record ({provider, model, response,
status}) or a raw vendor task dict ({data, result, status_message}), so
exports from the aggregation vendor can be replayed without conversion.

File format:
    responses:
      q1:
        - provider: openai
          model: gpt-4o
          response: "HubSpot is a great choice..."
        - data: {ai_platform: anthropic, model: claude-3-5-sonnet}
          result: [{response_text: "Consider Salesforce."}]
          status_message: Ok.
"""

import json
import logging
from pathlib import Path

import yaml

from beacon_sov.exceptions import ResponseSourceError
from beacon_sov.models import Query
from beacon_sov.sources.models import (
    FetchedResponse,
    build_fetched_response,
    parse_provider_payload,
)

logger = logging.getLogger(__name__)


def _parse_entry(entry: dict) -> FetchedResponse:
    """Dispatch on record shape: raw vendor payloads carry a 'data' key."""
    if not isinstance(entry, dict):
        raise ResponseSourceError(f"Response entry must be a mapping, got: {entry!r}")
    if "data" in entry:
        return parse_provider_payload(entry)
    return build_fetched_response(entry)


def load_responses_file(path: str | Path) -> dict[str, list[FetchedResponse]]:
    """
    Load and validate a responses file.

    Args:
        path: YAML (.yaml/.yml) or JSON (.json) file

    Returns:
        Mapping of query id to validated responses, in file order

    Raises:
        ResponseSourceError: If the file is missing, unparseable or malformed
    """
    path = Path(path)
    if not path.exists():
        raise ResponseSourceError(f"Responses file not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                raw = json.load(f)
            else:
                raw = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ResponseSourceError(f"Failed to read responses file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ResponseSourceError(
            f"Responses file must contain a mapping, got: {type(raw).__name__}"
        )

    # Accept either {"responses": {...}} or the mapping itself
    by_query = raw.get("responses", raw)
    if not isinstance(by_query, dict):
        raise ResponseSourceError("'responses' must map query ids to lists")

    loaded: dict[str, list[FetchedResponse]] = {}
    for query_id, entries in by_query.items():
        if not isinstance(entries, list):
            raise ResponseSourceError(
                f"Responses for query '{query_id}' must be a list"
            )
        loaded[str(query_id)] = [_parse_entry(entry) for entry in entries]

    total = sum(len(v) for v in loaded.values())
    logger.info(f"Loaded {total} responses for {len(loaded)} queries from {path}")
    return loaded


class FileResponseSource:
    """
    Response source that replays responses stored in a file.

    Queries with no entry in the file yield no responses.

    Example:
        >>> source = FileResponseSource("responses.yaml")
        >>> source.fetch(query)
        [FetchedResponse(provider='openai', ...)]
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._responses = load_responses_file(self.path)

    @property
    def query_ids(self) -> list[str]:
        """Query ids present in the file, in file order."""
        return list(self._responses)

    def fetch(self, query: Query) -> list[FetchedResponse]:
        responses = self._responses.get(query.id, [])
        if not responses:
            logger.debug(f"No stored responses for query {query.id} in {self.path}")
        return list(responses)
