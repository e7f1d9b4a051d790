"""
Response sources for BeaconSOV.

Public API:
    - FetchedResponse: Validated record crossing the source boundary
    - ResponseSource: Protocol implemented by every source
    - parse_provider_payload: Map a vendor task dict into a FetchedResponse
    - MockResponseSource: Deterministic canned answers for demos and tests
    - FileResponseSource: Replay responses stored in a YAML/JSON file
"""

from beacon_sov.sources.file_source import FileResponseSource, load_responses_file
from beacon_sov.sources.mock_source import MockResponseSource
from beacon_sov.sources.models import (
    FetchedResponse,
    ResponseSource,
    build_fetched_response,
    parse_provider_payload,
)

__all__ = [
    "FetchedResponse",
    "FileResponseSource",
    "MockResponseSource",
    "ResponseSource",
    "build_fetched_response",
    "load_responses_file",
    "parse_provider_payload",
]
