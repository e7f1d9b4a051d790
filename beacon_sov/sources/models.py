"""
Response source abstraction for BeaconSOV.

Responses are fetched by an external collaborator (an AI-response
aggregation vendor). This module defines the typed record that crosses that
boundary and the Protocol every source implements, so that upstream schema
drift is caught here and never reaches detection or aggregation.

Key components:
- FetchedResponse: Validated {provider, model, response, status} record
- ResponseSource: Protocol with a single fetch(query) method
- parse_provider_payload: Map a vendor task dict into a FetchedResponse
"""

from typing import Any, Literal, Protocol

from pydantic import BaseModel, ValidationError, field_validator

from beacon_sov.exceptions import ResponseSourceError
from beacon_sov.models import Query


class FetchedResponse(BaseModel):
    """
    One provider's answer to one query, as delivered by a response source.

    Attributes:
        provider: AI platform ("openai", "anthropic", "google", "perplexity")
        model: Model identifier reported upstream
        response: Plain answer text (may be empty if the provider failed)
        status: Upstream status message, informational only
    """

    provider: Literal["openai", "anthropic", "google", "perplexity"]
    model: str = "unknown"
    response: str = ""
    status: str = "ok"

    @field_validator("provider", mode="before")
    @classmethod
    def normalize_provider(cls, v: Any) -> Any:
        """Lower-case and strip the provider name before validation."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("model", mode="before")
    @classmethod
    def default_model(cls, v: Any) -> Any:
        """Treat missing or blank model names as 'unknown'."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return "unknown"
        return v

    @field_validator("response", mode="before")
    @classmethod
    def default_response(cls, v: Any) -> Any:
        """Treat a missing response as empty text."""
        return "" if v is None else v

    @property
    def has_text(self) -> bool:
        """True when the response carries non-whitespace text."""
        return bool(self.response.strip())


class ResponseSource(Protocol):
    """
    Provider-agnostic interface for obtaining responses to a query.

    Implementations MUST:
    - Return one FetchedResponse per provider answer, in provider order
    - Raise ResponseSourceError when responses cannot be obtained or mapped
    - Never log credentials

    Example implementation:
        >>> class StaticSource:
        ...     def fetch(self, query: Query) -> list[FetchedResponse]:
        ...         return [FetchedResponse(provider="openai", response="...")]
    """

    def fetch(self, query: Query) -> list[FetchedResponse]:
        """
        Return the responses available for one query.

        Raises:
            ResponseSourceError: If responses cannot be obtained or mapped
        """
        ...


def build_fetched_response(record: dict) -> FetchedResponse:
    """
    Validate an already-typed record ({provider, model, response, status}).

    Raises:
        ResponseSourceError: If the record does not match the expected shape
    """
    try:
        return FetchedResponse.model_validate(record)
    except ValidationError as e:
        raise ResponseSourceError(f"Invalid response record {record!r}: {e}") from e


def parse_provider_payload(task: dict) -> FetchedResponse:
    """
    Map one vendor task dict into a FetchedResponse.

    The aggregation vendor nests fields as:
        {"data": {"ai_platform": ..., "model": ...},
         "result": [{"response_text": ...}],
         "status_message": ...}

    Missing text maps to an empty response; a missing or unknown platform
    is an error.

    Raises:
        ResponseSourceError: If the payload cannot be mapped

    Example:
        >>> parse_provider_payload({
        ...     "data": {"ai_platform": "openai", "model": "gpt-4o"},
        ...     "result": [{"response_text": "Try HubSpot."}],
        ...     "status_message": "Ok.",
        ... }).response
        'Try HubSpot.'
    """
    if not isinstance(task, dict):
        raise ResponseSourceError(f"Provider payload must be a mapping, got: {task!r}")

    data = task.get("data") or {}
    result = task.get("result") or []
    first = result[0] if isinstance(result, list) and result else {}

    if not isinstance(data, dict) or not isinstance(first, dict):
        raise ResponseSourceError(f"Unexpected provider payload shape: {task!r}")

    return build_fetched_response(
        {
            "provider": data.get("ai_platform"),
            "model": data.get("model"),
            "response": first.get("response_text"),
            "status": task.get("status_message") or "unknown",
        }
    )
