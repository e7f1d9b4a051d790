"""
Domain records shared by detection, aggregation, and storage.

These are plain dataclasses: configuration is validated by the Pydantic
models in config.schema and converted into these records before it reaches
the detector or aggregator, and storage rows are mapped back into them.

Records:
    Brand: Tracked brand with aliases (own brand or competitor)
    Query: Natural-language question tracked across providers
    Response: One provider's answer to one query (immutable)
    MentionFact: Detection outcome for one (response, brand) pair
    ScopedFact: MentionFact joined with its response and query attributes
"""

from dataclasses import dataclass, field
from datetime import date

from beacon_sov.utils.time import parse_timestamp


@dataclass(frozen=True)
class Brand:
    """
    Tracked brand.

    Attributes:
        id: Opaque brand identifier
        name: Canonical brand name
        aliases: Alternate spellings or names, matched like the canonical name
        is_competitor: False for our own brand, True for a competitor
    """

    id: str
    name: str
    aliases: tuple[str, ...] = ()
    is_competitor: bool = False


@dataclass(frozen=True)
class Query:
    """Tracked question. Only active queries are included in analysis runs."""

    id: str
    text: str
    category: str | None = None
    tags: tuple[str, ...] = ()
    is_active: bool = True


@dataclass(frozen=True)
class Response:
    """
    One AI provider's answer to one query at one point in time.

    Attributes:
        id: Response identifier
        query_id: Parent query
        provider: "openai", "anthropic", "google" or "perplexity"
        model_name: Model identifier reported by the provider
        response_text: Raw answer text (markdown tolerated)
        timestamp_utc: ISO 8601 timestamp with 'Z' suffix
    """

    id: str
    query_id: str
    provider: str
    model_name: str
    response_text: str
    timestamp_utc: str


@dataclass(frozen=True)
class MentionFact:
    """
    Detection outcome for one (response, brand) pair.

    recommended implies mentioned; construction fails otherwise.
    """

    response_id: str
    brand_id: str
    mentioned: bool
    recommended: bool

    def __post_init__(self):
        if self.recommended and not self.mentioned:
            raise ValueError(
                f"MentionFact for brand '{self.brand_id}' cannot be recommended "
                f"without being mentioned"
            )


@dataclass(frozen=True)
class ScopedFact:
    """
    A MentionFact with the attributes aggregation filters and groups on.

    Storage produces these by joining mention facts with their response
    and query rows.
    """

    response_id: str
    brand_id: str
    mentioned: bool
    recommended: bool
    query_id: str
    provider: str
    model_name: str
    timestamp_utc: str
    query_tags: tuple[str, ...] = field(default_factory=tuple)
    query_category: str | None = None

    @property
    def response_date(self) -> date:
        """UTC calendar date of the parent response."""
        return parse_timestamp(self.timestamp_utc).date()


def scope_fact(fact: MentionFact, response: Response, query: Query) -> ScopedFact:
    """Join a fact with its parent response and query."""
    return ScopedFact(
        response_id=fact.response_id,
        brand_id=fact.brand_id,
        mentioned=fact.mentioned,
        recommended=fact.recommended,
        query_id=query.id,
        provider=response.provider,
        model_name=response.model_name,
        timestamp_utc=response.timestamp_utc,
        query_tags=tuple(query.tags),
        query_category=query.category,
    )
