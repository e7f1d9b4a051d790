"""
Mock response source for testing and demos.

Provides MockResponseSource that implements the ResponseSource protocol
without calling any upstream service. Every query gets one canned answer
per provider, with small per-provider variations so aggregated shares
differ between providers.

Example:
    >>> source = MockResponseSource()
    >>> [r.provider for r in source.fetch(query)]
    ['openai', 'anthropic', 'google', 'perplexity']
"""

import logging
from dataclasses import dataclass

from beacon_sov.models import Query
from beacon_sov.sources.models import FetchedResponse

logger = logging.getLogger(__name__)

MOCK_ANSWER_TEMPLATE = """Based on your question about "{query}", here are my recommendations:

1. **The Points Guy** - One of the most popular resources for credit card and travel rewards advice. They offer comprehensive reviews and comparisons.

2. **NerdWallet** - Great for comparing credit cards side-by-side with detailed breakdowns of fees, rewards, and benefits.

3. **Upgraded Points** - Excellent resource for maximizing travel rewards and finding the best credit card deals.

4. **Bankrate** - Trusted source for credit card reviews with expert analysis.

5. **Credit Karma** - Useful for checking your credit score and getting personalized card recommendations.

I'd recommend starting with The Points Guy or NerdWallet for comprehensive comparisons, and Upgraded Points for travel-specific rewards optimization."""

# (provider, model, [(old, new), ...]) applied to the template
MOCK_VARIANTS: tuple[tuple[str, str, tuple[tuple[str, str], ...]], ...] = (
    ("openai", "gpt-4o", ()),
    (
        "anthropic",
        "claude-3-5-sonnet",
        (
            ("The Points Guy", "Upgraded Points"),
            ("I'd recommend starting with", "For travel rewards, I'd suggest"),
        ),
    ),
    (
        "google",
        "gemini-pro",
        (
            ("NerdWallet", "Upgraded Points"),
            ("comprehensive comparisons", "detailed guides"),
        ),
    ),
    (
        "perplexity",
        "pplx-70b-online",
        (
            ("Credit Karma", "Upgraded Points"),
            ("personalized", "tailored"),
        ),
    ),
)


@dataclass
class MockResponseSource:
    """
    Deterministic response source implementing the ResponseSource protocol.

    Attributes:
        responses: Optional mapping of query id to answer text. When a query
            id is present, every provider returns that text verbatim.
        status: Status message attached to every mock response
    """

    responses: dict[str, str] | None = None
    status: str = "Mock data - response source not configured"

    def __post_init__(self):
        if self.responses is None:
            self.responses = {}

    def fetch(self, query: Query) -> list[FetchedResponse]:
        """Return one canned answer per provider for the query."""
        fixed = self.responses.get(query.id)
        fetched = []

        for provider, model, replacements in MOCK_VARIANTS:
            if fixed is not None:
                text = fixed
            else:
                text = MOCK_ANSWER_TEMPLATE.format(query=query.text)
                for old, new in replacements:
                    # First occurrence only
                    text = text.replace(old, new, 1)

            fetched.append(
                FetchedResponse(
                    provider=provider, model=model, response=text, status=self.status
                )
            )

        logger.debug(f"Mock source produced {len(fetched)} responses for {query.id}")
        return fetched
