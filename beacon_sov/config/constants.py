"""
Configuration constants for BeaconSOV.

This module contains global constants used across the application
to avoid tight coupling between modules.
"""

# AI assistant platforms whose answers are tracked
PROVIDERS = ("openai", "anthropic", "google", "perplexity")

# Characters on each side of a brand match inspected for recommendation phrases.
# Projects can narrow this (e.g. to 100) through detection.context_window.
DEFAULT_CONTEXT_WINDOW = 200
MAX_CONTEXT_WINDOW = 5_000

# Positive-endorsement trigger phrases, matched as lower-case substrings
DEFAULT_RECOMMENDATION_PHRASES = (
    "recommend",
    "suggest",
    "best",
    "top choice",
    "top pick",
    "highly rated",
    "industry leader",
    "excellent",
    "great choice",
    "great option",
    "popular choice",
    "popular",
    "widely used",
    "trusted",
    "leading",
)

# Time-series bucket granularities for trend aggregation
GRANULARITIES = ("daily", "weekly", "monthly")

# Parallel detection workers for batch analysis
DEFAULT_MAX_WORKERS = 8
