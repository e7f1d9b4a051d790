"""
Brand mention detection for BeaconSOV.

This module implements word-boundary regex matching to detect brand mentions
in AI assistant responses, avoiding false positives like "CRM" matching
inside "Acrmonium", and classifies each mention as recommending or not by
scanning a fixed window of surrounding text for endorsement phrases.

Key features:
- Word-boundary matching (critical for accuracy)
- Case-insensitive detection
- Multiple aliases per brand, first matching candidate wins
- Context-window recommendation classification
- Every tracked brand present in the result map

Security:
- Always uses re.escape() to prevent regex injection

Performance:
- Compiles regex patterns once per name and caches them
- Lower-cases the response text once per call

Overlapping names across different brands are matched independently: a
single span of text can count as a mention of several brands.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache

from beacon_sov.config.constants import (
    DEFAULT_CONTEXT_WINDOW,
    DEFAULT_RECOMMENDATION_PHRASES,
)
from beacon_sov.models import Brand


@dataclass(frozen=True)
class DetectionResult:
    """
    Mention outcome for one brand in one response.

    Attributes:
        mentioned: A candidate name occurred as a whole word
        recommended: An endorsement phrase occurred near the first match.
            Never True unless mentioned is True.
    """

    mentioned: bool = False
    recommended: bool = False

    def __post_init__(self):
        """Validate that recommended implies mentioned."""
        if self.recommended and not self.mentioned:
            raise ValueError("recommended=True requires mentioned=True")


NOT_MENTIONED = DetectionResult(mentioned=False, recommended=False)


@lru_cache(maxsize=1024)
def create_brand_pattern(alias: str) -> re.Pattern:
    """
    Create word-boundary regex pattern for brand alias matching.

    CRITICAL: Uses word boundaries to prevent false positives.
    - "HubSpot" matches in "I use HubSpot daily"
    - "CRM" does NOT match in "Acrmonium"

    A plain \\b cannot match next to a name edge that is itself a non-word
    character ("C++", ".NET"), so those edges use (?<!\\w) / (?!\\w) instead.

    Security: Always escapes special regex characters to prevent injection.

    Args:
        alias: Brand name or alias (e.g., "HubSpot", "Ask.com", "C++")

    Returns:
        Compiled regex pattern with word boundaries and case-insensitive flag

    Raises:
        ValueError: If alias is empty or whitespace

    Example:
        >>> bool(create_brand_pattern("C++").search("I love C++ programming"))
        True
        >>> bool(create_brand_pattern("CRM").search("Acrmonium"))
        False
    """
    if not alias or alias.isspace():
        raise ValueError("Brand alias cannot be empty or whitespace")

    alias = alias.strip()

    # SECURITY: Escape special regex characters before adding boundaries
    escaped = re.escape(alias)

    left = r"\b" if _is_word_char(alias[0]) else r"(?<!\w)"
    right = r"\b" if _is_word_char(alias[-1]) else r"(?!\w)"

    return re.compile(left + escaped + right, re.IGNORECASE)


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def candidate_names(brand: Brand) -> list[str]:
    """
    Return the names to test for a brand: canonical name first, then aliases.

    Empty and whitespace-only entries are dropped.

    Example:
        >>> candidate_names(Brand(id="b1", name="HubSpot", aliases=("Hub Spot", " ")))
        ['HubSpot', 'Hub Spot']
    """
    names = [brand.name, *brand.aliases]
    return [name.strip() for name in names if name and not name.isspace()]


def find_first_match(text: str, names: Iterable[str]) -> tuple[str, int, int] | None:
    """
    Find the first candidate name that occurs in text as a whole word.

    Candidates are tried in order and the first one that matches wins;
    later candidates are not checked. The returned span is the first
    occurrence of that winning name.

    Args:
        text: Text to search (any case)
        names: Candidate names in priority order

    Returns:
        (matched_name, start, end) or None if no candidate matches
    """
    for name in names:
        match = create_brand_pattern(name).search(text)
        if match is not None:
            return name, match.start(), match.end()
    return None


def extract_context_window(text: str, start: int, end: int, window: int) -> str:
    """
    Slice ``window`` characters on each side of a match, clamped to the text.

    Example:
        >>> extract_context_window("abcdefghij", 4, 6, 2)
        'cdefgh'
    """
    if window < 0:
        raise ValueError(f"window must be non-negative, got: {window}")
    return text[max(0, start - window) : min(len(text), end + window)]


def has_recommendation_signal(context: str, phrases: Iterable[str]) -> bool:
    """
    Check whether any endorsement phrase occurs in the context.

    Phrases are matched as lower-case substrings, so "recommend" also
    matches "recommended" and "recommendation".
    """
    context = context.lower()
    return any(phrase and phrase.lower() in context for phrase in phrases)


def detect(
    response_text: str,
    brands: Sequence[Brand],
    context_window: int = DEFAULT_CONTEXT_WINDOW,
    recommendation_phrases: Sequence[str] = DEFAULT_RECOMMENDATION_PHRASES,
) -> dict[str, DetectionResult]:
    """
    Detect which brands a response mentions and which it recommends.

    Process:
    1. Lower-case the response text once
    2. For each brand, try [name, *aliases] with word-boundary patterns
    3. The first candidate that matches marks the brand as mentioned
    4. Inspect context_window characters around that candidate's first
       occurrence for any recommendation phrase
    5. Brands without a match map to mentioned=False, recommended=False

    Args:
        response_text: Answer text from an AI provider
        brands: Tracked brands in scope
        context_window: Characters inspected on each side of the match
        recommendation_phrases: Endorsement trigger phrases

    Returns:
        Mapping of brand id to DetectionResult, one entry per input brand

    Example:
        >>> brands = [Brand(id="b1", name="HubSpot", aliases=("Hub Spot",))]
        >>> detect("I'd recommend HubSpot for small teams.", brands)
        {'b1': DetectionResult(mentioned=True, recommended=True)}

    Notes:
        - Empty or whitespace-only text yields no mentions (not an error)
        - Pure function: the same inputs always produce the same result
    """
    results: dict[str, DetectionResult] = {brand.id: NOT_MENTIONED for brand in brands}

    if not response_text or response_text.isspace():
        return results

    text_lower = response_text.lower()

    for brand in brands:
        match = find_first_match(text_lower, candidate_names(brand))
        if match is None:
            continue

        _name, start, end = match
        context = extract_context_window(text_lower, start, end, context_window)
        results[brand.id] = DetectionResult(
            mentioned=True,
            recommended=has_recommendation_signal(context, recommendation_phrases),
        )

    return results


def mentioned_brand_ids(results: dict[str, DetectionResult]) -> list[str]:
    """Brand ids with mentioned=True, in result order."""
    return [brand_id for brand_id, result in results.items() if result.mentioned]


def recommended_brand_ids(results: dict[str, DetectionResult]) -> list[str]:
    """Brand ids with recommended=True, in result order."""
    return [brand_id for brand_id, result in results.items() if result.recommended]
