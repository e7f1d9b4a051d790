"""
Response analysis for BeaconSOV.

Turns stored responses into mention facts: one MentionFact per
(response, brand) pair, with no ordering dependency between pairs.

Detection is a pure CPU-bound function, so a batch of responses is analyzed
in parallel worker threads bounded by a semaphore. Results come back in
input order.

Example:
    >>> facts = analyze_responses(responses, brands, DetectionSettings())
    >>> len(facts) == len(responses) * len(brands)
    True
"""

import asyncio
import logging
from collections.abc import Sequence

from ..config.constants import DEFAULT_MAX_WORKERS
from ..config.schema import DetectionSettings
from ..exceptions import MentionDetectionError
from ..models import Brand, MentionFact, Response
from .mention_detector import detect

logger = logging.getLogger(__name__)


def analyze_response(
    response: Response,
    brands: Sequence[Brand],
    settings: DetectionSettings | None = None,
) -> list[MentionFact]:
    """
    Run the mention detector over one response.

    Args:
        response: Response to analyze
        brands: Tracked brands in scope
        settings: Detection settings (defaults when None)

    Returns:
        One MentionFact per brand, in brand order
    """
    settings = settings or DetectionSettings()

    results = detect(
        response.response_text,
        brands,
        context_window=settings.context_window,
        recommendation_phrases=settings.recommendation_phrases,
    )

    return [
        MentionFact(
            response_id=response.id,
            brand_id=brand.id,
            mentioned=results[brand.id].mentioned,
            recommended=results[brand.id].recommended,
        )
        for brand in brands
    ]


async def analyze_responses_async(
    responses: Sequence[Response],
    brands: Sequence[Brand],
    settings: DetectionSettings | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[MentionFact]:
    """
    Analyze many responses concurrently.

    Each response is analyzed in a worker thread; at most max_workers run
    at once. All responses are attempted before any failure is reported.

    Raises:
        MentionDetectionError: If detection failed for any response (the
            first failing response id is attached)
    """
    if max_workers < 1:
        raise ValueError(f"max_workers must be at least 1, got: {max_workers}")

    settings = settings or DetectionSettings()
    semaphore = asyncio.Semaphore(max_workers)

    async def _analyze_with_semaphore(response: Response) -> list[MentionFact]:
        async with semaphore:
            return await asyncio.to_thread(analyze_response, response, brands, settings)

    logger.debug(
        f"Analyzing {len(responses)} responses for {len(brands)} brands "
        f"(max {max_workers} workers)"
    )
    results = await asyncio.gather(
        *(_analyze_with_semaphore(response) for response in responses),
        return_exceptions=True,
    )

    facts: list[MentionFact] = []
    failures: list[tuple[Response, BaseException]] = []
    for response, result in zip(responses, results, strict=True):
        if isinstance(result, BaseException):
            logger.error(f"Detection failed for response {response.id}: {result}")
            failures.append((response, result))
        else:
            facts.extend(result)

    if failures:
        response, exc = failures[0]
        raise MentionDetectionError(
            f"Detection failed for {len(failures)} of {len(responses)} responses "
            f"(first: {response.id}: {exc})",
            response_id=response.id,
        ) from exc

    return facts


def analyze_responses(
    responses: Sequence[Response],
    brands: Sequence[Brand],
    settings: DetectionSettings | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[MentionFact]:
    """Synchronous wrapper around analyze_responses_async()."""
    return asyncio.run(
        analyze_responses_async(responses, brands, settings, max_workers=max_workers)
    )
