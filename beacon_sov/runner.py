"""
Analysis orchestration for BeaconSOV.

Ties the pieces together for one project:

1. Sync the configured brands and queries into the store
2. Fetch provider responses for every active query from a ResponseSource
3. Store the responses (immutable once stored)
4. Run mention detection in parallel and upsert one fact per
   (response, brand)

A failed fetch is recorded against its query and the run continues with the
remaining queries. Responses with no text are skipped. The store is always
passed in by the caller.

Example:
    >>> config = load_config("examples/project.yaml")
    >>> store = SQLiteMentionFactStore(config.run_settings.sqlite_db_path)
    >>> result = run_analysis(config, MockResponseSource(), store)
    >>> result["facts"] == result["responses"] * result["brands"]
    True
"""

import logging

from .config.schema import ProjectConfig
from .exceptions import ResponseSourceError
from .extractor.analyzer import analyze_responses
from .models import MentionFact, Response
from .sources.models import ResponseSource
from .storage.repository import MentionFactStore
from .utils.logging import log_with_context
from .utils.time import format_timestamp, run_id_from_timestamp, utc_now

logger = logging.getLogger(__name__)


def make_response_id(
    project_id: str, run_id: str, query_id: str, provider: str, index: int
) -> str:
    """
    Build a deterministic response id.

    project_id keeps ids unique when projects share a database. index
    distinguishes multiple answers from the same provider in one run.

    Example:
        >>> make_response_id("acme-crm", "2025-11-02T08-00-00Z", "q1", "openai", 0)
        'acme-crm:2025-11-02T08-00-00Z:q1:openai:0'
    """
    return f"{project_id}:{run_id}:{query_id}:{provider}:{index}"


def claim_run_id(store: MentionFactStore, project_id: str, base_run_id: str) -> str:
    """
    Return base_run_id, suffixed with -2, -3, ... if the project already used it.

    Run ids have one-second resolution, so two runs started in the same
    second would otherwise write to the same response ids.
    """
    taken = store.get_run_ids(project_id)
    run_id = base_run_id
    suffix = 2
    while run_id in taken:
        run_id = f"{base_run_id}-{suffix}"
        suffix += 1
    return run_id


def _summarize_facts(facts: list[MentionFact]) -> tuple[int, int]:
    mentions = sum(1 for fact in facts if fact.mentioned)
    recommendations = sum(1 for fact in facts if fact.recommended)
    return mentions, recommendations


def run_analysis(
    config: ProjectConfig, source: ResponseSource, store: MentionFactStore
) -> dict:
    """
    Fetch, store and analyze responses for every active query.

    Args:
        config: Validated project configuration
        source: Where provider responses come from
        store: Where brands, queries, responses and facts are persisted

    Returns:
        Summary dictionary with structure:
        {
            "run_id": "2025-11-02T08-00-00Z",
            "timestamp_utc": "2025-11-02T08:00:00Z",
            "project_id": "acme-crm",
            "total_queries": 3,
            "analyzed_queries": 2,
            "brands": 4,
            "responses": 8,
            "skipped_empty": 0,
            "facts": 32,
            "mentions": 11,
            "recommendations": 5,
            "errors": [
                {"query_id": "q3", "error_message": "Responses file not found"}
            ]
        }

    Raises:
        DatabaseError: If the store cannot be read or written
        MentionDetectionError: If detection fails for any response
    """
    now = utc_now()
    run_id = claim_run_id(store, config.project_id, run_id_from_timestamp(now))
    timestamp_utc = format_timestamp(now)

    brands = config.tracked_brands()
    queries = config.tracked_queries()
    active = config.active_queries()

    logger.info(f"Starting run {run_id} for project {config.project_id}")
    logger.info(
        f"Config: {len(active)} active queries (of {len(queries)}), "
        f"{len(brands)} brands"
    )

    store.sync_catalog(config.project_id, brands, queries)

    responses: list[Response] = []
    errors = []
    skipped_empty = 0
    analyzed_queries = 0

    for query in active:
        try:
            fetched = source.fetch(query)
        except ResponseSourceError as e:
            log_with_context(
                logger,
                logging.ERROR,
                f"Failed to fetch responses for query {query.id}: {e}",
                context={"query_id": query.id},
                project_id=config.project_id,
                run_id=run_id,
            )
            errors.append({"query_id": query.id, "error_message": str(e)})
            continue

        analyzed_queries += 1
        per_provider: dict[str, int] = {}
        for item in fetched:
            if not item.has_text:
                logger.warning(
                    f"Skipping empty {item.provider} response for query {query.id} "
                    f"(status: {item.status})"
                )
                skipped_empty += 1
                continue

            index = per_provider.get(item.provider, 0)
            per_provider[item.provider] = index + 1
            responses.append(
                Response(
                    id=make_response_id(
                        config.project_id, run_id, query.id, item.provider, index
                    ),
                    query_id=query.id,
                    provider=item.provider,
                    model_name=item.model,
                    response_text=item.response,
                    timestamp_utc=timestamp_utc,
                )
            )

    store.add_responses(config.project_id, run_id, responses)

    facts = analyze_responses(
        responses,
        brands,
        config.detection,
        max_workers=config.run_settings.max_workers,
    )
    store.save_facts(facts)

    mentions, recommendations = _summarize_facts(facts)
    log_with_context(
        logger,
        logging.INFO,
        f"Run {run_id} complete: {analyzed_queries}/{len(active)} queries",
        context={
            "responses": len(responses),
            "skipped_empty": skipped_empty,
            "mentions": mentions,
            "recommendations": recommendations,
        },
        project_id=config.project_id,
        run_id=run_id,
    )

    return {
        "run_id": run_id,
        "timestamp_utc": timestamp_utc,
        "project_id": config.project_id,
        "total_queries": len(active),
        "analyzed_queries": analyzed_queries,
        "brands": len(brands),
        "responses": len(responses),
        "skipped_empty": skipped_empty,
        "facts": len(facts),
        "mentions": mentions,
        "recommendations": recommendations,
        "errors": errors,
    }


def reanalyze(config: ProjectConfig, store: MentionFactStore) -> dict:
    """
    Re-run detection over every stored response of the project.

    Used after brands, aliases or detection settings change. Stored
    responses are not modified; facts are overwritten pair by pair, and
    facts for brands no longer configured are left as they were.

    Returns:
        Summary dictionary with project_id, brands, responses, facts,
        mentions and recommendations counts
    """
    brands = config.tracked_brands()
    store.sync_catalog(config.project_id, brands, config.tracked_queries())

    responses = store.get_responses(config.project_id)
    logger.info(
        f"Re-analyzing {len(responses)} stored responses for "
        f"project {config.project_id} against {len(brands)} brands"
    )

    facts = analyze_responses(
        responses,
        brands,
        config.detection,
        max_workers=config.run_settings.max_workers,
    )
    store.save_facts(facts)

    mentions, recommendations = _summarize_facts(facts)
    return {
        "project_id": config.project_id,
        "brands": len(brands),
        "responses": len(responses),
        "facts": len(facts),
        "mentions": mentions,
        "recommendations": recommendations,
    }
