"""
Data export utilities for BeaconSOV.

Exports mention facts and share-of-voice results to CSV or JSON for
external analysis. Exporters take already-loaded records (from a
MentionFactStore and the aggregator) rather than a database path, so they
work with any store implementation.

Key features:
- Export scoped mention facts (one row per response and brand)
- Export aggregate share-of-voice rows (one row per brand)
- CSV format for spreadsheet analysis
- JSON format for programmatic processing
- UTF-8 encoding for international characters

Example:
    >>> facts = store.get_scoped_facts("demo")
    >>> export_facts_csv("./facts.csv", facts, brands)
    >>> export_sov_json("./sov.json", aggregate(facts, brands))
"""

import csv
import json
import logging
from collections.abc import Sequence
from dataclasses import asdict

from ..analytics.aggregator import AggregateResult
from ..models import Brand, ScopedFact

logger = logging.getLogger(__name__)

FACT_FIELDS = [
    "response_id",
    "timestamp_utc",
    "query_id",
    "query_category",
    "query_tags",
    "provider",
    "model_name",
    "brand_id",
    "brand_name",
    "is_competitor",
    "mentioned",
    "recommended",
]

SOV_FIELDS = [
    "rank",
    "brand_id",
    "brand_name",
    "is_competitor",
    "mention_count",
    "recommend_count",
    "sov_percent",
    "recommend_sov_percent",
]


def fact_rows(
    facts: Sequence[ScopedFact], brands: Sequence[Brand] | None = None
) -> list[dict]:
    """
    Flatten scoped facts into export rows.

    Brand name and competitor flag are filled from brands when given;
    unknown brand ids export with an empty name.
    """
    by_id = {brand.id: brand for brand in brands or ()}
    rows = []
    for fact in facts:
        brand = by_id.get(fact.brand_id)
        rows.append(
            {
                "response_id": fact.response_id,
                "timestamp_utc": fact.timestamp_utc,
                "query_id": fact.query_id,
                "query_category": fact.query_category,
                "query_tags": list(fact.query_tags),
                "provider": fact.provider,
                "model_name": fact.model_name,
                "brand_id": fact.brand_id,
                "brand_name": brand.name if brand else "",
                "is_competitor": brand.is_competitor if brand else None,
                "mentioned": fact.mentioned,
                "recommended": fact.recommended,
            }
        )
    return rows


def sov_rows(results: Sequence[AggregateResult]) -> list[dict]:
    """Convert aggregate results into export rows, in rank order."""
    return [
        {key: asdict(result)[key] for key in SOV_FIELDS}
        for result in sorted(results, key=lambda r: r.rank)
    ]


def _write_csv(output_path: str, fieldnames: list[str], rows: list[dict]) -> int:
    with open(output_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            # Lists flatten to a semicolon-separated cell
            writer.writerow(
                {
                    key: ";".join(value) if isinstance(value, list) else value
                    for key, value in row.items()
                }
            )
    return len(rows)


def _write_json(output_path: str, rows: list[dict]) -> int:
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(rows, f, indent=2, ensure_ascii=False)
        f.write("\n")  # POSIX compliance
    return len(rows)


def export_facts_csv(
    output_path: str,
    facts: Sequence[ScopedFact],
    brands: Sequence[Brand] | None = None,
) -> int:
    """
    Export mention facts to a CSV file.

    An empty fact list still produces a header row.

    Returns:
        Number of rows exported

    Raises:
        OSError: If file cannot be written
    """
    logger.info(f"Exporting mention facts to CSV: {output_path}")
    if not facts:
        logger.warning("No mention facts found matching criteria")

    try:
        count = _write_csv(output_path, FACT_FIELDS, fact_rows(facts, brands))
    except OSError as e:
        logger.error(f"File write error: {e}", exc_info=True)
        raise

    logger.info(f"Exported {count} mention facts to {output_path}")
    return count


def export_facts_json(
    output_path: str,
    facts: Sequence[ScopedFact],
    brands: Sequence[Brand] | None = None,
) -> int:
    """Export mention facts to a JSON array. Returns the number of records."""
    logger.info(f"Exporting mention facts to JSON: {output_path}")

    try:
        count = _write_json(output_path, fact_rows(facts, brands))
    except OSError as e:
        logger.error(f"File write error: {e}", exc_info=True)
        raise

    logger.info(f"Exported {count} mention facts to {output_path}")
    return count


def export_sov_csv(output_path: str, results: Sequence[AggregateResult]) -> int:
    """
    Export share-of-voice rows to a CSV file.

    Returns:
        Number of brand rows exported

    Example:
        >>> export_sov_csv("./sov.csv", aggregate(facts, brands))
        3
    """
    logger.info(f"Exporting share of voice to CSV: {output_path}")

    try:
        count = _write_csv(output_path, SOV_FIELDS, sov_rows(results))
    except OSError as e:
        logger.error(f"File write error: {e}", exc_info=True)
        raise

    logger.info(f"Exported {count} brand rows to {output_path}")
    return count


def export_sov_json(output_path: str, results: Sequence[AggregateResult]) -> int:
    logger.info(f"Exporting share of voice to JSON: {output_path}")

    try:
        count = _write_json(output_path, sov_rows(results))
    except OSError as e:
        logger.error(f"File write error: {e}", exc_info=True)
        raise

    logger.info(f"Exported {count} brand rows to {output_path}")
    return count
