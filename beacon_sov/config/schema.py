"""
Configuration schema models for BeaconSOV.

This module defines Pydantic models for validating and parsing a project
configuration file (project.yaml). All models use Pydantic v2 field
validators for comprehensive validation.

Models:
    RunSettings: Storage location and parallelism
    DetectionSettings: Context window and recommendation vocabulary
    BrandConfig: Tracked brand (own brand or competitor) with aliases
    QueryConfig: Tracked natural-language question with tags
    ProjectConfig: Root configuration model (validates entire YAML)
"""

import logging

from pydantic import BaseModel, Field, field_validator, model_validator

from beacon_sov.config.constants import (
    DEFAULT_CONTEXT_WINDOW,
    DEFAULT_MAX_WORKERS,
    DEFAULT_RECOMMENDATION_PHRASES,
    MAX_CONTEXT_WINDOW,
)
from beacon_sov.models import Brand, Query

logger = logging.getLogger(__name__)


def _non_blank(value: str, field_name: str) -> str:
    if not value or value.isspace():
        raise ValueError(f"{field_name} cannot be empty")
    return value.strip()


def _clean_list(values: list[str]) -> list[str]:
    """Strip entries, drop blanks, keep first occurrence order."""
    cleaned: list[str] = []
    for value in values:
        if not value or value.isspace():
            continue
        value = value.strip()
        if value not in cleaned:
            cleaned.append(value)
    return cleaned


class RunSettings(BaseModel):
    """
    Runtime settings for analysis runs.

    Attributes:
        sqlite_db_path: Path to SQLite database holding responses and facts
        max_workers: Maximum responses analyzed concurrently. Range: 1-64.
    """

    sqlite_db_path: str
    max_workers: int = DEFAULT_MAX_WORKERS

    @field_validator("sqlite_db_path")
    @classmethod
    def validate_sqlite_db_path(cls, v: str) -> str:
        """Validate sqlite_db_path is non-empty."""
        return _non_blank(v, "sqlite_db_path")

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        """Validate max_workers is within sane limits."""
        if not 1 <= v <= 64:
            raise ValueError(f"max_workers must be between 1 and 64 (got: {v})")
        return v


class DetectionSettings(BaseModel):
    """
    Mention detection settings.

    Attributes:
        context_window: Characters inspected on each side of a brand match
            for recommendation phrases (default 200)
        recommendation_phrases: Endorsement trigger phrases, stored lower-case
    """

    context_window: int = DEFAULT_CONTEXT_WINDOW
    recommendation_phrases: list[str] = list(DEFAULT_RECOMMENDATION_PHRASES)

    @field_validator("context_window")
    @classmethod
    def validate_context_window(cls, v: int) -> int:
        """Validate context_window is non-negative and bounded."""
        if not 0 <= v <= MAX_CONTEXT_WINDOW:
            raise ValueError(
                f"context_window must be between 0 and {MAX_CONTEXT_WINDOW} (got: {v})"
            )
        return v

    @field_validator("recommendation_phrases")
    @classmethod
    def validate_recommendation_phrases(cls, v: list[str]) -> list[str]:
        """Lower-case phrases, drop blanks, require at least one."""
        cleaned = _clean_list([phrase.lower() for phrase in v if phrase])
        if not cleaned:
            raise ValueError("At least one recommendation phrase is required")
        return cleaned


class BrandConfig(BaseModel):
    """
    Tracked brand from project.yaml.

    Attributes:
        id: Stable brand identifier (used as key for stored facts)
        name: Canonical brand name
        aliases: Alternate names matched like the canonical name
        is_competitor: True for competitors, False for our own brand

    Example:
        brands:
          - id: "hubspot"
            name: "HubSpot"
            aliases: ["Hub Spot"]
            is_competitor: true
    """

    id: str
    name: str
    aliases: list[str] = []
    is_competitor: bool = False

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate id is non-empty."""
        return _non_blank(v, "Brand id")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is non-empty."""
        return _non_blank(v, "Brand name")

    @field_validator("aliases")
    @classmethod
    def validate_aliases(cls, v: list[str]) -> list[str]:
        """Remove empty/whitespace-only aliases and duplicates."""
        return _clean_list(v)

    def to_brand(self) -> Brand:
        """Convert to the domain record used by detection and aggregation."""
        return Brand(
            id=self.id,
            name=self.name,
            aliases=tuple(self.aliases),
            is_competitor=self.is_competitor,
        )


class QueryConfig(BaseModel):
    """
    Tracked question from project.yaml.

    Attributes:
        id: Stable query identifier
        text: Question sent to AI assistants
        category: Optional category label
        tags: Optional tag labels used for filtering
        is_active: Inactive queries are skipped by analysis runs
    """

    id: str
    text: str
    category: str | None = None
    tags: list[str] = []
    is_active: bool = True

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate id is non-empty."""
        return _non_blank(v, "Query id")

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Validate text is non-empty."""
        return _non_blank(v, "Query text")

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        """Remove empty tags and duplicates."""
        return _clean_list(v)

    def to_query(self) -> Query:
        """Convert to the domain record."""
        return Query(
            id=self.id,
            text=self.text,
            category=self.category,
            tags=tuple(self.tags),
            is_active=self.is_active,
        )


class ProjectConfig(BaseModel):
    """
    Root configuration model for project.yaml.

    Validates the entire configuration file structure and enforces
    business rules like unique brand and query IDs.

    Attributes:
        project_id: Scope identifier; only rows of this project are combined
        run_settings: Storage path and parallelism
        detection: Optional detection settings (defaults apply)
        brands: Tracked brands (own and competitors)
        queries: Tracked questions
    """

    project_id: str
    run_settings: RunSettings
    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    brands: list[BrandConfig] = []
    queries: list[QueryConfig] = []

    @field_validator("project_id")
    @classmethod
    def validate_project_id(cls, v: str) -> str:
        """Validate project_id is non-empty."""
        return _non_blank(v, "project_id")

    @field_validator("brands")
    @classmethod
    def validate_brands_unique(cls, v: list[BrandConfig]) -> list[BrandConfig]:
        """
        Validate all brand IDs are unique.

        Raises:
            ValueError: If duplicate IDs found
        """
        ids = [brand.id for brand in v]
        if len(ids) != len(set(ids)):
            duplicates = {brand_id for brand_id in ids if ids.count(brand_id) > 1}
            raise ValueError(f"Duplicate brand IDs found: {duplicates}")
        return v

    @field_validator("queries")
    @classmethod
    def validate_queries_unique(cls, v: list[QueryConfig]) -> list[QueryConfig]:
        """
        Validate all query IDs are unique.

        Raises:
            ValueError: If duplicate IDs found
        """
        ids = [query.id for query in v]
        if len(ids) != len(set(ids)):
            duplicates = {query_id for query_id in ids if ids.count(query_id) > 1}
            raise ValueError(f"Duplicate query IDs found: {duplicates}")
        return v

    @model_validator(mode="after")
    def warn_on_shared_names(self) -> "ProjectConfig":
        """
        Warn when two brands share a name or alias.

        Shared names are not rejected: each brand is matched independently,
        so the same span of text counts for both.
        """
        owners: dict[str, str] = {}
        for brand in self.brands:
            for name in {brand.name.lower(), *(a.lower() for a in brand.aliases)}:
                other = owners.setdefault(name, brand.id)
                if other != brand.id:
                    logger.warning(
                        f"Brands '{other}' and '{brand.id}' share the name '{name}'; "
                        f"matches will count for both"
                    )
        return self

    def tracked_brands(self) -> list[Brand]:
        """Domain brand records in configuration order."""
        return [brand.to_brand() for brand in self.brands]

    def tracked_queries(self) -> list[Query]:
        """Domain query records in configuration order."""
        return [query.to_query() for query in self.queries]

    def active_queries(self) -> list[Query]:
        """Queries included in analysis runs."""
        return [query for query in self.tracked_queries() if query.is_active]
