"""
SQLite database initialization and schema management for BeaconSOV.

This module provides database setup with schema versioning and migration support.
All timestamps are stored in ISO 8601 format with 'Z' suffix (UTC).

The database tracks, per project:
- brands: Tracked brands with aliases and competitor flag
- queries: Tracked questions with category, tags and active flag
- responses: Immutable provider answers, one row per (query, provider, run)
- mention_facts: Detection outcome per (response, brand), overwritten on
  re-analysis

Example usage:
    >>> from beacon_sov.storage.db import init_db_if_needed
    >>> init_db_if_needed("./output/beacon.db")
    # Creates database with the current schema if needed

Security:
    - ALL queries use parameterized statements to prevent SQL injection
    - Connection context managers ensure proper cleanup
"""

import json
import logging
import sqlite3
from pathlib import Path

from ..models import Brand, MentionFact, Query, Response, ScopedFact
from ..utils.time import utc_timestamp

logger = logging.getLogger(__name__)

# Current schema version - increment when migrations are added
CURRENT_SCHEMA_VERSION = 1


def init_db_if_needed(db_path: str) -> None:
    """
    Initialize SQLite database with schema versioning.

    Creates the database file if it doesn't exist, initializes the
    schema_version table, and applies any needed migrations. Idempotent.

    Args:
        db_path: Filesystem path to SQLite database file.
                 Parent directory is created if missing.

    Raises:
        sqlite3.Error: If database creation or migration fails
        ValueError: If the database schema is newer than this software
        OSError: If parent directory cannot be created
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA foreign_keys = ON")

        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TEXT NOT NULL
            )
        """)
        conn.commit()

        current_version = get_schema_version(conn)

        if current_version < CURRENT_SCHEMA_VERSION:
            logger.info(
                f"Database schema upgrade needed: "
                f"v{current_version} -> v{CURRENT_SCHEMA_VERSION}"
            )
            apply_migrations(conn, current_version, CURRENT_SCHEMA_VERSION)
            logger.info(f"Database schema upgraded to v{CURRENT_SCHEMA_VERSION}")
        elif current_version == CURRENT_SCHEMA_VERSION:
            logger.debug(f"Database schema is current (v{CURRENT_SCHEMA_VERSION})")
        else:
            raise ValueError(
                f"Database schema version {current_version} is newer than "
                f"expected {CURRENT_SCHEMA_VERSION}. Update your software or "
                f"use a different database file."
            )


def connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with foreign key enforcement enabled."""
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def get_schema_version(conn: sqlite3.Connection) -> int:
    """
    Get current schema version from database.

    Returns 0 if no version has been recorded (fresh database). Does NOT
    create the schema_version table; call init_db_if_needed() first.
    """
    cursor = conn.execute("SELECT MAX(version) FROM schema_version")
    result = cursor.fetchone()[0]

    # MAX() returns None if table is empty
    return result if result is not None else 0


def apply_migrations(
    conn: sqlite3.Connection, from_version: int, to_version: int
) -> None:
    """
    Apply schema migrations from one version to another.

    Each migration runs in its own transaction and is recorded in
    schema_version on success.

    Args:
        conn: Active SQLite database connection
        from_version: Starting schema version (0 for fresh database)
        to_version: Target schema version (usually CURRENT_SCHEMA_VERSION)

    Raises:
        sqlite3.Error: If any migration SQL fails (transaction rolled back)
        ValueError: If from_version > to_version (downgrades not supported)
    """
    if from_version > to_version:
        raise ValueError(
            f"Cannot downgrade schema from v{from_version} to v{to_version}. "
            f"Downgrades are not supported. Use a database backup instead."
        )

    for target_version in range(from_version + 1, to_version + 1):
        logger.info(f"Applying migration to schema version {target_version}")

        try:
            conn.execute("BEGIN")

            if target_version == 1:
                _migrate_to_v1(conn)
            else:
                raise ValueError(f"No migration defined for version {target_version}")

            timestamp = utc_timestamp()
            conn.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (target_version, timestamp),
            )

            conn.commit()
            logger.info(
                f"Successfully migrated to schema version {target_version} "
                f"at {timestamp}"
            )

        except Exception as e:
            conn.rollback()
            logger.error(
                f"Migration to version {target_version} failed: {e}", exc_info=True
            )
            raise sqlite3.Error(
                f"Failed to migrate database to version {target_version}: {e}"
            ) from e


def _migrate_to_v1(conn: sqlite3.Connection) -> None:
    """
    Migrate database schema to version 1.

    Creates the project-scoped brands and queries tables, the immutable
    responses table, and mention_facts with one row per (response, brand).

    Note:
        Called by apply_migrations(). Booleans are stored as INTEGER (0/1);
        list-valued fields (aliases, tags) as JSON arrays.
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS brands (
            project_id TEXT NOT NULL,
            brand_id TEXT NOT NULL,
            name TEXT NOT NULL,
            aliases_json TEXT NOT NULL DEFAULT '[]',
            is_competitor INTEGER NOT NULL DEFAULT 0,
            position INTEGER NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (project_id, brand_id)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS queries (
            project_id TEXT NOT NULL,
            query_id TEXT NOT NULL,
            text TEXT NOT NULL,
            category TEXT,
            tags_json TEXT NOT NULL DEFAULT '[]',
            is_active INTEGER NOT NULL DEFAULT 1,
            position INTEGER NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (project_id, query_id)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS responses (
            response_id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL,
            run_id TEXT NOT NULL,
            query_id TEXT NOT NULL,
            provider TEXT NOT NULL,
            model_name TEXT NOT NULL,
            response_text TEXT NOT NULL,
            timestamp_utc TEXT NOT NULL,
            FOREIGN KEY (project_id, query_id)
                REFERENCES queries(project_id, query_id)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS mention_facts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            response_id TEXT NOT NULL,
            brand_id TEXT NOT NULL,
            mentioned INTEGER NOT NULL,
            recommended INTEGER NOT NULL,
            analyzed_at TEXT NOT NULL,
            FOREIGN KEY (response_id) REFERENCES responses(response_id),
            UNIQUE(response_id, brand_id),
            CHECK (recommended <= mentioned)
        )
    """)

    # Time series and scoping lookups
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_responses_timestamp
        ON responses(timestamp_utc)
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_responses_project_query
        ON responses(project_id, query_id)
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_mention_facts_brand
        ON mention_facts(brand_id)
    """)

    logger.debug("Created schema v1 tables and indexes")


def upsert_brand(
    conn: sqlite3.Connection, project_id: str, brand: Brand, position: int = 0
) -> None:
    """
    Insert or update a tracked brand.

    position preserves config order, which aggregation uses to break ties.
    """
    conn.execute(
        """
        INSERT INTO brands (
            project_id, brand_id, name, aliases_json, is_competitor,
            position, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(project_id, brand_id) DO UPDATE SET
            name = excluded.name,
            aliases_json = excluded.aliases_json,
            is_competitor = excluded.is_competitor,
            position = excluded.position,
            updated_at = excluded.updated_at
        """,
        (
            project_id,
            brand.id,
            brand.name,
            json.dumps(list(brand.aliases)),
            1 if brand.is_competitor else 0,
            position,
            utc_timestamp(),
        ),
    )
    logger.debug(f"Upserted brand {brand.id} for project {project_id}")


def upsert_query(
    conn: sqlite3.Connection, project_id: str, query: Query, position: int = 0
) -> None:
    """Insert or update a tracked query."""
    conn.execute(
        """
        INSERT INTO queries (
            project_id, query_id, text, category, tags_json, is_active,
            position, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(project_id, query_id) DO UPDATE SET
            text = excluded.text,
            category = excluded.category,
            tags_json = excluded.tags_json,
            is_active = excluded.is_active,
            position = excluded.position,
            updated_at = excluded.updated_at
        """,
        (
            project_id,
            query.id,
            query.text,
            query.category,
            json.dumps(list(query.tags)),
            1 if query.is_active else 0,
            position,
            utc_timestamp(),
        ),
    )
    logger.debug(f"Upserted query {query.id} for project {project_id}")


def insert_response(
    conn: sqlite3.Connection, project_id: str, run_id: str, response: Response
) -> None:
    """
    Store a provider response.

    Responses are immutable once stored: inserting an existing response_id
    is a no-op (INSERT OR IGNORE).
    """
    conn.execute(
        """
        INSERT OR IGNORE INTO responses (
            response_id, project_id, run_id, query_id, provider,
            model_name, response_text, timestamp_utc
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            response.id,
            project_id,
            run_id,
            response.query_id,
            response.provider,
            response.model_name,
            response.response_text,
            response.timestamp_utc,
        ),
    )
    logger.debug(f"Inserted response {response.id} ({response.provider})")


def upsert_mention_fact(conn: sqlite3.Connection, fact: MentionFact) -> None:
    """
    Write the detection outcome for one (response, brand) pair.

    Re-analysis overwrites the previous outcome, so at most one fact exists
    per pair.
    """
    conn.execute(
        """
        INSERT INTO mention_facts (
            response_id, brand_id, mentioned, recommended, analyzed_at
        ) VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(response_id, brand_id) DO UPDATE SET
            mentioned = excluded.mentioned,
            recommended = excluded.recommended,
            analyzed_at = excluded.analyzed_at
        """,
        (
            fact.response_id,
            fact.brand_id,
            1 if fact.mentioned else 0,
            1 if fact.recommended else 0,
            utc_timestamp(),
        ),
    )


def get_brands(conn: sqlite3.Connection, project_id: str) -> list[Brand]:
    """Return the project's brands in stored (config) order."""
    cursor = conn.execute(
        """
        SELECT brand_id, name, aliases_json, is_competitor
        FROM brands
        WHERE project_id = ?
        ORDER BY position, brand_id
        """,
        (project_id,),
    )
    return [
        Brand(
            id=row[0],
            name=row[1],
            aliases=tuple(json.loads(row[2])),
            is_competitor=bool(row[3]),
        )
        for row in cursor.fetchall()
    ]


def get_queries(
    conn: sqlite3.Connection, project_id: str, active_only: bool = False
) -> list[Query]:
    """Return the project's queries in stored (config) order."""
    sql = """
        SELECT query_id, text, category, tags_json, is_active
        FROM queries
        WHERE project_id = ?
    """
    if active_only:
        sql += " AND is_active = 1"
    sql += " ORDER BY position, query_id"

    cursor = conn.execute(sql, (project_id,))
    return [
        Query(
            id=row[0],
            text=row[1],
            category=row[2],
            tags=tuple(json.loads(row[3])),
            is_active=bool(row[4]),
        )
        for row in cursor.fetchall()
    ]


def get_responses(
    conn: sqlite3.Connection, project_id: str, run_id: str | None = None
) -> list[Response]:
    """
    Return stored responses for a project, oldest first.

    Args:
        conn: Active SQLite database connection
        project_id: Project scope
        run_id: Optional run to restrict to
    """
    sql = """
        SELECT response_id, query_id, provider, model_name, response_text,
               timestamp_utc
        FROM responses
        WHERE project_id = ?
    """
    params: list = [project_id]
    if run_id:
        sql += " AND run_id = ?"
        params.append(run_id)
    sql += " ORDER BY timestamp_utc, response_id"

    cursor = conn.execute(sql, params)
    return [
        Response(
            id=row[0],
            query_id=row[1],
            provider=row[2],
            model_name=row[3],
            response_text=row[4],
            timestamp_utc=row[5],
        )
        for row in cursor.fetchall()
    ]


def get_run_ids(conn: sqlite3.Connection, project_id: str) -> set[str]:
    """Return the run ids that already have stored responses in a project."""
    cursor = conn.execute(
        "SELECT DISTINCT run_id FROM responses WHERE project_id = ?",
        (project_id,),
    )
    return {row[0] for row in cursor.fetchall()}


def get_scoped_facts(conn: sqlite3.Connection, project_id: str) -> list[ScopedFact]:
    """
    Return every mention fact of a project joined with response and query.

    The result is the aggregator's input: each fact carries the provider,
    timestamp, tags and category it is filtered and bucketed on.
    """
    cursor = conn.execute(
        """
        SELECT
            f.response_id,
            f.brand_id,
            f.mentioned,
            f.recommended,
            r.query_id,
            r.provider,
            r.model_name,
            r.timestamp_utc,
            q.tags_json,
            q.category
        FROM mention_facts f
        JOIN responses r ON r.response_id = f.response_id
        JOIN queries q
            ON q.project_id = r.project_id AND q.query_id = r.query_id
        WHERE r.project_id = ?
        ORDER BY r.timestamp_utc, f.response_id, f.brand_id
        """,
        (project_id,),
    )
    return [
        ScopedFact(
            response_id=row[0],
            brand_id=row[1],
            mentioned=bool(row[2]),
            recommended=bool(row[3]),
            query_id=row[4],
            provider=row[5],
            model_name=row[6],
            timestamp_utc=row[7],
            query_tags=tuple(json.loads(row[8])),
            query_category=row[9],
        )
        for row in cursor.fetchall()
    ]
