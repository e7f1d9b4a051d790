"""
Storage port for brands, queries, responses and mention facts.

The analysis runner and CLI depend on the MentionFactStore protocol, never
on a module-level connection: a store is constructed by the caller and
passed in. Two implementations are provided:

- SQLiteMentionFactStore: durable store backed by storage.db
- InMemoryMentionFactStore: dict-backed store for tests and dry runs

Both keep one fact per (response, brand) pair; saving a fact for an
existing pair overwrites it.
"""

import logging
import sqlite3
from collections.abc import Iterable, Sequence
from typing import Protocol

from ..exceptions import DatabaseInitError, DatabaseQueryError
from ..models import Brand, MentionFact, Query, Response, ScopedFact, scope_fact
from . import db

logger = logging.getLogger(__name__)


class MentionFactStore(Protocol):
    """Persistence operations required by analysis and reporting."""

    def sync_catalog(
        self, project_id: str, brands: Sequence[Brand], queries: Sequence[Query]
    ) -> None:
        """Insert or update the project's brands and queries, keeping order."""
        ...

    def add_responses(
        self, project_id: str, run_id: str, responses: Iterable[Response]
    ) -> None:
        """Store responses. Existing response ids are left untouched."""
        ...

    def save_facts(self, facts: Iterable[MentionFact]) -> None:
        """Insert or overwrite mention facts."""
        ...

    def get_brands(self, project_id: str) -> list[Brand]: ...

    def get_queries(self, project_id: str) -> list[Query]: ...

    def get_responses(self, project_id: str) -> list[Response]: ...

    def get_run_ids(self, project_id: str) -> set[str]:
        """Return run ids that already stored responses for the project."""
        ...

    def get_scoped_facts(self, project_id: str) -> list[ScopedFact]: ...


class SQLiteMentionFactStore:
    """
    MentionFactStore backed by a SQLite file.

    The schema is created or migrated on construction. Each operation opens
    its own connection; write operations commit before returning.

    Raises:
        DatabaseInitError: If the database cannot be created or migrated
        DatabaseQueryError: If a read or write fails
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        try:
            db.init_db_if_needed(db_path)
        except (sqlite3.Error, OSError, ValueError) as e:
            raise DatabaseInitError(
                f"Failed to initialize database {db_path}: {e}"
            ) from e

    def _run(self, description: str, operation):
        conn = db.connect(self.db_path)
        try:
            with conn:
                return operation(conn)
        except sqlite3.Error as e:
            logger.error(f"Database {description} failed: {e}", exc_info=True)
            raise DatabaseQueryError(f"Failed to {description}: {e}") from e
        finally:
            conn.close()

    def sync_catalog(
        self, project_id: str, brands: Sequence[Brand], queries: Sequence[Query]
    ) -> None:
        def _sync(conn):
            for position, brand in enumerate(brands):
                db.upsert_brand(conn, project_id, brand, position=position)
            for position, query in enumerate(queries):
                db.upsert_query(conn, project_id, query, position=position)

        self._run("sync brands and queries", _sync)
        logger.debug(
            f"Synced {len(brands)} brands and {len(queries)} queries "
            f"for project {project_id}"
        )

    def add_responses(
        self, project_id: str, run_id: str, responses: Iterable[Response]
    ) -> None:
        def _add(conn):
            for response in responses:
                db.insert_response(conn, project_id, run_id, response)

        self._run("store responses", _add)

    def save_facts(self, facts: Iterable[MentionFact]) -> None:
        def _save(conn):
            for fact in facts:
                db.upsert_mention_fact(conn, fact)

        self._run("store mention facts", _save)

    def get_brands(self, project_id: str) -> list[Brand]:
        return self._run("read brands", lambda conn: db.get_brands(conn, project_id))

    def get_queries(self, project_id: str) -> list[Query]:
        return self._run(
            "read queries", lambda conn: db.get_queries(conn, project_id)
        )

    def get_responses(self, project_id: str) -> list[Response]:
        return self._run(
            "read responses", lambda conn: db.get_responses(conn, project_id)
        )

    def get_run_ids(self, project_id: str) -> set[str]:
        return self._run(
            "read run ids", lambda conn: db.get_run_ids(conn, project_id)
        )

    def get_scoped_facts(self, project_id: str) -> list[ScopedFact]:
        return self._run(
            "read mention facts", lambda conn: db.get_scoped_facts(conn, project_id)
        )


class InMemoryMentionFactStore:
    """
    MentionFactStore held in process memory.

    Example:
        >>> store = InMemoryMentionFactStore()
        >>> store.sync_catalog("demo", brands, queries)
        >>> store.get_brands("demo") == list(brands)
        True
    """

    def __init__(self):
        self._brands: dict[str, dict[str, Brand]] = {}
        self._queries: dict[str, dict[str, Query]] = {}
        # response_id -> (project_id, response)
        self._responses: dict[str, tuple[str, Response]] = {}
        self._run_ids: dict[str, set[str]] = {}
        self._facts: dict[tuple[str, str], MentionFact] = {}

    def sync_catalog(
        self, project_id: str, brands: Sequence[Brand], queries: Sequence[Query]
    ) -> None:
        # Re-syncing reorders to match the latest config
        known_brands = self._brands.get(project_id, {})
        merged_brands = {brand.id: brand for brand in brands}
        for brand_id, brand in known_brands.items():
            merged_brands.setdefault(brand_id, brand)
        self._brands[project_id] = merged_brands

        known_queries = self._queries.get(project_id, {})
        merged_queries = {query.id: query for query in queries}
        for query_id, query in known_queries.items():
            merged_queries.setdefault(query_id, query)
        self._queries[project_id] = merged_queries

    def add_responses(
        self, project_id: str, run_id: str, responses: Iterable[Response]
    ) -> None:
        for response in responses:
            if response.id not in self._responses:
                self._responses[response.id] = (project_id, response)
                self._run_ids.setdefault(project_id, set()).add(run_id)

    def save_facts(self, facts: Iterable[MentionFact]) -> None:
        for fact in facts:
            self._facts[(fact.response_id, fact.brand_id)] = fact

    def get_brands(self, project_id: str) -> list[Brand]:
        return list(self._brands.get(project_id, {}).values())

    def get_queries(self, project_id: str) -> list[Query]:
        return list(self._queries.get(project_id, {}).values())

    def get_responses(self, project_id: str) -> list[Response]:
        responses = [
            response
            for owner, response in self._responses.values()
            if owner == project_id
        ]
        return sorted(responses, key=lambda r: (r.timestamp_utc, r.id))

    def get_run_ids(self, project_id: str) -> set[str]:
        return set(self._run_ids.get(project_id, set()))

    def get_scoped_facts(self, project_id: str) -> list[ScopedFact]:
        queries = self._queries.get(project_id, {})
        scoped = []
        for (response_id, _brand_id), fact in self._facts.items():
            owner, response = self._responses.get(response_id, (None, None))
            if owner != project_id or response.query_id not in queries:
                continue
            scoped.append(scope_fact(fact, response, queries[response.query_id]))

        return sorted(
            scoped, key=lambda f: (f.timestamp_utc, f.response_id, f.brand_id)
        )
