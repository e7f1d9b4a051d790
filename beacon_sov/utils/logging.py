"""
JSON log lines for BeaconSOV.

Every record goes to stderr as one JSON object, so stdout stays free for
tables and --format json output. A record carries the UTC time, level,
logger name and message, and optionally:

- project_id and run_id, identifying which analysis run wrote it
- context, a dict of structured fields (query_id, response counts, ...)

Call setup_logging() once from the CLI. Library modules only use
logging.getLogger(__name__).

Example:
    >>> setup_logging(quiet_logs=True)
    >>> log_with_context(
    ...     logging.getLogger("beacon_sov.runner"),
    ...     logging.WARNING,
    ...     "Fetch failed for q1",
    ...     context={"query_id": "q1"},
    ...     project_id="acme-crm",
    ...     run_id="2025-11-02T08-00-00Z",
    ... )
    {"timestamp": "2025-11-02T08:00:01Z", "level": "WARNING", ...}
"""

import json
import logging
import sys
from typing import Any

from beacon_sov.utils.time import utc_timestamp

# Attributes copied from the record to the top level of the JSON line
RUN_FIELDS = ("project_id", "run_id")


class JSONFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        """
        Serialize the record.

        Args:
            record: Record produced by a logger call. project_id, run_id and
                context are read from attributes set through ``extra``.

        Returns:
            JSON object text without a trailing newline. Values that are not
            JSON-native (dates, paths) are written with str().
        """
        entry: dict[str, Any] = {
            "timestamp": utc_timestamp(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        for field in RUN_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        context = getattr(record, "context", None)
        if isinstance(context, dict) and context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(verbose: bool = False, quiet_logs: bool = False) -> None:
    """
    Route the root logger to stderr as JSON lines.

    Replaces any handlers already on the root logger, so calling it again
    (the CLI callback runs per invocation) does not duplicate output.

    Args:
        verbose: Log at DEBUG. Takes precedence over quiet_logs.
        quiet_logs: Log at WARNING. The CLI sets this in text mode so INFO
            lines do not interleave with Rich tables.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet_logs:
        level = logging.WARNING
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    project_id: str | None = None,
    run_id: str | None = None,
) -> None:
    """
    Log message with structured fields attached.

    Args:
        logger: Logger of the calling module
        level: logging level constant
        message: Human-readable message
        context: Extra structured fields, emitted under "context"
        project_id: Project the record belongs to
        run_id: Analysis run the record belongs to
    """
    extra = {
        key: value
        for key, value in (
            ("context", context),
            ("project_id", project_id),
            ("run_id", run_id),
        )
        if value is not None
    }
    logger.log(level, message, extra=extra or None)
