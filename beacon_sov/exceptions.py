"""
Custom exceptions for BeaconSOV.

This module provides a hierarchy of exceptions that enable type-safe error
handling throughout the application. All exceptions inherit from the base
BeaconSOVError for consistent catching.

Exception Hierarchy:
    BeaconSOVError (base)
    ├── ConfigurationError
    │   ├── ConfigFileNotFoundError
    │   └── ConfigValidationError
    ├── DatabaseError
    │   ├── DatabaseInitError
    │   ├── DatabaseMigrationError
    │   └── DatabaseQueryError
    ├── ExtractionError
    │   └── MentionDetectionError
    ├── AggregationError
    └── ResponseSourceError

Usage:
    from beacon_sov.exceptions import ConfigurationError

    try:
        config = load_config(path)
    except ConfigFileNotFoundError as e:
        logger.error(f"Config file not found: {e}")
        sys.exit(1)
"""


class BeaconSOVError(Exception):
    """
    Base exception for all BeaconSOV errors.

    All custom exceptions in this application should inherit from this class.
    This enables catching all application-specific errors with a single except clause.
    """

    pass


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(BeaconSOVError):
    """
    Base class for configuration-related errors.

    Should be caught and result in exit code 1 (configuration error).
    """

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """
    Configuration file does not exist at the specified path.

    Example:
        raise ConfigFileNotFoundError("/path/to/project.yaml")
    """

    pass


class ConfigValidationError(ConfigurationError):
    """
    Configuration file is invalid (schema validation failed).

    Should include details about which field(s) failed validation.

    Example:
        raise ConfigValidationError("Duplicate brand IDs found: {'b1'}")
    """

    pass


# ============================================================================
# Database Errors
# ============================================================================


class DatabaseError(BeaconSOVError):
    """
    Base class for database-related errors.

    Should be caught and result in exit code 2 (database error).
    """

    pass


class DatabaseInitError(DatabaseError):
    """Database file could not be created or opened."""

    pass


class DatabaseMigrationError(DatabaseError):
    """
    Database schema migration failed.

    Example:
        raise DatabaseMigrationError("Failed to migrate from v0 to v1")
    """

    pass


class DatabaseQueryError(DatabaseError):
    """
    Database query execution failed.

    Example:
        raise DatabaseQueryError("Failed to upsert mention fact: constraint violation")
    """

    pass


# ============================================================================
# Extraction Errors
# ============================================================================


class ExtractionError(BeaconSOVError):
    """
    Base class for brand mention extraction errors.

    Empty text or empty brand lists are never extraction errors; these
    exceptions signal a bug or a broken input record.
    """

    pass


class MentionDetectionError(ExtractionError):
    """
    Failed to detect brand mentions in one response.

    Attributes:
        response_id: Identifier of the response that failed, if known

    Example:
        raise MentionDetectionError("Detection failed", response_id="r-42")
    """

    def __init__(self, message: str, response_id: str | None = None):
        super().__init__(message)
        self.response_id = response_id


# ============================================================================
# Aggregation Errors
# ============================================================================


class AggregationError(BeaconSOVError):
    """
    Aggregation was asked for something it cannot compute.

    Zero totals and empty fact sets are NOT errors (they yield all-zero rows).
    This is raised for caller mistakes such as an unknown time granularity.

    Example:
        raise AggregationError("Unknown granularity 'hourly'")
    """

    pass


# ============================================================================
# Response Source Errors
# ============================================================================


class ResponseSourceError(BeaconSOVError):
    """
    A response source could not deliver or map upstream responses.

    Raised at the collaborator boundary when a payload does not match the
    expected shape, or a pre-fetched responses file cannot be read.

    Example:
        raise ResponseSourceError("Unknown provider 'bing' in responses.yaml")
    """

    pass
