"""
Configuration loader for BeaconSOV.

This module loads YAML project files and validates them with Pydantic models.

Functions:
    load_config: Main entrypoint to load and validate project.yaml
    format_validation_error: Flatten Pydantic errors into readable lines
"""

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from beacon_sov.exceptions import ConfigFileNotFoundError, ConfigValidationError

from .schema import ProjectConfig

logger = logging.getLogger(__name__)


def format_validation_error(error: ValidationError) -> str:
    """
    Format Pydantic validation errors as "  - loc: msg" lines.

    Example:
        >>> format_validation_error(e)
        '  - brands.0.name: Value error, Brand name cannot be empty'
    """
    lines = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        lines.append(f"  - {loc}: {item['msg']}")
    return "\n".join(lines)


def load_config(config_path: str | Path) -> ProjectConfig:
    """
    Load project.yaml and validate it.

    This function:
    1. Loads YAML from the specified path
    2. Validates structure using the ProjectConfig Pydantic model

    Args:
        config_path: Path to project.yaml file (relative or absolute)

    Returns:
        Validated ProjectConfig

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist at the specified path
        ConfigValidationError: If YAML is invalid or config validation fails

    Example:
        >>> config = load_config("examples/project.yaml")
        >>> [brand.name for brand in config.brands]
        ['Upgraded Points', 'The Points Guy', 'NerdWallet', 'Bankrate']

    Security:
        - Uses yaml.safe_load() to prevent code injection
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(
            f"Failed to read configuration file {config_path}: {e}"
        ) from e

    if raw_config is None:
        raise ConfigValidationError(f"Configuration file is empty: {config_path}")

    if not isinstance(raw_config, dict):
        raise ConfigValidationError(
            f"Configuration root must be a mapping in {config_path}, "
            f"got {type(raw_config).__name__}"
        )

    try:
        config = ProjectConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigValidationError(
            f"Configuration validation failed in {config_path}:\n"
            + format_validation_error(e)
        ) from e

    logger.info(
        f"Loaded project '{config.project_id}': {len(config.brands)} brands, "
        f"{len(config.queries)} queries"
    )
    return config
