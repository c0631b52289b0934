"""
Scan configuration loader.

Precedence (lowest to highest):
1. ScanConfig defaults
2. YAML file (optional)
3. DUPFINDER_* environment variables
4. Explicit overrides (CLI flags)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from pydantic import ValidationError

from dupfinder.config.exceptions import ConfigError
from dupfinder.models import ScanConfig

logger = structlog.get_logger(__name__)

ENV_PREFIX = "DUPFINDER_"

# Environment variable -> ScanConfig field
ENV_FIELDS = {
    "FOLLOW_LINKS": "follow_symbolic_links",
    "MAX_WORKERS": "max_workers",
    "CHUNK_SIZE": "chunk_size",
    "STRICT": "strict",
}


def _read_yaml(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    return data


def _read_env(environ: dict[str, str]) -> dict[str, Any]:
    """Collect DUPFINDER_* variables; pydantic coerces "true"/"0"/"8"."""
    values: dict[str, Any] = {}
    for suffix, field in ENV_FIELDS.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is not None and raw.strip():
            values[field] = raw.strip()
    return values


def load_config(
    config_path: Optional[Path | str] = None,
    environ: Optional[dict[str, str]] = None,
    **overrides: Any,
) -> ScanConfig:
    """
    Build a validated ScanConfig.

    Args:
        config_path: Optional YAML file with ScanConfig fields
        environ: Environment mapping (default: os.environ)
        **overrides: Explicit values; None values are ignored

    Returns:
        ScanConfig

    Raises:
        ConfigError: If the file is missing or malformed, or validation fails
    """
    values: dict[str, Any] = {}

    if config_path is not None:
        values.update(_read_yaml(Path(config_path)))

    values.update(_read_env(dict(os.environ) if environ is None else environ))
    values.update({key: value for key, value in overrides.items() if value is not None})

    try:
        config = ScanConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.debug(
        "dupfinder_config_loaded",
        config_path=str(config_path) if config_path else None,
        roots=len(config.roots),
        follow_symbolic_links=config.follow_symbolic_links,
        max_workers=config.max_workers,
        strict=config.strict,
    )
    return config
