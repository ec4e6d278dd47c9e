"""YAML configuration loading with secret reference injection."""

from __future__ import annotations

import os
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from expense_report.errors import ConfigError
from expense_report.models import AppConfig
from expense_report.utils.secrets import resolve_secrets_in_dict

logger = structlog.get_logger()

CONFIG_ENV_VAR = "EXPENSE_REPORT_CONFIG"

DEFAULT_CONFIG_PATHS = [
    Path("config.yaml"),
    Path("config.yml"),
    Path.home() / ".config" / "expense-report" / "config.yaml",
]


def find_config_file(config_path: Path | None = None) -> Path:
    """Find the configuration file.

    Lookup order: the explicit path, then $EXPENSE_REPORT_CONFIG, then the
    default locations.

    Raises:
        FileNotFoundError: If no configuration file is found.
    """
    if config_path is None and os.environ.get(CONFIG_ENV_VAR):
        config_path = Path(os.environ[CONFIG_ENV_VAR])

    if config_path is not None:
        if config_path.exists():
            return config_path
        raise FileNotFoundError(f"Config file not found: {config_path}")

    for path in DEFAULT_CONFIG_PATHS:
        if path.exists():
            logger.debug("config_found", path=str(path))
            return path

    search_paths = ", ".join(str(p) for p in DEFAULT_CONFIG_PATHS)
    raise FileNotFoundError(
        f"No config file found. Searched: {search_paths}. "
        f"Create one from config.example.yaml."
    )


def load_config(config_path: Path | None = None, resolve_secrets: bool = True) -> AppConfig:
    """Load and validate application configuration.

    A relative `export.output_dir` is taken relative to the config file.

    Args:
        config_path: Explicit path to config file.
        resolve_secrets: Whether to resolve `op://` and `env:` references.
            Set to False to validate a file without access to the secrets.

    Raises:
        FileNotFoundError: If no configuration file is found.
        ConfigError: If the file is not valid YAML, a secret cannot be
            resolved, or the values fail validation.
    """
    path = find_config_file(config_path)
    logger.debug("loading_config", path=str(path))

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    if resolve_secrets:
        try:
            raw = resolve_secrets_in_dict(raw)
        except RuntimeError as e:
            raise ConfigError(str(e)) from e

    try:
        config = AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}:\n{e}") from e

    if not config.export.output_dir.is_absolute():
        config.export.output_dir = path.parent / config.export.output_dir
    return config
