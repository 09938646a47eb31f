"""Configuration loading utilities for the extractor."""

from __future__ import annotations

from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from core.config.models import ExtractorConfig
from core.utils.errors import ConfigError


def default_config_path() -> Path:
    return Path(__file__).with_name("templates.yaml")


def load_config(path: Path | None = None) -> ExtractorConfig:
    """Load and validate extractor configuration from YAML."""

    config_path = path or default_config_path()

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {config_path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config file: {config_path}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    try:
        return ExtractorConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config schema: {config_path}") from exc
