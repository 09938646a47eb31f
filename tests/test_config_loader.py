from __future__ import annotations

from pathlib import Path

import pytest

from core.config.loader import load_config
from core.utils.errors import ConfigError


def test_load_default_config() -> None:
    config = load_config()

    assert config.fallback == "N/A"
    assert {"page_title", "quote", "list_items"} <= set(config.templates)
    assert config.templates["list_items"].repeated is True


def test_load_config_expands_bare_child_patterns(tmp_path: Path) -> None:
    path = tmp_path / "templates.yaml"
    path.write_text(
        """
fallback: "-"
templates:
  card:
    pattern: "<div>{{TEXT:CARD}}</div>"
    children:
      CARD: "<h2>{{TEXT:HEADING}}</h2>"
""",
        encoding="utf-8",
    )

    config = load_config(path)

    child = config.templates["card"].children["CARD"]
    assert child.pattern == "<h2>{{TEXT:HEADING}}</h2>"
    assert child.repeated is False
    assert config.fallback == "-"


def test_load_empty_config_file_gives_empty_registry_config(tmp_path: Path) -> None:
    path = tmp_path / "templates.yaml"
    path.write_text("", encoding="utf-8")

    config = load_config(path)

    assert config.templates == {}
    assert config.fallback == "N/A"


def test_load_config_raises_for_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Config file not found"):
        load_config(tmp_path / "absent.yaml")


def test_load_config_raises_for_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "templates.yaml"
    path.write_text("templates: [", encoding="utf-8")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path)


def test_load_config_raises_for_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "templates.yaml"
    path.write_text("- one\n- two\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="must contain a mapping"):
        load_config(path)


def test_load_config_raises_for_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "templates.yaml"
    path.write_text(
        """
templates:
  broken:
    pattrn: "<a>{{TEXT:X}}</a>"
""",
        encoding="utf-8",
    )

    with pytest.raises(ConfigError, match="Invalid config schema"):
        load_config(path)


def test_config_error_is_value_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        load_config(tmp_path / "absent.yaml")
