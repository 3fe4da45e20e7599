from __future__ import annotations

import logging
from pathlib import Path

import pytest

from annotation_model.config import (
    DEFAULT_MAX_NESTING_DEPTH,
    DEFAULT_SINGLE_ELEMENT_NAME,
    MAX_DEPTH_ENV,
    AnnotationModelSettings,
    default_settings,
    load_settings,
)


@pytest.fixture(autouse=True)
def _no_env_override(monkeypatch) -> None:
    monkeypatch.delenv(MAX_DEPTH_ENV, raising=False)


def _write_pyproject(root: Path, body: str) -> Path:
    p = root / "pyproject.toml"
    p.write_text(body, encoding="utf-8")
    return p


def test_defaults_without_a_config_file(tmp_path: Path) -> None:
    settings = load_settings(root=tmp_path)
    assert settings == AnnotationModelSettings()
    assert settings.max_nesting_depth == DEFAULT_MAX_NESTING_DEPTH == 64
    assert settings.single_element_name == DEFAULT_SINGLE_ELEMENT_NAME == "value"


def test_reads_tool_table_from_pyproject(tmp_path: Path) -> None:
    _write_pyproject(
        tmp_path,
        """
[project]
name = "demo"

[tool.annotation_model]
max_nesting_depth = 8
single_element_name = "v"
""",
    )
    settings = load_settings(root=tmp_path)
    assert settings == AnnotationModelSettings(max_nesting_depth=8, single_element_name="v")


def test_explicit_config_path_wins_over_root(tmp_path: Path) -> None:
    other = tmp_path / "other.toml"
    other.write_text("[tool.annotation_model]\nmax_nesting_depth = 12\n", encoding="utf-8")
    assert load_settings(root=tmp_path / "missing", config_path=other).max_nesting_depth == 12


def test_environment_overrides_max_depth(tmp_path: Path, monkeypatch) -> None:
    _write_pyproject(tmp_path, "[tool.annotation_model]\nmax_nesting_depth = 8\n")
    monkeypatch.setenv(MAX_DEPTH_ENV, "5")
    assert load_settings(root=tmp_path).max_nesting_depth == 5


def test_invalid_environment_value_is_an_error(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv(MAX_DEPTH_ENV, "deep")
    with pytest.raises(ValueError, match=MAX_DEPTH_ENV):
        load_settings(root=tmp_path)


def test_unreadable_toml_falls_back_to_defaults(tmp_path: Path, caplog) -> None:
    _write_pyproject(tmp_path, "[tool.annotation_model\nmax_nesting_depth = ")
    with caplog.at_level(logging.WARNING, logger="annotation_model.config"):
        settings = load_settings(root=tmp_path)
    assert settings == AnnotationModelSettings()
    assert "ignoring unreadable config" in caplog.text


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_nesting_depth": 0},
        {"max_nesting_depth": -3},
        {"single_element_name": ""},
    ],
)
def test_settings_reject_invalid_values(kwargs) -> None:
    with pytest.raises(ValueError):
        AnnotationModelSettings(**kwargs)


def test_default_settings_are_cached() -> None:
    default_settings.cache_clear()
    try:
        assert default_settings() is default_settings()
    finally:
        default_settings.cache_clear()
