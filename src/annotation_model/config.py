from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "pyproject.toml"
CONFIG_TABLE = ("tool", "annotation_model")
MAX_DEPTH_ENV = "ANNOTATION_MODEL_MAX_DEPTH"

DEFAULT_MAX_NESTING_DEPTH = 64
DEFAULT_SINGLE_ELEMENT_NAME = "value"


@dataclass(frozen=True)
class AnnotationModelSettings:
    # Bound on array/nested-annotation depth for encode, render, compare and hash.
    max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH
    # Sole parameter with this name renders without its `name = ` prefix.
    single_element_name: str = DEFAULT_SINGLE_ELEMENT_NAME

    def __post_init__(self) -> None:
        if self.max_nesting_depth < 1:
            raise ValueError("max_nesting_depth must be >= 1")
        if not self.single_element_name:
            raise ValueError("single_element_name must be a non-empty string")


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        logger.warning("ignoring unreadable config %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _config_section(data: dict[str, Any]) -> dict[str, Any]:
    section: Any = data
    for key in CONFIG_TABLE:
        if not isinstance(section, dict):
            return {}
        section = section.get(key, {})
    return section if isinstance(section, dict) else {}


def load_settings(root: Path | None = None, config_path: Path | None = None) -> AnnotationModelSettings:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    section = _config_section(_load_toml(config_path))

    max_depth = section.get("max_nesting_depth", DEFAULT_MAX_NESTING_DEPTH)
    env_depth = os.environ.get(MAX_DEPTH_ENV)
    if env_depth:
        try:
            max_depth = int(env_depth)
        except ValueError as exc:
            raise ValueError(f"{MAX_DEPTH_ENV} must be an integer, got {env_depth!r}") from exc

    single_element_name = section.get("single_element_name", DEFAULT_SINGLE_ELEMENT_NAME)
    return AnnotationModelSettings(
        max_nesting_depth=int(max_depth),
        single_element_name=str(single_element_name),
    )


@lru_cache(maxsize=1)
def default_settings() -> AnnotationModelSettings:
    """Process-wide settings, read once from the working directory and environment."""
    return load_settings()
