"""Load catgraph config from TOML (e.g. catgraph.toml).

Config file is looked up in order:
  1. Path in CATGRAPH_CONFIG env var (if set)
  2. catgraph.toml in the current working directory

If no file is found, built-in defaults are used. CATGRAPH_LOG_LEVEL, when
set, overrides the configured log level.

Example::

    [catalog]
    filenames = ["catalog-info.yaml", "catalog-info.yml"]
    extra_excluded_dirs = ["generated"]
    follow_symlinks = false

    [logging]
    level = "INFO"
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from catgraph.logging import resolve_level, setup_logging

CONFIG_ENV = "CATGRAPH_CONFIG"
LOG_LEVEL_ENV = "CATGRAPH_LOG_LEVEL"
CONFIG_FILENAME = "catgraph.toml"

DEFAULT_CATALOG_FILENAMES = ("catalog-info.yaml", "catalog-info.yml")

# Build outputs, dependency trees and tool caches; never hold catalog files.
DEFAULT_EXCLUDED_DIRS = (
    "target",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
    ".tox",
    "build",
    ".gradle",
    "bin",
    "obj",
    "dist",
    "out",
    ".next",
    ".nuxt",
    ".svelte-kit",
    ".cache",
    ".parcel-cache",
    ".turbo",
    "coverage",
)

DEFAULT_EXCLUDED_PREFIXES = ("bazel-",)

logger = setup_logging()


class CatalogConfig(BaseModel, frozen=True):
    """Settings for discovery and logging.

    Attributes:
        catalog_filenames: File names treated as catalog files.
        excluded_dirs: Directory names never descended into.
        excluded_dir_prefixes: Directory name prefixes never descended into.
        exclude_hidden_dirs: Skip every directory whose name starts with ``.``.
        follow_symlinks: Descend into symlinked directories.
        log_level: Level name for the ``catgraph`` logger.
    """

    catalog_filenames: tuple[str, ...] = Field(default=DEFAULT_CATALOG_FILENAMES, min_length=1)
    excluded_dirs: frozenset[str] = frozenset(DEFAULT_EXCLUDED_DIRS)
    excluded_dir_prefixes: tuple[str, ...] = DEFAULT_EXCLUDED_PREFIXES
    exclude_hidden_dirs: bool = True
    follow_symlinks: bool = False
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        resolve_level(value)
        return value.strip().upper()

    def should_exclude_dir(self, name: str) -> bool:
        if self.exclude_hidden_dirs and name.startswith("."):
            return True
        if name in self.excluded_dirs:
            return True
        return any(name.startswith(prefix) for prefix in self.excluded_dir_prefixes)

    def is_catalog_file(self, name: str) -> bool:
        return name in self.catalog_filenames


def _default_config_paths() -> list[Path]:
    """Return paths to check for catgraph.toml (first existing wins)."""
    paths: list[Path] = []
    if os.environ.get(CONFIG_ENV):
        paths.append(Path(os.environ[CONFIG_ENV]))
    paths.append(Path.cwd() / CONFIG_FILENAME)
    return paths


def _str_list(value: Any) -> list[str] | None:
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return [v for v in value if v.strip()]
    return None


def _apply_toml(out: dict[str, Any], data: dict[str, Any]) -> None:
    catalog = data.get("catalog")
    if isinstance(catalog, dict):
        filenames = _str_list(catalog.get("filenames"))
        if filenames:
            out["catalog_filenames"] = tuple(filenames)
        excluded = _str_list(catalog.get("excluded_dirs"))
        if excluded is not None:
            out["excluded_dirs"] = frozenset(excluded)
        extra = _str_list(catalog.get("extra_excluded_dirs"))
        if extra:
            out["excluded_dirs"] = frozenset(out["excluded_dirs"]) | frozenset(extra)
        prefixes = _str_list(catalog.get("excluded_dir_prefixes"))
        if prefixes is not None:
            out["excluded_dir_prefixes"] = tuple(prefixes)
        if isinstance(catalog.get("exclude_hidden_dirs"), bool):
            out["exclude_hidden_dirs"] = catalog["exclude_hidden_dirs"]
        if isinstance(catalog.get("follow_symlinks"), bool):
            out["follow_symlinks"] = catalog["follow_symlinks"]
    logging_table = data.get("logging")
    if isinstance(logging_table, dict) and isinstance(logging_table.get("level"), str):
        _set_level(out, logging_table["level"], "[logging] level")


def _set_level(out: dict[str, Any], value: str, source: str) -> None:
    try:
        resolve_level(value)
    except ValueError:
        logger.warning("Ignoring %s = %r: not a log level", source, value)
        return
    out["log_level"] = value


def load_config(path: Path | str | None = None) -> CatalogConfig:
    """Load catgraph config from a TOML file.

    Args:
        path: Explicit config file. When omitted, the default lookup paths
            are tried and the first readable one wins.

    Returns:
        A CatalogConfig. Missing tables or keys, and values of the wrong
        type, keep their built-in defaults. Unknown log level names are
        logged and ignored.
    """
    out: dict[str, Any] = {
        "catalog_filenames": DEFAULT_CATALOG_FILENAMES,
        "excluded_dirs": frozenset(DEFAULT_EXCLUDED_DIRS),
    }
    candidates = [Path(path)] if path is not None else _default_config_paths()
    for candidate in candidates:
        if candidate.is_file():
            try:
                with open(candidate, "rb") as f:
                    data = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError):
                continue
            _apply_toml(out, data)
            break
    if os.environ.get(LOG_LEVEL_ENV):
        _set_level(out, os.environ[LOG_LEVEL_ENV], LOG_LEVEL_ENV)
    return CatalogConfig(**out)
