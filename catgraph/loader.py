"""Catalog file discovery and YAML decoding.

Discovery walks a directory tree for files named like ``catalog-info.yaml``,
skipping build outputs, dependency trees and hidden directories. Each file
may hold several YAML documents separated by ``---``; every document is
decoded on its own, so one malformed document costs only that document.

Problems below the catalog root are collected rather than raised: a partial
catalog is still useful. Only an unreadable root raises (`DiscoveryError`).
"""

from __future__ import annotations

import hashlib
import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

from catgraph.builders import EntityBuilder
from catgraph.config import CatalogConfig
from catgraph.logging import setup_logging
from catschema.entity import EntityWithSource
from catschema.errors import DiscoveryError, DocumentError, EntityValidationError, ParseError

logger = setup_logging()

_DOCUMENT_MARKER = re.compile(r"^---(\s|$)")


class FileLoad(BaseModel):
    """Entities and errors from one catalog file."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: Path
    entities: tuple[EntityWithSource, ...] = ()
    errors: tuple[ParseError, ...] = ()


class CatalogLoad(BaseModel):
    """Entities and errors from a whole catalog root, in discovery order."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    root: Path
    files: tuple[Path, ...] = ()
    entities: tuple[EntityWithSource, ...] = ()
    errors: tuple[ParseError, ...] = Field(default=(), description="Skipped documents and files")


def discover_catalog_files(root: Path | str, config: CatalogConfig | None = None) -> list[Path]:
    """Find catalog files below ``root``.

    Directories are visited in sorted order and excluded directories are
    pruned before descending. When symlinks are followed, a directory is
    never entered twice, so link loops terminate.

    Raises:
        DiscoveryError: If ``root`` is missing or cannot be listed.
    """
    config = config or CatalogConfig()
    root = Path(root)
    if not root.is_dir():
        raise DiscoveryError("catalog root does not exist or is not a directory", source_path=root)
    try:
        os.listdir(root)
    except OSError as e:
        raise DiscoveryError(f"cannot read catalog root: {e}", source_path=root) from e

    found: list[Path] = []
    seen_dirs: set[str] = set()
    for dirpath, dirnames, filenames in os.walk(root, followlinks=config.follow_symlinks):
        real = os.path.realpath(dirpath)
        if real in seen_dirs:
            dirnames[:] = []
            continue
        seen_dirs.add(real)
        dirnames[:] = sorted(d for d in dirnames if not config.should_exclude_dir(d))
        found.extend(Path(dirpath) / name for name in sorted(filenames) if config.is_catalog_file(name))
    return found


def split_documents(text: str) -> list[str]:
    """Split a YAML stream on ``---`` marker lines.

    Content after the marker on the same line (``--- {kind: API}``) opens
    the next chunk. Chunks holding only whitespace are dropped; the rest
    keep their order.
    """
    chunks: list[str] = []
    current: list[str] = []
    for line in text.splitlines(keepends=True):
        if _DOCUMENT_MARKER.match(line):
            chunks.append("".join(current))
            rest = line[3:]
            current = [rest] if rest.strip() else []
        else:
            current.append(line)
    chunks.append("".join(current))
    return [chunk for chunk in chunks if chunk.strip()]


def document_fingerprint(chunk: str) -> str:
    """Digest of a document's text, ignoring surrounding whitespace."""
    return hashlib.sha1(chunk.strip().encode("utf-8")).hexdigest()


def parse_catalog_file(path: Path | str) -> FileLoad:
    """Decode every document in one catalog file.

    Documents that are empty (or only comments) are skipped silently.
    Malformed YAML and non-mapping documents become `DocumentError`, records
    lacking ``kind`` or ``metadata.name`` become `EntityValidationError`.
    A file that cannot be read at all yields a single `DocumentError`
    without a document index.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Skipping unreadable catalog file %s: %s", path, e)
        return FileLoad(path=path, errors=(DocumentError(f"cannot read file: {e}", source_path=path),))

    builder = EntityBuilder(source_path=path)
    entities: list[EntityWithSource] = []
    errors: list[ParseError] = []
    for document_index, chunk in enumerate(split_documents(text)):
        fingerprint = document_fingerprint(chunk)
        try:
            record = yaml.safe_load(chunk)
        except yaml.YAMLError as e:
            errors.append(
                DocumentError(
                    f"invalid YAML: {e}",
                    source_path=path,
                    document_index=document_index,
                    fingerprint=fingerprint,
                )
            )
            logger.warning("Skipping malformed document: %s", errors[-1])
            continue
        if record is None:
            continue
        if not isinstance(record, dict):
            errors.append(
                DocumentError(
                    f"expected a mapping, got {type(record).__name__}",
                    source_path=path,
                    document_index=document_index,
                    fingerprint=fingerprint,
                )
            )
            logger.warning("Skipping document: %s", errors[-1])
            continue
        try:
            entities.append(builder.build(record, document_index, fingerprint))
        except EntityValidationError as e:
            errors.append(e)
            logger.warning("Skipping record: %s", e)
    return FileLoad(path=path, entities=tuple(entities), errors=tuple(errors))


def load_catalog(root: Path | str, config: CatalogConfig | None = None) -> CatalogLoad:
    """Load every entity below ``root`` (or from ``root`` itself if a file).

    Raises:
        DiscoveryError: If ``root`` is missing or cannot be listed.
    """
    root = Path(root)
    if root.is_file():
        files = [root]
    else:
        files = discover_catalog_files(root, config)

    entities: list[EntityWithSource] = []
    errors: list[ParseError] = []
    for path in files:
        result = parse_catalog_file(path)
        entities.extend(result.entities)
        errors.extend(result.errors)
    logger.info("Loaded %d entities from %d files under %s (%d skipped)", len(entities), len(files), root, len(errors))
    return CatalogLoad(root=root, files=tuple(files), entities=tuple(entities), errors=tuple(errors))
