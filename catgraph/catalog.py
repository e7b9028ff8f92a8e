"""Catalog snapshots and all-or-nothing reload.

A `CatalogSnapshot` bundles one entity list with the index and tree built
from it. The three always travel together: nothing swaps an index without
its tree. Snapshots are never modified; reload builds a complete new one
aside and swaps it in only when the new parse is at least as clean as the
current one.

**Initial load vs reload:**

- ``Catalog.load()`` is lenient. Broken documents are skipped and collected
  in ``snapshot.errors``; only an unreadable root raises.
- ``Catalog.reload()`` is strict. If discovery fails, or any parse error
  appears that the current snapshot did not already have, the current
  snapshot stays in place and the error is raised for the presenter to show.
  Selection and expansion are untouched because nothing was swapped.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Collection, Sequence

from pydantic import BaseModel, ConfigDict, Field

from catgraph.config import CatalogConfig, load_config
from catgraph.details import EntityDetails, entity_details
from catgraph.graph import RelationshipGraph, extract_relationships
from catgraph.index import EntityIndex
from catgraph.loader import load_catalog
from catgraph.logging import setup_logging
from catgraph.tree import EntityTree, TreeNode
from catschema.entity import EntityRef, EntityWithSource
from catschema.errors import ParseError

logger = setup_logging()


class CatalogSnapshot(BaseModel):
    """Immutable result of one successful load."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    root: Path
    entities: tuple[EntityWithSource, ...] = ()
    index: EntityIndex
    tree: EntityTree
    errors: tuple[ParseError, ...] = Field(default=(), description="Documents skipped while loading")

    def relationship_graph(self, entity_id: int) -> RelationshipGraph:
        return extract_relationships(entity_id, self.entities, self.index)

    def details(self, entity_id: int) -> EntityDetails:
        return entity_details(entity_id, self.entities, self.index)

    def visible_nodes(self, expanded: Collection[int], search: str | None = None) -> list[TreeNode]:
        return self.tree.visible_nodes(expanded, search)

    def entity_for_node(self, node_id: int) -> EntityWithSource | None:
        node = self.tree.get_node(node_id)
        if node.entity_id is None:
            return None
        return self.entities[node.entity_id]

    def find(self, ref: EntityRef) -> int | None:
        """Entity id for ``ref``, using the index's lookup rules."""
        return self.index.lookup(ref)


def build_snapshot(
    entities: Sequence[EntityWithSource],
    errors: Sequence[ParseError] = (),
    root: Path | str = ".",
) -> CatalogSnapshot:
    """Index ``entities`` and build their tree as one unit."""
    entities = tuple(entities)
    index = EntityIndex.build(entities)
    tree = EntityTree.build(entities, index)
    return CatalogSnapshot(root=Path(root), entities=entities, index=index, tree=tree, errors=tuple(errors))


def load_snapshot(root: Path | str, config: CatalogConfig | None = None) -> CatalogSnapshot:
    """Lenient load of ``root``.

    Raises:
        DiscoveryError: If ``root`` is missing or unreadable.
    """
    result = load_catalog(root, config)
    return build_snapshot(result.entities, result.errors, result.root)


def new_errors(previous: CatalogSnapshot | None, errors: Sequence[ParseError]) -> list[ParseError]:
    """Errors in ``errors`` that ``previous`` did not already have.

    Keys are counted, so a second copy of an already broken document is new.
    """
    known = Counter(error.key for error in previous.errors) if previous is not None else Counter()
    fresh: list[ParseError] = []
    for error in errors:
        if known[error.key] > 0:
            known[error.key] -= 1
        else:
            fresh.append(error)
    return fresh


class Catalog:
    """Holds the current snapshot for a catalog root.

    Example:
        ```python
        catalog = Catalog("services/")
        snapshot = catalog.load()
        ...
        try:
            snapshot = catalog.reload()
        except ParseError as e:
            show_error(e)  # catalog.snapshot is unchanged
        ```
    """

    def __init__(self, root: Path | str, config: CatalogConfig | None = None) -> None:
        self.root = Path(root)
        self.config = config or load_config()
        self._snapshot: CatalogSnapshot | None = None
        self.last_reload_errors: tuple[ParseError, ...] = ()

    @property
    def snapshot(self) -> CatalogSnapshot:
        if self._snapshot is None:
            raise RuntimeError("Catalog has not been loaded; call load() first")
        return self._snapshot

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    def load(self) -> CatalogSnapshot:
        """Initial lenient load; replaces any current snapshot.

        Raises:
            DiscoveryError: If the root is missing or unreadable.
        """
        self._snapshot = load_snapshot(self.root, self.config)
        self.last_reload_errors = ()
        logger.info(
            "Catalog %s: %d entities, %d skipped documents",
            self.root,
            len(self._snapshot.entities),
            len(self._snapshot.errors),
        )
        return self._snapshot

    def reload(self, root: Path | str | None = None) -> CatalogSnapshot:
        """Rebuild the snapshot, swapping it in only on a clean parse.

        Args:
            root: Optional new root. It becomes the catalog's root only if
                the reload succeeds.

        Raises:
            DiscoveryError: If the root is missing or unreadable.
            ParseError: The first parse error the current snapshot did not
                have. All of them are kept in ``last_reload_errors``.
        """
        if self._snapshot is None:
            if root is not None:
                self.root = Path(root)
            return self.load()

        target = Path(root) if root is not None else self.root
        try:
            candidate = load_snapshot(target, self.config)
        except ParseError as e:
            self.last_reload_errors = (e,)
            logger.warning("Reload of %s failed; keeping the previous catalog: %s", target, e)
            raise

        fresh = new_errors(self._snapshot, candidate.errors)
        if fresh:
            self.last_reload_errors = tuple(fresh)
            logger.warning(
                "Reload of %s found %d new error(s); keeping the previous catalog", target, len(fresh)
            )
            raise fresh[0]

        self._snapshot = candidate
        self.root = target
        self.last_reload_errors = ()
        logger.info("Reloaded %s: %d entities", target, len(candidate.entities))
        return candidate

    def relationship_graph(self, entity_id: int) -> RelationshipGraph:
        return self.snapshot.relationship_graph(entity_id)

    def details(self, entity_id: int) -> EntityDetails:
        return self.snapshot.details(entity_id)

    def visible_nodes(self, expanded: Collection[int], search: str | None = None) -> list[TreeNode]:
        return self.snapshot.visible_nodes(expanded, search)

    def selected_entity(self, node_id: int) -> EntityWithSource | None:
        return self.snapshot.entity_for_node(node_id)


def reload(root: Path | str, previous: CatalogSnapshot | None, config: CatalogConfig | None = None) -> CatalogSnapshot:
    """Functional form of `Catalog.reload`: return a new snapshot or raise.

    ``previous`` is never modified; on failure the caller keeps using it.
    """
    candidate = load_snapshot(root, config)
    fresh = new_errors(previous, candidate.errors)
    if previous is not None and fresh:
        raise fresh[0]
    return candidate
