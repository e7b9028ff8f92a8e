"""Entity index for constant-time reference validation.

The index is built once per catalog snapshot and never mutated. Entity ids
are positions in the snapshot's entity list, so the index, the tree and the
relationship graph all agree on what an id means.

Two mappings are kept:

- ``(kind, namespace, name) -> id`` for exact lookups. When two records share
  a key the first one (in discovery order) wins.
- ``(namespace, name) -> [ids]`` in list order, used when a reference names a
  kind the catalog does not recognise.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

from pydantic import BaseModel

from catgraph.logging import setup_logging
from catschema.entity import KNOWN_REF_KINDS, EntityRef, EntityWithSource

logger = setup_logging()


class RefStatus(str, Enum):
    """Resolution state of a reference. Never an error."""

    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    UNKNOWN_KIND = "unknown_kind"

    @property
    def color(self) -> str:
        """Display color a presenter should use for this state."""
        return _STATUS_COLORS[self]


_STATUS_COLORS = {
    RefStatus.RESOLVED: "green",
    RefStatus.NOT_FOUND: "yellow",
    RefStatus.UNKNOWN_KIND: "red",
}


class RefResolution(BaseModel, frozen=True):
    """Outcome of validating one reference against the index."""

    status: RefStatus
    entity_id: int | None = None

    @property
    def resolved(self) -> bool:
        return self.status is RefStatus.RESOLVED


class EntityIndex:
    """Read-only lookup structure over one entity list.

    Example:
        ```python
        index = EntityIndex.build(entities)
        entity_id = index.lookup(parse_ref("api:default/orders", ctx))
        ```
    """

    def __init__(
        self,
        by_key: dict[tuple[str, str, str], int],
        by_name: dict[tuple[str, str], list[int]],
        size: int,
    ) -> None:
        self._by_key = by_key
        self._by_name = by_name
        self._size = size
        self.kinds: frozenset[str] = KNOWN_REF_KINDS

    @classmethod
    def build(cls, entities: Sequence[EntityWithSource]) -> "EntityIndex":
        """Index ``entities`` in a single pass."""
        by_key: dict[tuple[str, str, str], int] = {}
        by_name: dict[tuple[str, str], list[int]] = {}
        for entity_id, item in enumerate(entities):
            key = item.entity.ref.key
            if key in by_key:
                first = entities[by_key[key]]
                logger.debug(
                    "Duplicate entity %s in %s; keeping the one from %s",
                    item.entity.ref_key,
                    item.source_path,
                    first.source_path,
                )
            else:
                by_key[key] = entity_id
            by_name.setdefault((key[1], key[2]), []).append(entity_id)
        return cls(by_key, by_name, len(entities))

    def lookup(self, ref: EntityRef) -> int | None:
        """Return the id ``ref`` points at, or None.

        Exact ``(kind, namespace, name)`` match first. A reference whose kind
        is not recognised falls back to the first entity with that namespace
        and name, in list order.
        """
        entity_id = self._by_key.get(ref.key)
        if entity_id is not None:
            return entity_id
        if ref.kind not in self.kinds:
            candidates = self._by_name.get((ref.namespace, ref.name))
            if candidates:
                return candidates[0]
        return None

    def validate(self, ref: EntityRef) -> RefResolution:
        """Classify ``ref`` as resolved, not found, or of an unknown kind.

        An unrecognised kind is reported as such even when ``lookup`` would
        find a match by name.
        """
        if ref.kind not in self.kinds:
            return RefResolution(status=RefStatus.UNKNOWN_KIND)
        entity_id = self._by_key.get(ref.key)
        if entity_id is None:
            return RefResolution(status=RefStatus.NOT_FOUND)
        return RefResolution(status=RefStatus.RESOLVED, entity_id=entity_id)

    def contains(self, ref: EntityRef) -> bool:
        return ref.key in self._by_key

    def __contains__(self, ref: object) -> bool:
        return isinstance(ref, EntityRef) and self.contains(ref)

    def __len__(self) -> int:
        return self._size
