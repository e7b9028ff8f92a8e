"""Hierarchical tree of catalog entities.

The tree is an arena: nodes live in one tuple and refer to each other by
integer id. Ids are assigned in a single pre-order pass, so a node's id is
always smaller than the ids of its descendants and ``nodes[i].id == i``.

Layout, top level in this order:

- **Domains**: each domain, with the systems that declare it nested below
- **Systems (ungrouped)**: systems with no resolvable domain
- **Components (orphaned)** / **APIs (orphaned)**: no resolvable system
- **Resources**, **Users**
- **Groups**: root groups, child groups nested under their parent
- **Other Entities**: locations and unrecognised kinds

A system's components and APIs sit in ``Components`` and ``APIs`` sub-group
nodes below the system; each sub-group exists only when it has children.

Selection, expansion and search text belong to the presenter (see
`catgraph.view`); building a tree never reads or changes them.
"""

from __future__ import annotations

from enum import Enum
from typing import Collection, Sequence

from pydantic import BaseModel, Field

from catgraph.index import EntityIndex
from catgraph.logging import setup_logging
from catschema.entity import EntityKind, EntityRef, EntityWithSource

logger = setup_logging()


class NodeKind(str, Enum):
    ENTITY = "entity"
    CATEGORY = "category"


class Category(str, Enum):
    """Synthetic grouping nodes. The value is the node label."""

    DOMAINS = "Domains"
    SYSTEMS = "Systems (ungrouped)"
    COMPONENTS = "Components (orphaned)"
    APIS = "APIs (orphaned)"
    RESOURCES = "Resources"
    GROUPS = "Groups"
    USERS = "Users"
    OTHER = "Other Entities"
    SYSTEM_COMPONENTS = "Components"
    SYSTEM_APIS = "APIs"


TOP_LEVEL_CATEGORIES: tuple[Category, ...] = (
    Category.DOMAINS,
    Category.SYSTEMS,
    Category.COMPONENTS,
    Category.APIS,
    Category.RESOURCES,
    Category.GROUPS,
    Category.USERS,
    Category.OTHER,
)

_KIND_CATEGORIES: dict[EntityKind, Category] = {
    EntityKind.DOMAIN: Category.DOMAINS,
    EntityKind.SYSTEM: Category.SYSTEMS,
    EntityKind.COMPONENT: Category.COMPONENTS,
    EntityKind.API: Category.APIS,
    EntityKind.RESOURCE: Category.RESOURCES,
    EntityKind.GROUP: Category.GROUPS,
    EntityKind.USER: Category.USERS,
}


class TreeNode(BaseModel, frozen=True):
    """One node of the entity tree.

    Attributes:
        id: Position of the node in `EntityTree.nodes`.
        kind: Whether the node shows an entity or a synthetic category.
        label: Text shown for the node (entity display name or category name).
        entity_id: Position of the entity in the snapshot's entity list.
        category: Which category a CATEGORY node stands for.
        parent: Id of the parent node, None at the top level.
        children: Ids of the child nodes, in display order.
        depth: Zero at the top level.
        cycle_broken: The entity is a group whose parent chain loops back to
            itself; it was placed at the Groups top level instead of nesting.
    """

    id: int = Field(ge=0)
    kind: NodeKind
    label: str
    entity_id: int | None = None
    category: Category | None = None
    parent: int | None = None
    children: tuple[int, ...] = ()
    depth: int = Field(default=0, ge=0)
    cycle_broken: bool = False

    @property
    def is_category(self) -> bool:
        return self.kind is NodeKind.CATEGORY

    @property
    def has_children(self) -> bool:
        return bool(self.children)


class _Draft:
    """Mutable node used while placing entities, before ids exist."""

    __slots__ = ("kind", "label", "entity_id", "category", "children", "cycle_broken", "id")

    def __init__(
        self,
        kind: NodeKind,
        label: str,
        entity_id: int | None = None,
        category: Category | None = None,
    ) -> None:
        self.kind = kind
        self.label = label
        self.entity_id = entity_id
        self.category = category
        self.children: list[_Draft] = []
        self.cycle_broken = False
        self.id = -1


def _resolve(index: EntityIndex, entities: Sequence[EntityWithSource], ref: EntityRef | None, kind: EntityKind) -> int | None:
    """Id of the entity ``ref`` points at, if it exists and has ``kind``."""
    if ref is None:
        return None
    entity_id = index.lookup(ref)
    if entity_id is None or entities[entity_id].entity.kind is not kind:
        return None
    return entity_id


def _group_parents(entities: Sequence[EntityWithSource], index: EntityIndex) -> dict[int, int]:
    parents: dict[int, int] = {}
    for entity_id, item in enumerate(entities):
        entity = item.entity
        if entity.kind is EntityKind.GROUP:
            parent_id = _resolve(index, entities, getattr(entity.spec, "parent", None), EntityKind.GROUP)
            if parent_id is not None:
                parents[entity_id] = parent_id
    return parents


def _in_cycle(group_id: int, parents: dict[int, int]) -> bool:
    """True when following parent links from ``group_id`` comes back to it."""
    visited = {group_id}
    current = parents.get(group_id)
    while current is not None:
        if current == group_id:
            return True
        if current in visited:
            # the chain runs into a cycle that does not include group_id
            return False
        visited.add(current)
        current = parents.get(current)
    return False


class EntityTree(BaseModel, frozen=True):
    """Immutable tree over one entity list.

    Example:
        ```python
        tree = EntityTree.build(entities, index)
        rows = tree.visible_nodes(expanded={0, 3}, search="payments")
        ```
    """

    nodes: tuple[TreeNode, ...] = ()
    root_ids: tuple[int, ...] = ()
    entity_nodes: dict[int, int] = Field(default_factory=dict)

    @classmethod
    def build(cls, entities: Sequence[EntityWithSource], index: EntityIndex | None = None) -> "EntityTree":
        """Place every entity exactly once and number the nodes."""
        if index is None:
            index = EntityIndex.build(entities)

        top = {category: _Draft(NodeKind.CATEGORY, category.value, category=category) for category in TOP_LEVEL_CATEGORIES}
        drafts = [_Draft(NodeKind.ENTITY, item.entity.display_name, entity_id=i) for i, item in enumerate(entities)]
        system_groups: dict[int, dict[Category, _Draft]] = {}
        group_parents = _group_parents(entities, index)

        for entity_id, item in enumerate(entities):
            entity = item.entity
            draft = drafts[entity_id]
            kind = entity.kind

            if kind is EntityKind.SYSTEM:
                domain_id = _resolve(index, entities, getattr(entity.spec, "domain", None), EntityKind.DOMAIN)
                parent = drafts[domain_id] if domain_id is not None else top[Category.SYSTEMS]
            elif kind in (EntityKind.COMPONENT, EntityKind.API):
                system_id = _resolve(index, entities, getattr(entity.spec, "system", None), EntityKind.SYSTEM)
                if system_id is None:
                    parent = top[_KIND_CATEGORIES[kind]]
                else:
                    sub = Category.SYSTEM_COMPONENTS if kind is EntityKind.COMPONENT else Category.SYSTEM_APIS
                    groups = system_groups.setdefault(system_id, {})
                    if sub not in groups:
                        groups[sub] = _Draft(NodeKind.CATEGORY, sub.value, category=sub)
                    parent = groups[sub]
            elif kind is EntityKind.GROUP:
                parent_id = group_parents.get(entity_id)
                if parent_id is not None and _in_cycle(entity_id, group_parents):
                    logger.warning(
                        "Group %s is part of a parent cycle; showing it at the top level", entity.ref_key
                    )
                    draft.cycle_broken = True
                    parent_id = None
                parent = drafts[parent_id] if parent_id is not None else top[Category.GROUPS]
            else:
                parent = top[_KIND_CATEGORIES.get(kind, Category.OTHER)]
            parent.children.append(draft)

        # systems hold only their sub-groups, components before APIs
        for system_id, groups in system_groups.items():
            drafts[system_id].children.extend(
                groups[sub] for sub in (Category.SYSTEM_COMPONENTS, Category.SYSTEM_APIS) if sub in groups
            )

        return cls._number([top[category] for category in TOP_LEVEL_CATEGORIES])

    @classmethod
    def _number(cls, roots: list[_Draft]) -> "EntityTree":
        order: list[tuple[_Draft, int | None, int]] = []
        stack: list[tuple[_Draft, int | None, int]] = [(root, None, 0) for root in reversed(roots)]
        while stack:
            draft, parent_id, depth = stack.pop()
            draft.id = len(order)
            order.append((draft, parent_id, depth))
            stack.extend((child, draft.id, depth + 1) for child in reversed(draft.children))

        nodes = tuple(
            TreeNode(
                id=draft.id,
                kind=draft.kind,
                label=draft.label,
                entity_id=draft.entity_id,
                category=draft.category,
                parent=parent_id,
                children=tuple(child.id for child in draft.children),
                depth=depth,
                cycle_broken=draft.cycle_broken,
            )
            for draft, parent_id, depth in order
        )
        entity_nodes = {node.entity_id: node.id for node in nodes if node.entity_id is not None}
        return cls(nodes=nodes, root_ids=tuple(root.id for root in roots), entity_nodes=entity_nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def get_node(self, node_id: int) -> TreeNode:
        if not 0 <= node_id < len(self.nodes):
            raise ValueError(f"No tree node with id {node_id}")
        return self.nodes[node_id]

    def node_for_entity(self, entity_id: int) -> int | None:
        return self.entity_nodes.get(entity_id)

    def category_node(self, category: Category) -> TreeNode:
        """Top-level node for ``category``."""
        for node_id in self.root_ids:
            if self.nodes[node_id].category is category:
                return self.nodes[node_id]
        raise ValueError(f"{category.value!r} is not a top-level category")

    def children_of(self, node_id: int) -> list[TreeNode]:
        return [self.nodes[child] for child in self.get_node(node_id).children]

    def expandable_ids(self) -> set[int]:
        return {node.id for node in self.nodes if node.children}

    def ancestors(self, node_id: int) -> list[int]:
        """Ids from the parent of ``node_id`` up to its top-level node."""
        out: list[int] = []
        parent = self.get_node(node_id).parent
        while parent is not None:
            out.append(parent)
            parent = self.nodes[parent].parent
        return out

    def cycle_nodes(self) -> list[TreeNode]:
        return [node for node in self.nodes if node.cycle_broken]

    def matching_ids(self, search: str | None) -> set[int] | None:
        """Nodes that match ``search`` or have a matching descendant.

        Matching is a case-insensitive substring test on the node label.
        Returns None when there is no active filter.
        """
        query = (search or "").strip().lower()
        if not query:
            return None
        matches: set[int] = set()
        # descendants have larger ids, so one reverse sweep settles every node
        for node in reversed(self.nodes):
            if query in node.label.lower() or any(child in matches for child in node.children):
                matches.add(node.id)
        return matches

    def visible_nodes(self, expanded: Collection[int], search: str | None = None) -> list[TreeNode]:
        """Rows a presenter should draw, in pre-order.

        A node is visible when every ancestor is in ``expanded`` and, with a
        filter active, the node or one of its descendants matches.
        """
        matches = self.matching_ids(search)
        out: list[TreeNode] = []
        stack = list(reversed(self.root_ids))
        while stack:
            node = self.nodes[stack.pop()]
            if matches is not None and node.id not in matches:
                continue
            out.append(node)
            if node.id in expanded:
                stack.extend(reversed(node.children))
        return out


def build_tree(entities: Sequence[EntityWithSource], index: EntityIndex | None = None) -> EntityTree:
    return EntityTree.build(entities, index)


def visible_nodes(tree: EntityTree, expanded: Collection[int], search: str | None = None) -> list[TreeNode]:
    return tree.visible_nodes(expanded, search)
