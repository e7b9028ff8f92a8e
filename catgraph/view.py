"""Presenter-owned view state over an `EntityTree`.

Trees are rebuilt on reload and never carry selection or expansion. This
model holds that state on the presenter's side and knows how to keep it
consistent with whatever tree is current.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from catgraph.tree import EntityTree, TreeNode


class ViewState(BaseModel):
    """Selection, expanded nodes and search text.

    Attributes:
        selected: Id of the selected node, None when the tree is empty.
        expanded: Ids of expanded nodes.
        search: Active filter text; empty means no filter.
    """

    selected: int | None = None
    expanded: set[int] = Field(default_factory=set)
    search: str = ""

    @classmethod
    def for_tree(cls, tree: EntityTree) -> "ViewState":
        """Initial state: top-level categories expanded, first row selected."""
        return cls(
            selected=tree.root_ids[0] if tree.root_ids else None,
            expanded=set(tree.root_ids),
        )

    def visible(self, tree: EntityTree) -> list[TreeNode]:
        return tree.visible_nodes(self.expanded, self.search)

    def selected_node(self, tree: EntityTree) -> TreeNode | None:
        if self.selected is None or self.selected >= len(tree):
            return None
        return tree.nodes[self.selected]

    def toggle(self, node_id: int) -> None:
        if node_id in self.expanded:
            self.expanded.discard(node_id)
        else:
            self.expanded.add(node_id)

    def collapse(self, node_id: int) -> None:
        self.expanded.discard(node_id)

    def expand_all(self, tree: EntityTree) -> None:
        self.expanded = tree.expandable_ids()

    def move(self, tree: EntityTree, delta: int) -> TreeNode | None:
        """Move the selection ``delta`` rows, clamped to the visible rows."""
        rows = self.visible(tree)
        if not rows:
            self.selected = None
            return None
        ids = [node.id for node in rows]
        position = ids.index(self.selected) if self.selected in ids else 0
        position = max(0, min(len(rows) - 1, position + delta))
        self.selected = ids[position]
        return rows[position]

    def set_search(self, tree: EntityTree, query: str) -> None:
        """Apply a filter and keep the selection on a visible row."""
        self.search = query
        self._settle_selection(tree)

    def reconcile(self, tree: EntityTree) -> None:
        """Fit the state to a freshly built tree after a reload.

        Ids are stable while discovery order is, so surviving ids keep their
        meaning; ids past the end of the new tree are dropped.
        """
        self.expanded = {node_id for node_id in self.expanded if node_id < len(tree)}
        if self.selected is not None and self.selected >= len(tree):
            self.selected = None
        self._settle_selection(tree)

    def _settle_selection(self, tree: EntityTree) -> None:
        rows = self.visible(tree)
        if not rows:
            self.selected = None
        elif self.selected not in {node.id for node in rows}:
            self.selected = rows[0].id
