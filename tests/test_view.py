"""Tests for presenter-owned ViewState."""

from catgraph.tree import EntityTree
from catgraph.view import ViewState
from catschema.entity import EntityWithSource


class TestViewState:
    """Selection, expansion and search kept outside the tree."""

    def test_for_tree_expands_roots(self, sample_entities: list[EntityWithSource]) -> None:
        tree = EntityTree.build(sample_entities)
        state = ViewState.for_tree(tree)

        assert state.expanded == set(tree.root_ids)
        assert state.selected == tree.root_ids[0]
        assert [node.id for node in state.visible(tree)][:2] == [0, 1]

    def test_toggle_and_collapse(self) -> None:
        state = ViewState()
        state.toggle(3)
        assert 3 in state.expanded
        state.toggle(3)
        assert 3 not in state.expanded
        state.toggle(4)
        state.collapse(4)
        state.collapse(4)
        assert state.expanded == set()

    def test_move_clamps_to_visible_rows(self, sample_entities: list[EntityWithSource]) -> None:
        tree = EntityTree.build(sample_entities)
        state = ViewState(selected=tree.root_ids[0])

        assert state.move(tree, -1).id == tree.root_ids[0]
        last = state.move(tree, 100)
        assert last.id == tree.root_ids[-1]
        assert state.move(tree, -1).id == tree.root_ids[-2]

    def test_set_search_moves_selection_to_visible_row(self, sample_entities: list[EntityWithSource]) -> None:
        tree = EntityTree.build(sample_entities)
        state = ViewState.for_tree(tree)
        state.expand_all(tree)
        state.selected = tree.root_ids[-1]

        state.set_search(tree, "c1")

        visible_ids = {node.id for node in state.visible(tree)}
        assert state.selected in visible_ids
        assert state.selected == tree.root_ids[0]

    def test_selection_kept_when_still_visible(self, sample_entities: list[EntityWithSource]) -> None:
        tree = EntityTree.build(sample_entities)
        state = ViewState.for_tree(tree)
        state.expand_all(tree)
        c1_node = tree.node_for_entity(2)
        state.selected = c1_node

        state.set_search(tree, "c1")
        assert state.selected == c1_node

    def test_reconcile_drops_missing_ids(self, sample_entities: list[EntityWithSource]) -> None:
        big = EntityTree.build(sample_entities)
        small = EntityTree.build(sample_entities[:1])
        state = ViewState.for_tree(big)
        state.expand_all(big)
        state.selected = len(big) - 1

        state.reconcile(small)

        assert all(node_id < len(small) for node_id in state.expanded)
        assert state.selected is not None
        assert state.selected < len(small)

    def test_empty_search_results_clear_selection(self, sample_entities: list[EntityWithSource]) -> None:
        tree = EntityTree.build(sample_entities)
        state = ViewState.for_tree(tree)
        state.set_search(tree, "nothing matches this")
        assert state.selected is None
        assert state.selected_node(tree) is None
