"""
Tests for tree flattening and viewport windowing.
"""

import pytest

from spectree.core.models import ItemType
from spectree.core.virtual_tree import (
    ITEM_HEIGHT,
    OVERSCAN,
    FlatRow,
    ItemPosition,
    TreeNode,
    VisibleRange,
    build_tree_nodes,
    calculate_item_position,
    collect_expandable_ids,
    estimate_tree_height,
    expand_to_node,
    flatten_tree,
    get_visible_range,
    visible_rows,
)


@pytest.fixture
def sample_nodes():
    """Two epics; the first holds a feature with two stories and a leaf feature."""
    return [
        TreeNode(
            id="epic-1",
            label="Epic 1",
            type="epic",
            children=[
                TreeNode(
                    id="feature-1",
                    label="Feature 1",
                    type="feature",
                    children=[
                        TreeNode(id="story-1", label="Story 1", type="user_story"),
                        TreeNode(id="story-2", label="Story 2", type="user_story"),
                    ],
                ),
                TreeNode(id="feature-2", label="Feature 2", type="feature"),
            ],
        ),
        TreeNode(id="epic-2", label="Epic 2", type="epic"),
    ]


def generate_large_tree(epics: int, features: int, stories: int):
    return [
        TreeNode(
            id=f"epic-{e}",
            label=f"Epic {e}",
            type="epic",
            children=[
                TreeNode(
                    id=f"feature-{e}-{f}",
                    label=f"Feature {f}",
                    type="feature",
                    children=[
                        TreeNode(id=f"story-{e}-{f}-{s}", label=f"Story {s}", type="user_story")
                        for s in range(stories)
                    ],
                )
                for f in range(features)
            ],
        )
        for e in range(epics)
    ]


class TestConstants:
    def test_defaults(self):
        assert ITEM_HEIGHT == 36
        assert OVERSCAN == 5


class TestFlattenTree:
    def test_expanded_pre_order(self, sample_nodes):
        rows = flatten_tree(sample_nodes, {"epic-1", "feature-1"})

        assert [r.id for r in rows] == [
            "epic-1",
            "feature-1",
            "story-1",
            "story-2",
            "feature-2",
            "epic-2",
        ]
        assert [r.depth for r in rows] == [0, 1, 2, 2, 1, 0]
        assert [r.parent_id for r in rows] == [
            None,
            "epic-1",
            "feature-1",
            "feature-1",
            "epic-1",
            None,
        ]

    def test_collapsed_children_are_hidden(self, sample_nodes):
        rows = flatten_tree(sample_nodes, {"epic-1"})
        assert [r.id for r in rows] == ["epic-1", "feature-1", "feature-2", "epic-2"]
        feature_row = rows[1]
        assert feature_row.has_children
        assert not feature_row.is_expanded

    def test_nothing_expanded(self, sample_nodes):
        rows = flatten_tree(sample_nodes, set())
        assert [r.id for r in rows] == ["epic-1", "epic-2"]

    def test_leaf_never_expanded(self, sample_nodes):
        rows = flatten_tree(sample_nodes, {"epic-2"})
        epic_2 = rows[-1]
        assert epic_2 == FlatRow(
            id="epic-2",
            depth=0,
            label="Epic 2",
            type="epic",
            is_expanded=False,
            has_children=False,
            parent_id=None,
        )

    def test_expanded_under_collapsed_ancestor_hidden(self, sample_nodes):
        rows = flatten_tree(sample_nodes, {"feature-1"})
        assert [r.id for r in rows] == ["epic-1", "epic-2"]

    def test_empty(self):
        assert flatten_tree([], {"anything"}) == []

    def test_large_tree(self):
        nodes = generate_large_tree(100, 10, 10)
        expanded = {n.id for n in nodes} | {f.id for n in nodes for f in n.children}
        rows = flatten_tree(nodes, expanded)
        assert len(rows) == 100 + 1000 + 10000
        assert rows[-1].id == "story-99-9-9"


class TestVisibleRange:
    def test_top_of_list(self):
        assert get_visible_range(0, 180, 100) == VisibleRange(start_index=0, end_index=10)

    def test_scrolled(self):
        assert get_visible_range(360, 180, 100) == VisibleRange(start_index=5, end_index=20)

    def test_end_clamped(self):
        window = get_visible_range(5000, 180, 50)
        assert window.end_index == 49
        assert window.start_index <= window.end_index

    def test_empty_list(self):
        assert get_visible_range(0, 180, 0) == VisibleRange(0, 0)

    def test_negative_inputs_treated_as_zero(self):
        assert get_visible_range(-100, -5, 100) == VisibleRange(0, 5)

    def test_custom_geometry(self):
        window = get_visible_range(100, 100, 1000, item_height=10, overscan=0)
        assert window == VisibleRange(10, 20)

    def test_non_positive_item_height(self):
        with pytest.raises(ValueError):
            get_visible_range(0, 100, 10, item_height=0)


class TestPositions:
    def test_item_position(self):
        assert calculate_item_position(0) == ItemPosition(top=0, height=36)
        assert calculate_item_position(3) == ItemPosition(top=108, height=36)
        assert calculate_item_position(2, item_height=20).top == 40

    def test_tree_height(self):
        assert estimate_tree_height(10) == 360
        assert estimate_tree_height(0) == 0

    def test_visible_rows(self):
        rows = flatten_tree(generate_large_tree(200, 0, 0), set())
        window = visible_rows(rows, 360, 180)
        assert [r.id for r in window] == [f"epic-{i}" for i in range(5, 21)]


class TestBuildTreeNodes:
    def test_projection_follows_child_lists(self, sample_store):
        nodes = build_tree_nodes(sample_store)
        assert [n.id for n in nodes] == ["epic-1", "epic-2"]
        assert [n.label for n in nodes] == ["Checkout", "Accounts"]
        assert [c.id for c in nodes[0].children] == ["feature-1", "feature-2"]
        assert [c.type for c in nodes[0].children[0].children] == ["user_story", "user_story"]
        assert [t.id for t in nodes[0].children[0].children[0].children] == ["task-1", "task-2"]

    def test_flatten_store(self, sample_store):
        rows = flatten_tree(build_tree_nodes(sample_store), {"epic-1", "feature-1"})
        assert [r.id for r in rows] == [
            "epic-1",
            "feature-1",
            "story-1",
            "story-2",
            "feature-2",
            "epic-2",
        ]

    def test_unresolved_child_skipped(self, sample_store):
        sample_store.epics["epic-2"].feature_ids.append("ghost")
        nodes = build_tree_nodes(sample_store)
        assert [c.id for c in nodes[1].children] == ["feature-3"]


class TestExpansionHelpers:
    def test_collect_expandable_ids(self, sample_store):
        nodes = build_tree_nodes(sample_store)
        assert collect_expandable_ids(nodes) == {
            "epic-1",
            "epic-2",
            "feature-1",
            "feature-2",
            "story-1",
            "story-3",
        }

    def test_expand_all_shows_every_node(self, sample_store):
        nodes = build_tree_nodes(sample_store)
        rows = flatten_tree(nodes, collect_expandable_ids(nodes))
        assert len(rows) == 11
        assert not any(r.has_children and not r.is_expanded for r in rows)

    def test_collect_from_empty_forest(self):
        assert collect_expandable_ids([]) == set()

    def test_expand_to_task_reveals_it(self, sample_store):
        nodes = build_tree_nodes(sample_store)
        assert "task-3" not in [r.id for r in flatten_tree(nodes, set())]

        expanded = expand_to_node(set(), "task-3", "task", sample_store)
        rows = flatten_tree(nodes, expanded)

        assert expanded == {"epic-1", "feature-2", "story-3"}
        assert [r.id for r in rows] == [
            "epic-1",
            "feature-1",
            "feature-2",
            "story-3",
            "task-3",
            "epic-2",
        ]
        assert next(r for r in rows if r.id == "task-3").depth == 3

    def test_expand_to_node_keeps_existing_and_copies(self, sample_store):
        current = frozenset({"epic-2"})
        expanded = expand_to_node(current, "story-1", ItemType.USER_STORY, sample_store)
        assert expanded == {"epic-2", "epic-1", "feature-1"}
        assert current == {"epic-2"}

    def test_expand_to_epic_adds_nothing(self, sample_store):
        assert expand_to_node({"feature-1"}, "epic-2", "epic", sample_store) == {"feature-1"}

    def test_broken_link_stops_reveal(self, sample_store):
        sample_store.features["feature-2"].parent_epic_id = "gone"
        expanded = expand_to_node(set(), "task-3", "task", sample_store)
        assert expanded == {"feature-2", "story-3"}
        rows = flatten_tree(build_tree_nodes(sample_store), expanded)
        assert "task-3" not in [r.id for r in rows]
