"""
Windowed rendering support for large spec trees.

A renderer flattens the visible part of the hierarchy once per expand or
collapse (flatten_tree), then on every scroll asks which slice of the flat
list intersects the viewport (get_visible_range). Rows have a fixed height,
so positions and total height are O(1) arithmetic and no sibling ever needs
to be measured.

The expanded-id set is owned by the caller; collect_expandable_ids and
expand_to_node build it for "expand all" and "reveal this item".
"""

import math
from dataclasses import dataclass, field
from typing import AbstractSet, List, Optional, Sequence, Set, Union

from spectree.core.breadcrumb import get_ancestor_ids
from spectree.core.models import CHILD_FIELDS, CHILD_TYPES, HierarchyStore, ItemType

# Fixed row height in pixels
ITEM_HEIGHT = 36

# Rows rendered beyond each edge of the viewport
OVERSCAN = 5


@dataclass
class TreeNode:
    id: str
    label: str
    type: str
    children: List["TreeNode"] = field(default_factory=list)


@dataclass
class FlatRow:
    id: str
    depth: int
    label: str
    type: str
    is_expanded: bool
    has_children: bool
    parent_id: Optional[str] = None


@dataclass(frozen=True)
class VisibleRange:
    """Inclusive index window into a flattened row list."""

    start_index: int
    end_index: int


@dataclass(frozen=True)
class ItemPosition:
    top: int
    height: int


def flatten_tree(
    nodes: Sequence[TreeNode],
    expanded_ids: AbstractSet[str],
    depth: int = 0,
    parent_id: Optional[str] = None,
) -> List[FlatRow]:
    """
    Flatten a node list into display rows, pre-order.

    Children of a node are emitted only when the node has children and its id
    is in expanded_ids; descendants of collapsed nodes are absent from the
    result. A leaf is never reported as expanded.
    """
    rows: List[FlatRow] = []
    stack = [(node, depth, parent_id) for node in reversed(nodes)]

    while stack:
        node, node_depth, node_parent_id = stack.pop()
        children = node.children or []
        has_children = len(children) > 0
        is_expanded = has_children and node.id in expanded_ids

        rows.append(
            FlatRow(
                id=node.id,
                depth=node_depth,
                label=node.label,
                type=node.type,
                is_expanded=is_expanded,
                has_children=has_children,
                parent_id=node_parent_id,
            )
        )

        if is_expanded:
            stack.extend((child, node_depth + 1, node.id) for child in reversed(children))

    return rows


def get_visible_range(
    scroll_offset: float,
    viewport_height: float,
    item_count: int,
    *,
    item_height: int = ITEM_HEIGHT,
    overscan: int = OVERSCAN,
) -> VisibleRange:
    """
    Compute the row window to render for a scroll position.

    The window covers the rows intersecting the viewport plus ``overscan``
    rows on each side, clamped to the list. The result always satisfies
    0 <= start_index <= end_index, including for empty or overscrolled lists.

    Args:
        scroll_offset: Pixels scrolled from the top (negative treated as 0)
        viewport_height: Visible height in pixels (negative treated as 0)
        item_count: Number of flattened rows
        item_height: Fixed row height in pixels
        overscan: Extra rows on each side of the viewport

    Raises:
        ValueError: If item_height is not positive.
    """
    if item_height <= 0:
        raise ValueError(f"item_height must be positive, got {item_height}")

    first_visible = math.floor(max(0, scroll_offset) / item_height)
    visible_count = math.ceil(max(0, viewport_height) / item_height)

    start_index = max(0, first_visible - overscan)
    end_index = min(item_count - 1, first_visible + visible_count + overscan)

    end_index = max(0, end_index)
    start_index = min(start_index, end_index)
    return VisibleRange(start_index=start_index, end_index=end_index)


def calculate_item_position(index: int, *, item_height: int = ITEM_HEIGHT) -> ItemPosition:
    return ItemPosition(top=index * item_height, height=item_height)


def estimate_tree_height(item_count: int, *, item_height: int = ITEM_HEIGHT) -> int:
    """Total scroll height for item_count rows."""
    return item_count * item_height


def visible_rows(
    rows: Sequence[FlatRow],
    scroll_offset: float,
    viewport_height: float,
    *,
    item_height: int = ITEM_HEIGHT,
    overscan: int = OVERSCAN,
) -> List[FlatRow]:
    """Slice a flattened row list down to its visible window."""
    window = get_visible_range(
        scroll_offset,
        viewport_height,
        len(rows),
        item_height=item_height,
        overscan=overscan,
    )
    return list(rows[window.start_index:window.end_index + 1])


def build_tree_nodes(store: HierarchyStore) -> List[TreeNode]:
    """
    Project a store into nested TreeNodes in display order.

    Epics follow mapping order and children follow their parent's child-id
    list. Child ids that do not resolve are left out.
    """

    def build(item_type: ItemType, entity) -> TreeNode:
        node = TreeNode(id=entity.id, label=entity.title, type=item_type.value)
        if item_type in CHILD_FIELDS:
            child_type = CHILD_TYPES[item_type]
            level = store.level(child_type)
            node.children = [
                build(child_type, level[child_id])
                for child_id in getattr(entity, CHILD_FIELDS[item_type])
                if child_id in level
            ]
        return node

    return [build(ItemType.EPIC, epic) for epic in store.epics.values()]


def collect_expandable_ids(nodes: Sequence[TreeNode]) -> Set[str]:
    """Ids of every node that has children; expanding all of them shows the whole tree."""
    ids: Set[str] = set()
    stack = list(nodes)
    while stack:
        node = stack.pop()
        if node.children:
            ids.add(node.id)
            stack.extend(node.children)
    return ids


def expand_to_node(
    expanded_ids: AbstractSet[str],
    item_id: str,
    item_type: Union[ItemType, str],
    store: HierarchyStore,
) -> Set[str]:
    """
    Return expanded_ids plus every ancestor of an item, so the item gets a row.

    The input set is not modified. Ancestors that do not resolve are skipped,
    so a node under a broken link stays hidden.
    """
    return set(expanded_ids) | set(get_ancestor_ids(item_id, item_type, store))
