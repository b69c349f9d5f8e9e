"""Core hierarchy operations for spectree."""

from spectree.core.models import (
    HierarchyStore,
    ItemType,
    Epic,
    Feature,
    UserStory,
    Task,
)

from spectree.core.normalizer import (
    NormalizationReport,
    denormalize,
    normalize,
    normalize_tree,
)

from spectree.core.breadcrumb import (
    BreadcrumbEntry,
    BreadcrumbNavigator,
    WorkItemInfo,
    build_path,
    get_ancestor_ids,
)

from spectree.core.moves import (
    HierarchyError,
    MoveError,
    MoveResult,
    MoveSession,
    MoveableItem,
    PotentialParent,
    add_item,
    apply_move,
    can_move,
    get_potential_parents,
    reorder_children,
    validate_move,
)

from spectree.core.virtual_tree import (
    FlatRow,
    TreeNode,
    VisibleRange,
    build_tree_nodes,
    collect_expandable_ids,
    expand_to_node,
    flatten_tree,
    get_visible_range,
)

from spectree.core.integrity import (
    Diagnostic,
    IntegrityResult,
    check_integrity,
)

__all__ = [
    # Models
    "HierarchyStore",
    "ItemType",
    "Epic",
    "Feature",
    "UserStory",
    "Task",
    # Normalization
    "NormalizationReport",
    "denormalize",
    "normalize",
    "normalize_tree",
    # Breadcrumbs
    "BreadcrumbEntry",
    "BreadcrumbNavigator",
    "WorkItemInfo",
    "build_path",
    "get_ancestor_ids",
    # Moves
    "HierarchyError",
    "MoveError",
    "MoveResult",
    "MoveSession",
    "MoveableItem",
    "PotentialParent",
    "add_item",
    "apply_move",
    "can_move",
    "get_potential_parents",
    "reorder_children",
    "validate_move",
    # Virtual tree
    "FlatRow",
    "TreeNode",
    "VisibleRange",
    "build_tree_nodes",
    "collect_expandable_ids",
    "expand_to_node",
    "flatten_tree",
    "get_visible_range",
    # Integrity
    "Diagnostic",
    "IntegrityResult",
    "check_integrity",
]
