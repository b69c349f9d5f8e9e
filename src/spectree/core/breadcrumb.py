"""
Breadcrumb path resolution for spec hierarchy nodes.

Paths are advisory navigation data: a broken parent link never raises, it
ends the walk at the last ancestor that still resolves and logs a warning.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple, Union

from spectree.core.models import (
    PARENT_FIELDS,
    PARENT_TYPES,
    TYPE_LABELS,
    HierarchyStore,
    ItemType,
    coerce_item_type,
)

logger = logging.getLogger(__name__)


@dataclass
class WorkItemInfo:
    """The node a breadcrumb is requested for."""

    id: str
    type: ItemType
    title: str = ""


@dataclass
class BreadcrumbEntry:
    id: str
    type: ItemType
    title: str
    type_label: str
    is_current: bool = False


def _iter_ancestors(
    store: HierarchyStore, item_type: ItemType, item_id: str
) -> Iterator[Tuple[ItemType, str, str]]:
    """Yield (type, id, title) for each resolvable ancestor, nearest first."""
    current_type = item_type
    current = store.get(item_type, item_id)
    if current is None:
        logger.debug("Breadcrumb requested for unknown %s '%s'", item_type.value, item_id)
        return

    while current_type in PARENT_TYPES:
        parent_id = getattr(current, PARENT_FIELDS[current_type], None)
        if not parent_id:
            return
        parent_type = PARENT_TYPES[current_type]
        parent = store.get(parent_type, parent_id)
        if parent is None:
            logger.warning(
                "Unresolvable %s '%s' referenced by %s '%s'; breadcrumb truncated",
                parent_type.value,
                parent_id,
                current_type.value,
                current.id,
            )
            return
        yield parent_type, parent.id, parent.title
        current_type, current = parent_type, parent


def get_ancestor_ids(
    item_id: str, item_type: Union[ItemType, str], store: HierarchyStore
) -> List[str]:
    """
    Get ancestor ids for a node, ordered root-first.

    An epic has no ancestors; a task yields [epic_id, feature_id, user_story_id].
    Only ancestors that resolve in the store are returned.
    """
    item_type = coerce_item_type(item_type)
    ancestors = [ancestor_id for _, ancestor_id, _ in _iter_ancestors(store, item_type, item_id)]
    ancestors.reverse()
    return ancestors


def build_path(node: WorkItemInfo, store: HierarchyStore) -> List[BreadcrumbEntry]:
    """
    Build the root-to-leaf breadcrumb path for a node.

    Args:
        node: The current node (id, type, title)
        store: Hierarchy snapshot used to resolve ancestors

    Returns:
        Ancestor entries root-first, followed by the node itself with
        is_current=True.
    """
    node_type = coerce_item_type(node.type)
    path = [
        BreadcrumbEntry(
            id=ancestor_id,
            type=ancestor_type,
            title=title,
            type_label=TYPE_LABELS[ancestor_type],
        )
        for ancestor_type, ancestor_id, title in _iter_ancestors(store, node_type, node.id)
    ]
    path.reverse()

    path.append(
        BreadcrumbEntry(
            id=node.id,
            type=node_type,
            title=node.title,
            type_label=TYPE_LABELS[node_type],
            is_current=True,
        )
    )
    return path


class BreadcrumbNavigator:
    """Breadcrumb helper bound to a store snapshot and a navigation callback."""

    def __init__(
        self,
        store: HierarchyStore,
        on_navigate: Optional[Callable[[BreadcrumbEntry], None]] = None,
    ):
        self.store = store
        self.on_navigate = on_navigate

    def path_for(self, node: WorkItemInfo) -> List[BreadcrumbEntry]:
        return build_path(node, self.store)

    def ancestors_of(self, item_id: str, item_type: Union[ItemType, str]) -> List[str]:
        return get_ancestor_ids(item_id, item_type, self.store)

    def navigate_to(self, entry: BreadcrumbEntry) -> None:
        if self.on_navigate is not None:
            self.on_navigate(entry)
