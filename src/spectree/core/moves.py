"""
Reparenting of spec hierarchy nodes.

Moving a feature to another epic, a user story to another feature or a task
to another user story happens in two steps:

1. Planning. A move session walks idle -> selecting -> ready -> idle and
   emits a MoveResult ("plan") naming the item, its current parent and the
   chosen parent. Planning never touches the store; invalid requests come
   back as unsuccessful results, not exceptions.
2. Commit. The owner of the store applies the plan as a two-sided child-list
   edit plus a parent-field update. apply_move() is the reference
   implementation of that commit; it returns a new store snapshot.

The session is modelled as explicit state values (IdleState, SelectingState,
ReadyState) with pure transition functions; MoveSession is a small holder
for callers that prefer an object.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Union

from spectree.core.models import (
    CHILD_FIELDS,
    ENTITY_CLASSES,
    PARENT_FIELDS,
    PARENT_TYPES,
    TYPE_LABELS,
    HierarchyStore,
    ItemType,
    coerce_item_type,
)
from spectree.core.responses import ErrorCode

logger = logging.getLogger(__name__)

MOVABLE_TYPES = tuple(PARENT_TYPES.keys())

ALREADY_UNDER_PARENT = "Item is already under this parent"
ITEM_NO_LONGER_EXISTS = "Item no longer exists"
ITEM_HAS_MOVED = "Item has moved since the move started"
TARGET_NO_LONGER_EXISTS = "Target no longer exists"


class HierarchyError(Exception):
    """Raised when a store edit would break hierarchy invariants.

    Attributes:
        error_code: Canonical ErrorCode for the failure
    """

    def __init__(self, message: str, *, error_code: ErrorCode = ErrorCode.VALIDATION_ERROR):
        super().__init__(message)
        self.error_code = error_code


class MoveError(HierarchyError):
    """Raised when a move plan cannot be committed to a store."""


@dataclass(frozen=True)
class MoveableItem:
    id: str
    type: ItemType
    title: str
    current_parent_id: str


@dataclass(frozen=True)
class PotentialParent:
    id: str
    title: str
    type: ItemType
    is_current: bool = False
    path: Optional[str] = None  # e.g. "Epic title > Feature title"


@dataclass
class MoveResult:
    """Outcome of executing a move; a successful result is the plan to commit."""

    success: bool
    item_id: str
    from_parent_id: str
    to_parent_id: str
    item_type: Optional[ItemType] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class MoveValidation:
    valid: bool
    error: Optional[str] = None
    error_code: Optional[str] = None


# ---------------------------------------------------------------------------
# Session states
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IdleState:
    """No move in progress."""


@dataclass(frozen=True)
class SelectingState:
    """An item has been picked; waiting for a destination."""

    item: MoveableItem
    candidates: Tuple[PotentialParent, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ReadyState:
    """Item and destination chosen; execute_move may emit a plan."""

    item: MoveableItem
    candidates: Tuple[PotentialParent, ...]
    chosen: PotentialParent


MoveState = Union[IdleState, SelectingState, ReadyState]

IDLE = IdleState()


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


def get_parent_type_label(item_type: Union[ItemType, str]) -> str:
    """Display label for the level an item of item_type can be moved into."""
    item_type = coerce_item_type(item_type)
    parent_type = PARENT_TYPES.get(item_type)
    return TYPE_LABELS[parent_type] if parent_type else "Parent"


def get_item_type_label(item_type: Union[ItemType, str]) -> str:
    return TYPE_LABELS.get(coerce_item_type(item_type), "Item")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def can_move(item_type: Union[ItemType, str], store: HierarchyStore) -> bool:
    """True when the parent level of item_type holds at least two entities."""
    item_type = coerce_item_type(item_type)
    parent_type = PARENT_TYPES.get(item_type)
    if parent_type is None:
        return False
    return len(store.level(parent_type)) >= 2


def _parent_path(store: HierarchyStore, parent_type: ItemType, parent) -> Optional[str]:
    """Human-readable location of a candidate parent ("Epic > Feature")."""
    if parent_type == ItemType.FEATURE:
        epic = store.epics.get(parent.parent_epic_id)
        return epic.title if epic else None
    if parent_type == ItemType.USER_STORY:
        feature = store.features.get(parent.parent_feature_id)
        if feature is None:
            return None
        epic = store.epics.get(feature.parent_epic_id)
        if epic is None:
            return feature.title
        return f"{epic.title} > {feature.title}"
    return None


def get_potential_parents(
    item_type: Union[ItemType, str],
    current_parent_id: Optional[str],
    store: HierarchyStore,
) -> List[PotentialParent]:
    """
    List every entity an item of item_type could be moved under.

    The current parent sorts first, the rest by title ignoring case.
    """
    item_type = coerce_item_type(item_type)
    parent_type = PARENT_TYPES.get(item_type)
    if parent_type is None:
        return []

    parents = [
        PotentialParent(
            id=parent.id,
            title=parent.title,
            type=parent_type,
            is_current=parent.id == current_parent_id,
            path=_parent_path(store, parent_type, parent),
        )
        for parent in store.level(parent_type).values()
    ]
    return sorted(parents, key=lambda p: (not p.is_current, p.title.casefold(), p.title))


def validate_move(
    item: MoveableItem, new_parent_id: str, store: HierarchyStore
) -> MoveValidation:
    """
    Check a proposed move without a session.

    The target must exist at the parent level for the item's type and must
    differ from the item's current parent.
    """
    item_type = coerce_item_type(item.type)
    parent_type = PARENT_TYPES.get(item_type)
    if parent_type is None:
        return MoveValidation(
            valid=False,
            error=f"{get_item_type_label(item_type)} items cannot be moved",
            error_code=ErrorCode.INVALID_PARENT.value,
        )

    if new_parent_id not in store.level(parent_type):
        return MoveValidation(
            valid=False,
            error=f"Target {TYPE_LABELS[parent_type].lower()} does not exist",
            error_code=ErrorCode.PARENT_NOT_FOUND.value,
        )

    if item.current_parent_id == new_parent_id:
        return MoveValidation(
            valid=False,
            error=ALREADY_UNDER_PARENT,
            error_code=ErrorCode.ALREADY_UNDER_PARENT.value,
        )

    return MoveValidation(valid=True)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def start_move(state: MoveState, item: MoveableItem, store: HierarchyStore) -> SelectingState:
    """Begin moving item. Any previous selection is discarded."""
    candidates = tuple(get_potential_parents(item.type, item.current_parent_id, store))
    logger.debug(
        "Move started for %s '%s' with %d candidate parents",
        coerce_item_type(item.type).value,
        item.id,
        len(candidates),
    )
    return SelectingState(item=item, candidates=candidates)


def select_parent(state: MoveState, parent: PotentialParent) -> MoveState:
    """Record the chosen destination. Ignored when no move is in progress."""
    if isinstance(state, IdleState):
        logger.debug("select_parent called with no move in progress")
        return state
    return ReadyState(item=state.item, candidates=state.candidates, chosen=parent)


def cancel_move(state: MoveState) -> IdleState:
    return IDLE


def _failed(item: MoveableItem, to_parent_id: str, error: str, code: ErrorCode) -> MoveResult:
    return MoveResult(
        success=False,
        item_id=item.id,
        from_parent_id=item.current_parent_id,
        to_parent_id=to_parent_id,
        item_type=coerce_item_type(item.type),
        error=error,
        error_code=code.value,
    )


def _check_current(item: MoveableItem, to_parent_id: str, store: HierarchyStore) -> Optional[MoveResult]:
    """Re-check the session's assumptions against the store being committed to."""
    item_type = coerce_item_type(item.type)
    entity = store.get(item_type, item.id)
    if entity is None:
        return _failed(item, to_parent_id, ITEM_NO_LONGER_EXISTS, ErrorCode.ITEM_NOT_FOUND)
    if getattr(entity, PARENT_FIELDS[item_type]) != item.current_parent_id:
        return _failed(item, to_parent_id, ITEM_HAS_MOVED, ErrorCode.STALE_MOVE)
    if to_parent_id not in store.level(PARENT_TYPES[item_type]):
        return _failed(item, to_parent_id, TARGET_NO_LONGER_EXISTS, ErrorCode.PARENT_NOT_FOUND)
    return None


def execute_move(
    state: MoveState, store: HierarchyStore
) -> Tuple[MoveState, Optional[MoveResult]]:
    """
    Turn a ready session into a move plan.

    Returns:
        Tuple of (next_state, result). result is None when no item or no
        parent has been chosen. Failed results leave the state unchanged so
        the caller can pick another parent or cancel; success returns to idle.
    """
    if not isinstance(state, ReadyState):
        return state, None

    item, chosen = state.item, state.chosen

    if chosen.is_current or chosen.id == item.current_parent_id:
        return state, _failed(item, chosen.id, ALREADY_UNDER_PARENT, ErrorCode.ALREADY_UNDER_PARENT)

    stale = _check_current(item, chosen.id, store)
    if stale is not None:
        logger.warning(
            "Move of '%s' to '%s' rejected: %s", item.id, chosen.id, stale.error
        )
        return state, stale

    result = MoveResult(
        success=True,
        item_id=item.id,
        from_parent_id=item.current_parent_id,
        to_parent_id=chosen.id,
        item_type=coerce_item_type(item.type),
    )
    logger.debug(
        "Move planned: %s '%s' %s -> %s",
        result.item_type.value,
        item.id,
        result.from_parent_id,
        result.to_parent_id,
    )
    return IDLE, result


class MoveSession:
    """
    Stateful move session over one store snapshot.

    Wraps the pure transitions above; callbacks fire on start, successful
    execute and cancel. The session never mutates the store it reads.
    """

    def __init__(
        self,
        store: HierarchyStore,
        *,
        on_move: Optional[Callable[[MoveResult], None]] = None,
        on_move_start: Optional[Callable[[MoveableItem], None]] = None,
        on_move_cancel: Optional[Callable[[], None]] = None,
    ):
        self.store = store
        self.state: MoveState = IDLE
        self.on_move = on_move
        self.on_move_start = on_move_start
        self.on_move_cancel = on_move_cancel

    @property
    def is_moving(self) -> bool:
        return not isinstance(self.state, IdleState)

    @property
    def item_to_move(self) -> Optional[MoveableItem]:
        return getattr(self.state, "item", None)

    @property
    def selected_parent(self) -> Optional[PotentialParent]:
        return getattr(self.state, "chosen", None)

    @property
    def potential_parents(self) -> List[PotentialParent]:
        return list(getattr(self.state, "candidates", ()))

    def update_store(self, store: HierarchyStore) -> None:
        """Point the session at a newer snapshot; execute_move checks against it."""
        self.store = store

    def can_move(self, item_type: Union[ItemType, str]) -> bool:
        return can_move(item_type, self.store)

    def get_potential_parents(
        self, item_type: Union[ItemType, str], current_parent_id: Optional[str]
    ) -> List[PotentialParent]:
        return get_potential_parents(item_type, current_parent_id, self.store)

    def start_move(self, item: MoveableItem) -> None:
        self.state = start_move(self.state, item, self.store)
        if self.on_move_start is not None:
            self.on_move_start(item)

    def select_parent(self, parent: PotentialParent) -> None:
        self.state = select_parent(self.state, parent)

    def execute_move(self) -> Optional[MoveResult]:
        self.state, result = execute_move(self.state, self.store)
        if result is not None and result.success and self.on_move is not None:
            self.on_move(result)
        return result

    def cancel_move(self) -> None:
        self.state = cancel_move(self.state)
        if self.on_move_cancel is not None:
            self.on_move_cancel()


# ---------------------------------------------------------------------------
# Reference commit helpers
# ---------------------------------------------------------------------------


def apply_move(
    store: HierarchyStore,
    result: MoveResult,
    destination_index: Optional[int] = None,
) -> HierarchyStore:
    """
    Commit a move plan, returning a new store.

    The item id is removed from the source parent's child list, inserted into
    the destination's list (appended unless destination_index is given; the
    index is clamped) and the item's parent field is updated.

    Raises:
        MoveError: If the result is not a successful plan or its ids no longer
            line up with the store.
    """
    if not result.success:
        raise MoveError(
            f"Cannot apply a failed move: {result.error}",
            error_code=ErrorCode.VALIDATION_ERROR,
        )
    if result.item_type is None:
        raise MoveError("Move plan has no item type", error_code=ErrorCode.INVALID_FORMAT)

    item_type = coerce_item_type(result.item_type)
    parent_type = PARENT_TYPES.get(item_type)
    if parent_type is None:
        raise MoveError(
            f"{get_item_type_label(item_type)} items cannot be moved",
            error_code=ErrorCode.INVALID_PARENT,
        )

    new_store = store.copy()
    item = new_store.get(item_type, result.item_id)
    if item is None:
        raise MoveError(ITEM_NO_LONGER_EXISTS, error_code=ErrorCode.ITEM_NOT_FOUND)

    parent_field = PARENT_FIELDS[item_type]
    if getattr(item, parent_field) != result.from_parent_id:
        raise MoveError(ITEM_HAS_MOVED, error_code=ErrorCode.STALE_MOVE)

    source = new_store.get(parent_type, result.from_parent_id)
    destination = new_store.get(parent_type, result.to_parent_id)
    if destination is None:
        raise MoveError(TARGET_NO_LONGER_EXISTS, error_code=ErrorCode.PARENT_NOT_FOUND)

    child_field = CHILD_FIELDS[parent_type]
    if source is not None:
        setattr(
            source,
            child_field,
            [child_id for child_id in getattr(source, child_field) if child_id != result.item_id],
        )

    children = [
        child_id for child_id in getattr(destination, child_field) if child_id != result.item_id
    ]
    if destination_index is None or destination_index >= len(children):
        children.append(result.item_id)
    else:
        children.insert(max(0, destination_index), result.item_id)
    setattr(destination, child_field, children)

    setattr(item, parent_field, result.to_parent_id)

    logger.debug(
        "Applied move of %s '%s' from '%s' to '%s'",
        item_type.value,
        result.item_id,
        result.from_parent_id,
        result.to_parent_id,
    )
    return new_store


def reorder_children(
    store: HierarchyStore,
    parent_type: Union[ItemType, str],
    parent_id: str,
    source_index: int,
    destination_index: int,
) -> HierarchyStore:
    """
    Move one child within its parent's child list, returning a new store.

    Raises:
        HierarchyError: If the parent does not exist or an index is out of range.
    """
    parent_type = coerce_item_type(parent_type)
    if parent_type not in CHILD_FIELDS:
        raise HierarchyError(
            f"{get_item_type_label(parent_type)} items have no children",
            error_code=ErrorCode.INVALID_PARENT,
        )

    new_store = store.copy()
    parent = new_store.get(parent_type, parent_id)
    if parent is None:
        raise HierarchyError(
            f"{TYPE_LABELS[parent_type]} '{parent_id}' not found",
            error_code=ErrorCode.PARENT_NOT_FOUND,
        )

    children = list(getattr(parent, CHILD_FIELDS[parent_type]))
    for index in (source_index, destination_index):
        if not 0 <= index < len(children):
            raise HierarchyError(
                f"Invalid position {index}. Must be 0-{len(children) - 1}",
                error_code=ErrorCode.INVALID_POSITION,
            )

    if source_index != destination_index:
        child_id = children.pop(source_index)
        children.insert(destination_index, child_id)
        setattr(parent, CHILD_FIELDS[parent_type], children)

    return new_store


def add_item(
    store: HierarchyStore, item_type: Union[ItemType, str], entity
) -> HierarchyStore:
    """
    Insert a new entity and link it under its parent, returning a new store.

    The entity's parent field must already name an existing parent (epics
    must name the store's application id) and its own child list must be
    empty.

    Raises:
        HierarchyError: If the entity would break an invariant.
    """
    item_type = coerce_item_type(item_type)
    expected_class = ENTITY_CLASSES[item_type]
    if not isinstance(entity, expected_class):
        raise HierarchyError(
            f"Expected {expected_class.__name__}, got {type(entity).__name__}",
            error_code=ErrorCode.INVALID_FORMAT,
        )
    if not entity.id:
        raise HierarchyError("Entity id is required", error_code=ErrorCode.VALIDATION_ERROR)
    if entity.id in store.level(item_type):
        raise HierarchyError(
            f"{TYPE_LABELS[item_type]} '{entity.id}' already exists",
            error_code=ErrorCode.VALIDATION_ERROR,
        )
    if item_type in CHILD_FIELDS and getattr(entity, CHILD_FIELDS[item_type]):
        raise HierarchyError(
            "New items cannot carry child ids; add children separately",
            error_code=ErrorCode.VALIDATION_ERROR,
        )

    parent_id = getattr(entity, PARENT_FIELDS[item_type])
    new_store = store.copy()

    if item_type == ItemType.EPIC:
        if parent_id != store.id:
            raise HierarchyError(
                f"Epic parent '{parent_id}' does not match application '{store.id}'",
                error_code=ErrorCode.INVALID_PARENT,
            )
    else:
        parent_type = PARENT_TYPES[item_type]
        parent = new_store.get(parent_type, parent_id)
        if parent is None:
            raise HierarchyError(
                f"{TYPE_LABELS[parent_type]} '{parent_id}' not found",
                error_code=ErrorCode.PARENT_NOT_FOUND,
            )
        getattr(parent, CHILD_FIELDS[parent_type]).append(entity.id)

    new_store.level(item_type)[entity.id] = copy.deepcopy(entity)
    return new_store
