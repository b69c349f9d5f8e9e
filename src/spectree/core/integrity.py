"""
Integrity checks for a normalized HierarchyStore.

Verifies the invariants every store is expected to keep: parent references
resolve, parent/child links are two-sided, keys match entity ids, and list
fields are lists. Findings are returned as diagnostics; nothing raises.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from spectree.core.models import (
    CHILD_FIELDS,
    CHILD_TYPES,
    LEVEL_NAMES,
    PARENT_FIELDS,
    PARENT_TYPES,
    HierarchyStore,
    ItemType,
)

# List-valued fields per level that must never be None
LIST_FIELDS: Dict[ItemType, tuple] = {
    ItemType.EPIC: ("feature_ids", "risks_and_mitigation", "contextual_questions"),
    ItemType.FEATURE: ("user_story_ids", "acceptance_criteria", "contextual_questions"),
    ItemType.USER_STORY: (
        "task_ids",
        "acceptance_criteria",
        "dependent_user_story_ids",
        "contextual_questions",
    ),
    ItemType.TASK: ("dependent_task_ids", "contextual_questions"),
}


@dataclass
class Diagnostic:
    """
    A single integrity finding.
    """

    code: str  # e.g. "MISSING_PARENT", "PARENT_CHILD_MISMATCH"
    message: str
    severity: str  # "error" or "warning"
    location: Optional[str] = None  # Entity id where the issue was found
    item_type: Optional[str] = None


@dataclass
class IntegrityResult:
    is_valid: bool
    diagnostics: List[Diagnostic] = field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0

    def codes(self) -> List[str]:
        return [d.code for d in self.diagnostics]


def _error(diagnostics: List[Diagnostic], code: str, message: str, item_type: ItemType, location: str) -> None:
    diagnostics.append(
        Diagnostic(
            code=code,
            message=message,
            severity="error",
            location=location,
            item_type=item_type.value,
        )
    )


def _check_keys_and_lists(store: HierarchyStore, diagnostics: List[Diagnostic]) -> None:
    for item_type in ItemType:
        for key, entity in store.level(item_type).items():
            if entity.id != key:
                _error(
                    diagnostics,
                    "KEY_MISMATCH",
                    f"{LEVEL_NAMES[item_type]} key '{key}' holds entity with id '{entity.id}'",
                    item_type,
                    key,
                )
            for list_field in LIST_FIELDS[item_type]:
                if not isinstance(getattr(entity, list_field, None), list):
                    _error(
                        diagnostics,
                        "INVALID_LIST",
                        f"'{key}' field '{list_field}' must be a list",
                        item_type,
                        key,
                    )


def _check_parent_links(store: HierarchyStore, diagnostics: List[Diagnostic]) -> None:
    """Every entity's parent resolves and lists it back."""
    for epic_id, epic in store.epics.items():
        if epic.parent_app_id != store.id:
            _error(
                diagnostics,
                "MISSING_PARENT",
                f"Epic '{epic_id}' references application '{epic.parent_app_id}', expected '{store.id}'",
                ItemType.EPIC,
                epic_id,
            )

    for item_type, parent_type in PARENT_TYPES.items():
        parents = store.level(parent_type)
        child_field = CHILD_FIELDS[parent_type]
        for item_id, entity in store.level(item_type).items():
            parent_id = getattr(entity, PARENT_FIELDS[item_type])
            parent = parents.get(parent_id)
            if parent is None:
                _error(
                    diagnostics,
                    "MISSING_PARENT",
                    f"{item_type.value} '{item_id}' references non-existent parent '{parent_id}'",
                    item_type,
                    item_id,
                )
                continue
            children = getattr(parent, child_field)
            if isinstance(children, list) and item_id not in children:
                _error(
                    diagnostics,
                    "ORPHANED_NODE",
                    f"{item_type.value} '{item_id}' has parent '{parent_id}', which does not list it",
                    item_type,
                    item_id,
                )


def _check_child_links(store: HierarchyStore, diagnostics: List[Diagnostic]) -> None:
    """Every child id resolves, points back, and appears under one parent once."""
    for parent_type, child_type in CHILD_TYPES.items():
        children_level = store.level(child_type)
        parent_field = PARENT_FIELDS[child_type]
        listed_by: Dict[str, str] = {}

        for parent_id, parent in store.level(parent_type).items():
            children: Any = getattr(parent, CHILD_FIELDS[parent_type])
            if not isinstance(children, list):
                continue
            seen = set()
            for child_id in children:
                if child_id in seen:
                    _error(
                        diagnostics,
                        "DUPLICATE_CHILD",
                        f"'{parent_id}' lists child '{child_id}' more than once",
                        parent_type,
                        parent_id,
                    )
                    continue
                seen.add(child_id)

                if child_id in listed_by:
                    _error(
                        diagnostics,
                        "MULTIPLE_PARENTS",
                        f"'{child_id}' is listed by both '{listed_by[child_id]}' and '{parent_id}'",
                        child_type,
                        child_id,
                    )
                else:
                    listed_by[child_id] = parent_id

                child = children_level.get(child_id)
                if child is None:
                    _error(
                        diagnostics,
                        "MISSING_CHILD",
                        f"'{parent_id}' references non-existent child '{child_id}'",
                        parent_type,
                        parent_id,
                    )
                elif getattr(child, parent_field) != parent_id:
                    _error(
                        diagnostics,
                        "PARENT_CHILD_MISMATCH",
                        f"'{parent_id}' lists '{child_id}' as child, but '{child_id}' has parent "
                        f"'{getattr(child, parent_field)}'",
                        parent_type,
                        parent_id,
                    )


def check_integrity(store: HierarchyStore) -> IntegrityResult:
    """
    Check a store against the hierarchy invariants.

    Args:
        store: Snapshot to check

    Returns:
        IntegrityResult; is_valid is False when any error was found.
    """
    diagnostics: List[Diagnostic] = []
    _check_keys_and_lists(store, diagnostics)
    _check_parent_links(store, diagnostics)
    _check_child_links(store, diagnostics)

    error_count = sum(1 for d in diagnostics if d.severity == "error")
    warning_count = sum(1 for d in diagnostics if d.severity == "warning")
    return IntegrityResult(
        is_valid=error_count == 0,
        diagnostics=diagnostics,
        error_count=error_count,
        warning_count=warning_count,
    )
