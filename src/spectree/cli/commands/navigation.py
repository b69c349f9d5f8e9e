"""Item-level commands: breadcrumbs, candidate parents and moves."""

from dataclasses import asdict
from typing import Optional

import click

from spectree.cli.logging import cli_command, get_cli_logger
from spectree.cli.output import emit_error, emit_success
from spectree.cli.payload import load_store
from spectree.cli.registry import get_context
from spectree.core.breadcrumb import WorkItemInfo, build_path
from spectree.core.integrity import check_integrity
from spectree.core.models import CHILD_FIELDS, PARENT_TYPES, HierarchyStore, ItemType
from spectree.core.moves import (
    MoveableItem,
    MoveError,
    MoveSession,
    apply_move,
    can_move,
    get_parent_type_label,
    get_potential_parents,
    validate_move,
)
from spectree.core.responses import ErrorCode, ErrorType

logger = get_cli_logger()

ITEM_TYPE_CHOICE = click.Choice([t.value for t in ItemType], case_sensitive=False)

_ERROR_TYPES = {
    ErrorCode.NOT_FOUND.value: ErrorType.NOT_FOUND,
    ErrorCode.ITEM_NOT_FOUND.value: ErrorType.NOT_FOUND,
    ErrorCode.PARENT_NOT_FOUND.value: ErrorType.NOT_FOUND,
    ErrorCode.ALREADY_UNDER_PARENT.value: ErrorType.CONFLICT,
    ErrorCode.STALE_MOVE.value: ErrorType.CONFLICT,
}


def _error_type(code: Optional[str]) -> str:
    return _ERROR_TYPES.get(code or "", ErrorType.VALIDATION).value


def _require_item(store: HierarchyStore, item_type: ItemType, item_id: str):
    entity = store.get(item_type, item_id)
    if entity is None:
        emit_error(
            f"{item_type.value} '{item_id}' not found",
            code=ErrorCode.ITEM_NOT_FOUND.value,
            error_type=ErrorType.NOT_FOUND.value,
            details={"item_id": item_id, "item_type": item_type.value},
        )
    return entity


def _moveable(store: HierarchyStore, item_type: ItemType, entity) -> MoveableItem:
    return MoveableItem(
        id=entity.id,
        type=item_type,
        title=entity.title,
        current_parent_id=store.parent_id_of(item_type, entity.id) or "",
    )


@click.command("breadcrumb")
@click.argument("payload", type=click.Path(dir_okay=False))
@click.argument("item_id")
@click.option("--type", "item_type", type=ITEM_TYPE_CHOICE, required=True, help="Item level.")
@click.pass_context
@cli_command("breadcrumb")
def breadcrumb_cmd(ctx: click.Context, payload: str, item_id: str, item_type: str) -> None:
    """Print the root-to-item breadcrumb path.

    PAYLOAD is the tree file; ITEM_ID the item to locate.
    """
    cli_ctx = get_context(ctx)
    store, _ = load_store(payload, default_model=cli_ctx.default_model)
    level = ItemType(item_type.lower())
    entity = _require_item(store, level, item_id)

    path = build_path(WorkItemInfo(id=entity.id, type=level, title=entity.title), store)
    emit_success(
        {
            "item_id": item_id,
            "item_type": level.value,
            "path": [asdict(entry) for entry in path],
            "labels": [entry.type_label for entry in path],
        }
    )


@click.command("parents")
@click.argument("payload", type=click.Path(dir_okay=False))
@click.argument("item_id")
@click.option("--type", "item_type", type=ITEM_TYPE_CHOICE, required=True, help="Item level.")
@click.pass_context
@cli_command("parents")
def parents_cmd(ctx: click.Context, payload: str, item_id: str, item_type: str) -> None:
    """List the parents an item could be moved under.

    The current parent is listed first and flagged is_current.
    """
    cli_ctx = get_context(ctx)
    store, _ = load_store(payload, default_model=cli_ctx.default_model)
    level = ItemType(item_type.lower())
    entity = _require_item(store, level, item_id)

    current_parent_id = store.parent_id_of(level, item_id)
    candidates = get_potential_parents(level, current_parent_id, store)
    emit_success(
        {
            "item_id": item_id,
            "item_type": level.value,
            "title": entity.title,
            "current_parent_id": current_parent_id,
            "can_move": can_move(level, store),
            "parent_type_label": get_parent_type_label(level),
            "potential_parents": [asdict(candidate) for candidate in candidates],
        }
    )


@click.command("move")
@click.argument("payload", type=click.Path(dir_okay=False))
@click.argument("item_id")
@click.option("--type", "item_type", type=ITEM_TYPE_CHOICE, required=True, help="Item level.")
@click.option("--to", "to_parent_id", required=True, help="Id of the new parent.")
@click.option(
    "--index",
    "destination_index",
    type=click.IntRange(min=0),
    default=None,
    help="Position within the new parent's children (default: append).",
)
@click.pass_context
@cli_command("move")
def move_cmd(
    ctx: click.Context,
    payload: str,
    item_id: str,
    item_type: str,
    to_parent_id: str,
    destination_index: Optional[int],
) -> None:
    """Move an item under a different parent and report the result.

    The payload file is not modified; the move is applied to an in-memory
    copy and the resulting parent links are printed.
    """
    cli_ctx = get_context(ctx)
    store, _ = load_store(payload, default_model=cli_ctx.default_model)
    level = ItemType(item_type.lower())
    entity = _require_item(store, level, item_id)
    item = _moveable(store, level, entity)

    validation = validate_move(item, to_parent_id, store)
    if not validation.valid:
        emit_error(
            validation.error or "Invalid move",
            code=validation.error_code or ErrorCode.VALIDATION_ERROR.value,
            error_type=_error_type(validation.error_code),
            details={"item_id": item_id, "to_parent_id": to_parent_id},
        )

    session = MoveSession(store)
    session.start_move(item)
    chosen = next(p for p in session.potential_parents if p.id == to_parent_id)
    session.select_parent(chosen)
    result = session.execute_move()

    if result is None or not result.success:
        emit_error(
            result.error if result else "Move was not executed",
            code=(result.error_code if result else None) or ErrorCode.INTERNAL_ERROR.value,
            error_type=_error_type(result.error_code if result else None),
            details={"item_id": item_id, "to_parent_id": to_parent_id},
        )

    try:
        moved = apply_move(store, result, destination_index)
    except MoveError as e:
        emit_error(
            str(e),
            code=e.error_code.value,
            error_type=_error_type(e.error_code.value),
            details={"item_id": item_id, "to_parent_id": to_parent_id},
        )

    parent_type = PARENT_TYPES[level]
    child_field = CHILD_FIELDS[parent_type]
    integrity = check_integrity(moved)
    if not integrity.is_valid:
        logger.warning(
            "Store has %d integrity errors after moving %s", integrity.error_count, item_id
        )

    emit_success(
        {
            "move": asdict(result),
            "from_parent_children": getattr(
                moved.get(parent_type, result.from_parent_id), child_field, []
            ),
            "to_parent_children": getattr(moved.get(parent_type, result.to_parent_id), child_field),
            "path": [
                asdict(entry)
                for entry in build_path(WorkItemInfo(id=item.id, type=level, title=item.title), moved)
            ],
            "counts": moved.counts(),
            "is_valid": integrity.is_valid,
        }
    )
