"""Windowed tree listing."""

from dataclasses import asdict
from typing import Optional, Tuple

import click

from spectree.cli.commands.navigation import ITEM_TYPE_CHOICE
from spectree.cli.logging import cli_command
from spectree.cli.output import emit_error, emit_success
from spectree.cli.payload import load_store
from spectree.cli.registry import get_context
from spectree.core.models import ItemType
from spectree.core.responses import ErrorCode, ErrorType
from spectree.core.virtual_tree import (
    build_tree_nodes,
    calculate_item_position,
    collect_expandable_ids,
    estimate_tree_height,
    expand_to_node,
    flatten_tree,
    get_visible_range,
)


@click.command("flatten")
@click.argument("payload", type=click.Path(dir_okay=False))
@click.option("--expand", "expand_ids", multiple=True, help="Id of a node to expand (repeatable).")
@click.option("--expand-all", is_flag=True, help="Expand every node that has children.")
@click.option("--reveal", "reveal_id", help="Expand the ancestors of this item so it is listed.")
@click.option("--reveal-type", type=ITEM_TYPE_CHOICE, help="Level of the --reveal item.")
@click.option(
    "--scroll",
    type=click.FloatRange(min=0),
    default=0.0,
    show_default=True,
    help="Scroll offset in pixels.",
)
@click.option(
    "--viewport",
    type=click.FloatRange(min=0),
    default=600.0,
    show_default=True,
    help="Viewport height in pixels.",
)
@click.pass_context
@cli_command("flatten")
def flatten_cmd(
    ctx: click.Context,
    payload: str,
    expand_ids: Tuple[str, ...],
    expand_all: bool,
    reveal_id: Optional[str],
    reveal_type: Optional[str],
    scroll: float,
    viewport: float,
) -> None:
    """Flatten the tree and print the rows visible in a viewport.

    Row height and overscan come from the [virtual_tree] config section.
    """
    if reveal_id and not reveal_type:
        raise click.UsageError("--reveal requires --reveal-type")

    cli_ctx = get_context(ctx)
    store, _ = load_store(payload, default_model=cli_ctx.default_model)

    nodes = build_tree_nodes(store)
    expanded = collect_expandable_ids(nodes) if expand_all else set(expand_ids)
    if reveal_id:
        level = ItemType(reveal_type.lower())
        if store.get(level, reveal_id) is None:
            emit_error(
                f"{level.value} '{reveal_id}' not found",
                code=ErrorCode.ITEM_NOT_FOUND.value,
                error_type=ErrorType.NOT_FOUND.value,
                details={"item_id": reveal_id, "item_type": level.value},
            )
        expanded = expand_to_node(expanded, reveal_id, level, store)
    rows = flatten_tree(nodes, expanded)

    window = get_visible_range(
        scroll,
        viewport,
        len(rows),
        item_height=cli_ctx.item_height,
        overscan=cli_ctx.overscan,
    )
    visible = rows[window.start_index:window.end_index + 1]

    emit_success(
        {
            "total_rows": len(rows),
            "total_height": estimate_tree_height(len(rows), item_height=cli_ctx.item_height),
            "item_height": cli_ctx.item_height,
            "overscan": cli_ctx.overscan,
            "visible_range": asdict(window),
            "rows": [
                {
                    **asdict(row),
                    "top": calculate_item_position(
                        window.start_index + offset, item_height=cli_ctx.item_height
                    ).top,
                }
                for offset, row in enumerate(visible)
            ],
        }
    )
