"""CLI commands."""

from spectree.cli.commands.hierarchy import check_cmd, normalize_cmd
from spectree.cli.commands.navigation import breadcrumb_cmd, move_cmd, parents_cmd
from spectree.cli.commands.tree import flatten_cmd

__all__ = [
    "breadcrumb_cmd",
    "check_cmd",
    "flatten_cmd",
    "move_cmd",
    "normalize_cmd",
    "parents_cmd",
]
