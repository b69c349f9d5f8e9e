"""Command registry for the spectree CLI.

Centralized registration of all commands.
"""

from typing import Optional

import click

from spectree.cli.config import CLIContext

# Module-level storage for CLI context (for testing)
_cli_context: Optional[CLIContext] = None


def set_context(ctx: Optional[CLIContext]) -> None:
    """Set the CLI context at module level.

    Used when commands are invoked outside the ``spectree`` group.
    """
    global _cli_context
    _cli_context = ctx


def get_context(ctx: Optional[click.Context] = None) -> CLIContext:
    """Get CLI context from Click context or module-level storage.

    Args:
        ctx: Optional Click context with cli_context stored in obj.

    Returns:
        The CLIContext instance. A default context is created when none
        has been set.
    """
    if ctx is not None and isinstance(ctx.obj, dict) and "cli_context" in ctx.obj:
        return ctx.obj["cli_context"]

    global _cli_context
    if _cli_context is None:
        _cli_context = CLIContext()
    return _cli_context


def register_all_commands(cli: click.Group) -> None:
    """Register all commands with the CLI.

    Commands are imported lazily to avoid circular imports.
    """
    from spectree.cli.commands import (
        breadcrumb_cmd,
        check_cmd,
        flatten_cmd,
        move_cmd,
        normalize_cmd,
        parents_cmd,
    )

    cli.add_command(normalize_cmd)
    cli.add_command(check_cmd)
    cli.add_command(breadcrumb_cmd)
    cli.add_command(parents_cmd)
    cli.add_command(move_cmd)
    cli.add_command(flatten_cmd)

    @cli.command("version")
    def version() -> None:
        """Show CLI version information."""
        from spectree import __version__
        from spectree.cli.output import emit_success

        emit_success({"name": "spectree", "version": __version__})
