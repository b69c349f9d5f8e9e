"""spectree CLI - JSON-only command-line interface over the hierarchy core."""

from spectree.cli.config import CLIContext, create_context
from spectree.cli.logging import cli_command, get_cli_logger, get_request_id, set_request_id
from spectree.cli.main import cli
from spectree.cli.output import emit, emit_error, emit_success
from spectree.cli.registry import get_context, set_context

__all__ = [
    # Entry point
    "cli",
    # Context
    "CLIContext",
    "create_context",
    "get_context",
    "set_context",
    # Output
    "emit",
    "emit_error",
    "emit_success",
    # Logging
    "cli_command",
    "get_cli_logger",
    "get_request_id",
    "set_request_id",
]
