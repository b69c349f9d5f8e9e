"""Structured logging hooks for CLI commands.

Every command runs inside a correlation context so its log lines and the
response envelope it emits share one request id.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from spectree.core.context import (
    correlation_id_var,
    generate_correlation_id,
    get_correlation_id,
    sync_request_context,
)

__all__ = [
    "generate_request_id",
    "get_request_id",
    "set_request_id",
    "cli_command",
    "get_cli_logger",
]

T = TypeVar("T")

_cli_logger = logging.getLogger("spectree.cli")


def generate_request_id() -> str:
    """Generate a request ID for CLI command tracking, e.g. ``cli_a1b2c3d4e5f6``."""
    return generate_correlation_id("cli")


def get_request_id() -> str:
    """Get the current request ID, or empty string if not set."""
    return get_correlation_id()


def set_request_id(request_id: str) -> None:
    correlation_id_var.set(request_id)


def get_cli_logger() -> logging.Logger:
    return _cli_logger


def cli_command(
    command_name: Optional[str] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for CLI commands.

    Opens a request context for the call and logs command start and
    completion (with duration and outcome) at DEBUG.

    Args:
        command_name: Override command name (defaults to function name).

    Example:
        >>> @cli_command("breadcrumb")
        ... def breadcrumb_cmd(ctx, payload, item_id, item_type):
        ...     ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = command_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with sync_request_context(prefix="cli"):
                start = time.perf_counter()
                success = True
                error_msg = None

                _cli_logger.debug("CLI command started: %s", name)

                try:
                    return func(*args, **kwargs)
                except SystemExit as e:
                    success = e.code in (0, None)
                    raise
                except Exception as e:
                    success = False
                    error_msg = str(e)
                    raise
                finally:
                    duration_ms = (time.perf_counter() - start) * 1000
                    _cli_logger.debug(
                        "CLI command completed: %s",
                        name,
                        extra={
                            "command": name,
                            "success": success,
                            "duration_ms": round(duration_ms, 2),
                            "error": error_msg,
                        },
                    )

        return wrapper

    return decorator
