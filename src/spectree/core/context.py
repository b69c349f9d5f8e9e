"""Correlation context for spectree operations.

A correlation id is held in a context variable for the duration of one
logical operation (a CLI command, a store import, ...). The logging
ContextFilter and the response envelope helpers read it so that log lines
and emitted responses can be joined.

Usage:
    from spectree.core.context import sync_request_context, get_correlation_id

    with sync_request_context() as ctx:
        logger.info("Normalizing payload")  # record carries ctx.correlation_id
"""

from __future__ import annotations

import secrets
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, Optional

__all__ = [
    "RequestContext",
    "generate_correlation_id",
    "get_correlation_id",
    "get_start_time",
    "sync_request_context",
]

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

start_time_var: ContextVar[float] = ContextVar("start_time", default=0.0)


def generate_correlation_id(prefix: str = "req") -> str:
    """Generate a unique correlation ID with optional prefix.

    Format: {prefix}_{12_hex_chars}
    Example: "req_a1b2c3d4e5f6"
    """
    return f"{prefix}_{secrets.token_hex(6)}"


@dataclass
class RequestContext:
    """Snapshot of the current correlation context.

    Attributes:
        correlation_id: Unique operation identifier
        start_time: Operation start timestamp
    """

    correlation_id: str = ""
    start_time: float = field(default_factory=time.time)

    @property
    def elapsed_ms(self) -> float:
        if self.start_time <= 0:
            return 0.0
        return (time.time() - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "start_time": self.start_time,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }


@contextmanager
def sync_request_context(
    *,
    correlation_id: Optional[str] = None,
    prefix: str = "req",
) -> Generator[RequestContext, None, None]:
    """Set the correlation context for the duration of the with block.

    Args:
        correlation_id: Explicit id (auto-generated if None)
        prefix: Prefix for generated ids

    Yields:
        RequestContext snapshot
    """
    corr_id = correlation_id or generate_correlation_id(prefix)
    start = time.time()

    token_corr = correlation_id_var.set(corr_id)
    token_start = start_time_var.set(start)
    try:
        yield RequestContext(correlation_id=corr_id, start_time=start)
    finally:
        correlation_id_var.reset(token_corr)
        start_time_var.reset(token_start)


def get_correlation_id() -> str:
    """Current correlation id, or empty string outside a context."""
    return correlation_id_var.get()


def get_start_time() -> float:
    return start_time_var.get()
