"""Trace ID support using structlog contextvars."""

from __future__ import annotations

import uuid
from collections.abc import Generator
from contextlib import contextmanager

import structlog.contextvars as contextvars


def generate_trace_id() -> str:
    """Generate a unique trace ID.

    Returns:
        Hexadecimal trace ID (32 characters)
    """
    return uuid.uuid4().hex


def get_trace_id() -> str | None:
    """Get the current trace ID from context.

    Returns:
        Current trace ID or None if not set
    """
    return contextvars.get_contextvars().get("trace_id")


@contextmanager
def trace_context(trace_id: str | None = None) -> Generator[str]:
    """Context manager for trace ID.

    Binds trace_id for the duration of the block, then restores the
    previous context. Used to tag every log line of one scoring batch.

    Args:
        trace_id: Optional trace ID to use. If None, generates a new one.

    Yields:
        The trace ID being used

    Example:
        >>> with trace_context() as trace_id:
        ...     logger.info("Scoring batch")  # Will include trace_id
    """
    old_context = dict(contextvars.get_contextvars())

    if trace_id is None:
        trace_id = generate_trace_id()

    contextvars.clear_contextvars()
    contextvars.bind_contextvars(**{**old_context, "trace_id": trace_id})

    try:
        yield trace_id
    finally:
        contextvars.clear_contextvars()
        if old_context:
            contextvars.bind_contextvars(**old_context)
