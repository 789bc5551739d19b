"""Tests for tracing functionality."""

from __future__ import annotations

import io
import json
import sys

import structlog

from artmatch.core.logging import setup_logging
from artmatch.core.tracing import generate_trace_id, get_trace_id, trace_context


def test_generate_trace_id() -> None:
    """Test trace ID generation."""
    trace_id = generate_trace_id()

    assert isinstance(trace_id, str)
    assert len(trace_id) == 32  # UUID4 hex = 32 characters
    assert trace_id.isalnum()

    ids = {generate_trace_id() for _ in range(100)}
    assert len(ids) == 100, "Trace IDs should be unique"


def test_get_trace_id_when_not_set() -> None:
    """Test getting trace ID when not set."""
    structlog.contextvars.clear_contextvars()

    assert get_trace_id() is None


def test_trace_context_manager() -> None:
    """Test trace_context binds and then clears the trace ID."""
    structlog.contextvars.clear_contextvars()

    with trace_context("test-trace-456") as trace_id:
        assert trace_id == "test-trace-456"
        assert get_trace_id() == "test-trace-456"
        assert structlog.contextvars.get_contextvars().get("trace_id") == "test-trace-456"

    assert get_trace_id() is None


def test_trace_context_generates_id() -> None:
    """Test trace_context generates ID when None provided."""
    structlog.contextvars.clear_contextvars()

    with trace_context() as trace_id:
        assert len(trace_id) == 32
        assert get_trace_id() == trace_id

    assert get_trace_id() is None


def test_trace_context_nested() -> None:
    """Test nested trace_context calls restore the outer trace."""
    structlog.contextvars.clear_contextvars()

    with trace_context("outer-trace"):
        with trace_context("inner-trace") as inner_id:
            assert get_trace_id() == "inner-trace"
            assert inner_id == "inner-trace"

        assert get_trace_id() == "outer-trace"

    assert get_trace_id() is None


def test_trace_context_keeps_other_context() -> None:
    """Test unrelated context variables survive the block."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(import_job="job-1")

    try:
        with trace_context("batch-trace"):
            assert structlog.contextvars.get_contextvars()["import_job"] == "job-1"

        assert structlog.contextvars.get_contextvars() == {"import_job": "job-1"}
    finally:
        structlog.contextvars.clear_contextvars()


def test_trace_id_in_logs() -> None:
    """Test that trace ID appears in logs written inside the block."""
    old_stdout = sys.stdout
    sys.stdout = io.StringIO()

    try:
        setup_logging(debug=False)

        with trace_context("test-log-trace-789"):
            structlog.get_logger("test.logger").info("Test message")

        lines = [line for line in sys.stdout.getvalue().splitlines() if line.startswith("{")]
        log_data = json.loads(lines[-1])
        assert log_data["trace_id"] == "test-log-trace-789"

    finally:
        sys.stdout = old_stdout
        structlog.contextvars.clear_contextvars()
