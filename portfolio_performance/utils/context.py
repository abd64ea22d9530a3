# portfolio_performance/utils/context.py
"""
Execution context for snapshot batches and analytics calls.

Holds the correlation ID that ties together all log lines emitted while a
single snapshot batch (or any other unit of work) runs, plus a small dict
of extra context such as the portfolio being processed.

Uses Python's contextvars for async-safe storage that automatically
propagates through async/await calls and into tasks created from them.

Usage:
    from portfolio_performance.utils.context import correlation_scope

    with correlation_scope(portfolio_id="p-1") as batch_id:
        await service.compute_snapshots("p-1", start)
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

# =============================================================================
# CONTEXT VARIABLES
# =============================================================================

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_batch_context_var: ContextVar[dict[str, Any] | None] = ContextVar("batch_context", default=None)


# =============================================================================
# CORRELATION ID
# =============================================================================

def get_correlation_id() -> str | None:
    """
    Get the current unit of work's correlation ID.

    Returns:
        The correlation ID, or None if not set.
    """
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID for the current unit of work.

    Args:
        correlation_id: Unique identifier for this unit of work
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID."""
    _correlation_id_var.set(None)


def new_correlation_id(prefix: str = "batch") -> str:
    """Generate a short, readable correlation ID."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# =============================================================================
# BATCH CONTEXT
# =============================================================================

def get_batch_context() -> dict[str, Any]:
    """
    Get a copy of the batch context dictionary.

    Returns:
        Dictionary containing all batch context data.
    """
    return dict(_batch_context_var.get() or {})


def set_batch_context(key: str, value: Any) -> None:
    """
    Set a value in the batch context.

    Args:
        key: Context key
        value: Context value
    """
    ctx = get_batch_context()
    ctx[key] = value
    _batch_context_var.set(ctx)


def clear_batch_context() -> None:
    """Clear all batch context."""
    _batch_context_var.set(None)


@contextmanager
def correlation_scope(
        correlation_id: str | None = None,
        **context: Any,
) -> Iterator[str]:
    """
    Run a block under a correlation ID, restoring the previous one afterwards.

    Nested scopes reuse the outer correlation ID unless one is given, so a
    recompute triggered from inside another batch logs under the same ID.

    Args:
        correlation_id: ID to use (default: inherit or generate)
        **context: Extra batch context entries (e.g. portfolio_id)

    Yields:
        The active correlation ID
    """
    active_id = correlation_id or get_correlation_id() or new_correlation_id()
    id_token = _correlation_id_var.set(active_id)
    ctx = get_batch_context()
    ctx.update(context)
    ctx_token = _batch_context_var.set(ctx)
    try:
        yield active_id
    finally:
        _batch_context_var.reset(ctx_token)
        _correlation_id_var.reset(id_token)
