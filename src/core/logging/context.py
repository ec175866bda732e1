"""Context variables injected into every log record."""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Iterator, Optional

_batch_id: ContextVar[Optional[str]] = ContextVar("batch_id", default=None)
_worker_id: ContextVar[Optional[str]] = ContextVar("worker_id", default=None)


def set_log_context(
    batch_id: Optional[str] = None,
    worker_id: Optional[str] = None,
) -> None:
    """
    Set logging context variables.

    Only the arguments that are not None are changed. asyncio tasks copy the
    context when they are created, so a batch_id set before fan-out is seen
    by every per-URL task.
    """
    if batch_id is not None:
        _batch_id.set(batch_id)
    if worker_id is not None:
        _worker_id.set(worker_id)


def get_log_context() -> Dict[str, Optional[str]]:
    """Get current logging context."""
    return {
        "batch_id": _batch_id.get(),
        "worker_id": _worker_id.get(),
    }


def clear_log_context() -> None:
    """Clear all logging context variables."""
    _batch_id.set(None)
    _worker_id.set(None)


@contextmanager
def log_context(
    batch_id: Optional[str] = None,
    worker_id: Optional[str] = None,
) -> Iterator[None]:
    """Set context variables for the duration of a with block, then restore them."""
    tokens = []
    if batch_id is not None:
        tokens.append((_batch_id, _batch_id.set(batch_id)))
    if worker_id is not None:
        tokens.append((_worker_id, _worker_id.set(worker_id)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
