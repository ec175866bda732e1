"""
Cooperative cancellation driven by an asyncio.Event.

A single event is shared by a whole batch. Awaiting through run_cancellable()
turns a fired event into DownloadCancelledError at the next suspension point
instead of propagating asyncio.CancelledError to the caller.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from core.errors.exceptions import DownloadCancelledError

T = TypeVar("T")


def is_cancelled(cancel_event: Optional[asyncio.Event]) -> bool:
    return cancel_event is not None and cancel_event.is_set()


def check_cancelled(cancel_event: Optional[asyncio.Event], url: Optional[str] = None) -> None:
    """Raise DownloadCancelledError if the event has fired."""
    if is_cancelled(cancel_event):
        raise DownloadCancelledError(url)


async def run_cancellable(
    awaitable: Awaitable[T],
    cancel_event: Optional[asyncio.Event],
    url: Optional[str] = None,
    on_abandoned: Optional[Callable[[T], None]] = None,
) -> T:
    """
    Await awaitable unless cancel_event fires first.

    Args:
        awaitable: Coroutine or future to run
        cancel_event: Batch cancellation event (None = not cancellable)
        url: URL reported in the cancellation error
        on_abandoned: Called with the result if the operation finished anyway
            after cancellation was decided (e.g. to release an acquired lock)

    Returns:
        Result of awaitable

    Raises:
        DownloadCancelledError: If cancel_event fired before completion
    """
    if cancel_event is None:
        return await awaitable

    if cancel_event.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise DownloadCancelledError(url)

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        raise
    waiter.cancel()

    if task.done():
        return task.result()

    task.cancel()
    outcome = (await asyncio.gather(task, return_exceptions=True))[0]
    if on_abandoned is not None and not isinstance(outcome, BaseException):
        on_abandoned(outcome)
    raise DownloadCancelledError(url)


async def sleep_cancellable(
    delay: float,
    cancel_event: Optional[asyncio.Event],
    url: Optional[str] = None,
) -> None:
    """Sleep for delay seconds, waking early with DownloadCancelledError on cancel."""
    await run_cancellable(asyncio.sleep(delay), cancel_event, url)
