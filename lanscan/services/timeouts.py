"""Timeout and cancellation races for probe I/O.

No probe operation is awaited without a bound: each one races its own
timeout and the scan's cancellation event, and the first to finish wins.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProbeCancelled(Exception):
    """Raised inside a probe when the scan's cancellation event fires."""


def is_cancelled(cancel_event: asyncio.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()


async def race(
    operation: Awaitable[T],
    timeout: float,
    cancel_event: asyncio.Event | None = None,
) -> T:
    """Await ``operation`` against a timeout and an optional cancellation event.

    Returns the operation's result if it finishes first. Exceptions raised by
    the operation propagate unchanged.

    Raises:
        TimeoutError: If the timeout elapses first.
        ProbeCancelled: If the cancellation event is set first.
    """
    if is_cancelled(cancel_event):
        if asyncio.iscoroutine(operation):
            operation.close()
        raise ProbeCancelled()

    if cancel_event is None:
        return await asyncio.wait_for(operation, timeout=timeout)

    op_task = asyncio.ensure_future(operation)
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait(
            {op_task, cancel_task},
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        op_task.cancel()
        cancel_task.cancel()
        raise

    cancel_task.cancel()
    if op_task in done:
        return op_task.result()

    op_task.cancel()
    try:
        await op_task
    except (asyncio.CancelledError, Exception):
        pass  # Abandoned operation, outcome no longer matters

    if cancel_task in done and not cancel_task.cancelled():
        raise ProbeCancelled()
    raise TimeoutError(f"Operation timed out after {timeout:.2f}s")


async def race_or_default(
    operation: Awaitable[T],
    timeout: float,
    default: T,
    cancel_event: asyncio.Event | None = None,
    description: str = "operation",
) -> T:
    """Like ``race`` but maps timeouts and errors to ``default``.

    Cancellation still propagates as ``ProbeCancelled`` so the pipeline can
    stop at the checkpoint.
    """
    try:
        return await race(operation, timeout, cancel_event)
    except ProbeCancelled:
        raise
    except TimeoutError:
        logger.debug(f"{description} timed out after {timeout:.2f}s")
    except Exception as e:
        logger.debug(f"{description} failed: {e}")
    return default
