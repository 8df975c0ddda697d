"""TCP reachability probe with a per-attempt timeout and a shared cancellation event."""

import asyncio
import logging
from typing import Any, Awaitable, TypeVar

from .errors import ScanCancelledError
from .types import Address

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _release_abandoned(task: "asyncio.Future[Any]") -> None:
    """Close a stream writer that an abandoned connect produced after its caller gave up."""
    if task.cancelled() or task.exception() is not None:
        return
    result = task.result()
    for item in result if isinstance(result, tuple) else (result,):
        if isinstance(item, asyncio.StreamWriter):
            item.close()


async def wait_bounded(awaitable: Awaitable[T], timeout_ms: int, cancel: asyncio.Event | None = None) -> T:
    """
    Await ``awaitable`` for at most ``timeout_ms`` milliseconds or until ``cancel`` is set.

    Raises asyncio.TimeoutError when the time runs out and ScanCancelledError when
    the event fires first. In both cases the pending operation is cancelled, and a
    connection it still manages to open is closed.
    """
    task = asyncio.ensure_future(awaitable)
    stopper = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
    returned = False
    try:
        waiters = {task} if stopper is None else {task, stopper}
        done, _ = await asyncio.wait(waiters, timeout=timeout_ms / 1000, return_when=asyncio.FIRST_COMPLETED)
        if task in done:
            returned = True
            return task.result()
    finally:
        if stopper is not None:
            stopper.cancel()
        if not returned:
            if task.done():
                _release_abandoned(task)
            else:
                task.cancel()
                task.add_done_callback(_release_abandoned)

    if cancel is not None and cancel.is_set():
        raise ScanCancelledError("Scan cancelled while waiting on the network")
    raise asyncio.TimeoutError()


async def is_port_open(
    address: Address | str,
    port: int,
    timeout_ms: int,
    cancel: asyncio.Event | None = None,
) -> bool:
    """
    Return True only if a TCP connection to address:port is established in time.

    Refused, unreachable, unresolvable, timed out and cancelled attempts all
    return False, as does a port outside 0-65535. The connection is closed as
    soon as it is established.
    """
    try:
        _reader, writer = await wait_bounded(asyncio.open_connection(str(address), port), timeout_ms, cancel)
    except (OSError, ValueError, OverflowError, asyncio.TimeoutError, ScanCancelledError) as e:
        logger.debug("Port %s:%d not reachable: %s", address, port, type(e).__name__)
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        logger.debug("Error closing probe connection to %s:%d: %s", address, port, e)
    return True
