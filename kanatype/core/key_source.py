"""Cancellable key-event delivery for the session controller.

The controller suspends in exactly one place: :meth:`KeyEventSource.next_event`.
Every wait is paired with a fresh :class:`CancellationToken`; cancelling the
token resolves the wait with :class:`KeyWaitCancelled` instead of an event.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyEvent:
    hardware_code: str
    shift: bool = False


class KeyWaitCancelled(Exception):
    """The pending key wait was cancelled (scene exit, abort)."""


class KeySourceError(Exception):
    """The platform event source failed; the session cannot continue."""


class CancellationToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


class KeyEventSource:
    """FIFO of key events fed by the platform, consumed one at a time.

    ``push`` and ``fail`` must be called on the loop that awaits
    ``next_event``; other threads go through ``loop.call_soon_threadsafe``.
    """

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Union[KeyEvent, BaseException]]" = asyncio.Queue()

    def push(self, event: KeyEvent) -> None:
        self._queue.put_nowait(event)

    def fail(self, error: BaseException) -> None:
        self._queue.put_nowait(error)

    def pending(self) -> int:
        return self._queue.qsize()

    async def next_event(self, token: CancellationToken) -> KeyEvent:
        if token.cancelled:
            raise KeyWaitCancelled()

        getter = asyncio.ensure_future(self._queue.get())
        waiter = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({getter, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (getter, waiter):
                if not task.done():
                    task.cancel()

        # An event that lands together with the cancellation belongs to the
        # cancelled wait and is discarded.
        if token.cancelled:
            if getter.done() and not getter.cancelled():
                logger.debug("Discarding key event delivered after cancellation: %r", getter.result())
            raise KeyWaitCancelled()

        item = getter.result()
        if isinstance(item, BaseException):
            raise KeySourceError(str(item) or type(item).__name__) from item
        return item


def cancel_quietly(token: Optional[CancellationToken]) -> None:
    if token is not None and not token.cancelled:
        token.cancel()
