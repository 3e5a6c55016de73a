"""Runs a TypingSession on an asyncio loop in a worker thread.

Key events go in through ``loop.call_soon_threadsafe``; session events come
back as Qt signals, which Qt queues onto the GUI thread.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from kanatype.core.key_source import KeyEvent, KeyEventSource
from kanatype.core.session import Listener, TypingSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[KeyEventSource, Listener], TypingSession]


class SessionBridge(QObject):
    event = Signal(object)
    finished = Signal(object)
    failed = Signal(str)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._source: Optional[KeyEventSource] = None
        self._session: Optional[TypingSession] = None
        self._ready = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, factory: SessionFactory) -> None:
        if self.running:
            raise RuntimeError("A session is already running")
        self._ready.clear()
        loop = asyncio.new_event_loop()
        self._loop = loop
        self._thread = threading.Thread(
            target=self._worker, args=(loop, factory), name="kanatype-session", daemon=True
        )
        self._thread.start()
        self._ready.wait(timeout=5.0)

    def push_key(self, event: KeyEvent) -> None:
        loop, source = self._loop, self._source
        if loop is None or source is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(source.push, event)

    def cancel(self) -> None:
        loop, session = self._loop, self._session
        if loop is None or session is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(session.cancel)

    def stop(self, timeout: float = 2.0) -> None:
        """Cancel the running session and wait for the worker to exit."""
        self.cancel()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Session thread did not stop within %.1fs", timeout)

    def _worker(self, loop: asyncio.AbstractEventLoop, factory: SessionFactory) -> None:
        asyncio.set_event_loop(loop)
        try:
            summary = loop.run_until_complete(self._run(factory))
        except Exception as e:
            logger.exception("Session crashed")
            self.failed.emit(str(e) or type(e).__name__)
        else:
            self.finished.emit(summary)
        finally:
            self._source = None
            self._session = None
            self._ready.set()
            loop.close()

    async def _run(self, factory: SessionFactory):
        self._source = KeyEventSource()
        self._session = factory(self._source, self.event.emit)
        self._ready.set()
        return await self._session.run()
