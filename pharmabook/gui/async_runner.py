from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Coroutine

from PyQt6.QtCore import QObject, pyqtSignal

logger = logging.getLogger(__name__)


class AsyncRunner(QObject):
    """
    Runs coroutines on a single event loop owned by a background thread.
    Completion callbacks are delivered back on the GUI thread.
    """

    _completed = pyqtSignal(object, object)

    def __init__(self, parent: QObject | None = None):
        super().__init__(parent)
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name="pharmabook-loop", daemon=True)
        self._completed.connect(self._deliver)
        self._thread.start()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def submit(
        self,
        coro: Coroutine[Any, Any, Any],
        on_done: Callable[[Any], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> Future:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        future.add_done_callback(lambda f: self._completed.emit(f, (on_done, on_error)))
        return future

    def _deliver(self, future: Future, callbacks: tuple) -> None:
        on_done, on_error = callbacks
        exc = future.exception()
        if exc is not None:
            logger.error("Background task failed", exc_info=exc)
            if on_error is not None:
                on_error(exc)
            return
        if on_done is not None:
            on_done(future.result())

    def shutdown(self) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5)
        if not self._thread.is_alive():
            self._loop.close()
