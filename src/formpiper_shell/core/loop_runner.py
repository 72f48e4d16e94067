# src/formpiper_shell/core/loop_runner.py
from __future__ import annotations

import asyncio
import threading
from typing import Any, Awaitable, Optional

_MAIN_LOOP: Optional[asyncio.AbstractEventLoop] = None
_THREAD: Optional[threading.Thread] = None


def ensure_background_loop() -> None:
    """Starts the persistent event loop thread once; later calls are no-ops."""
    global _MAIN_LOOP, _THREAD
    if _MAIN_LOOP is not None:
        return

    loop = asyncio.new_event_loop()

    def _run_loop(loop_: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop_)
        loop_.run_forever()

    t = threading.Thread(target=_run_loop, args=(loop,), name="formpiper-loop", daemon=True)
    t.start()

    _MAIN_LOOP = loop
    _THREAD = t


def stop_background_loop() -> None:
    global _MAIN_LOOP, _THREAD
    if _MAIN_LOOP is None:
        return
    _MAIN_LOOP.call_soon_threadsafe(_MAIN_LOOP.stop)
    if _THREAD is not None:
        _THREAD.join(timeout=2)
    _MAIN_LOOP = None
    _THREAD = None


def run_on_main_loop(coro: Awaitable[Any], timeout: float | None = None) -> Any:
    """
    Runs a coroutine (fill, validate) on the background loop and blocks for its result.
    Without a background loop, as in tests, it falls back to asyncio.run().
    """
    if _MAIN_LOOP is not None:
        fut = asyncio.run_coroutine_threadsafe(coro, _MAIN_LOOP)
        return fut.result(timeout)
    return asyncio.run(coro)
