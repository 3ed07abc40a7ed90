# src/taskflow_sync/cli/runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, TypeVar

from ..core.state import AppState, end_session, start_session

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _run_session(state: AppState, stop_event: asyncio.Event) -> None:
    """
    init -> session (channel, reconcilers, ticking) -> wait for stop -> teardown

    Shutdown model:
    - main thread sets stop_event via loop.call_soon_threadsafe(stop_event.set)
    """
    try:
        await start_session(state)
        await stop_event.wait()
    except asyncio.CancelledError:
        logger.info("Session runner cancelled.")
    except Exception:
        logger.exception("Session runner crashed.")
    finally:
        await end_session(state)


@dataclass
class SessionRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def call(self, coro: Awaitable[T], timeout: float | None = 30.0) -> T:
        """Run a coroutine on the session loop and wait for its result."""
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)  # type: ignore[arg-type]
        return future.result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal session stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_session_in_background(state: AppState) -> SessionRunner | None:
    """
    Run the async session in a background thread (so the console REPL can
    block on input() in the main thread).
    """
    ready = threading.Event()
    holder: dict[str, Any] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_session(state, stop_event))
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="taskflow-session", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Session thread did not initialize properly.")
        return None

    logger.info("Session background thread started.")
    return SessionRunner(thread=t, loop=loop, stop_event=stop_event)
