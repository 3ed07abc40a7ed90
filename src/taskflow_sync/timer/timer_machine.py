# src/taskflow_sync/timer/timer_machine.py

"""
Timer state machine.

Two states: Idle, and Running(task, start_timestamp, base_elapsed).

Three sources of truth meet here:
- the local snapshot (reload hint, read once on construction),
- the server task state (start/stop calls, sync_from_server, reconcile),
- the user's own actions (start/stop), which always win locally.

Key invariants:
- elapsed time is always base_elapsed + (now - start_timestamp), clamped at 0;
  the per-second tick only refreshes the displayed value,
- stop() cancels the tick before awaiting anything, so no increment can land
  after the transition to Idle,
- server calls are issued after the local commit; failures are logged and
  returned as OpResult, never rolled back.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Any

from ..core.events import EventBus, TimerChanged
from ..core.ports import Clock, JsonDict, TaskApi, Toaster
from ..core.results import OpResult
from .timer_models import TaskSummary, TimerSnapshot, TimerState, TimerWidget, format_elapsed, parse_timestamp
from .timer_store import LocalTimerStore

logger = logging.getLogger(__name__)


def timer_owner_id(timer_data: JsonDict) -> str | None:
    owner = timer_data.get("userId")
    if isinstance(owner, dict):
        owner = owner.get("_id") or owner.get("id")
    return str(owner) if owner else None


class TimerStateMachine:
    def __init__(
            self,
            store: LocalTimerStore,
            api: TaskApi | None = None,
            *,
            bus: EventBus | None = None,
            toaster: Toaster | None = None,
            clock: Clock = time.time,
            tick_seconds: float = 1.0,
            user_id: str | None = None,
    ) -> None:
        self._store = store
        self._api = api
        self._bus = bus
        self._toaster = toaster
        self._clock = clock
        self._tick_seconds = max(0.01, float(tick_seconds))
        self._user_id = user_id

        self._state = TimerState()
        self._start_ts: float | None = None
        self._base_elapsed = 0

        self._tick_task: asyncio.Task[None] | None = None
        self._inflight: set[str] = set()

        self._restore()

    # ---- accessors ----

    @property
    def state(self) -> TimerState:
        return TimerState(
            active_task=self._state.active_task,
            is_running=self._state.is_running,
            elapsed_seconds=self._state.elapsed_seconds,
        )

    @property
    def active_task(self) -> TaskSummary | None:
        return self._state.active_task

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def elapsed_seconds(self) -> int:
        return self._state.elapsed_seconds

    @property
    def start_timestamp(self) -> float | None:
        return self._start_ts

    @property
    def is_ticking(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def widget(self) -> TimerWidget:
        elapsed = self._state.elapsed_seconds
        return TimerWidget(
            active_task=self._state.active_task,
            is_running=self._state.is_running,
            elapsed_seconds=elapsed,
            formatted_time=format_elapsed(elapsed),
        )

    # ---- load-time reconciliation ----

    def _restore(self) -> None:
        snap = self._store.load()
        if snap is None or not snap.is_running:
            return
        if snap.active_task_ref is None or snap.start_timestamp is None:
            return

        self._state.active_task = TaskSummary(id=snap.active_task_ref, title=snap.active_task_title)
        self._state.is_running = True
        self._start_ts = snap.start_timestamp
        self._base_elapsed = snap.elapsed_seconds
        self._state.elapsed_seconds = self._compute_elapsed()
        logger.info(
            "Restored running timer task=%s elapsed=%ss",
            snap.active_task_ref,
            self._state.elapsed_seconds,
        )

    def resume(self) -> None:
        """Start ticking if a restored timer is running (needs a running loop)."""
        if self._state.is_running:
            self._ensure_ticking()

    # ---- transitions ----

    async def start(self, task: TaskSummary) -> OpResult:
        current = self._state.active_task
        if self._state.is_running and current is not None and current.id == task.id:
            logger.debug("Timer already running for task=%s", task.id)
            return OpResult.success()

        previous: TaskSummary | None = None
        if self._state.is_running and current is not None:
            # Switching tasks silently ends the previous timer.
            previous = current
            self._go_idle()

        self._state.active_task = task
        self._state.is_running = True
        self._start_ts = self._clock()
        self._base_elapsed = 0
        self._state.elapsed_seconds = 0
        self._persist()
        self._ensure_ticking()
        self._publish()
        self._notify(f"Timer started: {task.title}")

        if previous is not None:
            await self._call_server("stop", previous.id)

        return await self._call_server("start", task.id)

    async def stop(self) -> OpResult:
        task = self._state.active_task
        if task is None:
            return OpResult.success()

        self._go_idle()
        return await self._call_server("stop", task.id)

    def clear(self) -> None:
        """Local-only reset (the server already has no timer)."""
        if self._state.active_task is None and not self._state.is_running:
            self._store.clear()
            return
        self._go_idle()

    def tick(self) -> None:
        if not self._state.is_running:
            return
        self._state.elapsed_seconds = self._compute_elapsed()
        self._persist()
        self._publish()

    def sync_from_server(self, task: TaskSummary, timer_data: JsonDict | None) -> bool:
        """
        Adopt a timer the server knows about but this client does not
        (started on another device or tab).
        """
        if not timer_data:
            return False
        start = parse_timestamp(timer_data.get("startTime"))
        if start is None:
            return False

        self._state.active_task = task
        self._state.is_running = True
        self._start_ts = start
        self._base_elapsed = 0
        self._state.elapsed_seconds = self._compute_elapsed()
        self._persist()
        self._ensure_ticking()
        self._publish()
        logger.info("Timer synced from server task=%s elapsed=%ss", task.id, self._state.elapsed_seconds)
        return True

    async def reconcile_with_server(self) -> None:
        """Re-validate the running timer against GET /tasks/:id."""
        task = self._state.active_task
        if self._api is None or task is None or not self._state.is_running:
            return
        if task.id in self._inflight:
            return

        try:
            payload = await self._api.get_task(task.id)
        except Exception:
            logger.warning("Timer reconcile fetch failed task=%s", task.id, exc_info=True)
            return

        # The user may have stopped or switched while the fetch was in flight.
        current = self._state.active_task
        if current is None or current.id != task.id or task.id in self._inflight:
            return

        timer_data = payload.get("activeTimer") if isinstance(payload, dict) else None
        if not self.owns_timer(timer_data):
            logger.info("Server has no active timer for task=%s; clearing local timer", task.id)
            self.clear()
            return

        start = parse_timestamp(timer_data.get("startTime"))  # type: ignore[union-attr]
        if start is not None and (self._start_ts is None or abs(start - self._start_ts) >= 1.0):
            self.sync_from_server(task, timer_data)

    def owns_timer(self, timer_data: Any) -> bool:
        """True if timer_data is an active timer of this session's user."""
        if not isinstance(timer_data, dict) or not timer_data.get("startTime"):
            return False
        owner = timer_owner_id(timer_data)
        return self._user_id is None or owner is None or owner == self._user_id

    def shutdown(self) -> None:
        """Stop the repeating tick (consumer unmount). State is kept."""
        self._cancel_tick()

    # ---- internals ----

    def _compute_elapsed(self) -> int:
        if self._start_ts is None:
            return self._base_elapsed
        return self._base_elapsed + max(0, int(self._clock() - self._start_ts))

    def _go_idle(self) -> None:
        self._cancel_tick()
        self._state.active_task = None
        self._state.is_running = False
        self._state.elapsed_seconds = 0
        self._start_ts = None
        self._base_elapsed = 0
        try:
            self._store.clear()
        except Exception:
            logger.exception("Failed to clear timer snapshot")
        self._publish()

    def _persist(self) -> None:
        task = self._state.active_task
        snap = TimerSnapshot(
            active_task_ref=task.id if task else None,
            active_task_title=task.title if task else "",
            is_running=self._state.is_running,
            start_timestamp=self._start_ts,
            elapsed_seconds=self._base_elapsed,
            last_persisted_at=self._clock(),
        )
        try:
            self._store.save(snap)
        except Exception:
            logger.exception("Failed to persist timer snapshot")

    def _ensure_ticking(self) -> None:
        if self.is_ticking:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; timer will not tick until resume()")
            return
        self._tick_task = loop.create_task(self._tick_loop())

    def _cancel_tick(self) -> None:
        task = self._tick_task
        self._tick_task = None
        if task is not None and not task.done():
            task.cancel()

    async def _tick_loop(self) -> None:
        while self._state.is_running:
            await asyncio.sleep(self._tick_seconds)
            try:
                self.tick()
            except Exception:
                logger.exception("Timer tick failed")

    async def _call_server(self, action: str, task_id: str) -> OpResult:
        if self._api is None:
            return OpResult.success()

        self._inflight.add(task_id)
        try:
            if action == "start":
                payload = await self._api.start_timer(task_id)
                self._align_with_server_start(task_id, payload)
            else:
                await self._api.stop_timer(task_id)
        except Exception as e:
            logger.warning("Server timer %s failed task=%s: %s", action, task_id, e)
            return OpResult.failure(e)
        finally:
            self._inflight.discard(task_id)

        logger.info("Server timer %s ok task=%s", action, task_id)
        return OpResult.success()

    def _align_with_server_start(self, task_id: str, payload: Any) -> None:
        # "Timer already running" answers carry the original start; adopt it.
        if not isinstance(payload, dict):
            return
        current = self._state.active_task
        if current is None or current.id != task_id or not self._state.is_running:
            return
        timer_data = payload.get("activeTimer")
        if not self.owns_timer(timer_data):
            return
        start = parse_timestamp(timer_data.get("startTime"))  # type: ignore[union-attr]
        if start is None or self._start_ts is None or abs(start - self._start_ts) < 1.0:
            return
        self._start_ts = start
        self._base_elapsed = 0
        self._state.elapsed_seconds = self._compute_elapsed()
        self._persist()
        self._publish()

    def _publish(self) -> None:
        if self._bus is not None:
            self._bus.publish(TimerChanged(self.widget()))

    def _notify(self, message: str) -> None:
        if self._toaster is None:
            logger.info(message)
            return
        with contextlib.suppress(Exception):
            self._toaster.toast(message)


async def run_timer_reconciler(machine: TimerStateMachine, *, interval_seconds: float = 30.0) -> None:
    """
    Periodically re-validate the local timer against the server.

    The local slot is only a reload hint; another tab or device may have
    stopped or restarted the timer. To stop the loop, cancel the task.
    """
    sleep_s = max(0.5, float(interval_seconds))
    while True:
        await asyncio.sleep(sleep_s)
        try:
            await machine.reconcile_with_server()
        except Exception:
            logger.exception("Timer reconcile failed")
