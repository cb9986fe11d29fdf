"""Single-consumer event loop.

One handler call per event, strictly in order. Handlers are pure:
``handler(state, event) -> (new_state, effects)``. The loop owns every side
effect the handlers ask for: queued messages, timers, background jobs and
quitting. Background jobs run on an executor and report back through a
thread-safe inbox that is drained at the start of every ``pump()``.
"""

from __future__ import annotations

import logging
import queue
from collections import deque
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Generic, TypeVar

from .clock import Clock, RealClock, TimerQueue
from .messages import Dispatch, Emit, Quit, Schedule, TaskDone

logger = logging.getLogger(__name__)

S = TypeVar("S")
Handler = Callable[[Any, object], tuple[Any, Iterable[object]]]


class EventLoop(Generic[S]):
    def __init__(
        self,
        *,
        handler: Handler,
        state: S,
        clock: Clock | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._handler = handler
        self._state = state
        self._clock: Clock = clock if clock is not None else RealClock()
        self._owns_executor = executor is None
        self._executor: Executor = (
            executor if executor is not None else ThreadPoolExecutor(max_workers=2, thread_name_prefix="nightmare-job")
        )
        self._queue: deque[object] = deque()
        self._timers = TimerQueue()
        self._inbox: queue.SimpleQueue[object] = queue.SimpleQueue()
        self._running = True
        self._processed = 0

    @property
    def state(self) -> S:
        return self._state

    @property
    def running(self) -> bool:
        return self._running

    @property
    def processed(self) -> int:
        return self._processed

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    def post(self, event: object) -> None:
        """Queue an external event (key press, resize) behind everything already queued."""
        self._queue.append(event)

    def post_threadsafe(self, event: object) -> None:
        self._inbox.put(event)

    def stop(self) -> None:
        self._running = False

    def shutdown(self) -> None:
        """Stop the loop and drop pending timers and queued jobs.

        A job already running is not interrupted; interpreter exit still joins it,
        so blocking jobs should carry their own timeout.
        """
        self._running = False
        self._timers.clear()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def pump(self) -> int:
        """Process everything that is ready right now; return the number of events handled."""
        self._collect()
        handled = 0
        while self._running and self._queue:
            event = self._queue.popleft()
            self._dispatch(event)
            handled += 1
        return handled

    def _collect(self) -> None:
        while True:
            try:
                self._queue.append(self._inbox.get_nowait())
            except queue.Empty:
                break
        self._queue.extend(self._timers.pop_due(self._clock.now()))

    def _dispatch(self, event: object) -> None:
        try:
            state, effects = self._handler(self._state, event)
            effects = tuple(effects)
        except Exception:
            logger.exception("event handler failed for %r; keeping previous state", type(event).__name__)
            return
        self._state = state
        self._processed += 1
        self._apply(effects)

    def _apply(self, effects: tuple[object, ...]) -> None:
        immediate: list[object] = []
        for effect in effects:
            if isinstance(effect, Emit):
                immediate.append(effect.message)
            elif isinstance(effect, Schedule):
                self._timers.schedule(self._clock.now() + max(0.0, effect.delay_s), effect.message)
            elif isinstance(effect, Dispatch):
                self._submit(effect)
            elif isinstance(effect, Quit):
                logger.info("quit requested")
                self._running = False
            else:
                logger.warning("ignoring unknown effect %r", effect)
        # Emitted messages run before any input that was already waiting.
        self._queue.extendleft(reversed(immediate))

    def _submit(self, effect: Dispatch) -> None:
        logger.debug("dispatching job %s token=%s", effect.name, effect.token)
        try:
            future = self._executor.submit(effect.job)
        except RuntimeError as e:
            logger.error("cannot dispatch job %s: %s", effect.name, e)
            self._inbox.put(TaskDone(effect.name, effect.token, error=str(e)))
            return

        def _done(fut: Future) -> None:
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is None:
                self._inbox.put(TaskDone(effect.name, effect.token))
                return
            logger.warning("job %s failed: %s", effect.name, exc)
            self._inbox.put(TaskDone(effect.name, effect.token, error=str(exc) or type(exc).__name__))

        future.add_done_callback(_done)
