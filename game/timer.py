from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from config.settings import TimerConfig
from game.errors import TimerInvariantViolation

logger = logging.getLogger(__name__)

TimeUpHandler = Callable[[], None]


class ScheduledJob:
    def __init__(self, interval_ms: int, callback: Callable[[], None]) -> None:
        self.interval_ms = interval_ms
        self.callback = callback
        self.next_due_ms: int = 0
        self.cancelled: bool = False
        self._handle: Optional[asyncio.TimerHandle] = None

    def cancel(self) -> None:
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioScheduler:
    """Recurring ticks on the running asyncio loop, monotonic clock."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def now_ms(self) -> int:
        return int(time.monotonic() * 1000)

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> ScheduledJob:
        loop = self._loop or asyncio.get_running_loop()
        job = ScheduledJob(interval_ms, callback)

        def _run() -> None:
            if job.cancelled:
                return
            job.callback()
            if not job.cancelled:
                job._handle = loop.call_later(interval_ms / 1000, _run)

        job._handle = loop.call_later(interval_ms / 1000, _run)
        return job


class ManualScheduler:
    """
    Виртуальные часы для тестов: время идёт только в advance().

    Тики вызываются по порядку, как если бы реальное время прошло.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now_ms = start_ms
        self._jobs: list[ScheduledJob] = []

    def now_ms(self) -> int:
        return self._now_ms

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> ScheduledJob:
        job = ScheduledJob(interval_ms, callback)
        job.next_due_ms = self._now_ms + interval_ms
        self._jobs.append(job)
        return job

    def advance(self, ms: int) -> None:
        target = self._now_ms + ms
        while True:
            self._jobs = [j for j in self._jobs if not j.cancelled]
            due = [j for j in self._jobs if j.next_due_ms <= target]
            if not due:
                break
            job = min(due, key=lambda j: j.next_due_ms)
            self._now_ms = job.next_due_ms
            job.next_due_ms += job.interval_ms
            job.callback()
        self._now_ms = target

    def active_jobs(self) -> int:
        return sum(1 for j in self._jobs if not j.cancelled)


class RoundTimer:
    """
    Таймер одного trial-а (или всей сессии).

    - start() обнуляет elapsed и начинает опрашивать часы каждые tick_ms
    - когда elapsed >= time_limit_ms, таймер сам останавливается и один раз
      вызывает on_time_up
    - on_time_up читается в момент срабатывания, поэтому его можно подменить
      в любой момент
    """

    def __init__(
        self,
        scheduler,
        time_limit_ms: int = 0,
        on_time_up: Optional[TimeUpHandler] = None,
        config: TimerConfig = TimerConfig(),
    ) -> None:
        self.scheduler = scheduler
        self.time_limit_ms = max(0, int(time_limit_ms))
        self.on_time_up = on_time_up
        self.tick_ms = config.tick_ms
        self._job: Optional[ScheduledJob] = None
        self._started_ms: Optional[int] = None
        self._elapsed_ms: int = 0
        self._fired: bool = False

    @property
    def is_running(self) -> bool:
        return self._job is not None

    @property
    def elapsed_ms(self) -> int:
        return self._elapsed_ms

    @property
    def remaining_ms(self) -> int:
        return max(0, self.time_limit_ms - self._elapsed_ms)

    @property
    def progress(self) -> float:
        if self.time_limit_ms <= 0:
            return 100.0
        value = self.remaining_ms / self.time_limit_ms * 100.0
        return max(0.0, min(100.0, value))

    def start(self, time_limit_ms: Optional[int] = None, on_time_up: Optional[TimeUpHandler] = None) -> None:
        self.stop()
        if time_limit_ms is not None:
            self.time_limit_ms = max(0, int(time_limit_ms))
        if on_time_up is not None:
            self.on_time_up = on_time_up
        self._elapsed_ms = 0
        self._started_ms = self.scheduler.now_ms()
        self._fired = False
        if self.time_limit_ms <= 0:
            # без лимита нет и отсчёта
            return
        self._job = self.scheduler.call_every(self.tick_ms, self.tick)

    def stop(self) -> None:
        if self._job is None:
            return
        self._job.cancel()
        self._job = None

    def tick(self) -> None:
        if self._job is None or self._started_ms is None:
            return
        self._elapsed_ms = self.scheduler.now_ms() - self._started_ms
        if self._elapsed_ms >= self.time_limit_ms:
            self.stop()
            self._fire()

    def _fire(self) -> None:
        if self._fired:
            raise TimerInvariantViolation("time-up fired twice for one armed period")
        self._fired = True
        logger.debug("time up after %d ms (limit %d)", self._elapsed_ms, self.time_limit_ms)
        handler = self.on_time_up
        if handler is not None:
            handler()
