from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from config.settings import SessionConfig, TimerConfig
from data.gateway import Gateway, utc_now_iso
from data.models import (
    MODE_LOADING,
    MODE_PLAYING,
    MODE_RESULT,
    MODE_SETUP,
    TIMEOUT,
    GameSession,
    GameSettings,
    Problem,
    SessionMetrics,
    Trial,
    TrialOutcome,
)
from game.errors import StaleSubmissionError, TransportError, TrialEngineError
from game.session_metrics import compute_metrics
from game.timer import AsyncioScheduler, RoundTimer

logger = logging.getLogger(__name__)

RetryCall = Callable[[], Awaitable[Any]]


class SessionStore:
    """
    Жизненный цикл одной игры: setup -> loading -> playing -> result.

    Store - единственный владелец состояния сессии. Движок игры живёт за
    gateway (в памяти или на сервере), таймер - внутри store.

    Каждый ответ gateway проверяется по идентичности (epoch сессии + объект
    trial-а): если за время ожидания был reset или новый старт, ответ
    просто выбрасывается.
    """

    def __init__(
        self,
        gateway: Gateway,
        scheduler=None,
        config: SessionConfig = SessionConfig(),
        timer_config: TimerConfig = TimerConfig(),
    ) -> None:
        self.gateway = gateway
        self.scheduler = scheduler or AsyncioScheduler()
        self.config = config
        self.trial_timer = RoundTimer(self.scheduler, config=timer_config)
        self.session_timer = RoundTimer(self.scheduler, config=timer_config)

        self._mode: str = MODE_SETUP
        self._session: Optional[GameSession] = None
        self._results: list[TrialOutcome] = []
        self._trial: Optional[Trial] = None
        self._epoch: int = 0
        self._busy: bool = False
        self._retry: Optional[RetryCall] = None
        self._retries_left: int = config.transport_retries
        self._tasks: set[asyncio.Task] = set()

        # что показать игроку
        self.error: Optional[Exception] = None
        self.display_error: Optional[str] = None
        self.last_rejection: Optional[str] = None

    # ---- read-only state ------------------------------------------------

    @property
    def game_mode(self) -> str:
        return self._mode

    @property
    def session(self) -> Optional[GameSession]:
        return self._session

    @property
    def session_id(self) -> Optional[int]:
        return self._session.session_id if self._session is not None else None

    @property
    def results(self) -> tuple[TrialOutcome, ...]:
        return tuple(self._results)

    @property
    def current_trial(self) -> Optional[Trial]:
        return self._trial

    @property
    def metrics(self) -> SessionMetrics:
        return compute_metrics(self._results)

    @property
    def feedback(self) -> Optional[TrialOutcome]:
        """Last outcome, hidden in real mode."""
        if self._session is None or self._session.settings.is_real_mode or not self._results:
            return None
        return self._results[-1]

    @property
    def can_retry(self) -> bool:
        return self._mode == MODE_PLAYING and self._retry is not None and not self._busy

    # ---- public intents -------------------------------------------------

    async def start_game(self, game_code: str, settings: GameSettings) -> bool:
        self.reset_game()
        self._epoch += 1
        epoch = self._epoch
        self._session = GameSession(game_code=game_code, settings=settings, started_at=utc_now_iso())
        self._set_mode(MODE_LOADING)
        try:
            started = await self.gateway.start_game(game_code, settings)
        except TrialEngineError as exc:
            if epoch != self._epoch:
                return False
            logger.warning("start of %s failed: %s", game_code, exc)
            self._session = None
            self.error = exc
            self._set_mode(MODE_SETUP)
            return False

        if epoch != self._epoch:
            logger.info("late start response for %s ignored", game_code)
            return False
        self._session.session_id = started.session_id
        self._retries_left = self.config.transport_retries
        self._set_mode(MODE_PLAYING)
        if settings.session_time_limit_ms > 0:
            self.session_timer.start(
                settings.session_time_limit_ms,
                on_time_up=lambda: self._on_session_time_up(epoch),
            )
        self._begin_trial(started.first_problem)
        return True

    async def submit_answer(
        self,
        choice: Any,
        response_time_ms: int,
        confidence: Optional[int] = None,
    ) -> Optional[TrialOutcome]:
        trial = self._trial
        if self._mode != MODE_PLAYING or trial is None:
            self.last_rejection = "not_playing"
            return None
        if self._busy or trial.outcome is not None or trial.unresolved:
            self.last_rejection = "already_resolved"
            logger.info("submission for trial %d rejected", trial.index)
            return None
        self._busy = True
        self.trial_timer.stop()
        return await self._resolve(self._epoch, trial, choice, response_time_ms, confidence)

    async def retry_pending(self) -> bool:
        if not self.can_retry:
            return False
        retry, self._retry = self._retry, None
        self._busy = True
        self.error = None
        if self._trial is not None:
            self._trial.unresolved = False
        await retry()
        return True

    def reset_game(self) -> None:
        self._epoch += 1
        self.trial_timer.stop()
        self.session_timer.stop()
        self._session = None
        self._results = []
        self._trial = None
        self._busy = False
        self._retry = None
        self.error = None
        self.display_error = None
        self.last_rejection = None
        self._set_mode(MODE_SETUP)

    async def wait_idle(self) -> None:
        """Wait for timeout resolutions spawned by the timer."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ---- internals ------------------------------------------------------

    def _set_mode(self, mode: str) -> None:
        if mode != self._mode:
            logger.info("mode %s -> %s", self._mode, mode)
        self._mode = mode

    def _is_current(self, epoch: int, trial: Optional[Trial]) -> bool:
        return epoch == self._epoch and trial is self._trial

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _begin_trial(self, problem: Problem) -> None:
        trial = Trial(problem=problem, started_ms=self.scheduler.now_ms())
        self._trial = trial
        epoch = self._epoch
        self.trial_timer.start(problem.time_limit_ms, on_time_up=lambda: self._on_time_up(epoch, trial))

    def _on_time_up(self, epoch: int, trial: Trial) -> None:
        if not self._is_current(epoch, trial) or self._busy or trial.outcome is not None:
            return
        self._busy = True
        self._spawn(self._resolve(epoch, trial, TIMEOUT, trial.problem.time_limit_ms, None))

    def _on_session_time_up(self, epoch: int) -> None:
        if epoch != self._epoch or self._mode != MODE_PLAYING:
            return
        logger.info("session time limit reached after %d outcomes", len(self._results))
        # всё, что ещё летит от gateway, больше не относится к этой сессии
        self._epoch += 1
        self._finish()

    async def _resolve(
        self,
        epoch: int,
        trial: Trial,
        choice: Any,
        response_time_ms: int,
        confidence: Optional[int],
    ) -> Optional[TrialOutcome]:
        try:
            outcome = await self.gateway.submit_answer(
                self.session_id, trial.index, choice, response_time_ms, confidence
            )
        except StaleSubmissionError as exc:
            if not self._is_current(epoch, trial):
                return None
            # gateway уже ушёл дальше - догоняем его
            logger.warning("gateway rejected trial %d as stale: %s", trial.index, exc)
            self.last_rejection = "stale_submission"
            await self._advance(epoch)
            return None
        except TransportError as exc:
            if not self._is_current(epoch, trial):
                return None
            self._on_transport_failure(
                exc, lambda: self._resolve(epoch, trial, choice, response_time_ms, confidence)
            )
            return None
        except TrialEngineError as exc:
            if not self._is_current(epoch, trial):
                return None
            self._on_gateway_rejection(exc)
            return None

        if not self._is_current(epoch, trial):
            logger.info("late outcome for trial %d ignored", trial.index)
            return None
        trial.resolve(outcome)
        self._results.append(outcome)
        self._retries_left = self.config.transport_retries
        await self._advance(epoch)
        return outcome

    async def _advance(self, epoch: int) -> None:
        try:
            problem = await self.gateway.get_next_problem(self.session_id)
        except TransportError as exc:
            if epoch != self._epoch:
                return
            self._on_transport_failure(exc, lambda: self._advance(epoch))
            return
        except TrialEngineError as exc:
            if epoch != self._epoch:
                return
            self._on_gateway_rejection(exc)
            return
        if epoch != self._epoch:
            return
        self._busy = False
        self._retries_left = self.config.transport_retries
        if problem is None:
            self._finish()
            return
        self._begin_trial(problem)

    def _on_transport_failure(self, exc: TransportError, retry: RetryCall) -> None:
        self.error = exc
        self._busy = False
        if self._retries_left <= 0:
            logger.warning("gateway failed again (%s), ending with %d results", exc.reason, len(self._results))
            self._finish()
            return
        self._retries_left -= 1
        logger.warning("gateway failed (%s), trial left unresolved", exc.reason)
        if self._trial is not None:
            self._trial.unresolved = True
        self._retry = retry

    def _on_gateway_rejection(self, exc: TrialEngineError) -> None:
        # сессия потеряна или запрос отвергнут: повтор не поможет
        logger.warning("gateway rejected the session (%s), ending with %d results", exc, len(self._results))
        self.error = exc
        self._finish()

    def _finish(self) -> None:
        self.trial_timer.stop()
        self.session_timer.stop()
        self._busy = False
        self._retry = None
        self._set_mode(MODE_RESULT)
        if self.session_id is None:
            self.display_error = "missing_session_id"
            logger.warning("result reached without a session id")
