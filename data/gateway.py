from __future__ import annotations

import abc
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from data.models import (
    GameSettings,
    Problem,
    SessionMetrics,
    SessionPage,
    SessionRecord,
    StartedGame,
    TrialOutcome,
)
from game.engines import EngineBase, create_engine
from game.errors import ConfigurationError, SessionNotFoundError, StaleSubmissionError
from game.session_metrics import summarize_session

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def validate_page(page: int, limit: int) -> None:
    if page < 1:
        raise ConfigurationError("page must be >= 1")
    if limit < 1:
        raise ConfigurationError("limit must be >= 1")


class Gateway(abc.ABC):
    """
    Граница с хранилищем/сервером. Все методы асинхронные,
    даже если реализация считает всё в памяти.
    """

    @abc.abstractmethod
    async def start_game(self, game_code: str, settings: GameSettings) -> StartedGame:
        ...

    @abc.abstractmethod
    async def get_next_problem(self, session_id: Optional[int]) -> Optional[Problem]:
        ...

    @abc.abstractmethod
    async def submit_answer(
        self,
        session_id: Optional[int],
        trial_index: int,
        player_choice: Any,
        response_time_ms: int,
        confidence: Optional[int] = None,
    ) -> TrialOutcome:
        ...

    @abc.abstractmethod
    async def get_paginated_sessions_with_results(self, page: int, limit: int) -> SessionPage:
        ...

    @abc.abstractmethod
    async def get_session_stats(self, session_id: int) -> SessionMetrics:
        ...


@dataclass
class _LiveSession:
    session_id: int
    game_code: str
    settings: GameSettings
    play_datetime: str
    engine: EngineBase

    def to_record(self) -> SessionRecord:
        return SessionRecord(
            session_id=self.session_id,
            game_code=self.game_code,
            settings=self.settings,
            play_datetime=self.play_datetime,
            results=tuple(self.engine.outcomes),
        )


class InMemoryGateway(Gateway):
    """Engines run in-process; history lives only as long as this object."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)
        self._sessions: dict[int, _LiveSession] = {}
        self._next_id = 1

    def _get(self, session_id: Optional[int]) -> _LiveSession:
        live = self._sessions.get(session_id) if session_id is not None else None
        if live is None:
            raise SessionNotFoundError(session_id)
        return live

    async def start_game(self, game_code: str, settings: GameSettings) -> StartedGame:
        engine = create_engine(game_code, random.Random(self._rng.getrandbits(64)))
        first = engine.start_game(settings)
        session_id = self._next_id
        self._next_id += 1
        self._sessions[session_id] = _LiveSession(
            session_id=session_id,
            game_code=game_code,
            settings=settings,
            play_datetime=utc_now_iso(),
            engine=engine,
        )
        logger.info("session %d started (%s)", session_id, game_code)
        return StartedGame(session_id=session_id, first_problem=first)

    async def get_next_problem(self, session_id: Optional[int]) -> Optional[Problem]:
        return self._get(session_id).engine.current_problem()

    async def submit_answer(
        self,
        session_id: Optional[int],
        trial_index: int,
        player_choice: Any,
        response_time_ms: int,
        confidence: Optional[int] = None,
    ) -> TrialOutcome:
        live = self._sessions.get(session_id) if session_id is not None else None
        if live is None:
            raise StaleSubmissionError(trial_index, None)
        return live.engine.submit_answer(trial_index, player_choice, response_time_ms, confidence)

    async def get_paginated_sessions_with_results(self, page: int, limit: int) -> SessionPage:
        validate_page(page, limit)
        ordered = sorted(
            self._sessions.values(),
            key=lambda s: (s.play_datetime, s.session_id),
            reverse=True,
        )
        offset = (page - 1) * limit
        window = ordered[offset:offset + limit]
        return SessionPage(
            sessions=tuple(s.to_record() for s in window),
            total_count=len(ordered),
        )

    async def get_session_stats(self, session_id: int) -> SessionMetrics:
        return summarize_session(self._get(session_id).engine.outcomes)
