import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from backend.app.config import Settings, load_settings
from backend.app.db import (
    create_session,
    ensure_db,
    read_results,
    read_session,
    read_sessions_page,
    save_result,
)
from data.gateway import utc_now_iso
from data.models import GameSettings, TrialOutcome
from game.engines import EngineBase, create_engine
from game.errors import ConfigurationError, StaleSubmissionError
from game.session_metrics import summarize_session

logger = logging.getLogger(__name__)


class SettingsIn(BaseModel):
    round_count: int
    time_limit_ms: int = 0
    level: int = 1
    is_real_mode: bool = False
    session_time_limit_ms: int = 0
    options: dict[str, Any] = Field(default_factory=dict)


class AnswerIn(BaseModel):
    trial_index: int
    player_choice: Any
    response_time_ms: int = Field(ge=0)
    confidence: Optional[int] = Field(default=None, ge=1, le=4)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    ensure_db(settings.db_path)
    app = FastAPI(title="Cogtrials Sessions API", version="0.1.0")
    # движки живут только в памяти процесса, история - в sqlite
    engines: dict[int, EngineBase] = {}

    def _require_session(session_id: int) -> None:
        if read_session(settings.db_path, session_id) is None:
            raise HTTPException(status_code=404, detail="session_not_found")

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/v1/games/{game_code}/sessions")
    def start_session(game_code: str, body: SettingsIn) -> dict[str, Any]:
        try:
            engine = create_engine(game_code)
        except ConfigurationError:
            raise HTTPException(status_code=400, detail="unknown_game_code") from None
        game_settings = GameSettings.from_dict(body.model_dump())
        try:
            first = engine.start_game(game_settings)
        except ConfigurationError as exc:
            raise HTTPException(status_code=400, detail=f"invalid_settings:{exc}") from None
        session_id = create_session(settings.db_path, game_code, utc_now_iso(), game_settings.to_dict())
        engines[session_id] = engine
        logger.info("session %d started (%s)", session_id, game_code)
        return {"ok": True, "session_id": session_id, "first_problem": first.to_dict()}

    @app.get("/v1/sessions/{session_id}/next")
    def next_problem(session_id: int) -> dict[str, Any]:
        engine = engines.get(session_id)
        if engine is None:
            _require_session(session_id)
            return {"ok": True, "problem": None}
        problem = engine.current_problem()
        if problem is None:
            engines.pop(session_id, None)
        return {"ok": True, "problem": problem.to_dict() if problem else None}

    @app.post("/v1/sessions/{session_id}/answers")
    def submit_answer(session_id: int, body: AnswerIn) -> dict[str, Any]:
        engine = engines.get(session_id)
        if engine is None:
            _require_session(session_id)
            raise HTTPException(status_code=409, detail="stale_submission")
        try:
            outcome = engine.submit_answer(
                body.trial_index, body.player_choice, body.response_time_ms, body.confidence
            )
        except StaleSubmissionError:
            raise HTTPException(status_code=409, detail="stale_submission") from None
        save_result(settings.db_path, session_id, outcome.to_dict())
        return {"ok": True, "outcome": outcome.to_dict()}

    @app.get("/v1/sessions")
    def list_sessions(page: int = 1, limit: int = 10) -> dict[str, Any]:
        if page < 1 or limit < 1:
            raise HTTPException(status_code=400, detail="invalid_page")
        safe_limit = min(settings.max_page_size, int(limit))
        sessions, total_count = read_sessions_page(settings.db_path, page, safe_limit)
        return {
            "ok": True,
            "sessions": sessions,
            "total_count": total_count,
            "page": page,
            "limit": safe_limit,
        }

    @app.get("/v1/sessions/{session_id}/stats")
    def session_stats(session_id: int) -> dict[str, Any]:
        _require_session(session_id)
        outcomes = [TrialOutcome.from_dict(r) for r in read_results(settings.db_path, session_id)]
        return {"ok": True, "stats": summarize_session(outcomes).to_dict()}

    return app
