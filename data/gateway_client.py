import asyncio
import json
import logging
from typing import Any, Optional
from urllib import error, request
from urllib.parse import urlencode, urlparse

from config.settings import GatewayConfig
from data.gateway import Gateway
from data.models import (
    GameSettings,
    Problem,
    SessionMetrics,
    SessionPage,
    SessionRecord,
    StartedGame,
    TrialOutcome,
)
from game.errors import (
    ConfigurationError,
    SessionNotFoundError,
    StaleSubmissionError,
    TransportError,
)

logger = logging.getLogger(__name__)


class RemoteGateway(Gateway):
    """
    Gateway поверх HTTP API сервера (backend/app/api.py).

    urllib блокирующий, поэтому каждый запрос уходит в отдельный поток,
    а event loop сессии продолжает тикать таймером.
    Повторов здесь нет: решение о повторе принимает Session Store.
    """

    def __init__(self, base_url: str, timeout_sec: float = 2.5) -> None:
        self.base_url = base_url.strip().rstrip("/")
        self.timeout_sec = max(0.5, timeout_sec)
        self.last_error: str = ""

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "RemoteGateway":
        return cls(config.base_url, timeout_sec=config.timeout_sec)

    @staticmethod
    def is_valid_endpoint(url: str) -> bool:
        parsed = urlparse((url or "").strip())
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)

    # ---- transport ------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        *,
        session_id: Optional[int] = None,
        trial_index: Optional[int] = None,
    ) -> dict[str, Any]:
        data = None
        headers = {}
        if body is not None:
            data = json.dumps(body, ensure_ascii=False).encode("utf-8")
            headers["Content-Type"] = "application/json"
        req = request.Request(f"{self.base_url}{path}", data=data, headers=headers, method=method)
        try:
            with request.urlopen(req, timeout=self.timeout_sec) as resp:
                raw = resp.read().decode("utf-8") or "{}"
                payload = json.loads(raw)
        except error.HTTPError as exc:
            detail = self._read_detail(exc)
            self.last_error = detail
            raise self._map_http_error(exc.code, detail, session_id, trial_index) from exc
        except (error.URLError, TimeoutError, OSError) as exc:
            self.last_error = "connection_error"
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransportError("connection_error", str(exc)) from exc
        except json.JSONDecodeError as exc:
            self.last_error = "invalid_server_response"
            raise TransportError("invalid_server_response") from exc

        if not isinstance(payload, dict) or payload.get("ok") is not True:
            self.last_error = "invalid_server_response"
            raise TransportError("invalid_server_response")
        self.last_error = ""
        return payload

    @staticmethod
    def _read_detail(exc: error.HTTPError) -> str:
        try:
            payload = json.loads(exc.read().decode("utf-8") or "{}")
        except (OSError, json.JSONDecodeError, UnicodeDecodeError):
            return f"http_{exc.code}"
        detail = payload.get("detail") if isinstance(payload, dict) else None
        return detail if isinstance(detail, str) else f"http_{exc.code}"

    @staticmethod
    def _map_http_error(
        status: int,
        detail: str,
        session_id: Optional[int],
        trial_index: Optional[int],
    ) -> Exception:
        if status == 409:
            return StaleSubmissionError(trial_index if trial_index is not None else -1, None)
        if status == 404:
            return SessionNotFoundError(session_id)
        if status in (400, 422):
            return ConfigurationError(detail)
        return TransportError(f"http_{status}", detail)

    async def _call(self, method: str, path: str, body: Optional[dict[str, Any]] = None, **context) -> dict[str, Any]:
        return await asyncio.to_thread(self._request, method, path, body, **context)

    # ---- gateway --------------------------------------------------------

    async def check_connection(self) -> bool:
        if not self.is_valid_endpoint(self.base_url):
            self.last_error = "invalid_url"
            return False
        try:
            await self._call("GET", "/health")
        except TransportError:
            return False
        return True

    async def start_game(self, game_code: str, settings: GameSettings) -> StartedGame:
        payload = await self._call("POST", f"/v1/games/{game_code}/sessions", settings.to_dict())
        return StartedGame(
            session_id=payload.get("session_id"),
            first_problem=Problem.from_dict(payload["first_problem"]),
        )

    async def get_next_problem(self, session_id: Optional[int]) -> Optional[Problem]:
        payload = await self._call("GET", f"/v1/sessions/{session_id}/next", session_id=session_id)
        problem = payload.get("problem")
        return Problem.from_dict(problem) if problem else None

    async def submit_answer(
        self,
        session_id: Optional[int],
        trial_index: int,
        player_choice: Any,
        response_time_ms: int,
        confidence: Optional[int] = None,
    ) -> TrialOutcome:
        body = {
            "trial_index": trial_index,
            "player_choice": player_choice,
            "response_time_ms": response_time_ms,
            "confidence": confidence,
        }
        payload = await self._call(
            "POST",
            f"/v1/sessions/{session_id}/answers",
            body,
            session_id=session_id,
            trial_index=trial_index,
        )
        return TrialOutcome.from_dict(payload["outcome"])

    async def get_paginated_sessions_with_results(self, page: int, limit: int) -> SessionPage:
        query = urlencode({"page": page, "limit": limit})
        payload = await self._call("GET", f"/v1/sessions?{query}")
        return SessionPage(
            sessions=tuple(SessionRecord.from_dict(s) for s in payload.get("sessions") or ()),
            total_count=int(payload.get("total_count", 0)),
        )

    async def get_session_stats(self, session_id: int) -> SessionMetrics:
        payload = await self._call("GET", f"/v1/sessions/{session_id}/stats", session_id=session_id)
        return SessionMetrics.from_dict(payload["stats"])
