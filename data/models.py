from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple


# Режим жизненного цикла храним строкой, как фазы trial-а
MODE_SETUP = "setup"
MODE_LOADING = "loading"
MODE_PLAYING = "playing"
MODE_RESULT = "result"

GAME_MODES = (MODE_SETUP, MODE_LOADING, MODE_PLAYING, MODE_RESULT)

# Ответ, который подставляется, когда игрок не успел
TIMEOUT = "TIMEOUT"


@dataclass(frozen=True)
class GameSettings:
    """
    Настройки игры, выбранные на экране setup.

    После старта сессии не меняются.
    options - параметры конкретной игры (shape_group, difficulty, rounds, ...)
    """
    round_count: int
    time_limit_ms: int = 0            # 0 - без ограничения по времени
    level: int = 1
    is_real_mode: bool = False        # True - не показываем фидбэк
    session_time_limit_ms: int = 0    # лимит на всю сессию, 0 - выключен
    options: Dict[str, Any] = field(default_factory=dict)

    def option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "GameSettings":
        return cls(
            round_count=int(raw["round_count"]),
            time_limit_ms=int(raw.get("time_limit_ms", 0) or 0),
            level=int(raw.get("level", 1) or 1),
            is_real_mode=bool(raw.get("is_real_mode", False)),
            session_time_limit_ms=int(raw.get("session_time_limit_ms", 0) or 0),
            options=dict(raw.get("options") or {}),
        )


@dataclass(frozen=True)
class Problem:
    """
    Что нужно показать в конкретном trial-е
    """
    trial_index: int
    round: int                 # этап внутри игры (1, 2, 3 ...)
    time_limit_ms: int
    payload: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Problem":
        return cls(
            trial_index=int(raw["trial_index"]),
            round=int(raw.get("round", 1)),
            time_limit_ms=int(raw.get("time_limit_ms", 0) or 0),
            payload=dict(raw.get("payload") or {}),
        )


@dataclass(frozen=True)
class TrialOutcome:
    """
    Результат попытки - что ответил игрок и как это оценено
    """
    trial_index: int
    round: int
    player_choice: Any
    correct_choice: Any
    is_correct: bool
    response_time_ms: int
    confidence: Optional[int] = None
    score: Optional[float] = None      # только для отчёта, на точность не влияет
    error: Optional[str] = None        # код ошибки оценивания, если была

    @property
    def is_timeout(self) -> bool:
        return self.player_choice == TIMEOUT

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TrialOutcome":
        score = raw.get("score")
        confidence = raw.get("confidence")
        return cls(
            trial_index=int(raw["trial_index"]),
            round=int(raw.get("round", 1)),
            player_choice=raw.get("player_choice"),
            correct_choice=raw.get("correct_choice"),
            is_correct=bool(raw.get("is_correct", False)),
            response_time_ms=int(raw.get("response_time_ms", 0) or 0),
            confidence=int(confidence) if confidence is not None else None,
            score=float(score) if score is not None else None,
            error=raw.get("error"),
        )


@dataclass
class Trial:
    """
    Один trial внутри сессии, который сейчас проигрывает Session Store.
    """
    problem: Problem
    started_ms: int
    outcome: Optional[TrialOutcome] = None
    unresolved: bool = False   # gateway не ответил, ждём повтор

    @property
    def index(self) -> int:
        return self.problem.trial_index

    @property
    def deadline_ms(self) -> Optional[int]:
        if self.problem.time_limit_ms <= 0:
            return None
        return self.started_ms + self.problem.time_limit_ms

    def resolve(self, outcome: TrialOutcome) -> None:
        if self.outcome is not None:
            raise ValueError(f"trial {self.index} already has an outcome")
        self.outcome = outcome
        self.unresolved = False


@dataclass
class GameSession:
    game_code: str
    settings: GameSettings
    started_at: str
    session_id: Optional[int] = None   # None пока gateway не выдал id


@dataclass(frozen=True)
class RoundStats:
    round: int
    trials: int
    accuracy: float
    average_response_time_ms: float


@dataclass(frozen=True)
class SessionMetrics:
    overall_accuracy: float
    average_response_time_ms: float
    round_stats: Tuple[RoundStats, ...] = ()
    total_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SessionMetrics":
        total_score = raw.get("total_score")
        return cls(
            overall_accuracy=float(raw.get("overall_accuracy", 0.0)),
            average_response_time_ms=float(raw.get("average_response_time_ms", 0.0)),
            round_stats=tuple(RoundStats(**item) for item in raw.get("round_stats") or ()),
            total_score=float(total_score) if total_score is not None else None,
        )


@dataclass(frozen=True)
class StartedGame:
    session_id: Optional[int]
    first_problem: Problem


@dataclass(frozen=True)
class SessionRecord:
    session_id: int
    game_code: str
    settings: GameSettings
    play_datetime: str
    results: Tuple[TrialOutcome, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "game_code": self.game_code,
            "settings": self.settings.to_dict(),
            "play_datetime": self.play_datetime,
            "results": [r.to_dict() for r in self.results],
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SessionRecord":
        return cls(
            session_id=int(raw["session_id"]),
            game_code=str(raw["game_code"]),
            settings=GameSettings.from_dict(raw["settings"]),
            play_datetime=str(raw.get("play_datetime", "")),
            results=tuple(TrialOutcome.from_dict(r) for r in raw.get("results") or ()),
        )


@dataclass(frozen=True)
class SessionPage:
    sessions: Tuple[SessionRecord, ...]
    total_count: int
