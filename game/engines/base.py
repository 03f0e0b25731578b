from __future__ import annotations

import logging
import random
from typing import Any, List, Optional, Sequence, Tuple

from data.models import TIMEOUT, GameSettings, Problem, TrialOutcome
from game.errors import ConfigurationError, StaleSubmissionError

logger = logging.getLogger(__name__)


class EngineBase:
    """
    Общий контракт всех игр.

    Игра отличается только генерацией задач и правилом оценки:
    - generate(settings, stages) -> список (payload, answer)
    - grade(answer, choice) -> bool, чистая функция
    Всё остальное (валидация, счётчик trial-ов, таймаут, stale-ответы) общее.
    """

    game_code: str = "BASE"
    stages: Tuple[int, ...] = (1,)
    choices: Tuple[str, ...] = ()
    min_level: int = 1
    max_level: int = 1

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()
        self.settings: Optional[GameSettings] = None
        self.problems: List[Problem] = []
        self.outcomes: List[TrialOutcome] = []
        self._answers: List[Any] = []
        self._index: int = 0

    # ---- settings -------------------------------------------------------

    def validate_settings(self, settings: GameSettings) -> None:
        if settings.round_count <= 0:
            raise ConfigurationError("round_count must be positive")
        if settings.time_limit_ms < 0:
            raise ConfigurationError("time_limit_ms must not be negative")
        if settings.session_time_limit_ms < 0:
            raise ConfigurationError("session_time_limit_ms must not be negative")
        if not self.min_level <= settings.level <= self.max_level:
            raise ConfigurationError(
                f"level must be between {self.min_level} and {self.max_level}"
            )
        self.configured_stages(settings)
        self.validate_options(settings)

    def validate_options(self, settings: GameSettings) -> None:
        return None

    @staticmethod
    def ms_option(settings: GameSettings, name: str, default: int) -> int:
        """Non-negative integer option (milliseconds)."""
        raw = settings.option(name, default)
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
        if value < 0:
            raise ConfigurationError(f"{name} must not be negative")
        return value

    def configured_stages(self, settings: GameSettings) -> Tuple[int, ...]:
        raw = settings.option("rounds")
        if raw is None:
            return self.stages
        try:
            stages = tuple(sorted({int(r) for r in raw}))
        except (TypeError, ValueError):
            raise ConfigurationError("rounds must be a list of integers") from None
        if not stages or any(s not in self.stages for s in stages):
            raise ConfigurationError(f"rounds must be a non-empty subset of {list(self.stages)}")
        return stages

    def stage_plan(self, settings: GameSettings) -> List[int]:
        stages = self.configured_stages(settings)
        n = settings.round_count
        return [stages[i * len(stages) // n] for i in range(n)]

    def time_limit_for(self, stage: int, settings: GameSettings) -> int:
        return settings.time_limit_ms

    # ---- contract -------------------------------------------------------

    def start_game(self, settings: GameSettings) -> Problem:
        self.validate_settings(settings)
        self.settings = settings
        self.outcomes = []
        self._index = 0
        plan = self.stage_plan(settings)
        generated = self.generate(settings, plan)
        self.problems = []
        self._answers = []
        for i, (stage, (payload, answer)) in enumerate(zip(plan, generated)):
            self.problems.append(
                Problem(
                    trial_index=i,
                    round=stage,
                    time_limit_ms=self.time_limit_for(stage, settings),
                    payload=payload,
                )
            )
            self._answers.append(answer)
        logger.info("%s started: %d trials", self.game_code, len(self.problems))
        return self.problems[0]

    @property
    def active_index(self) -> Optional[int]:
        if self.settings is None or self._index >= len(self.problems):
            return None
        return self._index

    def current_problem(self) -> Optional[Problem]:
        index = self.active_index
        return None if index is None else self.problems[index]

    def is_done(self) -> bool:
        return self.settings is not None and self._index >= len(self.problems)

    def submit_answer(
        self,
        trial_index: int,
        player_choice: Any,
        response_time_ms: int,
        confidence: Optional[int] = None,
    ) -> TrialOutcome:
        if trial_index != self.active_index:
            raise StaleSubmissionError(trial_index, self.active_index)
        problem = self.problems[trial_index]
        answer = self._answers[trial_index]
        if player_choice == TIMEOUT:
            outcome = TrialOutcome(
                trial_index=trial_index,
                round=problem.round,
                player_choice=TIMEOUT,
                correct_choice=self.describe_answer(answer),
                is_correct=False,
                response_time_ms=problem.time_limit_ms,
                confidence=confidence,
                score=self.score(False, TIMEOUT, confidence),
            )
        else:
            outcome = self._graded(problem, answer, player_choice, response_time_ms, confidence)
        self.outcomes.append(outcome)
        self._index += 1
        return outcome

    def timeout(self, trial_index: int) -> TrialOutcome:
        return self.submit_answer(trial_index, TIMEOUT, 0)

    def _graded(
        self,
        problem: Problem,
        answer: Any,
        player_choice: Any,
        response_time_ms: int,
        confidence: Optional[int],
    ) -> TrialOutcome:
        error = None
        try:
            choice = self.normalize_choice(player_choice)
            is_correct = bool(self.grade(answer, choice))
        except (TypeError, ValueError) as exc:
            logger.warning("%s trial %d: invalid choice %r (%s)", self.game_code, problem.trial_index, player_choice, exc)
            choice = player_choice
            is_correct = False
            error = "invalid_choice"
        return TrialOutcome(
            trial_index=problem.trial_index,
            round=problem.round,
            player_choice=choice,
            correct_choice=self.describe_answer(answer),
            is_correct=is_correct,
            response_time_ms=max(0, int(response_time_ms)),
            confidence=confidence,
            score=self.score(is_correct, choice, confidence),
            error=error,
        )

    # ---- per-variant hooks ----------------------------------------------

    def generate(self, settings: GameSettings, plan: Sequence[int]) -> List[Tuple[dict, Any]]:
        raise NotImplementedError

    def normalize_choice(self, player_choice: Any) -> Any:
        choice = str(player_choice).strip().upper()
        if self.choices and choice not in self.choices:
            raise ValueError(f"expected one of {', '.join(self.choices)}")
        return choice

    def grade(self, answer: Any, choice: Any) -> bool:
        return choice == answer

    def describe_answer(self, answer: Any) -> Any:
        return answer

    def score(self, is_correct: bool, choice: Any, confidence: Optional[int]) -> Optional[float]:
        return None
