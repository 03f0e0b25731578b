from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from data.models import TIMEOUT, GameSettings
from game.engines.base import EngineBase
from game.errors import ConfigurationError

GRID_CELLS = 36  # 6x6
AUTO_LEVELS = (4, 6, 8, 10, 12, 16)
MIN_MICE = 4
MAX_MICE = 16

CAUGHT = "CAUGHT"
MISSED = "MISSED"
TARGET_COLORS = ("RED", "BLUE")

CONFIDENCE_MULTIPLIER = {1: 0.1, 2: 0.5, 3: 1.0, 4: 2.0}


def mice_per_trial(difficulty: str, trials: int) -> List[int]:
    if difficulty == "auto":
        counts = []
        for i in range(trials):
            level_idx = min(len(AUTO_LEVELS) - 1, i * len(AUTO_LEVELS) // trials)
            counts.append(AUTO_LEVELS[level_idx])
        return counts
    return [max(MIN_MICE, int(difficulty))] * trials


def confidence_score(is_correct: bool, choice: Any, confidence: Optional[int]) -> float:
    if choice == TIMEOUT:
        return -1.0
    multiplier = CONFIDENCE_MULTIPLIER.get(confidence or 0, 0.0)
    return multiplier if is_correct else -multiplier


class CatChaserEngine(EngineBase):
    game_code = "CAT_CHASER"
    choices = (CAUGHT, MISSED)

    def validate_options(self, settings: GameSettings) -> None:
        self.ms_option(settings, "show_time_ms", 1000)
        difficulty = str(settings.option("difficulty", "auto"))
        if difficulty == "auto":
            return
        try:
            count = int(difficulty)
        except ValueError:
            raise ConfigurationError("difficulty must be 'auto' or a mouse count") from None
        if count > MAX_MICE:
            raise ConfigurationError(f"difficulty must not exceed {MAX_MICE} mice")

    def generate(self, settings: GameSettings, plan: Sequence[int]) -> List[Tuple[dict, Any]]:
        difficulty = str(settings.option("difficulty", "auto"))
        show_time_ms = self.ms_option(settings, "show_time_ms", 1000)
        problems = []
        for num_mice in mice_per_trial(difficulty, len(plan)):
            mice = self.rng.sample(range(GRID_CELLS), num_mice)
            cats = self.rng.sample(range(GRID_CELLS), num_mice)
            red_idx, blue_idx = self.rng.sample(range(num_mice), 2)
            status = {
                "RED": CAUGHT if cats[red_idx] in mice else MISSED,
                "BLUE": CAUGHT if cats[blue_idx] in mice else MISSED,
            }
            target = self.rng.choice(TARGET_COLORS)
            payload = {
                "mice": sorted(mice),
                "cats": cats,
                "red_cat_index": red_idx,
                "blue_cat_index": blue_idx,
                "target_color": target,
                "show_time_ms": show_time_ms,
            }
            problems.append((payload, status[target]))
        return problems

    def score(self, is_correct: bool, choice: Any, confidence: Optional[int]) -> Optional[float]:
        return confidence_score(is_correct, choice, confidence)
