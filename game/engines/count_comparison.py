from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from data.models import GameSettings
from game.engines.base import EngineBase

MIN_COUNT = 5
MAX_COUNT = 30

WORD_PAIRS = (
    ("apple", "pear"),
    ("cat", "dog"),
    ("sea", "sky"),
    ("pen", "ink"),
    ("train", "bus"),
    ("milk", "tea"),
)


def _clamp(value: int) -> int:
    return max(MIN_COUNT, min(MAX_COUNT, value))


def draw_counts(rng, difficulty: float) -> Tuple[int, int]:
    """Counts get closer together as difficulty goes from 0 to 1."""
    mean = rng.random() * 25 + 5
    std_dev = mean * (0.5 - 0.4 * difficulty)
    first = _clamp(round(rng.gauss(mean, std_dev)))
    second = _clamp(round(rng.gauss(mean, std_dev)))
    if first == second:
        first = first + 1 if first < MAX_COUNT else first - 1
    return first, second


class CountComparisonEngine(EngineBase):
    game_code = "COUNT_COMPARISON"
    choices = ("LEFT", "RIGHT")

    def generate(self, settings: GameSettings, plan: Sequence[int]) -> List[Tuple[dict, Any]]:
        pairs = list(WORD_PAIRS)
        self.rng.shuffle(pairs)
        total = len(plan)
        problems = []
        for i in range(total):
            left_word, right_word = pairs[i % len(pairs)]
            if self.rng.random() > 0.5:
                left_word, right_word = right_word, left_word
            left_count, right_count = draw_counts(self.rng, i / total)
            correct = "LEFT" if left_count > right_count else "RIGHT"
            trap_side = "RIGHT" if correct == "LEFT" else "LEFT"
            traps = []
            if self.rng.random() < 0.5:
                traps.append({"type": "FontSize", "applied_to": trap_side})
            if self.rng.random() < 0.5:
                traps.append({"type": "FontWeight", "applied_to": trap_side})
            if self.rng.random() < 0.33:
                traps.append({"type": "GapProbability", "applied_to": trap_side})
            payload = {
                "left_word": left_word,
                "right_word": right_word,
                "left_count": left_count,
                "right_count": right_count,
                "applied_traps": traps,
            }
            problems.append((payload, correct))
        return problems
