from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from data.models import GameSettings
from game.engines.base import EngineBase

NUMBERS = tuple(range(1, 10))


def expected_clicks(double_click: Sequence[int], skip: Sequence[int]) -> List[int]:
    clicks: List[int] = []
    for n in NUMBERS:
        if n in skip:
            continue
        clicks.append(n)
        if n in double_click:
            clicks.append(n)
    return clicks


def make_round2_problem(rng) -> Tuple[List[int], List[int]]:
    pool = list(NUMBERS)
    rng.shuffle(pool)
    double_count = rng.randint(0, 2)
    skip_count = rng.randint(0, 2)
    if skip_count == 2 and double_count > 0:
        skip_count = 1
    double_click = sorted(pool[:double_count])
    skip = sorted(pool[double_count:double_count + skip_count])
    return double_click, skip


class NumberPressingEngine(EngineBase):
    game_code = "NUMBER_PRESSING"
    stages = (1, 2)

    def validate_options(self, settings: GameSettings) -> None:
        self.ms_option(settings, "time_limit_r2_ms", settings.time_limit_ms)

    def time_limit_for(self, stage: int, settings: GameSettings) -> int:
        if stage == 2:
            return self.ms_option(settings, "time_limit_r2_ms", settings.time_limit_ms)
        return settings.time_limit_ms

    def generate(self, settings: GameSettings, plan: Sequence[int]) -> List[Tuple[dict, Any]]:
        problems = []
        for stage in plan:
            if stage == 1:
                target = self.rng.randint(1, 9)
                problems.append(({"target_number": target}, [target]))
                continue
            double_click, skip = make_round2_problem(self.rng)
            problems.append(
                ({"double_click": double_click, "skip": skip}, expected_clicks(double_click, skip))
            )
        return problems

    def normalize_choice(self, player_choice: Any) -> List[int]:
        # ответ - последовательность нажатий: [1, 2, 2, 4] или "1,2,2,4"
        if isinstance(player_choice, int):
            return [player_choice]
        if isinstance(player_choice, str):
            parts = [p for p in player_choice.replace(" ", "").split(",") if p]
        else:
            parts = list(player_choice)
        clicks = [int(p) for p in parts]
        if any(n not in NUMBERS for n in clicks):
            raise ValueError("clicks must be numbers 1-9")
        return clicks
