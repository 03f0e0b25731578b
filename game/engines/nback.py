from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from data.models import GameSettings
from game.engines.base import EngineBase

SHAPE_GROUPS = {
    "group1": ("circle", "square", "triangle"),
    "group2": ("trapezoid", "hourglass", "diamond"),
    "group3": ("rhombus", "butterfly", "star"),
    "group4": ("check", "horns", "pyramid"),
    "group5": ("double_triangle", "x_shape", "crown"),
}

MATCH_2_BACK = "LEFT"
MATCH_3_BACK = "RIGHT"
NO_MATCH = "SPACE"


def resolve_shape_group(key: str, rng) -> Tuple[str, Tuple[str, ...]]:
    if key == "random":
        key = rng.choice(sorted(SHAPE_GROUPS))
    if key not in SHAPE_GROUPS:
        key = "group1"
    return key, SHAPE_GROUPS[key]


def build_sequence(shapes: Sequence[str], length: int, rng) -> List[str]:
    """Random shapes, never four identical in a row."""
    sequence: List[str] = []
    for i in range(length):
        while True:
            shape = rng.choice(shapes)
            if i < 3 or not (shape == sequence[i - 1] == sequence[i - 2] == sequence[i - 3]):
                break
        sequence.append(shape)
    return sequence


def expected_choice(sequence: Sequence[str], index: int, level: int) -> str:
    current = sequence[index]
    is_2_back = index >= 2 and current == sequence[index - 2]
    if level == 1:
        return MATCH_2_BACK if is_2_back else NO_MATCH
    is_3_back = index >= 3 and current == sequence[index - 3]
    if is_2_back:
        return MATCH_2_BACK
    if is_3_back:
        return MATCH_3_BACK
    return NO_MATCH


class NBackEngine(EngineBase):
    game_code = "N_BACK"
    choices = (MATCH_2_BACK, MATCH_3_BACK, NO_MATCH)
    min_level = 1
    max_level = 2

    def validate_options(self, settings: GameSettings) -> None:
        self.ms_option(settings, "presentation_time_ms", 1000)

    def generate(self, settings: GameSettings, plan: Sequence[int]) -> List[Tuple[dict, Any]]:
        group_key, shapes = resolve_shape_group(str(settings.option("shape_group", "group1")), self.rng)
        sequence = build_sequence(shapes, len(plan), self.rng)
        presentation_ms = self.ms_option(settings, "presentation_time_ms", 1000)
        return [
            (
                {"shape": shape, "shape_group": group_key, "presentation_time_ms": presentation_ms},
                expected_choice(sequence, i, settings.level),
            )
            for i, shape in enumerate(sequence)
        ]
