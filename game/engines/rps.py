from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from data.models import GameSettings
from game.engines.base import EngineBase

CARDS = ("ROCK", "PAPER", "SCISSORS")

# что бьёт карту / чему карта проигрывает
BEATS = {"ROCK": "PAPER", "PAPER": "SCISSORS", "SCISSORS": "ROCK"}
LOSES_TO = {"ROCK": "SCISSORS", "PAPER": "ROCK", "SCISSORS": "PAPER"}

HOLDER_ME = "me"
HOLDER_OPPONENT = "opponent"


def correct_choice(card: str, holder: str) -> str:
    """
    Если карта у игрока ("me") - надо выбрать карту, которая её бьёт.
    Если у соперника - выбрать проигрывающую ей.
    """
    if holder == HOLDER_ME:
        return BEATS[card]
    return LOSES_TO[card]


class RpsEngine(EngineBase):
    game_code = "RPS"
    stages = (1, 2, 3)
    choices = CARDS

    def _holder_for(self, stage: int) -> str:
        if stage == 1:
            return HOLDER_ME
        if stage == 2:
            return HOLDER_OPPONENT
        return self.rng.choice((HOLDER_ME, HOLDER_OPPONENT))

    def generate(self, settings: GameSettings, plan: Sequence[int]) -> List[Tuple[dict, Any]]:
        problems = []
        for stage in plan:
            card = self.rng.choice(CARDS)
            holder = self._holder_for(stage)
            problems.append(({"card": card, "holder": holder}, correct_choice(card, holder)))
        return problems
