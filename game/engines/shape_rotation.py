from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from data.models import GameSettings
from game.engines import geometry
from game.engines.base import EngineBase

LETTER_SHAPES = {
    "F": "M 9 41.1 L 9 71.4 L 0 71.4 L 0 0 L 39.9 0 L 39.9 7.9 L 9 7.9 L 9 33.2 L 38 33.2 L 38 41.1 L 9 41.1 Z",
    "G": (
        "M 34.601 42.7 L 34.601 34.7 L 59.301 34.7 L 59.301 69.7 Q 53.501 71.6 47.601 72.5 "
        "Q 41.701 73.4 34.201 73.4 Q 23.101 73.4 15.501 68.95 Q 7.901 64.5 3.951 56.25 "
        "Q 0.001 48 0.001 36.7 Q 0.001 25.5 4.401 17.3 Q 8.801 9.1 17.051 4.55 Q 25.301 0 37.001 0 "
        "Q 43.001 0 48.351 1.1 Q 53.701 2.2 58.301 4.2 L 54.901 12 Q 51.101 10.3 46.351 9.1 "
        "Q 41.601 7.9 36.501 7.9 Q 28.001 7.9 21.901 11.4 Q 15.801 14.9 12.601 21.35 "
        "Q 9.401 27.8 9.401 36.7 Q 9.401 45.2 12.151 51.75 Q 14.901 58.3 20.801 61.95 "
        "Q 26.701 65.6 36.301 65.6 Q 41.001 65.6 44.301 65.1 Q 47.601 64.6 50.301 63.9 "
        "L 50.301 42.7 L 34.601 42.7 Z"
    ),
    "J": (
        "M 0 89.1 L 0 81.5 Q 1.6 81.9 3.4 82.2 Q 5.2 82.5 7.2 82.5 Q 9.7 82.5 11.95 81.5 "
        "Q 14.2 80.5 15.6 78 Q 17 75.5 17 71 L 17 0 L 26 0 L 26 70.3 Q 26 77.2 23.7 81.65 "
        "Q 21.4 86.1 17.2 88.25 Q 13 90.4 7.4 90.4 Q 5 90.4 3.2 90.05 Q 1.4 89.7 0 89.1 Z"
    ),
    "L": "M 40.2 71.4 L 0 71.4 L 0 0 L 9 0 L 9 63.4 L 40.2 63.4 L 40.2 71.4 Z",
    "P": (
        "M 0 0.001 L 18.9 0.001 Q 32.9 0.001 39.3 5.501 Q 45.7 11.001 45.7 21.001 "
        "Q 45.7 25.401 44.25 29.451 Q 42.8 33.501 39.5 36.701 Q 36.2 39.901 30.7 41.751 "
        "Q 25.2 43.601 17.2 43.601 L 9 43.601 L 9 71.401 L 0 71.401 L 0 0.001 Z "
        "M 18.1 7.701 L 9 7.701 L 9 35.901 L 16.2 35.901 Q 23 35.901 27.5 34.451 "
        "Q 32 33.001 34.2 29.801 Q 36.4 26.601 36.4 21.401 Q 36.4 14.501 32 11.101 "
        "Q 27.6 7.701 18.1 7.701 Z"
    ),
    "Q": (
        "M 45.101 71.701 L 62.201 89.501 L 49.301 89.501 L 35.501 73.401 Q 34.901 73.401 34.251 73.451 "
        "Q 33.601 73.501 33.001 73.501 Q 24.601 73.501 18.401 70.851 Q 12.201 68.201 8.101 63.351 "
        "Q 4.001 58.501 2.001 51.701 Q 0.001 44.901 0.001 36.601 Q 0.001 25.601 3.601 17.401 "
        "Q 7.201 9.201 14.551 4.601 Q 21.901 0.001 33.101 0.001 Q 43.801 0.001 51.101 4.551 "
        "Q 58.401 9.101 62.151 17.351 Q 65.901 25.601 65.901 36.701 Q 65.901 45.401 63.551 52.501 "
        "Q 61.201 59.601 56.601 64.501 Q 52.001 69.401 45.101 71.701 Z "
        "M 9.501 36.701 Q 9.501 45.701 12.001 52.201 Q 14.501 58.701 19.751 62.201 "
        "Q 25.001 65.701 33.001 65.701 Q 41.101 65.701 46.251 62.201 Q 51.401 58.701 53.901 52.201 "
        "Q 56.401 45.701 56.401 36.701 Q 56.401 23.201 50.801 15.551 Q 45.201 7.901 33.101 7.901 "
        "Q 25.001 7.901 19.751 11.351 Q 14.501 14.801 12.001 21.251 Q 9.501 27.701 9.501 36.701 Z"
    ),
    "R": (
        "M 0 0 L 19.7 0 Q 28.6 0 34.35 2.25 Q 40.1 4.5 42.9 9 Q 45.7 13.5 45.7 20.3 "
        "Q 45.7 26 43.6 29.8 Q 41.5 33.6 38.25 35.85 Q 35 38.1 31.4 39.4 L 51 71.4 L 40.5 71.4 "
        "L 23.2 41.9 L 9 41.9 L 9 71.4 L 0 71.4 L 0 0 Z M 19.2 7.8 L 9 7.8 L 9 34.3 L 19.7 34.3 "
        "Q 28.4 34.3 32.4 30.85 Q 36.4 27.4 36.4 20.7 Q 36.4 16 34.55 13.2 Q 32.7 10.4 28.9 9.1 "
        "Q 25.1 7.8 19.2 7.8 Z"
    ),
}

GRID_PROBLEMS = {
    10: "0110/0110/0110/1110",
    11: "0100/1110/0110/0010",
    12: "0011/0110/1100/1000",
    13: "1110/1100/1000/1000",
    14: "1000/1000/1010/1100",
    15: "1000/1100/0100/0110",
    16: "1000/1100/1110/0111",
    17: "1000/0100/0010/0011",
}

MAX_MOVES = 4


def random_solution(rng, points, moves: int, center=None) -> List[str]:
    """Random moves without immediate undo that actually change the shape."""
    while True:
        solution: List[str] = []
        for _ in range(moves):
            while True:
                move = rng.choice(geometry.TRANSFORMS)
                if solution and geometry.INVERSE[solution[-1]] == move:
                    continue
                solution.append(move)
                break
        final = geometry.apply_transforms(points, solution, center)
        if not geometry.same_points(points, final):
            return solution


def _rounded(points) -> List[List[float]]:
    return [[round(x, 3), round(y, 3)] for x, y in points]


class ShapeRotationEngine(EngineBase):
    game_code = "SHAPE_ROTATION"
    stages = (1, 2)

    def generate(self, settings: GameSettings, plan: Sequence[int]) -> List[Tuple[dict, Any]]:
        problems = []
        for stage in plan:
            min_moves = self.rng.randint(1, MAX_MOVES)
            if stage == 1:
                letter = self.rng.choice(sorted(LETTER_SHAPES))
                initial = geometry.parse_svg_path(LETTER_SHAPES[letter])
                center = None
                payload = {"shape": letter}
            else:
                grid_id = self.rng.choice(sorted(GRID_PROBLEMS))
                initial = geometry.parse_grid(GRID_PROBLEMS[grid_id])
                center = (geometry.GRID_CENTER, geometry.GRID_CENTER)
                payload = {"grid_id": grid_id, "grid": GRID_PROBLEMS[grid_id]}
            solution = random_solution(self.rng, initial, min_moves, center)
            final = geometry.apply_transforms(initial, solution, center)
            payload.update({"min_moves": min_moves, "final_points": _rounded(final)})
            answer = {
                "initial": initial,
                "final": final,
                "center": center,
                "min_moves": min_moves,
                "solution": solution,
            }
            problems.append((payload, answer))
        return problems

    def normalize_choice(self, player_choice: Any) -> List[str]:
        if isinstance(player_choice, str):
            moves = [m.strip() for m in player_choice.split(",") if m.strip()]
        else:
            moves = [str(m) for m in player_choice]
        for move in moves:
            if move not in geometry.INVERSE:
                raise ValueError(f"unknown transform: {move}")
        return moves

    def grade(self, answer: Any, choice: Any) -> bool:
        if len(choice) > answer["min_moves"]:
            return False
        moved = geometry.apply_transforms(answer["initial"], choice, answer["center"])
        return geometry.same_points(moved, answer["final"])

    def describe_answer(self, answer: Any) -> Any:
        return list(answer["solution"])
