"""Point-set geometry for the shape rotation game.

Shapes are kept as flat lists of segment endpoints (every two points make a
line), so any outline, whether an SVG letter or a set of grid cells, goes
through the same transform and comparison code.
"""
from __future__ import annotations

import math
import re
from typing import Iterable, List, Optional, Sequence, Tuple

Point = Tuple[float, float]

EPSILON = 1e-3
CURVE_SEGMENTS = 10
GRID_SIZE = 4
CELL_SIZE = 50
GRID_CENTER = GRID_SIZE * CELL_SIZE / 2

TRANSFORMS = ("rotate_left_45", "rotate_right_45", "flip_horizontal", "flip_vertical")
INVERSE = {
    "rotate_left_45": "rotate_right_45",
    "rotate_right_45": "rotate_left_45",
    "flip_horizontal": "flip_horizontal",
    "flip_vertical": "flip_vertical",
}

_COMMAND_RE = re.compile(r"([MLQCZ])([^MLQCZ]*)")


def _args(raw: str) -> List[float]:
    return [float(x) for x in raw.replace(",", " ").split()]


def _bezier(ctrl: Sequence[Point]) -> List[Point]:
    n = len(ctrl) - 1
    samples = []
    for step in range(CURVE_SEGMENTS + 1):
        t = step / CURVE_SEGMENTS
        x = y = 0.0
        for k, (px, py) in enumerate(ctrl):
            w = math.comb(n, k) * (1 - t) ** (n - k) * t ** k
            x += w * px
            y += w * py
        samples.append((x, y))
    segments: List[Point] = []
    for a, b in zip(samples, samples[1:]):
        segments.extend((a, b))
    return segments


def parse_svg_path(path_data: str) -> List[Point]:
    """M/L/Q/C/Z path data -> segment endpoints, curves tessellated."""
    points: List[Point] = []
    current: Point = (0.0, 0.0)
    start: Point = current
    for command, raw in _COMMAND_RE.findall(path_data):
        args = _args(raw)
        if command == "M":
            current = start = (args[0], args[1])
        elif command == "L":
            end = (args[0], args[1])
            points.extend((current, end))
            current = end
        elif command == "Q":
            end = (args[2], args[3])
            points.extend(_bezier([current, (args[0], args[1]), end]))
            current = end
        elif command == "C":
            end = (args[4], args[5])
            points.extend(_bezier([current, (args[0], args[1]), (args[2], args[3]), end]))
            current = end
        elif command == "Z":
            points.extend((current, start))
            current = start
    return points


def parse_grid(grid: str) -> List[Point]:
    """'0110/0110/...' -> the four border segments of every filled cell."""
    points: List[Point] = []
    for y, row in enumerate(grid.split("/")):
        for x, cell in enumerate(row):
            if cell != "1":
                continue
            left, top = float(x * CELL_SIZE), float(y * CELL_SIZE)
            right, bottom = left + CELL_SIZE, top + CELL_SIZE
            points.extend([
                (left, top), (right, top),
                (right, top), (right, bottom),
                (right, bottom), (left, bottom),
                (left, bottom), (left, top),
            ])
    return points


def centroid(points: Sequence[Point]) -> Point:
    if not points:
        return 0.0, 0.0
    return (
        sum(p[0] for p in points) / len(points),
        sum(p[1] for p in points) / len(points),
    )


def apply_transforms(
    points: Sequence[Point],
    transforms: Iterable[str],
    center: Optional[Point] = None,
) -> List[Point]:
    cx, cy = center if center is not None else centroid(points)
    moved = [(x - cx, y - cy) for x, y in points]
    for name in transforms:
        if name not in INVERSE:
            raise ValueError(f"unknown transform: {name}")
        if name.startswith("rotate"):
            angle = math.pi / 4 if name == "rotate_right_45" else -math.pi / 4
            cos_a, sin_a = math.cos(angle), math.sin(angle)
            moved = [(x * cos_a - y * sin_a, x * sin_a + y * cos_a) for x, y in moved]
        elif name == "flip_horizontal":
            moved = [(-x, y) for x, y in moved]
        else:
            moved = [(x, -y) for x, y in moved]
    return [(x + cx, y + cy) for x, y in moved]


def same_points(a: Sequence[Point], b: Sequence[Point]) -> bool:
    """Same multiset of points up to EPSILON, in any order."""
    if len(a) != len(b):
        return False
    unused = sorted(b)
    for ax, ay in sorted(a):
        for i, (bx, by) in enumerate(unused):
            if abs(ax - bx) <= EPSILON and abs(ay - by) <= EPSILON:
                del unused[i]
                break
        else:
            return False
    return True
