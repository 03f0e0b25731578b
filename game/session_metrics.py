from __future__ import annotations

from typing import Iterable, Sequence

from data.models import RoundStats, SessionMetrics, TrialOutcome


def game_title(game_code: str) -> str:
    return {
        "N_BACK": "Pattern memory",
        "SHAPE_ROTATION": "Shape rotation",
        "RPS": "Rock-paper-scissors",
        "NUMBER_PRESSING": "Number pressing",
        "CAT_CHASER": "Cat chaser",
        "COUNT_COMPARISON": "Count comparison",
    }.get(game_code, game_code)


def _accuracy(outcomes: Sequence[TrialOutcome]) -> float:
    if not outcomes:
        return 0.0
    return 100.0 * sum(1 for o in outcomes if o.is_correct) / len(outcomes)


def _mean_rt(outcomes: Sequence[TrialOutcome]) -> float:
    if not outcomes:
        return 0.0
    return sum(o.response_time_ms for o in outcomes) / len(outcomes)


def compute_metrics(outcomes: Iterable[TrialOutcome]) -> SessionMetrics:
    window = list(outcomes)
    return SessionMetrics(
        overall_accuracy=_accuracy(window),
        average_response_time_ms=_mean_rt(window),
    )


def compute_round_stats(outcomes: Iterable[TrialOutcome]) -> tuple[RoundStats, ...]:
    by_round: dict[int, list[TrialOutcome]] = {}
    for outcome in outcomes:
        by_round.setdefault(outcome.round, []).append(outcome)
    return tuple(
        RoundStats(
            round=number,
            trials=len(items),
            accuracy=_accuracy(items),
            average_response_time_ms=_mean_rt(items),
        )
        for number, items in sorted(by_round.items())
    )


def compute_total_score(outcomes: Iterable[TrialOutcome]) -> float | None:
    scores = [o.score for o in outcomes if o.score is not None]
    if not scores:
        return None
    return sum(scores)


def summarize_session(outcomes: Iterable[TrialOutcome]) -> SessionMetrics:
    window = list(outcomes)
    base = compute_metrics(window)
    return SessionMetrics(
        overall_accuracy=base.overall_accuracy,
        average_response_time_ms=base.average_response_time_ms,
        round_stats=compute_round_stats(window),
        total_score=compute_total_score(window),
    )
