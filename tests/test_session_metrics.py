import pytest

from data.models import TIMEOUT, TrialOutcome
from game.session_metrics import (
    compute_metrics,
    compute_round_stats,
    compute_total_score,
    summarize_session,
)


def outcome(index, correct, rt, round=1, score=None, choice="X"):
    return TrialOutcome(
        trial_index=index,
        round=round,
        player_choice=choice,
        correct_choice="X",
        is_correct=correct,
        response_time_ms=rt,
        score=score,
    )


def test_empty_outcomes_give_zeros():
    metrics = compute_metrics([])
    assert metrics.overall_accuracy == 0
    assert metrics.average_response_time_ms == 0


def test_half_correct():
    metrics = compute_metrics([outcome(0, True, 100), outcome(1, False, 300)])
    assert metrics.overall_accuracy == 50
    assert metrics.average_response_time_ms == 200


def test_does_not_mutate_and_is_repeatable():
    window = [outcome(0, True, 500), outcome(1, False, 2000, choice=TIMEOUT), outcome(2, False, 1200)]
    snapshot = list(window)
    first = compute_metrics(window)
    second = compute_metrics(window)
    assert first == second
    assert window == snapshot
    assert first.overall_accuracy == pytest.approx(100 / 3)
    assert first.average_response_time_ms == pytest.approx(3700 / 3)


def test_accepts_generators():
    metrics = compute_metrics(o for o in [outcome(0, True, 10)])
    assert metrics.overall_accuracy == 100


def test_round_stats_grouped_and_sorted():
    stats = compute_round_stats([
        outcome(0, True, 100, round=2),
        outcome(1, True, 300, round=1),
        outcome(2, False, 500, round=1),
    ])
    assert [s.round for s in stats] == [1, 2]
    assert stats[0].trials == 2
    assert stats[0].accuracy == 50
    assert stats[0].average_response_time_ms == 400
    assert stats[1].accuracy == 100


def test_total_score_only_when_reported():
    assert compute_total_score([outcome(0, True, 1)]) is None
    assert compute_total_score([outcome(0, True, 1, score=2.0), outcome(1, False, 1, score=-0.5)]) == 1.5


def test_summary_combines_everything():
    summary = summarize_session([outcome(0, True, 100, score=1.0), outcome(1, False, 300, round=2, score=-1.0)])
    assert summary.overall_accuracy == 50
    assert len(summary.round_stats) == 2
    assert summary.total_score == 0.0
