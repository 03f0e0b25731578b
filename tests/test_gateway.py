import asyncio

import pytest

from data.gateway import InMemoryGateway, utc_now_iso, validate_page
from data.models import GameSettings
from game.engines.rps import correct_choice
from game.errors import ConfigurationError, SessionNotFoundError, StaleSubmissionError


def start_many(gateway, count):
    async def scenario():
        return [await gateway.start_game("RPS", GameSettings(round_count=2)) for _ in range(count)]

    return asyncio.run(scenario())


def test_pagination_past_the_end_keeps_total(gateway):
    start_many(gateway, 12)
    page = asyncio.run(gateway.get_paginated_sessions_with_results(5, 10))
    assert page.sessions == ()
    assert page.total_count == 12


def test_pagination_newest_first(gateway):
    started = start_many(gateway, 12)
    first = asyncio.run(gateway.get_paginated_sessions_with_results(1, 10))
    second = asyncio.run(gateway.get_paginated_sessions_with_results(2, 10))
    assert len(first.sessions) == 10
    assert len(second.sessions) == 2
    ids = [s.session_id for s in first.sessions + second.sessions]
    assert ids == sorted((s.session_id for s in started), reverse=True)
    stamps = [s.play_datetime for s in first.sessions]
    assert stamps == sorted(stamps, reverse=True)


@pytest.mark.parametrize("page, limit", [(0, 10), (-1, 10), (1, 0)])
def test_invalid_page_rejected(gateway, page, limit):
    with pytest.raises(ConfigurationError):
        asyncio.run(gateway.get_paginated_sessions_with_results(page, limit))


def test_validate_page_accepts_first_page():
    validate_page(1, 1)


def test_records_carry_results_and_stats(gateway):
    async def scenario():
        started = await gateway.start_game("RPS", GameSettings(round_count=2))
        sid = started.session_id
        problem = started.first_problem
        await gateway.submit_answer(sid, 0, correct_choice(problem.payload["card"], problem.payload["holder"]), 400)
        await gateway.submit_answer(sid, 1, "NOT_A_CARD", 800)
        assert await gateway.get_next_problem(sid) is None
        page = await gateway.get_paginated_sessions_with_results(1, 10)
        stats = await gateway.get_session_stats(sid)
        return page, stats

    page, stats = asyncio.run(scenario())
    record = page.sessions[0]
    assert record.game_code == "RPS"
    assert record.settings.round_count == 2
    assert [r.trial_index for r in record.results] == [0, 1]
    assert stats.overall_accuracy == 50
    assert stats.average_response_time_ms == 600


def test_unknown_session(gateway):
    with pytest.raises(SessionNotFoundError):
        asyncio.run(gateway.get_next_problem(99))
    with pytest.raises(SessionNotFoundError):
        asyncio.run(gateway.get_session_stats(99))
    with pytest.raises(StaleSubmissionError):
        asyncio.run(gateway.submit_answer(99, 0, "ROCK", 10))


def test_unknown_game(gateway):
    with pytest.raises(ConfigurationError):
        asyncio.run(gateway.start_game("TETRIS", GameSettings(round_count=1)))


def test_seeded_gateways_are_reproducible():
    a = start_many(InMemoryGateway(seed=3), 1)[0]
    b = start_many(InMemoryGateway(seed=3), 1)[0]
    assert a.first_problem == b.first_problem


def test_timestamps_sort_as_text():
    stamp = utc_now_iso()
    assert stamp.endswith("Z")
    assert "." in stamp
