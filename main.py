import argparse
import asyncio
import logging
import random

from config.settings import SessionConfig, load_gateway_config
from data.gateway import InMemoryGateway
from data.gateway_client import RemoteGateway
from data.models import MODE_PLAYING, GameSettings, Problem
from game.engines import ENGINE_REGISTRY, GAME_CODES
from game.engines.geometry import TRANSFORMS
from game.session_metrics import game_title, summarize_session
from game.session_store import SessionStore
from game.timer import ManualScheduler


def guess(game_code: str, problem: Problem, rng: random.Random):
    """Случайный, но допустимый ответ для автоигры."""
    if game_code == "NUMBER_PRESSING":
        if "target_number" in problem.payload:
            return [rng.randint(1, 9)]
        return list(range(1, 10))
    if game_code == "SHAPE_ROTATION":
        return [rng.choice(TRANSFORMS) for _ in range(problem.payload.get("min_moves", 1))]
    return rng.choice(ENGINE_REGISTRY[game_code].choices)


async def autoplay(store: SessionStore, scheduler: ManualScheduler, game_code: str, settings: GameSettings, seed: int) -> None:
    rng = random.Random(seed)
    if not await store.start_game(game_code, settings):
        print(f"Start failed: {store.error}")
        return

    while store.game_mode == MODE_PLAYING:
        if store.can_retry:
            await store.retry_pending()
            continue
        trial = store.current_trial
        limit = trial.problem.time_limit_ms
        think_ms = rng.randint(200, int(limit * 1.2)) if limit else rng.randint(200, 1500)
        # время идёт виртуально: если не успели, сработает таймаут
        scheduler.advance(think_ms)
        await store.wait_idle()
        if store.game_mode == MODE_PLAYING and store.current_trial is trial and trial.outcome is None:
            confidence = rng.randint(1, 4) if game_code == "CAT_CHASER" else None
            await store.submit_answer(guess(game_code, trial.problem, rng), think_ms, confidence)


def run_play(args: argparse.Namespace) -> None:
    gateway_config = load_gateway_config()
    base_url = args.gateway_url or gateway_config.base_url
    if base_url:
        gateway = RemoteGateway(base_url, timeout_sec=gateway_config.timeout_sec)
    else:
        gateway = InMemoryGateway(seed=args.seed)

    scheduler = ManualScheduler()
    store = SessionStore(gateway, scheduler=scheduler, config=SessionConfig())
    settings = GameSettings(
        round_count=args.rounds,
        time_limit_ms=args.time_limit_ms,
        level=args.level,
    )
    asyncio.run(autoplay(store, scheduler, args.game, settings, args.seed))

    print(f"{game_title(args.game)}: session {store.session_id}, mode {store.game_mode}")
    for outcome in store.results:
        print(
            outcome.trial_index,
            outcome.round,
            outcome.player_choice,
            outcome.is_correct,
            outcome.response_time_ms,
        )
    stats = summarize_session(store.results)
    print(f"accuracy={stats.overall_accuracy:.2f}% mean_rt={stats.average_response_time_ms:.1f}ms")
    if store.display_error:
        print(f"warning: {store.display_error}")


def run_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("backend.app.api:create_app", factory=True, host=args.host, port=args.port)


def main() -> None:
    parser = argparse.ArgumentParser(description="Timed cognitive trial games")
    sub = parser.add_subparsers(dest="command", required=True)

    play = sub.add_parser("play", help="auto-play one session and print the results")
    play.add_argument("--game", choices=GAME_CODES, default="N_BACK")
    play.add_argument("--rounds", type=int, default=10)
    play.add_argument("--time-limit-ms", type=int, default=2000)
    play.add_argument("--level", type=int, default=1)
    play.add_argument("--seed", type=int, default=1)
    play.add_argument("--gateway-url", default="", help="remote sessions API, in-memory when empty")
    play.set_defaults(func=run_play)

    serve = sub.add_parser("serve", help="run the sessions API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=run_serve)

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args.func(args)


if __name__ == "__main__":
    main()
