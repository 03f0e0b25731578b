import random
from typing import Dict, Optional, Type

from game.engines.base import EngineBase
from game.engines.cat_chaser import CatChaserEngine
from game.engines.count_comparison import CountComparisonEngine
from game.engines.nback import NBackEngine
from game.engines.number_pressing import NumberPressingEngine
from game.engines.rps import RpsEngine
from game.engines.shape_rotation import ShapeRotationEngine
from game.errors import ConfigurationError

ENGINE_REGISTRY: Dict[str, Type[EngineBase]] = {
    cls.game_code: cls
    for cls in (
        NBackEngine,
        ShapeRotationEngine,
        RpsEngine,
        NumberPressingEngine,
        CatChaserEngine,
        CountComparisonEngine,
    )
}

GAME_CODES = tuple(ENGINE_REGISTRY)


def create_engine(game_code: str, rng: Optional[random.Random] = None) -> EngineBase:
    try:
        engine_cls = ENGINE_REGISTRY[game_code]
    except KeyError:
        raise ConfigurationError(f"unknown game code: {game_code}") from None
    return engine_cls(rng)


__all__ = [
    "ENGINE_REGISTRY",
    "GAME_CODES",
    "create_engine",
    "EngineBase",
    "NBackEngine",
    "ShapeRotationEngine",
    "RpsEngine",
    "NumberPressingEngine",
    "CatChaserEngine",
    "CountComparisonEngine",
]
