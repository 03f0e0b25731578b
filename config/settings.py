import os
from dataclasses import dataclass


@dataclass(frozen=True)
class TimerConfig:
    tick_ms: int = 100


@dataclass(frozen=True)
class SessionConfig:
    transport_retries: int = 1      # сколько повторов после сбоя gateway посреди сессии


@dataclass(frozen=True)
class GatewayConfig:
    base_url: str = ""              # пусто - работаем с in-memory gateway
    timeout_sec: float = 2.5

    @property
    def is_remote(self) -> bool:
        return bool(self.base_url.strip())


def load_gateway_config() -> GatewayConfig:
    base_url = os.getenv("COGTRIALS_GATEWAY_URL", "").strip()
    try:
        timeout_sec = float(os.getenv("COGTRIALS_GATEWAY_TIMEOUT", "2.5"))
    except ValueError:
        timeout_sec = 2.5
    return GatewayConfig(base_url=base_url, timeout_sec=max(0.5, timeout_sec))
