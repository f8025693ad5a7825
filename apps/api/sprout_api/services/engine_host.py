"""Process-wide growth timing engine shared by the HTTP endpoints."""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Callable, Optional

from packages.sprout_core.growth import (
    EngineState,
    GrowthTimingEngine,
    InMemoryFeed,
    agent_feed,
    world_feed,
)

from ..storage.kv_store import get_store


logger = logging.getLogger("sprout_api.engine_host")


def _truthy_env(name: str, default: bool = False) -> bool:
    raw = str(os.environ.get(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


class EngineHost:
    def __init__(self, *, clock: Optional[Callable[[], float]] = None) -> None:
        self.lock = threading.RLock()
        self.world: InMemoryFeed[dict[str, Any]] = world_feed()
        self.agents: InMemoryFeed[list[Any]] = agent_feed()
        self.engine = GrowthTimingEngine(
            world_feed=self.world,
            agent_feed=self.agents,
            store=get_store(),
            clock=clock,
        )
        initial: dict[str, Any] = {}
        if _truthy_env("SPROUT_GROWTH_DISABLED"):
            initial["enabled"] = False
        self.engine.initialize(initial)

    def push_world(self, snapshot: dict[str, Any]) -> EngineState:
        with self.lock:
            self.world.publish(snapshot)
            return self.engine.get_state()

    def push_agents(self, agents: list[Any]) -> EngineState:
        with self.lock:
            self.agents.publish(agents)
            return self.engine.get_state()

    def close(self) -> None:
        with self.lock:
            self.engine.dispose()


_host: Optional[EngineHost] = None
_host_lock = threading.Lock()


def get_host() -> EngineHost:
    global _host
    with _host_lock:
        if _host is None:
            _host = EngineHost()
            logger.info("[GROWTH] Engine host started")
        return _host


def reset_engine_for_tests(clock: Optional[Callable[[], float]] = None) -> EngineHost:
    global _host
    with _host_lock:
        if _host is not None:
            _host.close()
        _host = EngineHost(clock=clock)
        return _host


def shutdown_host() -> None:
    global _host
    with _host_lock:
        if _host is not None:
            _host.close()
            _host = None
            logger.info("[GROWTH] Engine host stopped")
