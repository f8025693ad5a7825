"""Reactive growth timing engine: snapshots in, immutable estimates out."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Optional, Union

from .agents import AgentInfo, parse_agents
from .channels import build_focus_options, compute_channel, egg_species, plant_species
from .completion_log import CompletionLog, CompletionLogEntry
from .config import DEFAULT_CONFIG, GrowthTimerConfig, merge_config
from .feeds import SnapshotFeed, Unsubscribe
from .overrides import ManualOverride, ManualOverrideStore
from .persistence import KeyValueStore, MemoryKeyValueStore
from .scoring import ABILITY_CONFIGS, Contribution, compute_contribution, matching_abilities, resolve_agent_stats
from .slots import EggClassifier, collect_slots, diagnose_slots, is_egg_slot, make_focus_key, split_slots
from .state import EngineState, disabled_state, initial_state
from .support import SupportEntry, build_support_entries, summarize_support


logger = logging.getLogger("sprout_core.growth.engine")

StateListener = Callable[[EngineState], None]
AgentRef = Union[AgentInfo, Mapping[str, Any]]


def _now_ms() -> float:
    return time.time() * 1000.0


class GrowthTimingEngine:
    """Owns the current :class:`EngineState` and the subscribers to it.

    Recomputes run synchronously whenever the world or agent feed pushes, the
    configuration changes, a manual override is edited, or
    :meth:`force_recompute` is called. Published states are frozen and are
    replaced wholesale on every recompute.
    """

    def __init__(
        self,
        *,
        world_feed: Optional[SnapshotFeed[Any]] = None,
        agent_feed: Optional[SnapshotFeed[Any]] = None,
        store: Optional[KeyValueStore] = None,
        clock: Optional[Callable[[], float]] = None,
        egg_classifier: EggClassifier = is_egg_slot,
        config: GrowthTimerConfig = DEFAULT_CONFIG,
    ) -> None:
        self._world_feed = world_feed
        self._agent_feed = agent_feed
        self._store = store if store is not None else MemoryKeyValueStore()
        self._clock = clock or _now_ms
        self._egg_classifier = egg_classifier
        self._config = config
        self._overrides = ManualOverrideStore(self._store)
        self._completion_log = CompletionLog(self._store)
        self._initialized = False
        self._unsubscribers: list[Unsubscribe] = []
        self._listeners: list[StateListener] = []
        self._latest_world: Any = None
        self._latest_agents: Any = []
        self._state = initial_state(self._config, self._clock())

    @property
    def config(self) -> GrowthTimerConfig:
        return self._config

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self, initial_config: Optional[Mapping[str, Any]] = None) -> None:
        if self._initialized:
            if initial_config:
                self.configure(initial_config)
            return
        self._initialized = True
        self._overrides.load()
        self._completion_log.load()
        self._config = merge_config(self._config, initial_config)

        if self._world_feed is not None:
            self._latest_world = self._world_feed.snapshot()
            self._unsubscribers.append(self._world_feed.subscribe(self._on_world_snapshot))
        if self._agent_feed is not None:
            self._latest_agents = self._agent_feed.snapshot()
            self._unsubscribers.append(self._agent_feed.subscribe(self._on_agent_snapshot))

        self._recompute()
        logger.info("[GROWTH] Growth timer ready: enabled=%s", self._config.enabled)

    def dispose(self) -> None:
        for unsubscribe in self._unsubscribers:
            try:
                unsubscribe()
            except Exception:
                logger.warning("[GROWTH] Feed unsubscribe failed", exc_info=True)
        self._unsubscribers = []
        self._initialized = False
        self._state = initial_state(self._config, self._clock())

    def configure(self, partial: Mapping[str, Any]) -> EngineState:
        self._config = merge_config(self._config, partial)
        return self._recompute()

    def set_enabled(self, enabled: bool) -> EngineState:
        return self.configure({"enabled": bool(enabled)})

    def force_recompute(self) -> EngineState:
        return self._recompute()

    def get_state(self) -> EngineState:
        return self._state

    def subscribe(self, listener: StateListener, fire_immediately: bool = True) -> Unsubscribe:
        self._listeners.append(listener)
        if fire_immediately:
            try:
                listener(self._state)
            except Exception:
                logger.exception("[GROWTH] Immediate state listener failed")

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # Manual overrides

    def get_manual_override(self, agent: AgentRef) -> Optional[ManualOverride]:
        return self._overrides.get(self._coerce_agent(agent))

    def set_manual_override(self, agent: AgentRef, partial: Mapping[str, Any]) -> ManualOverride:
        saved = self._overrides.set(self._coerce_agent(agent), partial)
        self._recompute()
        return saved

    def clear_manual_override(self, agent: AgentRef, field_name: Optional[str] = None) -> None:
        if self._overrides.clear(self._coerce_agent(agent), field_name):
            self._recompute()

    # Completion log

    def get_completion_log(self) -> list[CompletionLogEntry]:
        return self._completion_log.entries()

    def clear_completion_log(self) -> None:
        self._completion_log.clear()

    def record_slot_start(
        self,
        tile_id: str,
        slot_index: int,
        kind: str,
        species: str,
        estimated_ms: float,
    ) -> None:
        self._completion_log.track_start(tile_id, slot_index, kind, species, estimated_ms, self._clock())

    def record_slot_completion(self, tile_id: str, slot_index: int, had_turtles: bool) -> Optional[CompletionLogEntry]:
        return self._completion_log.track_completion(tile_id, slot_index, had_turtles, self._clock())

    def diagnose_slots(self, *, tile_id: Optional[str] = None, limit: Optional[int] = None) -> list[dict[str, Any]]:
        rows = diagnose_slots(
            self._latest_world,
            self._config.include_boardwalk,
            tile_id=tile_id,
            classifier=self._egg_classifier,
        )
        egg_count = sum(1 for row in rows if row["isEgg"])
        logger.info(
            "[GROWTH] Egg detection snapshot: total=%d eggs=%d include_boardwalk=%s tile_id=%s",
            len(rows),
            egg_count,
            self._config.include_boardwalk,
            tile_id,
        )
        if limit is not None:
            rows = rows[: max(1, int(limit))]
        return rows

    # Internals

    @staticmethod
    def _coerce_agent(agent: AgentRef) -> AgentInfo:
        if isinstance(agent, AgentInfo):
            return agent
        parsed = AgentInfo.from_raw(agent)
        if parsed is None:
            raise ValueError("agent must be an AgentInfo or a mapping")
        return parsed

    def _on_world_snapshot(self, snapshot: Any) -> None:
        self._latest_world = snapshot
        self._recompute()

    def _on_agent_snapshot(self, agents: Any) -> None:
        self._latest_agents = agents
        self._recompute()

    def _publish(self, state: EngineState) -> EngineState:
        self._state = state
        for listener in list(self._listeners):
            if listener not in self._listeners:
                continue
            try:
                listener(state)
            except Exception:
                logger.exception("[GROWTH] State listener failed")
        return state

    def _recompute(self) -> EngineState:
        now = float(self._clock())
        config = self._config
        if not config.enabled:
            return self._publish(disabled_state(config, now))

        slots = collect_slots(self._latest_world, config.include_boardwalk)
        plant_slots, egg_slots = split_slots(slots, self._egg_classifier)

        contributions: dict[str, list[Contribution]] = {"plant": [], "egg": []}
        support_entries: list[SupportEntry] = []
        available: set[str] = set()
        hunger_filtered: set[str] = set()
        missing_stats: set[str] = set()

        for agent in parse_agents(self._latest_agents):
            if not agent.abilities:
                continue
            key = agent.identity
            hunger_ok = agent.hunger_pct is None or agent.hunger_pct > config.min_active_hunger_pct
            stats = resolve_agent_stats(agent, self._overrides.get(agent), config)

            matched_boost = False
            for ability in ABILITY_CONFIGS:
                matches = matching_abilities(agent, ability.patterns)
                if not matches:
                    continue
                matched_boost = True
                available.add(key)
                if not hunger_ok:
                    hunger_filtered.add(key)
                    continue
                contribution = compute_contribution(agent, ability, matches, stats)
                if contribution.missing_stats:
                    missing_stats.add(key)
                if contribution.rate_contribution <= 0:
                    continue
                contributions[ability.kind].append(contribution)

            support_entries.extend(build_support_entries(agent, stats, hunger_ok))
            if not matched_boost and not hunger_ok:
                hunger_filtered.add(key)

        plant_channel = compute_channel("plant", plant_slots, contributions["plant"], now, config.plant_focus)
        egg_channel = compute_channel("egg", egg_slots, contributions["egg"], now, config.egg_focus_selection)
        plant_targets = build_focus_options(plant_slots, now, plant_species)
        egg_targets = build_focus_options(egg_slots, now, egg_species)
        focus_key = make_focus_key(config.focus_target_tile_id, config.focus_target_slot_index)
        egg_focus_key = make_focus_key(config.egg_focus_target_tile_id, config.egg_focus_target_slot_index)

        return self._publish(
            EngineState(
                enabled=True,
                now=now,
                include_boardwalk=config.include_boardwalk,
                focus=config.focus,
                focus_target_key=focus_key,
                focus_target_available=focus_key is not None and any(t.key == focus_key for t in plant_targets),
                egg_focus=config.egg_focus,
                egg_focus_target_key=egg_focus_key,
                egg_focus_target_available=egg_focus_key is not None and any(t.key == egg_focus_key for t in egg_targets),
                min_active_hunger_pct=config.min_active_hunger_pct,
                fallback_target_scale=config.fallback_target_scale,
                available_turtles=len(available),
                hunger_filtered_count=len(hunger_filtered),
                turtles_missing_stats=len(missing_stats),
                plant=plant_channel,
                plant_targets=plant_targets,
                egg=egg_channel,
                egg_targets=egg_targets,
                support=summarize_support(support_entries),
            )
        )
