#!/usr/bin/env python3

from __future__ import annotations

import unittest
from typing import Any

from packages.sprout_core.growth import (
    DEFAULT_CONFIG,
    GrowthTimingEngine,
    KeyValueStore,
    MemoryKeyValueStore,
    agent_feed,
    merge_config,
    world_feed,
)
from packages.sprout_core.growth.completion_log import COMPLETION_LOG_KEY, MAX_LOG_ENTRIES
from packages.sprout_core.growth.overrides import MANUAL_OVERRIDES_STORAGE_KEY


NOW = 1_700_000_000_000.0
TEN_MINUTES_MS = 600_000.0


class _BrokenStore(KeyValueStore):
    def get(self, key: str, default: Any = None) -> Any:
        raise OSError("disk unavailable")

    def set(self, key: str, value: Any) -> None:
        raise OSError("disk unavailable")


class _Clock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _garden(plant_end: float = NOW + TEN_MINUTES_MS, egg_end: float | None = None) -> dict:
    primary: dict[str, Any] = {"10": {"objectType": "plant", "species": "Carrot", "slots": [{"endTime": plant_end}]}}
    if egg_end is not None:
        primary["20"] = {"objectType": "egg", "eggId": "CommonEgg", "endTime": egg_end}
    return {"primaryAreaObjects": primary}


def _booster(**extra) -> dict:
    agent = {"petId": "t1", "slotIndex": 0, "name": "Shelly", "hungerPct": 80, "strength": 100, "abilities": ["Plant Growth Boost"]}
    agent.update(extra)
    return agent


class GrowthEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _Clock()
        self.store = MemoryKeyValueStore()
        self.world = world_feed(_garden())
        self.agents = agent_feed([])
        self.engine = GrowthTimingEngine(
            world_feed=self.world,
            agent_feed=self.agents,
            store=self.store,
            clock=self.clock,
        )
        self.engine.initialize()

    def tearDown(self) -> None:
        self.engine.dispose()

    def test_disabled_engine_ignores_inputs(self) -> None:
        self.agents.publish([_booster()])
        state = self.engine.set_enabled(False)

        self.assertFalse(state.enabled)
        self.assertEqual(state.plant.status, "disabled")
        self.assertEqual(state.egg.status, "disabled")
        self.assertIsNone(state.plant.focus_slot)
        self.assertIsNone(state.egg.focus_slot)

        self.world.publish(_garden(egg_end=NOW + TEN_MINUTES_MS))
        self.assertEqual(self.engine.get_state().plant.status, "disabled")

    def test_initialize_is_idempotent(self) -> None:
        self.engine.initialize()
        self.assertEqual(self.world.listener_count(), 1)
        self.assertEqual(self.agents.listener_count(), 1)

    def test_initial_config_applies_on_first_initialize(self) -> None:
        engine = GrowthTimingEngine(world_feed=world_feed(_garden()), clock=self.clock)
        engine.initialize({"enabled": False, "minActiveHungerPct": 10})
        self.assertFalse(engine.config.enabled)
        self.assertEqual(engine.config.min_active_hunger_pct, 10)
        engine.dispose()

    def test_no_boosters_reports_natural_time(self) -> None:
        state = self.engine.get_state()
        self.assertEqual(state.plant.status, "no-turtles")
        self.assertEqual(state.plant.natural_ms_remaining, TEN_MINUTES_MS)
        self.assertEqual(state.plant.adjusted_ms_remaining, TEN_MINUTES_MS)
        self.assertEqual(state.egg.status, "no-data")

    def test_agent_feed_push_recomputes(self) -> None:
        seen = []
        self.engine.subscribe(seen.append, fire_immediately=False)
        self.agents.publish([_booster()])

        self.assertEqual(len(seen), 1)
        state = seen[0]
        self.assertIs(state, self.engine.get_state())
        self.assertEqual(state.plant.status, "estimating")
        self.assertLess(state.plant.adjusted_ms_remaining, TEN_MINUTES_MS)
        self.assertEqual(state.available_turtles, 1)
        self.assertEqual(len(state.plant.contributions), 1)

    def test_eggs_and_plants_are_split(self) -> None:
        self.world.publish(_garden(egg_end=NOW + 2 * TEN_MINUTES_MS))
        self.agents.publish(
            [
                _booster(),
                {"petId": "t2", "slotIndex": 1, "strength": 80, "abilities": ["Egg Growth Boost II"]},
            ]
        )
        state = self.engine.get_state()

        self.assertEqual(state.plant.status, "estimating")
        self.assertEqual(state.egg.status, "estimating")
        self.assertEqual(state.egg.focus_slot.slot.tile_id, "20")
        self.assertEqual([t.key for t in state.egg_targets], ["20::0"])
        self.assertEqual([t.key for t in state.plant_targets], ["10::0"])
        self.assertEqual(state.available_turtles, 2)

    def test_hungry_pets_are_filtered(self) -> None:
        self.agents.publish([_booster(hungerPct=2)])
        state = self.engine.get_state()

        self.assertEqual(state.plant.status, "no-turtles")
        self.assertEqual(state.available_turtles, 1)
        self.assertEqual(state.hunger_filtered_count, 1)

    def test_missing_stats_are_counted(self) -> None:
        self.agents.publish([{"petId": "t9", "slotIndex": 0, "abilities": ["PlantGrowthBoost"]}])
        state = self.engine.get_state()
        self.assertEqual(state.turtles_missing_stats, 1)
        self.assertEqual(state.plant.contributions[0].target_scale, DEFAULT_CONFIG.fallback_target_scale)

    def test_recompute_is_deterministic_for_fixed_clock(self) -> None:
        self.agents.publish([_booster()])
        first = self.engine.force_recompute()
        second = self.engine.force_recompute()
        self.assertEqual(first.as_dict(), second.as_dict())
        self.assertIsNot(first, second)

    def test_specific_focus_without_match_is_no_data(self) -> None:
        self.agents.publish([_booster()])
        state = self.engine.configure({"focus": "specific", "focusTargetTileId": "99", "focusTargetSlotIndex": 3})

        self.assertEqual(state.plant.status, "no-data")
        self.assertEqual(state.focus_target_key, "99::3")
        self.assertFalse(state.focus_target_available)

        state = self.engine.configure({"focusTargetTileId": "10", "focusTargetSlotIndex": 0})
        self.assertEqual(state.plant.status, "estimating")
        self.assertTrue(state.focus_target_available)

    def test_boardwalk_toggle(self) -> None:
        self.world.publish({"secondaryAreaObjects": {"7": {"species": "Lily", "endTime": NOW + TEN_MINUTES_MS}}})
        self.assertEqual(self.engine.get_state().plant.tracked_slots, 1)
        state = self.engine.configure({"includeBoardwalk": False})
        self.assertEqual(state.plant.status, "no-data")
        self.assertFalse(state.include_boardwalk)

    def test_listener_errors_do_not_block_others(self) -> None:
        received = []

        def broken(_state) -> None:
            raise RuntimeError("boom")

        self.engine.subscribe(broken, fire_immediately=False)
        self.engine.subscribe(received.append, fire_immediately=False)
        with self.assertLogs("sprout_core.growth.engine", level="ERROR"):
            self.engine.force_recompute()
        self.assertEqual(len(received), 1)

    def test_subscribe_fires_immediately_and_unsubscribes(self) -> None:
        received = []
        unsubscribe = self.engine.subscribe(received.append)
        self.assertEqual(len(received), 1)
        unsubscribe()
        self.engine.force_recompute()
        self.assertEqual(len(received), 1)

    def test_listener_removed_mid_delivery_is_skipped(self) -> None:
        received = []
        handles = {}

        def first(_state) -> None:
            handles["second"]()

        handles["first"] = self.engine.subscribe(first, fire_immediately=False)
        handles["second"] = self.engine.subscribe(received.append, fire_immediately=False)
        self.engine.force_recompute()
        self.assertEqual(received, [])

    def test_dispose_unsubscribes_feeds(self) -> None:
        self.engine.dispose()
        self.assertEqual(self.world.listener_count(), 0)
        self.assertEqual(self.agents.listener_count(), 0)
        self.assertFalse(self.engine.initialized)

    def test_dispose_resets_to_empty_state(self) -> None:
        self.agents.publish([_booster()])
        self.assertEqual(self.engine.get_state().plant.status, "estimating")

        self.engine.dispose()
        state = self.engine.get_state()
        self.assertEqual(state.plant.status, "no-data")
        self.assertEqual(state.egg.status, "no-data")
        self.assertEqual(state.plant.contributions, ())
        self.assertIsNone(state.plant.focus_slot)
        self.assertEqual(state.plant_targets, ())
        self.assertEqual(state.available_turtles, 0)
        self.assertEqual(state.support.entries, ())


class ManualOverrideEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _Clock()
        self.store = MemoryKeyValueStore()
        self.agents = agent_feed([{"petId": "t1", "slotIndex": 0, "hungerPct": 50, "abilities": ["PlantGrowthBoost"]}])
        self.engine = GrowthTimingEngine(
            world_feed=world_feed(_garden()),
            agent_feed=self.agents,
            store=self.store,
            clock=self.clock,
        )
        self.engine.initialize()

    def tearDown(self) -> None:
        self.engine.dispose()

    def test_override_supplies_missing_strength_and_persists(self) -> None:
        before = self.engine.get_state().plant.contributions[0].base_score
        saved = self.engine.set_manual_override({"petId": "t1"}, {"strength": 100})
        after = self.engine.get_state().plant.contributions[0]

        self.assertEqual(saved.strength, 100)
        self.assertNotEqual(before, after.base_score)
        self.assertEqual(after.base_score, 100)
        self.assertFalse(after.missing_stats)
        self.assertEqual(self.store.get(MANUAL_OVERRIDES_STORAGE_KEY), {"pet:t1": {"strength": 100.0}})

    def test_live_strength_beats_override(self) -> None:
        self.engine.set_manual_override({"petId": "t1"}, {"strength": 100})
        self.agents.publish([{"petId": "t1", "slotIndex": 0, "strength": 30, "abilities": ["PlantGrowthBoost"]}])
        self.assertEqual(self.engine.get_state().plant.contributions[0].base_score, 30)

    def test_clear_single_field_then_all(self) -> None:
        self.engine.set_manual_override({"petId": "t1"}, {"strength": 70, "targetScale": 2.0})
        self.engine.clear_manual_override({"petId": "t1"}, "strength")
        self.assertEqual(self.engine.get_manual_override({"petId": "t1"}).as_dict(), {"targetScale": 2.0})

        self.engine.clear_manual_override({"petId": "t1"})
        self.assertIsNone(self.engine.get_manual_override({"petId": "t1"}))
        self.assertEqual(self.store.get(MANUAL_OVERRIDES_STORAGE_KEY), {})

    def test_overrides_survive_restart(self) -> None:
        self.engine.set_manual_override({"petId": "t1"}, {"xp": 1000})
        restarted = GrowthTimingEngine(store=self.store, clock=self.clock)
        restarted.initialize()
        self.assertEqual(restarted.get_manual_override({"petId": "t1"}).xp, 1000)

    def test_unusable_agent_reference_raises(self) -> None:
        with self.assertRaises(ValueError):
            self.engine.set_manual_override("t1", {"xp": 1})  # type: ignore[arg-type]

    def test_persistence_failures_are_not_fatal(self) -> None:
        engine = GrowthTimingEngine(agent_feed=self.agents, store=_BrokenStore(), clock=self.clock)
        with self.assertLogs("sprout_core.growth", level="WARNING"):
            engine.initialize()
            saved = engine.set_manual_override({"petId": "t1"}, {"strength": 55})
        self.assertEqual(saved.strength, 55)
        self.assertEqual(engine.get_manual_override({"petId": "t1"}).strength, 55)
        engine.dispose()


class CompletionLogEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _Clock()
        self.store = MemoryKeyValueStore()
        self.engine = GrowthTimingEngine(store=self.store, clock=self.clock)
        self.engine.initialize()

    def test_start_then_completion_records_entry(self) -> None:
        self.engine.record_slot_start("10", 0, "plant", "Carrot", 300_000)
        self.clock.now += 250_000
        entry = self.engine.record_slot_completion("10", 0, had_turtles=True)

        self.assertIsNotNone(entry)
        self.assertEqual(entry.actual_duration, 250_000)
        self.assertEqual(entry.estimated_duration, 300_000)
        self.assertTrue(entry.had_turtles)
        self.assertEqual(len(self.engine.get_completion_log()), 1)
        self.assertEqual(len(self.store.get(COMPLETION_LOG_KEY)), 1)
        self.assertEqual(self.store.get(COMPLETION_LOG_KEY)[0]["tileId"], "10")

    def test_snake_case_entries_still_load(self) -> None:
        store = MemoryKeyValueStore()
        store.set(
            COMPLETION_LOG_KEY,
            [
                {
                    "id": "10:0:1",
                    "type": "plant",
                    "species": "Carrot",
                    "tile_id": "10",
                    "slot_index": 0,
                    "started_at": 0,
                    "completed_at": 1,
                    "estimated_duration": 2,
                    "actual_duration": 1,
                    "had_turtles": True,
                }
            ],
        )
        engine = GrowthTimingEngine(store=store, clock=self.clock)
        engine.initialize()
        entries = engine.get_completion_log()
        engine.dispose()

        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].tile_id, "10")
        self.assertTrue(entries[0].had_turtles)

    def test_completion_without_start_is_ignored(self) -> None:
        self.assertIsNone(self.engine.record_slot_completion("10", 0, had_turtles=False))
        self.assertEqual(self.engine.get_completion_log(), [])

    def test_log_is_capped_and_clearable(self) -> None:
        for i in range(MAX_LOG_ENTRIES + 5):
            self.engine.record_slot_start(str(i), 0, "egg", "CommonEgg", 1000)
            self.clock.now += 1
            self.engine.record_slot_completion(str(i), 0, had_turtles=False)

        entries = self.engine.get_completion_log()
        self.assertEqual(len(entries), MAX_LOG_ENTRIES)
        self.assertEqual(entries[0].tile_id, "5")

        self.engine.clear_completion_log()
        self.assertEqual(self.engine.get_completion_log(), [])
        self.assertEqual(self.store.get(COMPLETION_LOG_KEY), [])


class ConfigMergeTests(unittest.TestCase):
    def test_halves_round_up(self) -> None:
        merged = merge_config(
            DEFAULT_CONFIG,
            {"minActiveHungerPct": 2.5, "focusTargetSlotIndex": 0.5, "eggFocusTargetSlotIndex": 2.5},
        )
        self.assertEqual(merged.min_active_hunger_pct, 3)
        self.assertEqual(merged.focus_target_slot_index, 1)
        self.assertEqual(merged.egg_focus_target_slot_index, 3)

    def test_wrong_types_are_ignored(self) -> None:
        merged = merge_config(DEFAULT_CONFIG, {"enabled": "no", "focus": "sometimes", "minActiveHungerPct": "5"})
        self.assertEqual(merged, DEFAULT_CONFIG)

    def test_numbers_are_clamped(self) -> None:
        merged = merge_config(DEFAULT_CONFIG, {"minActiveHungerPct": 140.6, "fallbackTargetScale": 9})
        self.assertEqual(merged.min_active_hunger_pct, 100)
        self.assertEqual(merged.fallback_target_scale, 2.5)

        merged = merge_config(DEFAULT_CONFIG, {"min_active_hunger_pct": -3, "fallback_target_scale": 0.1})
        self.assertEqual(merged.min_active_hunger_pct, 0)
        self.assertEqual(merged.fallback_target_scale, 1.0)

    def test_focus_targets_accept_none_to_clear(self) -> None:
        merged = merge_config(DEFAULT_CONFIG, {"eggFocus": "specific", "eggFocusTargetTileId": "4", "eggFocusTargetSlotIndex": 2.4})
        self.assertEqual((merged.egg_focus, merged.egg_focus_target_tile_id, merged.egg_focus_target_slot_index), ("specific", "4", 2))

        cleared = merge_config(merged, {"eggFocusTargetTileId": None, "eggFocusTargetSlotIndex": None})
        self.assertIsNone(cleared.egg_focus_target_tile_id)
        self.assertIsNone(cleared.egg_focus_target_slot_index)
        self.assertEqual(cleared.egg_focus, "specific")


if __name__ == "__main__":
    unittest.main()
