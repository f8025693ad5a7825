#!/usr/bin/env python3

from __future__ import annotations

import unittest

from packages.sprout_core.growth import InMemoryFeed, MemoryKeyValueStore, agent_feed, world_feed


class InMemoryFeedTests(unittest.TestCase):
    def test_publish_updates_snapshot_and_notifies(self) -> None:
        feed = InMemoryFeed(0, name="counter")
        seen = []
        unsubscribe = feed.subscribe(seen.append)

        feed.publish(3)
        self.assertEqual(feed.snapshot(), 3)
        self.assertEqual(seen, [3])

        unsubscribe()
        feed.publish(4)
        self.assertEqual(seen, [3])
        self.assertEqual(feed.listener_count(), 0)

    def test_failing_listener_is_isolated(self) -> None:
        feed = InMemoryFeed("a", name="letters")
        seen = []

        def broken(_value) -> None:
            raise ValueError("bad listener")

        feed.subscribe(broken)
        feed.subscribe(seen.append)
        with self.assertLogs("sprout_core.growth.feeds", level="ERROR"):
            feed.publish("b")
        self.assertEqual(seen, ["b"])

    def test_factory_feeds_copy_initial_values(self) -> None:
        initial_world = {"primaryAreaObjects": {}}
        initial_agents = [{"petId": "x"}]
        self.assertIsNot(world_feed(initial_world).snapshot(), initial_world)
        self.assertEqual(agent_feed(initial_agents).snapshot(), initial_agents)
        self.assertEqual(world_feed().snapshot(), {})
        self.assertEqual(agent_feed().snapshot(), [])


class MemoryKeyValueStoreTests(unittest.TestCase):
    def test_values_are_isolated_from_callers(self) -> None:
        store = MemoryKeyValueStore({"k": {"a": 1}})
        value = store.get("k")
        value["a"] = 2
        self.assertEqual(store.get("k"), {"a": 1})

        payload = {"b": [1]}
        store.set("other", payload)
        payload["b"].append(2)
        self.assertEqual(store.get("other"), {"b": [1]})
        self.assertEqual(store.get("missing", "fallback"), "fallback")


if __name__ == "__main__":
    unittest.main()
