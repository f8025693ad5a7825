"""Growth timing estimation for garden plants and eggs."""

from .agents import AgentInfo
from .channels import Channel, pick_focus_slot
from .completion_log import CompletionLogEntry
from .config import DEFAULT_CONFIG, GrowthTimerConfig, merge_config
from .engine import GrowthTimingEngine
from .feeds import InMemoryFeed, SnapshotFeed, agent_feed, world_feed
from .overrides import ManualOverride
from .persistence import KeyValueStore, MemoryKeyValueStore
from .slots import GrowthSlot, collect_slots, is_egg_slot
from .state import EngineState

__all__ = [
    "AgentInfo",
    "Channel",
    "pick_focus_slot",
    "CompletionLogEntry",
    "DEFAULT_CONFIG",
    "GrowthTimerConfig",
    "merge_config",
    "GrowthTimingEngine",
    "InMemoryFeed",
    "SnapshotFeed",
    "agent_feed",
    "world_feed",
    "ManualOverride",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "GrowthSlot",
    "collect_slots",
    "is_egg_slot",
    "EngineState",
]
