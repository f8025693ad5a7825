"""Persisted per-pet manual stat overrides."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Mapping, Optional

from .agents import AgentInfo, finite_or_none
from .persistence import KeyValueStore


logger = logging.getLogger("sprout_core.growth.overrides")

MANUAL_OVERRIDES_STORAGE_KEY = "sprout-growth-manual-overrides"
OVERRIDE_FIELDS = ("xp", "targetScale", "strength")


@dataclass(frozen=True)
class ManualOverride:
    xp: Optional[float] = None
    target_scale: Optional[float] = None
    strength: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ManualOverride":
        return cls(
            xp=finite_or_none(raw.get("xp")),
            target_scale=finite_or_none(raw.get("targetScale")),
            strength=finite_or_none(raw.get("strength")),
        )

    @property
    def has_values(self) -> bool:
        return self.xp is not None or self.target_scale is not None or self.strength is not None

    def as_dict(self) -> dict[str, float]:
        out: dict[str, float] = {}
        if self.xp is not None:
            out["xp"] = self.xp
        if self.target_scale is not None:
            out["targetScale"] = self.target_scale
        if self.strength is not None:
            out["strength"] = self.strength
        return out


def _normalize_partial(partial: Mapping[str, Any]) -> dict[str, Optional[float]]:
    aliases = {"target_scale": "targetScale"}
    out: dict[str, Optional[float]] = {}
    for key, value in partial.items():
        field_name = aliases.get(key, key)
        if field_name not in OVERRIDE_FIELDS:
            continue
        if value is None:
            out[field_name] = None
            continue
        number = finite_or_none(value)
        if number is not None:
            out[field_name] = number
    return out


class ManualOverrideStore:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._entries: dict[str, dict[str, float]] = {}

    def load(self) -> None:
        try:
            stored = self._store.get(MANUAL_OVERRIDES_STORAGE_KEY, None)
        except Exception:
            logger.warning("[GROWTH] Failed to load manual pet overrides", exc_info=True)
            return
        if not isinstance(stored, Mapping):
            return
        entries: dict[str, dict[str, float]] = {}
        for key, raw in stored.items():
            if not isinstance(raw, Mapping):
                continue
            override = ManualOverride.from_dict(raw)
            if override.has_values:
                entries[str(key)] = override.as_dict()
        self._entries = entries

    def _save(self) -> None:
        try:
            self._store.set(MANUAL_OVERRIDES_STORAGE_KEY, dict(self._entries))
        except Exception:
            logger.warning("[GROWTH] Failed to save manual pet overrides", exc_info=True)

    def get(self, agent: AgentInfo) -> Optional[ManualOverride]:
        raw = self._entries.get(agent.override_key)
        if raw is None:
            return None
        return ManualOverride.from_dict(raw)

    def set(self, agent: AgentInfo, partial: Mapping[str, Any]) -> ManualOverride:
        key = agent.override_key
        merged = dict(self._entries.get(key, {}))
        for field_name, value in _normalize_partial(partial).items():
            if value is None:
                merged.pop(field_name, None)
            else:
                merged[field_name] = value
        if merged:
            self._entries[key] = merged
        else:
            self._entries.pop(key, None)
        self._save()
        return ManualOverride.from_dict(merged)

    def clear(self, agent: AgentInfo, field_name: Optional[str] = None) -> bool:
        key = agent.override_key
        entry = self._entries.get(key)
        if entry is None:
            return False
        if field_name:
            entry.pop({"target_scale": "targetScale"}.get(field_name, field_name), None)
            if not entry:
                self._entries.pop(key, None)
        else:
            self._entries.pop(key, None)
        self._save()
        return True

    def snapshot(self) -> dict[str, dict[str, float]]:
        return {key: dict(value) for key, value in self._entries.items()}
