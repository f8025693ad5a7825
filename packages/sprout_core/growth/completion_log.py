"""Rolling log of observed growth completions versus their estimates."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Mapping, Optional

from .persistence import KeyValueStore


logger = logging.getLogger("sprout_core.growth.completion_log")

COMPLETION_LOG_KEY = "sprout-growth-completion-log"
MAX_LOG_ENTRIES = 50


@dataclass(frozen=True)
class CompletionLogEntry:
    id: str
    type: str
    species: str
    tile_id: str
    slot_index: int
    started_at: float
    completed_at: float
    estimated_duration: float
    actual_duration: float
    had_turtles: bool

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Optional["CompletionLogEntry"]:
        """Read a stored entry; snake_case keys from older saves are still accepted."""

        def _get(camel: str, snake: str, default: Any = None) -> Any:
            if camel in raw:
                return raw[camel]
            if snake in raw:
                return raw[snake]
            if default is not None:
                return default
            raise KeyError(camel)

        try:
            return cls(
                id=str(raw["id"]),
                type=str(raw["type"]),
                species=str(raw.get("species") or ""),
                tile_id=str(_get("tileId", "tile_id")),
                slot_index=int(_get("slotIndex", "slot_index")),
                started_at=float(_get("startedAt", "started_at")),
                completed_at=float(_get("completedAt", "completed_at")),
                estimated_duration=float(_get("estimatedDuration", "estimated_duration")),
                actual_duration=float(_get("actualDuration", "actual_duration")),
                had_turtles=bool(_get("hadTurtles", "had_turtles", False)),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "species": self.species,
            "tileId": self.tile_id,
            "slotIndex": self.slot_index,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "estimatedDuration": self.estimated_duration,
            "actualDuration": self.actual_duration,
            "hadTurtles": self.had_turtles,
        }


@dataclass(frozen=True)
class _TrackedSlot:
    started_at: float
    estimated_duration: float
    type: str
    species: str


class CompletionLog:
    def __init__(self, store: KeyValueStore, *, max_entries: int = MAX_LOG_ENTRIES) -> None:
        self._store = store
        self._max_entries = max(1, int(max_entries))
        self._entries: list[CompletionLogEntry] = []
        self._tracked: dict[str, _TrackedSlot] = {}

    def load(self) -> None:
        try:
            stored = self._store.get(COMPLETION_LOG_KEY, None)
        except Exception:
            logger.warning("[GROWTH] Failed to load completion log", exc_info=True)
            return
        if not isinstance(stored, list):
            return
        entries = [
            entry
            for entry in (CompletionLogEntry.from_dict(raw) for raw in stored if isinstance(raw, Mapping))
            if entry is not None
        ]
        self._entries = entries[-self._max_entries :]

    def _save(self) -> None:
        try:
            self._store.set(COMPLETION_LOG_KEY, [e.as_dict() for e in self._entries[-self._max_entries :]])
        except Exception:
            logger.warning("[GROWTH] Failed to save completion log", exc_info=True)

    def entries(self) -> list[CompletionLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries = []
        self._tracked.clear()
        self._save()

    def track_start(
        self,
        tile_id: str,
        slot_index: int,
        kind: str,
        species: str,
        estimated_ms: float,
        now: float,
    ) -> None:
        self._tracked[f"{tile_id}:{slot_index}"] = _TrackedSlot(
            started_at=now,
            estimated_duration=estimated_ms,
            type=kind,
            species=species,
        )

    def track_completion(self, tile_id: str, slot_index: int, had_turtles: bool, now: float) -> Optional[CompletionLogEntry]:
        key = f"{tile_id}:{slot_index}"
        tracked = self._tracked.pop(key, None)
        if tracked is None:
            return None
        entry = CompletionLogEntry(
            id=f"{key}:{int(now)}",
            type=tracked.type,
            species=tracked.species,
            tile_id=tile_id,
            slot_index=slot_index,
            started_at=tracked.started_at,
            completed_at=now,
            estimated_duration=tracked.estimated_duration,
            actual_duration=now - tracked.started_at,
            had_turtles=had_turtles,
        )
        self._entries.append(entry)
        if len(self._entries) > self._max_entries:
            self._entries = self._entries[-self._max_entries :]
        self._save()
        return entry
