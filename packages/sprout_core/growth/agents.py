"""Active pet records as delivered by the agent info provider."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
import re
from typing import Any, Mapping, Optional


_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def normalize_ability(value: str) -> str:
    return _NON_ALNUM_RE.sub("", str(value or "").lower())


def finite_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _text_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


@dataclass(frozen=True)
class AgentInfo:
    slot_index: int
    pet_id: Optional[str] = None
    slot_id: Optional[str] = None
    species: Optional[str] = None
    name: Optional[str] = None
    hunger_pct: Optional[float] = None
    xp: Optional[float] = None
    target_scale: Optional[float] = None
    strength: Optional[float] = None
    abilities: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, fallback_index: int = 0) -> Optional["AgentInfo"]:
        """Build an agent from a provider payload, or ``None`` if it is unusable."""
        if not isinstance(raw, Mapping):
            return None
        slot_index = finite_or_none(_first(raw, "slotIndex", "slot_index"))
        abilities_raw = raw.get("abilities")
        abilities: tuple[str, ...] = ()
        if isinstance(abilities_raw, (list, tuple)):
            abilities = tuple(a for a in abilities_raw if isinstance(a, str) and a.strip())
        pet_id = _first(raw, "petId", "pet_id", "id")
        return cls(
            slot_index=int(slot_index) if slot_index is not None else fallback_index,
            pet_id=str(pet_id) if isinstance(pet_id, (str, int)) and not isinstance(pet_id, bool) and str(pet_id) else None,
            slot_id=_text_or_none(_first(raw, "slotId", "slot_id")),
            species=_text_or_none(raw.get("species")),
            name=_text_or_none(raw.get("name")),
            hunger_pct=finite_or_none(_first(raw, "hungerPct", "hunger_pct")),
            xp=finite_or_none(raw.get("xp")),
            target_scale=finite_or_none(_first(raw, "targetScale", "target_scale")),
            strength=finite_or_none(raw.get("strength")),
            abilities=abilities,
        )

    @property
    def override_key(self) -> str:
        if self.pet_id:
            return f"pet:{self.pet_id}"
        if self.species:
            return f"{self.species}:{self.slot_index}"
        return f"slot:{self.slot_index}"

    @property
    def identity(self) -> str:
        return self.pet_id or self.slot_id or f"{self.slot_index}-{self.name or 'pet'}"

    def normalized_abilities(self) -> list[tuple[str, str]]:
        return [(raw, normalize_ability(raw)) for raw in self.abilities]


def parse_agents(raw_agents: Any) -> list[AgentInfo]:
    if not isinstance(raw_agents, (list, tuple)):
        return []
    agents: list[AgentInfo] = []
    for index, raw in enumerate(raw_agents):
        if isinstance(raw, AgentInfo):
            agents.append(raw)
            continue
        agent = AgentInfo.from_raw(raw, fallback_index=index)
        if agent is not None:
            agents.append(agent)
    return agents
