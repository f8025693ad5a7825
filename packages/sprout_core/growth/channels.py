"""Per-domain aggregation of growth boosts into adjusted completion estimates."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import math
from typing import Any, Callable, Iterable, Optional

from .config import FocusSelection
from .confidence import estimate_confidence
from .scoring import Contribution
from .slots import GrowthSlot


STATUS_DISABLED = "disabled"
STATUS_NO_DATA = "no-data"
STATUS_NO_CROPS = "no-crops"
STATUS_NO_EGGS = "no-eggs"
STATUS_NO_TURTLES = "no-turtles"
STATUS_ESTIMATING = "estimating"

MS_PER_MINUTE = 60_000
MIN_EFFECTIVE_RATE = 0.01


@dataclass(frozen=True)
class FocusSlot:
    slot: GrowthSlot
    remaining_ms: Optional[float]

    def as_dict(self) -> dict[str, Any]:
        out = self.slot.as_dict()
        out["remainingMs"] = self.remaining_ms
        return out


@dataclass(frozen=True)
class FocusOption:
    key: str
    tile_id: str
    slot_index: int
    species: Optional[str]
    boardwalk: bool
    end_time: Optional[float]
    remaining_ms: Optional[float]

    def as_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "tileId": self.tile_id,
            "slotIndex": self.slot_index,
            "species": self.species,
            "boardwalk": self.boardwalk,
            "endTime": self.end_time,
            "remainingMs": self.remaining_ms,
        }


@dataclass(frozen=True)
class Channel:
    status: str = STATUS_NO_DATA
    tracked_slots: int = 0
    growing_slots: int = 0
    matured_slots: int = 0
    contributions: tuple[Contribution, ...] = field(default_factory=tuple)
    expected_minutes_removed: Optional[float] = None
    effective_rate: Optional[float] = None
    natural_ms_remaining: Optional[float] = None
    adjusted_ms_remaining: Optional[float] = None
    minutes_saved: Optional[float] = None
    lucky_ms_remaining: Optional[float] = None
    unlucky_ms_remaining: Optional[float] = None
    focus_slot: Optional[FocusSlot] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "trackedSlots": self.tracked_slots,
            "growingSlots": self.growing_slots,
            "maturedSlots": self.matured_slots,
            "contributions": [c.as_dict() for c in self.contributions],
            "expectedMinutesRemoved": self.expected_minutes_removed,
            "effectiveRate": self.effective_rate,
            "naturalMsRemaining": self.natural_ms_remaining,
            "adjustedMsRemaining": self.adjusted_ms_remaining,
            "minutesSaved": self.minutes_saved,
            "luckyMsRemaining": self.lucky_ms_remaining,
            "unluckyMsRemaining": self.unlucky_ms_remaining,
            "focusSlot": self.focus_slot.as_dict() if self.focus_slot else None,
        }


def _first_by(candidates: list[GrowthSlot], better: Callable[[float, float], bool]) -> GrowthSlot:
    best = candidates[0]
    for current in candidates[1:]:
        if better(current.end_time, best.end_time):  # type: ignore[arg-type]
            best = current
    return best


def pick_focus_slot(slots: Iterable[GrowthSlot], focus: FocusSelection, now: float) -> Optional[GrowthSlot]:
    candidates = [slot for slot in slots if slot.is_growing(now)]
    if not candidates:
        return None
    if focus.mode == "specific":
        if focus.tile_id and focus.slot_index is not None:
            for slot in candidates:
                if slot.tile_id == focus.tile_id and slot.slot_index == focus.slot_index:
                    return slot
        return None
    if focus.mode == "earliest":
        return _first_by(candidates, lambda current, best: current < best)
    return _first_by(candidates, lambda current, best: current > best)


def compute_channel(
    kind: str,
    slots: list[GrowthSlot],
    contributions: Iterable[Contribution],
    now: float,
    focus: FocusSelection,
    *,
    enabled: bool = True,
) -> Channel:
    if not enabled:
        return Channel(status=STATUS_DISABLED)

    tracked = sum(1 for slot in slots if slot.end_time is not None)
    growing = sum(1 for slot in slots if slot.is_growing(now))
    matured = tracked - growing
    ordered = tuple(sorted(contributions, key=lambda c: c.rate_contribution, reverse=True))
    base = Channel(
        status=STATUS_NO_DATA,
        tracked_slots=tracked,
        growing_slots=growing,
        matured_slots=matured,
        contributions=ordered,
    )

    if not slots or tracked == 0:
        return base
    if growing == 0:
        return replace(base, status=STATUS_NO_EGGS if kind == "egg" else STATUS_NO_CROPS)

    focus_slot = pick_focus_slot(slots, focus, now)
    if focus_slot is None or focus_slot.end_time is None:
        return base

    natural_ms = max(0.0, focus_slot.end_time - now)
    natural_minutes = natural_ms / MS_PER_MINUTE
    focus_record = FocusSlot(slot=focus_slot, remaining_ms=natural_ms)

    removed = sum(entry.rate_contribution for entry in ordered)
    if not math.isfinite(removed) or removed <= 0:
        return Channel(
            status=STATUS_NO_TURTLES,
            tracked_slots=tracked,
            growing_slots=growing,
            matured_slots=matured,
            contributions=ordered,
            natural_ms_remaining=natural_ms,
            adjusted_ms_remaining=natural_ms,
            focus_slot=focus_record,
        )

    effective_rate = max(MIN_EFFECTIVE_RATE, 1 + removed)
    adjusted_minutes = natural_minutes / effective_rate
    band = estimate_confidence(kind, adjusted_minutes, ordered)
    return Channel(
        status=STATUS_ESTIMATING,
        tracked_slots=tracked,
        growing_slots=growing,
        matured_slots=matured,
        contributions=ordered,
        expected_minutes_removed=removed,
        effective_rate=effective_rate,
        natural_ms_remaining=natural_ms,
        adjusted_ms_remaining=adjusted_minutes * MS_PER_MINUTE,
        minutes_saved=max(0.0, natural_minutes - adjusted_minutes),
        lucky_ms_remaining=band.lucky_minutes * MS_PER_MINUTE,
        unlucky_ms_remaining=band.unlucky_minutes * MS_PER_MINUTE,
        focus_slot=focus_record,
    )


def build_focus_options(
    slots: Iterable[GrowthSlot],
    now: float,
    species_of: Callable[[GrowthSlot], Optional[str]],
) -> tuple[FocusOption, ...]:
    return tuple(
        FocusOption(
            key=slot.key,
            tile_id=slot.tile_id,
            slot_index=slot.slot_index,
            species=species_of(slot),
            boardwalk=slot.boardwalk,
            end_time=slot.end_time,
            remaining_ms=max(0.0, slot.end_time - now) if slot.end_time is not None else None,
        )
        for slot in slots
        if slot.is_growing(now)
    )


def plant_species(slot: GrowthSlot) -> Optional[str]:
    return slot.species or slot.seed_species or slot.plant_species


def egg_species(slot: GrowthSlot) -> Optional[str]:
    return slot.egg_species or slot.egg_id or slot.species
