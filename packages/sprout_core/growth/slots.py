"""Growth slot normalization and egg/plant classification for garden snapshots."""

from __future__ import annotations

from dataclasses import dataclass
import math
import re
from typing import Any, Callable, Iterable, Mapping, Optional


PRIMARY_AREA_KEYS = ("primaryAreaObjects", "tileObjects")
SECONDARY_AREA_KEYS = ("secondaryAreaObjects", "boardwalkTileObjects")

END_TIME_KEYS = ("endTime", "maturedAt", "readyAt", "harvestReadyAt", "finishAt")
READY_AT_KEYS = ("readyAt", "maturedAt", "harvestReadyAt", "endTime")
PLANTED_AT_KEYS = ("plantedAt", "startTime", "startedAt")
SPECIES_KEYS = ("species", "seedSpecies", "plantSpecies", "petSpecies")
SEED_SPECIES_KEYS = ("seedSpecies",)
PLANT_SPECIES_KEYS = ("plantSpecies",)
EGG_ID_KEYS = ("eggId", "eggID")
EGG_SPECIES_KEYS = ("eggSpecies", "eggType")
OBJECT_TYPE_KEYS = ("objectType", "object_type")
TILE_CATEGORY_KEYS = ("slotCategory", "category", "slot_category")
SLOT_TYPE_KEYS = ("type", "slotType", "slot_type")
SLOT_CATEGORY_KEYS = ("category", "slotCategory", "slot_category")
SLOT_KIND_KEYS = ("kind",)

_EGG_WORD_RE = re.compile(r"\begg\b")

EggClassifier = Callable[["GrowthSlot"], bool]


@dataclass(frozen=True)
class GrowthSlot:
    tile_id: str
    slot_index: int
    species: Optional[str] = None
    seed_species: Optional[str] = None
    plant_species: Optional[str] = None
    egg_id: Optional[str] = None
    egg_species: Optional[str] = None
    boardwalk: bool = False
    end_time: Optional[float] = None
    ready_at: Optional[float] = None
    planted_at: Optional[float] = None
    slot_type: Optional[str] = None
    slot_category: Optional[str] = None
    object_type: Optional[str] = None
    tile_object_type: Optional[str] = None
    tile_category: Optional[str] = None
    slot_kind: Optional[str] = None

    @property
    def key(self) -> str:
        return make_focus_key(self.tile_id, self.slot_index) or f"{self.tile_id}::{self.slot_index}"

    def is_growing(self, now: float) -> bool:
        return self.end_time is not None and self.end_time > now

    def as_dict(self) -> dict[str, Any]:
        return {
            "tileId": self.tile_id,
            "slotIndex": self.slot_index,
            "species": self.species,
            "seedSpecies": self.seed_species,
            "plantSpecies": self.plant_species,
            "eggId": self.egg_id,
            "eggSpecies": self.egg_species,
            "boardwalk": self.boardwalk,
            "endTime": self.end_time,
            "readyAt": self.ready_at,
            "plantedAt": self.planted_at,
            "slotType": self.slot_type,
            "slotCategory": self.slot_category,
            "objectType": self.object_type,
            "tileObjectType": self.tile_object_type,
            "tileCategory": self.tile_category,
            "slotKind": self.slot_kind,
        }


def make_focus_key(tile_id: Optional[str], slot_index: Optional[int]) -> Optional[str]:
    if not tile_id or slot_index is None:
        return None
    return f"{tile_id}::{slot_index}"


def parse_timestamp(value: Any) -> Optional[float]:
    """Accept finite numbers or numeric strings; anything else is ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def pick_string(source: Mapping[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = source.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def pick_raw(sources: Iterable[Mapping[str, Any]], keys: Iterable[str]) -> Any:
    """First non-null value, walking every key of each source in order."""
    key_list = tuple(keys)
    for source in sources:
        for key in key_list:
            value = source.get(key)
            if value is not None:
                return value
    return None


def _read_index(value: Any, fallback: int) -> int:
    parsed = parse_timestamp(value)
    if parsed is None:
        return fallback
    return int(parsed)


def includes_egg_hint(value: Optional[str]) -> bool:
    if not value:
        return False
    lowered = value.lower()
    if "eggplant" in lowered:
        return False
    return "egg" in lowered


def includes_plant_hint(value: Optional[str]) -> bool:
    if not value:
        return False
    lowered = value.lower()
    return "plant" in lowered or "crop" in lowered


def is_egg_species(species: Optional[str]) -> bool:
    if not species:
        return False
    lowered = species.lower()
    if "eggplant" in lowered:
        return False
    return bool(_EGG_WORD_RE.search(lowered))


def is_egg_slot(slot: GrowthSlot) -> bool:
    """Best-effort egg detection.

    The game does not expose an authoritative egg flag, so this leans on
    whatever type, category and species hints the snapshot carries. Anything
    not recognised as an egg is treated as a plant.
    """
    hint_fields = (
        slot.object_type,
        slot.slot_type,
        slot.slot_category,
        slot.slot_kind,
        slot.tile_object_type,
        slot.tile_category,
        slot.seed_species,
        slot.plant_species,
        slot.egg_id,
        slot.egg_species,
    )
    if any(includes_egg_hint(value) for value in hint_fields):
        return True
    return is_egg_species(slot.species)


def should_include_slot(slot: GrowthSlot) -> bool:
    plant_fields = (
        slot.object_type,
        slot.tile_object_type,
        slot.slot_type,
        slot.slot_category,
        slot.tile_category,
    )
    if any(includes_plant_hint(value) for value in plant_fields):
        return True
    egg_fields = (
        slot.object_type,
        slot.slot_type,
        slot.slot_category,
        slot.slot_kind,
        slot.tile_object_type,
        slot.tile_category,
        slot.species,
        slot.seed_species,
        slot.plant_species,
        slot.egg_id,
        slot.egg_species,
    )
    if any(includes_egg_hint(value) for value in egg_fields):
        return True
    if slot.species or slot.seed_species or slot.plant_species:
        return True
    return slot.end_time is not None or slot.ready_at is not None or slot.planted_at is not None


def build_slot(
    tile_id: str,
    boardwalk: bool,
    source: Mapping[str, Any],
    fallback_index: int,
    tile_defaults: Mapping[str, Any],
) -> Optional[GrowthSlot]:
    both = (source, tile_defaults)
    tile_object_type = pick_string(tile_defaults, OBJECT_TYPE_KEYS)
    slot = GrowthSlot(
        tile_id=tile_id,
        slot_index=_read_index(source.get("slotIndex"), _read_index(tile_defaults.get("slotIndex"), fallback_index)),
        species=pick_string(source, SPECIES_KEYS) or pick_string(tile_defaults, SPECIES_KEYS),
        seed_species=pick_string(source, SEED_SPECIES_KEYS) or pick_string(tile_defaults, SEED_SPECIES_KEYS),
        plant_species=pick_string(source, PLANT_SPECIES_KEYS) or pick_string(tile_defaults, PLANT_SPECIES_KEYS),
        egg_id=pick_string(source, EGG_ID_KEYS) or pick_string(tile_defaults, EGG_ID_KEYS),
        egg_species=pick_string(source, EGG_SPECIES_KEYS) or pick_string(tile_defaults, EGG_SPECIES_KEYS),
        boardwalk=boardwalk,
        end_time=parse_timestamp(pick_raw(both, END_TIME_KEYS)),
        ready_at=parse_timestamp(pick_raw(both, READY_AT_KEYS)),
        planted_at=parse_timestamp(pick_raw(both, PLANTED_AT_KEYS)),
        slot_type=pick_string(source, SLOT_TYPE_KEYS),
        slot_category=pick_string(source, SLOT_CATEGORY_KEYS),
        object_type=pick_string(source, OBJECT_TYPE_KEYS) or tile_object_type,
        tile_object_type=tile_object_type,
        tile_category=pick_string(tile_defaults, TILE_CATEGORY_KEYS),
        slot_kind=pick_string(source, SLOT_KIND_KEYS),
    )
    if not should_include_slot(slot):
        return None
    return slot


def _collect_area(area: Any, boardwalk: bool, out: list[GrowthSlot]) -> None:
    if not isinstance(area, Mapping):
        return
    for tile_id, tile in area.items():
        if not isinstance(tile, Mapping):
            continue
        tile_key = str(tile_id)
        raw_slots = tile.get("slots")
        slot_added = False
        if isinstance(raw_slots, list):
            for index, raw_slot in enumerate(raw_slots):
                if not isinstance(raw_slot, Mapping):
                    continue
                built = build_slot(tile_key, boardwalk, raw_slot, index, tile)
                if built is not None:
                    out.append(built)
                    slot_added = True
        if not slot_added:
            built = build_slot(tile_key, boardwalk, tile, 0, tile)
            if built is not None:
                out.append(built)


def collect_slots(snapshot: Optional[Mapping[str, Any]], include_boardwalk: bool) -> list[GrowthSlot]:
    out: list[GrowthSlot] = []
    if not isinstance(snapshot, Mapping):
        return out
    _collect_area(pick_raw((snapshot,), PRIMARY_AREA_KEYS), False, out)
    if include_boardwalk:
        _collect_area(pick_raw((snapshot,), SECONDARY_AREA_KEYS), True, out)
    return out


def split_slots(
    slots: Iterable[GrowthSlot],
    classifier: EggClassifier = is_egg_slot,
) -> tuple[list[GrowthSlot], list[GrowthSlot]]:
    """Return ``(plant_slots, egg_slots)``."""
    plants: list[GrowthSlot] = []
    eggs: list[GrowthSlot] = []
    for slot in slots:
        if classifier(slot):
            eggs.append(slot)
        else:
            plants.append(slot)
    return plants, eggs


def diagnose_slots(
    snapshot: Optional[Mapping[str, Any]],
    include_boardwalk: bool,
    *,
    tile_id: Optional[str] = None,
    classifier: EggClassifier = is_egg_slot,
) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for slot in collect_slots(snapshot, include_boardwalk):
        if tile_id and slot.tile_id != tile_id:
            continue
        row = slot.as_dict()
        row["isEgg"] = bool(classifier(slot))
        rows.append(row)
    return rows
