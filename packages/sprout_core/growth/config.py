"""Growth timer configuration and partial-update merging."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
import math
from typing import Any, Mapping, Optional


FOCUS_MODES = ("latest", "earliest", "specific")

# camelCase wire names accepted alongside the dataclass field names.
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "enabled": ("enabled",),
    "include_boardwalk": ("include_boardwalk", "includeBoardwalk"),
    "min_active_hunger_pct": ("min_active_hunger_pct", "minActiveHungerPct"),
    "fallback_target_scale": ("fallback_target_scale", "fallbackTargetScale"),
    "focus": ("focus",),
    "focus_target_tile_id": ("focus_target_tile_id", "focusTargetTileId"),
    "focus_target_slot_index": ("focus_target_slot_index", "focusTargetSlotIndex"),
    "egg_focus": ("egg_focus", "eggFocus"),
    "egg_focus_target_tile_id": ("egg_focus_target_tile_id", "eggFocusTargetTileId"),
    "egg_focus_target_slot_index": ("egg_focus_target_slot_index", "eggFocusTargetSlotIndex"),
}


@dataclass(frozen=True)
class FocusSelection:
    mode: str = "latest"
    tile_id: Optional[str] = None
    slot_index: Optional[int] = None


@dataclass(frozen=True)
class GrowthTimerConfig:
    enabled: bool = True
    include_boardwalk: bool = True
    min_active_hunger_pct: int = 2
    fallback_target_scale: float = 1.5
    max_target_scale: float = 2.5
    focus: str = "latest"
    focus_target_tile_id: Optional[str] = None
    focus_target_slot_index: Optional[int] = None
    egg_focus: str = "latest"
    egg_focus_target_tile_id: Optional[str] = None
    egg_focus_target_slot_index: Optional[int] = None

    @property
    def plant_focus(self) -> FocusSelection:
        return FocusSelection(self.focus, self.focus_target_tile_id, self.focus_target_slot_index)

    @property
    def egg_focus_selection(self) -> FocusSelection:
        return FocusSelection(self.egg_focus, self.egg_focus_target_tile_id, self.egg_focus_target_slot_index)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_CONFIG = GrowthTimerConfig()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _lookup(partial: Mapping[str, Any], field_name: str) -> tuple[bool, Any]:
    for key in _FIELD_ALIASES[field_name]:
        if key in partial:
            return True, partial[key]
    return False, None


def merge_config(current: GrowthTimerConfig, partial: Optional[Mapping[str, Any]]) -> GrowthTimerConfig:
    """Apply the well-typed fields of ``partial`` on top of ``current``.

    Fields that are missing or carry the wrong runtime type are left as they
    were. Numeric fields are clamped and focus modes outside ``FOCUS_MODES``
    are ignored.
    """
    if not partial:
        return current
    updates: dict[str, Any] = {}

    for flag in ("enabled", "include_boardwalk"):
        present, value = _lookup(partial, flag)
        if present and isinstance(value, bool):
            updates[flag] = value

    present, value = _lookup(partial, "min_active_hunger_pct")
    if present and _is_number(value):
        updates["min_active_hunger_pct"] = int(max(0, min(100, _round_half_up(value))))

    present, value = _lookup(partial, "fallback_target_scale")
    if present and _is_number(value):
        updates["fallback_target_scale"] = float(max(1.0, min(current.max_target_scale, value)))

    for mode_field in ("focus", "egg_focus"):
        present, value = _lookup(partial, mode_field)
        if present and value in FOCUS_MODES:
            updates[mode_field] = value

    for tile_field in ("focus_target_tile_id", "egg_focus_target_tile_id"):
        present, value = _lookup(partial, tile_field)
        if present and (value is None or isinstance(value, str)):
            updates[tile_field] = value

    for index_field in ("focus_target_slot_index", "egg_focus_target_slot_index"):
        present, value = _lookup(partial, index_field)
        if not present:
            continue
        if value is None:
            updates[index_field] = None
        elif _is_number(value):
            updates[index_field] = max(0, _round_half_up(value))

    if not updates:
        return current
    return replace(current, **updates)
