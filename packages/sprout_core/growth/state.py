"""Published growth timer snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from .channels import STATUS_DISABLED, Channel, FocusOption
from .config import GrowthTimerConfig
from .support import SupportSummary


@dataclass(frozen=True)
class EngineState:
    enabled: bool
    now: float
    include_boardwalk: bool
    focus: str
    focus_target_key: Optional[str]
    focus_target_available: bool
    egg_focus: str
    egg_focus_target_key: Optional[str]
    egg_focus_target_available: bool
    min_active_hunger_pct: int
    fallback_target_scale: float
    available_turtles: int = 0
    hunger_filtered_count: int = 0
    turtles_missing_stats: int = 0
    plant: Channel = field(default_factory=Channel)
    plant_targets: tuple[FocusOption, ...] = field(default_factory=tuple)
    egg: Channel = field(default_factory=Channel)
    egg_targets: tuple[FocusOption, ...] = field(default_factory=tuple)
    support: SupportSummary = field(default_factory=SupportSummary)

    def as_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "now": self.now,
            "includeBoardwalk": self.include_boardwalk,
            "focus": self.focus,
            "focusTargetKey": self.focus_target_key,
            "focusTargetAvailable": self.focus_target_available,
            "eggFocus": self.egg_focus,
            "eggFocusTargetKey": self.egg_focus_target_key,
            "eggFocusTargetAvailable": self.egg_focus_target_available,
            "minActiveHungerPct": self.min_active_hunger_pct,
            "fallbackTargetScale": self.fallback_target_scale,
            "availableTurtles": self.available_turtles,
            "hungerFilteredCount": self.hunger_filtered_count,
            "turtlesMissingStats": self.turtles_missing_stats,
            "plant": self.plant.as_dict(),
            "plantTargets": [t.as_dict() for t in self.plant_targets],
            "egg": self.egg.as_dict(),
            "eggTargets": [t.as_dict() for t in self.egg_targets],
            "support": self.support.as_dict(),
        }


def initial_state(config: GrowthTimerConfig, now: float) -> EngineState:
    return EngineState(
        enabled=config.enabled,
        now=now,
        include_boardwalk=config.include_boardwalk,
        focus=config.focus,
        focus_target_key=None,
        focus_target_available=False,
        egg_focus=config.egg_focus,
        egg_focus_target_key=None,
        egg_focus_target_available=False,
        min_active_hunger_pct=config.min_active_hunger_pct,
        fallback_target_scale=config.fallback_target_scale,
    )


def disabled_state(config: GrowthTimerConfig, now: float) -> EngineState:
    return replace(
        initial_state(config, now),
        enabled=False,
        plant=Channel(status=STATUS_DISABLED),
        egg=Channel(status=STATUS_DISABLED),
    )
