"""Pet stat resolution and growth-boost contribution model."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Optional

from .agents import AgentInfo, finite_or_none
from .config import GrowthTimerConfig
from .overrides import ManualOverride


# Ability checks are assumed to run once per second.
CHECKS_PER_MINUTE = 60

XP_PER_LEVEL_HOUR = 100 * 3600
XP_COMPONENT_MAX = 30


@dataclass(frozen=True)
class AbilityConfig:
    kind: str
    patterns: tuple[str, ...]
    minutes_per_base: float
    proc_odds: float


PLANT_GROWTH_BOOST = AbilityConfig(kind="plant", patterns=("plantgrowthboost",), minutes_per_base=5, proc_odds=0.27)
# 9 is the mean of the three egg boost tiers (7, 9, 11).
EGG_GROWTH_BOOST = AbilityConfig(kind="egg", patterns=("egggrowthboost",), minutes_per_base=9, proc_odds=0.24)
ABILITY_CONFIGS: tuple[AbilityConfig, ...] = (PLANT_GROWTH_BOOST, EGG_GROWTH_BOOST)


@dataclass(frozen=True)
class AgentStats:
    xp: Optional[float]
    target_scale: float
    base_score: float
    missing_stats: bool


@dataclass(frozen=True)
class Contribution:
    ability: str
    ability_names: tuple[str, ...]
    slot_index: int
    name: Optional[str]
    species: Optional[str]
    hunger_pct: Optional[float]
    xp: Optional[float]
    target_scale: float
    base_score: float
    rate_contribution: float
    per_hour_reduction: float
    missing_stats: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "ability": self.ability,
            "abilityNames": list(self.ability_names),
            "slotIndex": self.slot_index,
            "name": self.name,
            "species": self.species,
            "hungerPct": self.hunger_pct,
            "xp": self.xp,
            "targetScale": self.target_scale,
            "baseScore": self.base_score,
            "rateContribution": self.rate_contribution,
            "perHourReduction": self.per_hour_reduction,
            "missingStats": self.missing_stats,
        }


def sanitize_target_scale(scale: Optional[float], config: GrowthTimerConfig) -> float:
    value = finite_or_none(scale)
    if value is None:
        return config.fallback_target_scale
    return max(1.0, min(config.max_target_scale, value))


def resolve_agent_stats(
    agent: AgentInfo,
    override: Optional[ManualOverride],
    config: GrowthTimerConfig,
) -> AgentStats:
    """Resolve xp/scale/strength, preferring live telemetry over manual overrides."""
    xp = agent.xp
    if xp is None and override is not None:
        xp = override.xp

    raw_scale = agent.target_scale
    if raw_scale is None and override is not None:
        raw_scale = override.target_scale
    target_scale = sanitize_target_scale(raw_scale, config)

    strength = agent.strength
    if strength is None and override is not None:
        strength = override.strength

    if strength is not None:
        base_score = max(0.0, strength)
    else:
        xp_component = min(math.floor(((xp or 0.0) / XP_PER_LEVEL_HOUR) * 30), XP_COMPONENT_MAX)
        scale_span = config.max_target_scale - 1
        scale_ratio = (target_scale - 1) / scale_span if scale_span > 0 else 0.0
        scale_component = math.floor(scale_ratio * 20 + 80) - 30
        base_score = float(max(0, xp_component + scale_component))

    missing = agent.xp is None or agent.target_scale is None
    has_override = override is not None and override.has_values
    return AgentStats(
        xp=xp,
        target_scale=target_scale,
        base_score=base_score,
        missing_stats=missing and not has_override,
    )


def rate_contribution(base_score: float, ability: AbilityConfig) -> float:
    """Expected minutes of growth removed per elapsed minute."""
    if base_score <= 0:
        return 0.0
    per_minute_odds = min(1.0, (ability.proc_odds * base_score) / 100)
    occurrence = 1 - math.pow(1 - per_minute_odds, 1 / CHECKS_PER_MINUTE)
    rate = (base_score / 100) * ability.minutes_per_base * CHECKS_PER_MINUTE * occurrence
    if not math.isfinite(rate) or rate < 0:
        return 0.0
    return rate


def compute_contribution(
    agent: AgentInfo,
    ability: AbilityConfig,
    ability_names: list[str],
    stats: AgentStats,
) -> Contribution:
    rate = rate_contribution(stats.base_score, ability)
    return Contribution(
        ability=ability.kind,
        ability_names=tuple(ability_names),
        slot_index=agent.slot_index,
        name=agent.name,
        species=agent.species,
        hunger_pct=agent.hunger_pct,
        xp=stats.xp,
        target_scale=stats.target_scale,
        base_score=stats.base_score,
        rate_contribution=rate,
        per_hour_reduction=rate * 60,
        missing_stats=stats.missing_stats,
    )


def matching_abilities(agent: AgentInfo, patterns: tuple[str, ...]) -> list[str]:
    return [
        raw
        for raw, normalized in agent.normalized_abilities()
        if any(pattern in normalized for pattern in patterns)
    ]
