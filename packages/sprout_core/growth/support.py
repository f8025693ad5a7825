"""Hunger restore / hunger drain slowdown modeling for support pets."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
import re
from typing import Any, Iterable, Optional

from .agents import AgentInfo, normalize_ability
from .scoring import CHECKS_PER_MINUTE, AgentStats, matching_abilities


SUPPORT_RESTORE = "restore"
SUPPORT_SLOW = "slow"

SUPPORT_PATTERNS: dict[str, tuple[str, ...]] = {
    SUPPORT_RESTORE: ("hungerrestore",),
    SUPPORT_SLOW: ("hungerboost",),
}

RESTORE_PCT_BY_LEVEL = (0, 30, 35, 40, 45)
RESTORE_PROC_ODDS_BY_LEVEL = (0, 0.12, 0.14, 0.16, 0.18)
SLOW_PCT_BY_LEVEL = (0, 12, 16, 20, 24)
MAX_RESTORE_ODDS = 0.95

_ROMAN_RE = re.compile(r"\b(IV|III|II|I)\b", re.IGNORECASE)
_DIGIT_RE = re.compile(r"\b(\d+)\b")
_ROMAN_LEVELS = {"I": 1, "II": 2, "III": 3, "IV": 4}


def parse_ability_level(raw_ability: str, normalized_ability: Optional[str] = None) -> int:
    """Roman numeral token, then a positive number token, then a name suffix."""
    numeral = _ROMAN_RE.search(raw_ability)
    if numeral:
        return _ROMAN_LEVELS[numeral.group(1).upper()]
    digits = _DIGIT_RE.search(raw_ability)
    if digits:
        parsed = int(digits.group(1))
        if parsed > 0:
            return parsed
    normalized = normalized_ability if normalized_ability is not None else normalize_ability(raw_ability)
    if normalized.endswith("iv"):
        return 4
    if normalized.endswith("iii"):
        return 3
    if normalized.endswith("ii"):
        return 2
    return 1


def _by_level(table: tuple[Any, ...], level: int) -> Any:
    return table[max(1, min(level, len(table) - 1))]


def support_procs_per_minute(base_score: float, proc_odds: Optional[float]) -> float:
    if not proc_odds or proc_odds <= 0 or base_score <= 0:
        return 0.0
    adjusted_odds = min(MAX_RESTORE_ODDS, max(0.0, proc_odds * (base_score / 100)))
    per_second_chance = 1 - math.pow(1 - adjusted_odds, 1 / CHECKS_PER_MINUTE)
    return per_second_chance * CHECKS_PER_MINUTE


@dataclass(frozen=True)
class SupportAbilityDetail:
    ability_name: str
    normalized_name: str
    per_trigger_pct: Optional[float] = None
    slowdown_pct: Optional[float] = None
    triggers_per_hour: Optional[float] = None
    pct_per_hour: Optional[float] = None
    probability_per_minute: Optional[float] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "abilityName": self.ability_name,
            "normalizedName": self.normalized_name,
            "perTriggerPct": self.per_trigger_pct,
            "slowdownPct": self.slowdown_pct,
            "triggersPerHour": self.triggers_per_hour,
            "pctPerHour": self.pct_per_hour,
            "probabilityPerMinute": self.probability_per_minute,
        }


@dataclass(frozen=True)
class SupportEntry:
    type: str
    ability_names: tuple[str, ...]
    slot_index: int
    name: Optional[str]
    species: Optional[str]
    hunger_pct: Optional[float]
    active: bool
    xp: Optional[float]
    target_scale: float
    base_score: float
    missing_stats: bool
    ability_details: tuple[SupportAbilityDetail, ...]
    total_restore_per_trigger_pct: float = 0.0
    total_restore_per_hour_pct: float = 0.0
    total_triggers_per_hour: float = 0.0
    total_slow_pct: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "abilityNames": list(self.ability_names),
            "slotIndex": self.slot_index,
            "name": self.name,
            "species": self.species,
            "hungerPct": self.hunger_pct,
            "active": self.active,
            "xp": self.xp,
            "targetScale": self.target_scale,
            "baseScore": self.base_score,
            "missingStats": self.missing_stats,
            "abilityDetails": [d.as_dict() for d in self.ability_details],
            "totalRestorePerTriggerPct": self.total_restore_per_trigger_pct,
            "totalRestorePerHourPct": self.total_restore_per_hour_pct,
            "totalTriggersPerHour": self.total_triggers_per_hour,
            "totalSlowPct": self.total_slow_pct,
        }


@dataclass(frozen=True)
class SupportSummary:
    restore_count: int = 0
    restore_active_count: int = 0
    slow_count: int = 0
    slow_active_count: int = 0
    restore_pct_total: float = 0.0
    restore_pct_active: float = 0.0
    restore_pct_per_hour_total: float = 0.0
    restore_pct_per_hour_active: float = 0.0
    restore_triggers_per_hour_total: float = 0.0
    restore_triggers_per_hour_active: float = 0.0
    slow_pct_total: float = 0.0
    slow_pct_active: float = 0.0
    entries: tuple[SupportEntry, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, Any]:
        return {
            "restoreCount": self.restore_count,
            "restoreActiveCount": self.restore_active_count,
            "slowCount": self.slow_count,
            "slowActiveCount": self.slow_active_count,
            "restorePctTotal": self.restore_pct_total,
            "restorePctActive": self.restore_pct_active,
            "restorePctPerHourTotal": self.restore_pct_per_hour_total,
            "restorePctPerHourActive": self.restore_pct_per_hour_active,
            "restoreTriggersPerHourTotal": self.restore_triggers_per_hour_total,
            "restoreTriggersPerHourActive": self.restore_triggers_per_hour_active,
            "slowPctTotal": self.slow_pct_total,
            "slowPctActive": self.slow_pct_active,
            "entries": [e.as_dict() for e in self.entries],
        }


def _restore_detail(ability_name: str, normalized: str, base_score: float) -> SupportAbilityDetail:
    level = parse_ability_level(ability_name, normalized)
    effect_pct = _by_level(RESTORE_PCT_BY_LEVEL, level)
    procs_per_minute = support_procs_per_minute(base_score, _by_level(RESTORE_PROC_ODDS_BY_LEVEL, level))
    triggers_per_hour = procs_per_minute * 60
    return SupportAbilityDetail(
        ability_name=ability_name,
        normalized_name=normalized,
        per_trigger_pct=effect_pct,
        triggers_per_hour=triggers_per_hour,
        pct_per_hour=triggers_per_hour * effect_pct,
        probability_per_minute=procs_per_minute,
    )


def _slow_detail(ability_name: str, normalized: str) -> SupportAbilityDetail:
    level = parse_ability_level(ability_name, normalized)
    return SupportAbilityDetail(
        ability_name=ability_name,
        normalized_name=normalized,
        slowdown_pct=_by_level(SLOW_PCT_BY_LEVEL, level),
    )


def build_support_entries(agent: AgentInfo, stats: AgentStats, active: bool) -> list[SupportEntry]:
    entries: list[SupportEntry] = []
    for kind, patterns in SUPPORT_PATTERNS.items():
        matches = matching_abilities(agent, patterns)
        if not matches:
            continue
        details: list[SupportAbilityDetail] = []
        for ability_name in matches:
            normalized = normalize_ability(ability_name)
            if kind == SUPPORT_RESTORE:
                details.append(_restore_detail(ability_name, normalized, stats.base_score))
            else:
                details.append(_slow_detail(ability_name, normalized))
        entries.append(
            SupportEntry(
                type=kind,
                ability_names=tuple(matches),
                slot_index=agent.slot_index,
                name=agent.name,
                species=agent.species,
                hunger_pct=agent.hunger_pct,
                active=active,
                xp=stats.xp,
                target_scale=stats.target_scale,
                base_score=stats.base_score,
                missing_stats=stats.missing_stats,
                ability_details=tuple(details),
                total_restore_per_trigger_pct=sum(d.per_trigger_pct or 0.0 for d in details),
                total_restore_per_hour_pct=sum(d.pct_per_hour or 0.0 for d in details),
                total_triggers_per_hour=sum(d.triggers_per_hour or 0.0 for d in details),
                total_slow_pct=sum(d.slowdown_pct or 0.0 for d in details),
            )
        )
    return entries


def _sort_key(entry: SupportEntry) -> tuple[int, int, str]:
    return (0 if entry.type == SUPPORT_RESTORE else 1, 0 if entry.active else 1, entry.name or "")


def summarize_support(entries: Iterable[SupportEntry]) -> SupportSummary:
    ordered = sorted(entries, key=_sort_key)
    totals: dict[str, float] = {
        "restore_count": 0,
        "restore_active_count": 0,
        "slow_count": 0,
        "slow_active_count": 0,
        "restore_pct_total": 0.0,
        "restore_pct_active": 0.0,
        "restore_pct_per_hour_total": 0.0,
        "restore_pct_per_hour_active": 0.0,
        "restore_triggers_per_hour_total": 0.0,
        "restore_triggers_per_hour_active": 0.0,
        "slow_pct_total": 0.0,
        "slow_pct_active": 0.0,
    }
    for entry in ordered:
        if entry.type == SUPPORT_RESTORE:
            totals["restore_count"] += 1
            totals["restore_pct_total"] += entry.total_restore_per_trigger_pct
            totals["restore_pct_per_hour_total"] += entry.total_restore_per_hour_pct
            totals["restore_triggers_per_hour_total"] += entry.total_triggers_per_hour
            if entry.active:
                totals["restore_active_count"] += 1
                totals["restore_pct_active"] += entry.total_restore_per_trigger_pct
                totals["restore_pct_per_hour_active"] += entry.total_restore_per_hour_pct
                totals["restore_triggers_per_hour_active"] += entry.total_triggers_per_hour
        else:
            totals["slow_count"] += 1
            totals["slow_pct_total"] += entry.total_slow_pct
            if entry.active:
                totals["slow_active_count"] += 1
                totals["slow_pct_active"] += entry.total_slow_pct
    return SupportSummary(
        restore_count=int(totals["restore_count"]),
        restore_active_count=int(totals["restore_active_count"]),
        slow_count=int(totals["slow_count"]),
        slow_active_count=int(totals["slow_active_count"]),
        restore_pct_total=totals["restore_pct_total"],
        restore_pct_active=totals["restore_pct_active"],
        restore_pct_per_hour_total=totals["restore_pct_per_hour_total"],
        restore_pct_per_hour_active=totals["restore_pct_per_hour_active"],
        restore_triggers_per_hour_total=totals["restore_triggers_per_hour_total"],
        restore_triggers_per_hour_active=totals["restore_triggers_per_hour_active"],
        slow_pct_total=totals["slow_pct_total"],
        slow_pct_active=totals["slow_pct_active"],
        entries=tuple(ordered),
    )
