"""One-sigma lucky/unlucky band around an adjusted growth estimate."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterable

from .scoring import Contribution


MINUTES_PER_PROC: dict[str, float] = {"plant": 5.0, "egg": 10.0}
MAX_PROC_PROBABILITY = 0.99


@dataclass(frozen=True)
class ConfidenceBand:
    lucky_minutes: float
    unlucky_minutes: float
    std_minutes: float


def estimate_confidence(
    kind: str,
    adjusted_minutes: float,
    contributions: Iterable[Contribution],
) -> ConfidenceBand:
    """Treat each contribution as per-minute Bernoulli trials over the runtime.

    Each success is worth ``minutes_per_proc * base_score / 100`` minutes, so
    the binomial variance over ``runtime`` trials is summed across pets.
    """
    minutes_per_proc = MINUTES_PER_PROC.get(kind, MINUTES_PER_PROC["plant"])
    runtime_minutes = max(1.0, adjusted_minutes)
    variance_minutes = 0.0
    for entry in contributions:
        reduction_per_proc = minutes_per_proc * entry.base_score / 100
        if reduction_per_proc <= 0:
            continue
        probability = min(MAX_PROC_PROBABILITY, max(0.0, entry.rate_contribution / reduction_per_proc))
        if probability <= 0:
            continue
        variance_minutes += runtime_minutes * probability * (1 - probability) * reduction_per_proc**2

    if variance_minutes <= 0 or not math.isfinite(variance_minutes):
        return ConfidenceBand(lucky_minutes=adjusted_minutes, unlucky_minutes=adjusted_minutes, std_minutes=0.0)
    std_minutes = math.sqrt(variance_minutes)
    return ConfidenceBand(
        lucky_minutes=max(0.0, adjusted_minutes - std_minutes),
        unlucky_minutes=adjusted_minutes + std_minutes,
        std_minutes=std_minutes,
    )
