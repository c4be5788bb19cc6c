"""Median, spread and the spread -> confidence step function."""

from __future__ import annotations

from collections.abc import Sequence

# (exclusive upper bound on spread %, confidence)
SPREAD_CONFIDENCE_STEPS: tuple[tuple[float, float], ...] = ((1.0, 95.0), (2.0, 85.0), (5.0, 75.0))
WIDE_SPREAD_CONFIDENCE = 50.0


def median(values: Sequence[float]) -> float:
    """Median of a non-empty sequence. Order-independent."""
    if not values:
        raise ValueError("median of empty sequence")
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def spread_pct(values: Sequence[float]) -> float:
    """(max - min) / median * 100. Zero for fewer than two values or a non-positive median."""
    if len(values) < 2:
        return 0.0
    mid = median(values)
    if mid <= 0:
        return 0.0
    return (max(values) - min(values)) / mid * 100


def confidence_from_spread(spread: float) -> float:
    """<1% -> 95, <2% -> 85, <5% -> 75, otherwise 50."""
    for bound, confidence in SPREAD_CONFIDENCE_STEPS:
        if spread < bound:
            return confidence
    return WIDE_SPREAD_CONFIDENCE
