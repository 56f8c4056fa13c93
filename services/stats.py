"""
Stats Aggregator

Derives the display statistics (latest, min, max, total supply) of the active series.
"""

from typing import Optional, Sequence

from core.schemas import UNAVAILABLE, RateStats, Sample


def format_rate(value: float) -> str:
    """Fixed six fractional digits, e.g. 0.99998 -> '0.999980'."""
    return f"{value:.6f}"


def latest_total_supply(series: Sequence[Sample]) -> Optional[float]:
    """
    Most recent reported total supply.

    Scans backward from the newest sample so a latest sample that omits the
    field does not hide an earlier reading.
    """
    for sample in reversed(series):
        if sample.total_supply is not None:
            return sample.total_supply
    return None


def compute_stats(active: Sequence[Sample]) -> RateStats:
    """
    Compute display statistics for the active series.

    Args:
        active: Samples in chronological order

    Returns:
        RateStats with six-decimal strings, or "N/A" fields for an empty series
    """
    if not active:
        return RateStats()

    rates = [sample.rate for sample in active]
    supply = latest_total_supply(active)

    return RateStats(
        latest=format_rate(rates[-1]),
        min=format_rate(min(rates)),
        max=format_rate(max(rates)),
        total_supply=format_rate(supply) if supply is not None else UNAVAILABLE,
    )
