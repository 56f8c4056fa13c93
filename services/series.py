"""
Series Transformer

Turns a series of samples into chart-ready points and y-axis bounds.

Downsampling is a stride sample, not an average: when the series is longer
than `max_points`, every `len // max_points`-th sample is kept starting at
index 0. Spikes are never smoothed away, and the result is deterministic.

Axis extrema always come from the full series, so a decimated line never
hides the true minimum or maximum.
"""

from datetime import tzinfo
from typing import List, Optional, Sequence

from core.schemas import ChartSeries, Sample
from core.utils.time import format_hour_minute


DEFAULT_MAX_POINTS = 24

# Padding used when the rate range is (near) zero
MIN_Y_PADDING = 0.001
PADDING_RATIO = 0.1
_ZERO_RANGE_EPSILON = 1e-12


def downsample(series: Sequence[Sample], max_points: int) -> List[Sample]:
    """
    Stride-sample a series down to a bounded number of points.

    Returns all samples when len(series) <= max_points, otherwise the samples
    at indices 0, stride, 2*stride, ... with stride = len // max_points
    (ceil(len / stride) points).

    Raises:
        ValueError: If max_points < 1
    """
    if max_points < 1:
        raise ValueError(f"max_points must be at least 1, got {max_points}")

    if len(series) <= max_points:
        return list(series)

    stride = len(series) // max_points
    return list(series[::stride])


def y_padding(y_min: float, y_max: float) -> float:
    padding = (y_max - y_min) * PADDING_RATIO
    return padding if padding > _ZERO_RANGE_EPSILON else MIN_Y_PADDING


def to_chart_series(
    series: Sequence[Sample],
    max_points: int = DEFAULT_MAX_POINTS,
    tz: Optional[tzinfo] = None
) -> ChartSeries:
    """
    Build the chart series for a sample series.

    Args:
        series: Samples in chronological order
        max_points: Upper bound on plotted points
        tz: Zone for the HH:MM labels (None = system local zone)

    Returns:
        ChartSeries with labels, values and axis bounds

    Example:
        >>> chart = to_chart_series(samples, max_points=24, tz=timezone.utc)
        >>> chart.y_min, chart.y_max
        (0.99998, 1.00005)
    """
    if max_points < 1:
        raise ValueError(f"max_points must be at least 1, got {max_points}")

    if not series:
        return ChartSeries(labels=[], values=[], y_min=0.0, y_max=0.0, y_padding=MIN_Y_PADDING)

    rates = [sample.rate for sample in series]
    y_min, y_max = min(rates), max(rates)

    points = downsample(series, max_points)
    return ChartSeries(
        labels=[format_hour_minute(sample.timestamp, tz) for sample in points],
        values=[sample.rate for sample in points],
        y_min=y_min,
        y_max=y_max,
        y_padding=y_padding(y_min, y_max),
    )
