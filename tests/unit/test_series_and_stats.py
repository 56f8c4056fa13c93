"""
Unit Tests for the Series Transformer and Stats Aggregator

These tests verify that:
- Downsampling keeps every floor(len / max_points)-th sample starting at index 0
- Axis extrema and statistics always come from the full series
- Padding never collapses to zero
- Labels are 24-hour HH:MM in the requested zone
- Statistics are six-decimal strings or "N/A"

Run with:
    pytest tests/unit/test_series_and_stats.py -v
"""

import math
from datetime import timedelta, timezone

import pytest

from core.schemas import MAX_TIMESTAMP, Sample
from core.utils.time import to_utc_datetime
from services.series import MIN_Y_PADDING, downsample, to_chart_series
from services.stats import compute_stats, latest_total_supply


def make_series(rates, start=0, step=3600, supplies=None):
    supplies = supplies or [None] * len(rates)
    return [
        Sample(timestamp=start + i * step, rate=rate, total_supply=supply)
        for i, (rate, supply) in enumerate(zip(rates, supplies))
    ]


# ============================================
# Tests for Downsampling
# ============================================

class TestDownsample:
    """Tests for stride downsampling"""

    @pytest.mark.parametrize("length", [0, 1, 23, 24])
    def test_short_series_untouched(self, length):
        series = make_series([float(i) for i in range(length)])
        assert downsample(series, 24) == series

    @pytest.mark.parametrize("length", [25, 47, 48, 49, 100, 1000])
    def test_long_series_bound(self, length):
        series = make_series([float(i) for i in range(length)])
        stride = length // 24
        points = downsample(series, 24)

        assert len(points) == math.ceil(length / stride)
        assert len(points) <= length
        assert points[0] is series[0]
        assert [p.timestamp for p in points] == [series[i].timestamp for i in range(0, length, stride)]

    def test_stride_for_25_is_one(self):
        """floor(25 / 24) == 1, so every sample is kept"""
        series = make_series([float(i) for i in range(25)])
        assert len(downsample(series, 24)) == 25

    def test_invalid_max_points(self):
        with pytest.raises(ValueError):
            downsample(make_series([1.0]), 0)


# ============================================
# Tests for Chart Series
# ============================================

class TestToChartSeries:
    """Tests for to_chart_series"""

    def test_empty_series(self):
        chart = to_chart_series([], 24, timezone.utc)
        assert chart.labels == []
        assert chart.values == []
        assert chart.y_min == 0
        assert chart.y_max == 0
        assert chart.y_padding == 0.001

    def test_extrema_from_full_series(self):
        """A spike skipped by the stride still defines the axis"""
        rates = [1.0] * 96
        rates[1] = 5.0   # not on the stride (stride 4)
        rates[2] = -3.0
        chart = to_chart_series(make_series(rates), 24, timezone.utc)

        assert 5.0 not in chart.values
        assert chart.y_max == 5.0
        assert chart.y_min == -3.0

    def test_padding_is_ten_percent_of_range(self):
        chart = to_chart_series(make_series([1.0, 2.0]), 24, timezone.utc)
        assert chart.y_padding == pytest.approx(0.1)

    def test_flat_series_padding_floor(self):
        chart = to_chart_series(make_series([1.5, 1.5, 1.5]), 24, timezone.utc)
        assert chart.y_padding == MIN_Y_PADDING
        assert chart.axis_bounds() == pytest.approx((1.499, 1.501))

    def test_labels_are_24h_hour_minute(self):
        series = make_series([1.0, 1.0, 1.0], start=1704110400, step=13 * 3600 + 5 * 60)
        chart = to_chart_series(series, 24, timezone.utc)
        assert chart.labels == ["12:00", "01:05", "14:10"]

    def test_labels_follow_zone(self):
        series = make_series([1.0], start=1704110400)
        chart = to_chart_series(series, 24, timezone(timedelta(hours=2)))
        assert chart.labels == ["14:00"]

    def test_values_match_labels(self):
        series = make_series([float(i) for i in range(100)])
        chart = to_chart_series(series, 24, timezone.utc)
        assert len(chart.labels) == len(chart.values) == 25
        assert chart.values[:3] == [0.0, 4.0, 8.0]


# ============================================
# Tests for Statistics
# ============================================

class TestComputeStats:
    """Tests for compute_stats"""

    def test_history_scenario(self):
        series = [
            Sample(timestamp=0, rate=1.000000),
            Sample(timestamp=3600, rate=1.000050),
            Sample(timestamp=7200, rate=0.999980),
        ]
        stats = compute_stats(series)
        assert stats.latest == "0.999980"
        assert stats.min == "0.999980"
        assert stats.max == "1.000050"

    def test_empty_series_unavailable(self):
        stats = compute_stats([])
        assert stats.latest == "N/A"
        assert stats.min == "N/A"
        assert stats.max == "N/A"
        assert stats.total_supply == "N/A"

    def test_fixed_six_decimals(self):
        stats = compute_stats(make_series([2.0]))
        assert stats.latest == "2.000000"

    def test_total_supply_from_latest(self):
        stats = compute_stats(make_series([1.0, 1.1], supplies=[100.0, 200.25]))
        assert stats.total_supply == "200.250000"

    def test_total_supply_scans_backward(self):
        series = make_series([1.0, 1.1, 1.2], supplies=[100.0, 150.5, None])
        assert latest_total_supply(series) == 150.5
        assert compute_stats(series).total_supply == "150.500000"

    def test_total_supply_unavailable_when_never_reported(self):
        assert compute_stats(make_series([1.0, 1.1])).total_supply == "N/A"

    def test_extrema_over_whole_series(self):
        rates = [1.0 + (i % 7) * 0.001 for i in range(500)]
        stats = compute_stats(make_series(rates))
        assert stats.min == "1.000000"
        assert stats.max == "1.006000"


# ============================================
# Tests for Time Helpers
# ============================================

class TestTimeHelpers:
    """Tests for seconds-only timestamp conversion"""

    def test_seconds_are_never_rescaled(self):
        """Values above 1e12 are out of range seconds, not milliseconds"""
        with pytest.raises(ValueError):
            to_utc_datetime(1_704_110_400_000)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_utc_datetime(-1)

    @pytest.mark.parametrize("tz", [timezone.utc, timezone(timedelta(hours=14)), timezone(timedelta(hours=-12)), None])
    def test_latest_sample_time_formats_in_any_zone(self, tz):
        chart = to_chart_series([Sample(timestamp=MAX_TIMESTAMP, rate=1.0)], 24, tz)
        assert len(chart.labels) == 1
