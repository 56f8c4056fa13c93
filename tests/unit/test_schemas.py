"""
Unit Tests for Sample Parsing

These tests verify that:
- Valid payloads become Sample objects (with decimal-string coercion)
- Malformed payloads raise MalformedSample instead of leaking into a series

Run with:
    pytest tests/unit/test_schemas.py -v
"""

import pytest

from core.errors import MalformedSample
from core.schemas import (
    MAX_TIMESTAMP, ChartSeries, RateStats, Sample, ViewMode, parse_sample, parse_sample_json
)


class TestParseSample:
    """Tests for parse_sample"""

    def test_minimal_payload(self):
        sample = parse_sample({"timestamp": 1704110400, "rate": 1.0215})
        assert sample.timestamp == 1704110400
        assert sample.rate == 1.0215
        assert sample.total_supply is None

    def test_total_supply_numeric(self):
        sample = parse_sample({"timestamp": 0, "rate": 1.0, "total_supply": 1250.5})
        assert sample.total_supply == 1250.5

    def test_total_supply_decimal_string_is_coerced(self):
        """The backend formats supply figures as decimal strings"""
        sample = parse_sample({"timestamp": 0, "rate": 1.0, "total_supply": "152340.118"})
        assert sample.total_supply == pytest.approx(152340.118)

    def test_empty_supply_string_is_absent(self):
        sample = parse_sample({"timestamp": 0, "rate": 1.0, "total_supply": "", "assets": "", "supply": ""})
        assert sample.total_supply is None
        assert sample.assets is None
        assert sample.supply is None

    def test_float_timestamp_is_truncated(self):
        sample = parse_sample({"timestamp": 1704110400.9, "rate": 1.0})
        assert sample.timestamp == 1704110400

    def test_unknown_fields_ignored(self):
        sample = parse_sample({"timestamp": 0, "rate": 1.0, "block": 19000000})
        assert not hasattr(sample, "block")

    def test_missing_rate_rejected(self):
        with pytest.raises(MalformedSample):
            parse_sample({"timestamp": 0})

    def test_non_numeric_rate_rejected(self):
        with pytest.raises(MalformedSample):
            parse_sample({"timestamp": 0, "rate": "abc"})

    def test_boolean_rate_rejected(self):
        with pytest.raises(MalformedSample):
            parse_sample({"timestamp": 0, "rate": True})

    def test_non_numeric_timestamp_rejected(self):
        with pytest.raises(MalformedSample):
            parse_sample({"timestamp": "yesterday", "rate": 1.0})

    def test_nan_rate_rejected(self):
        with pytest.raises(MalformedSample):
            parse_sample({"timestamp": 0, "rate": float("nan")})

    def test_non_object_rejected(self):
        with pytest.raises(MalformedSample):
            parse_sample([0, 1.0])

    def test_error_payload_rejected(self):
        """The backend emits {"error": ...} events when it cannot read the rate"""
        with pytest.raises(MalformedSample):
            parse_sample({"error": "rpc unavailable"})

    @pytest.mark.parametrize("timestamp", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_timestamp_rejected(self, timestamp):
        with pytest.raises(MalformedSample):
            parse_sample({"timestamp": timestamp, "rate": 1.0})

    def test_timestamp_beyond_calendar_rejected(self):
        with pytest.raises(MalformedSample):
            parse_sample({"timestamp": 10**15, "rate": 1.0})

    def test_latest_supported_timestamp_accepted(self):
        sample = parse_sample({"timestamp": MAX_TIMESTAMP, "rate": 1.0})
        assert sample.timestamp == MAX_TIMESTAMP

    def test_malformed_sample_is_value_error(self):
        with pytest.raises(ValueError):
            parse_sample({})


class TestParseSampleJson:
    """Tests for parse_sample_json"""

    def test_valid_json(self):
        sample = parse_sample_json('{"timestamp": 10, "rate": 0.5}')
        assert sample == Sample(timestamp=10, rate=0.5)

    def test_invalid_json(self):
        with pytest.raises(MalformedSample, match="invalid JSON"):
            parse_sample_json("not json{{")

    @pytest.mark.parametrize("raw", [
        '{"timestamp": 1e400, "rate": 1.0}',
        '{"timestamp": Infinity, "rate": 1.0}',
        '{"timestamp": NaN, "rate": 1.0}',
        '{"timestamp": 0, "rate": 1e400}',
        '{"timestamp": 0, "rate": 1.0, "total_supply": Infinity}',
    ])
    def test_non_finite_numbers_rejected(self, raw):
        """json.loads turns these into inf/nan floats"""
        with pytest.raises(MalformedSample):
            parse_sample_json(raw)


class TestPresentationModels:
    """Tests for derived presentation models"""

    def test_rate_stats_default_unavailable(self):
        stats = RateStats()
        assert stats.latest == stats.min == stats.max == stats.total_supply == "N/A"

    def test_chart_axis_bounds(self):
        chart = ChartSeries(labels=["00:00"], values=[1.0], y_min=1.0, y_max=2.0, y_padding=0.1)
        assert chart.axis_bounds() == (0.9, 2.1)

    def test_view_mode_values(self):
        assert ViewMode("history") is ViewMode.HISTORY
        assert ViewMode("live") is ViewMode.LIVE
