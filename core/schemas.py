"""
Normalized Data Schemas

This module defines Pydantic models for the rate data flowing through the
engine and for the derived values handed to the presentation layer.

Models:
    - Sample: one timestamped rate observation (history item or live event)
    - ViewMode: which data source currently drives the display
    - ChartSeries: downsampled chart points plus axis bounds
    - RateStats: formatted latest/min/max/total-supply values
    - ViewSnapshot: full presentation state of the controller

Parsing helpers:
    - parse_sample(): validate a decoded JSON object into a Sample
    - parse_sample_json(): decode + validate a raw JSON text payload

Both helpers raise MalformedSample; callers drop the offending item and keep going.
"""

import json
import math
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.errors import MalformedSample


# Latest timestamp (9999-12-30T00:00:00Z) that still renders in every display zone
MAX_TIMESTAMP = 253402128000

# Marker shown for any statistic that cannot be computed
UNAVAILABLE = "N/A"


# ============================================
# Sample Schema
# ============================================

class Sample(BaseModel):
    """
    One observation of the rate metric.

    Attributes:
        timestamp: Seconds since epoch
        rate: Primary metric (e.g. pufETH/ETH conversion rate)
        total_supply: Token supply at that time, when the source reports it
        assets: Total assets backing the supply, when reported
        supply: Circulating supply, when reported

    Example:
        >>> Sample(timestamp=1704110400, rate=1.02, total_supply="1250.5")
        Sample(timestamp=1704110400, rate=1.02, total_supply=1250.5, assets=None, supply=None)

    Notes:
        - The backend formats supply figures as decimal strings; they are coerced to float
        - An empty supply string is treated as absent
        - Unknown fields are ignored
        - Timestamps must be finite and no later than MAX_TIMESTAMP
    """

    timestamp: int = Field(..., ge=0, le=MAX_TIMESTAMP, description="Observation time in seconds since epoch")
    rate: float = Field(..., allow_inf_nan=False, description="Primary rate metric")
    total_supply: Optional[float] = Field(default=None, allow_inf_nan=False)
    assets: Optional[float] = Field(default=None, allow_inf_nan=False)
    supply: Optional[float] = Field(default=None, allow_inf_nan=False)

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        json_schema_extra={
            "example": {
                "timestamp": 1704110400,
                "rate": 1.021534,
                "total_supply": 152340.118,
            }
        }
    )

    @field_validator("timestamp", mode="before")
    @classmethod
    def validate_timestamp(cls, v: Any) -> int:
        """Accept finite numbers only (floats are truncated to whole seconds)."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError(f"timestamp must be numeric, got {type(v).__name__}")
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError(f"timestamp must be finite, got {v}")
        return int(v)

    @field_validator("rate", mode="before")
    @classmethod
    def validate_rate(cls, v: Any) -> Any:
        """Reject booleans, which pydantic would otherwise coerce to 0/1."""
        if isinstance(v, bool):
            raise ValueError("rate must be numeric")
        return v

    @field_validator("total_supply", "assets", "supply", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        if isinstance(v, bool):
            raise ValueError("supply figures must be numeric")
        return v


def parse_sample(payload: Any) -> Sample:
    """
    Validate a decoded JSON value into a Sample.

    Args:
        payload: Decoded JSON value (expected to be an object)

    Returns:
        Sample: The validated sample

    Raises:
        MalformedSample: If the payload is not an object, lacks `rate`,
            or carries a non-numeric, non-finite or out-of-range `timestamp`
    """
    if not isinstance(payload, dict):
        raise MalformedSample(detail=f"expected object, got {type(payload).__name__}")
    try:
        return Sample.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise MalformedSample(detail=f"invalid fields: {fields}") from e


def parse_sample_json(raw: str) -> Sample:
    """
    Decode a JSON text payload (e.g. an SSE `data` field) into a Sample.

    Raises:
        MalformedSample: If the text is not valid JSON or not a valid sample
    """
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedSample(detail=f"invalid JSON: {str(raw)[:100]}") from e
    return parse_sample(payload)


# ============================================
# View Mode
# ============================================

class ViewMode(str, Enum):
    """Data source currently driving the display."""

    HISTORY = "history"
    LIVE = "live"


# ============================================
# Derived Presentation Models
# ============================================

class ChartSeries(BaseModel):
    """
    Chart-ready series produced by the series transformer.

    Attributes:
        labels: HH:MM labels, one per plotted point
        values: Rate values, one per plotted point
        y_min: Minimum rate over the full (undownsampled) series
        y_max: Maximum rate over the full (undownsampled) series
        y_padding: Padding added above and below the extrema on the y axis
    """

    labels: List[str] = Field(default_factory=list)
    values: List[float] = Field(default_factory=list)
    y_min: float = 0.0
    y_max: float = 0.0
    y_padding: float = 0.001

    def axis_bounds(self) -> Tuple[float, float]:
        """Y-axis range for the chart surface: extrema widened by the padding."""
        return (self.y_min - self.y_padding, self.y_max + self.y_padding)


class RateStats(BaseModel):
    """
    Display statistics for the active series.

    Every field is either a fixed six-decimal string or UNAVAILABLE ("N/A").
    """

    latest: str = UNAVAILABLE
    min: str = UNAVAILABLE
    max: str = UNAVAILABLE
    total_supply: str = UNAVAILABLE


class ViewSnapshot(BaseModel):
    """
    Complete presentation state of a RateViewController.

    This is what the host shell serves on GET /view and pushes over /ws/view.
    """

    mode: ViewMode
    loading: bool
    error: Optional[str] = None
    sample_count: int = 0
    stats: RateStats
    chart: ChartSeries
