"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: Timestamp conversion and HH:MM label formatting
"""

from core.utils.time import format_hour_minute, to_utc_datetime

__all__ = ["format_hour_minute", "to_utc_datetime"]
