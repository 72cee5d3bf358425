"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Telemetry envelope decoding
- Geo/distance calculations
- Geofence warning evaluation
- Region dose-rate aggregation
- Feed formatting

All functions here are deterministic and have no I/O.
"""

from src.core.telemetry import (
    DeviceRecord,
    MalformedEnvelopeError,
    TelemetryEnvelope,
    parse_envelope,
)
from src.core.geo import meters_apart, is_located, is_within_radius
from src.core.geofence import WarningResult, evaluate_warning, is_location_in_warning_region
from src.core.aggregate import RegionStats, aggregate_region
from src.core.formatter import format_region_feed, format_warning_feed

__all__ = [
    # Telemetry
    "DeviceRecord",
    "MalformedEnvelopeError",
    "TelemetryEnvelope",
    "parse_envelope",
    # Geo
    "meters_apart",
    "is_located",
    "is_within_radius",
    # Geofence
    "WarningResult",
    "evaluate_warning",
    "is_location_in_warning_region",
    # Aggregate
    "RegionStats",
    "aggregate_region",
    # Formatter
    "format_region_feed",
    "format_warning_feed",
]
