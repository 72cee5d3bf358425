"""Region aggregation - Pure functions.

This module computes dose-rate statistics over the devices within a
radius of a point. All functions are pure with no side effects.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from src.core.geo import is_within_radius
from src.core.telemetry import DeviceRecord


# Radius used when a query does not specify one
DEFAULT_RADIUS_METERS = 10.0


@dataclass(frozen=True)
class RegionStats:
    """Dose-rate statistics for a circular region.

    Attributes:
        latitude: Query center latitude
        longitude: Query center longitude
        radius_meters: Effective radius used
        count: Number of devices in the region
        usv_min: Lowest dose rate (0 if none)
        usv_max: Highest dose rate (0 if none)
        usv_avg: Mean dose rate (0 if none)
        modified: Unix time (UTC seconds) the stats were computed
    """
    latitude: float
    longitude: float
    radius_meters: float
    count: int
    usv_min: float
    usv_max: float
    usv_avg: float
    modified: int

    def to_dict(self) -> dict[str, float | int]:
        """Convert to the JSON object embedded in a region feed."""
        return {
            "lat": self.latitude,
            "lon": self.longitude,
            "radius_meters": self.radius_meters,
            "count": self.count,
            "usv_min": self.usv_min,
            "usv_max": self.usv_max,
            "usv_avg": self.usv_avg,
            "modified": self.modified,
        }


def effective_radius(
    radius_meters: float | None,
    default_radius_meters: float = DEFAULT_RADIUS_METERS,
) -> float:
    """Substitute the default radius for a missing or zero radius.

    Pure function.
    """
    if not radius_meters:
        return default_radius_meters
    return radius_meters


def aggregate_region(
    records: Iterable[DeviceRecord],
    latitude: float,
    longitude: float,
    radius_meters: float | None = None,
    default_radius_meters: float = DEFAULT_RADIUS_METERS,
    now: datetime | None = None,
) -> RegionStats:
    """Aggregate dose rates of located devices within a radius.

    Pure function (given `now`).

    Args:
        records: Device records to scan
        latitude: Query center latitude
        longitude: Query center longitude
        radius_meters: Region radius; None or 0 uses the default
        default_radius_meters: Fallback radius
        now: Time to stamp on the result (defaults to current UTC time)

    Returns:
        RegionStats; all-zero statistics when no device matches
    """
    radius = effective_radius(radius_meters, default_radius_meters)

    count = 0
    usv_min = 0.0
    usv_max = 0.0
    usv_sum = 0.0

    for record in records:
        if not record.has_location:
            continue
        if not is_within_radius(*record.coordinates, latitude, longitude, radius):
            continue

        if count == 0:
            usv_min = record.usv
            usv_max = record.usv
        else:
            usv_min = min(usv_min, record.usv)
            usv_max = max(usv_max, record.usv)
        usv_sum += record.usv
        count += 1

    usv_avg = usv_sum / count if count > 0 else 0.0

    if now is None:
        now = datetime.now(timezone.utc)

    return RegionStats(
        latitude=latitude,
        longitude=longitude,
        radius_meters=radius,
        count=count,
        usv_min=usv_min,
        usv_max=usv_max,
        usv_avg=usv_avg,
        modified=int(now.timestamp()),
    )
