"""Geofence evaluation - Pure functions.

This module decides whether a location lies inside a warning region,
i.e. near a device currently reporting a hazardous dose rate. All
functions are pure with no side effects.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from src.core.config import Config
from src.core.geo import is_within_radius
from src.core.telemetry import DeviceRecord


@dataclass(frozen=True)
class WarningResult:
    """Result of a geofence check.

    Sampling fields are advisory and only set while a warning is active.

    Attributes:
        warning: True if the location is inside a warning region
        sample_mins: Suggested sampling period in minutes
        outbound_mins: Suggested outbound sync period in minutes
        alert_mins: How long the alert should stay active in minutes
    """
    warning: bool
    sample_mins: int | None = None
    outbound_mins: int | None = None
    alert_mins: int | None = None


def is_hazardous(record: DeviceRecord, alert_level_usv: float) -> bool:
    """Check if a record's dose rate is at or above the alert level.

    Pure function.
    """
    return record.usv >= alert_level_usv


def is_location_in_warning_region(
    records: Iterable[DeviceRecord],
    latitude: float,
    longitude: float,
    alert_level_usv: float,
    alert_region_meters: float,
) -> bool:
    """Check whether a location is near any hazardous, located device.

    Pure function. Stops at the first qualifying record, so scan order
    does not matter.

    Args:
        records: Device records to scan
        latitude: Query latitude
        longitude: Query longitude
        alert_level_usv: Dose rate threshold (inclusive)
        alert_region_meters: Warning radius in meters (inclusive)

    Returns:
        True if at least one record qualifies
    """
    for record in records:
        if not is_hazardous(record, alert_level_usv):
            continue
        if not record.has_location:
            continue
        if is_within_radius(*record.coordinates, latitude, longitude, alert_region_meters):
            return True

    return False


def evaluate_warning(
    records: Iterable[DeviceRecord],
    latitude: float,
    longitude: float,
    config: Config,
) -> WarningResult:
    """Evaluate the geofence for a location using configured thresholds.

    Pure function.

    Args:
        records: Device records to scan
        latitude: Query latitude
        longitude: Query longitude
        config: Application configuration

    Returns:
        WarningResult, with sampling advice when the warning is active
    """
    in_region = is_location_in_warning_region(
        records,
        latitude,
        longitude,
        config.alert_level_usv,
        config.alert_region_meters,
    )

    if not in_region:
        return WarningResult(warning=False)

    return WarningResult(
        warning=True,
        sample_mins=config.alert_sample_minutes,
        outbound_mins=config.alert_sync_minutes,
        alert_mins=config.alert_minutes or None,
    )
