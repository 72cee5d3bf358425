"""Geographic calculations - Pure functions.

This module provides distance calculations between device locations and
query points. All functions are pure with no side effects.
"""

import math


# Earth's mean radius in meters
EARTH_RADIUS_M = 6_371_000.0


def meters_apart(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate distance between two points using Haversine formula.

    Pure function. Haversine keeps its precision for sub-meter separations,
    where the spherical law of cosines does not. Coordinates are not
    validated.

    Args:
        lat1: Latitude of first point in degrees
        lon1: Longitude of first point in degrees
        lat2: Latitude of second point in degrees
        lon2: Longitude of second point in degrees

    Returns:
        Distance in meters
    """
    # Convert to radians
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    # Haversine formula
    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Clamp: rounding can push a above 1 for antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def is_located(latitude: float, longitude: float) -> bool:
    """Check whether a coordinate pair is a known location.

    Pure function. Devices that have not yet reported a location carry
    (0, 0), so that pair is treated as "location unknown".
    """
    return latitude != 0 or longitude != 0


def is_within_radius(
    latitude: float,
    longitude: float,
    center_lat: float,
    center_lon: float,
    radius_m: float,
) -> bool:
    """Check if a point is within a radius of a center point.

    Pure function.

    Args:
        latitude: Point latitude
        longitude: Point longitude
        center_lat: Center point latitude
        center_lon: Center point longitude
        radius_m: Radius in meters (inclusive)

    Returns:
        True if the point is within radius
    """
    distance = meters_apart(latitude, longitude, center_lat, center_lon)
    return distance <= radius_m
