"""Feed formatting - Pure functions.

This module wraps query results in JSON Feed envelopes and renders the
device listing. All functions are pure with no side effects.

JSON Feed spec: https://jsonfeed.org/version/1
"""

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from src.core.aggregate import RegionStats
from src.core.config import DEFAULT_FEED_BASE_URL
from src.core.geofence import WarningResult
from src.core.telemetry import DeviceRecord, record_to_dict


JSON_FEED_VERSION = "https://jsonfeed.org/version/1"


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as an RFC 3339 UTC timestamp.

    Pure function.
    """
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _feed_url(base_url: str, latitude: float, longitude: float) -> str:
    return f"{base_url}/?lat={latitude:f}&lon={longitude:f}"


def _item_url(base_url: str, item_id: str, latitude: float, longitude: float) -> str:
    return f"{base_url}/{item_id}?lat={latitude:f}&lon={longitude:f}"


def warning_to_dict(result: WarningResult) -> dict[str, Any]:
    """Convert a WarningResult to the JSON object a device polls for.

    Pure function. Sampling advice is only included while a warning is
    active.
    """
    data: dict[str, Any] = {"warning": result.warning}

    if result.warning:
        if result.sample_mins is not None:
            data["sample_mins"] = result.sample_mins
        if result.outbound_mins is not None:
            data["outbound_mins"] = result.outbound_mins
        if result.alert_mins is not None:
            data["alert_mins"] = result.alert_mins

    return data


def format_region_feed(
    stats: RegionStats,
    now: datetime,
    base_url: str = DEFAULT_FEED_BASE_URL,
) -> dict[str, Any]:
    """Wrap region statistics in a JSON Feed.

    Pure function.

    Args:
        stats: Aggregated region statistics
        now: Publication time
        base_url: Base URL for feed and item links

    Returns:
        JSON Feed dict with a single 'region' item
    """
    published = format_timestamp(now)
    lat, lon = stats.latitude, stats.longitude

    item = {
        "id": "region",
        "url": _item_url(base_url, "region", lat, lon),
        "content_text": json.dumps(stats.to_dict()),
        "date_published": published,
        "date_modified": published,
    }

    return {
        "version": JSON_FEED_VERSION,
        "title": f"radnote geofeed for {lat:f},{lon:f}",
        "feed_url": _feed_url(base_url, lat, lon),
        "items": [item],
    }


def format_warning_feed(
    result: WarningResult,
    latitude: float,
    longitude: float,
    now: datetime,
    base_url: str = DEFAULT_FEED_BASE_URL,
) -> dict[str, Any]:
    """Wrap a geofence result in a JSON Feed.

    Pure function.

    Args:
        result: Geofence evaluation result
        latitude: Query latitude
        longitude: Query longitude
        now: Publication time
        base_url: Base URL for feed and item links

    Returns:
        JSON Feed dict with a single item
    """
    item = {
        "id": "1",
        "url": _item_url(base_url, "1", latitude, longitude),
        "content_text": json.dumps(warning_to_dict(result)),
        "date_published": format_timestamp(now),
    }

    return {
        "version": JSON_FEED_VERSION,
        "title": f"radnote warnings for {latitude:f},{longitude:f}",
        "feed_url": _feed_url(base_url, latitude, longitude),
        "items": [item],
    }


def format_device_listing(records: Mapping[str, DeviceRecord]) -> str:
    """Render all device records as indented JSON.

    Pure function.

    Args:
        records: Mapping of device ID to record

    Returns:
        JSON text keyed by device ID
    """
    data = {
        device_id: record_to_dict(record)
        for device_id, record in sorted(records.items())
    }
    return json.dumps(data, indent=4)
