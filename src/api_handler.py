"""Web API Handler - Radnote ingestion and radiation queries.

This module provides the HTTP endpoints Notehub routes events to and
that devices poll for geofence feeds.
Part of the imperative shell - handles HTTP I/O.
"""

import json
import logging
import math
from datetime import datetime, timezone
from typing import Any

from flask import Request, Response

from src.core.aggregate import aggregate_region
from src.core.config import Config, validate_location
from src.core.formatter import (
    format_device_listing,
    format_region_feed,
    format_timestamp,
    format_warning_feed,
)
from src.core.geo import is_located
from src.core.geofence import evaluate_warning
from src.core.telemetry import parse_envelope
from src.shell.device_store import DeviceEventStore, StoreBusyError

logger = logging.getLogger(__name__)


# Query mode that returns a geofence warning feed instead of region stats
MODE_WARNING = "warning"


class QueryParamError(ValueError):
    """Raised when a query parameter is present but not a finite number."""


def _json_response(data: Any, status: int = 200) -> Response:
    """Create a JSON response."""
    return Response(
        json.dumps(data, default=str),
        status=status,
        mimetype="application/json",
    )


def _error_response(message: str, status: int) -> Response:
    return _json_response({"status": "error", "message": message}, status=status)


def _float_param(request: Request, name: str) -> float | None:
    """Read an optional numeric query parameter.

    Raises:
        QueryParamError: If the parameter is present but not a finite number
    """
    raw = request.args.get(name, "")
    if raw == "":
        return None
    message = f"Query parameter '{name}' must be a finite number, got {raw!r}"
    try:
        value = float(raw)
    except ValueError:
        raise QueryParamError(message)
    if not math.isfinite(value):
        raise QueryParamError(message)
    return value


def ingest_radnote(
    request: Request,
    store: DeviceEventStore,
) -> Response:
    """API endpoint: Accept a Radnote event routed from Notehub.

    Body: Notehub event JSON (device, when, file, best_lat, best_lon, body)

    Returns:
        200 with {"status": "ok", "accepted": bool}; 400 if the body is not
        a decodable event; 503 if the store is busy
    """
    if request.method != "POST":
        return _error_response(f"Method {request.method} not allowed", 405)

    raw = request.get_data()

    try:
        envelope = parse_envelope(json.loads(raw))
    except ValueError as e:
        # Covers MalformedEnvelopeError, JSONDecodeError and UnicodeDecodeError
        logger.warning("Rejecting malformed event (%d bytes): %s", len(raw), e)
        return _error_response(str(e), 400)

    logger.debug(
        "Event from %s on %s (%d bytes)",
        envelope.device_id,
        envelope.notefile_id,
        len(raw),
    )

    try:
        accepted = store.record_event(envelope)
    except StoreBusyError as e:
        logger.warning("Dropping event from %s: %s", envelope.device_id, e)
        return _error_response(str(e), 503)

    if accepted:
        logger.info(
            "Recorded %s at %f,%f (when=%s)",
            envelope.device_id,
            envelope.best_latitude,
            envelope.best_longitude,
            envelope.occurred_at,
        )

    return _json_response({"status": "ok", "accepted": accepted})


def query_radiation(
    request: Request,
    store: DeviceEventStore,
    config: Config,
    now: datetime | None = None,
) -> Response:
    """API endpoint: Radiation feed for a location, or all device records.

    Query params:
        lat, lon: Query location; if absent (or 0,0) all records are listed
        radius_meters: Region radius (default from config)
        mode: 'warning' for a geofence warning feed instead of region stats

    Returns:
        JSON Feed for a location, indented JSON listing otherwise
    """
    if now is None:
        now = datetime.now(timezone.utc)

    try:
        lat = _float_param(request, "lat")
        lon = _float_param(request, "lon")
        radius_meters = _float_param(request, "radius_meters")
    except QueryParamError as e:
        logger.warning("Rejecting query: %s", e)
        return _error_response(str(e), 400)

    if lat is not None and lon is not None:
        errors = validate_location(lat, lon, "lat/lon")
        if errors:
            message = "; ".join(e.message for e in errors)
            logger.warning("Rejecting query: %s", message)
            return _error_response(message, 400)

    if radius_meters is not None and radius_meters < 0:
        logger.warning("Rejecting query: negative radius %s", radius_meters)
        return _error_response(f"radius_meters must not be negative, got {radius_meters}", 400)

    try:
        records = store.snapshot()
    except StoreBusyError as e:
        logger.warning("Query abandoned: %s", e)
        return _error_response(str(e), 503)

    if lat is None or lon is None or not is_located(lat, lon):
        return Response(
            format_device_listing(records),
            status=200,
            mimetype="application/json",
        )

    if request.args.get("mode") == MODE_WARNING:
        result = evaluate_warning(records.values(), lat, lon, config)
        feed = format_warning_feed(result, lat, lon, now, config.feed_base_url)
        return _json_response(feed)

    stats = aggregate_region(
        records.values(),
        lat,
        lon,
        radius_meters,
        default_radius_meters=config.default_query_radius_meters,
        now=now,
    )

    if stats.count == 0:
        logger.info(
            "No devices within %.0f m of %f,%f (%d known)",
            stats.radius_meters,
            lat,
            lon,
            len(records),
        )

    return _json_response(format_region_feed(stats, now, config.feed_base_url))


def ping(request: Request) -> Response:
    """API endpoint: Health check returning the current UTC time."""
    return Response(
        format_timestamp(datetime.now(timezone.utc)),
        status=200,
        mimetype="text/plain",
    )
