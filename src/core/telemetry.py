"""Telemetry data models and parsing - Pure functions.

This module decodes Notehub event envelopes into typed objects and
extracts the radiation fields a Radnote reports. All functions are pure
with no side effects.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any

from src.core.geo import is_located


# Notefile carrying Radnote air/radiation readings
RADIATION_NOTEFILE = "_air.qo"


class MalformedEnvelopeError(ValueError):
    """Raised when an inbound event cannot be decoded into an envelope."""


@dataclass(frozen=True)
class RadiationReading:
    """Radiation fields from a Radnote event body.

    Attributes:
        usv: Dose rate in microsieverts per hour
        cpm: Counts per minute
        cpm_count: Raw count over the count window
        count_secs: Length of the count window in seconds
        sensor: Sensor identifier
        temperature: Temperature in degrees Celsius
        voltage: Supply voltage
    """
    usv: float = 0.0
    cpm: float | None = None
    cpm_count: int | None = None
    count_secs: int | None = None
    sensor: str | None = None
    temperature: float | None = None
    voltage: float | None = None


@dataclass(frozen=True)
class TelemetryEnvelope:
    """Immutable decoded Notehub event.

    Attributes:
        device_id: Unique device identifier (e.g. 'dev:864475044208290')
        occurred_at: Event time in seconds since epoch
        notefile_id: Notefile the event was added to
        best_latitude: Best known latitude (0 when unknown)
        best_longitude: Best known longitude (0 when unknown)
        payload: Untyped event body
    """
    device_id: str
    occurred_at: float
    notefile_id: str = ""
    best_latitude: float = 0.0
    best_longitude: float = 0.0
    payload: dict[str, Any] | None = None

    @property
    def is_radiation_reading(self) -> bool:
        """Return True if this envelope carries a radiation reading."""
        return self.notefile_id == RADIATION_NOTEFILE


@dataclass(frozen=True)
class DeviceRecord:
    """Last known state of one device.

    Attributes:
        device_id: Unique device identifier
        occurred_at: Time of the reading in seconds since epoch
        best_latitude: Latitude at time of reading (0 when unknown)
        best_longitude: Longitude at time of reading (0 when unknown)
        usv: Dose rate in microsieverts per hour
        notefile_id: Notefile the reading arrived on
        cpm: Counts per minute
        cpm_count: Raw count over the count window
        count_secs: Length of the count window in seconds
        sensor: Sensor identifier
        temperature: Temperature in degrees Celsius
        voltage: Supply voltage
    """
    device_id: str
    occurred_at: float
    best_latitude: float
    best_longitude: float
    usv: float
    notefile_id: str = RADIATION_NOTEFILE
    cpm: float | None = None
    cpm_count: int | None = None
    count_secs: int | None = None
    sensor: str | None = None
    temperature: float | None = None
    voltage: float | None = None

    @property
    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) tuple."""
        return (self.best_latitude, self.best_longitude)

    @property
    def has_location(self) -> bool:
        """Return True unless the record carries the (0, 0) sentinel."""
        return is_located(self.best_latitude, self.best_longitude)


def _optional_float(value: Any) -> float | None:
    """Coerce a payload value to float, or None if not a finite number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    # json.loads accepts NaN and Infinity
    if not math.isfinite(number):
        return None
    return number


def _optional_int(value: Any) -> int | None:
    """Coerce a payload value to int, or None if not numeric."""
    number = _optional_float(value)
    return None if number is None else int(number)


def _required_number(data: dict[str, Any], key: str, default: float | None = None) -> float:
    value = data.get(key, default)
    number = _optional_float(value)
    if number is None:
        raise MalformedEnvelopeError(f"Field '{key}' must be a finite number, got {value!r}")
    return number


def parse_radiation_reading(payload: dict[str, Any] | None) -> RadiationReading:
    """Extract radiation fields from an event body.

    Pure function. Unknown keys are ignored and non-numeric values are
    dropped, mirroring how a typed decode of the body would behave.

    Args:
        payload: Event body dict (may be None)

    Returns:
        RadiationReading, with usv 0.0 if absent
    """
    if not payload:
        return RadiationReading()

    sensor = payload.get("sensor")

    return RadiationReading(
        usv=_optional_float(payload.get("usv")) or 0.0,
        cpm=_optional_float(payload.get("cpm")),
        cpm_count=_optional_int(payload.get("cpm_count")),
        count_secs=_optional_int(payload.get("csecs")),
        sensor=sensor if isinstance(sensor, str) else None,
        temperature=_optional_float(payload.get("temperature")),
        voltage=_optional_float(payload.get("voltage")),
    )


def parse_envelope(event: Any) -> TelemetryEnvelope:
    """Decode a Notehub event object into a TelemetryEnvelope.

    Pure function.

    Args:
        event: Decoded JSON value of the POSTed event

    Returns:
        TelemetryEnvelope

    Raises:
        MalformedEnvelopeError: If the event is not a usable envelope
    """
    if not isinstance(event, dict):
        raise MalformedEnvelopeError("Event must be a JSON object")

    device_id = event.get("device")
    if not isinstance(device_id, str) or not device_id:
        raise MalformedEnvelopeError("Event has no device identifier")

    notefile_id = event.get("file", "")
    if not isinstance(notefile_id, str):
        raise MalformedEnvelopeError("Field 'file' must be a string")

    payload = event.get("body")
    if payload is not None and not isinstance(payload, dict):
        raise MalformedEnvelopeError("Field 'body' must be a JSON object")

    return TelemetryEnvelope(
        device_id=device_id,
        occurred_at=_required_number(event, "when"),
        notefile_id=notefile_id,
        best_latitude=_required_number(event, "best_lat", 0.0),
        best_longitude=_required_number(event, "best_lon", 0.0),
        payload=payload,
    )


def record_from_envelope(envelope: TelemetryEnvelope) -> DeviceRecord:
    """Build the retained device record for an envelope.

    Pure function. The raw body is not retained, only its radiation fields.
    """
    reading = parse_radiation_reading(envelope.payload)

    return DeviceRecord(
        device_id=envelope.device_id,
        occurred_at=envelope.occurred_at,
        best_latitude=envelope.best_latitude,
        best_longitude=envelope.best_longitude,
        usv=reading.usv,
        notefile_id=envelope.notefile_id,
        cpm=reading.cpm,
        cpm_count=reading.cpm_count,
        count_secs=reading.count_secs,
        sensor=reading.sensor,
        temperature=reading.temperature,
        voltage=reading.voltage,
    )


def record_to_dict(record: DeviceRecord) -> dict[str, Any]:
    """Convert a DeviceRecord to a JSON-serializable dict.

    None-valued reading fields are omitted.
    """
    return {k: v for k, v in asdict(record).items() if v is not None}


def _finite_float(value: Any) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"expected a finite number, got {value!r}")
    return number


def record_from_dict(data: dict[str, Any]) -> DeviceRecord:
    """Parse a DeviceRecord from its persisted dict form.

    Raises:
        KeyError: If a required field is missing
        TypeError: If a field has the wrong type
        ValueError: If a numeric field cannot be converted or is not finite
    """
    sensor = data.get("sensor")

    return DeviceRecord(
        device_id=str(data["device_id"]),
        occurred_at=_finite_float(data["occurred_at"]),
        best_latitude=_finite_float(data.get("best_latitude", 0.0)),
        best_longitude=_finite_float(data.get("best_longitude", 0.0)),
        usv=_finite_float(data.get("usv", 0.0)),
        notefile_id=str(data.get("notefile_id", RADIATION_NOTEFILE)),
        cpm=_optional_float(data.get("cpm")),
        cpm_count=_optional_int(data.get("cpm_count")),
        count_secs=_optional_int(data.get("count_secs")),
        sensor=sensor if isinstance(sensor, str) else None,
        temperature=_optional_float(data.get("temperature")),
        voltage=_optional_float(data.get("voltage")),
    )


def should_replace(existing: DeviceRecord | None, envelope: TelemetryEnvelope) -> bool:
    """Decide whether an envelope supersedes a device's stored record.

    Pure function. Ordering is by event time, not arrival; equal times
    replace.

    Args:
        existing: Currently stored record for the device, if any
        envelope: Incoming envelope

    Returns:
        True if the envelope should replace the stored record
    """
    if not envelope.is_radiation_reading:
        return False

    if existing is None:
        return True

    return envelope.occurred_at >= existing.occurred_at
