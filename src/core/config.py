"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field


DEFAULT_FEED_BASE_URL = "https://geofeeds.net/radnote"


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        alert_level_usv: Dose rate (uSv/h) at or above which a device is hazardous
        alert_region_meters: Distance within which a hazardous device triggers a warning
        alert_minutes: How long a triggered alert should stay active
        alert_sample_minutes: Advised sampling period while an alert is active
        alert_sync_minutes: Advised sync period while an alert is active
        default_query_radius_meters: Radius used when a query omits one
        data_directory: Directory holding the persisted snapshot
        snapshot_file: Snapshot file name within data_directory
        feed_base_url: Base URL embedded in generated JSON feeds
        store_lock_timeout_seconds: Max wait for the store lock (None = forever)
    """
    alert_level_usv: float = 0.0
    alert_region_meters: float = 0.0
    alert_minutes: int = 0
    alert_sample_minutes: int = 15
    alert_sync_minutes: int = 60
    default_query_radius_meters: float = 10.0
    data_directory: str = "data"
    snapshot_file: str = "rad.json"
    feed_base_url: str = DEFAULT_FEED_BASE_URL
    store_lock_timeout_seconds: float | None = None


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


# Inclusive (min, max) bounds for each axis of a query location
LOCATION_BOUNDS = {
    "latitude": (-90.0, 90.0),
    "longitude": (-180.0, 180.0),
}


def validate_location(latitude: float, longitude: float, field_name: str) -> list[ValidationError]:
    """Check that a query location is a real point on the globe.

    Pure function. NaN fails every bound, so it is reported as out of range.
    """
    errors = []

    for axis, value in (("latitude", latitude), ("longitude", longitude)):
        low, high = LOCATION_BOUNDS[axis]
        if low <= value <= high:
            continue
        errors.append(ValidationError(
            field=field_name,
            message=f"{axis.capitalize()} {value} must be within [{low:g}, {high:g}]",
        ))

    return errors


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    if config.alert_level_usv < 0:
        errors.append(ValidationError(
            field="radnote_alert_at_usv",
            message=f"Alert level must not be negative, got {config.alert_level_usv}",
        ))

    if config.alert_region_meters < 0:
        errors.append(ValidationError(
            field="radnote_alert_region_meters",
            message=f"Alert region must not be negative, got {config.alert_region_meters}",
        ))
    elif config.alert_region_meters == 0:
        errors.append(ValidationError(
            field="radnote_alert_region_meters",
            message="Alert region is 0 meters; only co-located devices will trigger warnings",
            severity="warning",
        ))

    if config.default_query_radius_meters <= 0:
        errors.append(ValidationError(
            field="default_query_radius_meters",
            message=f"Default query radius must be positive, got {config.default_query_radius_meters}",
        ))

    for name, value in (
        ("radnote_alert_sample_minutes", config.alert_sample_minutes),
        ("radnote_alert_sync_minutes", config.alert_sync_minutes),
    ):
        if value <= 0:
            errors.append(ValidationError(
                field=name,
                message=f"Period must be positive, got {value}",
            ))

    if config.alert_minutes < 0:
        errors.append(ValidationError(
            field="radnote_alert_minutes",
            message=f"Alert duration must not be negative, got {config.alert_minutes}",
        ))

    if not config.snapshot_file:
        errors.append(ValidationError(
            field="snapshot_file",
            message="Snapshot file name is empty",
        ))

    if config.store_lock_timeout_seconds is not None and config.store_lock_timeout_seconds <= 0:
        errors.append(ValidationError(
            field="store_lock_timeout_seconds",
            message=f"Lock timeout must be positive, got {config.store_lock_timeout_seconds}",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
