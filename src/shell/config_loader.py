"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

JSON is a subset of YAML, so a Radnote `config.json` loads unchanged.
The Config model is defined in src/core/config.py.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from src.core.config import Config, DEFAULT_FEED_BASE_URL, validate_config


logger = logging.getLogger(__name__)


# Config file keys, as used by the Radnote service config.json
KEY_ALERT_LEVEL = "radnote_alert_at_usv"
KEY_ALERT_REGION = "radnote_alert_region_meters"
KEY_ALERT_MINUTES = "radnote_alert_minutes"
KEY_ALERT_SAMPLE_MINUTES = "radnote_alert_sample_minutes"
KEY_ALERT_SYNC_MINUTES = "radnote_alert_sync_minutes"


def _resolve_value(value: Any) -> Any:
    """Resolve a value that may be an environment variable placeholder.

    Args:
        value: Value to resolve (may be a ${VAR} placeholder)

    Returns:
        Resolved value, or the placeholder itself if VAR is not set
    """
    if not isinstance(value, str):
        return value

    if value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        env_value = os.environ.get(var_name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_name)

    return value


def _optional_float(value: Any) -> float | None:
    """Parse an optional float, treating None and '' as unset."""
    if value is None or value == "":
        return None
    return float(value)


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only env var expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object

    Raises:
        ValueError: If a numeric setting cannot be parsed
    """
    data = {key: _resolve_value(value) for key, value in data.items()}

    return Config(
        alert_level_usv=float(data.get(KEY_ALERT_LEVEL, 0.0)),
        alert_region_meters=float(data.get(KEY_ALERT_REGION, 0.0)),
        alert_minutes=int(data.get(KEY_ALERT_MINUTES, 0)),
        alert_sample_minutes=int(data.get(KEY_ALERT_SAMPLE_MINUTES, 15)),
        alert_sync_minutes=int(data.get(KEY_ALERT_SYNC_MINUTES, 60)),
        default_query_radius_meters=float(data.get("default_query_radius_meters", 10.0)),
        data_directory=str(data.get("data_directory", "data")),
        snapshot_file=str(data.get("snapshot_file", "rad.json")),
        feed_base_url=str(data.get("feed_base_url", DEFAULT_FEED_BASE_URL)).rstrip("/"),
        store_lock_timeout_seconds=_optional_float(data.get("store_lock_timeout_seconds")),
    )


def _log_validation(config: Config) -> None:
    """Log validation findings without rejecting the config."""
    result = validate_config(config)
    for error in result.warnings:
        logger.warning("Config %s: %s", error.field, error.message)
    for error in result.critical_errors:
        logger.error("Config %s: %s", error.field, error.message)


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML (or JSON) file.

    This method performs file I/O.

    Args:
        config_path: Path to config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
        ValueError: If the file is not a mapping or a value is malformed
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    config = load_config_from_dict(data)
    _log_validation(config)

    logger.info(
        "Loaded config: alert at %.3f uSv/h within %.0f m, data in %s",
        config.alert_level_usv,
        config.alert_region_meters,
        config.data_directory,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a config file.

    Environment variables:
        RADNOTE_ALERT_AT_USV: Alert dose rate threshold (uSv/h)
        RADNOTE_ALERT_REGION_METERS: Warning radius in meters
        RADNOTE_ALERT_MINUTES: Alert duration in minutes
        RADNOTE_ALERT_SAMPLE_MINUTES: Advised sample period during alerts
        RADNOTE_ALERT_SYNC_MINUTES: Advised sync period during alerts
        DEFAULT_QUERY_RADIUS_METERS: Radius for queries that omit one
        DATA_DIRECTORY: Directory for the snapshot file
        SNAPSHOT_FILE: Snapshot file name
        FEED_BASE_URL: Base URL for generated feeds
        STORE_LOCK_TIMEOUT_SECONDS: Max wait for the store lock

    Returns:
        Config object from environment
    """
    env_keys = {
        KEY_ALERT_LEVEL: "RADNOTE_ALERT_AT_USV",
        KEY_ALERT_REGION: "RADNOTE_ALERT_REGION_METERS",
        KEY_ALERT_MINUTES: "RADNOTE_ALERT_MINUTES",
        KEY_ALERT_SAMPLE_MINUTES: "RADNOTE_ALERT_SAMPLE_MINUTES",
        KEY_ALERT_SYNC_MINUTES: "RADNOTE_ALERT_SYNC_MINUTES",
        "default_query_radius_meters": "DEFAULT_QUERY_RADIUS_METERS",
        "data_directory": "DATA_DIRECTORY",
        "snapshot_file": "SNAPSHOT_FILE",
        "feed_base_url": "FEED_BASE_URL",
        "store_lock_timeout_seconds": "STORE_LOCK_TIMEOUT_SECONDS",
    }

    data = {
        key: os.environ[env_name]
        for key, env_name in env_keys.items()
        if os.environ.get(env_name)
    }

    config = load_config_from_dict(data)
    _log_validation(config)
    return config
