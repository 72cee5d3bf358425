"""Cloud Function Entry Point.

This module provides the HTTP entry points for the Radnote geofeed.
It's a thin wrapper that loads configuration, owns the shared device
store, and delegates to the API handlers.
"""

import logging
import os
import threading

import functions_framework
from flask import Request, Response

from src import api_handler
from src.core.config import Config
from src.shell.config_loader import load_config, load_config_from_env
from src.shell.device_store import DeviceEventStore, DeviceStoreConfig


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


_init_lock = threading.Lock()
_config: Config | None = None
_store: DeviceEventStore | None = None


def _get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("DATA_DIRECTORY"):
        # Simple env-based config
        return load_config_from_env()
    else:
        # Try default config path
        return load_config()


def _get_service() -> tuple[Config, DeviceEventStore]:
    """Get or create the process-wide config and device store."""
    global _config, _store
    with _init_lock:
        if _store is None:
            _config = _get_config()
            _store = DeviceEventStore(DeviceStoreConfig(
                data_directory=_config.data_directory,
                snapshot_file=_config.snapshot_file,
                lock_timeout=_config.store_lock_timeout_seconds,
            ))
            logger.info("Device store at %s", _store.config.snapshot_path)
        return _config, _store


@functions_framework.http
def radnote_ingest(request: Request) -> Response | tuple[dict[str, str], int]:
    """HTTP entry point for Notehub-routed Radnote events.

    Args:
        request: Flask request carrying the event JSON

    Returns:
        Flask response from the ingest handler
    """
    try:
        _, store = _get_service()
        return api_handler.ingest_radnote(request, store)
    except Exception as e:
        logger.exception("Unexpected error ingesting event")
        return {
            "status": "error",
            "message": str(e),
        }, 500


@functions_framework.http
def radiation_query(request: Request) -> Response | tuple[dict[str, str], int]:
    """HTTP entry point for radiation feeds and device listings.

    Args:
        request: Flask request with optional lat/lon/radius_meters/mode

    Returns:
        Flask response from the query handler
    """
    try:
        config, store = _get_service()
        return api_handler.query_radiation(request, store, config)
    except Exception as e:
        logger.exception("Unexpected error answering radiation query")
        return {
            "status": "error",
            "message": str(e),
        }, 500


@functions_framework.http
def ping(request: Request) -> Response:
    """HTTP entry point for health checks."""
    return api_handler.ping(request)
