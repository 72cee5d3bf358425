"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Device event store (snapshot file)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from src.shell.device_store import DeviceEventStore, DeviceStoreConfig, StoreBusyError
from src.core.config import Config
from src.shell.config_loader import load_config, load_config_from_env

__all__ = [
    "DeviceEventStore",
    "DeviceStoreConfig",
    "StoreBusyError",
    "load_config",
    "load_config_from_env",
    "Config",
]
