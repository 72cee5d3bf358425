"""Device Event Store - Imperative Shell.

This module retains the latest radiation reading per device and persists
the whole mapping to a JSON snapshot file after every accepted update.

All I/O and locking are contained here; the ordering rule and record
decoding live in the core telemetry module.
"""

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path

from src.core.telemetry import (
    DeviceRecord,
    TelemetryEnvelope,
    record_from_dict,
    record_from_envelope,
    record_to_dict,
    should_replace,
)


logger = logging.getLogger(__name__)


# Default snapshot file name within the data directory
DEFAULT_SNAPSHOT_FILE = "rad.json"


class StoreBusyError(RuntimeError):
    """Raised when the store lock could not be acquired in time."""


@dataclass
class DeviceStoreConfig:
    """Configuration for the device event store.

    Attributes:
        data_directory: Directory holding the snapshot file
        snapshot_file: Snapshot file name
        lock_timeout: Seconds to wait for the lock (None waits forever)
    """
    data_directory: str | Path = "data"
    snapshot_file: str = DEFAULT_SNAPSHOT_FILE
    lock_timeout: float | None = None

    @property
    def snapshot_path(self) -> Path:
        """Full path of the snapshot file."""
        return Path(self.data_directory) / self.snapshot_file


class DeviceEventStore:
    """Concurrency-safe map of device ID to its latest DeviceRecord.

    This is part of the imperative shell - it handles file I/O.

    A single lock serializes the lazy load, every read-modify-write
    together with its snapshot write, and snapshot reads. Snapshot layout:
    {
        "<device_id>": {"device_id": ..., "occurred_at": ..., "usv": ...},
        ...
    }
    """

    def __init__(self, config: DeviceStoreConfig | None = None) -> None:
        """Initialize the store. Nothing is read until first use.

        Args:
            config: Store configuration
        """
        self.config = config or DeviceStoreConfig()
        self._lock = threading.Lock()
        self._records: dict[str, DeviceRecord] | None = None

    def _acquire(self) -> None:
        """Acquire the store lock, honoring the configured timeout."""
        timeout = self.config.lock_timeout
        if timeout is None:
            self._lock.acquire()
            return
        if not self._lock.acquire(timeout=timeout):
            raise StoreBusyError(
                f"Timed out after {timeout}s waiting for device store lock"
            )

    def _read_snapshot(self) -> dict[str, DeviceRecord]:
        """Read the persisted snapshot. Caller holds the lock."""
        path = self.config.snapshot_path

        try:
            contents = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No snapshot at %s, starting empty", path)
            return {}
        except OSError as e:
            logger.error("Can't load %s: %s", path, e)
            return {}

        try:
            data = json.loads(contents)
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
            records = {
                device_id: record_from_dict(record)
                for device_id, record in data.items()
            }
        except (ValueError, TypeError, KeyError, AttributeError, OverflowError) as e:
            logger.error("Can't load %s: %s", path, e)
            return {}

        logger.info("Loaded %d device records from %s", len(records), path)
        return records

    def _write_snapshot(self) -> bool:
        """Serialize all records and replace the snapshot file.

        Caller holds the lock. The file is written to a temporary sibling
        and renamed over the snapshot, so readers never see a partial file.

        Returns:
            True if the snapshot was written
        """
        path = self.config.snapshot_path

        try:
            payload = json.dumps({
                device_id: record_to_dict(record)
                for device_id, record in self._records.items()
            })
        except (TypeError, ValueError) as e:
            logger.error("Can't serialize device records: %s", e)
            return False

        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            logger.error("Can't store %s: %s", path, e)
            return False
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Can't remove temporary file %s", tmp_name)

        return True

    def ensure_loaded(self) -> None:
        """Load the persisted snapshot on first call.

        Safe to call concurrently; only the first call reads the file.
        """
        if self._records is not None:
            return

        self._acquire()
        try:
            if self._records is None:
                self._records = self._read_snapshot()
        finally:
            self._lock.release()

    def record_event(self, envelope: TelemetryEnvelope) -> bool:
        """Retain an envelope as its device's latest record if it qualifies.

        Envelopes on another notefile, or older than the stored record,
        are ignored. An accepted update is persisted immediately; a failed
        write is logged and the in-memory record is kept.

        Args:
            envelope: Decoded telemetry envelope

        Returns:
            True if the envelope replaced the device's record

        Raises:
            StoreBusyError: If the lock timeout elapsed
        """
        if not envelope.is_radiation_reading:
            logger.debug(
                "Ignoring %s event from %s",
                envelope.notefile_id or "untagged",
                envelope.device_id,
            )
            return False

        self.ensure_loaded()

        self._acquire()
        try:
            existing = self._records.get(envelope.device_id)
            if not should_replace(existing, envelope):
                logger.debug(
                    "Ignoring stale event from %s (%s < %s)",
                    envelope.device_id,
                    envelope.occurred_at,
                    existing.occurred_at,
                )
                return False

            self._records[envelope.device_id] = record_from_envelope(envelope)
            self._write_snapshot()
        finally:
            self._lock.release()

        return True

    def snapshot(self) -> dict[str, DeviceRecord]:
        """Return a point-in-time copy of all device records.

        Raises:
            StoreBusyError: If the lock timeout elapsed
        """
        self.ensure_loaded()

        self._acquire()
        try:
            return dict(self._records)
        finally:
            self._lock.release()

    def __len__(self) -> int:
        self.ensure_loaded()

        self._acquire()
        try:
            return len(self._records)
        finally:
            self._lock.release()
