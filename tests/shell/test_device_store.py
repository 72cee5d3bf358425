"""Tests for the Device Event Store.

Uses a temporary data directory for the snapshot file.
"""

import json
import threading
from unittest.mock import patch

import pytest

from src.core.telemetry import RADIATION_NOTEFILE, TelemetryEnvelope
from src.shell.device_store import (
    DeviceEventStore,
    DeviceStoreConfig,
    StoreBusyError,
)


def _envelope(device_id="dev:1", when=100.0, usv=0.25, lat=37.42, lon=141.03,
              notefile=RADIATION_NOTEFILE):
    return TelemetryEnvelope(
        device_id=device_id,
        occurred_at=when,
        notefile_id=notefile,
        best_latitude=lat,
        best_longitude=lon,
        payload={"usv": usv, "cpm": 40.0},
    )


@pytest.fixture
def store_config(tmp_path):
    return DeviceStoreConfig(data_directory=tmp_path, snapshot_file="rad.json")


@pytest.fixture
def store(store_config):
    return DeviceEventStore(store_config)


def _read_file(store_config):
    return json.loads(store_config.snapshot_path.read_text())


class TestEnsureLoaded:
    """Tests for lazy snapshot loading."""

    def test_missing_file_starts_empty(self, store):
        store.ensure_loaded()
        assert store.snapshot() == {}

    def test_loads_existing_snapshot(self, store_config):
        first = DeviceEventStore(store_config)
        first.record_event(_envelope("dev:1", usv=0.5))

        second = DeviceEventStore(store_config)

        records = second.snapshot()
        assert list(records) == ["dev:1"]
        assert records["dev:1"].usv == 0.5
        assert records["dev:1"].cpm == 40.0

    def test_malformed_json_starts_empty(self, store_config, caplog):
        store_config.snapshot_path.write_text("{not json")

        store = DeviceEventStore(store_config)

        assert store.snapshot() == {}
        assert "Can't load" in caplog.text

    def test_non_object_snapshot_starts_empty(self, store_config):
        store_config.snapshot_path.write_text("[1, 2, 3]")
        assert DeviceEventStore(store_config).snapshot() == {}

    def test_bad_record_starts_empty(self, store_config):
        store_config.snapshot_path.write_text(json.dumps({"dev:1": {"usv": 1.0}}))
        assert DeviceEventStore(store_config).snapshot() == {}

    def test_non_finite_record_starts_empty(self, store_config, caplog):
        store_config.snapshot_path.write_text(
            '{"dev:1": {"device_id": "dev:1", "occurred_at": NaN, "usv": 1.0}}'
        )

        store = DeviceEventStore(store_config)

        assert store.snapshot() == {}
        assert "Can't load" in caplog.text
        assert store.record_event(_envelope("dev:1", when=1.0)) is True

    def test_loads_only_once(self, store_config, store):
        store.ensure_loaded()
        store_config.snapshot_path.write_text(json.dumps({
            "dev:9": {"device_id": "dev:9", "occurred_at": 1.0, "usv": 1.0},
        }))

        store.ensure_loaded()

        assert store.snapshot() == {}

    def test_concurrent_first_loads_read_file_once(self, store):
        calls = []
        original = store._read_snapshot

        def counting_read():
            calls.append(1)
            return original()

        with patch.object(store, "_read_snapshot", side_effect=counting_read):
            threads = [threading.Thread(target=store.ensure_loaded) for _ in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert len(calls) == 1


class TestRecordEvent:
    """Tests for record_event() ordering and persistence."""

    def test_first_event_is_accepted_and_persisted(self, store, store_config):
        assert store.record_event(_envelope()) is True

        data = _read_file(store_config)
        assert data["dev:1"]["usv"] == 0.25
        assert data["dev:1"]["occurred_at"] == 100.0
        assert data["dev:1"]["best_latitude"] == 37.42

    def test_other_notefile_is_ignored(self, store, store_config):
        assert store.record_event(_envelope(notefile="_session.qo")) is False

        assert store.snapshot() == {}
        assert not store_config.snapshot_path.exists()

    def test_older_event_is_ignored(self, store, store_config):
        store.record_event(_envelope(when=200.0, usv=0.3))

        assert store.record_event(_envelope(when=150.0, usv=9.9)) is False

        assert store.snapshot()["dev:1"].usv == 0.3
        assert _read_file(store_config)["dev:1"]["usv"] == 0.3

    def test_equal_time_replaces(self, store):
        store.record_event(_envelope(when=200.0, usv=0.3))

        assert store.record_event(_envelope(when=200.0, usv=0.4)) is True
        assert store.snapshot()["dev:1"].usv == 0.4

    def test_stored_time_is_max_of_accepted(self, store):
        for when in (5.0, 3.0, 9.0, 1.0, 7.0, 9.0, 2.0):
            store.record_event(_envelope(when=when, usv=when / 10))

        record = store.snapshot()["dev:1"]
        assert record.occurred_at == 9.0
        assert record.usv == 0.9

    def test_wrong_kind_never_advances_time(self, store):
        store.record_event(_envelope(when=10.0))
        store.record_event(_envelope(when=50.0, notefile="_env.qo"))

        assert store.snapshot()["dev:1"].occurred_at == 10.0

    def test_creates_missing_data_directory(self, tmp_path):
        config = DeviceStoreConfig(data_directory=tmp_path / "nested" / "data")
        store = DeviceEventStore(config)

        store.record_event(_envelope())

        assert config.snapshot_path.exists()

    def test_leaves_no_temporary_files(self, store, tmp_path):
        store.record_event(_envelope("dev:1"))
        store.record_event(_envelope("dev:2"))

        assert [p.name for p in tmp_path.iterdir()] == ["rad.json"]

    def test_write_failure_keeps_memory_update(self, store, caplog):
        with patch("src.shell.device_store.os.replace", side_effect=OSError("disk full")):
            assert store.record_event(_envelope(usv=0.7)) is True

        assert store.snapshot()["dev:1"].usv == 0.7
        assert "Can't store" in caplog.text

    def test_failed_write_does_not_corrupt_previous_snapshot(self, store, store_config):
        store.record_event(_envelope(when=1.0, usv=0.1))

        with patch("src.shell.device_store.os.replace", side_effect=OSError("disk full")):
            store.record_event(_envelope(when=2.0, usv=0.2))

        assert _read_file(store_config)["dev:1"]["usv"] == 0.1

    def test_next_successful_write_catches_up(self, store, store_config):
        with patch("src.shell.device_store.os.replace", side_effect=OSError("disk full")):
            store.record_event(_envelope("dev:1"))

        store.record_event(_envelope("dev:2"))

        assert set(_read_file(store_config)) == {"dev:1", "dev:2"}


class TestConcurrency:
    """Tests for interleaved ingestion."""

    def test_concurrent_distinct_devices_all_persist(self, store, store_config):
        barrier = threading.Barrier(16)

        def ingest(i):
            barrier.wait()
            store.record_event(_envelope(f"dev:{i}", when=float(i)))

        threads = [threading.Thread(target=ingest, args=(i,)) for i in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 16
        assert set(_read_file(store_config)) == {f"dev:{i}" for i in range(16)}

    def test_concurrent_same_device_keeps_latest(self, store):
        threads = [
            threading.Thread(target=store.record_event, args=(_envelope(when=float(i)),))
            for i in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.snapshot()["dev:1"].occurred_at == 19.0


class TestSnapshot:
    """Tests for snapshot() views."""

    def test_snapshot_is_a_copy(self, store):
        store.record_event(_envelope("dev:1"))

        view = store.snapshot()
        store.record_event(_envelope("dev:2"))

        assert list(view) == ["dev:1"]
        assert len(store) == 2

    def test_len_counts_loaded_records(self, store_config):
        store_config.snapshot_path.write_text(json.dumps({
            "dev:1": {"device_id": "dev:1", "occurred_at": 1.0, "usv": 0.1},
            "dev:2": {"device_id": "dev:2", "occurred_at": 2.0, "usv": 0.2},
        }))

        assert len(DeviceEventStore(store_config)) == 2


class TestLockTimeout:
    """Tests for abandoning a wait on a busy store."""

    def test_busy_store_raises(self, store_config):
        store_config.lock_timeout = 0.01
        store = DeviceEventStore(store_config)
        store.ensure_loaded()

        store._lock.acquire()
        try:
            with pytest.raises(StoreBusyError):
                store.record_event(_envelope())
            with pytest.raises(StoreBusyError):
                store.snapshot()
        finally:
            store._lock.release()

        assert store.record_event(_envelope()) is True
