"""Tests for the SQLite run-state store."""

import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from domains.reminders.models import PersistenceUnavailable
from domains.reminders.run_state import RunStateStore


@pytest.fixture
def store(temp_db):
    store = RunStateStore(temp_db)
    yield store
    store.close()


def test_empty_store_has_no_last_run(store):
    assert store.load() is None


def test_store_and_load(store):
    now = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
    store.store(now)

    assert store.load() == now


def test_store_overwrites(store):
    first = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
    store.store(first)
    store.store(first + timedelta(hours=1))

    assert store.load() == first + timedelta(hours=1)

    count = store._get_connection().execute("SELECT COUNT(*) FROM run_state").fetchone()[0]
    assert count == 1


def test_survives_reopen(temp_db):
    now = datetime(2024, 5, 1, 9, 30, tzinfo=ZoneInfo("Europe/London"))
    first = RunStateStore(temp_db)
    first.store(now)
    first.close()

    second = RunStateStore(temp_db)
    try:
        loaded = second.load()
    finally:
        second.close()

    assert loaded == now
    assert loaded.utcoffset() == timedelta(hours=1)


def test_keeps_microseconds(store):
    now = datetime(2024, 5, 1, 9, 30, 0, 1234, tzinfo=timezone.utc)
    store.store(now)

    assert store.load() == now


def test_unopenable_path_raises():
    with tempfile.TemporaryDirectory() as directory:
        store = RunStateStore(directory)

        with pytest.raises(PersistenceUnavailable):
            store.load()
