"""Pytest configuration and fixtures."""

import os
import sys
import tempfile
from types import SimpleNamespace
from unittest.mock import Mock, AsyncMock, patch

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from domains.reminders.engine import CycleObserver, ReminderEngine
from domains.reminders.models import PersistenceUnavailable, TimeType


class FakeSource:
    """Marker source returning a fixed snapshot."""

    def __init__(self, markers=None):
        self.markers = list(markers or [])
        self.fail = False

    async def times(self):
        if self.fail:
            raise PersistenceUnavailable("marker source down")
        return list(self.markers)


class FakePreferences:
    def __init__(self, types=None):
        self.types = set(TimeType) if types is None else set(types)

    def enabled_types(self):
        return set(self.types)


class FakeTimers:
    """Records timer calls; ``pending`` holds the armed timer (arming replaces it)."""

    def __init__(self):
        self.calls = []
        self.pending = []
        self.fail_cancel = False
        self.fail_arm = False

    def cancel_all(self):
        if self.fail_cancel:
            raise PersistenceUnavailable("timer service down")
        self.calls.append("cancel")
        self.pending.clear()

    def arm(self, delay_ms, precise):
        if self.fail_arm:
            raise PersistenceUnavailable("timer service down")
        self.calls.append(("arm", delay_ms, precise))
        self.pending = [(delay_ms, precise)]


class FakeSink:
    def __init__(self):
        self.batches = []
        self.fail = False

    async def show(self, reminders):
        if self.fail:
            raise RuntimeError("channel unavailable")
        self.batches.append(list(reminders))

    @property
    def shown(self):
        return [r for batch in self.batches for r in batch]


class MemoryRunState:
    def __init__(self, value=None):
        self.value = value
        self.fail_load = False
        self.fail_store = False
        self.stores = 0

    def load(self):
        if self.fail_load:
            raise PersistenceUnavailable("run state unreadable")
        return self.value

    def store(self, now):
        if self.fail_store:
            raise PersistenceUnavailable("run state unwritable")
        self.value = now
        self.stores += 1


class RecordingObserver(CycleObserver):
    def __init__(self):
        self.events = []

    def cycle_started(self, reason, now, last_run):
        self.events.append(("started", reason))

    def marker_skipped(self, marker, error):
        self.events.append(("skipped", marker.note_id))

    def committed(self, now):
        self.events.append(("committed", now))

    def cycle_failed(self, reason, error):
        self.events.append(("failed", type(error).__name__))


@pytest.fixture
def parts():
    """Engine wired to fakes; tweak the fakes, then call ``parts.engine.run_cycle``."""
    ns = SimpleNamespace(
        source=FakeSource(),
        preferences=FakePreferences(),
        timers=FakeTimers(),
        sink=FakeSink(),
        run_state=MemoryRunState(),
        observer=RecordingObserver(),
    )
    ns.engine = ReminderEngine(
        source=ns.source,
        preferences=ns.preferences,
        timers=ns.timers,
        sink=ns.sink,
        run_state=ns.run_state,
        observer=ns.observer,
    )
    return ns


@pytest.fixture
def temp_db():
    """Path to a fresh temp database file, removed afterwards."""
    fd, temp_path = tempfile.mkstemp(suffix="_reminders_test.db")
    os.close(fd)
    os.unlink(temp_path)

    yield temp_path

    for suffix in ["", "-wal", "-shm"]:
        try:
            os.unlink(temp_path + suffix)
        except FileNotFoundError:
            pass


@pytest.fixture
def mock_discord_bot():
    """Create a mock Discord bot."""
    bot = Mock()
    bot.get_channel = Mock(return_value=Mock(send=AsyncMock()))
    bot.fetch_channel = AsyncMock()
    bot.user = Mock(name="TestBot#1234")
    return bot


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx client."""
    with patch('httpx.AsyncClient') as mock:
        client = AsyncMock()
        mock.return_value.__aenter__.return_value = client
        yield client
