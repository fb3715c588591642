"""Tests for the reminder service host wiring."""

import asyncio
import os
import sys
from datetime import timedelta
from unittest.mock import Mock
from zoneinfo import ZoneInfo

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from domains.reminders.engine import CycleResult, ReminderEngine, TriggerReason
from domains.reminders.models import PersistenceUnavailable, TimeType
from domains.reminders.scheduler import SchedulerTimerService
from domains.reminders.service import POLL_JOB_ID, ReminderService, register_reminders


class SlowEngine:
    """Engine stand-in that yields mid-cycle and records overlap."""

    def __init__(self, fail=False):
        self.running = 0
        self.max_running = 0
        self.reasons = []
        self.fail = fail

    async def run_cycle(self, reason, now, snooze=None):
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        await asyncio.sleep(0.01)
        self.reasons.append((reason, snooze))
        self.running -= 1
        if self.fail:
            raise PersistenceUnavailable("run state unwritable")
        return CycleResult(reason=reason, now=now)


def test_cycles_never_overlap():
    engine = SlowEngine()
    service = ReminderService(engine)

    async def fire_all():
        return await asyncio.gather(
            service.boot(),
            service.data_changed(),
            service.reminder_fired(),
        )

    results = asyncio.run(fire_all())

    assert engine.max_running == 1
    assert [r.reason for r in results] == [
        TriggerReason.BOOT, TriggerReason.DATA_CHANGED, TriggerReason.REMINDER_FIRED,
    ]


def test_persistence_failure_returns_none():
    service = ReminderService(SlowEngine(fail=True))
    assert asyncio.run(service.boot()) is None


def test_other_failures_propagate():
    engine = SlowEngine()

    async def broken(reason, now, snooze=None):
        raise RuntimeError("channel unavailable")

    engine.run_cycle = broken
    service = ReminderService(engine)

    with pytest.raises(RuntimeError):
        asyncio.run(service.reminder_fired())


def test_now_uses_service_timezone():
    service = ReminderService(SlowEngine(), tz=ZoneInfo("America/New_York"))
    assert service.now().tzinfo == ZoneInfo("America/New_York")


def test_snooze_schedules_resume():
    timers = Mock(spec=SchedulerTimerService)
    service = ReminderService(SlowEngine(), timers)

    before = service.now()
    request = service.snooze(7, TimeType.SCHEDULED, minutes=10)

    assert request.note_id == 7
    assert request.time_type is TimeType.SCHEDULED
    assert request.resume_at - before >= timedelta(minutes=10)
    timers.schedule_snooze.assert_called_once_with(request)


def test_snooze_needs_timers():
    service = ReminderService(SlowEngine())

    with pytest.raises(RuntimeError):
        service.snooze(7, TimeType.SCHEDULED)


def test_snooze_ended_passes_request():
    engine = SlowEngine()
    service = ReminderService(engine)
    request = Mock()

    asyncio.run(service.snooze_ended(request))

    assert engine.reasons == [(TriggerReason.SNOOZE_ENDED, request)]


def test_register_reminders(mock_discord_bot):
    scheduler = Mock()

    service = register_reminders(scheduler, mock_discord_bot)

    assert isinstance(service.engine, ReminderEngine)
    assert isinstance(service.timers, SchedulerTimerService)
    assert service.engine.timers is service.timers
    assert scheduler.add_job.call_args.kwargs["id"] == POLL_JOB_ID
