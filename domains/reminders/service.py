"""Host wiring for the reminder engine.

Every trigger (boot, data change, timer, snooze end) runs one engine cycle.
Cycles are serialized with a single asyncio lock: two overlapping cycles
could both re-arm the timer and commit run states out of order.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from logger import logger
from . import config
from .engine import CycleResult, LoggingObserver, ReminderEngine, TriggerReason
from .executor import DiscordNotificationSink
from .models import PersistenceUnavailable, SnoozeRequest, TimeType
from .preferences import ConfigPreferences
from .run_state import RunStateStore
from .scheduler import SchedulerTimerService
from .store import SupabaseMarkerSource
from .timestamp import parse_clock

POLL_JOB_ID = "reminder_polling"


class ReminderService:
    """Runs reminder cycles one at a time on the event loop."""

    def __init__(self, engine: ReminderEngine, timers: Optional[SchedulerTimerService] = None,
                 tz: Optional[ZoneInfo] = None):
        self.engine = engine
        self.timers = timers
        self.tz = tz or ZoneInfo(config.TIMEZONE)
        self._lock = asyncio.Lock()

    def now(self) -> datetime:
        return datetime.now(self.tz)

    async def trigger(
        self,
        reason: TriggerReason,
        snooze: Optional[SnoozeRequest] = None
    ) -> Optional[CycleResult]:
        """Run one cycle for ``reason``, waiting for any running cycle first.

        Returns:
            CycleResult, or None if the cycle failed on persistence
        """
        async with self._lock:
            try:
                return await self.engine.run_cycle(reason, self.now(), snooze)
            except PersistenceUnavailable as e:
                logger.error(f"Reminder cycle ({reason.value}) not committed: {e}")
                return None

    async def boot(self) -> Optional[CycleResult]:
        return await self.trigger(TriggerReason.BOOT)

    async def data_changed(self) -> Optional[CycleResult]:
        return await self.trigger(TriggerReason.DATA_CHANGED)

    async def reminder_fired(self) -> Optional[CycleResult]:
        return await self.trigger(TriggerReason.REMINDER_FIRED)

    async def snooze_ended(self, request: SnoozeRequest) -> Optional[CycleResult]:
        return await self.trigger(TriggerReason.SNOOZE_ENDED, request)

    def snooze(self, note_id: int, time_type: TimeType, minutes: Optional[int] = None) -> SnoozeRequest:
        """Show a note's reminder again after ``minutes`` (default from config)."""
        if self.timers is None:
            raise RuntimeError("Snoozing needs a timer service")
        minutes = minutes or config.DEFAULT_SNOOZE_MINUTES
        request = SnoozeRequest(
            note_id=note_id,
            time_type=time_type,
            resume_at=self.now() + timedelta(minutes=minutes),
        )
        self.timers.schedule_snooze(request)
        return request

    def start_polling(self, scheduler: AsyncIOScheduler) -> None:
        """Re-plan every POLL_INTERVAL_SECONDS to pick up markers edited elsewhere."""
        scheduler.add_job(
            self.data_changed,
            trigger=IntervalTrigger(seconds=config.POLL_INTERVAL_SECONDS),
            id=POLL_JOB_ID,
            name="Poll for note time changes",
            replace_existing=True
        )
        logger.info(f"Started reminder polling (every {config.POLL_INTERVAL_SECONDS}s)")


def register_reminders(scheduler: AsyncIOScheduler, bot) -> ReminderService:
    """Build the reminder service from config and start polling.

    Args:
        scheduler: APScheduler instance
        bot: Discord bot instance

    Returns:
        ReminderService - call ``boot()`` once the scheduler is running
    """
    service = None

    async def on_fire():
        await service.reminder_fired()

    async def on_snooze_end(request: SnoozeRequest):
        await service.snooze_ended(request)

    timers = SchedulerTimerService(scheduler, on_fire, on_snooze_end)
    engine = ReminderEngine(
        source=SupabaseMarkerSource(),
        preferences=ConfigPreferences(),
        timers=timers,
        sink=DiscordNotificationSink(bot, config.CHANNEL_ID),
        run_state=RunStateStore(),
        observer=LoggingObserver(),
        default_time=parse_clock(config.DAILY_REMINDER_TIME),
    )
    service = ReminderService(engine, timers)
    service.start_polling(scheduler)
    return service
