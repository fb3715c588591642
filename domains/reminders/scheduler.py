"""Reminder wake-up timers on APScheduler date triggers.

Only one reminder timer exists at a time (fixed job id). Snooze timers are
separate jobs, one per snoozed (note, time type), and are not touched by
``cancel_all``.
"""

from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from logger import logger
from . import config
from .models import PersistenceUnavailable, SnoozeRequest

REMINDER_JOB_ID = "reminder_timer"


def snooze_job_id(request: SnoozeRequest) -> str:
    return f"reminder_snooze:{request.note_id}:{request.time_type.name.lower()}"


class SchedulerTimerService:
    """Timer service backed by an AsyncIOScheduler."""

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        on_fire: Callable[[], Awaitable],
        on_snooze_end: Callable[[SnoozeRequest], Awaitable] = None,
    ):
        """Initialize timer service.

        Args:
            scheduler: APScheduler instance
            on_fire: Coroutine function run when the reminder timer fires
            on_snooze_end: Coroutine function run with the request when a snooze ends
        """
        self.scheduler = scheduler
        self.on_fire = on_fire
        self.on_snooze_end = on_snooze_end

    def cancel_all(self) -> None:
        """Remove the pending reminder timer, if any."""
        try:
            self.scheduler.remove_job(REMINDER_JOB_ID)
            logger.debug("Canceled reminder timer")
        except JobLookupError:
            pass
        except Exception as e:
            raise PersistenceUnavailable(f"Failed to cancel reminder timer: {e}") from e

    def arm(self, delay_ms: int, precise: bool) -> datetime:
        """Arm the reminder timer ``delay_ms`` from now.

        Args:
            delay_ms: Milliseconds until the timer fires (at least 1)
            precise: True for timestamps with a clock time; all-day reminders
                tolerate a longer misfire grace

        Returns:
            The run date of the armed job
        """
        run_at = datetime.now(timezone.utc) + timedelta(milliseconds=delay_ms)
        grace = config.PRECISE_MISFIRE_GRACE if precise else config.INEXACT_MISFIRE_GRACE

        try:
            self.scheduler.add_job(
                self.on_fire,
                trigger=DateTrigger(run_date=run_at),
                id=REMINDER_JOB_ID,
                name="reminder:next",
                replace_existing=True,
                misfire_grace_time=grace,
                coalesce=True,
            )
        except Exception as e:
            raise PersistenceUnavailable(f"Failed to arm reminder timer: {e}") from e

        logger.debug(f"Armed reminder timer for {run_at} (precise={precise})")
        return run_at

    def schedule_snooze(self, request: SnoozeRequest) -> str:
        """Wake up at ``request.resume_at`` to show the snoozed reminder again.

        Returns:
            job_id for cancellation
        """
        if self.on_snooze_end is None:
            raise ValueError("No snooze handler configured")

        job = self.scheduler.add_job(
            self.on_snooze_end,
            trigger=DateTrigger(run_date=request.resume_at),
            args=[request],
            id=snooze_job_id(request),
            name=f"reminder:snooze:{request.note_id}",
            replace_existing=True,
            misfire_grace_time=config.INEXACT_MISFIRE_GRACE,
        )
        logger.info(f"Snoozed note {request.note_id} until {request.resume_at}")
        return job.id
