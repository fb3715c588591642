"""Reminder scheduling engine - one cycle per trigger.

Cycle states:
- IDLE: trigger received, run state and markers not read yet
- CATCHING_UP: reminders due now are collected and shown (timer/snooze triggers)
- SCHEDULING: the timer is re-armed for the next reminder, or canceled if none
- COMMITTED: cycle complete; the run state is written if the trigger moves it

Only a timer cycle moves the run state to ``now``, after its catch-up has
been shown. Boot and data-changed cycles only seed a missing run state;
snooze cycles never touch it. The run state therefore marks the first
instant not yet caught up, and look-ahead starts there: anything still
owed arms an immediate timer. A crash or failed delivery makes a later
cycle repeat the same catch-up window: reminders may be shown twice,
never lost.

Collaborators (duck-typed):
- source:      async times() -> list[TimeMarker]
- preferences: enabled_types() -> set[TimeType]
- timers:      cancel_all(); arm(delay_ms, precise) replacing any armed timer
- sink:        async show(reminders)
- run_state:   load() -> datetime | None; store(now)

The host must run one cycle at a time (see service.ReminderService).
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Optional

from logger import logger
from .aggregator import IntervalMode, collect
from .models import Reminder, SnoozeRequest, TimeMarker
from .snooze import resume
from .timestamp import ParseError


class TriggerReason(Enum):
    """Why a cycle runs."""
    BOOT = "boot"
    DATA_CHANGED = "data_changed"
    REMINDER_FIRED = "reminder_fired"
    SNOOZE_ENDED = "snooze_ended"


class CycleState(Enum):
    IDLE = "idle"
    CATCHING_UP = "catching_up"
    SCHEDULING = "scheduling"
    COMMITTED = "committed"


@dataclass
class CycleResult:
    """What a cycle did, for callers and tests."""
    reason: TriggerReason
    now: datetime
    last_run: Optional[datetime] = None
    state: CycleState = CycleState.IDLE
    shown: list[Reminder] = field(default_factory=list)
    upcoming: list[Reminder] = field(default_factory=list)
    armed_delay_ms: Optional[int] = None
    skipped: bool = False
    stored: bool = False


class CycleObserver:
    """Checkpoint hooks. Subclass and override what you need."""

    def cycle_started(self, reason: TriggerReason, now: datetime, last_run: Optional[datetime]) -> None:
        pass

    def cycle_skipped(self, reason: TriggerReason, now: datetime) -> None:
        pass

    def marker_skipped(self, marker: TimeMarker, error: ParseError) -> None:
        pass

    def caught_up(self, reason: TriggerReason, last_run: Optional[datetime], now: datetime,
                  reminders: list[Reminder]) -> None:
        pass

    def scheduled(self, now: datetime, upcoming: list[Reminder], delay_ms: Optional[int]) -> None:
        pass

    def committed(self, now: datetime) -> None:
        pass

    def cycle_failed(self, reason: TriggerReason, error: Exception) -> None:
        pass


class LoggingObserver(CycleObserver):
    """Writes cycle checkpoints to the project log."""

    def cycle_started(self, reason, now, last_run):
        logger.info(f"Reminder cycle ({reason.value}) started (now:{now} last-run:{last_run})")

    def cycle_skipped(self, reason, now):
        logger.info(f"Reminder cycle ({reason.value}) ignored - all reminder types are disabled")

    def marker_skipped(self, marker, error):
        logger.warning(f"Skipping note {marker.note_id} ({marker.time_type.name.lower()}): {error}")

    def caught_up(self, reason, last_run, now, reminders):
        if reason is TriggerReason.SNOOZE_ENDED:
            logger.info(f"Snooze ended: showing {len(reminders)} reminder(s)")
        elif last_run is None:
            logger.info("Triggered: no previous run")
        elif reminders:
            logger.info(f"Triggered: found {len(reminders)} reminder(s) between {last_run} and {now}")
        else:
            logger.info(f"Triggered: no reminders between {last_run} and {now}")

    def scheduled(self, now, upcoming, delay_ms):
        if not upcoming:
            logger.info(f"Next: no upcoming reminders after {now}")
            return
        first = upcoming[0].payload
        logger.info(
            f"Next: found {len(upcoming)} upcoming reminder(s), scheduled first in "
            f"{delay_ms // 1000} sec: \"{first.title}\" (id:{first.note_id})"
        )

    def committed(self, now):
        logger.debug(f"Reminder cycle committed at {now}")

    def cycle_failed(self, reason, error):
        logger.error(f"Reminder cycle ({reason.value}) failed, run state kept: {error}")


def delay_until(fire_at: datetime, now: datetime) -> int:
    """Milliseconds from now until fire_at, never less than 1."""
    return max((fire_at - now) // timedelta(milliseconds=1), 1)


def _moves_run_state(reason: TriggerReason, last_run: Optional[datetime]) -> bool:
    if reason is TriggerReason.REMINDER_FIRED:
        return True
    if reason in (TriggerReason.BOOT, TriggerReason.DATA_CHANGED):
        return last_run is None
    return False


def _look_ahead_from(reason: TriggerReason, now: datetime, last_run: Optional[datetime]) -> datetime:
    """First instant not yet caught up once this cycle completes."""
    if reason is TriggerReason.REMINDER_FIRED or last_run is None or last_run > now:
        return now
    return last_run


class ReminderEngine:
    """Runs reminder cycles against the supplied collaborators."""

    def __init__(
        self,
        source,
        preferences,
        timers,
        sink,
        run_state,
        observer: Optional[CycleObserver] = None,
        default_time: Optional[time] = None,
    ):
        self.source = source
        self.preferences = preferences
        self.timers = timers
        self.sink = sink
        self.run_state = run_state
        self.observer = observer or CycleObserver()
        self.default_time = default_time

    async def run_cycle(
        self,
        reason: TriggerReason,
        now: datetime,
        snooze: Optional[SnoozeRequest] = None
    ) -> CycleResult:
        """Run one full cycle: catch up, arm the next timer, commit.

        Args:
            reason: What triggered the cycle
            now: Current instant (timezone aware)
            snooze: The snooze being resumed, for SNOOZE_ENDED

        Returns:
            CycleResult describing what was shown and scheduled

        Raises:
            PersistenceUnavailable: run state, timers or markers unreachable;
                the run state is not written
        """
        result = CycleResult(reason=reason, now=now)

        enabled = set(self.preferences.enabled_types())
        if not enabled:
            result.skipped = True
            self.observer.cycle_skipped(reason, now)
            return result

        try:
            last_run = self.run_state.load()
            result.last_run = last_run
            self.observer.cycle_started(reason, now, last_run)
            markers = list(await self.source.times())

            result.state = CycleState.CATCHING_UP
            result.shown = self._due_now(reason, now, last_run, markers, enabled, snooze)
            if result.shown:
                await self.sink.show(result.shown)

            result.state = CycleState.SCHEDULING
            result.upcoming = collect(
                markers, IntervalMode.LOOK_AHEAD, _look_ahead_from(reason, now, last_run), None, enabled,
                default_time=self.default_time, on_skip=self.observer.marker_skipped,
            )
            if result.upcoming:
                first = result.upcoming[0]
                result.armed_delay_ms = delay_until(first.fire_at, now)
                self.timers.arm(result.armed_delay_ms, first.payload.timestamp.has_time)
            else:
                self.timers.cancel_all()
            self.observer.scheduled(now, result.upcoming, result.armed_delay_ms)

            if _moves_run_state(reason, last_run):
                self.run_state.store(now)
                result.stored = True
                self.observer.committed(now)
            result.state = CycleState.COMMITTED
        except Exception as e:
            self.observer.cycle_failed(reason, e)
            raise

        return result

    def _due_now(
        self,
        reason: TriggerReason,
        now: datetime,
        last_run: Optional[datetime],
        markers: list[TimeMarker],
        enabled: set,
        snooze: Optional[SnoozeRequest],
    ) -> list[Reminder]:
        """Reminders to show in this cycle, by trigger reason."""
        if reason in (TriggerReason.BOOT, TriggerReason.DATA_CHANGED):
            # Nothing to catch up, only the next timer is recomputed
            return []

        if reason is TriggerReason.REMINDER_FIRED:
            due = collect(
                markers, IntervalMode.CATCH_UP, now, last_run, enabled,
                default_time=self.default_time, on_skip=self.observer.marker_skipped,
            )
            self.observer.caught_up(reason, last_run, now, due)
            return due

        if reason is TriggerReason.SNOOZE_ENDED:
            if snooze is None:
                logger.warning("Snooze ended without a snooze request - nothing to show")
                return []
            due = resume(
                snooze.note_id, snooze.time_type, snooze.resume_at, markers, enabled,
                on_skip=self.observer.marker_skipped,
            )
            self.observer.caught_up(reason, last_run, now, due)
            return due

        raise ValueError(f"Unhandled trigger reason: {reason}")
