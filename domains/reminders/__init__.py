"""Reminders for note times (scheduled, deadline and event timestamps).

Resolves which org-style timestamps fire between runs, shows them, and keeps
a single APScheduler timer armed for the next one. The last completed run is
persisted in SQLite so catch-up after downtime is gap-free.
"""

from .timestamp import (
    ParseError,
    RecurringTimestamp,
    Repeater,
    RepeaterMode,
    Unit,
    next_occurrence_on_or_after,
    parse,
    render,
)
from .models import (
    PersistenceUnavailable,
    Reminder,
    ReminderPayload,
    SnoozeRequest,
    TimeMarker,
    TimeType,
)
from .resolver import resolve
from .aggregator import IntervalMode, collect
from .snooze import resume
from .engine import CycleObserver, CycleResult, CycleState, LoggingObserver, ReminderEngine, TriggerReason
from .run_state import RunStateStore
from .service import ReminderService, register_reminders

__all__ = [
    "ParseError",
    "RecurringTimestamp",
    "Repeater",
    "RepeaterMode",
    "Unit",
    "next_occurrence_on_or_after",
    "parse",
    "render",
    "PersistenceUnavailable",
    "Reminder",
    "ReminderPayload",
    "SnoozeRequest",
    "TimeMarker",
    "TimeType",
    "resolve",
    "IntervalMode",
    "collect",
    "resume",
    "CycleObserver",
    "CycleResult",
    "CycleState",
    "LoggingObserver",
    "ReminderEngine",
    "TriggerReason",
    "RunStateStore",
    "ReminderService",
    "register_reminders",
]
