"""Reminders domain configuration - note time markers, timers and run state."""

import os


def flag(name: str, default: bool) -> bool:
    """Read an on/off switch from the environment."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


# Channel that receives reminder notifications
CHANNEL_ID = int(os.environ.get("REMINDERS_CHANNEL_ID", 0))

# Timestamps without an offset are wall-clock times in this zone
TIMEZONE = os.environ.get("REMINDERS_TIMEZONE", "Europe/London")

# Which time types produce reminders; the environment is re-read every cycle
REMINDERS_FOR_SCHEDULED = flag("REMINDERS_FOR_SCHEDULED", True)
REMINDERS_FOR_DEADLINE = flag("REMINDERS_FOR_DEADLINE", True)
REMINDERS_FOR_EVENT = flag("REMINDERS_FOR_EVENT", False)

# All-day timestamps (no clock time) fire at this time of day
DAILY_REMINDER_TIME = os.environ.get("REMINDERS_DAILY_TIME", "09:00")

# Run state (last completed cycle) - local SQLite, survives restarts
RUN_STATE_DB = os.environ.get("REMINDERS_RUN_STATE_DB", "data/reminders_state.db")

# Supabase table holding one row per note time marker
MARKERS_TABLE = os.environ.get("REMINDERS_MARKERS_TABLE", "note_times")
MARKERS_TIMEOUT = 10

# Poll for marker changes made outside the bot (data-changed trigger)
POLL_INTERVAL_SECONDS = int(os.environ.get("REMINDERS_POLL_SECONDS", 300))

# Snooze
DEFAULT_SNOOZE_MINUTES = int(os.environ.get("REMINDERS_SNOOZE_MINUTES", 15))

# Timer precision classes (APScheduler misfire grace, seconds).
# Timestamps with a clock time must fire close to their minute; all-day
# reminders may run late after the host was asleep.
PRECISE_MISFIRE_GRACE = 60
INEXACT_MISFIRE_GRACE = 15 * 60
