"""Which time types have reminders turned on."""

from . import config
from .models import TimeType


class ConfigPreferences:
    """Reads the per-type switches from the environment on every call.

    Unset variables fall back to the values domain config loaded at start-up.
    """

    def enabled_types(self) -> set[TimeType]:
        switches = {
            TimeType.SCHEDULED: config.flag("REMINDERS_FOR_SCHEDULED", config.REMINDERS_FOR_SCHEDULED),
            TimeType.DEADLINE: config.flag("REMINDERS_FOR_DEADLINE", config.REMINDERS_FOR_DEADLINE),
            TimeType.EVENT: config.flag("REMINDERS_FOR_EVENT", config.REMINDERS_FOR_EVENT),
        }
        return {time_type for time_type, on in switches.items() if on}
