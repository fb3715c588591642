"""Parse org-style timestamps and compute their repeat occurrences.

Supported forms:
- "<2024-01-31 Wed>"                   all-day, active
- "[2024-01-31 Wed 10:00]"             inactive, timed
- "<2024-01-31 Wed 10:00-11:30>"       time range (end time kept for rendering)
- "<2024-01-31 Wed 10:00 .+1m -2d>"    repeater plus warning period

Repeaters:
- "+1w"   cumulative - fixed progression from the base
- "++1w"  catch-up   - same progression as cumulative
- ".+1w"  restart    - each step taken from the previous occurrence, so
                        a clamped month end sticks (Jan 31, Feb 29, Mar 29)

Every occurrence depends on the base alone, never on when it is queried.
"""

import math
import re
from dataclasses import dataclass, replace
from datetime import datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from . import config


class ParseError(ValueError):
    """Raised for a timestamp expression that cannot be used."""


class Unit(Enum):
    DAY = "d"
    WEEK = "w"
    MONTH = "m"
    YEAR = "y"


class RepeaterMode(Enum):
    CUMULATIVE = "+"
    CATCH_UP = "++"
    RESTART = ".+"


@dataclass(frozen=True)
class Repeater:
    unit: Unit
    count: int
    mode: RepeaterMode = RepeaterMode.CUMULATIVE

    def __str__(self) -> str:
        return f"{self.mode.value}{self.count}{self.unit.value}"


@dataclass(frozen=True)
class WarningPeriod:
    """Deadline warning ("-2d"); ``first_only`` for the "--2d" form."""
    unit: Unit
    count: int
    first_only: bool = False

    def __str__(self) -> str:
        return f"{'--' if self.first_only else '-'}{self.count}{self.unit.value}"


@dataclass(frozen=True)
class RecurringTimestamp:
    """Parsed timestamp: base instant plus optional repeater."""
    base: datetime
    has_time: bool
    repeater: Optional[Repeater] = None
    active: bool = True
    end_time: Optional[time] = None
    warning: Optional[WarningPeriod] = None

    @property
    def is_repeating(self) -> bool:
        return self.repeater is not None


_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_CLOSING = {"<": ">", "[": "]"}

_TIMESTAMP_RE = re.compile(r"^([<\[])(\d{4})-(\d{2})-(\d{2})([^<>\[\]]*)([>\]])$")
_DAY_NAME_RE = re.compile(r"^[^\W\d_]+\.?$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?:-(\d{1,2}):(\d{2}))?$")
_REPEATER_RE = re.compile(r"^(\.\+|\+\+|\+)(\d+)(\w)$")
_WARNING_RE = re.compile(r"^(--?)(\d+)(\w)$")


def _default_tz() -> tzinfo:
    return ZoneInfo(config.TIMEZONE)


def _unit(letter: str, raw: str) -> Unit:
    try:
        return Unit(letter)
    except ValueError:
        raise ParseError(f"Unknown repeat unit {letter!r} in {raw!r}") from None


def _count(digits: str, raw: str) -> int:
    count = int(digits)
    if count < 1:
        raise ParseError(f"Repeat count must be at least 1 in {raw!r}")
    return count


def parse_clock(text: str) -> time:
    """Parse "HH:MM" into a time of day.

    Raises:
        ParseError: if the text is not a valid 24-hour clock time
    """
    match = re.match(r"^(\d{1,2}):(\d{2})$", text.strip())
    if not match:
        raise ParseError(f"Invalid clock time {text!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ParseError(f"Invalid clock time {text!r}")
    return time(hour, minute)


def parse(raw: str, tz: Optional[tzinfo] = None) -> RecurringTimestamp:
    """Parse a timestamp expression.

    Args:
        raw: Timestamp text, e.g. "<2024-01-31 Wed 10:00 .+1m>"
        tz: Zone for the wall-clock date/time (defaults to config.TIMEZONE)

    Returns:
        RecurringTimestamp

    Raises:
        ParseError: malformed text, invalid date/time, zero count or unknown unit
    """
    if not isinstance(raw, str):
        raise ParseError(f"Timestamp must be text, got {type(raw).__name__}")

    match = _TIMESTAMP_RE.match(raw.strip())
    if not match:
        raise ParseError(f"Not a timestamp: {raw!r}")

    opening, year, month, day, rest, closing = match.groups()
    if _CLOSING[opening] != closing:
        raise ParseError(f"Mismatched brackets in {raw!r}")

    tz = tz or _default_tz()
    clock = None
    end_time = None
    repeater = None
    warning = None

    for position, token in enumerate(rest.split()):
        time_match = _TIME_RE.match(token)
        repeater_match = _REPEATER_RE.match(token)
        warning_match = _WARNING_RE.match(token)

        if position == 0 and _DAY_NAME_RE.match(token):
            continue  # day name is derived from the date
        elif time_match and clock is None and repeater is None and warning is None:
            clock = parse_clock(f"{time_match.group(1)}:{time_match.group(2)}")
            if time_match.group(3):
                end_time = parse_clock(f"{time_match.group(3)}:{time_match.group(4)}")
        elif repeater_match and repeater is None:
            repeater = Repeater(
                unit=_unit(repeater_match.group(3), raw),
                count=_count(repeater_match.group(2), raw),
                mode=RepeaterMode(repeater_match.group(1)),
            )
        elif warning_match and warning is None:
            warning = WarningPeriod(
                unit=_unit(warning_match.group(3), raw),
                count=_count(warning_match.group(2), raw),
                first_only=warning_match.group(1) == "--",
            )
        else:
            raise ParseError(f"Unexpected {token!r} in {raw!r}")

    try:
        base = datetime(
            int(year), int(month), int(day),
            clock.hour if clock else 0,
            clock.minute if clock else 0,
            tzinfo=tz,
        )
    except ValueError as e:
        raise ParseError(f"Invalid date in {raw!r}: {e}") from None

    return RecurringTimestamp(
        base=base,
        has_time=clock is not None,
        repeater=repeater,
        active=opening == "<",
        end_time=end_time,
        warning=warning,
    )


def render(ts: RecurringTimestamp) -> str:
    """Format a timestamp so that ``parse(render(ts)) == ts``."""
    opening, closing = ("<", ">") if ts.active else ("[", "]")
    parts = [ts.base.strftime("%Y-%m-%d"), _DAY_NAMES[ts.base.weekday()]]

    if ts.has_time:
        clock = ts.base.strftime("%H:%M")
        if ts.end_time is not None:
            clock += "-" + ts.end_time.strftime("%H:%M")
        parts.append(clock)
    if ts.repeater:
        parts.append(str(ts.repeater))
    if ts.warning:
        parts.append(str(ts.warning))

    return f"{opening}{' '.join(parts)}{closing}"


def at_time_of_day(ts: RecurringTimestamp, at: Optional[time]) -> RecurringTimestamp:
    """Give an all-day timestamp a firing time; timed ones are returned as is.

    ``has_time`` stays False so the reminder is still reported as all-day.
    """
    if ts.has_time or at is None:
        return ts
    return replace(ts, base=ts.base.replace(hour=at.hour, minute=at.minute))


# =============================================================================
# OCCURRENCES
# =============================================================================

def _shift(moment: datetime, unit: Unit, n: int) -> datetime:
    """Move by ``n`` units; month/year steps clamp to the month end."""
    if unit is Unit.DAY:
        return moment + relativedelta(days=n)
    if unit is Unit.WEEK:
        return moment + relativedelta(weeks=n)
    if unit is Unit.MONTH:
        return moment + relativedelta(months=n)
    return moment + relativedelta(years=n)


def _cumulative(ts: RecurringTimestamp, bound: datetime) -> datetime:
    """Smallest ``base + k*count*unit`` that is >= bound, each term taken from the base."""
    base = ts.base
    unit, count = ts.repeater.unit, ts.repeater.count
    local = bound.astimezone(base.tzinfo)

    def nth(k: int) -> datetime:
        return _shift(base, unit, k * count)

    # Estimate k from wall-clock distance, then correct for DST and clamping
    if unit in (Unit.DAY, Unit.WEEK):
        step = timedelta(days=count * (7 if unit is Unit.WEEK else 1))
        elapsed = local.replace(tzinfo=None) - base.replace(tzinfo=None)
        k = max(math.ceil(elapsed / step), 0)
    else:
        months_per_step = count * (12 if unit is Unit.YEAR else 1)
        months = (local.year - base.year) * 12 + (local.month - base.month)
        k = max(months // months_per_step, 0)

    while k > 0 and nth(k - 1) >= bound:
        k -= 1
    while nth(k) < bound:
        k += 1
    return nth(k)


def _restart(ts: RecurringTimestamp, bound: datetime) -> datetime:
    """Step from the base one repeat at a time; each step starts from the previous occurrence.

    A clamped month end carries into the following steps (Jan 31, Feb 29,
    Mar 29, ...). Day and week steps never clamp, so they match the
    cumulative progression.
    """
    unit, count = ts.repeater.unit, ts.repeater.count
    current = ts.base
    while current < bound:
        if unit in (Unit.DAY, Unit.WEEK) or current.day <= 28:
            # No further clamping from here on
            return _cumulative(replace(ts, base=current), bound)
        current = _shift(current, unit, count)
    return current


def next_occurrence_on_or_after(ts: RecurringTimestamp, bound: datetime) -> Optional[datetime]:
    """First occurrence of ``ts`` at or after ``bound``.

    Args:
        ts: Parsed timestamp
        bound: Inclusive lower bound (naive values are read in the timestamp's zone)

    Returns:
        The occurrence, or None for a non-repeating timestamp already in the past
    """
    if bound.tzinfo is None:
        bound = bound.replace(tzinfo=ts.base.tzinfo)

    if ts.base >= bound:
        return ts.base
    if ts.repeater is None:
        return None
    if ts.repeater.mode is RepeaterMode.RESTART:
        return _restart(ts, bound)
    return _cumulative(ts, bound)
