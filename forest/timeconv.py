# forest/timeconv.py
import logging
import re
from typing import NamedTuple, Optional

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
FLEXIBLE_MINUTES = 120
DEFAULT_DURATION_MINUTES = 60

_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*([AP])\.?M\.?$", re.IGNORECASE)
_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
_RANGE = re.compile(r"(\d+)\s*-\s*(\d+)\s*(hour|hr|min)")
_MINUTES = re.compile(r"(\d+)\s*min")
_HOURS = re.compile(r"(\d+)\s*(?:hour|hr)")
_FLEXIBLE_WORDS = ("flexible", "needed", "natural", "stopping", "variable")


class TimeParse(NamedTuple):
    minutes: int
    ok: bool


class DurationParse(NamedTuple):
    minutes: int
    ok: bool
    flexible: bool = False


def parse_time_result(text: Optional[str]) -> TimeParse:
    """
    Parse "H:MM AM/PM" or 24-hour "HH:MM" into minutes since midnight.

    Returns TimeParse(0, False) when the text is unparsable, so callers
    can tell midnight apart from garbage.
    """
    cleaned = (text or "").strip()

    m = _TIME_12H.match(cleaned)
    if m:
        hours, minutes, period = int(m.group(1)), int(m.group(2)), m.group(3).upper()
        if 1 <= hours <= 12 and minutes < 60:
            if period == "P" and hours != 12:
                hours += 12
            if period == "A" and hours == 12:
                hours = 0
            return TimeParse(hours * 60 + minutes, True)

    m = _TIME_24H.match(cleaned)
    if m:
        hours, minutes = int(m.group(1)), int(m.group(2))
        if hours == 24 and minutes == 0:
            hours = 0  # next-day marker
        if hours < 24 and minutes < 60:
            return TimeParse(hours * 60 + minutes, True)

    logger.warning("Error parsing time: %r", text)
    return TimeParse(0, False)


def parse_time(text: Optional[str]) -> int:
    """Best-effort parse; 0 on failure."""
    return parse_time_result(text).minutes


def format_time(minutes: int) -> str:
    mins = ((int(minutes) % MINUTES_PER_DAY) + MINUTES_PER_DAY) % MINUTES_PER_DAY
    hours, mins = divmod(mins, 60)
    period = "PM" if hours >= 12 else "AM"
    display = 12 if hours == 0 else hours - 12 if hours > 12 else hours
    return f"{display}:{mins:02d} {period}"


def resolve_window(wake_minutes: int, sleep_minutes: int) -> int:
    """Absolute end of the day window; sleep at or before wake means next day."""
    if sleep_minutes <= wake_minutes:
        return sleep_minutes + MINUTES_PER_DAY
    return sleep_minutes


def to_window(minutes: int, wake_minutes: int) -> int:
    """Place a time of day on the absolute timeline that starts at wake."""
    minutes = minutes % MINUTES_PER_DAY
    return minutes if minutes >= wake_minutes else minutes + MINUTES_PER_DAY


def parse_duration_result(text: Optional[str]) -> DurationParse:
    if not text:
        return DurationParse(DEFAULT_DURATION_MINUTES, False)

    s = str(text).lower()
    if any(word in s for word in _FLEXIBLE_WORDS):
        return DurationParse(FLEXIBLE_MINUTES, True, flexible=True)

    # ranges schedule at their upper bound
    m = _RANGE.search(s)
    if m:
        upper = int(m.group(2))
        return DurationParse(upper * 60 if m.group(3) != "min" else upper, True)

    m = _MINUTES.search(s)
    if m:
        return DurationParse(int(m.group(1)), True)
    m = _HOURS.search(s)
    if m:
        return DurationParse(int(m.group(1)) * 60, True)

    logger.warning("Unrecognised duration %r, assuming %d minutes", text, DEFAULT_DURATION_MINUTES)
    return DurationParse(DEFAULT_DURATION_MINUTES, False)


def parse_duration(text: Optional[str]) -> int:
    return parse_duration_result(text).minutes
