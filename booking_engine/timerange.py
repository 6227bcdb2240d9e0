import re
from dataclasses import dataclass
from typing import Union

from .errors import InvalidTimeFormat

MINUTES_PER_DAY = 24 * 60

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp])\.?[Mm]\.?\s*$")


def parse_clock(text: str) -> int:
    """
    Parse a 12-hour clock label into a minute-of-day integer.

    Parameters
    ----------
    text : str
        Label such as '9:00 AM' or '2:30 pm'.

    Returns
    -------
    int
        Minutes since midnight (0-1439).

    Raises
    ------
    InvalidTimeFormat
        If the label is not a valid 12-hour time.
    """
    if not isinstance(text, str):
        raise InvalidTimeFormat(text)
    match = _CLOCK_RE.match(text)
    if match is None:
        raise InvalidTimeFormat(text)

    hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if not 1 <= hour <= 12 or minute > 59:
        raise InvalidTimeFormat(text)

    # 12 AM is midnight, 12 PM is noon
    hour = hour % 12
    if meridiem == "P":
        hour += 12
    return hour * 60 + minute


def format_clock(minutes: int) -> str:
    """Render a minute-of-day integer as a canonical label, e.g. 840 -> '2:00 PM'."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"minute of day out of range: {minutes}")
    hour, minute = divmod(minutes, 60)
    meridiem = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:{minute:02d} {meridiem}"


def parse_end_clock(text: str) -> int:
    """
    Parse a label that closes a range.

    Same as ``parse_clock`` except that '12:00 AM' means the end of the day
    (1440), so a range may run until midnight.
    """
    minutes = parse_clock(text)
    return minutes or MINUTES_PER_DAY


def as_minutes(value: Union[int, str], closing: bool = False) -> int:
    """Accept either a minute-of-day integer or a clock label."""
    if isinstance(value, bool):
        raise InvalidTimeFormat(value)
    if isinstance(value, int):
        if not 0 <= value <= MINUTES_PER_DAY:
            raise InvalidTimeFormat(value)
        return value
    return parse_end_clock(value) if closing else parse_clock(value)


@dataclass(frozen=True, order=True)
class TimeRange:
    """
    Half-open interval [start, end) of minutes within a single day.

    Attributes
    ----------
    start : int
        First minute covered by the range.
    end : int
        First minute no longer covered by the range.
    """
    start: int
    end: int

    def __post_init__(self):
        if not 0 <= self.start < self.end <= MINUTES_PER_DAY:
            raise ValueError(f"invalid time range: [{self.start}, {self.end})")

    @classmethod
    def parse(cls, start_text: str, end_text: str) -> "TimeRange":
        """
        Build a range from two 12-hour labels.

        An end label of '12:00 AM' closes the range at midnight.

        Raises
        ------
        InvalidTimeFormat
            If either label is malformed.
        ValueError
            If the end is not strictly after the start.
        """
        start, end = parse_clock(start_text), parse_end_clock(end_text)
        if end <= start:
            raise ValueError("end_time must be after start_time")
        return cls(start, end)

    def overlaps(self, other: "TimeRange") -> bool:
        # touching endpoints do not overlap, so back-to-back bookings are allowed
        return self.start < other.end and other.start < self.end

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def start_label(self) -> str:
        return format_clock(self.start)

    @property
    def end_label(self) -> str:
        # 24:00 is rendered as midnight
        return format_clock(self.end % MINUTES_PER_DAY)

    def __str__(self) -> str:
        return f"{self.start_label} - {self.end_label}"
