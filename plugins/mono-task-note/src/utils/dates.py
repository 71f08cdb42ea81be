"""
Date and time-of-day helpers.

Pure functions, no external dependencies. Wire formats are ``YYYY-MM-DD``
for dates and zero-padded 24-hour ``HH:mm`` for times; everything in
between is done on naive ``date`` / ``datetime`` values.
"""

import re
from datetime import date, datetime, time
from typing import List, Optional, Union

DEFAULT_DONE_AT_FORMAT = "YYYY-MM-DDTHH:mm:ssZ"

_HHMM = re.compile(r"^\d{2}:\d{2}$")
_VALID_TIME = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
_DATE_TIME = re.compile(r"^\d{4}-\d{2}-\d{2}[T ](\d{2}):(\d{2})")

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Longest tokens first so "YYYY" wins over "YY", "MMMM" over "MM", etc.
_MOMENT_TOKEN = re.compile(
    r"\[([^\]]*)\]"
    r"|YYYY|YY|MMMM|MMM|MM|M|DDDD|DDD|Do|DD|D|dddd|ddd|dd|d"
    r"|HH|H|hh|h|mm|m|ss|s|SSS|A|a|ZZ|Z|X|x"
)
_LETTERS = re.compile(r"[A-Za-z]+")


def parse_iso_date(value: Union[str, date, None]) -> Optional[date]:
    """
    Parse a ``YYYY-MM-DD`` value into a date.

    Accepts date/datetime objects as-is. Returns None for empty or
    unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def normalize_time(value: Union[str, time, datetime, None]) -> Optional[str]:
    """
    Reduce a scheduled time to a bare ``HH:mm`` string.

    - ``"09:30"`` is returned unchanged
    - ``"2024-03-10T09:30:00"`` (or with a space separator) yields ``"09:30"``
    - anything else yields None

    The time component is taken as written; offsets are ignored.
    """
    if value is None:
        return None
    if isinstance(value, (datetime, time)):
        return value.strftime("%H:%M")

    text = str(value).strip()
    match = _DATE_TIME.match(text)
    if match:
        return f"{match.group(1)}:{match.group(2)}"
    if _HHMM.match(text):
        return text
    return None


def is_valid_time(value: str) -> bool:
    """True for ``H:mm`` / ``HH:mm`` between 00:00 and 23:59."""
    return bool(_VALID_TIME.match(value.strip())) if isinstance(value, str) else False


def canonical_time(value: str) -> str:
    """Zero-pad a valid time to ``HH:mm`` (``"9:05"`` → ``"09:05"``)."""
    hours, minutes = value.strip().split(":")
    return f"{int(hours):02d}:{int(minutes):02d}"


def _utc_offset(dt: datetime, separator: str) -> str:
    offset = dt.utcoffset()
    total = int(offset.total_seconds()) if offset is not None else 0
    sign = "-" if total < 0 else "+"
    hours, minutes = divmod(abs(total) // 60, 60)
    return f"{sign}{hours:02d}{separator}{minutes:02d}"


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _render_token(dt: datetime, token: str) -> str:
    hour12 = (dt.hour + 11) % 12 + 1
    renderers = {
        "YYYY": lambda: f"{dt.year:04d}",
        "YY": lambda: f"{dt.year % 100:02d}",
        "MMMM": lambda: _MONTHS[dt.month - 1],
        "MMM": lambda: _MONTHS[dt.month - 1][:3],
        "MM": lambda: f"{dt.month:02d}",
        "M": lambda: str(dt.month),
        "DDDD": lambda: f"{dt.timetuple().tm_yday:03d}",
        "DDD": lambda: str(dt.timetuple().tm_yday),
        "Do": lambda: _ordinal(dt.day),
        "DD": lambda: f"{dt.day:02d}",
        "D": lambda: str(dt.day),
        "dddd": lambda: _DAYS[dt.weekday()],
        "ddd": lambda: _DAYS[dt.weekday()][:3],
        "dd": lambda: _DAYS[dt.weekday()][:2],
        # moment counts weekdays from Sunday
        "d": lambda: str((dt.weekday() + 1) % 7),
        "HH": lambda: f"{dt.hour:02d}",
        "H": lambda: str(dt.hour),
        "hh": lambda: f"{hour12:02d}",
        "h": lambda: str(hour12),
        "mm": lambda: f"{dt.minute:02d}",
        "m": lambda: str(dt.minute),
        "ss": lambda: f"{dt.second:02d}",
        "s": lambda: str(dt.second),
        "SSS": lambda: f"{dt.microsecond // 1000:03d}",
        "A": lambda: "AM" if dt.hour < 12 else "PM",
        "a": lambda: "am" if dt.hour < 12 else "pm",
        "ZZ": lambda: _utc_offset(dt, ""),
        "Z": lambda: _utc_offset(dt, ":"),
        "X": lambda: str(int(dt.timestamp())),
        "x": lambda: str(int(dt.timestamp() * 1000)),
    }
    return renderers[token]()


def format_moment(dt: datetime, pattern: str) -> str:
    """
    Format a datetime with a moment.js-style pattern.

    Supports the common tokens (``YYYY-MM-DDTHH:mm:ssZ``, ``ddd``, ``MMM``,
    ``A``, ``X`` ...) and ``[bracketed]`` literals. Characters that are not
    tokens are copied through. Naive datetimes are taken as local time.
    An empty pattern falls back to DEFAULT_DONE_AT_FORMAT.
    """
    if dt.tzinfo is None:
        dt = dt.astimezone()
    pattern = pattern or DEFAULT_DONE_AT_FORMAT

    def _sub(match: "re.Match[str]") -> str:
        if match.group(1) is not None:
            return match.group(1)
        return _render_token(dt, match.group(0))

    return _MOMENT_TOKEN.sub(_sub, pattern)


def unsupported_tokens(pattern: str) -> List[str]:
    """
    Letter runs in ``pattern`` that format_moment() does not interpret.

    They would be copied into the output as text. A bare ``T`` (the ISO
    date/time separator) is not reported; bracketed literals are skipped.
    """
    rest = _MOMENT_TOKEN.sub(" ", pattern or "")
    return [run for run in _LETTERS.findall(rest) if run != "T"]
