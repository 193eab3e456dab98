"""
Date matching for OneiroMetrics.

Journal titles carry dates in user-chosen formats written with moment-style
tokens (``YYYY-MM-DD``, ``dddd, MMMM Do YYYY``...). Each format is compiled
once into a regular expression; every match is normalised to ISO-8601.
"""

import re
from datetime import date
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern


MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

_MONTH_ABBREVIATIONS = {name[:3]: index for index, name in enumerate(MONTH_NAMES, start=1)}
_MONTH_ABBREVIATIONS["sept"] = 9

_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

# Longest tokens first so that "YYYY" is never read as two "YY"
_FORMAT_TOKEN_RE = re.compile(r"\[[^\]]*\]|YYYY|YY|MMMM|MMM|MM|M|dddd|ddd|Do|DD|D")

_TOKEN_PATTERNS = {
    "YYYY": ("year", r"\d{4}"),
    "YY": ("short_year", r"\d{2}"),
    "MMMM": ("month_name", "|".join(MONTH_NAMES)),
    "MMM": ("month_abbr", "sept|" + "|".join(name[:3] for name in MONTH_NAMES)),
    "MM": ("month", r"\d{2}"),
    "M": ("month", r"\d{1,2}"),
    "Do": ("day", r"\d{1,2}(?=st|nd|rd|th)"),
    "DD": ("day", r"\d{2}"),
    "D": ("day", r"\d{1,2}"),
    "dddd": (None, "|".join(_WEEKDAYS)),
    "ddd": (None, "|".join(name[:3] for name in _WEEKDAYS)),
}

_COMPACT_DATE_RE = re.compile(r"(?<!\d)(?P<year>\d{4})(?P<month>\d{2})(?P<day>\d{2})(?!\d)")

_ISO_DATE_RE = re.compile(r"(?<!\d)(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})(?!\d)")


@lru_cache(maxsize=64)
def compile_date_format(date_format: str) -> Optional[Pattern]:
    """
    Compile a moment-style date format into a regular expression.

    Text in square brackets is matched literally. Formats that cannot
    identify a year, a month and a day return None.
    """
    parts: List[str] = []
    groups = set()
    position = 0

    for match in _FORMAT_TOKEN_RE.finditer(date_format):
        parts.append(re.escape(date_format[position:match.start()]))
        token = match.group(0)
        position = match.end()

        if token.startswith("["):
            parts.append(re.escape(token[1:-1]))
            continue

        group, pattern = _TOKEN_PATTERNS[token]
        if group is None or group in groups:
            parts.append(f"(?:{pattern})")
        else:
            groups.add(group)
            parts.append(f"(?P<{group}>{pattern})")

        if token == "Do":
            parts.append(r"(?:st|nd|rd|th)")

    parts.append(re.escape(date_format[position:]))

    has_year = groups & {"year", "short_year"}
    has_month = groups & {"month", "month_name", "month_abbr"}
    if not (has_year and has_month and "day" in groups):
        return None

    return re.compile(r"(?<![\w])" + "".join(parts) + r"(?!\d)", re.IGNORECASE)


def _to_iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _iso_from_match(match) -> Optional[str]:
    values = match.groupdict()

    if values.get("year"):
        year = int(values["year"])
    else:
        year = 2000 + int(values["short_year"])

    if values.get("month"):
        month = int(values["month"])
    elif values.get("month_name"):
        month = MONTH_NAMES.index(values["month_name"].lower()) + 1
    else:
        month = _MONTH_ABBREVIATIONS[values["month_abbr"].lower()]

    return _to_iso(year, month, int(values["day"]))


class DateMatcher:
    """
    Finds the first valid date in a piece of text.
    """

    def __init__(self, date_formats: Optional[Iterable[str]] = None):
        formats = list(date_formats or []) or ["YYYY-MM-DD"]
        self.date_formats = formats
        self._patterns = [
            pattern for pattern in (compile_date_format(fmt) for fmt in formats)
            if pattern is not None
        ]

    def match(self, text: Optional[str]) -> Optional[str]:
        """
        Search text for a date in any configured format.

        Formats are tried in order; impossible dates such as 2024-02-30 are
        skipped.

        Returns:
            ISO date string or None
        """
        if not text:
            return None

        for pattern in self._patterns:
            for found in pattern.finditer(text):
                iso = _iso_from_match(found)
                if iso:
                    return iso

        for found in _ISO_DATE_RE.finditer(text):
            iso = _to_iso(int(found.group("year")), int(found.group("month")), int(found.group("day")))
            if iso:
                return iso

        return None

    @staticmethod
    def match_compact(text: Optional[str]) -> Optional[str]:
        """Read a compact YYYYMMDD date, as used in callout metadata and block ids."""
        if not text:
            return None

        for found in _COMPACT_DATE_RE.finditer(text):
            iso = _to_iso(int(found.group("year")), int(found.group("month")), int(found.group("day")))
            if iso:
                return iso

        return None
