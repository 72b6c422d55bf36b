import re
from datetime import date, datetime
from typing import Optional

_INT_RE = re.compile(r"^[+-]?\d+$")
_EXTRA_DATE_FORMATS = ("%m/%d/%Y", "%Y/%m/%d", "%d %b %Y", "%a %b %d %Y")


def parse_calendar_date(value) -> Optional[datetime]:
    """Return a datetime for ISO-8601 (or a few common) date strings, else None."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _EXTRA_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def is_integer_text(value: str) -> bool:
    return bool(_INT_RE.match(value.strip()))


def to_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None
