# src/dates.py
import calendar
from datetime import date, datetime, timedelta

KEY_FORMAT = "%Y-%m-%d"


def _as_date(d) -> date:
    if isinstance(d, datetime):
        if d.tzinfo is not None:
            d = d.astimezone()
        return d.date()
    return d


def date_key(d) -> str:
    """Canonical YYYY-MM-DD key for the calendar day of `d`."""
    return _as_date(d).strftime(KEY_FORMAT)


def parse_key(key: str) -> date:
    return datetime.strptime(key, KEY_FORMAT).date()


def parse_timestamp(value) -> date:
    """Turn a store timestamp (ISO string or datetime) into a local calendar day."""
    if isinstance(value, (date, datetime)):
        return _as_date(value)
    text = str(value).strip()
    if len(text) == 10:
        return parse_key(text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return _as_date(datetime.fromisoformat(text))


def add_days(d, n: int) -> date:
    return _as_date(d) + timedelta(days=n)


def is_same_day(a, b) -> bool:
    return _as_date(a) == _as_date(b)


def is_before(a, b) -> bool:
    return _as_date(a) < _as_date(b)


def is_future(d, today) -> bool:
    return is_before(today, d) and not is_same_day(d, today)


# -------------------------------
# MONTH HELPERS
# -------------------------------
def month_days(year: int, month: int) -> list:
    last = calendar.monthrange(year, month)[1]
    return [date(year, month, day) for day in range(1, last + 1)]


def in_month(key: str, year: int, month: int) -> bool:
    return key[:7] == f"{year:04d}-{month:02d}"


def shift_month(year: int, month: int, delta: int):
    """Return (year, month) moved by `delta` months."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1
