"""
dates.py
--------
Date and time helpers for invoices, due dates and activity feeds. Inputs may
be unix timestamps, date strings (anything dateutil can parse), ``date`` or
``datetime`` objects. Month and year arithmetic is calendar-aware: adding one
month to Jan 31 gives the last day of February.
"""

import calendar
from datetime import date, datetime, time, timedelta

from dateutil import parser
from dateutil.relativedelta import relativedelta

from billing_app import config

SECONDS = {
    "years": 365 * 24 * 3600,
    "months": 30 * 24 * 3600,
    "days": 24 * 3600,
    "hours": 3600,
    "minutes": 60,
    "seconds": 1,
}

ELAPSED_UNITS = (
    (SECONDS["years"], "year"),
    (SECONDS["months"], "month"),
    (SECONDS["days"], "day"),
    (SECONDS["hours"], "hour"),
    (SECONDS["minutes"], "minute"),
    (1, "second"),
)


def to_datetime(value=None) -> datetime:
    """Coerce a timestamp, string, date or datetime; None and "now" mean the current time"""
    if value is None:
        return datetime.now()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value)

    text = str(value).strip()
    if text.lower() == "now":
        return datetime.now()
    if text.lstrip("-").isdigit():
        return datetime.fromtimestamp(int(text))
    return parser.parse(text)


def _naive(value):
    # compare aware values from parsed strings against local naive times
    moment = to_datetime(value)
    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


def format_date(value, fmt=config.DATE_FORMAT) -> str:
    return to_datetime(value).strftime(fmt)


def format_datetime(value, fmt=config.DATETIME_FORMAT) -> str:
    return to_datetime(value).strftime(fmt)


def current_date(fmt=config.DATE_FORMAT) -> str:
    return datetime.now().strftime(fmt)


def current_datetime(fmt=config.DATETIME_FORMAT) -> str:
    return datetime.now().strftime(fmt)


def date_difference(date1, date2="now", unit="days") -> int:
    """Absolute difference, floored to whole units (months are 30 days, years 365)"""
    seconds = abs((_naive(date2) - _naive(date1)).total_seconds())
    return int(seconds // SECONDS.get(unit, SECONDS["days"]))


def _delta(value, unit):
    value = int(value)
    if unit == "years":
        return relativedelta(years=value)
    if unit == "months":
        return relativedelta(months=value)
    if unit == "hours":
        return timedelta(hours=value)
    if unit == "minutes":
        return timedelta(minutes=value)
    if unit == "seconds":
        return timedelta(seconds=value)
    return timedelta(days=value)


def date_add(value, amount, unit="days", fmt=config.DATE_FORMAT) -> str:
    return (to_datetime(value) + _delta(amount, unit)).strftime(fmt)


def date_subtract(value, amount, unit="days", fmt=config.DATE_FORMAT) -> str:
    return date_add(value, -int(amount), unit, fmt)


def is_past_date(value, now=None) -> bool:
    return _naive(value) < _naive(now)


def is_future_date(value, now=None) -> bool:
    return _naive(value) > _naive(now)


def is_today(value, now=None) -> bool:
    return _naive(value).date() == _naive(now).date()


def date_range(start, end, fmt=config.DATE_FORMAT):
    """Every day from start to end inclusive; empty when end is before start"""
    current = to_datetime(start)
    last = to_datetime(end)
    dates = []
    while current <= last:
        dates.append(current.strftime(fmt))
        current += timedelta(days=1)
    return dates


def first_day_of_month(value=None, fmt=config.DATE_FORMAT) -> str:
    return to_datetime(value).date().replace(day=1).strftime(fmt)


def last_day_of_month(value=None, fmt=config.DATE_FORMAT) -> str:
    day = to_datetime(value).date()
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=last).strftime(fmt)


def time_elapsed(value, now=None) -> str:
    """Human readable distance from now, e.g. "3 hours ago" or "in 2 days" """
    diff = int((_naive(now) - _naive(value)).total_seconds())

    if abs(diff) < 5:
        return "just now"

    prefix, suffix = ("in ", "") if diff < 0 else ("", " ago")
    diff = abs(diff)

    for size, name in ELAPSED_UNITS:
        if diff >= size:
            count = diff // size
            plural = "s" if count > 1 else ""
            return f"{prefix}{count} {name}{plural}{suffix}"


def month_name(month, short=False):
    month = int(month)
    if month < 1 or month > 12:
        return None
    return calendar.month_abbr[month] if short else calendar.month_name[month]


def day_name(value, short=False) -> str:
    return to_datetime(value).strftime("%a" if short else "%A")


def is_leap_year(year=None) -> bool:
    if year is None:
        year = date.today().year
    return calendar.isleap(int(year))


def calculate_age(birthdate, now=None) -> int:
    return relativedelta(_naive(now).date(), _naive(birthdate).date()).years


def get_quarter(value=None) -> int:
    return (to_datetime(value).month - 1) // 3 + 1


def quarter_range(quarter, year=None, fmt=config.DATE_FORMAT):
    """Start and end date of a quarter, or None for a quarter outside 1-4"""
    quarter = int(quarter)
    if quarter < 1 or quarter > 4:
        return None
    if year is None:
        year = date.today().year

    start = date(int(year), (quarter - 1) * 3 + 1, 1)
    end = start + relativedelta(months=3, days=-1)
    return {"start_date": start.strftime(fmt), "end_date": end.strftime(fmt)}


def iso_date(value=None) -> str:
    moment = to_datetime(value)
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment.isoformat(timespec="seconds")


def calculate_due_days(due_date, now=None) -> int:
    """Days until due_date; negative once it is overdue"""
    return (_naive(due_date).date() - _naive(now).date()).days


def due_date(issued=None, days=config.INVOICE_DUE_DAYS, fmt=config.DATE_FORMAT) -> str:
    return date_add(issued, days, "days", fmt)
