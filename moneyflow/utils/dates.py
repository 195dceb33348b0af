# moneyflow/utils/dates.py
import calendar
from datetime import date, datetime
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser
from flask import current_app, has_app_context


def today() -> date:
    """Calendar "today" in the application's timezone."""
    tz = current_app.config.get("APP_TIMEZONE") if has_app_context() else None
    return datetime.now(ZoneInfo(tz)).date() if tz else date.today()


def now() -> datetime:
    """Naive wall-clock time in the application's timezone, comparable with today()."""
    tz = current_app.config.get("APP_TIMEZONE") if has_app_context() else None
    return datetime.now(ZoneInfo(tz)).replace(tzinfo=None) if tz else datetime.now()


def parse_date(value, default=None) -> date | None:
    """Accepts date objects, 'YYYY-MM-DD' and full ISO timestamps."""
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.isoparse(str(value).strip()).date()


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_key(d: date) -> str:
    return f"{d.year}-{d.month:02d}"
