"""
Fetch timestamp family.

Every submission records one instant and renders it several ways so that
clients can display it without date handling of their own. All values come
from the same ``datetime`` and are rendered in UTC with US English names.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _hour12(moment: datetime) -> tuple[int, str]:
    suffix = "AM" if moment.hour < 12 else "PM"
    hour = moment.hour % 12 or 12
    return hour, suffix


def iso_millis(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def fetched_at_fields(moment: Optional[datetime] = None) -> Dict[str, Any]:
    """Return the ``_date_fetched*`` fields for a single instant."""
    moment = (moment or utcnow()).astimezone(timezone.utc)
    hour, suffix = _hour12(moment)
    weekday = _WEEKDAYS[moment.weekday()]
    month = _MONTHS[moment.month - 1]

    date = f"{month} {moment.day}, {moment.year}"
    time = f"{hour:02d}:{moment.minute:02d} {suffix}"

    fields = {
        "_date_fetched_milliseconds": int(moment.timestamp()) * 1000 + moment.microsecond // 1000,
        "_date_fetched_iso": iso_millis(moment),
        "_date_fetched_locale_string": (
            f"{moment.month}/{moment.day}/{moment.year}, "
            f"{hour}:{moment.minute:02d}:{moment.second:02d} {suffix}"
        ),
        "_date_fetched_locale_en_US_full": f"{weekday}, {date}, {time}",
        "_date_fetched_locale_en_US_full_without_weekday": f"{date}, {time}",
        "_date_fetched_locale_en_US_date": f"{weekday}, {date}",
        "_date_fetched_locale_en_US_date_without_weekday": date,
        "_date_fetched_locale_en_US_time": time,
    }
    fields["_date_fetched"] = fields["_date_fetched_locale_en_US_full"]
    return fields
