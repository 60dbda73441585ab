import calendar
from datetime import date, datetime, time, timedelta

from flask import current_app

from services.errors import ValidationError

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def parse_iso(value, field: str) -> datetime:
    # Expect ISO format like "2026-01-20T18:00:00"; offsets are dropped,
    # booking times are salon wall-clock time
    if isinstance(value, datetime):
        parsed = value
    else:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{field} is required")
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(f"Invalid {field}. Use ISO e.g. 2026-01-20T18:00:00")
    return parsed.replace(tzinfo=None)


def parse_day(value, field: str = "date") -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    try:
        return date.fromisoformat((value or "").strip()[:10])
    except (ValueError, AttributeError):
        raise ValidationError(f"Invalid {field}. Use YYYY-MM-DD")


def day_bounds(day: date):
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def business_hours():
    open_hour = current_app.config.get("BUSINESS_OPEN_HOUR", 8)
    close_hour = current_app.config.get("BUSINESS_CLOSE_HOUR", 20)
    return time(open_hour), time(close_hour)


def business_weekdays():
    return set(current_app.config.get("BUSINESS_WEEKDAYS", [0, 1, 2, 3, 4]))


def capacity_minutes() -> int:
    opens, closes = business_hours()
    return (closes.hour * 60 + closes.minute) - (opens.hour * 60 + opens.minute)


def validate_window(starts_at: datetime, ends_at: datetime) -> None:
    """Reject windows that end before they start, fall on a closed day or
    leave the operating hours."""
    if ends_at <= starts_at:
        raise ValidationError("ends_at must be after starts_at")

    if starts_at.date() != ends_at.date():
        raise ValidationError("Booking must start and end on the same day")

    if starts_at.weekday() not in business_weekdays():
        raise ValidationError(f"Bookings are not available on {WEEKDAY_NAMES[starts_at.weekday()]}")

    opens, closes = business_hours()
    if starts_at.time() < opens or ends_at.time() > closes:
        raise ValidationError(
            f"Booking must be within business hours ({opens:%H:%M}-{closes:%H:%M})"
        )


def month_days(year, month):
    try:
        year = int(year)
        month = int(month)
    except (TypeError, ValueError):
        raise ValidationError("Invalid year or month")
    if month < 1 or month > 12 or year < 1 or year > 9999:
        raise ValidationError("Invalid year or month")

    last = calendar.monthrange(year, month)[1]
    return [date(year, month, d) for d in range(1, last + 1)]
