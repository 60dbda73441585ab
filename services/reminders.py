from datetime import date

from flask import current_app

from models.booking import Booking
from services.notifications import email_context, send_trigger_email
from services.timewindow import day_bounds


def send_upcoming_reminders(day: date = None) -> int:
    """Email client and worker of every confirmed booking on ``day``.
    Returns how many bookings were processed without error."""
    day = day or date.today()
    start, end = day_bounds(day)
    bookings = (
        Booking.query
        .filter(Booking.status == "confirmed", Booking.starts_at >= start, Booking.starts_at < end)
        .order_by(Booking.starts_at.asc())
        .all()
    )
    current_app.logger.info("reminders: %d confirmed booking(s) on %s", len(bookings), day.isoformat())

    done = 0
    for booking in bookings:
        try:
            data, recipients = email_context(booking.to_dict())
            send_trigger_email("UPCOMING_BOOKING", recipients, data)
            done += 1
        except Exception:
            current_app.logger.exception("reminders: failed for booking %s", booking.id)
    return done
