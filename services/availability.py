"""
Calendar availability.

A weekday is fully booked when no worker has room left for even the shortest
procedure: ``capacity - booked_minutes < min_duration`` for every worker.
Closed days (weekends by default) are never reported.
"""
from collections import defaultdict
from datetime import datetime, time, timedelta

from flask import current_app
from sqlalchemy import func, or_

from models import db
from models.booking import Booking
from models.procedure import Procedure
from services.directory import people_by_role
from services.timewindow import business_weekdays, capacity_minutes, day_bounds, month_days


def shortest_procedure_minutes():
    return db.session.query(func.min(Procedure.duration_min)).scalar()


def booked_minutes_by_day(first_day, last_day, worker_ids):
    """{(date, worker_id): minutes} for bookings starting within the days."""
    start = datetime.combine(first_day, time.min)
    end = datetime.combine(last_day, time.min) + timedelta(days=1)

    q = Booking.query.filter(
        Booking.starts_at >= start,
        Booking.starts_at < end,
        Booking.worker_id.in_(worker_ids),
    )
    if not current_app.config.get("AVAILABILITY_COUNTS_CANCELLED", True):
        q = q.filter(Booking.status != "cancelled")

    booked = defaultdict(int)
    for b in q.all():
        booked[(b.starts_at.date(), b.worker_id)] += b.duration_minutes
    return booked


def fully_booked_days(year, month):
    """ISO dates of the open days in the month on which no worker can take
    another booking.

    The test is strict: a worker with exactly ``min_duration`` minutes left
    can still take the shortest procedure, so that day stays open. Reading it
    as ``booked >= capacity - min_duration`` would report such a day full.
    """
    days = month_days(year, month)

    min_duration = shortest_procedure_minutes()
    workers = people_by_role("worker")
    if min_duration is None or not workers:
        return []

    capacity = capacity_minutes()
    open_days = business_weekdays()
    worker_ids = [w.id for w in workers]
    booked = booked_minutes_by_day(days[0], days[-1], worker_ids)

    result = []
    for day in days:
        if day.weekday() not in open_days:
            continue
        if all(capacity - booked.get((day, wid), 0) < min_duration for wid in worker_ids):
            result.append(day.isoformat())
    return result


def schedule_for_day(person_id, day):
    """Occupied ``(starts_at, ends_at)`` intervals of a person on a day, as
    worker or as client. Cancelled bookings do not occupy anyone."""
    start, end = day_bounds(day)
    rows = (
        Booking.query
        .filter(
            or_(Booking.worker_id == person_id, Booking.client_id == person_id),
            Booking.status != "cancelled",
            Booking.starts_at >= start,
            Booking.starts_at < end,
        )
        .order_by(Booking.starts_at.asc(), Booking.ends_at.asc())
        .all()
    )
    return [(b.starts_at, b.ends_at) for b in rows]


def bookings_for_month(year, month):
    days = month_days(year, month)
    start = datetime.combine(days[0], time.min)
    end = datetime.combine(days[-1], time.min) + timedelta(days=1)
    return (
        Booking.query
        .filter(Booking.starts_at >= start, Booking.starts_at < end)
        .order_by(Booking.starts_at.asc())
        .all()
    )
