from sqlalchemy import or_

from models.booking import Booking
from services.errors import ConflictError


def overlapping_bookings(person_id, starts_at, ends_at, exclude_booking_id=None):
    """Active bookings of ``person_id`` (as worker or client) overlapping
    the half-open window ``[starts_at, ends_at)``."""
    q = Booking.query.filter(
        or_(Booking.worker_id == person_id, Booking.client_id == person_id),
        Booking.status != "cancelled",
        Booking.starts_at < ends_at,
        Booking.ends_at > starts_at,
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return q


def has_conflict(person_id, starts_at, ends_at, exclude_booking_id=None) -> bool:
    return overlapping_bookings(person_id, starts_at, ends_at, exclude_booking_id).first() is not None


def ensure_available(worker_id, client_id, starts_at, ends_at, exclude_booking_id=None, check_worker=True, check_client=True):
    if check_worker and has_conflict(worker_id, starts_at, ends_at, exclude_booking_id):
        raise ConflictError("Worker is not available at this time", party="worker")
    if check_client and has_conflict(client_id, starts_at, ends_at, exclude_booking_id):
        raise ConflictError("Client already has a booking at this time", party="client")
