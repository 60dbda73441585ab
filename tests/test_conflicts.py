from contextlib import contextmanager

import pytest

from conftest import actor, at
from models import db, Booking
from services import bookings, locks
from services.conflicts import ensure_available, has_conflict
from services.errors import ConflictError


@pytest.fixture
def booked(salon, make_booking):
    # worker busy 10:00-11:00 with client
    return make_booking(salon.client, salon.worker, salon.haircut, at(10), at(11))


@pytest.mark.parametrize("start,end", [
    ((9, 30), (10, 30)),   # ends during existing
    ((10, 30), (11, 30)),  # starts during existing
    ((9, 0), (12, 0)),     # contains existing
    ((10, 15), (10, 45)),  # inside existing
    ((10, 0), (11, 0)),    # identical
])
def test_overlapping_windows_conflict(salon, booked, start, end):
    assert has_conflict(salon.worker.id, at(*start), at(*end))


@pytest.mark.parametrize("start,end", [
    ((9, 0), (10, 0)),    # ends exactly when existing starts
    ((11, 0), (12, 0)),   # starts exactly when existing ends
    ((14, 0), (15, 0)),
])
def test_adjacent_or_disjoint_windows_are_free(salon, booked, start, end):
    assert not has_conflict(salon.worker.id, at(*start), at(*end))


def test_person_is_busy_as_client_too(salon, booked):
    # client of the existing booking can not be booked elsewhere at the same time
    assert has_conflict(salon.client.id, at(10, 30), at(11, 30))
    assert not has_conflict(salon.client2.id, at(10, 30), at(11, 30))


def test_cancelled_bookings_do_not_block(salon, booked):
    booked.status = "cancelled"
    booked.previous_status = "held"
    assert not has_conflict(salon.worker.id, at(10), at(11))


def test_excluded_booking_is_ignored(salon, booked):
    assert not has_conflict(salon.worker.id, at(10, 30), at(11, 30), exclude_booking_id=booked.id)


def test_ensure_available_names_the_worker_first(salon, booked):
    with pytest.raises(ConflictError) as exc:
        ensure_available(salon.worker.id, salon.client.id, at(10), at(11))
    assert exc.value.party == "worker"
    assert exc.value.status_code == 409


def test_ensure_available_names_the_client(salon, booked):
    with pytest.raises(ConflictError) as exc:
        ensure_available(salon.worker2.id, salon.client.id, at(10, 30), at(11, 30))
    assert exc.value.party == "client"


def test_person_locks_are_dropped_after_use(salon):
    worker_id, client_id = salon.worker.id, salon.client.id

    with locks.lock_people(worker_id, client_id, None):
        assert set(locks._person_locks) == {worker_id, client_id}
    assert locks._person_locks == {}

    with pytest.raises(ConflictError):
        with locks.lock_people(worker_id):
            raise ConflictError("taken", party="worker")
    assert locks._person_locks == {}


def test_update_keeps_fields_written_while_waiting_for_the_lock(app, salon, booked, monkeypatch):
    booking_id = booked.id
    real_lock = bookings.lock_people

    @contextmanager
    def lock_after_concurrent_write(*person_ids):
        # another request changes the payment type before this one gets the lock
        with app.app_context():
            Booking.query.filter_by(id=booking_id).update({"payment_type": "deposit"})
            db.session.commit()
        with real_lock(*person_ids):
            yield

    monkeypatch.setattr(bookings, "lock_people", lock_after_concurrent_write)
    assert booked.payment_type == "cash"

    changes = {"starts_at": at(12).isoformat(), "ends_at": at(13).isoformat()}
    updated = bookings.update_booking(actor(salon.admin), booking_id, changes)

    assert updated.starts_at == at(12)
    assert updated.payment_type == "deposit"
