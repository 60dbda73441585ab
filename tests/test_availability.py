from datetime import date, datetime

import pytest

from conftest import at
from models import Booking, db
from services.availability import fully_booked_days, schedule_for_day
from services.errors import ValidationError

WED = datetime(2025, 3, 12)
THU = datetime(2025, 3, 13)
SAT = datetime(2025, 3, 15)


@pytest.fixture
def busy_wednesday(salon, make_booking):
    # worker: 690 booked minutes, 30 left; worker2: fully booked
    make_booking(salon.client, salon.worker, salon.haircut, at(8, day=WED), at(14, day=WED))
    make_booking(salon.client, salon.worker, salon.haircut, at(14, day=WED), at(19, 30, day=WED))
    make_booking(salon.client2, salon.worker2, salon.haircut, at(8, day=WED), at(20, day=WED))
    return WED


def test_day_is_fully_booked_when_every_worker_is_exhausted(salon, busy_wednesday):
    assert fully_booked_days(2025, 3) == ["2025-03-12"]


def test_one_worker_with_room_keeps_the_day_open(salon, make_booking):
    make_booking(salon.client, salon.worker, salon.haircut, at(8, day=THU), at(20, day=THU))
    # exactly the shortest procedure (60 min) left still fits, so not full
    make_booking(salon.client2, salon.worker2, salon.haircut, at(8, day=THU), at(19, day=THU))
    assert fully_booked_days(2025, 3) == []


def test_weekends_are_never_reported(salon, make_booking):
    make_booking(salon.client, salon.worker, salon.haircut, at(8, day=SAT), at(20, day=SAT))
    make_booking(salon.client2, salon.worker2, salon.haircut, at(8, day=SAT), at(20, day=SAT))
    assert fully_booked_days(2025, 3) == []


def test_shortest_procedure_sets_the_threshold(salon, busy_wednesday, make_procedure):
    # a 15 minute procedure still fits in worker's 30 minute gap
    make_procedure("Brow tidy", 15, 20)
    assert fully_booked_days(2025, 3) == []


def test_no_workers_means_no_fully_booked_days(app, make_procedure):
    make_procedure()
    assert fully_booked_days(2025, 3) == []


def test_no_procedures_means_no_fully_booked_days(app, make_person):
    make_person(role="worker")
    assert fully_booked_days(2025, 3) == []


def test_cancelled_bookings_count_by_default(salon, busy_wednesday):
    for b in Booking.query.all():
        b.previous_status, b.status = b.status, "cancelled"
    db.session.commit()
    assert fully_booked_days(2025, 3) == ["2025-03-12"]


def test_cancelled_bookings_can_be_excluded(app, salon, busy_wednesday):
    app.config["AVAILABILITY_COUNTS_CANCELLED"] = False
    b = Booking.query.filter_by(worker_id=salon.worker2.id).one()
    b.previous_status, b.status = b.status, "cancelled"
    db.session.commit()
    assert fully_booked_days(2025, 3) == []


def test_operating_hours_are_configurable(app, salon, make_booking):
    app.config["BUSINESS_OPEN_HOUR"] = 9
    app.config["BUSINESS_CLOSE_HOUR"] = 17
    make_booking(salon.client, salon.worker, salon.haircut, at(9, day=THU), at(17, day=THU))
    make_booking(salon.client2, salon.worker2, salon.haircut, at(9, day=THU), at(16, 30, day=THU))
    assert fully_booked_days(2025, 3) == ["2025-03-13"]


@pytest.mark.parametrize("year,month", [(2025, 0), (2025, 13), ("x", 3)])
def test_invalid_month_is_rejected(app, year, month):
    with pytest.raises(ValidationError):
        fully_booked_days(year, month)


def test_schedule_for_day_covers_both_roles(salon, make_booking):
    make_booking(salon.client, salon.worker, salon.haircut, at(14), at(15))
    make_booking(salon.client2, salon.worker, salon.haircut, at(9), at(10))
    make_booking(salon.client2, salon.worker, salon.haircut, at(11), at(12), status="cancelled", previous_status="held")
    make_booking(salon.client, salon.worker2, salon.haircut, at(16), at(17))
    make_booking(salon.client, salon.worker2, salon.haircut, at(9, day=THU), at(10, day=THU))

    assert schedule_for_day(salon.worker.id, date(2025, 3, 10)) == [(at(9), at(10)), (at(14), at(15))]
    assert schedule_for_day(salon.client.id, date(2025, 3, 10)) == [(at(14), at(15)), (at(16), at(17))]
