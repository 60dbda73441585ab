from datetime import datetime

import pytest

from conftest import at
from models import db
from services.errors import ValidationError
from services.projection import list_bookings

TUE = datetime(2025, 3, 11)


@pytest.fixture
def bookings(salon, make_booking, make_procedure):
    facial = make_procedure("Facial", 30, 60)
    return [
        make_booking(salon.client, salon.worker, salon.haircut, at(10), at(11), final_price=100),
        make_booking(salon.client2, salon.worker2, facial, at(9), at(9, 30), final_price=60, status="confirmed"),
        make_booking(salon.client, salon.worker2, facial, at(15, day=TUE), at(15, 30, day=TUE), final_price=57),
    ]


def ids(rows):
    return [r["id"] for r in rows]


def test_default_sort_is_latest_start_first(bookings):
    assert ids(list_bookings({})) == [bookings[2].id, bookings[0].id, bookings[1].id]


def test_filter_by_exact_date(bookings):
    rows = list_bookings({"date": "2025-03-10"}, sort_by="starts_at", order="asc")
    assert ids(rows) == [bookings[1].id, bookings[0].id]


def test_filter_by_inclusive_date_range(bookings):
    assert ids(list_bookings({"date_from": "2025-03-11", "date_to": "2025-03-11"})) == [bookings[2].id]
    assert len(list_bookings({"date_to": "2025-03-10"})) == 2


def test_filter_by_client_name_is_case_insensitive(bookings):
    rows = list_bookings({"client_name": "cLaRa"})
    assert {r["client"]["name"] for r in rows} == {"Clara Client"}
    assert len(rows) == 2


def test_filter_by_worker_name(bookings):
    rows = list_bookings({"worker_name": "walter"})
    assert ids(rows) == [bookings[2].id, bookings[1].id]


def test_filter_by_status(bookings):
    assert ids(list_bookings({"status": "confirmed"})) == [bookings[1].id]
    with pytest.raises(ValidationError):
        list_bookings({"status": "done"})


def test_sort_by_price(bookings):
    rows = list_bookings({}, sort_by="price", order="asc")
    assert [r["final_price"] for r in rows] == [57, 60, 100]


def test_sort_by_resolved_names_and_duration(bookings):
    by_client = list_bookings({}, sort_by="client_name", order="asc")
    assert [r["client"]["name"] for r in by_client] == ["Carl Client", "Clara Client", "Clara Client"]

    by_worker = list_bookings({}, sort_by="worker_name", order="desc")
    assert by_worker[0]["worker"]["name"] == "Wendy Worker"

    by_duration = list_bookings({}, sort_by="duration", order="desc")
    assert by_duration[0]["procedure"]["duration_min"] == 60


def test_invalid_sort_is_rejected(bookings):
    with pytest.raises(ValidationError):
        list_bookings({}, sort_by="colour")
    with pytest.raises(ValidationError):
        list_bookings({}, order="sideways")


def test_deleted_worker_projects_as_none(salon, bookings):
    worker_id = salon.worker.id
    db.session.delete(salon.worker)
    db.session.commit()

    rows = list_bookings({}, sort_by="worker_name", order="asc")
    assert len(rows) == 3
    orphan = next(r for r in rows if r["id"] == bookings[0].id)
    assert orphan["worker"] is None
    assert orphan["worker_id"] == worker_id
    # missing names sort as empty strings
    assert rows[0]["id"] == bookings[0].id


def test_limit(bookings):
    assert len(list_bookings({}, limit=1)) == 1
