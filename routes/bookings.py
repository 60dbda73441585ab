from datetime import date

from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles
from services import availability, projection
from services.bookings import (
    create_booking,
    delete_booking,
    get_booking,
    transition_status,
    update_booking,
)
from services.directory import get_person
from services.errors import ForbiddenError, ValidationError
from services.timewindow import parse_day
from utils.auth_context import login_required

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


def _int_arg(name: str):
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Invalid {name}")


def _intervals(rows):
    return [{"starts_at": s.isoformat(), "ends_at": e.isoformat()} for s, e in rows]


@booking_bp.get("")
@login_required
def list_bookings():
    args = request.args
    filters = {
        "date": args.get("date"),
        "date_from": args.get("date_from"),
        "date_to": args.get("date_to"),
        "status": args.get("status"),
        "client_name": args.get("client_name"),
        "worker_name": args.get("worker_name"),
        "client_id": _int_arg("client_id"),
        "worker_id": _int_arg("worker_id"),
    }
    # clients only ever see their own bookings
    if g.user.role == "client":
        filters["client_id"] = g.user.id

    rows = projection.list_bookings(
        filters,
        sort_by=args.get("sort_by"),
        order=args.get("order"),
        limit=_int_arg("limit"),
    )
    return jsonify(rows), 200


@booking_bp.post("")
@login_required
def create():
    data = request.get_json(silent=True) or {}
    booking = create_booking(g.user, data)
    return jsonify(projection.project([booking])[0]), 201


@booking_bp.get("/<int:booking_id>")
@login_required
def get_one(booking_id: int):
    booking = get_booking(g.user, booking_id)
    return jsonify(projection.project([booking])[0]), 200


@booking_bp.route("/<int:booking_id>", methods=["PUT", "PATCH"])
@login_required
def update(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking = update_booking(g.user, booking_id, data)
    return jsonify(projection.project([booking])[0]), 200


@booking_bp.patch("/<int:booking_id>/status/<new_status>")
@login_required
def change_status(booking_id: int, new_status: str):
    booking = transition_status(g.user, booking_id, new_status)
    return jsonify(projection.project([booking])[0]), 200


@booking_bp.delete("/<int:booking_id>")
@require_roles("admin", "worker")
def delete(booking_id: int):
    delete_booking(g.user, booking_id)
    return jsonify(message="Booking deleted"), 200


@booking_bp.get("/availability/<int:year>/<int:month>")
@login_required
def fully_booked(year: int, month: int):
    return jsonify(availability.fully_booked_days(year, month)), 200


@booking_bp.get("/schedule/<int:person_id>")
@login_required
def schedule(person_id: int):
    day = parse_day(request.args.get("date"))
    person = get_person(person_id)
    # clients pick slots from workers' schedules but never see other clients'
    if g.user.role == "client" and person.id != g.user.id and person.role != "worker":
        raise ForbiddenError("Access denied")
    return jsonify(_intervals(availability.schedule_for_day(person_id, day))), 200


@booking_bp.get("/my-schedule")
@login_required
def my_schedule():
    day = parse_day(request.args.get("date") or date.today().isoformat())
    return jsonify(_intervals(availability.schedule_for_day(g.user.id, day))), 200


@booking_bp.get("/calendar")
@require_roles("admin", "worker")
def calendar():
    year = _int_arg("year")
    month = _int_arg("month")
    if year is None or month is None:
        raise ValidationError("year and month are required")
    return jsonify(projection.project(availability.bookings_for_month(year, month))), 200
