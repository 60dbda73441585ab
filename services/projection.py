"""
Booking list views: filtering, sorting and reference resolution.

People and procedures are joined in Python after the booking query (one
lookup per referenced table), and a reference that no longer resolves is
projected as ``None`` instead of failing the whole list.
"""
from flask import current_app

from models.booking import Booking, STATUSES
from services.directory import people_by_ids, person_ids_by_name, procedures_by_ids
from services.errors import ValidationError
from services.timewindow import day_bounds, parse_day

NATIVE_SORTS = {
    "starts_at": Booking.starts_at,
    "created_at": Booking.created_at,
    "price": Booking.final_price,
}

RESOLVED_SORTS = ("client_name", "worker_name", "duration")


def build_query(filters):
    q = Booking.query

    if filters.get("date"):
        start, end = day_bounds(parse_day(filters["date"]))
        q = q.filter(Booking.starts_at >= start, Booking.starts_at < end)
    else:
        if filters.get("date_from"):
            start, _ = day_bounds(parse_day(filters["date_from"], "date_from"))
            q = q.filter(Booking.starts_at >= start)
        if filters.get("date_to"):
            _, end = day_bounds(parse_day(filters["date_to"], "date_to"))
            q = q.filter(Booking.starts_at < end)

    status = filters.get("status")
    if status:
        if status not in STATUSES:
            raise ValidationError(f"Invalid status '{status}'")
        q = q.filter(Booking.status == status)

    if filters.get("client_id") is not None:
        q = q.filter(Booking.client_id == filters["client_id"])
    if filters.get("worker_id") is not None:
        q = q.filter(Booking.worker_id == filters["worker_id"])

    client_name = (filters.get("client_name") or "").strip()
    if client_name:
        q = q.filter(Booking.client_id.in_(person_ids_by_name(client_name)))

    worker_name = (filters.get("worker_name") or "").strip()
    if worker_name:
        q = q.filter(Booking.worker_id.in_(person_ids_by_name(worker_name, role="worker")))

    return q


def project(bookings):
    people = people_by_ids([b.client_id for b in bookings] + [b.worker_id for b in bookings])
    procedures = procedures_by_ids([b.procedure_id for b in bookings])

    out = []
    for b in bookings:
        row = b.to_dict()
        client = people.get(b.client_id)
        worker = people.get(b.worker_id)
        procedure = procedures.get(b.procedure_id)
        row["client"] = client.summary() if client else None
        row["worker"] = worker.summary() if worker else None
        row["procedure"] = procedure.summary() if procedure else None
        out.append(row)
    return out


def _resolved_key(sort_by):
    if sort_by == "duration":
        return lambda row: (row["procedure"] or {}).get("duration_min") or 0
    ref = "client" if sort_by == "client_name" else "worker"
    return lambda row: ((row[ref] or {}).get("name") or "").lower()


def list_bookings(filters, sort_by=None, order="desc", limit=None):
    sort_by = sort_by or "starts_at"
    order = (order or "desc").lower()
    if order not in ("asc", "desc"):
        raise ValidationError("order must be asc or desc")
    if sort_by not in NATIVE_SORTS and sort_by not in RESOLVED_SORTS:
        raise ValidationError(
            f"Invalid sort_by. Use one of: {', '.join(list(NATIVE_SORTS) + list(RESOLVED_SORTS))}"
        )
    if limit is None:
        limit = current_app.config.get("BOOKING_LIST_LIMIT", 200)

    q = build_query(filters)
    descending = order == "desc"

    if sort_by in NATIVE_SORTS:
        column = NATIVE_SORTS[sort_by]
        q = q.order_by(column.desc() if descending else column.asc(), Booking.id.asc())
        return project(q.limit(limit).all())

    rows = project(q.order_by(Booking.starts_at.asc(), Booking.id.asc()).all())
    rows.sort(key=_resolved_key(sort_by), reverse=descending)
    return rows[:limit]
