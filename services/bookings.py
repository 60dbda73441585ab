"""
Booking operations used by the HTTP layer.

Every write that touches time or people runs its conflict check and its
commit under ``lock_people`` so two requests can not both claim the same
person for overlapping windows. Side effects (loyalty, inventory,
notifications) run after the commit through ``run_effects``.
"""
from flask import current_app

from models import db
from models.booking import Booking, PAYMENT_TYPES
from services.conflicts import ensure_available
from services.directory import get_person, get_procedure
from services.effects import Effect, run_effects
from services.errors import ForbiddenError, NotFoundError, ValidationError
from services.lifecycle import plan_transition
from services.locks import lock_people
from services.notifications import notify
from services.pricing import final_price
from services.timewindow import parse_iso, validate_window

REQUIRED_FIELDS = ("client_id", "worker_id", "procedure_id", "starts_at", "ends_at", "payment_type")
INITIAL_STATUSES = ("held", "confirmed")
CLIENT_LOCKED_FIELDS = ("client_id", "status", "final_price")


def _as_id(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}")


def _payment_type(value) -> str:
    if value not in PAYMENT_TYPES:
        raise ValidationError(f"Invalid payment_type. Use one of: {', '.join(PAYMENT_TYPES)}")
    return value


def _price(value) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid final_price")
    if price < 0:
        raise ValidationError("final_price must not be negative")
    return price


def _worker(worker_id):
    worker = get_person(worker_id, "Worker")
    if worker.role != "worker":
        raise ValidationError("Selected person is not a worker")
    return worker


def _notify_effect(event_type, booking, actor):
    return Effect("notify", notify, (event_type, booking.to_dict(), getattr(actor, "id", None)))


def get_booking_or_404(booking_id) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


def check_client_access(booking, actor):
    if actor.role == "client" and booking.client_id != actor.id:
        raise ForbiddenError("Access denied")


def get_booking(actor, booking_id) -> Booking:
    booking = get_booking_or_404(booking_id)
    check_client_access(booking, actor)
    return booking


def create_booking(actor, data) -> Booking:
    missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")

    client_id = _as_id(data["client_id"], "client_id")
    worker_id = _as_id(data["worker_id"], "worker_id")
    procedure_id = _as_id(data["procedure_id"], "procedure_id")
    starts_at = parse_iso(data["starts_at"], "starts_at")
    ends_at = parse_iso(data["ends_at"], "ends_at")
    payment_type = _payment_type(data["payment_type"])
    status = data.get("status") or "held"

    validate_window(starts_at, ends_at)
    if status not in INITIAL_STATUSES:
        raise ValidationError(f"Invalid initial status. Use one of: {', '.join(INITIAL_STATUSES)}")

    if actor.role == "client":
        if client_id != actor.id:
            raise ForbiddenError("Clients can only book for themselves")
        if status != "held":
            raise ForbiddenError("Clients can only create held bookings")

    if client_id == worker_id:
        raise ValidationError("Client and worker must be different people")

    client = get_person(client_id, "Client")
    _worker(worker_id)
    procedure = get_procedure(procedure_id)

    with lock_people(worker_id, client_id):
        ensure_available(worker_id, client_id, starts_at, ends_at)

        booking = Booking(
            client_id=client_id,
            worker_id=worker_id,
            procedure_id=procedure_id,
            starts_at=starts_at,
            ends_at=ends_at,
            status=status,
            payment_type=payment_type,
            final_price=final_price(procedure.price, client.loyalty_tier),
        )
        db.session.add(booking)
        db.session.commit()

    current_app.logger.info(
        "booking %s created: worker=%s client=%s %s-%s",
        booking.id, worker_id, client_id, starts_at.isoformat(), ends_at.isoformat(),
    )
    run_effects([_notify_effect("created", booking, actor)])
    return booking


def _parse_changes(booking, data) -> dict:
    """Validated values of the fields present in ``data``. Referenced people
    and procedures are checked here, outside the lock."""
    changes = {}
    for field in ("starts_at", "ends_at"):
        if data.get(field):
            changes[field] = parse_iso(data[field], field)
    if data.get("worker_id") is not None:
        changes["worker_id"] = _as_id(data["worker_id"], "worker_id")
        if changes["worker_id"] != booking.worker_id:
            _worker(changes["worker_id"])
    if data.get("client_id") is not None:
        changes["client_id"] = _as_id(data["client_id"], "client_id")
        if changes["client_id"] != booking.client_id:
            get_person(changes["client_id"], "Client")
    if data.get("procedure_id") is not None:
        changes["procedure_id"] = get_procedure(_as_id(data["procedure_id"], "procedure_id")).id
    if "payment_type" in data:
        changes["payment_type"] = _payment_type(data["payment_type"])
    if "final_price" in data:
        changes["final_price"] = _price(data["final_price"])
    if data.get("status") is not None:
        changes["status"] = data["status"]
    return changes


def _apply_changes(booking, changes, actor):
    """Apply ``changes`` on top of the freshly loaded booking and commit.
    Runs under ``lock_people``; returns the effects of a status change."""
    starts_at = changes.get("starts_at", booking.starts_at)
    ends_at = changes.get("ends_at", booking.ends_at)
    worker_id = changes.get("worker_id", booking.worker_id)
    client_id = changes.get("client_id", booking.client_id)

    time_changed = starts_at != booking.starts_at or ends_at != booking.ends_at
    worker_changed = worker_id != booking.worker_id
    client_changed = client_id != booking.client_id

    if time_changed:
        validate_window(starts_at, ends_at)
    if (worker_changed or client_changed) and worker_id == client_id:
        raise ValidationError("Client and worker must be different people")

    effects = []
    restoring = False
    target_status = changes.get("status")
    if target_status is not None and target_status != booking.status:
        restoring = booking.status == "cancelled"
        effects.extend(plan_transition(booking, target_status, actor.role, actor.id))

    if booking.status != "cancelled" and (time_changed or worker_changed or client_changed or restoring):
        ensure_available(
            worker_id, client_id, starts_at, ends_at,
            exclude_booking_id=booking.id,
            check_worker=time_changed or worker_changed or restoring,
            check_client=time_changed or client_changed or restoring,
        )

    booking.starts_at = starts_at
    booking.ends_at = ends_at
    booking.worker_id = worker_id
    booking.client_id = client_id
    for field in ("procedure_id", "payment_type", "final_price"):
        if field in changes:
            setattr(booking, field, changes[field])
    db.session.commit()
    return effects


def update_booking(actor, booking_id, data) -> Booking:
    booking = get_booking_or_404(booking_id)
    check_client_access(booking, actor)

    if actor.role == "client":
        locked = [f for f in CLIENT_LOCKED_FIELDS if f in data]
        if locked:
            raise ForbiddenError(f"Clients cannot change {', '.join(locked)}")

    changes = _parse_changes(booking, data)

    while True:
        held = {booking.worker_id, booking.client_id, changes.get("worker_id"), changes.get("client_id")}
        with lock_people(*held):
            db.session.refresh(booking)
            if {booking.worker_id, booking.client_id} <= held:
                effects = _apply_changes(booking, changes, actor)
                break
            # reassigned by someone else meanwhile, lock the current people instead
            db.session.rollback()

    current_app.logger.info("booking %s updated by %s", booking.id, actor.id)
    effects.append(_notify_effect("updated", booking, actor))
    run_effects(effects)
    return booking


def transition_status(actor, booking_id, new_status) -> Booking:
    booking = get_booking_or_404(booking_id)
    check_client_access(booking, actor)

    with lock_people(booking.worker_id, booking.client_id):
        db.session.refresh(booking)
        source = booking.status
        effects = plan_transition(booking, new_status, actor.role, actor.id)
        if source == "cancelled":
            # restored bookings become active again and must not double-book
            ensure_available(
                booking.worker_id, booking.client_id, booking.starts_at, booking.ends_at,
                exclude_booking_id=booking.id,
            )
        db.session.commit()

    current_app.logger.info("booking %s: %s -> %s by %s", booking.id, source, new_status, actor.id)
    run_effects(effects)
    return booking


def delete_booking(actor, booking_id) -> None:
    booking = get_booking_or_404(booking_id)
    if booking.status == "fulfilled":
        raise ValidationError("Cannot delete a fulfilled booking")

    snapshot = booking.to_dict()
    db.session.delete(booking)
    db.session.commit()

    current_app.logger.info("booking %s deleted by %s", snapshot["id"], actor.id)
    run_effects([Effect("notify", notify, ("deleted", snapshot, actor.id))])
