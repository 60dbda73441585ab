"""
Booking lifecycle.

    held -> confirmed -> fulfilled        forward path
    any non-cancelled -> cancelled        previous status is remembered
    cancelled -> previous status          undo, only back to held/confirmed

Clients may only cancel a held booking. ``plan_transition`` validates and
applies the status change on the booking object and returns the effects to
attempt once the change is committed.
"""
from models.booking import STATUSES
from services.effects import Effect
from services.errors import ForbiddenError, TransitionError, ValidationError
from services.inventory import deplete
from services.loyalty import record_visit, revoke_visit
from services.notifications import notify

STATUS_LABELS = {
    "held": "Held",
    "confirmed": "Confirmed",
    "fulfilled": "Fulfilled",
    "cancelled": "Cancelled",
}

FORWARD = {
    "held": ("confirmed",),
    "confirmed": ("fulfilled",),
    "fulfilled": (),
}

RESTORABLE = ("held", "confirmed")


def label(status) -> str:
    return STATUS_LABELS.get(status, str(status))


def allowed_targets(status, previous_status=None, actor_role=None):
    if actor_role == "client":
        return {"cancelled"} if status == "held" else set()
    if status == "cancelled":
        return {previous_status} if previous_status in RESTORABLE else set()
    return set(FORWARD.get(status, ())) | {"cancelled"}


def check_transition(status, previous_status, target, actor_role=None):
    if target not in STATUSES:
        raise ValidationError(f"Invalid status '{target}'")

    if actor_role == "client" and not (status == "held" and target == "cancelled"):
        raise ForbiddenError("Clients can only cancel held bookings")

    if target == status:
        raise TransitionError(f"Booking is already {label(status)}")

    if target == "cancelled":
        return

    if status == "cancelled":
        if target == previous_status and previous_status in RESTORABLE:
            return
        if previous_status in RESTORABLE:
            raise TransitionError(
                f"Cannot change status from Cancelled to {label(target)}; "
                f"it can only be restored to {label(previous_status)}"
            )
        raise TransitionError(f"Cannot change status from Cancelled to {label(target)}")

    if target not in FORWARD.get(status, ()):
        raise TransitionError(f"Cannot change status from {label(status)} to {label(target)}")


def _notify_status_changed(booking, actor_id):
    notify("status_changed", booking.to_dict(), actor_id=actor_id)


def plan_transition(booking, target, actor_role=None, actor_id=None):
    check_transition(booking.status, booking.previous_status, target, actor_role)

    source = booking.status
    booking.previous_status = source if target == "cancelled" else None
    booking.status = target

    effects = []
    if target == "fulfilled":
        effects.append(Effect("record_visit", record_visit, (booking.client_id,)))
        effects.append(Effect("deplete_inventory", deplete, (booking.procedure_id,)))
    elif source == "fulfilled" and target == "cancelled":
        # stock used by a fulfilled booking is not put back
        effects.append(Effect("revoke_visit", revoke_visit, (booking.client_id,)))

    effects.append(Effect("notify", _notify_status_changed, (booking, actor_id)))
    return effects
