"""
Outbound booking notifications: audit trail, trigger-based emails and the
live-update broadcast. Everything here is fire-and-forget; failures are
logged and never reach the caller.
"""
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import db
from services.directory import find_person, find_procedure
from services.events import broadcast
from utils.audit import log_event
from utils.emailer import send_email

AUDIT_ACTIONS = {
    "created": "BOOKING_CREATED",
    "updated": "BOOKING_UPDATED",
    "deleted": "BOOKING_DELETED",
    "status_changed": "BOOKING_STATUS_CHANGED",
}

# trigger -> recipient role -> (subject, body)
TEMPLATES = {
    "BOOKING_CREATED": {
        "client": (
            "Your booking",
            "Hi {recipient_name},\n\n"
            "Your {procedure_name} is booked for {date} at {time} with {worker_name}.\n"
            "Status: {status}\nDuration: {duration} min\nPrice: {price}\n",
        ),
        "worker": (
            "New booking",
            "Hi {recipient_name},\n\n"
            "{client_name} booked {procedure_name} with you on {date} at {time}.\n",
        ),
        "admin": (
            "New booking",
            "Client: {client_name}\nWorker: {worker_name}\n"
            "Procedure: {procedure_name}\nWhen: {date} {time}\nPrice: {price}\n",
        ),
    },
    "BOOKING_CONFIRMED": {
        "client": (
            "Your booking is confirmed",
            "Hi {recipient_name},\n\n"
            "Your {procedure_name} on {date} at {time} with {worker_name} is confirmed.\n"
            "Duration: {duration} min\n",
        ),
    },
    "BOOKING_COMPLETED": {
        "admin": (
            "Booking completed",
            "{client_name} completed {procedure_name} with {worker_name} on {date}.\n"
            "Price: {price}\n",
        ),
    },
    "UPCOMING_BOOKING": {
        "client": (
            "Reminder: your booking today",
            "Hi {recipient_name},\n\nSee you today at {time} for {procedure_name} with {worker_name}.\n",
        ),
        "worker": (
            "Reminder: booking today",
            "Hi {recipient_name},\n\n{client_name} is booked for {procedure_name} today at {time}.\n",
        ),
    },
}

STATUS_TRIGGERS = {
    "confirmed": "BOOKING_CONFIRMED",
    "fulfilled": "BOOKING_COMPLETED",
}


def _format_date(value: datetime) -> str:
    return value.strftime("%A, %B %d, %Y")


def email_context(booking: dict):
    """Template data and recipients for a booking snapshot. Missing people
    or procedures degrade to placeholders."""
    client = find_person(booking.get("client_id"))
    worker = find_person(booking.get("worker_id"))
    procedure = find_procedure(booking.get("procedure_id"))
    starts_at = datetime.fromisoformat(booking["starts_at"])

    data = {
        "client_name": client.name if client else "Unknown",
        "worker_name": worker.name if worker else "Unknown",
        "procedure_name": procedure.name if procedure else "Unknown",
        "duration": procedure.duration_min if procedure else "N/A",
        "price": booking.get("final_price"),
        "status": booking.get("status"),
        "date": _format_date(starts_at),
        "time": starts_at.strftime("%H:%M"),
    }
    recipients = {
        "client": (client.email, client.name) if client else None,
        "worker": (worker.email, worker.name) if worker else None,
        "admin": (current_app.config.get("OWNER_EMAIL"), "Owner"),
    }
    return data, recipients


def send_trigger_email(trigger: str, recipients: dict, data: dict) -> int:
    sent = 0
    for role, (subject, body) in TEMPLATES.get(trigger, {}).items():
        recipient = recipients.get(role)
        if not recipient or not recipient[0]:
            continue
        email, name = recipient
        ok, err = send_email(email, subject, body.format(recipient_name=name, **data))
        if ok:
            sent += 1
        else:
            current_app.logger.warning("mailing: %s to %s not sent: %s", trigger, role, err)
    current_app.logger.info("mailing: triggered %s, %d email(s) sent", trigger, sent)
    return sent


def _trigger_for(event_type: str, booking: dict):
    if event_type == "created":
        return "BOOKING_CREATED"
    if event_type == "status_changed":
        return STATUS_TRIGGERS.get(booking.get("status"))
    return None


def notify(event_type: str, booking: dict, actor_id=None) -> None:
    action = AUDIT_ACTIONS[event_type]
    if event_type == "status_changed" and booking.get("status") == "cancelled":
        action = "BOOKING_CANCELLED"

    try:
        log_event(
            action,
            actor_id=actor_id,
            entity="booking",
            entity_id=booking.get("id"),
            metadata={"status": booking.get("status"), "previous_status": booking.get("previous_status")},
        )
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("notify: audit write failed for booking %s", booking.get("id"))

    trigger = _trigger_for(event_type, booking)
    if trigger:
        try:
            data, recipients = email_context(booking)
            send_trigger_email(trigger, recipients, data)
        except Exception:
            current_app.logger.exception("notify: %s email failed for booking %s", trigger, booking.get("id"))

    broadcast(event_type, booking)
