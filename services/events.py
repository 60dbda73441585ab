"""
Live-update broadcasting for calendar and list views.

Transports (websocket, SSE) subscribe to ``booking_changed``; the scheduler
only fires the signal. A failing subscriber is logged and does not keep the
others from receiving the event.
"""
from datetime import datetime, timezone

from blinker import Namespace
from flask import current_app

EVENT_TYPES = ("created", "updated", "deleted", "status_changed")

_signals = Namespace()

booking_changed = _signals.signal("booking-changed")


def broadcast(event_type: str, payload) -> None:
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown booking event {event_type!r}")

    message = {
        "event": event_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": payload,
    }
    app = current_app._get_current_object()
    for receiver in booking_changed.receivers_for(app):
        try:
            receiver(app, message=message)
        except Exception:
            app.logger.exception("events: subscriber failed on %s event", event_type)
