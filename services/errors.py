"""
Errors raised by the scheduler. Each carries the HTTP status the API layer
answers with, so route handlers never have to translate them by hand.
"""


class SchedulingError(Exception):
    """Base exception for booking scheduler errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"error": self.message}


class ValidationError(SchedulingError):
    """Malformed input or a booking window outside the operating hours."""

    status_code = 400


class TransitionError(SchedulingError):
    """Illegal booking status transition."""

    status_code = 400


class ForbiddenError(SchedulingError):
    status_code = 403


class NotFoundError(SchedulingError):
    status_code = 404


class ConflictError(SchedulingError):
    """Worker or client already booked for an overlapping window."""

    status_code = 409

    def __init__(self, message: str, party: str):
        super().__init__(message)
        self.party = party

    def to_dict(self):
        return {"error": self.message, "party": self.party}
