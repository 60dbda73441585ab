from .health import health_bp
from .auth import auth_bp
from .bookings import booking_bp
