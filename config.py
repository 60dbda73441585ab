import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _int_list(value: str):
    return [int(part) for part in value.split(",") if part.strip()]


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as salon.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "salon.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "salon_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = 20 * 60

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = False  # set True when using HTTPS

    CSRF_ENABLED = os.getenv("CSRF_ENABLED", "true").lower() == "true"
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Operating window (local wall-clock hours) and bookable weekdays (Mon=0)
    BUSINESS_OPEN_HOUR = int(os.getenv("BUSINESS_OPEN_HOUR", "8"))
    BUSINESS_CLOSE_HOUR = int(os.getenv("BUSINESS_CLOSE_HOUR", "20"))
    BUSINESS_WEEKDAYS = _int_list(os.getenv("BUSINESS_WEEKDAYS", "0,1,2,3,4"))

    # Loyalty tier -> discount fraction
    LOYALTY_DISCOUNTS = {
        "Gold": 0.2,
        "Silver": 0.1,
        "Bronze": 0.05,
        "Worker": 0.5,
    }

    # (minimum visits, tier), highest first
    LOYALTY_THRESHOLDS = [
        (50, "Gold"),
        (25, "Silver"),
        (10, "Bronze"),
    ]

    # Count cancelled bookings toward booked minutes when finding full days
    AVAILABILITY_COUNTS_CANCELLED = os.getenv("AVAILABILITY_COUNTS_CANCELLED", "true").lower() == "true"

    BOOKING_LIST_LIMIT = 200

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    # Receives "new booking" / "booking completed" emails
    OWNER_EMAIL = os.getenv("OWNER_EMAIL")

    # Basic app settings
    DEBUG = False
