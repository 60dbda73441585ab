import logging

from flask import Flask, request, g, jsonify
from config import Config
from routes import health_bp, auth_bp, booking_bp

from models import db
from flask_migrate import Migrate
from services.errors import SchedulingError
from utils.auth_context import load_current_user
from security.csrf import require_csrf


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(booking_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.before_request
    def _load_user():
        load_current_user()

    CSRF_EXEMPT_PATHS = {
    "/auth/login",
    "/health",
    }

    @app.before_request
    def _csrf_protect():
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Only enforce CSRF if user is already authenticated (cookie session)
            if getattr(g, "user", None) is not None:
                failure = require_csrf()
                if failure:
                    return failure

    @app.errorhandler(SchedulingError)
    def _scheduling_error(exc):
        if exc.status_code >= 500:
            app.logger.error("scheduler error: %s", exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp


    register_cli(app)


    return app

#-------------------------
import click
from datetime import date
from models.person import Person
from services.reminders import send_upcoming_reminders

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a person to admin by email (bootstrap)."""
        person = Person.query.filter_by(email=email.strip().lower()).first()
        if not person:
            click.echo("Person not found")
            return

        if person.role != "admin":
            person.role = "admin"
            db.session.commit()

        click.echo(f"{person.email} promoted to admin")

    @app.cli.command("send-reminders")
    @click.option("--day", default=None, help="YYYY-MM-DD, defaults to today")
    def send_reminders(day):
        """Email clients and workers about the day's confirmed bookings."""
        target = date.fromisoformat(day) if day else None
        count = send_upcoming_reminders(target)
        click.echo(f"Sent reminders for {count} booking(s)")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
