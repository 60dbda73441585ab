from flask import Blueprint, request, jsonify, current_app, g

from models.person import Person
from security.password import verify_password
from security.session import create_session, revoke_session, revoke_all_sessions, session_cookie_name
from security.csrf import issue_csrf_token
from utils.audit import log_event
from utils.auth_context import login_required


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _person_payload(person: Person):
    return dict(
        id=person.id,
        name=person.name,
        email=person.email,
        role=person.role,
        visits_count=person.visits_count,
        loyalty_tier=person.loyalty_tier,
    )


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    person = Person.query.filter_by(email=email).first() if email else None
    if not person or not verify_password(password, person.password_hash):
        log_event("LOGIN_FAIL", actor_id=person.id if person else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    # Rotate: revoke any existing sessions for this person
    revoked_count = revoke_all_sessions(person.id)

    raw_token = create_session(person.id)
    cookie_name = session_cookie_name()
    max_age = current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60)

    resp = jsonify(message="Login OK", user=_person_payload(person))
    resp.set_cookie(
        cookie_name,
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=max_age,
        path="/",
    )

    resp = issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", actor_id=person.id, metadata={"revoked_sessions": revoked_count})
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(_person_payload(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = session_cookie_name()
    raw_token = request.cookies.get(cookie_name)

    revoke_session(raw_token)
    log_event("LOGOUT", actor_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200
