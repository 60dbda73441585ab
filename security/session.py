import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.session import Session


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def session_cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "salon_session")


def _expired(sess: Session, now: datetime) -> bool:
    if sess.expires_at <= now:
        return True
    idle = timedelta(seconds=current_app.config.get("IDLE_TIMEOUT_SECONDS", 1200))
    return (sess.last_seen_at or sess.created_at) + idle <= now


def create_session(person_id: int) -> str:
    """
    Store a new server-side session for ``person_id`` and return the raw
    token for the cookie. Only its hash is persisted.
    """
    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)

    db.session.add(Session(
        person_id=person_id,
        token_hash=_hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
        ip=request.headers.get("X-Forwarded-For", request.remote_addr),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    ))
    db.session.commit()
    return raw_token


def get_session_from_request():
    raw_token = request.cookies.get(session_cookie_name())
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=_hash_token(raw_token), revoked=False).first()
    now = datetime.utcnow()
    if sess is None or _expired(sess, now):
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess


def revoke_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    updated = Session.query.filter_by(token_hash=_hash_token(raw_token)).update({"revoked": True})
    db.session.commit()
    return bool(updated)


def revoke_all_sessions(person_id: int) -> int:
    """Revoke every live session of a person; used to rotate on login."""
    updated = Session.query.filter_by(person_id=person_id, revoked=False).update({"revoked": True})
    db.session.commit()
    return updated
