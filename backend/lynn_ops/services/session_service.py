# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management

Opaque bearer tokens, stored hashed, with an absolute lifetime chosen at
login: SESSION_TTL_HOURS normally, REMEMBER_ME_TTL_DAYS when the client
asked to be remembered.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Revocable on logout, account deletion or password change
- Tracks client IP and user agent for security monitoring

Every authenticated request resolves its token to a SessionContext whose
Actor is passed explicitly into the services.
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from lynn_ops.time_utils import utcnow


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as the permission evaluator sees it."""
    id: int
    role: str
    name: str

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role, name=user.name)

    def to_dict(self) -> dict:
        return {"id": self.id, "role": self.role, "name": self.name}


@dataclass
class SessionContext:
    """Complete session context returned by validate_session."""
    user: User
    session: SessionToken
    actor: Actor


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """Tokens are high-entropy, so SHA-256 (not bcrypt) is enough for storage."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def session_lifetime(remember_me: bool) -> timedelta:
    if remember_me:
        return timedelta(days=current_app.config["REMEMBER_ME_TTL_DAYS"])
    return timedelta(hours=current_app.config["SESSION_TTL_HOURS"])


def create_session(
    user_id: int,
    remember_me: bool = False,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.

    Raises ValueError if the user does not exist.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + session_lifetime(remember_me),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if the token is unknown, expired or revoked, or if its
    user no longer exists. Updates last_used_at on success.
    """
    if not token:
        return None

    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    user = session.user
    if not user:
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session, actor=Actor.from_user(user))


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason

    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions", commit: bool = True) -> int:
    """
    Revoke all active sessions for a user.

    Returns count of sessions revoked. Forces re-authentication everywhere.
    """
    now = utcnow()

    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason

    if commit:
        db.session.commit()
    return len(sessions)


def cleanup_expired_sessions(older_than_days: int = 30) -> int:
    """
    Delete expired and revoked sessions older than the cutoff.

    Returns count of sessions deleted. Run periodically
    (flask maintenance cleanup-sessions).
    """
    now = utcnow()
    cutoff = now - timedelta(days=older_than_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
