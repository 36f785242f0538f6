# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and account management.

Every action must be attributable. Passwords are hashed with bcrypt
(BCRYPT_ROUNDS from config); session tokens live in session_service.

Account tiers:
- superadmin: created once through init (or the CLI), manages admins
- admin: created by a superadmin, manages the role=user accounts it created
- user: created by an admin (or superadmin), reaches locations via grants
"""

import bcrypt
from flask import current_app

from ..errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import Location, SessionToken, User, UserLocationAccess
from ..permissions import ROLE_ADMIN, ROLE_SUPERADMIN, ROLE_USER
from lynn_ops.time_utils import utcnow
from .session_service import Actor


MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet the minimum requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """Validate and hash a password; the hash is stored as a str."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config["BCRYPT_ROUNDS"])
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash verifies as
    False rather than raising.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _require_account_fields(username, name, password) -> tuple[str, str]:
    username = (username or "").strip() if isinstance(username, str) else ""
    name = (name or "").strip() if isinstance(name, str) else ""
    if not username or not name or not password:
        raise ValidationError("username, name, and password are required")
    if len(username) > 64:
        raise ValidationError("username exceeds max length 64")
    if len(name) > 120:
        raise ValidationError("name exceeds max length 120")
    return username, name


def create_user(
    username: str,
    name: str,
    password: str,
    role: str = ROLE_USER,
    created_by_id: int | None = None,
) -> User:
    """
    Create a new account with a bcrypt password hash.

    Raises:
        ValidationError: missing fields or an unknown role
        PasswordValidationError: password too short
        ConflictError: username already taken
    """
    username, name = _require_account_fields(username, name, password)
    if role not in (ROLE_USER, ROLE_ADMIN, ROLE_SUPERADMIN):
        raise ValidationError(f"Unknown role: {role}")

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        raise ConflictError("Username already taken")

    user = User(
        username=username,
        name=name,
        password_hash=hash_password(password),
        role=role,
        created_by_id=created_by_id,
    )
    db.session.add(user)
    db.session.commit()

    current_app.logger.info("Created %s account %s (id=%s)", role, username, user.id)
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user by username and password.

    Returns User if credentials are valid, None otherwise.
    """
    if not username or not password:
        return None

    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def superadmin_exists() -> bool:
    return db.session.query(User.id).filter_by(role=ROLE_SUPERADMIN).first() is not None


def init_superadmin(username: str, name: str, password: str) -> User:
    """One-time bootstrap: refuses once any superadmin exists."""
    if superadmin_exists():
        raise ConflictError("Superadmin already exists. Init disabled.")
    return create_user(username, name, password, role=ROLE_SUPERADMIN)


# -- Managed accounts --------------------------------------------------------
# Admins manage the role=user accounts they created; superadmins manage
# every role=user account and every admin.

def _managed_role_for(actor: Actor, role: str) -> None:
    if role == ROLE_ADMIN and actor.role != ROLE_SUPERADMIN:
        raise PermissionDeniedError("Only a superadmin can manage admins")
    if role == ROLE_USER and actor.role not in (ROLE_ADMIN, ROLE_SUPERADMIN):
        raise PermissionDeniedError("Only admins can manage users")


def get_managed_account(actor: Actor, user_id: int, role: str = ROLE_USER) -> User:
    """
    Load an account the actor is allowed to manage.

    NotFound if the id is unknown or has a different role; Forbidden if an
    admin targets a user created by someone else.
    """
    _managed_role_for(actor, role)

    target = db.session.get(User, user_id)
    if not target or target.role != role:
        raise NotFoundError("Admin not found" if role == ROLE_ADMIN else "User not found")

    if actor.role == ROLE_ADMIN and target.created_by_id != actor.id:
        raise PermissionDeniedError("You can only manage users you created")

    return target


def list_managed_accounts(actor: Actor, role: str = ROLE_USER) -> list[User]:
    _managed_role_for(actor, role)

    query = db.session.query(User).filter(User.role == role)
    if actor.role == ROLE_ADMIN:
        query = query.filter(User.created_by_id == actor.id)
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def create_managed_account(actor: Actor, payload: dict, role: str = ROLE_USER) -> User:
    _managed_role_for(actor, role)
    payload = payload or {}
    return create_user(
        payload.get("username"),
        payload.get("name"),
        payload.get("password"),
        role=role,
        created_by_id=actor.id,
    )


def update_managed_account(actor: Actor, user_id: int, payload: dict, role: str = ROLE_USER) -> User:
    """Partial update of name and/or password; username and role are fixed."""
    target = get_managed_account(actor, user_id, role)
    payload = payload or {}

    unknown = set(payload) - {"name", "password"}
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    name = payload.get("name")
    if name is not None:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name cannot be blank")
        target.name = name.strip()

    password = payload.get("password")
    if password:
        target.password_hash = hash_password(password)
        # A new password ends every existing session
        from .session_service import revoke_all_user_sessions
        revoke_all_user_sessions(target.id, reason="Password changed", commit=False)

    target.updated_at = utcnow()
    db.session.commit()
    return target


def delete_managed_account(actor: Actor, user_id: int, role: str = ROLE_USER) -> None:
    """
    Hard-delete an account with its grants and sessions.

    An admin who still owns locations cannot be deleted.
    """
    target = get_managed_account(actor, user_id, role)

    if role == ROLE_ADMIN:
        owned = db.session.query(Location.id).filter_by(admin_id=target.id).count()
        if owned:
            raise ConflictError(
                "Admin still owns locations",
                details={"owned_locations": owned},
            )
        # Orphaned users stay manageable by superadmins
        db.session.query(User).filter_by(created_by_id=target.id).update(
            {User.created_by_id: None}, synchronize_session=False
        )

    db.session.query(UserLocationAccess).filter_by(user_id=target.id).delete(synchronize_session=False)
    db.session.query(UserLocationAccess).filter_by(granted_by_id=target.id).update(
        {UserLocationAccess.granted_by_id: None}, synchronize_session=False
    )
    db.session.query(SessionToken).filter_by(user_id=target.id).delete(synchronize_session=False)
    db.session.delete(target)
    db.session.commit()

    current_app.logger.info("Deleted %s account id=%s (by user id=%s)", role, user_id, actor.id)
