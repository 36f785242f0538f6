# Overview: Request decorators for API routes: session resolution, role gates and location gates.

from functools import wraps
from flask import request, g

from .errors import AuthenticationError, PermissionDeniedError, ValidationError
from .services import session_service, permission_service


def get_request_token() -> str | None:
    """Bearer token from the Authorization header, else the session_id cookie."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return request.cookies.get("session_id") or None


def get_json_object() -> dict:
    """Request body as a dict; no body is {}, any other JSON value is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


def require_auth(f):
    """
    Require authentication.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.actor: The Actor passed into services
    - g.session_context: The full SessionContext object

    Raises AuthenticationError (401) if the token is missing, unknown,
    expired or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_request_token()
        if not token:
            raise AuthenticationError("Authentication required")

        context = session_service.validate_session(token)
        if not context:
            raise AuthenticationError("Invalid or expired token")

        g.current_user = context.user
        g.actor = context.actor
        g.session_context = context
        g.session_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the actor's role to be one of roles.

    Denials are recorded as ROLE_DENIED security events.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = getattr(g, "actor", None)
            if actor is None:
                raise AuthenticationError("Authentication required")

            if actor.role not in roles:
                permission_service.log_security_event(
                    user_id=actor.id,
                    event_type="ROLE_DENIED",
                    success=False,
                    action=request.method,
                    reason=f"Requires role: {', '.join(roles)}",
                )
                raise PermissionDeniedError(
                    "Forbidden",
                    details={"required_roles": list(roles)},
                )

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_location_access(capability: str | None = None):
    """
    Gate a location-scoped route on the Permission Evaluator.

    Reads the location from the route's location_id argument. With no
    capability this is view access.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = getattr(g, "actor", None)
            if actor is None:
                raise AuthenticationError("Authentication required")

            permission_service.require_location_access(actor, kwargs["location_id"], capability)
            return f(*args, **kwargs)

        return decorated_function
    return decorator
