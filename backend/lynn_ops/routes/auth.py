# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/init: one-time superadmin bootstrap
- POST /api/auth/login: username/password, returns a bearer token and also
  sets it as the session_id cookie
- POST /api/auth/logout: revokes the presented token
- GET  /api/auth/me: the current actor
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import AuthenticationError, ValidationError
from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..decorators import require_auth, get_request_token, get_json_object


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/init")
def init_route():
    """Create the first superadmin. Disabled (409) once one exists."""
    data = get_json_object()
    user = auth_service.init_superadmin(data.get("username"), data.get("name"), data.get("password"))
    return jsonify({
        "message": "Superadmin created successfully",
        "user": user.to_dict(),
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    remember_me selects the long session lifetime. The token must be sent
    as "Authorization: Bearer <token>" (or via the cookie) afterwards.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid request body")

    username = data.get("username")
    password = data.get("password")
    if not username or not password:
        raise ValidationError("Username and password are required")

    remember_me = data.get("remember_me", data.get("rememberMe")) is True
    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    user = auth_service.authenticate(username, password)
    if not user:
        permission_service.log_security_event(
            user_id=None,
            event_type="LOGIN_FAILED",
            success=False,
            action="LOGIN",
            reason=f"Invalid credentials for {username!r}",
        )
        current_app.logger.warning("Failed login for %r from %s", username, ip_address)
        raise AuthenticationError("Invalid username or password")

    session, token = session_service.create_session(
        user_id=user.id,
        remember_me=remember_me,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    permission_service.log_security_event(
        user_id=user.id,
        event_type="LOGIN_SUCCESS",
        success=True,
        action="LOGIN",
    )

    response = jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": "Login successful",
    })
    response.set_cookie(
        "session_id",
        token,
        max_age=int(session_service.session_lifetime(remember_me).total_seconds()),
        httponly=True,
        secure=not current_app.debug and not current_app.testing,
        samesite="Lax",
    )
    return response, 200


@auth_bp.post("/logout")
def logout_route():
    """Revoke the presented session token."""
    token = get_request_token()
    if not token:
        raise AuthenticationError("Authentication required")

    if not session_service.revoke_session(token, reason="User logout"):
        raise AuthenticationError("Invalid or expired token")

    response = jsonify({"message": "Logout successful"})
    response.delete_cookie("session_id")
    return response, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "actor": g.actor.to_dict(),
        "user": g.current_user.to_dict(),
        "session": g.session_context.session.to_dict(),
    }), 200
