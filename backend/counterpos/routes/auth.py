# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/counterpos/routes/auth.py
"""
Authentication API routes

SESSION MODEL:
- One live session per account. Logging in on a second terminal silently
  invalidates the first; the first terminal learns this the next time it
  calls /validate-session (it polls) or any protected route (401).
- Registration is open only while the store has no accounts (first-run
  setup wizard). After that only an admin can create accounts.
"""

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import OperationalError

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import InvalidCredentialsError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, resolve_session


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Create an account.

    Request body:
    {
        "username": "alice",     // required, >= 3 characters
        "password": "secret1",   // required, >= 6 characters
        "role": "admin"          // "admin" or "cashier" (default "cashier")
    }

    Bootstrap: while no account exists anyone may register (the setup wizard
    creates the first admin). Afterwards an admin session is required.
    """
    try:
        if auth_service.count_users() > 0:
            context = resolve_session()
            if not context:
                return jsonify({"error": "Authentication required"}), 401
            if not context.user.is_admin:
                return jsonify({"error": "Permission denied", "required_role": "admin"}), 403

        data = request.get_json(silent=True) or {}
        user = auth_service.register_user(
            data.get("username"),
            data.get("password"),
            data.get("role") or "cashier",
        )

        return jsonify({
            "user": user.to_dict(),
            "message": "User registered successfully"
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except OperationalError:
        raise
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue the account's session token.

    Any token issued earlier for the same account stops working.
    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        token, session = session_service.login(username, password)

        return jsonify({
            "token": token,
            "session": session,
            "message": "Login successful"
        }), 200

    except InvalidCredentialsError as e:
        return jsonify({"error": str(e)}), 401
    except OperationalError:
        raise
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/validate-session")
@require_auth
def validate_session_route():
    """
    Confirm the presented token is still the account's live session.

    Expects Authorization header: Bearer <token>

    Returns 401 once another login has superseded the token; the frontend
    then drops back to the login screen.
    """
    return jsonify({
        "valid": True,
        "user": g.current_user.to_dict(),
        "message": "Token valid"
    }), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Clear the account's session token (logout).

    Expects Authorization header: Bearer <token>

    Idempotent: a token that was already superseded still logs the account
    out, as long as its signature and expiry check out.
    """
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]

        try:
            user_id = session_service.user_id_from_token(token)
        except session_service.InvalidTokenError:
            return jsonify({"error": "Invalid or expired token"}), 401

        session_service.logout(user_id)

        return jsonify({"message": "Logout successful"}), 200

    except OperationalError:
        raise
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500
