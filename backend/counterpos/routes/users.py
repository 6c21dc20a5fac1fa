# Overview: Flask API routes for account management; parses input and returns JSON responses.

# backend/counterpos/routes/users.py
"""
Admin routes for user management.

Accounts are created through POST /api/auth/register (admin session once
the store is set up). Archiving is the only "delete"; accounts are never
physically removed through the API.

All endpoints require an admin session.
"""

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import OperationalError

from ..services import users_service
from ..validation import ValidationError, NotFoundError, PreconditionFailedError
from ..decorators import require_auth, require_admin

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_admin
def list_users():
    """
    List all users, archived ones included.

    Query params:
    - include_inactive: bool (default true)
    """
    include_inactive = request.args.get("include_inactive", "true").lower() == "true"

    users = users_service.list_users()
    if not include_inactive:
        users = [u for u in users if u.is_active]

    result = [u.to_dict() for u in users]
    return jsonify({"users": result, "count": len(result)})


@users_bp.get("/<int:user_id>")
@require_auth
@require_admin
def get_user(user_id: int):
    """Get a specific user by ID."""
    try:
        user = users_service.get_user(user_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"user": user.to_dict()})


@users_bp.put("/<int:user_id>")
@require_auth
@require_admin
def update_user(user_id: int):
    """
    Update role and/or password.

    Request body (all optional):
    - role: "admin" | "cashier"
    - password: str (>= 6 characters)

    Blocked (409) while the target is online, unless it is the caller, and
    when it would demote the last admin.
    """
    data = request.get_json(silent=True) or {}

    try:
        user = users_service.update_user(
            user_id,
            role=data.get("role"),
            password=data.get("password"),
            actor=g.current_user,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PreconditionFailedError as e:
        return jsonify({"error": str(e)}), 409
    except OperationalError:
        raise
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "message": "User updated successfully"})


@users_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def archive_user(user_id: int):
    """
    Archive (deactivate) a user.

    SECURITY: Cannot archive yourself, an online user, or the last admin.
    """
    try:
        user = users_service.archive_user(user_id, actor=g.current_user)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PreconditionFailedError as e:
        return jsonify({"error": str(e)}), 409
    except OperationalError:
        raise
    except Exception:
        current_app.logger.exception("Failed to archive user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "message": "User archived"})


@users_bp.put("/<int:user_id>/reactivate")
@require_auth
@require_admin
def reactivate_user(user_id: int):
    """Reactivate an archived user."""
    try:
        user = users_service.restore_user(user_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"user": user.to_dict(), "message": "User reactivated"})
