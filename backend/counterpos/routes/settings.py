# Overview: Flask API routes for store settings, logo, reset and backup.

# backend/counterpos/routes/settings.py
"""
Store settings routes.

SETUP WIZARD: until is_setup_complete is true, POST /api/settings and the
logo upload are public so the first-run wizard can configure the store
before any account can log in. Afterwards they require an admin session.

Reset, backup and restore always require an admin session.
"""

import json

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import OperationalError

from ..services import settings_service, backup_service
from ..validation import ValidationError
from ..decorators import require_auth, require_admin, resolve_session

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


def _setup_guard():
    """None when the caller may change settings, else an error response."""
    if not settings_service.get_settings().is_setup_complete:
        return None

    context = resolve_session()
    if not context:
        return jsonify({"error": "Authentication required"}), 401
    if not context.user.is_admin:
        return jsonify({"error": "Permission denied", "required_role": "admin"}), 403
    return None


@settings_bp.get("")
def get_settings_route():
    """Public: the login screen shows the store name and logo."""
    return jsonify({"settings": settings_service.get_settings().to_dict()})


@settings_bp.post("")
def save_settings_route():
    """
    Save settings (partial).

    Request body: any of store_name, store_logo_url, store_email,
    store_phone, store_address, store_description, currency, tax_rate_bps,
    categories, technical_tags, is_setup_complete.
    """
    denied = _setup_guard()
    if denied:
        return denied

    try:
        settings = settings_service.save_settings(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"settings": settings.to_dict(), "message": "Settings saved"})


@settings_bp.post("/logo")
def upload_logo_route():
    """Upload the store logo (multipart field "logo")."""
    denied = _setup_guard()
    if denied:
        return denied

    try:
        settings = settings_service.update_logo(request.files.get("logo"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except OSError:
        current_app.logger.exception("Failed to store logo")
        return jsonify({"error": "Image storage unavailable", "unreachable": True}), 503

    return jsonify({
        "settings": settings.to_dict(),
        "logo_url": settings.store_logo_url,
    })


@settings_bp.delete("/reset")
@require_auth
@require_admin
def reset_route():
    """
    Wipe the store: sales, products, accounts, settings and images.

    The caller's own account goes with it; the next visitor sees the setup
    wizard.
    """
    try:
        current_app.logger.warning("Database reset requested by %s", g.current_user.username)
        settings_service.reset_database()
    except OperationalError:
        raise
    except Exception:
        current_app.logger.exception("Failed to reset database")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Database reset"})


@settings_bp.get("/backup")
@require_auth
@require_admin
def backup_route():
    """Download the full store as JSON (images embedded as base64)."""
    return jsonify(backup_service.export_backup())


@settings_bp.post("/restore")
@require_auth
@require_admin
def restore_route():
    """
    Replace the whole store with an uploaded backup.

    Accepts the backup as the JSON body, or as a multipart "file". Every
    account, the caller's included, comes back logged out.
    """
    try:
        upload = request.files.get("file")
        if upload is not None:
            try:
                data = json.load(upload.stream)
            except ValueError:
                return jsonify({"error": "Backup file is not valid JSON"}), 400
        else:
            data = request.get_json(silent=True)

        counts = backup_service.import_backup(data)

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except OperationalError:
        raise
    except Exception:
        current_app.logger.exception("Failed to restore backup")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"restored": counts, "message": "Backup restored"})
