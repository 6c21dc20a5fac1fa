# backend/counterpos/routes/system.py
"""
System health and hosted image endpoints.

The frontend polls /api/health while it is in offline mode and switches
back once the database answers again.
"""

import time
from flask import Blueprint, current_app, send_from_directory, abort
from werkzeug.utils import secure_filename

from ..extensions import db
from ..models import User, Product
from ..services import storage_service
from counterpos.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        product_count = db.session.query(Product).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "products": product_count,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/api/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: database reachable
    - 503: database unreachable ("unreachable": true)
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database_health,
        }
    }
    if not healthy:
        response["unreachable"] = True

    return response, 200 if healthy else 503


@system_bp.get("/product-image/<path:filename>")
def product_image(filename: str):
    """Serve an uploaded product image or the store logo."""
    safe_name = secure_filename(filename)
    if not safe_name or safe_name != filename:
        abort(404)
    return send_from_directory(storage_service.upload_folder(), safe_name)
