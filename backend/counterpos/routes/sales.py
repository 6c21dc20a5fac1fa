# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/counterpos/routes/sales.py
"""Sales API routes: checkout and sale history"""

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import OperationalError

from ..services import sales_service
from ..validation import ValidationError, NotFoundError, PreconditionFailedError
from ..decorators import require_auth, require_admin
from counterpos.time_utils import parse_iso_datetime


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _date_arg(name: str):
    raw = request.args.get(name)
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date or datetime")


@sales_bp.post("")
@require_auth
def checkout_route():
    """
    Check out a cart.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}, ...],
        "discount_type": "percentage" | "fixed" | null,
        "discount_value": 1000,       // bps for percentage, cents for fixed
        "tax_rate_bps": 1200          // optional, defaults to store setting
    }

    Stock decrement and the sale record are written together; a cart with
    an archived product or not enough stock is rejected with 409 and
    nothing changes.

    Available to: admin, cashier
    """
    try:
        data = request.get_json(silent=True) or {}

        sale = sales_service.checkout(
            items=data.get("items"),
            cashier=g.current_user,
            discount_type=data.get("discount_type"),
            discount_value=data.get("discount_value"),
            tax_rate_bps=data.get("tax_rate_bps"),
        )

        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PreconditionFailedError as e:
        return jsonify({"error": str(e)}), 409
    except OperationalError:
        raise
    except Exception:
        current_app.logger.exception("Failed to check out sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    List sales, newest first.

    Query params:
    - start_date: ISO date/datetime (inclusive)
    - end_date: ISO date/datetime (inclusive; a bare date means the whole day)
    """
    try:
        start = _date_arg("start_date")
        end = _date_arg("end_date")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    raw_end = request.args.get("end_date") or ""
    if end is not None and "T" not in raw_end:
        end = end.replace(hour=23, minute=59, second=59, microsecond=999999)

    sales = sales_service.list_sales(start, end)
    return jsonify({"sales": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"sale": sale.to_dict()})


@sales_bp.get("/cashier/<int:cashier_id>")
@require_auth
def list_cashier_sales_route(cashier_id: int):
    """Sales rung up by one cashier, newest first."""
    sales = sales_service.list_sales_by_cashier(cashier_id)
    return jsonify({"sales": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.delete("/clear")
@require_auth
@require_admin
def clear_sales_route():
    """Delete all sales history (admin reset)."""
    deleted = sales_service.clear_sales()
    current_app.logger.warning("Sales history cleared by %s (%d sales)", g.current_user.username, deleted)
    return jsonify({"deleted": deleted, "message": "Sales cleared"})
