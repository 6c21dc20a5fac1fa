# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/counterpos/routes/products.py
"""
Product management routes.

Write routes accept either JSON or multipart/form-data. Multipart requests
may carry an "image" file, which replaces any image_url in the same request.
Form fields arrive as strings; validate_payload() coerces them using the
column types and rejects anything that is not a clean integer/boolean.

SECURITY: All routes require authentication.
- Read operations are open to every role (the register screen needs them)
- Write operations require an admin session
"""
from flask import Blueprint, request, current_app
from sqlalchemy.exc import OperationalError

from ..services import products_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
)
from ..decorators import require_auth, require_admin

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "barcode", "price_cents", "stock",
        "primary_category", "sub_category", "technical_tags",
        "image_url", "is_active",
    },
    required_on_create={"name", "barcode", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _read_product_request():
    """
    Return (payload, image) for JSON or multipart bodies.

    Empty form fields are dropped: browsers submit "" for every untouched
    input, which would otherwise blank out the stored value.
    """
    if request.mimetype == "multipart/form-data":
        payload = {k: v for k, v in request.form.items() if v != ""}
        image = request.files.get("image")
        if image is not None and not image.filename:
            image = None
        return payload, image

    return request.get_json(silent=True) or {}, None


@products_bp.get("")
@require_auth
def list_products():
    """
    List products.

    Query params:
    - include_archived: bool (default true) - false returns only sellable items
    """
    include_archived = request.args.get("include_archived", "true").lower() == "true"
    products = products_service.list_products(include_archived=include_archived)
    return {"products": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"product": product.to_dict()}


@products_bp.get("/barcode/<string:barcode>")
@require_auth
def get_product_by_barcode(barcode: str):
    """Scanner lookup."""
    try:
        product = products_service.get_product_by_barcode(barcode)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"product": product.to_dict()}


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    """
    Create a new product.

    A product created with zero stock starts archived.
    """
    payload, image = _read_product_request()

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(patch=patch, image=image)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except OperationalError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return {"product": created.to_dict()}, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    """
    Update a product (partial).

    Stock left at zero archives the product regardless of is_active in the
    request.
    """
    payload, image = _read_product_request()

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch, image=image)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except OperationalError:
        raise
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    return {"product": updated.to_dict()}, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def archive_product_route(product_id: int):
    """Archive (soft-delete) a product. Sales history keeps its snapshot."""
    try:
        product = products_service.archive_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"product": product.to_dict(), "message": "Product archived"}, 200


@products_bp.put("/<int:product_id>/restore")
@require_auth
@require_admin
def restore_product_route(product_id: int):
    """
    Restore an archived product.

    Optional body: {"stock": 12} to replenish in the same call.
    Returns 409 when the product would come back with zero stock.
    """
    payload = request.get_json(silent=True) or {}

    try:
        product = products_service.restore_product(product_id, stock=payload.get("stock"))
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except PreconditionFailedError as e:
        return {"error": str(e)}, 409

    return {"product": product.to_dict(), "message": "Product restored"}, 200


@products_bp.delete("/<int:product_id>/permanent")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    """Permanently delete a product and its hosted image."""
    try:
        products_service.permanently_delete_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except OperationalError:
        raise
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Internal server error"}, 500

    return {"ok": True}, 200
