# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations are open to staff (the POS grid browses them)
- Write operations are admin-only

Stock levels are not writable here after creation; they move through
/api/inventory so that every change leaves a Transaction.
"""
from flask import Blueprint, request, g, jsonify, current_app

from ..services import catalog_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_admin

_PRODUCT_FIELDS = {
    "name", "description", "category", "low_stock_threshold",
    "cost_price_cents", "sell_price_cents", "size", "ingredients",
    "skin_concerns", "image_url", "for_sale",
}

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=_PRODUCT_FIELDS | {"stock_quantity"},
    required_on_create={"name", "cost_price_cents", "sell_price_cents"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(writable_fields=_PRODUCT_FIELDS)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _bool_arg(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw is None:
        return None
    return raw.lower() in ("1", "true", "yes")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products with optional filters and pagination.

    Query params:
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    - search: str (optional) - matches name or description
    - category: str (optional)
    - for_sale: bool (optional)
    """
    result = catalog_service.list_products(
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        search=request.args.get("search"),
        category=request.args.get("category"),
        for_sale=_bool_arg("for_sale"),
    )
    return jsonify(result)


@products_bp.get("/categories")
@require_auth
def list_categories():
    return jsonify({"categories": catalog_service.list_categories()})


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    product = catalog_service.get_product(product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict())


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        created = catalog_service.create_product(patch=patch, user=g.current_user)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        updated = catalog_service.update_product(product_id=product_id, patch=patch, user=g.current_user)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    if not updated:
        return jsonify({"error": "Product not found"}), 404

    return jsonify(updated), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    """
    Delete a product.

    Sales history keeps the product name; open cart lines are dropped.
    """
    deleted = catalog_service.delete_product(product_id=product_id, user=g.current_user)
    if not deleted:
        return jsonify({"error": "Product not found"}), 404

    return jsonify({"ok": True}), 200
