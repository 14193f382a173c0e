# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Inventory routes (admin-only).

Every stock change goes through here so that it leaves a Transaction:
- POST /restock         add units to one product
- POST /adjust          set one product to a counted quantity
- POST /bulk-restock    month-end restock sheet (increases only)
- GET  /restocks/<id>   per-product rows of a bulk restock
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import inventory_service
from ..services.inventory_service import InventoryError, ProductNotFound, TransactionNotFound
from ..decorators import require_auth, require_admin
from ..validation import ValidationError, parse_int
from spa_pos.time_utils import parse_iso_datetime


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/overview")
@require_auth
@require_admin
def overview_route():
    """Total inventory value, low stock list and last restock date."""
    return jsonify(inventory_service.inventory_overview())


@inventory_bp.get("/low-stock")
@require_auth
@require_admin
def low_stock_route():
    products = [p.to_dict() for p in inventory_service.low_stock_products()]
    return jsonify({"items": products, "count": len(products)})


@inventory_bp.get("/transactions")
@require_auth
@require_admin
def list_transactions_route():
    """
    Transaction history, newest first.

    Query params:
    - type: sale | restock | adjustment (optional)
    - product_id: int (optional)
    - include_children: true to list bulk restock rows individually
    - page / per_page: pagination (optional)
    """
    result = inventory_service.list_transactions(
        tx_type=request.args.get("type"),
        product_id=request.args.get("product_id", type=int),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        include_children=request.args.get("include_children", "false").lower() == "true",
    )
    return jsonify(result)


@inventory_bp.post("/restock")
@require_auth
@require_admin
def restock_route():
    """
    Request body:
    {
        "product_id": 1,
        "quantity": 12,
        "occurred_at": "2026-03-01T15:00:00Z"   // optional
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        product_id = parse_int(data.get("product_id"), "product_id")
        quantity = parse_int(data.get("quantity"), "quantity")
        occurred_at = parse_iso_datetime(data["occurred_at"]) if data.get("occurred_at") else None
    except (ValidationError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    try:
        tx = inventory_service.record_restock(product_id, quantity, user=g.current_user, occurred_at=occurred_at)
    except ProductNotFound as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except InventoryError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record restock")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"transaction": tx.to_dict()}), 201


@inventory_bp.post("/adjust")
@require_auth
@require_admin
def adjust_route():
    """
    Request body:
    {
        "product_id": 1,
        "new_quantity": 7,
        "note": "Shelf count"   // optional
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        product_id = parse_int(data.get("product_id"), "product_id")
        new_quantity = parse_int(data.get("new_quantity"), "new_quantity")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        tx = inventory_service.adjust_inventory(product_id, new_quantity, user=g.current_user, note=data.get("note"))
    except ProductNotFound as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except InventoryError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to adjust inventory")
        return jsonify({"error": "Internal server error"}), 500

    if tx is None:
        return jsonify({"transaction": None, "message": "Quantity unchanged"}), 200
    return jsonify({"transaction": tx.to_dict()}), 201


@inventory_bp.post("/bulk-restock")
@require_auth
@require_admin
def bulk_restock_route():
    """
    Request body:
    {
        "updates": [{"product_id": 1, "new_quantity": 20}, ...]
    }
    """
    data = request.get_json(silent=True) or {}
    updates = data.get("updates")
    if not isinstance(updates, list):
        return jsonify({"error": "updates must be a list"}), 400

    try:
        tx = inventory_service.record_bulk_restock(updates, user=g.current_user)
    except ProductNotFound as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except InventoryError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record bulk restock")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"transaction": tx.to_dict()}), 201


@inventory_bp.get("/restocks/<int:tx_id>")
@require_auth
@require_admin
def restock_details_route(tx_id: int):
    """The bulk restock transaction and one row per product it restocked."""
    try:
        return jsonify(inventory_service.restock_details(tx_id))
    except TransactionNotFound as e:
        return jsonify({"error": str(e), "details": e.details}), 404
