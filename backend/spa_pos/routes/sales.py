# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales log routes.

- Staff can read the sales log and record a direct single-product sale
- Deleting sales or transactions is admin-only and never restores stock
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..services.sales_service import SaleError
from ..decorators import require_auth, require_admin
from ..validation import ValidationError, parse_int, require_payment_method
from spa_pos.time_utils import parse_iso_datetime


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Sales with their line transactions, newest first.

    Query params:
    - start / end: ISO-8601 datetimes (optional)
    - page / per_page: pagination (optional)
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400

    result = sales_service.list_sales(
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        start=start,
        end=end,
    )
    return jsonify(result)


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    if not sale:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify(sale.to_dict(include_items=True))


@sales_bp.post("")
@require_auth
def record_single_sale_route():
    """
    Record one product sold at list price, outside any cart.

    Request body:
    {
        "product_id": 1,
        "quantity": 2,
        "payment_method": "cash"   // optional
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        product_id = parse_int(data.get("product_id"), "product_id")
        quantity = parse_int(data.get("quantity"), "quantity")
        method = require_payment_method(data["payment_method"]) if data.get("payment_method") else None
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        sale = sales_service.record_single_sale(product_id, quantity, g.current_user, method)
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale.to_dict(include_items=True)), 201


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_admin
def delete_sale_route(sale_id: int):
    if not sales_service.delete_sale(sale_id, g.current_user):
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"ok": True}), 200


@sales_bp.delete("/transactions/<int:tx_id>")
@require_auth
@require_admin
def delete_transaction_route(tx_id: int):
    if not sales_service.delete_transaction(tx_id, g.current_user):
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify({"ok": True}), 200
