# Overview: Flask API routes for the cart and checkout; parses input and returns JSON responses.

"""
Cart routes.

The client opens a cart once (POST /api/cart) and addresses it by id
afterwards. Every mutation responds with the full cart summary (lines,
attributed discounts, totals) so the register view never recomputes
money on its own.

Carts belong to the user who opened them; another user's cart id is a 404.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import cart_service
from ..services.cart_service import CartError, CartNotFound
from ..services.checkout_service import CheckoutError, complete_sale
from ..decorators import require_auth
from ..validation import ValidationError, parse_int


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _summary(cart_id: int):
    return jsonify(cart_service.cart_summary(cart_service.get_cart(cart_id, g.current_user)))


def _error(e: CartError):
    status = 404 if isinstance(e, CartNotFound) else 400
    return jsonify({"error": str(e), "details": e.details}), status


@cart_bp.post("")
@require_auth
def open_cart_route():
    """Return the caller's open cart, creating it if needed."""
    cart = cart_service.open_cart(g.current_user)
    return jsonify(cart_service.cart_summary(cart))


@cart_bp.get("/<int:cart_id>")
@require_auth
def get_cart_route(cart_id: int):
    try:
        return _summary(cart_id)
    except CartError as e:
        return _error(e)


@cart_bp.post("/<int:cart_id>/items")
@require_auth
def add_item_route(cart_id: int):
    """
    Request body:
    {
        "item_type": "product" | "service",
        "item_id": 3
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        item_id = parse_int(data.get("item_id"), "item_id")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        cart_service.add_item(cart_id, data.get("item_type"), item_id, g.current_user)
        return _summary(cart_id)
    except CartError as e:
        return _error(e)


@cart_bp.put("/<int:cart_id>/items/<int:line_id>/quantity")
@require_auth
def update_quantity_route(cart_id: int, line_id: int):
    data = request.get_json(silent=True) or {}

    try:
        quantity = parse_int(data.get("quantity"), "quantity")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        cart_service.update_quantity(cart_id, line_id, quantity, g.current_user)
        return _summary(cart_id)
    except CartError as e:
        return _error(e)


@cart_bp.put("/<int:cart_id>/items/<int:line_id>/discount")
@require_auth
def update_discount_route(cart_id: int, line_id: int):
    data = request.get_json(silent=True) or {}

    try:
        discount = parse_int(data.get("discount_cents"), "discount_cents")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        cart_service.update_discount(cart_id, line_id, discount, g.current_user)
        return _summary(cart_id)
    except CartError as e:
        return _error(e)


@cart_bp.put("/<int:cart_id>/global-discount")
@require_auth
def global_discount_route(cart_id: int):
    """
    Set the cart-wide discount. {"discount_cents": null} clears it and
    hands pricing back to the per-line discounts.
    """
    data = request.get_json(silent=True) or {}

    try:
        raw = data.get("discount_cents")
        discount = None if raw is None else parse_int(raw, "discount_cents")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        cart_service.set_global_discount(cart_id, discount, g.current_user)
        return _summary(cart_id)
    except CartError as e:
        return _error(e)


@cart_bp.patch("/<int:cart_id>/items/<int:line_id>/service")
@require_auth
def update_service_fields_route(cart_id: int, line_id: int):
    """
    Merge service details into a service line.

    Accepted keys: customer_name, tip_cents, notes, service_date.
    """
    data = request.get_json(silent=True) or {}

    try:
        cart_service.update_service_fields(cart_id, line_id, data, g.current_user)
        return _summary(cart_id)
    except CartError as e:
        return _error(e)


@cart_bp.put("/<int:cart_id>/customer")
@require_auth
def set_customer_route(cart_id: int):
    data = request.get_json(silent=True) or {}

    try:
        cart_service.set_customer_name(cart_id, data.get("customer_name"), g.current_user)
        return _summary(cart_id)
    except CartError as e:
        return _error(e)


@cart_bp.delete("/<int:cart_id>/items/<int:line_id>")
@require_auth
def remove_item_route(cart_id: int, line_id: int):
    try:
        cart_service.remove_item(cart_id, line_id, g.current_user)
        return _summary(cart_id)
    except CartError as e:
        return _error(e)


@cart_bp.delete("/<int:cart_id>/items")
@require_auth
def clear_cart_route(cart_id: int):
    try:
        cart_service.clear_cart(cart_id, g.current_user)
        return _summary(cart_id)
    except CartError as e:
        return _error(e)


@cart_bp.post("/<int:cart_id>/checkout")
@require_auth
def checkout_route(cart_id: int):
    """
    Record the cart as a sale.

    Request body:
    {
        "payment_method": "card"
    }

    On failure the cart is left exactly as it was.
    """
    data = request.get_json(silent=True) or {}

    try:
        result = complete_sale(cart_id, data.get("payment_method"), g.current_user)
    except CartNotFound as e:
        return _error(e)
    except CheckoutError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Unexpected checkout failure for cart %s", cart_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result), 201
