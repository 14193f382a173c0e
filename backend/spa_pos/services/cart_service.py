# Overview: Service-layer operations for the persisted cart session.

"""
Cart Service

A cart is a CartSession row owned by one user. Clients hold its id and
pass it to every operation; there is no ambient "current cart".

Discount model:
- A line discount is clamped to [0, line subtotal].
- A global discount is clamped to [0, cart subtotal] and, while set,
  replaces the line discounts. Setting it zeroes every line discount;
  setting a line discount clears it.
- Totals and per-line attributions come from spa_pos.pricing.

Mutations are refused while the cart is SUBMITTING (checkout in flight).
"""

from __future__ import annotations

from ..extensions import db
from ..models import CartLine, CartSession, Product, Service
from ..models.cart import CART_STATUS_OPEN, ITEM_TYPE_PRODUCT, ITEM_TYPE_SERVICE
from ..pricing import clamp_discount, clamp_quantity, compute_totals, line_discounts, line_subtotal_cents, subtotal_cents
from spa_pos.time_utils import parse_iso_datetime

SERVICE_FIELDS = {"customer_name", "tip_cents", "notes", "service_date"}


class CartError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class CartNotFound(CartError):
    pass


def get_cart(cart_id: int, user=None) -> CartSession:
    """Load a cart, checking it belongs to user when one is given."""
    cart = db.session.get(CartSession, cart_id)
    if cart is None:
        raise CartNotFound("Cart not found", {"cart_id": cart_id})
    if user is not None and cart.user_id != user.id:
        raise CartNotFound("Cart not found", {"cart_id": cart_id})
    return cart


def _open_cart_for_update(cart_id: int, user=None) -> CartSession:
    cart = get_cart(cart_id, user)
    if cart.status != CART_STATUS_OPEN:
        raise CartError("Checkout in progress for this cart", {"status": cart.status})
    return cart


def _get_line(cart: CartSession, line_id: int) -> CartLine:
    for line in cart.lines:
        if line.id == line_id:
            return line
    raise CartNotFound("Cart line not found", {"line_id": line_id})


def open_cart(user) -> CartSession:
    """Return the user's OPEN cart, creating one if they have none."""
    cart = (
        db.session.query(CartSession)
        .filter(CartSession.user_id == user.id, CartSession.status == CART_STATUS_OPEN)
        .order_by(CartSession.id.desc())
        .first()
    )
    if cart is None:
        cart = CartSession(user_id=user.id, status=CART_STATUS_OPEN)
        db.session.add(cart)
        db.session.commit()
    return cart


def add_item(cart_id: int, item_type: str, item_id: int, user=None) -> CartLine:
    """
    Add one unit of a product or service.

    An item already in the cart has its quantity bumped instead, capped
    at stock for products.
    """
    cart = _open_cart_for_update(cart_id, user)

    if item_type == ITEM_TYPE_PRODUCT:
        product = db.session.get(Product, item_id)
        if product is None:
            raise CartNotFound("Product not found", {"product_id": item_id})
        if not product.for_sale:
            raise CartError("Product is not for sale", {"product_id": item_id})
        if product.stock_quantity <= 0:
            raise CartError(f"{product.name} is out of stock", {"product_id": item_id})
        existing = next((l for l in cart.lines if l.product_id == product.id), None)
        if existing is not None:
            existing.quantity = clamp_quantity(existing.quantity + 1, product.stock_quantity)
            db.session.commit()
            return existing
        line = CartLine(item_type=ITEM_TYPE_PRODUCT, product=product, quantity=1)

    elif item_type == ITEM_TYPE_SERVICE:
        service = db.session.get(Service, item_id)
        if service is None:
            raise CartNotFound("Service not found", {"service_id": item_id})
        if not service.active:
            raise CartError("Service is not active", {"service_id": item_id})
        existing = next((l for l in cart.lines if l.service_id == service.id), None)
        if existing is not None:
            existing.quantity += 1
            db.session.commit()
            return existing
        line = CartLine(item_type=ITEM_TYPE_SERVICE, service=service, quantity=1)

    else:
        raise CartError("item_type must be product or service", {"item_type": item_type})

    cart.lines.append(line)
    db.session.commit()
    return line


def update_quantity(cart_id: int, line_id: int, quantity: int, user=None) -> CartLine:
    """
    Set a line's quantity.

    quantity < 1 leaves the line unchanged. Product lines are clamped to
    [1, stock]. The line discount is re-clamped to the new subtotal.
    """
    cart = _open_cart_for_update(cart_id, user)
    line = _get_line(cart, line_id)

    if quantity < 1:
        return line

    line.quantity = clamp_quantity(quantity, line.max_quantity)
    line.discount_cents = clamp_discount(line.discount_cents or 0, line_subtotal_cents(line))
    db.session.commit()
    return line


def update_discount(cart_id: int, line_id: int, discount_cents: int, user=None) -> CartLine:
    cart = _open_cart_for_update(cart_id, user)
    line = _get_line(cart, line_id)

    line.discount_cents = clamp_discount(discount_cents, line_subtotal_cents(line))
    cart.global_discount_cents = None
    db.session.commit()
    return line


def set_global_discount(cart_id: int, discount_cents: int | None, user=None) -> CartSession:
    """Set (or with None, clear) the cart-wide discount."""
    cart = _open_cart_for_update(cart_id, user)

    if discount_cents is None:
        cart.global_discount_cents = None
    else:
        cart.global_discount_cents = clamp_discount(discount_cents, subtotal_cents(cart.lines))
        for line in cart.lines:
            line.discount_cents = 0
    db.session.commit()
    return cart


def update_service_fields(cart_id: int, line_id: int, fields: dict, user=None) -> CartLine:
    """Merge customer_name / tip_cents / notes / service_date into a service line."""
    cart = _open_cart_for_update(cart_id, user)
    line = _get_line(cart, line_id)

    if not line.is_service:
        raise CartError("Only service lines take service details", {"line_id": line_id})

    unknown = set(fields) - SERVICE_FIELDS
    if unknown:
        raise CartError(f"Unknown service fields: {', '.join(sorted(unknown))}")

    if "customer_name" in fields:
        line.customer_name = (fields["customer_name"] or "").strip() or None
    if "tip_cents" in fields:
        tip = fields["tip_cents"]
        if tip is not None and (not isinstance(tip, int) or isinstance(tip, bool)):
            raise CartError("tip_cents must be an integer")
        line.tip_cents = max(0, tip or 0)
    if "notes" in fields:
        line.notes = (fields["notes"] or "").strip() or None
    if "service_date" in fields:
        raw = fields["service_date"]
        try:
            line.service_date = parse_iso_datetime(raw) if isinstance(raw, str) else raw
        except ValueError:
            raise CartError("service_date must be an ISO-8601 datetime")

    db.session.commit()
    return line


def set_customer_name(cart_id: int, name: str | None, user=None) -> CartSession:
    cart = _open_cart_for_update(cart_id, user)
    cart.customer_name = (name or "").strip() or None
    db.session.commit()
    return cart


def remove_item(cart_id: int, line_id: int, user=None) -> None:
    cart = _open_cart_for_update(cart_id, user)
    line = _get_line(cart, line_id)
    cart.lines.remove(line)
    if not cart.lines:
        cart.global_discount_cents = None
    db.session.commit()


def clear_cart(cart_id: int, user=None) -> CartSession:
    cart = _open_cart_for_update(cart_id, user)
    reset_cart(cart)
    db.session.commit()
    return cart


def reset_cart(cart: CartSession) -> None:
    """Drop every line and the cart-wide discount and customer (no commit)."""
    cart.lines.clear()
    cart.global_discount_cents = None
    cart.customer_name = None


def cart_summary(cart: CartSession) -> dict:
    lines = list(cart.lines)
    attributed = line_discounts(lines, cart.global_discount_cents)
    totals = compute_totals(lines, cart.global_discount_cents)

    line_dicts = []
    for line, discount in zip(lines, attributed):
        data = line.to_dict()
        data["attributed_discount_cents"] = discount
        data["net_cents"] = max(0, line_subtotal_cents(line) - discount)
        if line.is_service and not line.customer_name:
            data["customer_name"] = cart.customer_name
        line_dicts.append(data)

    return {
        "cart": cart.to_dict(),
        "lines": line_dicts,
        "totals": totals.to_dict(),
        "has_products": any(not l.is_service for l in lines),
        "has_services": any(l.is_service for l in lines),
        "can_checkout": bool(lines) and cart.status == CART_STATUS_OPEN,
    }
