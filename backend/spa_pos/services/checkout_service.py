# Overview: Checkout dispatcher; turns a cart into a product, service or mixed sale.

"""
Checkout

complete_sale() is the only way a cart becomes sales records.

1. Reject an empty cart or a missing/unknown payment method before any
   write happens.
2. Take the submit latch: UPDATE cart_sessions SET status='SUBMITTING'
   WHERE id=:id AND status='OPEN'. Losing that race means another
   checkout of the same cart is in flight.
3. Partition lines into products and services and record them in ONE DB
   transaction (product-only, service-only or mixed).
4. Success: empty the cart, append sale.completed, release the latch.
   Failure: roll back everything, release the latch, leave lines as-is.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import CartSession
from ..models.cart import CART_STATUS_OPEN, CART_STATUS_SUBMITTING
from ..pricing import compute_totals, line_discounts
from ..validation import ValidationError, require_payment_method
from .cart_service import get_cart, reset_cart
from .concurrency import compare_and_set, run_with_retry
from .event_service import SALE_COMPLETED, append_event
from .sales_service import (
    ProductSaleItem,
    SaleError,
    SaleResult,
    ServiceSaleItem,
    record_mixed_sale,
    record_product_sale,
    record_service_sale,
)

KIND_PRODUCT = "product"
KIND_SERVICE = "service"
KIND_MIXED = "mixed"


class CheckoutError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def partition_lines(cart: CartSession) -> tuple[list[ProductSaleItem], list[ServiceSaleItem]]:
    """Split cart lines into sale items, each carrying its attributed discount."""
    lines = list(cart.lines)
    discounts = line_discounts(lines, cart.global_discount_cents)

    products: list[ProductSaleItem] = []
    services: list[ServiceSaleItem] = []
    for line, discount in zip(lines, discounts):
        if line.is_service:
            services.append(ServiceSaleItem(
                service_id=line.service_id,
                quantity=line.quantity,
                discount_cents=discount,
                customer_name=line.customer_name or cart.customer_name,
                tip_cents=line.tip_cents or 0,
                notes=line.notes,
                service_date=line.service_date,
            ))
        else:
            products.append(ProductSaleItem(
                product_id=line.product_id,
                quantity=line.quantity,
                discount_cents=discount,
            ))
    return products, services


def sale_kind(products: list, services: list) -> str:
    if products and services:
        return KIND_MIXED
    if products:
        return KIND_PRODUCT
    return KIND_SERVICE


def _dispatch(products, services, payment_method, user) -> SaleResult:
    kind = sale_kind(products, services)
    if kind == KIND_MIXED:
        return record_mixed_sale(products, services, payment_method, user, commit=False)
    if kind == KIND_PRODUCT:
        return SaleResult(sale=record_product_sale(products, payment_method, user, commit=False))
    return SaleResult(income=record_service_sale(services, payment_method, user, commit=False))


def _release_latch(cart_id: int) -> None:
    compare_and_set(CartSession, cart_id, "status", CART_STATUS_SUBMITTING, CART_STATUS_OPEN)


def complete_sale(cart_id: int, payment_method: str | None, user) -> dict:
    """
    Record the cart as a sale and empty it.

    Raises CheckoutError on any failure; the cart is left OPEN with its
    lines untouched in that case.
    """
    try:
        method = require_payment_method(payment_method)
    except ValidationError as e:
        raise CheckoutError(str(e), {"field": "payment_method"})

    cart = get_cart(cart_id, user)
    if not cart.lines:
        raise CheckoutError("Cart is empty")
    if cart.status != CART_STATUS_OPEN:
        raise CheckoutError("Checkout already in progress", {"cart_id": cart_id})

    if not compare_and_set(CartSession, cart_id, "status", CART_STATUS_OPEN, CART_STATUS_SUBMITTING):
        raise CheckoutError("Checkout already in progress", {"cart_id": cart_id})

    def _op():
        locked = db.session.get(CartSession, cart_id)
        totals = compute_totals(locked.lines, locked.global_discount_cents)
        products, services = partition_lines(locked)
        kind = sale_kind(products, services)

        result = _dispatch(products, services, method, user)

        reset_cart(locked)
        locked.status = CART_STATUS_OPEN
        append_event(
            event_type=SALE_COMPLETED,
            entity_type="sale" if result.sale else "finance_record",
            entity_id=result.sale.id if result.sale else result.income.id,
            actor_user_id=user.id if user else None,
            payload={
                "kind": kind,
                "sale_id": result.sale.id if result.sale else None,
                "finance_record_id": result.income.id if result.income else None,
                "payment_method": method,
                "total_cents": totals.total_cents,
            },
        )
        db.session.commit()
        return kind, totals, result

    try:
        kind, totals, result = run_with_retry(_op)
    except SaleError as e:
        db.session.rollback()
        _release_latch(cart_id)
        raise CheckoutError(str(e), e.details) from e
    except Exception as e:
        db.session.rollback()
        _release_latch(cart_id)
        current_app.logger.exception("Checkout failed for cart %s", cart_id)
        raise CheckoutError("Failed to process the sale. Please try again.") from e

    current_app.logger.info(
        "Checkout completed cart=%s kind=%s total_cents=%s method=%s",
        cart_id, kind, totals.total_cents, method,
    )

    response = result.to_dict()
    response["kind"] = kind
    response["totals"] = totals.to_dict()
    return response
