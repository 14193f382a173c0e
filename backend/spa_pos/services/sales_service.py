"""
Sales Service - recording product, service and mixed checkouts

WHY: A checkout must either fully record or not record at all. Every
record_* function here only stages rows on the session when commit=False,
so the checkout dispatcher can run product and service recording inside
one DB transaction and roll both back together.

Money rules:
- Sale.total_cents = max(0, subtotal - discount)
- discount_cents / original_total_cents / notes are only set when a
  discount applied
- one "sale" Transaction per product line, priced at the net line value
- service income amount = max(0, subtotal - discount) + tip
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..finance_category import ServiceBreakdown
from ..formatting import format_currency
from ..models import FinanceRecord, Product, Sale, Service, Transaction
from spa_pos.time_utils import utcnow
from .auth_service import attribution
from .concurrency import lock_for_update, run_with_retry
from .event_service import SALE_DELETED, TRANSACTION_DELETED, append_event
from .pagination import paginate


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class ProductSaleItem:
    product_id: int
    quantity: int
    discount_cents: int = 0


@dataclass
class ServiceSaleItem:
    service_id: int
    quantity: int = 1
    discount_cents: int = 0
    customer_name: str | None = None
    tip_cents: int = 0
    notes: str | None = None
    service_date: datetime | None = None


@dataclass
class SaleResult:
    """What a checkout wrote: a product Sale, a service income record, or both."""
    sale: Sale | None = None
    income: FinanceRecord | None = None

    def to_dict(self) -> dict:
        return {
            "sale": self.sale.to_dict(include_items=True) if self.sale else None,
            "income": self.income.to_dict() if self.income else None,
        }


def _validate_stock(items: list[ProductSaleItem]) -> dict[int, Product]:
    """Lock every product in the sale; each must be for sale with enough on hand."""
    requested: dict[int, int] = {}
    for item in items:
        if item.quantity < 1:
            raise SaleError("Quantity must be at least 1", {"product_id": item.product_id})
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

    products: dict[int, Product] = {}
    insufficient = []
    for product_id, qty in requested.items():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise SaleError("Product not found", {"product_id": product_id})
        if not product.for_sale:
            raise SaleError(
                "Product is not for sale",
                {"product_id": product_id, "product_name": product.name},
            )
        if product.stock_quantity < qty:
            insufficient.append({
                "product_id": product_id,
                "product_name": product.name,
                "requested_quantity": qty,
                "on_hand": product.stock_quantity,
            })
        products[product_id] = product

    if insufficient:
        raise SaleError(
            "Insufficient inventory to record sale",
            details={"items": insufficient},
        )
    return products


def record_product_sale(
    items: list[ProductSaleItem],
    payment_method: str | None,
    user=None,
    *,
    occurred_at: datetime | None = None,
    commit: bool = True,
) -> Sale:
    """Write one Sale with a sale Transaction per item and decrement stock."""
    if not items:
        raise SaleError("Cannot record a sale with no items")

    products = _validate_stock(items)
    now = occurred_at or utcnow()
    who = attribution(user)

    subtotal = 0
    total_discount = 0
    lines = []
    for item in items:
        product = products[item.product_id]
        line_total = product.sell_price_cents * item.quantity
        discount = max(0, min(int(item.discount_cents or 0), line_total))
        subtotal += line_total
        total_discount += discount
        lines.append((item, product, line_total, discount))

    total_discount = min(total_discount, subtotal)

    sale = Sale(
        date=now,
        total_cents=max(0, subtotal - total_discount),
        discount_cents=total_discount if total_discount > 0 else None,
        original_total_cents=subtotal if total_discount > 0 else None,
        notes=f"Discount: {format_currency(total_discount)}" if total_discount > 0 else None,
        payment_method=payment_method,
        **who,
    )
    db.session.add(sale)
    db.session.flush()

    for item, product, line_total, discount in lines:
        sale.transactions.append(Transaction(
            product_id=product.id,
            product_name=product.name,
            quantity=item.quantity,
            price_cents=max(0, line_total - discount),
            original_price_cents=line_total if discount > 0 else None,
            discount_cents=discount if discount > 0 else None,
            type="sale",
            date=now,
            **who,
        ))
        product.stock_quantity -= item.quantity

    db.session.flush()
    if commit:
        db.session.commit()
    return sale


def build_service_income(
    items: list[ServiceSaleItem],
    payment_method: str | None,
    *,
    date: datetime,
    description: str | None = None,
    discount_cents: int | None = None,
    sale_id: int | None = None,
    with_breakdown: bool = False,
) -> FinanceRecord:
    """
    Build (unsaved) the single income record for a set of service lines.

    discount_cents overrides the sum of per-item discounts when given.
    A breakdown is attached for several lines, a discount or a tip, or
    always when with_breakdown is set.
    """
    services: list[Service] = []
    for item in items:
        service = db.session.get(Service, item.service_id)
        if service is None:
            raise SaleError("Service not found", {"service_id": item.service_id})
        if not service.active:
            raise SaleError(
                "Service is no longer offered",
                {"service_id": service.id, "service_name": service.name},
            )
        if item.quantity < 1:
            raise SaleError("Quantity must be at least 1", {"service_id": item.service_id})
        services.append(service)

    prices = [s.price_cents * item.quantity for s, item in zip(services, items)]
    subtotal = sum(prices)

    if discount_cents is None:
        discount_cents = sum(
            max(0, min(int(item.discount_cents or 0), price)) for item, price in zip(items, prices)
        )
    discount = max(0, min(int(discount_cents), subtotal))
    tip = sum(max(0, int(item.tip_cents or 0)) for item in items)

    names = [s.name for s in services]
    note_lines = [f"Services: {', '.join(names)}"]
    notes = [item.notes.strip() for item in items if item.notes and item.notes.strip()]
    if description:
        note_lines.append(f"Note: {description.strip()}")
    for n in notes:
        note_lines.append(f"Note: {n}")

    breakdown = None
    if with_breakdown or len(items) > 1 or discount > 0 or tip > 0:
        breakdown = ServiceBreakdown(
            service_ids=[s.id for s in services],
            service_names=names,
            service_prices_cents=prices,
            discount_cents=discount,
            tip_cents=tip,
        ).to_json()

    customer_name = next((item.customer_name.strip() for item in items if item.customer_name and item.customer_name.strip()), None)

    return FinanceRecord(
        type="income",
        date=date,
        amount_cents=max(0, subtotal - discount) + tip,
        tip_cents=tip if tip > 0 else None,
        customer_name=customer_name,
        service_id=services[0].id,
        payment_method=payment_method,
        service_breakdown=breakdown,
        description="\n\n".join(note_lines),
        sale_id=sale_id,
    )


def record_service_sale(
    items: list[ServiceSaleItem],
    payment_method: str | None,
    user=None,
    *,
    commit: bool = True,
    sale_id: int | None = None,
) -> FinanceRecord:
    """Write one income FinanceRecord covering every service line."""
    if not items:
        raise SaleError("Cannot record a service sale with no services")

    date = next((item.service_date for item in items if item.service_date), None) or utcnow()
    record = build_service_income(items, payment_method, date=date, sale_id=sale_id)
    db.session.add(record)
    db.session.flush()

    if commit:
        db.session.commit()
    return record


def record_mixed_sale(
    product_items: list[ProductSaleItem],
    service_items: list[ServiceSaleItem],
    payment_method: str | None,
    user=None,
    *,
    commit: bool = True,
) -> SaleResult:
    """Products and services from one checkout, linked through sale_id."""
    if not product_items or not service_items:
        raise SaleError("A mixed sale needs both products and services")

    sale = record_product_sale(product_items, payment_method, user, commit=False)
    income = record_service_sale(service_items, payment_method, user, commit=False, sale_id=sale.id)

    if commit:
        db.session.commit()
    return SaleResult(sale=sale, income=income)


def record_single_sale(product_id: int, quantity: int, user=None, payment_method: str | None = None) -> Sale:
    """Direct one-product sale at list price, outside any cart."""
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise SaleError("Quantity must be a positive integer")

    def _op():
        return record_product_sale(
            [ProductSaleItem(product_id=product_id, quantity=quantity)],
            payment_method,
            user,
        )

    try:
        return run_with_retry(_op)
    except SaleError:
        db.session.rollback()
        raise


def list_sales(
    page: int | None = None,
    per_page: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict:
    """Sales with their transactions, newest first."""
    query = db.session.query(Sale)
    if start is not None:
        query = query.filter(Sale.date >= start)
    if end is not None:
        query = query.filter(Sale.date <= end)
    query = query.order_by(Sale.date.desc(), Sale.id.desc())
    return paginate(query, page, per_page, lambda s: s.to_dict(include_items=True))


def get_sale(sale_id: int) -> Sale | None:
    return db.session.get(Sale, sale_id)


def delete_sale(sale_id: int, user=None) -> bool:
    """
    Delete a sale and its transactions.

    Stock is not restored. Linked service income is detached, not deleted.
    Returns False if not found.
    """
    sale = db.session.get(Sale, sale_id)
    if not sale:
        return False

    tx_count = len(sale.transactions)
    total = sale.total_cents
    db.session.query(FinanceRecord).filter(FinanceRecord.sale_id == sale.id).update(
        {FinanceRecord.sale_id: None}, synchronize_session=False
    )
    db.session.delete(sale)

    append_event(
        event_type=SALE_DELETED,
        entity_type="sale",
        entity_id=sale_id,
        actor_user_id=attribution(user)["user_id"],
        payload={"total_cents": total, "transactions": tx_count},
    )
    db.session.commit()

    current_app.logger.info("Deleted sale id=%s (%s transactions)", sale_id, tx_count)
    return True


def delete_transaction(tx_id: int, user=None) -> bool:
    """
    Delete one transaction row.

    When it belongs to a sale, the sale totals drop by the transaction's
    share; a sale left with no transactions is deleted too.
    """
    tx = db.session.get(Transaction, tx_id)
    if not tx:
        return False

    tx_type, sale_id = tx.type, tx.sale_id
    sale = tx.sale
    if sale is None:
        db.session.query(Transaction).filter(Transaction.parent_transaction_id == tx.id).delete(
            synchronize_session=False
        )
        db.session.delete(tx)
    else:
        sale.transactions.remove(tx)
        if not sale.transactions:
            db.session.query(FinanceRecord).filter(FinanceRecord.sale_id == sale.id).update(
                {FinanceRecord.sale_id: None}, synchronize_session=False
            )
            db.session.delete(sale)
        else:
            sale.total_cents = max(0, sale.total_cents - (tx.price_cents or 0))
            if sale.original_total_cents is not None:
                original = tx.original_price_cents if tx.original_price_cents is not None else tx.price_cents
                sale.original_total_cents = max(0, sale.original_total_cents - (original or 0))
            if sale.discount_cents is not None and tx.discount_cents:
                sale.discount_cents = max(0, sale.discount_cents - tx.discount_cents) or None

    append_event(
        event_type=TRANSACTION_DELETED,
        entity_type="transaction",
        entity_id=tx_id,
        actor_user_id=attribution(user)["user_id"],
        payload={"type": tx_type, "sale_id": sale_id},
    )
    db.session.commit()

    current_app.logger.info("Deleted transaction id=%s type=%s", tx_id, tx_type)
    return True
