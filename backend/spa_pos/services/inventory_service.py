# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, Transaction
from spa_pos.time_utils import to_utc_z, utcnow
from .event_service import INVENTORY_ADJUSTED, INVENTORY_RESTOCKED, append_event
from .auth_service import attribution
from .concurrency import lock_for_update, run_with_retry
from .pagination import paginate
"""
Inventory invariants

- Product.stock_quantity is the current on-hand count and is never negative.
- Every stock change writes a Transaction row in the same DB transaction:
    restock     quantity > 0, price = cost x quantity
    adjustment  quantity = |new - old|, price 0
    sale        written by sales_service
- A bulk restock writes ONE "Monthly Inventory Restock" transaction with no
  product, priced at the total cost of every increase it applied, plus one
  child restock transaction per increased product pointing at it through
  parent_transaction_id.
- Product rows carry version_id; concurrent writers surface StaleDataError,
  which run_with_retry replays.
"""

BULK_RESTOCK_NAME = "Monthly Inventory Restock"


class InventoryError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFound(InventoryError):
    pass


class TransactionNotFound(InventoryError):
    pass


def _get_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise ProductNotFound("product not found", {"product_id": product_id})
    return product


def record_restock(product_id: int, quantity: int, user=None, occurred_at: datetime | None = None) -> Transaction:
    """Add quantity units to stock and log a restock transaction."""
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise InventoryError("quantity must be a positive integer")

    def _op():
        product = _get_product(product_id, lock=True)
        now = occurred_at or utcnow()

        product.stock_quantity += quantity
        product.last_restocked = now

        tx = Transaction(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            price_cents=product.cost_price_cents * quantity,
            type="restock",
            date=now,
            **attribution(user),
        )
        db.session.add(tx)
        db.session.flush()

        append_event(
            event_type=INVENTORY_RESTOCKED,
            entity_type="product",
            entity_id=product.id,
            actor_user_id=attribution(user)["user_id"],
            payload={"transaction_id": tx.id, "quantity": quantity},
        )
        db.session.commit()
        return tx

    tx = run_with_retry(_op)
    current_app.logger.info(
        "Restocked product id=%s qty=%s tx=%s", product_id, quantity, tx.id
    )
    return tx


def adjust_inventory(product_id: int, new_quantity: int, user=None, note: str | None = None) -> Transaction | None:
    """
    Set stock to new_quantity (a physical count).

    Writes an adjustment transaction for |difference|. Returns None when
    the count already matches.
    """
    if not isinstance(new_quantity, int) or isinstance(new_quantity, bool) or new_quantity < 0:
        raise InventoryError("new_quantity must be an integer >= 0")

    def _op():
        product = _get_product(product_id, lock=True)
        diff = new_quantity - product.stock_quantity
        if diff == 0:
            return None

        product.stock_quantity = new_quantity
        tx = Transaction(
            product_id=product.id,
            product_name=product.name,
            quantity=abs(diff),
            price_cents=0,
            type="adjustment",
            date=utcnow(),
            **attribution(user),
        )
        db.session.add(tx)
        db.session.flush()

        payload = {"transaction_id": tx.id, "delta": diff, "new_quantity": new_quantity}
        if note:
            payload["note"] = note
        append_event(
            event_type=INVENTORY_ADJUSTED,
            entity_type="product",
            entity_id=product.id,
            actor_user_id=attribution(user)["user_id"],
            payload=payload,
        )
        db.session.commit()
        return tx

    return run_with_retry(_op)


def record_bulk_restock(updates: list[dict], user=None) -> Transaction:
    """
    Apply a month-end restock sheet.

    updates: [{"product_id": int, "new_quantity": int}, ...]
    Only increases are applied; decreases and unchanged rows are ignored.
    Raises InventoryError if nothing increases.
    """
    if not updates:
        raise InventoryError("no restock updates provided")

    parsed: list[tuple[int, int]] = []
    for row in updates:
        try:
            pid = int(row["product_id"])
            qty = int(row["new_quantity"])
        except (KeyError, TypeError, ValueError):
            raise InventoryError("each update needs integer product_id and new_quantity", {"row": row})
        if qty < 0:
            raise InventoryError("new_quantity must be >= 0", {"product_id": pid})
        parsed.append((pid, qty))

    def _op():
        now = utcnow()
        total_cost = 0
        total_units = 0
        applied = []

        for pid, qty in parsed:
            product = _get_product(pid, lock=True)
            increase = qty - product.stock_quantity
            if increase <= 0:
                continue
            product.stock_quantity = qty
            product.last_restocked = now
            total_cost += product.cost_price_cents * increase
            total_units += increase
            applied.append((product, increase))

        if not applied:
            raise InventoryError("no stock increases in restock sheet")

        tx = Transaction(
            product_id=None,
            product_name=BULK_RESTOCK_NAME,
            quantity=total_units,
            price_cents=total_cost,
            type="restock",
            date=now,
            **attribution(user),
        )
        db.session.add(tx)
        db.session.flush()

        for product, increase in applied:
            db.session.add(Transaction(
                product_id=product.id,
                product_name=product.name,
                quantity=increase,
                price_cents=product.cost_price_cents * increase,
                type="restock",
                date=now,
                parent_transaction_id=tx.id,
                **attribution(user),
            ))
        db.session.flush()

        append_event(
            event_type=INVENTORY_RESTOCKED,
            entity_type="transaction",
            entity_id=tx.id,
            actor_user_id=attribution(user)["user_id"],
            payload={
                "bulk": True,
                "products": [{"product_id": p.id, "added": n} for p, n in applied],
                "total_cost_cents": total_cost,
            },
        )
        db.session.commit()
        return tx

    try:
        tx = run_with_retry(_op)
    except InventoryError:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Bulk restock tx=%s units=%s cost_cents=%s", tx.id, tx.quantity, tx.price_cents
    )
    return tx


def last_restock_date() -> datetime | None:
    return db.session.query(func.max(Transaction.date)).filter(Transaction.type == "restock").scalar()


def total_inventory_value() -> int:
    """Sum of cost x on-hand over all products, in cents."""
    value = db.session.query(
        func.coalesce(func.sum(Product.cost_price_cents * Product.stock_quantity), 0)
    ).scalar()
    return int(value or 0)


def low_stock_products() -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.stock_quantity <= Product.low_stock_threshold)
        .order_by(Product.stock_quantity.asc(), Product.name.asc())
        .all()
    )


def list_transactions(
    tx_type: str | None = None,
    product_id: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
    include_children: bool = False,
) -> dict:
    """
    Transaction history, newest first.

    Bulk restock children are folded into their parent row unless
    include_children is set or the history is for one product.
    """
    query = db.session.query(Transaction)
    if not include_children and product_id is None:
        query = query.filter(Transaction.parent_transaction_id.is_(None))
    if tx_type:
        query = query.filter(Transaction.type == tx_type)
    if product_id is not None:
        query = query.filter(Transaction.product_id == product_id)
    query = query.order_by(Transaction.date.desc(), Transaction.id.desc())
    return paginate(query, page, per_page, lambda t: t.to_dict())


def restock_details(tx_id: int) -> dict:
    """A bulk restock transaction and the per-product rows it covers."""
    parent = db.session.get(Transaction, tx_id)
    if parent is None or parent.type != "restock":
        raise TransactionNotFound("restock transaction not found", {"transaction_id": tx_id})

    children = (
        db.session.query(Transaction)
        .filter(Transaction.parent_transaction_id == parent.id)
        .order_by(Transaction.product_name.asc(), Transaction.id.asc())
        .all()
    )
    return {
        "restock": parent.to_dict(),
        "items": [t.to_dict() for t in children],
        "count": len(children),
    }


def inventory_overview() -> dict:
    last = last_restock_date()
    low = low_stock_products()
    return {
        "product_count": db.session.query(func.count(Product.id)).scalar() or 0,
        "total_inventory_value_cents": total_inventory_value(),
        "low_stock_count": len(low),
        "low_stock": [p.to_dict() for p in low],
        "last_restock_date": to_utc_z(last),
    }
