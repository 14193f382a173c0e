# Overview: Service-layer operations for the product and service catalog.

"""
Catalog Service

Products and spa services share one module: both are admin-maintained
master data that the cart reads from.

- Products are hard-deleted. Their historical Transactions keep the
  denormalized product_name and lose the product_id link.
- Services with income history are deactivated instead of deleted, so
  finance records keep resolving the service name.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import CartLine, FinanceRecord, Product, Service, Transaction
from ..validation import ConflictError, ValidationError
from .event_service import CATALOG_CHANGED, append_event
from .pagination import paginate

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "category", "low_stock_threshold",
    "cost_price_cents", "sell_price_cents", "size", "ingredients",
    "skin_concerns", "image_url", "for_sale",
}

# Stock is set once at creation; afterwards it moves through inventory_service.
PRODUCT_CREATE_FIELDS = PRODUCT_MUTABLE_FIELDS | {"stock_quantity"}

SERVICE_MUTABLE_FIELDS = {"name", "description", "price_cents", "active"}


def _apply_patch(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(obj, k, v)


def _actor_id(user) -> int | None:
    return user.id if user is not None else None


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def list_products(
    page: int | None = None,
    per_page: int | None = None,
    search: str | None = None,
    category: str | None = None,
    for_sale: bool | None = None,
) -> dict:
    """
    Product listing with optional filters and pagination.

    Ordered by category then name so the browsing grid groups naturally.
    """
    query = db.session.query(Product)

    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(like), Product.description.ilike(like)))
    if category:
        query = query.filter(Product.category == category)
    if for_sale is not None:
        query = query.filter(Product.for_sale.is_(for_sale))

    query = query.order_by(Product.category.asc(), Product.name.asc(), Product.id.asc())
    return paginate(query, page, per_page, lambda p: p.to_dict())


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def list_categories() -> list[str]:
    rows = db.session.query(Product.category).distinct().order_by(Product.category.asc()).all()
    return [r[0] for r in rows]


def create_product(*, patch: dict, user=None) -> dict:
    """Create product using a validated patch dict."""
    p = Product()
    _apply_patch(p, patch, PRODUCT_CREATE_FIELDS)

    db.session.add(p)
    db.session.flush()

    append_event(
        event_type=CATALOG_CHANGED,
        entity_type="product",
        entity_id=p.id,
        actor_user_id=_actor_id(user),
        payload={"action": "created"},
    )
    db.session.commit()
    return p.to_dict()


def update_product(*, product_id: int, patch: dict, user=None) -> dict | None:
    """
    Update a product.

    Returns updated product dict, or None if not found.
    """
    p = db.session.get(Product, product_id)
    if not p:
        return None

    if "stock_quantity" in patch:
        raise ValidationError("Field not allowed: stock_quantity")

    _apply_patch(p, patch, PRODUCT_MUTABLE_FIELDS)
    append_event(
        event_type=CATALOG_CHANGED,
        entity_type="product",
        entity_id=p.id,
        actor_user_id=_actor_id(user),
        payload={"action": "updated", "fields": sorted(patch.keys())},
    )
    db.session.commit()
    return p.to_dict()


def delete_product(*, product_id: int, user=None) -> bool:
    """
    Delete a product.

    Returns True if deleted, False if not found. Open cart lines for the
    product are dropped; transaction history is detached, not deleted.
    """
    p = db.session.get(Product, product_id)
    if not p:
        return False

    db.session.query(CartLine).filter(CartLine.product_id == p.id).delete(synchronize_session=False)
    db.session.query(Transaction).filter(Transaction.product_id == p.id).update(
        {Transaction.product_id: None}, synchronize_session=False
    )

    name = p.name
    db.session.delete(p)
    append_event(
        event_type=CATALOG_CHANGED,
        entity_type="product",
        entity_id=product_id,
        actor_user_id=_actor_id(user),
        payload={"action": "deleted", "name": name},
    )
    db.session.commit()

    current_app.logger.info("Deleted product id=%s name=%s", product_id, name)
    return True


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def list_services(include_inactive: bool = True) -> list[Service]:
    query = db.session.query(Service)
    if not include_inactive:
        query = query.filter(Service.active.is_(True))
    return query.order_by(Service.name.asc(), Service.id.asc()).all()


def get_service(service_id: int) -> Service | None:
    return db.session.get(Service, service_id)


def _ensure_unique_service_name(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Service).filter(db.func.lower(Service.name) == name.strip().lower())
    if exclude_id is not None:
        query = query.filter(Service.id != exclude_id)
    if query.first():
        raise ConflictError("A service with this name already exists.")


def create_service(*, patch: dict, user=None) -> dict:
    _ensure_unique_service_name(patch["name"])

    s = Service()
    _apply_patch(s, patch, SERVICE_MUTABLE_FIELDS)
    db.session.add(s)
    db.session.flush()

    append_event(
        event_type=CATALOG_CHANGED,
        entity_type="service",
        entity_id=s.id,
        actor_user_id=_actor_id(user),
        payload={"action": "created"},
    )
    db.session.commit()
    return s.to_dict()


def update_service(*, service_id: int, patch: dict, user=None) -> dict | None:
    s = db.session.get(Service, service_id)
    if not s:
        return None

    if "name" in patch and patch["name"] != s.name:
        _ensure_unique_service_name(patch["name"], exclude_id=s.id)

    _apply_patch(s, patch, SERVICE_MUTABLE_FIELDS)

    # Deactivated services leave every open cart
    if s.active is False:
        db.session.query(CartLine).filter(CartLine.service_id == s.id).delete(synchronize_session=False)

    append_event(
        event_type=CATALOG_CHANGED,
        entity_type="service",
        entity_id=s.id,
        actor_user_id=_actor_id(user),
        payload={"action": "updated", "fields": sorted(patch.keys())},
    )
    db.session.commit()
    return s.to_dict()


def delete_service(*, service_id: int, user=None) -> str | None:
    """
    Remove a service from the catalog.

    Returns "deleted", "deactivated" (service has income history), or None
    if not found.
    """
    s = db.session.get(Service, service_id)
    if not s:
        return None

    db.session.query(CartLine).filter(CartLine.service_id == s.id).delete(synchronize_session=False)

    has_history = (
        db.session.query(FinanceRecord.id).filter(FinanceRecord.service_id == s.id).first()
        is not None
    )
    if has_history:
        s.active = False
        outcome = "deactivated"
    else:
        db.session.delete(s)
        outcome = "deleted"

    append_event(
        event_type=CATALOG_CHANGED,
        entity_type="service",
        entity_id=service_id,
        actor_user_id=_actor_id(user),
        payload={"action": outcome},
    )
    db.session.commit()

    current_app.logger.info("Service id=%s %s", service_id, outcome)
    return outcome
