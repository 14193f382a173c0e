from __future__ import annotations

from ..extensions import db
from spa_pos.time_utils import to_utc_z

CART_STATUS_OPEN = "OPEN"
CART_STATUS_SUBMITTING = "SUBMITTING"

ITEM_TYPE_PRODUCT = "product"
ITEM_TYPE_SERVICE = "service"


class CartSession(db.Model):
    """
    A checkout session owned by one user.

    The cart is an explicit, persisted object: clients hold its id and every
    cart operation takes it. status doubles as the submit latch: checkout
    flips OPEN -> SUBMITTING atomically and back to OPEN when done.

    global_discount_cents, when not NULL, overrides per-line discounts.
    """
    __tablename__ = "cart_sessions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=CART_STATUS_OPEN, index=True)

    global_discount_cents = db.Column(db.Integer, nullable=True)
    customer_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lines = db.relationship(
        "CartLine",
        back_populates="cart",
        lazy=True,
        order_by="CartLine.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "global_discount_cents": self.global_discount_cents,
            "customer_name": self.customer_name,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CartLine(db.Model):
    """
    One product or service entry in a cart.

    Exactly one of product_id / service_id is set, matching item_type.
    customer_name, tip_cents, notes and service_date only apply to service
    lines.
    """
    __tablename__ = "cart_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("cart_sessions.id"), nullable=False, index=True)

    # product | service
    item_type = db.Column(db.String(16), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)

    # Service-only fields
    customer_name = db.Column(db.String(255), nullable=True)
    tip_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    service_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    cart = db.relationship("CartSession", back_populates="lines")
    product = db.relationship("Product")
    service = db.relationship("Service")

    @property
    def is_service(self) -> bool:
        return self.item_type == ITEM_TYPE_SERVICE

    @property
    def item(self):
        return self.service if self.is_service else self.product

    @property
    def item_id(self) -> int:
        return self.service_id if self.is_service else self.product_id

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def unit_price_cents(self) -> int:
        if self.is_service:
            return self.service.price_cents
        return self.product.sell_price_cents

    @property
    def max_quantity(self) -> int | None:
        """Upper bound on quantity: stock for products, unbounded for services."""
        if self.is_service:
            return None
        return self.product.stock_quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cart_id": self.cart_id,
            "item_type": self.item_type,
            "item_id": self.item_id,
            "name": self.name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "max_quantity": self.max_quantity,
            "line_subtotal_cents": self.unit_price_cents * self.quantity,
            "discount_cents": self.discount_cents,
            "customer_name": self.customer_name,
            "tip_cents": self.tip_cents,
            "notes": self.notes,
            "service_date": to_utc_z(self.service_date),
        }
