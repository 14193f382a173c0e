from __future__ import annotations

from ..extensions import db
from spa_pos.time_utils import to_utc_z, utcnow

TRANSACTION_TYPES = ("sale", "restock", "adjustment", "return")


class Sale(db.Model):
    """
    A completed product checkout.

    total_cents is the amount actually charged (post-discount). When a
    discount applied, original_total_cents keeps the pre-discount subtotal
    and discount_cents the amount taken off.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_date", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Business time of the sale
    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=True)
    original_total_cents = db.Column(db.Integer, nullable=True)

    payment_method = db.Column(db.String(32), nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    # User attribution (name is denormalized so deleted users still read well)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    user_name = db.Column(db.String(128), nullable=False, default="Unknown User")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transactions = db.relationship(
        "Transaction",
        back_populates="sale",
        lazy=True,
        order_by="Transaction.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "date": to_utc_z(self.date),
            "total_cents": self.total_cents,
            "discount_cents": self.discount_cents,
            "original_total_cents": self.original_total_cents,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [tx.to_dict() for tx in self.transactions]
        return data


class Transaction(db.Model):
    """
    Append-only ledger entry for one product movement.

    price_cents is the net value of the movement: for sales the line total
    after discount, for restocks cost x quantity, zero for adjustments.
    product_id is NULL for the bulk "Monthly Inventory Restock" entry, which
    covers many products at once.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_type_date", "type", "date"),
        db.Index("ix_transactions_product_date", "product_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    original_price_cents = db.Column(db.Integer, nullable=True)
    discount_cents = db.Column(db.Integer, nullable=True)

    # sale | restock | adjustment | return
    type = db.Column(db.String(16), nullable=False)

    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    user_name = db.Column(db.String(128), nullable=False, default="Unknown User")

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    parent_transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", back_populates="transactions")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "original_price_cents": self.original_price_cents,
            "discount_cents": self.discount_cents,
            "type": self.type,
            "date": to_utc_z(self.date),
            "user_id": self.user_id,
            "user_name": self.user_name,
            "sale_id": self.sale_id,
            "parent_transaction_id": self.parent_transaction_id,
        }
