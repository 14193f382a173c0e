from __future__ import annotations

from ..extensions import db
from spa_pos.finance_category import parse_category
from spa_pos.time_utils import to_utc_z, utcnow

FINANCE_TYPES = ("income", "expense")


class FinanceRecord(db.Model):
    """
    Income or expense entry.

    amount_cents is always the net amount: post-discount and including any
    tip. Expenses carry vendor + category; service income carries
    customer_name, service_id (first service for multi-service visits) and
    payment_method, plus a service_breakdown when more than one service,
    a discount or a tip is involved.
    """
    __tablename__ = "finance_records"
    __table_args__ = (
        db.Index("ix_finance_type_date", "type", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # income | expense
    type = db.Column(db.String(16), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    amount_cents = db.Column(db.Integer, nullable=False)
    tip_cents = db.Column(db.Integer, nullable=True)

    # Expense side
    vendor = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(255), nullable=True)

    # Income side
    customer_name = db.Column(db.String(255), nullable=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id", ondelete="SET NULL"), nullable=True, index=True)
    payment_method = db.Column(db.String(32), nullable=True)
    service_breakdown = db.Column(db.JSON(none_as_null=True), nullable=True)

    description = db.Column(db.Text, nullable=True)

    # Set when the record was produced by a cart checkout
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    service = db.relationship("Service")

    @property
    def category_value(self):
        return parse_category(self.category, self.service_breakdown)

    @property
    def service_name(self) -> str | None:
        return self.service.name if self.service else None

    def to_dict(self) -> dict:
        category_value = self.category_value
        return {
            "id": self.id,
            "type": self.type,
            "date": to_utc_z(self.date),
            "amount_cents": self.amount_cents,
            "tip_cents": self.tip_cents,
            "vendor": self.vendor,
            "category": self.category,
            "category_value": category_value.to_dict() if category_value else None,
            "customer_name": self.customer_name,
            "service_id": self.service_id,
            "service_name": self.service_name,
            "payment_method": self.payment_method,
            "description": self.description,
            "sale_id": self.sale_id,
            "created_at": to_utc_z(self.created_at),
        }
