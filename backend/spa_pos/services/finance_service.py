# Overview: Service-layer operations for income and expense records.

"""
Finance Service

amount_cents on every record is the net amount (post-discount, including
tip). Multi-service income carries a ServiceBreakdown in the
service_breakdown column so metrics can credit each service.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..finance_category import ServiceBreakdown
from ..models import FinanceRecord
from ..validation import EXPENSE_CATEGORIES, PAYMENT_METHODS
from spa_pos.time_utils import start_of_local_month, to_utc_z, utcnow
from .auth_service import attribution
from .event_service import FINANCE_DELETED, FINANCE_RECORDED, append_event
from .metrics import top_performer
from .pagination import paginate
from .sales_service import SaleError, ServiceSaleItem, build_service_income


class FinanceError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def record_expense(
    amount_cents: int,
    vendor: str,
    category: str,
    date: datetime | None = None,
    description: str | None = None,
    user=None,
) -> FinanceRecord:
    if not isinstance(amount_cents, int) or isinstance(amount_cents, bool) or amount_cents <= 0:
        raise FinanceError("amount_cents must be a positive integer")
    vendor = (vendor or "").strip()
    if not vendor:
        raise FinanceError("vendor is required")
    if category not in EXPENSE_CATEGORIES:
        raise FinanceError("Unknown expense category", {"allowed": list(EXPENSE_CATEGORIES)})

    record = FinanceRecord(
        type="expense",
        date=date or utcnow(),
        amount_cents=amount_cents,
        vendor=vendor,
        category=category,
        description=(description or "").strip() or None,
    )
    db.session.add(record)
    db.session.flush()

    append_event(
        event_type=FINANCE_RECORDED,
        entity_type="finance_record",
        entity_id=record.id,
        actor_user_id=attribution(user)["user_id"],
        payload={"type": "expense", "amount_cents": amount_cents},
    )
    db.session.commit()
    return record


def record_income(
    customer_name: str,
    service_ids: list[int],
    date: datetime | None = None,
    payment_method: str = "cash",
    description: str | None = None,
    discount_cents: int = 0,
    tip_cents: int = 0,
    user=None,
) -> FinanceRecord:
    """
    One income record for a visit covering one or more services.

    Services must be distinct; at least one is required.
    """
    if not service_ids:
        raise FinanceError("At least one service is required")
    if len(set(service_ids)) != len(service_ids):
        raise FinanceError("Each service can only be added once", {"service_ids": list(service_ids)})
    customer_name = (customer_name or "").strip()
    if not customer_name:
        raise FinanceError("customer_name is required")
    if payment_method not in PAYMENT_METHODS:
        raise FinanceError("Unknown payment method", {"allowed": list(PAYMENT_METHODS)})
    if discount_cents < 0 or tip_cents < 0:
        raise FinanceError("discount_cents and tip_cents must be >= 0")

    items = [ServiceSaleItem(service_id=sid, customer_name=customer_name) for sid in service_ids]
    items[0].tip_cents = tip_cents

    try:
        record = build_service_income(
            items,
            payment_method,
            date=date or utcnow(),
            description=description,
            discount_cents=discount_cents,
            with_breakdown=True,
        )
    except SaleError as e:
        raise FinanceError(str(e), e.details)

    db.session.add(record)
    db.session.flush()

    append_event(
        event_type=FINANCE_RECORDED,
        entity_type="finance_record",
        entity_id=record.id,
        actor_user_id=attribution(user)["user_id"],
        payload={"type": "income", "amount_cents": record.amount_cents},
    )
    db.session.commit()
    return record


def list_records(
    record_type: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict:
    """Records newest first."""
    if record_type is not None and record_type not in ("income", "expense"):
        raise FinanceError("type must be income or expense")

    query = db.session.query(FinanceRecord)
    if record_type:
        query = query.filter(FinanceRecord.type == record_type)
    if start is not None:
        query = query.filter(FinanceRecord.date >= start)
    if end is not None:
        query = query.filter(FinanceRecord.date <= end)
    query = query.order_by(FinanceRecord.date.desc(), FinanceRecord.id.desc())
    return paginate(query, page, per_page, lambda r: r.to_dict())


def get_record(record_id: int) -> FinanceRecord | None:
    return db.session.get(FinanceRecord, record_id)


def delete_record(record_id: int, user=None) -> bool:
    record = db.session.get(FinanceRecord, record_id)
    if not record:
        return False

    record_type, amount = record.type, record.amount_cents
    db.session.delete(record)
    append_event(
        event_type=FINANCE_DELETED,
        entity_type="finance_record",
        entity_id=record_id,
        actor_user_id=attribution(user)["user_id"],
        payload={"type": record_type, "amount_cents": amount},
    )
    db.session.commit()

    current_app.logger.info("Deleted %s record id=%s", record_type, record_id)
    return True


def finance_summary(now: datetime | None = None) -> dict:
    """
    Month-to-date totals plus the single largest income and expense.

    The month boundary follows the display timezone.
    """
    now = now or utcnow()
    month_start = start_of_local_month(now)

    records = (
        db.session.query(FinanceRecord)
        .filter(FinanceRecord.date >= month_start, FinanceRecord.date <= now)
        .all()
    )

    income = sum(r.amount_cents for r in records if r.type == "income")
    expenses = sum(r.amount_cents for r in records if r.type == "expense")

    top_income = top_performer(records, "income")
    top_expense = top_performer(records, "expense")

    top_service_name = None
    if top_income is not None:
        category = top_income.category_value
        if isinstance(category, ServiceBreakdown) and category.service_names:
            top_service_name = ", ".join(category.service_names)
        else:
            top_service_name = top_income.service_name

    return {
        "month_start": to_utc_z(month_start),
        "total_income_cents": income,
        "total_expenses_cents": expenses,
        "net_profit_cents": income - expenses,
        "top_service_name": top_service_name,
        "top_service_amount_cents": top_income.amount_cents if top_income else 0,
        "top_vendor": top_expense.vendor if top_expense else None,
        "top_vendor_amount_cents": top_expense.amount_cents if top_expense else 0,
    }
