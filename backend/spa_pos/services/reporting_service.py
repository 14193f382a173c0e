# Overview: Service-layer operations for reporting; loads rows and feeds the metric reducers.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..finance_category import ServiceBreakdown
from ..models import FinanceRecord, Product, Sale, Transaction
from spa_pos.time_utils import to_local, to_utc_z
from . import metrics
from .metrics import (
    DateRanges,
    IncomeRow,
    ProductRow,
    ReportError,
    SaleRow,
    TIME_RANGES,
    TransactionRow,
)

__all__ = ["ReportError", "product_dashboard", "service_dashboard", "export_csv"]


def _check_range(time_range: str) -> None:
    if time_range not in TIME_RANGES:
        raise ReportError(f"Unknown time range: {time_range}", {"allowed": list(TIME_RANGES)})


def _window_start(ranges: DateRanges, time_range: str) -> datetime:
    """Earliest instant any figure on a dashboard needs."""
    return min(ranges.range_start(time_range), ranges.start_of_yesterday)


def load_product_rows() -> list[ProductRow]:
    return [
        ProductRow(
            id=p.id,
            name=p.name,
            category=p.category or "Uncategorized",
            cost_price_cents=p.cost_price_cents,
            for_sale=p.for_sale,
        )
        for p in db.session.query(Product).all()
    ]


def load_sale_transactions(since: datetime) -> list[TransactionRow]:
    rows = (
        db.session.query(Transaction)
        .filter(Transaction.type == "sale", Transaction.date >= since)
        .all()
    )
    return [
        TransactionRow(
            product_id=t.product_id,
            quantity=t.quantity,
            price_cents=t.price_cents,
            type=t.type,
            date=t.date,
        )
        for t in rows
    ]


def load_sales(since: datetime) -> list[SaleRow]:
    rows = db.session.query(Sale.date, Sale.total_cents).filter(Sale.date >= since).all()
    return [SaleRow(date=d, total_cents=total) for d, total in rows]


def load_service_incomes(since: datetime) -> list[IncomeRow]:
    """Income records that came from services (single or breakdown)."""
    records = (
        db.session.query(FinanceRecord)
        .filter(
            FinanceRecord.type == "income",
            FinanceRecord.date >= since,
            db.or_(
                FinanceRecord.service_id.isnot(None),
                FinanceRecord.service_breakdown.isnot(None),
            ),
        )
        .all()
    )
    out = []
    for r in records:
        category = r.category_value
        out.append(IncomeRow(
            id=r.id,
            amount_cents=r.amount_cents,
            date=r.date,
            service_id=r.service_id,
            service_name=r.service_name,
            customer_name=r.customer_name,
            breakdown=category if isinstance(category, ServiceBreakdown) else None,
        ))
    return out


def _ranges_dict(ranges: DateRanges, time_range: str) -> dict:
    return {
        "time_range": time_range,
        "now": to_utc_z(ranges.now),
        "range_start": to_utc_z(ranges.range_start(time_range)),
        "start_of_today": to_utc_z(ranges.start_of_today),
        "start_of_yesterday": to_utc_z(ranges.start_of_yesterday),
    }


def product_dashboard(time_range: str = "monthly", now: datetime | None = None) -> dict:
    """
    Product metrics for the dashboard.

    today / yesterday totals are fixed windows; performance, categories and
    the revenue series follow time_range.
    """
    _check_range(time_range)
    ranges = metrics.date_ranges(now)

    products = load_product_rows()
    sales_tx = metrics.sellable_sales(load_sale_transactions(_window_start(ranges, time_range)), products)
    in_range = metrics.filter_by_date_range(sales_tx, ranges.range_start(time_range))

    today = metrics.filter_by_date_range(sales_tx, ranges.start_of_today)
    yesterday = metrics.filter_by_day_range(sales_tx, ranges.start_of_yesterday, ranges.end_of_yesterday)

    sales = load_sales(ranges.range_start(time_range))

    return {
        **_ranges_dict(ranges, time_range),
        "today": metrics.calculate_total_metrics(today, products).to_dict(),
        "yesterday": metrics.calculate_total_metrics(yesterday, products).to_dict(),
        "totals": metrics.calculate_total_metrics(in_range, products).to_dict(),
        "sales_series": metrics.calculate_sales_series(sales, time_range, ranges),
        "product_performance": [m.to_dict() for m in metrics.calculate_product_performance(in_range, products)],
        "categories": metrics.calculate_product_categories(in_range, products),
    }


def _service_totals(incomes: list[IncomeRow]) -> dict:
    data = metrics.calculate_services_data(incomes)
    return {
        "revenue_cents": sum(s.total_revenue_cents for s in data),
        "services_provided": sum(s.total_sold for s in data),
        "unique_customers": metrics.count_unique_customers(incomes),
    }


def service_dashboard(time_range: str = "monthly", now: datetime | None = None) -> dict:
    _check_range(time_range)
    ranges = metrics.date_ranges(now)

    incomes = load_service_incomes(_window_start(ranges, time_range))
    in_range = metrics.filter_by_date_range(incomes, ranges.range_start(time_range))
    today = metrics.filter_by_day_range(incomes, ranges.start_of_today, ranges.now)
    yesterday = metrics.filter_by_day_range(incomes, ranges.start_of_yesterday, ranges.end_of_yesterday)

    services_data = metrics.calculate_services_data(in_range)
    top = metrics.top_performer(in_range, "income")

    return {
        **_ranges_dict(ranges, time_range),
        "today": _service_totals(today),
        "yesterday": _service_totals(yesterday),
        "totals": _service_totals(in_range),
        "services": [s.to_dict() for s in services_data],
        "service_types": metrics.calculate_service_type_data(services_data),
        "top_income": {
            "id": top.id,
            "amount_cents": top.amount_cents,
            "customer_name": top.customer_name,
        } if top else None,
    }


def export_csv(kind: str, time_range: str = "monthly", now: datetime | None = None) -> tuple[str, str]:
    """Return (filename, csv_text) for the product or service performance table."""
    _check_range(time_range)
    ranges = metrics.date_ranges(now)
    since = ranges.range_start(time_range)

    if kind == "product":
        products = load_product_rows()
        sales_tx = metrics.sellable_sales(load_sale_transactions(since), products)
        rows = metrics.calculate_product_performance(sales_tx, products)
    elif kind == "service":
        rows = metrics.calculate_services_data(load_service_incomes(since))
    else:
        raise ReportError(f"Unknown export kind: {kind}", {"allowed": list(metrics.EXPORT_KINDS)})

    filename = metrics.export_filename(kind, to_local(ranges.now).date())
    return filename, metrics.generate_csv(rows, kind)
