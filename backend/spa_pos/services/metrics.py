# Overview: Pure metric reducers over transaction, sale and income rows.

"""
Metrics reducers.

Nothing here touches the database or the request. reporting_service loads
rows, converts them to the small row types below, and calls these
functions. All money is integer cents; all datetimes are UTC-naive.

Time windows come from date_ranges(now), computed once per request so
every figure on one dashboard uses the same "now".
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Optional, Sequence

from ..finance_category import ServiceBreakdown
from ..time_utils import local_date_str, start_of_local_day, start_of_local_month, utcnow

TIME_RANGES = ("7days", "30days", "monthly")
EXPORT_KINDS = ("product", "service")


class ReportError(ValueError):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


# ---------------------------------------------------------------------------
# Row types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProductRow:
    id: int
    name: str
    category: str = "Uncategorized"
    cost_price_cents: int = 0
    for_sale: bool = True


@dataclass(frozen=True)
class TransactionRow:
    product_id: Optional[int]
    quantity: int
    price_cents: int
    type: str
    date: datetime


@dataclass(frozen=True)
class SaleRow:
    date: datetime
    total_cents: int


@dataclass(frozen=True)
class IncomeRow:
    id: int
    amount_cents: int
    date: datetime
    service_id: Optional[int] = None
    service_name: Optional[str] = None
    customer_name: Optional[str] = None
    breakdown: Optional[ServiceBreakdown] = None
    type: str = "income"


@dataclass
class ProductMetric:
    id: int
    name: str
    total_sold: int = 0
    total_revenue_cents: int = 0
    cost_price_cents: int = 0
    profit_cents: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "total_sold": self.total_sold,
            "total_revenue_cents": self.total_revenue_cents,
            "cost_price_cents": self.cost_price_cents,
            "profit_cents": self.profit_cents,
        }


@dataclass
class ServiceMetric:
    id: Optional[int]
    name: str
    total_sold: int = 0
    total_revenue_cents: int = 0
    customers: set = field(default_factory=set)

    @property
    def unique_customers(self) -> int:
        return len(self.customers)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "total_sold": self.total_sold,
            "total_revenue_cents": self.total_revenue_cents,
            "unique_customers": self.unique_customers,
        }


@dataclass(frozen=True)
class TotalMetrics:
    revenue_cents: int = 0
    items_sold: int = 0
    profit_cents: int = 0

    def to_dict(self) -> dict:
        return {
            "revenue_cents": self.revenue_cents,
            "items_sold": self.items_sold,
            "profit_cents": self.profit_cents,
        }


# ---------------------------------------------------------------------------
# Time windows
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DateRanges:
    now: datetime
    start_of_today: datetime
    start_of_yesterday: datetime
    end_of_yesterday: datetime
    seven_days_ago: datetime
    thirty_days_ago: datetime
    start_of_month: datetime

    def range_start(self, time_range: str) -> datetime:
        if time_range == "7days":
            return self.seven_days_ago
        if time_range == "30days":
            return self.thirty_days_ago
        if time_range == "monthly":
            return self.start_of_month
        raise ReportError(f"Unknown time range: {time_range}", {"allowed": list(TIME_RANGES)})


def date_ranges(now: datetime | None = None, tz: tzinfo | None = None) -> DateRanges:
    """Day and month boundaries follow the shop's local calendar."""
    now = now or utcnow()
    start_of_today = start_of_local_day(now, tz)
    start_of_yesterday = start_of_local_day(start_of_today - timedelta(hours=12), tz)
    return DateRanges(
        now=now,
        start_of_today=start_of_today,
        start_of_yesterday=start_of_yesterday,
        end_of_yesterday=start_of_today - timedelta(microseconds=1),
        seven_days_ago=now - timedelta(days=7),
        thirty_days_ago=now - timedelta(days=30),
        start_of_month=start_of_local_month(now, tz),
    )


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def filter_by_type(rows: Iterable, tx_type: str) -> list:
    return [r for r in rows if r.type == tx_type]


def filter_by_date_range(rows: Iterable, start: datetime, end: datetime | None = None) -> list:
    """start <= date, and date <= end when end is given."""
    if end is None:
        return [r for r in rows if r.date >= start]
    return [r for r in rows if start <= r.date <= end]


def filter_by_day_range(rows: Iterable, start: datetime, end: datetime) -> list:
    return [r for r in rows if start <= r.date <= end]


def sellable_products(products: Iterable[ProductRow]) -> dict[int, ProductRow]:
    return {p.id: p for p in products if p.for_sale}


def sellable_sales(transactions: Iterable[TransactionRow], products: Iterable[ProductRow]) -> list[TransactionRow]:
    """Sale transactions of for-sale products only."""
    sellable = sellable_products(products)
    return [t for t in filter_by_type(transactions, "sale") if t.product_id in sellable]


# ---------------------------------------------------------------------------
# Product reducers
# ---------------------------------------------------------------------------

def calculate_product_performance(
    sales_transactions: Iterable[TransactionRow],
    products: Iterable[ProductRow],
) -> list[ProductMetric]:
    """Per-product sold / revenue / profit, most profitable first."""
    catalog = sellable_products(products)
    by_product: dict[int, ProductMetric] = {}

    for tx in sales_transactions:
        product = catalog.get(tx.product_id)
        if product is None:
            continue
        metric = by_product.get(product.id)
        if metric is None:
            metric = by_product[product.id] = ProductMetric(
                id=product.id,
                name=product.name,
                cost_price_cents=product.cost_price_cents,
            )
        metric.total_sold += tx.quantity
        metric.total_revenue_cents += tx.price_cents
        metric.profit_cents += tx.price_cents - product.cost_price_cents * tx.quantity

    return sorted(by_product.values(), key=lambda m: (-m.profit_cents, m.name))


def calculate_total_metrics(
    transactions: Iterable[TransactionRow],
    products: Iterable[ProductRow],
) -> TotalMetrics:
    """
    revenue = sum of net line values, profit = sum(price - cost x qty).

    Profit skips transactions whose product is no longer known.
    """
    catalog = {p.id: p for p in products}
    revenue = items = profit = 0
    for tx in transactions:
        revenue += tx.price_cents
        items += tx.quantity
        product = catalog.get(tx.product_id)
        if product is not None:
            profit += tx.price_cents - product.cost_price_cents * tx.quantity
    return TotalMetrics(revenue_cents=revenue, items_sold=items, profit_cents=profit)


def calculate_sales_series(
    sales: Iterable[SaleRow],
    time_range: str,
    ranges: DateRanges,
    tz: tzinfo | None = None,
) -> list[dict]:
    """Revenue per local calendar day within the range, oldest day first."""
    start = ranges.range_start(time_range)
    per_day: dict[str, int] = {}
    for sale in filter_by_date_range(sales, start):
        key = local_date_str(sale.date, tz)
        per_day[key] = per_day.get(key, 0) + sale.total_cents
    return [{"date": d, "revenue_cents": per_day[d]} for d in sorted(per_day)]


def calculate_product_categories(
    sales_transactions: Iterable[TransactionRow],
    products: Iterable[ProductRow],
) -> list[dict]:
    catalog = sellable_products(products)
    by_category: dict[str, int] = {}
    for tx in sales_transactions:
        product = catalog.get(tx.product_id)
        if product is None:
            continue
        name = product.category or "Uncategorized"
        by_category[name] = by_category.get(name, 0) + tx.price_cents
    return [{"name": k, "value_cents": v} for k, v in by_category.items()]


# ---------------------------------------------------------------------------
# Service reducers
# ---------------------------------------------------------------------------

def _service_entry(by_service: dict, key, name: str) -> ServiceMetric:
    entry = by_service.get(key)
    if entry is None:
        entry = by_service[key] = ServiceMetric(id=key, name=name)
    return entry


def calculate_services_data(incomes: Iterable[IncomeRow]) -> list[ServiceMetric]:
    """
    Per-service sold / revenue / unique customers, highest revenue first.

    A record with a ServiceBreakdown counts once for each service in it,
    each credited with its price net of a proportional share of the
    discount. Other records credit their whole amount to service_id.
    """
    by_service: dict = {}

    for income in incomes:
        if income.breakdown is not None and income.breakdown.service_ids:
            nets = income.breakdown.net_prices_cents()
            for (sid, name, _), net in zip(income.breakdown.entries(), nets):
                entry = _service_entry(by_service, sid, name or "Unknown Service")
                entry.total_sold += 1
                entry.total_revenue_cents += net
                if income.customer_name:
                    entry.customers.add(income.customer_name)
            continue

        entry = _service_entry(by_service, income.service_id, income.service_name or "Unknown Service")
        entry.total_sold += 1
        entry.total_revenue_cents += income.amount_cents
        if income.customer_name:
            entry.customers.add(income.customer_name)

    return sorted(by_service.values(), key=lambda m: (-m.total_revenue_cents, m.name))


def calculate_service_type_data(services: Sequence[ServiceMetric]) -> list[dict]:
    return [{"name": s.name, "value_cents": s.total_revenue_cents} for s in services]


def count_unique_customers(incomes: Iterable[IncomeRow]) -> int:
    return len({i.customer_name for i in incomes if i.customer_name})


def top_performer(records: Iterable, record_type: str):
    """Record with the largest single amount_cents within record_type, or None."""
    best = None
    for record in records:
        if record.type != record_type:
            continue
        if best is None or record.amount_cents > best.amount_cents:
            best = record
    return best


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------

PRODUCT_CSV_HEADER = ["Product Name", "Total Sold", "Total Revenue", "Cost Price", "Profit"]
SERVICE_CSV_HEADER = ["Service Name", "Total Sold", "Total Revenue", "Unique Customers"]


def _dollars(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(int(cents))
    return f"{sign}{cents // 100}.{cents % 100:02d}"


def generate_csv(rows: Sequence, kind: str) -> str:
    """Flat one-column-per-metric CSV of a performance table."""
    if kind not in EXPORT_KINDS:
        raise ReportError(f"Unknown export kind: {kind}", {"allowed": list(EXPORT_KINDS)})

    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    if kind == "product":
        writer.writerow(PRODUCT_CSV_HEADER)
        for m in rows:
            writer.writerow([
                m.name,
                m.total_sold,
                _dollars(m.total_revenue_cents),
                _dollars(m.cost_price_cents),
                _dollars(m.profit_cents),
            ])
    else:
        writer.writerow(SERVICE_CSV_HEADER)
        for m in rows:
            writer.writerow([m.name, m.total_sold, _dollars(m.total_revenue_cents), m.unique_customers])
    return buf.getvalue()


def export_filename(kind: str, today: date) -> str:
    if kind not in EXPORT_KINDS:
        raise ReportError(f"Unknown export kind: {kind}", {"allowed": list(EXPORT_KINDS)})
    return f"spa-{kind}-performance-{today.isoformat()}.csv"
