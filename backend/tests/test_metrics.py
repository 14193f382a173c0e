"""Metric reducers over plain rows (no database)."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from spa_pos.finance_category import ServiceBreakdown
from spa_pos.services import metrics
from spa_pos.services.metrics import (
    IncomeRow,
    ProductRow,
    ReportError,
    SaleRow,
    TransactionRow,
)

NY = ZoneInfo("America/New_York")
# 2:00 PM EDT on Saturday Mar 15, 2025
NOW = datetime(2025, 3, 15, 18, 0)

PRODUCTS = [
    ProductRow(id=1, name="Hydrating Serum", category="Serums", cost_price_cents=1800),
    ProductRow(id=2, name="Gentle Foam Cleanser", category="Cleansers", cost_price_cents=900),
    ProductRow(id=3, name="Enzyme Peel", category="Back Bar", cost_price_cents=3500, for_sale=False),
]


def _tx(product_id, quantity, price_cents, tx_type="sale", when=NOW - timedelta(hours=1)):
    return TransactionRow(product_id=product_id, quantity=quantity, price_cents=price_cents, type=tx_type, date=when)


@pytest.fixture
def transactions():
    return [
        _tx(1, 2, 9600),
        _tx(2, 1, 2400),
        _tx(3, 1, 0),
        _tx(1, 12, 21600, tx_type="restock"),
    ]


@pytest.fixture
def incomes():
    breakdown = ServiceBreakdown(
        service_ids=[1, 2],
        service_names=["Signature Facial", "Swedish Massage"],
        service_prices_cents=[9000, 3000],
        discount_cents=1000,
        tip_cents=500,
    )
    return [
        IncomeRow(id=1, amount_cents=9000, date=NOW, service_id=1, service_name="Signature Facial", customer_name="Ana"),
        IncomeRow(id=2, amount_cents=11500, date=NOW, service_id=1, customer_name="Beth", breakdown=breakdown),
        IncomeRow(id=3, amount_cents=3000, date=NOW, service_id=2, service_name="Swedish Massage", customer_name="Ana"),
    ]


def test_date_ranges_follow_local_calendar():
    ranges = metrics.date_ranges(NOW, NY)

    assert ranges.start_of_today == datetime(2025, 3, 15, 4, 0)
    assert ranges.start_of_yesterday == datetime(2025, 3, 14, 4, 0)
    assert ranges.end_of_yesterday < ranges.start_of_today
    # Mar 1 is before the DST switch
    assert ranges.start_of_month == datetime(2025, 3, 1, 5, 0)
    assert ranges.range_start("7days") == NOW - timedelta(days=7)
    assert ranges.range_start("30days") == NOW - timedelta(days=30)
    assert ranges.range_start("monthly") == ranges.start_of_month


def test_unknown_time_range_rejected():
    with pytest.raises(ReportError):
        metrics.date_ranges(NOW, NY).range_start("yearly")


def test_filters(transactions):
    assert len(metrics.filter_by_type(transactions, "restock")) == 1

    old = _tx(1, 1, 4800, when=NOW - timedelta(days=10))
    recent = metrics.filter_by_date_range(transactions + [old], NOW - timedelta(days=7))
    assert old not in recent
    assert len(recent) == 4

    ranges = metrics.date_ranges(NOW, NY)
    yesterday_tx = _tx(1, 1, 4800, when=datetime(2025, 3, 14, 20, 0))
    in_yesterday = metrics.filter_by_day_range(
        transactions + [yesterday_tx], ranges.start_of_yesterday, ranges.end_of_yesterday
    )
    assert in_yesterday == [yesterday_tx]


def test_sellable_sales_drop_internal_products_and_other_types(transactions):
    sales = metrics.sellable_sales(transactions, PRODUCTS)
    assert [t.product_id for t in sales] == [1, 2]


def test_product_performance_sorted_by_profit(transactions):
    sales = metrics.sellable_sales(transactions, PRODUCTS)
    performance = metrics.calculate_product_performance(sales, PRODUCTS)

    assert [m.to_dict() for m in performance] == [
        {
            "id": 1,
            "name": "Hydrating Serum",
            "total_sold": 2,
            "total_revenue_cents": 9600,
            "cost_price_cents": 1800,
            "profit_cents": 6000,
        },
        {
            "id": 2,
            "name": "Gentle Foam Cleanser",
            "total_sold": 1,
            "total_revenue_cents": 2400,
            "cost_price_cents": 900,
            "profit_cents": 1500,
        },
    ]


def test_total_metrics(transactions):
    sales = metrics.sellable_sales(transactions, PRODUCTS)
    totals = metrics.calculate_total_metrics(sales, PRODUCTS)
    assert totals.to_dict() == {"revenue_cents": 12000, "items_sold": 3, "profit_cents": 7500}


def test_total_metrics_skip_profit_for_unknown_product():
    totals = metrics.calculate_total_metrics([_tx(None, 1, 1000)], PRODUCTS)
    assert totals.revenue_cents == 1000
    assert totals.profit_cents == 0


def test_product_categories(transactions):
    sales = metrics.sellable_sales(transactions, PRODUCTS)
    assert metrics.calculate_product_categories(sales, PRODUCTS) == [
        {"name": "Serums", "value_cents": 9600},
        {"name": "Cleansers", "value_cents": 2400},
    ]


def test_sales_series_grouped_by_local_day():
    ranges = metrics.date_ranges(NOW, NY)
    sales = [
        SaleRow(date=datetime(2025, 3, 14, 20, 0), total_cents=1000),
        # 10 PM local on Mar 14
        SaleRow(date=datetime(2025, 3, 15, 2, 0), total_cents=2000),
        SaleRow(date=datetime(2025, 3, 15, 15, 0), total_cents=4000),
        # Last month, outside "monthly"
        SaleRow(date=datetime(2025, 2, 27, 15, 0), total_cents=9999),
    ]
    assert metrics.calculate_sales_series(sales, "monthly", ranges, NY) == [
        {"date": "2025-03-14", "revenue_cents": 3000},
        {"date": "2025-03-15", "revenue_cents": 4000},
    ]


def test_services_data_splits_breakdowns(incomes):
    services = metrics.calculate_services_data(incomes)

    assert [s.to_dict() for s in services] == [
        {"id": 1, "name": "Signature Facial", "total_sold": 2, "total_revenue_cents": 17250, "unique_customers": 2},
        {"id": 2, "name": "Swedish Massage", "total_sold": 2, "total_revenue_cents": 5750, "unique_customers": 2},
    ]
    assert metrics.calculate_service_type_data(services) == [
        {"name": "Signature Facial", "value_cents": 17250},
        {"name": "Swedish Massage", "value_cents": 5750},
    ]


def test_unique_customers_and_top_performer(incomes):
    assert metrics.count_unique_customers(incomes) == 2
    assert metrics.top_performer(incomes, "income").id == 2
    assert metrics.top_performer(incomes, "expense") is None


def test_product_csv(transactions):
    sales = metrics.sellable_sales(transactions, PRODUCTS)
    rows = metrics.calculate_product_performance(sales, PRODUCTS)

    assert metrics.generate_csv(rows, "product") == (
        "Product Name,Total Sold,Total Revenue,Cost Price,Profit\n"
        "Hydrating Serum,2,96.00,18.00,60.00\n"
        "Gentle Foam Cleanser,1,24.00,9.00,15.00\n"
    )


def test_service_csv_quotes_commas():
    rows = [metrics.ServiceMetric(id=1, name="Facial, Deluxe", total_sold=1, total_revenue_cents=12345, customers={"Ana"})]
    assert metrics.generate_csv(rows, "service") == (
        "Service Name,Total Sold,Total Revenue,Unique Customers\n"
        '"Facial, Deluxe",1,123.45,1\n'
    )


def test_export_filename():
    assert metrics.export_filename("service", date(2025, 3, 15)) == "spa-service-performance-2025-03-15.csv"
    with pytest.raises(ReportError):
        metrics.export_filename("inventory", date(2025, 3, 15))
