"""
Inventory service tests.

Verifies:
- Restock and adjustment write a Transaction alongside every stock change
- Bulk restock applies increases only: one summary transaction plus a child
  row per restocked product
- Overview figures (value, low stock, last restock)
"""

from datetime import datetime

import pytest

from spa_pos.models import DomainEvent, Product, Transaction
from spa_pos.services import catalog_service, inventory_service
from spa_pos.services.event_service import INVENTORY_ADJUSTED, INVENTORY_RESTOCKED
from spa_pos.services.inventory_service import (
    BULK_RESTOCK_NAME,
    InventoryError,
    ProductNotFound,
    TransactionNotFound,
)
from spa_pos.validation import ValidationError


def test_restock(admin_user, serum, db_session):
    when = datetime(2025, 3, 1, 15, 0)
    tx = inventory_service.record_restock(serum.id, 5, admin_user, occurred_at=when)

    product = db_session.get(Product, serum.id)
    assert product.stock_quantity == 15
    assert product.last_restocked == when
    assert tx.type == "restock"
    assert tx.quantity == 5
    assert tx.price_cents == 9000
    assert tx.user_name == "Spa Admin"
    assert db_session.query(DomainEvent).filter_by(event_type=INVENTORY_RESTOCKED).count() == 1


@pytest.mark.parametrize("quantity", [0, -3, 2.5, "4"])
def test_restock_rejects_bad_quantity(admin_user, serum, quantity):
    with pytest.raises(InventoryError):
        inventory_service.record_restock(serum.id, quantity, admin_user)


def test_restock_unknown_product(admin_user):
    with pytest.raises(ProductNotFound):
        inventory_service.record_restock(999, 1, admin_user)


def test_adjust_to_counted_quantity(admin_user, serum, db_session):
    tx = inventory_service.adjust_inventory(serum.id, 7, admin_user, note="shelf count")

    assert db_session.get(Product, serum.id).stock_quantity == 7
    assert tx.type == "adjustment"
    assert tx.quantity == 3
    assert tx.price_cents == 0
    event = db_session.query(DomainEvent).filter_by(event_type=INVENTORY_ADJUSTED).one()
    assert event.payload["delta"] == -3
    assert event.payload["note"] == "shelf count"


def test_adjust_unchanged_is_noop(admin_user, serum, db_session):
    assert inventory_service.adjust_inventory(serum.id, 10, admin_user) is None
    assert db_session.query(Transaction).count() == 0


def test_adjust_rejects_negative(admin_user, serum):
    with pytest.raises(InventoryError):
        inventory_service.adjust_inventory(serum.id, -1, admin_user)


# =============================================================================
# BULK RESTOCK
# =============================================================================


def test_bulk_restock_applies_increases_only(admin_user, serum, cleanser, back_bar, db_session):
    tx = inventory_service.record_bulk_restock(
        [
            {"product_id": serum.id, "new_quantity": 12},
            {"product_id": cleanser.id, "new_quantity": 1},
            {"product_id": back_bar.id, "new_quantity": "6"},
        ],
        admin_user,
    )

    assert tx.product_id is None
    assert tx.product_name == BULK_RESTOCK_NAME
    assert tx.quantity == 4
    assert tx.price_cents == 2 * 1800 + 2 * 3500

    assert db_session.get(Product, serum.id).stock_quantity == 12
    assert db_session.get(Product, cleanser.id).stock_quantity == 3
    assert db_session.get(Product, back_bar.id).stock_quantity == 6

    children = db_session.query(Transaction).filter_by(parent_transaction_id=tx.id).all()
    assert sorted((t.product_id, t.quantity, t.price_cents) for t in children) == sorted([
        (serum.id, 2, 3600),
        (back_bar.id, 2, 7000),
    ])
    assert sum(t.price_cents for t in children) == tx.price_cents
    assert db_session.query(Transaction).count() == 3


def test_bulk_restock_without_increase(admin_user, serum):
    with pytest.raises(InventoryError, match="no stock increases"):
        inventory_service.record_bulk_restock([{"product_id": serum.id, "new_quantity": 10}], admin_user)


@pytest.mark.parametrize(
    "updates",
    [
        [],
        [{"product_id": 1}],
        [{"product_id": "x", "new_quantity": 2}],
        [{"product_id": 1, "new_quantity": -2}],
    ],
)
def test_bulk_restock_rejects_bad_rows(admin_user, updates):
    with pytest.raises(InventoryError):
        inventory_service.record_bulk_restock(updates, admin_user)


# =============================================================================
# OVERVIEW / HISTORY
# =============================================================================


def test_inventory_overview(admin_user, serum, cleanser, back_bar):
    overview = inventory_service.inventory_overview()
    assert overview["product_count"] == 3
    assert overview["total_inventory_value_cents"] == 10 * 1800 + 3 * 900 + 4 * 3500
    assert [p["name"] for p in overview["low_stock"]] == ["Gentle Foam Cleanser", "Professional Enzyme Peel"]
    assert overview["last_restock_date"] is None

    inventory_service.record_restock(serum.id, 1, admin_user, occurred_at=datetime(2025, 3, 1, 15, 0))
    assert inventory_service.inventory_overview()["last_restock_date"] == "2025-03-01T15:00:00Z"


def test_list_transactions_filters(admin_user, serum, cleanser):
    inventory_service.record_restock(serum.id, 2, admin_user)
    inventory_service.record_restock(cleanser.id, 2, admin_user)
    inventory_service.adjust_inventory(serum.id, 5, admin_user)

    assert inventory_service.list_transactions()["count"] == 3
    assert inventory_service.list_transactions(tx_type="restock")["count"] == 2
    serum_only = inventory_service.list_transactions(product_id=serum.id)
    assert {t["type"] for t in serum_only["items"]} == {"restock", "adjustment"}


def test_restock_details(admin_user, serum, cleanser):
    tx = inventory_service.record_bulk_restock(
        [
            {"product_id": serum.id, "new_quantity": 11},
            {"product_id": cleanser.id, "new_quantity": 6},
        ],
        admin_user,
    )

    details = inventory_service.restock_details(tx.id)
    assert details["restock"]["product_name"] == BULK_RESTOCK_NAME
    assert details["count"] == 2
    assert [(i["product_name"], i["quantity"], i["price_cents"]) for i in details["items"]] == [
        ("Gentle Foam Cleanser", 3, 2700),
        ("Hydrating Serum", 1, 1800),
    ]
    assert {i["parent_transaction_id"] for i in details["items"]} == {tx.id}
    assert details["items"][0]["user_name"] == "Spa Admin"


def test_restock_details_unknown_or_not_restock(admin_user, serum):
    with pytest.raises(TransactionNotFound):
        inventory_service.restock_details(4040)

    adjustment = inventory_service.adjust_inventory(serum.id, 4, admin_user)
    with pytest.raises(TransactionNotFound):
        inventory_service.restock_details(adjustment.id)


def test_history_folds_bulk_restock_children(admin_user, serum, cleanser):
    tx = inventory_service.record_bulk_restock(
        [
            {"product_id": serum.id, "new_quantity": 12},
            {"product_id": cleanser.id, "new_quantity": 5},
        ],
        admin_user,
    )

    listing = inventory_service.list_transactions(tx_type="restock")
    assert [t["id"] for t in listing["items"]] == [tx.id]

    assert inventory_service.list_transactions(tx_type="restock", include_children=True)["count"] == 3

    serum_history = inventory_service.list_transactions(product_id=serum.id)
    assert [(t["quantity"], t["parent_transaction_id"]) for t in serum_history["items"]] == [(2, tx.id)]


def test_stock_only_set_through_inventory_after_create(admin_user, db_session):
    created = catalog_service.create_product(
        patch={"name": "Clay Mask", "sell_price_cents": 3200, "cost_price_cents": 1100, "stock_quantity": 6},
        user=admin_user,
    )
    assert created["stock_quantity"] == 6

    with pytest.raises(ValidationError, match="stock_quantity"):
        catalog_service.update_product(product_id=created["id"], patch={"stock_quantity": 60}, user=admin_user)
    assert db_session.get(Product, created["id"]).stock_quantity == 6
