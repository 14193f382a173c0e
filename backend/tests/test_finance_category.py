import json

import pytest

from spa_pos.finance_category import PlainNote, ServiceBreakdown, parse_category


def test_plain_category_is_a_note():
    assert parse_category("Supplies") == PlainNote("Supplies")
    assert parse_category(None) is None
    assert parse_category("") is None


def test_breakdown_column_wins_over_category_text():
    stored = {
        "service_ids": [1, 2],
        "service_names": ["Signature Facial", "Swedish Massage"],
        "service_prices_cents": [9000, 3000],
        "discount_cents": 1000,
        "tip_cents": 500,
    }
    value = parse_category("ignored", stored)

    assert isinstance(value, ServiceBreakdown)
    assert value.original_total_cents == 12000
    assert value.entries() == [(1, "Signature Facial", 9000), (2, "Swedish Massage", 3000)]
    assert ServiceBreakdown.from_json(value.to_json()) == value


def test_legacy_json_category_in_dollars():
    legacy = json.dumps({
        "serviceIds": ["a", "b"],
        "serviceNames": ["Brow Wax"],
        "servicePrices": [22, 35.5],
        "discount": 5,
        "tip": 2.25,
    })
    value = parse_category(legacy)

    assert isinstance(value, ServiceBreakdown)
    assert value.service_ids == ["a", "b"]
    # Missing names are padded
    assert value.service_names == ["Brow Wax", "Unknown Service"]
    assert value.service_prices_cents == [2200, 3550]
    assert value.discount_cents == 500
    assert value.tip_cents == 225


def test_malformed_json_falls_back_to_note():
    assert parse_category("{not json") == PlainNote("{not json")
    assert parse_category('{"foo": 1}') == PlainNote('{"foo": 1}')


def test_net_prices_split_discount_proportionally():
    breakdown = ServiceBreakdown(
        service_ids=[1, 2],
        service_names=["Signature Facial", "Swedish Massage"],
        service_prices_cents=[9000, 3000],
        discount_cents=1000,
    )
    assert breakdown.net_prices_cents() == [8250, 2750]
    assert sum(breakdown.net_prices_cents()) == 12000 - 1000


def test_net_prices_never_exceed_list_price():
    breakdown = ServiceBreakdown(
        service_ids=[1, 2, 3, 4],
        service_names=["Brow", "Lip", "Chin", "Lash Tint"],
        service_prices_cents=[1000] * 4,
        discount_cents=2,
    )
    nets = breakdown.net_prices_cents()
    assert nets == [999, 999, 1000, 1000]
    assert sum(nets) == 4000 - 2


def test_mismatched_breakdown_lists_rejected():
    with pytest.raises(ValueError):
        ServiceBreakdown(service_ids=[1], service_names=[], service_prices_cents=[100])


def test_to_dict_is_tagged():
    assert PlainNote("Rent").to_dict() == {"kind": "note", "text": "Rent"}
    data = ServiceBreakdown(service_ids=[1], service_names=["A"], service_prices_cents=[100]).to_dict()
    assert data["kind"] == "service_breakdown"
    assert data["original_total_cents"] == 100
