"""Cart arithmetic: subtotals, clamping, discount attribution and totals."""

from spa_pos.pricing import (
    PricedLine,
    allocate_proportionally,
    clamp_discount,
    clamp_quantity,
    compute_totals,
    distribute_discount,
    effective_discount_cents,
    line_discounts,
)


def test_empty_cart_totals_are_zero():
    totals = compute_totals([])
    assert totals.to_dict() == {
        "subtotal_cents": 0,
        "total_discount_cents": 0,
        "total_tip_cents": 0,
        "total_cents": 0,
        "item_count": 0,
    }


def test_totals_with_line_discounts_and_tip():
    lines = [
        PricedLine(unit_price_cents=4800, quantity=2, discount_cents=600),
        PricedLine(unit_price_cents=9000, quantity=1, discount_cents=0, tip_cents=1500),
    ]
    totals = compute_totals(lines)

    assert totals.subtotal_cents == 18600
    assert totals.total_discount_cents == 600
    assert totals.total_tip_cents == 1500
    assert totals.total_cents == 18600 - 600 + 1500
    assert totals.item_count == 3


def test_global_discount_replaces_line_discounts():
    lines = [
        PricedLine(unit_price_cents=1000, quantity=1, discount_cents=900),
        PricedLine(unit_price_cents=3000, quantity=1),
    ]
    assert effective_discount_cents(lines, None) == 900
    assert effective_discount_cents(lines, 400) == 400
    assert compute_totals(lines, 400).total_cents == 3600


def test_global_discount_clamped_to_subtotal():
    lines = [PricedLine(unit_price_cents=1000, quantity=2)]
    totals = compute_totals(lines, 99999)
    assert totals.total_discount_cents == 2000
    assert totals.total_cents == 0


def test_line_discount_never_exceeds_line_subtotal():
    lines = [PricedLine(unit_price_cents=500, quantity=1, discount_cents=800)]
    assert line_discounts(lines, None) == [500]
    assert compute_totals(lines).total_cents == 0


def test_total_never_negative_but_tip_survives_full_discount():
    lines = [PricedLine(unit_price_cents=2000, quantity=1, tip_cents=300)]
    assert compute_totals(lines, 2000).total_cents == 300


def test_clamp_quantity():
    assert clamp_quantity(0) == 1
    assert clamp_quantity(-4) == 1
    assert clamp_quantity(7) == 7
    assert clamp_quantity(7, 5) == 5
    # Zero stock still leaves a one-unit floor
    assert clamp_quantity(3, 0) == 1


def test_clamp_discount():
    assert clamp_discount(-100, 1000) == 0
    assert clamp_discount(250, 1000) == 250
    assert clamp_discount(2500, 1000) == 1000
    assert clamp_discount(250, 0) == 0


def test_allocation_sums_exactly_to_amount():
    shares = allocate_proportionally([9000, 3000], 1000)
    assert shares == [750, 250]

    shares = allocate_proportionally([100, 100, 100], 100)
    assert sum(shares) == 100
    assert sorted(shares) == [33, 33, 34]


def test_leftover_cent_goes_to_largest_remainder():
    # 1/3 and 2/3 of 1 cent floor to 0; the 2/3 remainder wins
    shares = allocate_proportionally([100, 200], 1)
    assert shares == [0, 1]


def test_allocation_with_zero_total_weight():
    assert allocate_proportionally([0, 0], 500) == [0, 0]
    assert allocate_proportionally([], 500) == []


def test_distribute_discount_proportional_to_line_subtotals():
    lines = [
        PricedLine(unit_price_cents=4800, quantity=1),
        PricedLine(unit_price_cents=2400, quantity=2),
    ]
    assert distribute_discount(lines, 960) == [480, 480]
    assert line_discounts(lines, 960) == [480, 480]


def test_allocation_with_equal_weights_never_goes_negative():
    assert allocate_proportionally([1000] * 4, 2) == [1, 1, 0, 0]
    assert allocate_proportionally([1] * 6, 3) == [1, 1, 1, 0, 0, 0]


def test_allocation_shares_stay_within_their_weight():
    weights = [1, 2, 3, 5, 8, 13]
    for amount in range(sum(weights) + 1):
        shares = allocate_proportionally(weights, amount)
        assert sum(shares) == amount
        assert all(0 <= s <= w for s, w in zip(shares, weights))


def test_small_global_discount_over_equal_lines():
    lines = [PricedLine(unit_price_cents=3000) for _ in range(4)]
    assert line_discounts(lines, 2) == [1, 1, 0, 0]
    assert compute_totals(lines, 2).total_cents == 11998
