# Overview: Pure cart arithmetic (line subtotals, discount clamping and distribution, totals).

"""
Cart pricing rules.

Every function here is pure and works on integer cents. A "line" is any
object exposing unit_price_cents, quantity, discount_cents and tip_cents
(CartLine rows, or PricedLine for callers that have no ORM objects).

Invariants:
- total = max(0, subtotal - total_discount + total_tip)
- a discount never exceeds the subtotal it is applied against
- distributed discounts always add up to the discount being distributed
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence


@dataclass(frozen=True)
class PricedLine:
    unit_price_cents: int
    quantity: int = 1
    discount_cents: int = 0
    tip_cents: int = 0


@dataclass(frozen=True)
class CartTotals:
    subtotal_cents: int = 0
    total_discount_cents: int = 0
    total_tip_cents: int = 0
    total_cents: int = 0
    item_count: int = 0

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "total_discount_cents": self.total_discount_cents,
            "total_tip_cents": self.total_tip_cents,
            "total_cents": self.total_cents,
            "item_count": self.item_count,
        }


def line_subtotal_cents(line) -> int:
    return int(line.unit_price_cents) * int(line.quantity)


def subtotal_cents(lines: Iterable) -> int:
    return sum(line_subtotal_cents(line) for line in lines)


def clamp_quantity(quantity: int, max_quantity: Optional[int] = None) -> int:
    """Clamp to [1, max_quantity]; max_quantity None means unbounded."""
    quantity = max(1, int(quantity))
    if max_quantity is not None:
        quantity = min(quantity, max(1, int(max_quantity)))
    return quantity


def clamp_discount(discount_cents: int, ceiling_cents: int) -> int:
    """Clamp to [0, ceiling]. A non-positive ceiling forces zero."""
    if ceiling_cents <= 0:
        return 0
    return max(0, min(int(discount_cents), int(ceiling_cents)))


def allocate_proportionally(weights_cents: Sequence[int], amount_cents: int) -> list[int]:
    """
    Split amount_cents across weights in proportion to each weight.

    Largest-remainder allocation: every share starts at its floor, then the
    cents left over go one at a time to the largest fractional remainders
    (ties to the larger weight, then the earlier position). Shares sum
    exactly to amount_cents and each stays within [0, weight] whenever
    amount_cents <= sum(weights). A zero total weight gives zeros.
    """
    weights = [max(0, int(w)) for w in weights_cents]
    total = sum(weights)
    if total <= 0 or not weights:
        return [0 for _ in weights]

    amount = int(amount_cents)
    shares = []
    remainders = []
    for w in weights:
        share, rem = divmod(amount * w, total)
        shares.append(share)
        remainders.append(rem)

    leftover = amount - sum(shares)
    order = sorted(range(len(weights)), key=lambda i: (-remainders[i], -weights[i], i))
    for i in order[:leftover]:
        shares[i] += 1
    return shares


def distribute_discount(lines: Sequence, discount_cents: int) -> list[int]:
    """Attribute a cart-wide discount to each line by its share of the subtotal."""
    subtotals = [line_subtotal_cents(line) for line in lines]
    discount = clamp_discount(discount_cents, sum(subtotals))
    return allocate_proportionally(subtotals, discount)


def effective_discount_cents(lines: Sequence, global_discount_cents: Optional[int]) -> int:
    """
    Discount applied to the whole cart.

    A global discount, when set, replaces the per-line discounts.
    """
    subtotal = subtotal_cents(lines)
    if global_discount_cents is not None:
        return clamp_discount(global_discount_cents, subtotal)
    per_line = sum(
        clamp_discount(line.discount_cents or 0, line_subtotal_cents(line)) for line in lines
    )
    return clamp_discount(per_line, subtotal)


def line_discounts(lines: Sequence, global_discount_cents: Optional[int]) -> list[int]:
    """Discount attributed to each line, in line order."""
    if global_discount_cents is not None:
        return distribute_discount(lines, global_discount_cents)
    return [clamp_discount(line.discount_cents or 0, line_subtotal_cents(line)) for line in lines]


def compute_totals(lines: Sequence, global_discount_cents: Optional[int] = None) -> CartTotals:
    lines = list(lines)
    if not lines:
        return CartTotals()

    subtotal = subtotal_cents(lines)
    discount = effective_discount_cents(lines, global_discount_cents)
    tip = sum(max(0, int(getattr(line, "tip_cents", 0) or 0)) for line in lines)
    return CartTotals(
        subtotal_cents=subtotal,
        total_discount_cents=discount,
        total_tip_cents=tip,
        total_cents=max(0, subtotal - discount + tip),
        item_count=sum(int(line.quantity) for line in lines),
    )
