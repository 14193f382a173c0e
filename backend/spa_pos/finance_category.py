# Overview: Tagged category value for finance records (plain note vs service breakdown).

"""
A finance record's category is one of two shapes:

- PlainNote: free text such as an expense category ("Supplies") or a
  single-service income label.
- ServiceBreakdown: the per-service split of a multi-service or discounted
  income record, needed to attribute revenue back to individual services.

PlainNote lives in finance_records.category, ServiceBreakdown in the
finance_records.service_breakdown JSON column. Older rows embedded the
breakdown as JSON text inside category with dollar amounts; parse_category
still reads those.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union

from .pricing import allocate_proportionally


@dataclass(frozen=True)
class PlainNote:
    text: str

    kind = "note"

    def to_dict(self) -> dict:
        return {"kind": self.kind, "text": self.text}


@dataclass(frozen=True)
class ServiceBreakdown:
    service_ids: list = field(default_factory=list)
    service_names: list[str] = field(default_factory=list)
    service_prices_cents: list[int] = field(default_factory=list)
    discount_cents: int = 0
    tip_cents: int = 0

    kind = "service_breakdown"

    def __post_init__(self):
        if not (len(self.service_ids) == len(self.service_names) == len(self.service_prices_cents)):
            raise ValueError("service breakdown lists must have equal length")

    @property
    def original_total_cents(self) -> int:
        return sum(self.service_prices_cents)

    def entries(self) -> list[tuple[Any, str, int]]:
        return list(zip(self.service_ids, self.service_names, self.service_prices_cents))

    def net_prices_cents(self) -> list[int]:
        """
        Each service's price after its proportional share of the discount.

        Shares come from largest-remainder allocation, so each stays within
        its service price and together they add up to the discount.
        """
        shares = allocate_proportionally(self.service_prices_cents, self.discount_cents)
        return [max(0, price - share) for price, share in zip(self.service_prices_cents, shares)]

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "service_ids": list(self.service_ids),
            "service_names": list(self.service_names),
            "service_prices_cents": list(self.service_prices_cents),
            "discount_cents": self.discount_cents,
            "tip_cents": self.tip_cents,
            "original_total_cents": self.original_total_cents,
        }

    def to_json(self) -> dict:
        """Storage shape for the service_breakdown JSON column."""
        data = self.to_dict()
        data.pop("kind")
        data.pop("original_total_cents")
        return data

    @classmethod
    def from_json(cls, data: dict) -> "ServiceBreakdown":
        return cls(
            service_ids=list(data.get("service_ids") or []),
            service_names=list(data.get("service_names") or []),
            service_prices_cents=[int(p) for p in data.get("service_prices_cents") or []],
            discount_cents=int(data.get("discount_cents") or 0),
            tip_cents=int(data.get("tip_cents") or 0),
        )


Category = Union[PlainNote, ServiceBreakdown]


def _dollars_to_cents(value) -> int:
    return int(round(float(value or 0) * 100))


def _parse_legacy_json(text: str) -> ServiceBreakdown | None:
    stripped = text.strip()
    if not stripped.startswith("{"):
        return None
    try:
        data = json.loads(stripped)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None

    ids = data.get("serviceIds")
    names = data.get("serviceNames")
    prices = data.get("servicePrices")
    if not (isinstance(ids, list) and isinstance(names, list) and isinstance(prices, list)):
        return None

    count = len(ids)
    names = (list(names) + ["Unknown Service"] * count)[:count]
    prices = (list(prices) + [0] * count)[:count]
    try:
        return ServiceBreakdown(
            service_ids=list(ids),
            service_names=[str(n) for n in names],
            service_prices_cents=[_dollars_to_cents(p) for p in prices],
            discount_cents=_dollars_to_cents(data.get("discount")),
            tip_cents=_dollars_to_cents(data.get("tip")),
        )
    except (TypeError, ValueError):
        return None


def parse_category(category: str | None, breakdown: dict | None = None) -> Category | None:
    """Resolve the stored columns of a finance record into its tagged category."""
    if breakdown:
        return ServiceBreakdown.from_json(breakdown)
    if not category:
        return None
    legacy = _parse_legacy_json(category)
    if legacy is not None:
        return legacy
    return PlainNote(category)
