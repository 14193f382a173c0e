# Overview: Request payload validation against model columns, plus money and enum rules.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, String, Text

from spa_pos.time_utils import parse_iso_datetime

# $9,999,999.99 keeps every stored amount well inside a 32-bit column
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate service name)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a client may write for one model.

    writable_fields is the allowlist; anything else in a payload is
    rejected. required_on_create only applies to full (non-partial)
    payloads.
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def _strict_int(key: str, value: Any) -> int:
    """Accept ints and plain digit strings; never floats, bools or 1e3."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    raise ValidationError(f"{key} must be an integer")


def _to_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be an ISO-8601 datetime")


def _coerce(col, value: Any):
    """Normalize one non-null value to its column type."""
    coltype = col.type
    if isinstance(coltype, Integer):
        return _strict_int(col.key, value)
    if isinstance(coltype, Boolean):
        return value if isinstance(value, bool) else bool(value)
    if isinstance(coltype, DateTime):
        return _to_datetime(col.key, value)
    if isinstance(coltype, (String, Text)):
        text = str(value).strip()
        if not text and not col.nullable:
            raise ValidationError(f"{col.key} cannot be blank")
        length = getattr(coltype, "length", None)
        if length and len(text) > length:
            raise ValidationError(f"{col.key} exceeds max length {length}")
        return text
    return value


def validate_payload(*, model, payload: dict, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Check a JSON body against model columns and policy.

    Returns a patch dict of coerced values. partial=True validates only
    the keys present (update); partial=False also enforces
    required_on_create (create).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(policy.required_on_create - payload.keys())
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}

    for key, raw in payload.items():
        if key not in policy.writable_fields or key not in columns:
            raise ValidationError(f"Field not allowed: {key}")
        col = columns[key]
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _coerce(col, raw)

    return patch


PAYMENT_METHODS = (
    "cash", "card", "venmo", "zelle", "cashapp",
    "paypal", "applepay", "googlepay", "other",
)

EXPENSE_CATEGORIES = (
    "Supplies", "Equipment", "Marketing", "Rent", "Utilities",
    "Insurance", "Salaries", "Training", "Maintenance", "Other",
)


def _check_cents(patch: dict, key: str, *, allow_zero: bool = True) -> None:
    if key not in patch or patch[key] is None:
        return
    value = patch[key]
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{key} must be {'>= 0' if allow_zero else '> 0'}")
    if value > MAX_PRICE_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")


def enforce_rules_product(patch: dict) -> None:
    """Money and count bounds the column types cannot express."""
    _check_cents(patch, "cost_price_cents")
    _check_cents(patch, "sell_price_cents")

    for key in ("stock_quantity", "low_stock_threshold"):
        if key in patch and patch[key] is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")


def enforce_rules_service(patch: dict) -> None:
    _check_cents(patch, "price_cents")


def enforce_rules_expense(patch: dict) -> None:
    if patch.get("amount_cents") is None:
        raise ValidationError("amount_cents is required")
    _check_cents(patch, "amount_cents", allow_zero=False)
    if not (patch.get("vendor") or "").strip():
        raise ValidationError("vendor is required")
    category = patch.get("category")
    if category not in EXPENSE_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(EXPENSE_CATEGORIES)}")


def require_payment_method(payment_method: str | None) -> str:
    """Normalize a payment method or raise ValidationError."""
    method = (payment_method or "").strip().lower()
    if not method:
        raise ValidationError("payment_method is required")
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    return method


def parse_int(value: Any, name: str) -> int:
    """Strict integer for values that do not map to a column (ids, quantities, cents)."""
    return _strict_int(name, value)
