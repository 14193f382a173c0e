# Overview: Flask API routes for finance operations; parses input and returns JSON responses.

"""
Finance routes (admin-only).

Income here is recorded directly (walk-in services paid outside the cart);
checkout writes its own income records through the sale dispatcher.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import finance_service
from ..services.finance_service import FinanceError
from ..decorators import require_auth, require_admin
from ..validation import ValidationError, enforce_rules_expense, parse_int
from spa_pos.time_utils import parse_iso_datetime


finance_bp = Blueprint("finance", __name__, url_prefix="/api/finance")


def _optional_date(data: dict):
    raw = data.get("date")
    if not raw:
        return None
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError("date must be an ISO-8601 datetime")


@finance_bp.get("/records")
@require_auth
@require_admin
def list_records_route():
    """
    Query params:
    - type: income | expense (optional)
    - start / end: ISO-8601 datetimes (optional)
    - page / per_page: pagination (optional)
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400

    try:
        result = finance_service.list_records(
            record_type=request.args.get("type"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
            start=start,
            end=end,
        )
    except FinanceError as e:
        return jsonify({"error": str(e), "details": e.details}), 400

    return jsonify(result)


@finance_bp.get("/records/<int:record_id>")
@require_auth
@require_admin
def get_record_route(record_id: int):
    record = finance_service.get_record(record_id)
    if not record:
        return jsonify({"error": "Record not found"}), 404
    return jsonify(record.to_dict())


@finance_bp.post("/expenses")
@require_auth
@require_admin
def record_expense_route():
    """
    Request body:
    {
        "amount_cents": 4500,
        "vendor": "Beauty Supply Co",
        "category": "Supplies",
        "date": "2026-03-01",        // optional, defaults to now
        "description": "Masks"       // optional
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        patch = {
            "amount_cents": parse_int(data.get("amount_cents"), "amount_cents"),
            "vendor": data.get("vendor"),
            "category": data.get("category"),
        }
        enforce_rules_expense(patch)
        date = _optional_date(data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        record = finance_service.record_expense(
            patch["amount_cents"],
            patch["vendor"],
            patch["category"],
            date=date,
            description=data.get("description"),
            user=g.current_user,
        )
    except FinanceError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record expense")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(record.to_dict()), 201


@finance_bp.post("/income")
@require_auth
@require_admin
def record_income_route():
    """
    Request body:
    {
        "customer_name": "Ana",
        "service_ids": [1, 4],
        "payment_method": "card",    // optional, default cash
        "discount_cents": 500,       // optional
        "tip_cents": 1000,           // optional
        "date": "2026-03-01",        // optional
        "description": "..."         // optional
    }
    """
    data = request.get_json(silent=True) or {}

    service_ids = data.get("service_ids")
    if not isinstance(service_ids, list):
        return jsonify({"error": "service_ids must be a list"}), 400

    try:
        ids = [parse_int(sid, "service_ids") for sid in service_ids]
        discount = parse_int(data.get("discount_cents") or 0, "discount_cents")
        tip = parse_int(data.get("tip_cents") or 0, "tip_cents")
        date = _optional_date(data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        record = finance_service.record_income(
            data.get("customer_name"),
            ids,
            date=date,
            payment_method=(data.get("payment_method") or "cash").strip().lower(),
            description=data.get("description"),
            discount_cents=discount,
            tip_cents=tip,
            user=g.current_user,
        )
    except FinanceError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record income")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(record.to_dict()), 201


@finance_bp.delete("/records/<int:record_id>")
@require_auth
@require_admin
def delete_record_route(record_id: int):
    if not finance_service.delete_record(record_id, g.current_user):
        return jsonify({"error": "Record not found"}), 404
    return jsonify({"ok": True}), 200


@finance_bp.get("/summary")
@require_auth
@require_admin
def summary_route():
    """Month-to-date income, expenses, net profit and top earners."""
    return jsonify(finance_service.finance_summary())
