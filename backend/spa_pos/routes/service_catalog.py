# Overview: Flask API routes for the spa service catalog; parses input and returns JSON responses.

from flask import Blueprint, request, g, jsonify

from ..services import catalog_service
from ..models import Service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_service,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_admin

SERVICE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price_cents", "active"},
    required_on_create={"name", "price_cents"},
)

service_catalog_bp = Blueprint("service_catalog", __name__, url_prefix="/api/service-catalog")


@service_catalog_bp.get("")
@require_auth
def list_services():
    """
    List services.

    Query params:
    - include_inactive: bool (default true). The cart passes false.
    """
    include_inactive = request.args.get("include_inactive", "true").lower() == "true"
    services = [s.to_dict() for s in catalog_service.list_services(include_inactive=include_inactive)]
    return jsonify({"items": services, "count": len(services)})


@service_catalog_bp.get("/<int:service_id>")
@require_auth
def get_service(service_id: int):
    service = catalog_service.get_service(service_id)
    if not service:
        return jsonify({"error": "Service not found"}), 404
    return jsonify(service.to_dict())


@service_catalog_bp.post("")
@require_auth
@require_admin
def create_service_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=False)
        enforce_rules_service(patch)
        created = catalog_service.create_service(patch=patch, user=g.current_user)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(created), 201


@service_catalog_bp.put("/<int:service_id>")
@require_auth
@require_admin
def update_service_route(service_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=True)
        enforce_rules_service(patch)
        updated = catalog_service.update_service(service_id=service_id, patch=patch, user=g.current_user)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    if not updated:
        return jsonify({"error": "Service not found"}), 404

    return jsonify(updated), 200


@service_catalog_bp.delete("/<int:service_id>")
@require_auth
@require_admin
def delete_service_route(service_id: int):
    """Delete a service, or deactivate it when income records reference it."""
    outcome = catalog_service.delete_service(service_id=service_id, user=g.current_user)
    if outcome is None:
        return jsonify({"error": "Service not found"}), 404

    return jsonify({"ok": True, "outcome": outcome}), 200
