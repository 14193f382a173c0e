from flask import Blueprint, Response, jsonify, request

from spa_pos.decorators import require_auth, require_admin
from spa_pos.services import reporting_service


metrics_bp = Blueprint("metrics", __name__, url_prefix="/api/metrics")


def _time_range() -> str:
    return request.args.get("range", "monthly")


@metrics_bp.get("/products")
@require_auth
@require_admin
def product_metrics():
    try:
        report = reporting_service.product_dashboard(time_range=_time_range())
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc), "details": exc.details}), 400


@metrics_bp.get("/services")
@require_auth
@require_admin
def service_metrics():
    try:
        report = reporting_service.service_dashboard(time_range=_time_range())
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc), "details": exc.details}), 400


@metrics_bp.get("/export")
@require_auth
@require_admin
def export_metrics():
    """CSV download. Query params: kind=product|service, range=7days|30days|monthly."""
    kind = request.args.get("kind", "product")

    try:
        filename, body = reporting_service.export_csv(kind, time_range=_time_range())
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc), "details": exc.details}), 400

    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
