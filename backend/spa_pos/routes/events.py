# Overview: Flask API routes for the change feed; clients poll to learn about new records.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..services import event_service


events_bp = Blueprint("events", __name__, url_prefix="/api/events")


@events_bp.get("")
@require_auth
def list_events_route():
    """
    Events with id > after_id, oldest first.

    Query params:
    - after_id: int (default 0) - last event id the client has seen
    - limit: int (default 100, max 200)
    - type: event type filter (optional), e.g. sale.completed

    The client stores last_event_id from the response and sends it back as
    after_id on the next poll.
    """
    after_id = request.args.get("after_id", 0, type=int)
    limit = request.args.get("limit", 100, type=int)

    events = event_service.list_events(
        after_id=after_id,
        limit=limit,
        event_type=request.args.get("type"),
    )
    last_id = events[-1].id if events else max(after_id, 0)

    return jsonify({
        "items": [e.to_dict() for e in events],
        "count": len(events),
        "last_event_id": last_id,
        "latest_event_id": event_service.latest_event_id(),
    })
