# Overview: Service-layer operations for the change feed; append and read domain events.

from __future__ import annotations

from typing import Optional

from ..extensions import db
from ..models import DomainEvent
"""
Change feed invariants

- Append-only. Events are never updated or deleted.
- Events are written inside the same DB transaction as the change they
  announce; the caller commits.
- Readers poll with after_id and receive events in ascending id order.
"""

SALE_COMPLETED = "sale.completed"
SALE_DELETED = "sale.deleted"
TRANSACTION_DELETED = "transaction.deleted"
FINANCE_RECORDED = "finance.recorded"
FINANCE_DELETED = "finance.deleted"
INVENTORY_RESTOCKED = "inventory.restocked"
INVENTORY_ADJUSTED = "inventory.adjusted"
CATALOG_CHANGED = "catalog.changed"

MAX_EVENTS_PER_POLL = 200


def append_event(
    *,
    event_type: str,
    entity_type: str,
    entity_id: int | None = None,
    actor_user_id: int | None = None,
    payload: Optional[dict] = None,
) -> DomainEvent:
    """
    Append one change event to the current session.

    No commit here; flush only so the id is assigned.
    """
    ev = DomainEvent(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def list_events(after_id: int = 0, limit: int = 100, event_type: str | None = None) -> list[DomainEvent]:
    limit = max(1, min(int(limit), MAX_EVENTS_PER_POLL))
    query = db.session.query(DomainEvent).filter(DomainEvent.id > int(after_id or 0))
    if event_type:
        query = query.filter(DomainEvent.event_type == event_type)
    return query.order_by(DomainEvent.id.asc()).limit(limit).all()


def latest_event_id() -> int:
    return db.session.query(db.func.max(DomainEvent.id)).scalar() or 0
