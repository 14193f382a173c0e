from __future__ import annotations

from ..extensions import db
from spa_pos.time_utils import to_utc_z, utcnow


class DomainEvent(db.Model):
    """
    Append-only change feed.

    Written in the same DB transaction as the change it announces, so a
    reader polling by id never sees an event for a rolled-back write.
    """
    __tablename__ = "domain_events"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    # e.g. sale.completed, finance.recorded, inventory.restocked
    event_type = db.Column(db.String(64), nullable=False, index=True)

    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)

    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    payload = db.Column(db.JSON(none_as_null=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_user_id": self.actor_user_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "payload": self.payload,
        }
