"""Model for persisted security events."""

from __future__ import annotations

import datetime

from famsaveapi import db
from famsaveapi.utils import clock


class SecurityEvent(db.Model):
    """Append-only record of a security-relevant outcome."""

    __tablename__ = "security_event"

    id = db.Column(db.Integer(), primary_key=True, autoincrement=True)
    occurred_at = db.Column(
        db.DateTime(), nullable=False, default=lambda: clock.utcnow(), index=True
    )
    action = db.Column(db.String(50), nullable=False, index=True)
    severity = db.Column(db.String(10), nullable=False, index=True)
    result = db.Column(db.String(10), nullable=False)
    # No foreign key: events outlive the accounts they mention
    actor_id = db.Column(db.Integer(), nullable=True, index=True)
    resource_type = db.Column(db.String(20), nullable=False)
    resource_id = db.Column(db.String(64), nullable=True)
    details = db.Column(db.JSON(), nullable=False, default=dict)
    request_info = db.Column(db.JSON(), nullable=True)

    def __repr__(self):
        return f"<SecurityEvent {self.action!r} {self.severity!r}>"

    @classmethod
    def from_event(cls, event: dict) -> SecurityEvent:
        """Build a row from the dict emitted by ``log_security_event``."""
        timestamp = event.get("timestamp")
        return cls(
            occurred_at=datetime.datetime.fromisoformat(timestamp)
            if timestamp
            else clock.utcnow(),
            action=event["action"],
            severity=event["severity"],
            result=event["result"],
            actor_id=event.get("actor_id"),
            resource_type=event.get("resource_type") or "AUTH",
            resource_id=event.get("resource_id"),
            details=event.get("details") or {},
            request_info=event.get("request_info") or None,
        )

    def serialize(self) -> dict[str, object]:
        """Serialize event data for API responses."""

        return {
            "id": self.id,
            "timestamp": self.occurred_at.isoformat() if self.occurred_at else None,
            "action": self.action,
            "severity": self.severity,
            "result": self.result,
            "actor_id": self.actor_id,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "details": self.details or {},
        }
