from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


NOTIFICATION_TYPES = ("SMS", "EMAIL", "WHATSAPP", "PUSH")
NOTIFICATION_STATUSES = ("PENDING", "SENT", "FAILED")


class Notification(db.Model):
    """Outbound customer message; delivery to a provider is out of scope, status is tracked here."""
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False)
    recipient = db.Column(db.String(255), nullable=False, index=True)
    subject = db.Column(db.String(255), nullable=True)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="PENDING")
    error_message = db.Column(db.String(255), nullable=True)
    sent_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "recipient": self.recipient,
            "subject": self.subject,
            "message": self.message,
            "status": self.status,
            "error_message": self.error_message,
            "sent_at": to_utc_z(self.sent_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
