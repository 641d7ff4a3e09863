from __future__ import annotations

from sqlalchemy import false
from sqlalchemy.orm import validates

from ..extensions import db
from ..references import InventoryRef, ProductRef, reference_from_columns, reference_to_columns, reference_to_dict
from ..time_utils import to_utc_z, utcnow
from ..validation import require_choice, require_non_empty
from .enums import NOTIFICATION_TYPES, in_check
from .policies import policy_fk


class Notification(db.Model):
    """
    In-app notification for one user.

    Created as a side effect of stock events (low stock, expiry). After
    creation only `is_read` is expected to change.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.CheckConstraint(in_check("type", NOTIFICATION_TYPES), name="ck_notifications_type"),
        db.Index("notifications_user_id_idx", "user_id"),
        db.Index("notifications_is_read_idx", "is_read"),
        db.Index("notifications_created_at_idx", "created_at"),
        {"sqlite_autoincrement": True},
    )

    # related_id is INTEGER, so only integer-keyed entities can be referenced
    RELATED_KINDS = (ProductRef, InventoryRef)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Uuid, policy_fk("notifications.user_id"), nullable=False)

    type = db.Column(db.String(32), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)

    related_id = db.Column(db.Integer, nullable=True)
    related_type = db.Column(db.String(32), nullable=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False, server_default=false())

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    user = db.relationship("User", back_populates="notifications")

    @validates("type")
    def _validate_type(self, key, value):
        return require_choice(key, value, NOTIFICATION_TYPES)

    @validates("title", "message")
    def _validate_text(self, key, value):
        return require_non_empty(key, value)

    @property
    def related(self):
        return reference_from_columns(self.related_type, self.related_id, field="related")

    @related.setter
    def related(self, ref) -> None:
        self.related_type, self.related_id = reference_to_columns(ref, field="related", allowed=self.RELATED_KINDS)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": str(self.user_id) if self.user_id else None,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "related": reference_to_dict(self.related),
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
