from __future__ import annotations

import uuid

from sqlalchemy.orm import validates

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import require_choice, require_non_empty, validate_email
from .append_only import append_only
from .enums import LOGIN_STATUSES, USER_ROLES, in_check
from .policies import policy_fk, policy_relationship_kwargs


class User(db.Model):
    """
    Staff accounts.

    Every sale, stock movement and notification is attributed to a user.
    Deleting a user is blocked (RESTRICT) while they own sales or inventory
    transactions; their notifications and login history go with them.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        db.UniqueConstraint("email", name="uq_users_email"),
        db.CheckConstraint(in_check("role", USER_ROLES), name="ck_users_role"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    username = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(255), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    full_name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    role = db.Column(db.String(32), nullable=False, default="staff")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    login_history = db.relationship(
        "LoginHistory",
        back_populates="user",
        order_by="LoginHistory.login_time.desc()",
        **policy_relationship_kwargs("login_history.user_id"),
    )
    notifications = db.relationship(
        "Notification",
        back_populates="user",
        **policy_relationship_kwargs("notifications.user_id"),
    )

    @validates("username")
    def _validate_username(self, key, value):
        return require_non_empty(key, value)

    @validates("email")
    def _validate_email(self, key, value):
        return validate_email(key, value)

    @validates("role")
    def _validate_role(self, key, value):
        return require_choice(key, value, USER_ROLES)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id) if self.id else None,
            "username": self.username,
            "email": self.email,
            "full_name": self.full_name,
            "phone": self.phone,
            "role": self.role,
            "is_active": self.is_active,
            "last_login": to_utc_z(self.last_login),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


@append_only(allow_delete=True)
class LoginHistory(db.Model):
    """
    One row per authentication attempt.

    user_id is NULL when the attempted username does not exist.
    """
    __tablename__ = "login_history"
    __table_args__ = (
        db.CheckConstraint(in_check("status", LOGIN_STATUSES), name="ck_login_history_status"),
        db.Index("login_history_user_id_idx", "user_id"),
        db.Index("login_history_login_time_idx", "login_time"),
        db.Index("login_history_status_idx", "status"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    user_id = db.Column(db.Uuid, policy_fk("login_history.user_id"), nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.Text, nullable=True)
    device = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="success")
    login_time = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    user = db.relationship("User", back_populates="login_history")

    @validates("status")
    def _validate_status(self, key, value):
        return require_choice(key, value, LOGIN_STATUSES)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id) if self.id else None,
            "user_id": str(self.user_id) if self.user_id else None,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "device": self.device,
            "status": self.status,
            "login_time": to_utc_z(self.login_time),
        }
