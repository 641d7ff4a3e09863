# Overview: Service-layer operations for auth; password hashing, user creation and login auditing.

"""
Authentication service

Every action must be attributable, so every login attempt leaves a
LoginHistory row (success or failed), including attempts for usernames
that do not exist (user_id NULL).

Passwords are bcrypt hashed; the cost factor comes from BCRYPT_ROUNDS
(12 in production, lowered in tests).
"""

from __future__ import annotations

import re
import uuid

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import LoginHistory, User
from ..models.enums import USER_ROLES
from ..time_utils import utcnow
from ..validation import require_choice


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit
    """
    if password is None or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt-hash with the configured cost factor."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str | None) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    password: str,
    *,
    email: str | None = None,
    full_name: str | None = None,
    phone: str | None = None,
    role: str = "staff",
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValueError: username or email already taken
        PasswordValidationError: weak password
        ValidationError: bad role / email / empty username
    """
    require_choice("role", role, USER_ROLES)

    conditions = [User.username == username]
    if email:
        conditions.append(User.email == email)
    existing = db.session.query(User).filter(db.or_(*conditions)).first()
    if existing:
        raise ValueError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        phone=phone,
        role=role,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise

    current_app.logger.info("Created user %s (%s)", user.username, user.role)
    return user


def detect_device(user_agent: str | None) -> str | None:
    """
    Coarse device label from a User-Agent header.

    Falls back to the trailing product token ("Safari/537.36") when the
    platform is not recognised.
    """
    if not user_agent:
        return None
    ua = user_agent.lower()
    if "ipad" in ua or "tablet" in ua:
        return "tablet"
    if "mobile" in ua or "iphone" in ua or "android" in ua:
        return "mobile"
    if "windows" in ua or "macintosh" in ua or "x11" in ua or "linux" in ua:
        return "desktop"
    tail = user_agent.split(") ")[-1].strip()
    return tail[:64] or None


def _record_attempt(
    user: User | None,
    status: str,
    ip_address: str | None,
    user_agent: str | None,
) -> LoginHistory:
    entry = LoginHistory(
        user_id=user.id if user else None,
        ip_address=ip_address,
        user_agent=user_agent,
        device=detect_device(user_agent),
        status=status,
    )
    db.session.add(entry)
    return entry


def authenticate(
    username: str,
    password: str,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> User | None:
    """
    Check credentials and audit the attempt.

    Returns the User on success (last_login updated), None otherwise.
    Inactive users fail like a wrong password.
    """
    user = db.session.query(User).filter(User.username == username).first()

    if user is not None and user.is_active and verify_password(password, user.password_hash):
        user.last_login = utcnow()
        _record_attempt(user, "success", ip_address, user_agent)
        db.session.commit()
        return user

    _record_attempt(user, "failed", ip_address, user_agent)
    db.session.commit()
    current_app.logger.warning("Failed login for %r from %s", username, ip_address or "unknown address")
    return None


def login_history_for(user_id: uuid.UUID, *, limit: int = 50) -> list[LoginHistory]:
    return (
        db.session.query(LoginHistory)
        .filter(LoginHistory.user_id == user_id)
        .order_by(LoginHistory.login_time.desc())
        .limit(limit)
        .all()
    )
