# Overview: Warehouse users and PIN credentials.

"""
PIN authentication

WHY: Every pull, return and count is attributed to a named person. Crew members
log in on a shared tablet with a short numeric PIN instead of a password.

SECURITY NOTES:
- PINs are hashed with bcrypt; the plaintext is never stored or returned
- Login is by PIN alone, so a PIN must be unique among active users
- Deactivated users cannot log in but keep their history
"""

from __future__ import annotations

import logging
from typing import Any

import bcrypt
from flask import current_app

from ..catalog import ROLE_ADMIN, ROLE_USER
from ..models import User
from ..storage import get_storage
from ..time_utils import utcnow
from ..validation import ValidationError, enforce_rules_user, validate_pin
from .item_service import new_id

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_ID = "admin"
DEFAULT_ADMIN_NAME = "Admin"
DEFAULT_ADMIN_PIN = "1234"


def hash_pin(pin: str) -> str:
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_pin(pin: str, pin_hash: str) -> bool:
    """Timing-safe comparison via bcrypt.checkpw."""
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


def list_users(active_only: bool = False) -> list[User]:
    return get_storage().list_users(active_only=active_only)


def get_user(user_id: str) -> User | None:
    return get_storage().get_user(user_id)


def _pin_taken(pin: str, exclude_user_id: str | None = None) -> bool:
    return any(
        u.id != exclude_user_id and verify_pin(pin, u.pin_hash)
        for u in get_storage().list_users(active_only=True)
    )


def create_user(name: str, pin: str, role: str = ROLE_USER, user_id: str | None = None) -> User:
    """
    Raises:
        ValidationError: blank name, bad role, malformed or duplicate PIN
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    patch = {"role": role, "pin": pin}
    enforce_rules_user(patch)
    if _pin_taken(patch["pin"]):
        raise ValidationError("PIN already in use")

    user = get_storage().add_user(User(
        id=user_id or new_id(),
        name=name,
        pin_hash=hash_pin(patch["pin"]),
        role=patch["role"],
        active=True,
        created_at=utcnow(),
    ))
    logger.info("Created user %s (%s)", user.name, user.role)
    return user


def update_user(user_id: str, changes: dict[str, Any]) -> User | None:
    """
    Apply name/role/active/pin changes. A new PIN is re-hashed.

    Returns None when the user does not exist.
    """
    changes = dict(changes)
    enforce_rules_user(changes)

    if "name" in changes:
        changes["name"] = str(changes["name"] or "").strip()
        if not changes["name"]:
            raise ValidationError("name cannot be blank")
    if "pin" in changes:
        pin = changes.pop("pin")
        if _pin_taken(pin, exclude_user_id=user_id):
            raise ValidationError("PIN already in use")
        changes["pin_hash"] = hash_pin(pin)

    return get_storage().update_user(user_id, changes)


def deactivate_user(user_id: str) -> User | None:
    return get_storage().update_user(user_id, {"active": False})


def validate_user_pin(pin: Any) -> User | None:
    """Active user whose PIN matches, or None."""
    try:
        candidate = validate_pin(pin)
    except ValidationError:
        return None
    for user in get_storage().list_users(active_only=True):
        if verify_pin(candidate, user.pin_hash):
            return user
    return None


def seed_default_user() -> User:
    """
    Ensure someone can log in on a fresh install.

    Creates admin/1234 when there are no users; otherwise returns the first user.
    """
    users = get_storage().list_users()
    if users:
        return users[0]
    logger.warning("No users found; creating default admin (PIN %s)", DEFAULT_ADMIN_PIN)
    return create_user(DEFAULT_ADMIN_NAME, DEFAULT_ADMIN_PIN, ROLE_ADMIN, user_id=DEFAULT_ADMIN_ID)
