# Overview: Bearer session tokens issued on PIN login.

"""
Session Token Management Service

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in storage, and time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 8-hour idle timeout (SESSION_IDLE_TIMEOUT), one warehouse shift
- Revocable on logout or user deactivation

Session bookkeeping commits on its own: it happens before (login) or around
(validation) the request's unit of work, never inside it.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..models import SessionToken, User
from ..storage import get_storage
from ..time_utils import utcnow
from .item_service import new_id

SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=8)


@dataclass
class SessionContext:
    user: User
    session: SessionToken


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Sent to the client, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    SHA-256 of the token for storage.

    WHY SHA-256 not bcrypt: tokens are already high-entropy (unlike PINs).
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(user: User) -> tuple[SessionToken, str]:
    """
    Returns (session_record, plaintext_token).
    Client receives plaintext_token, storage keeps only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()

    storage = get_storage()
    session = storage.add_session_token(SessionToken(
        id=new_id(),
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        is_revoked=False,
    ))
    storage.commit()
    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    storage = get_storage()
    storage.update_session_token(session.id, {
        "is_revoked": True,
        "revoked_at": utcnow(),
        "revoked_reason": reason,
    })
    storage.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    SessionContext for a live token, else None.

    Returns None if:
    - Token is unknown, expired, or revoked
    - Idle for longer than SESSION_IDLE_TIMEOUT (session is revoked)
    - User is gone or deactivated (session is revoked)

    Updates last_used_at on success.
    """
    storage = get_storage()
    session = storage.get_session_token(hash_token(token))
    if session is None or session.is_revoked:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        return None

    user = storage.get_user(session.user_id)
    if user is None or not user.active:
        _revoke(session, "User account deactivated")
        return None

    session = storage.update_session_token(session.id, {"last_used_at": now})
    storage.commit()
    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token is unknown or already revoked."""
    session = get_storage().get_session_token(hash_token(token))
    if session is None or session.is_revoked:
        return False
    _revoke(session, reason)
    return True
