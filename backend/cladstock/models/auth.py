from __future__ import annotations

from ..extensions import db
from ..catalog import ROLE_USER
from ..time_utils import to_utc_z
from .base import RecordMixin


class User(RecordMixin, db.Model):
    """
    Warehouse user. Logs in with a short numeric PIN.

    WHY: Every pull, return and count is attributed to a person; no shared logins.
    The PIN is stored as a bcrypt hash and never serialized.
    """
    __tablename__ = "users"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    pin_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)
    active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "active": self.active,
            "created_at": to_utc_z(self.created_at),
        }


class SessionToken(RecordMixin, db.Model):
    """
    Bearer session for a PIN login.

    Only the sha256 of the token is stored; the plaintext goes to the client once.
    """
    __tablename__ = "session_tokens"

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)
