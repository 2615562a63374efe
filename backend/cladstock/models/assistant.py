from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .base import RecordMixin


class AICountLog(RecordMixin, db.Model):
    """Vision estimate next to the count the user actually confirmed."""
    __tablename__ = "ai_count_logs"

    id = db.Column(db.String(64), primary_key=True)
    item_id = db.Column(db.String(64), db.ForeignKey("items.id", ondelete="SET NULL"), nullable=True, index=True)
    image_url = db.Column(db.Text, nullable=False)
    ai_count = db.Column(db.Integer, nullable=False)
    confirmed_count = db.Column(db.Integer, nullable=False)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False)
    user_name = db.Column(db.String(255), nullable=False)
    profile_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("Item", backref=db.backref("ai_count_logs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "image_url": self.image_url,
            "ai_count": self.ai_count,
            "confirmed_count": self.confirmed_count,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "profile_name": self.profile_name,
            "created_at": to_utc_z(self.created_at),
        }


class ChatMessage(RecordMixin, db.Model):
    __tablename__ = "chat_messages"

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(16), nullable=False)
    content = db.Column(db.Text, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "role": self.role,
            "content": self.content,
            "created_at": to_utc_z(self.created_at),
        }
