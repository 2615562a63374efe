# Overview: Column-level (de)serialization shared by all models.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Numeric


class RecordMixin:
    """
    Plain-dict round trip over mapped columns.

    to_dict() is the API shape; to_record()/from_record() are the storage shape
    used by the local JSON backend (full-precision timestamps, Decimal as str).
    """

    @classmethod
    def _column_items(cls):
        return [(c.key, c) for c in cls.__mapper__.columns]

    def to_record(self) -> dict[str, Any]:
        record = {}
        for key, col in self._column_items():
            value = getattr(self, key)
            if value is not None and isinstance(col.type, DateTime):
                value = value.isoformat()
            elif value is not None and isinstance(col.type, Numeric):
                value = str(value)
            record[key] = value
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]):
        kwargs = {}
        for key, col in cls._column_items():
            if key not in record:
                continue
            value = record[key]
            if value is not None and isinstance(col.type, DateTime) and isinstance(value, str):
                value = datetime.fromisoformat(value)
            elif value is not None and isinstance(col.type, Numeric):
                value = Decimal(str(value))
            kwargs[key] = value
        return cls(**kwargs)
