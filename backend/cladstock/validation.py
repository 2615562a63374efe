from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .catalog import CATEGORIES, COUNT_TYPES, ROLES
from .time_utils import parse_iso_datetime


# Largest unit cost a Numeric(10, 2) column holds
MAX_UNIT_COST = Decimal("99999999.99")

PIN_MIN_LENGTH = 4
PIN_MAX_LENGTH = 8


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - extra_fields: accepted keys that are not columns (e.g. a plain-text pin)
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    extra_fields: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15") and decimals (e.g., "12.5")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        try:
            dec = Decimal(str(value).strip().replace("$", "").replace(",", ""))
        except InvalidOperation:
            raise ValidationError(f"{col.key} must be a number")
        if not dec.is_finite():
            raise ValidationError(f"{col.key} must be a number")
        return dec.quantize(Decimal("0.01"))

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    extra = policy.extra_fields or set()

    for k in payload.keys():
        if k not in policy.writable_fields and k not in extra:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols and k not in extra:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in extra:
            patch[k] = raw
            continue

        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank names are never useful
        if k == "name" and isinstance(val, str) and val == "":
            raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def require_int(payload: dict, key: str, *, minimum: int | None = None, required: bool = True) -> int | None:
    """Pull one integer field out of a request body (not tied to a model column)."""
    if key not in payload or payload[key] is None:
        if required:
            raise ValidationError(f"Missing required field: {key}")
        return None
    value = _coerce_int(key, payload[key])
    if minimum is not None and value < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    return value


def optional_text(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def enforce_rules_item(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "category" in patch and patch["category"] not in CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(CATEGORIES)}")
    for key in ("quantity", "reorder_level"):
        if key in patch and patch[key] is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")
    if "unit_cost" in patch and patch["unit_cost"] is not None:
        if patch["unit_cost"] < 0:
            raise ValidationError("unit_cost must be >= 0")
        if patch["unit_cost"] > MAX_UNIT_COST:
            raise ValidationError(f"unit_cost cannot exceed {MAX_UNIT_COST}")


def enforce_rules_count_type(count_type: Any) -> str:
    if count_type not in COUNT_TYPES:
        raise ValidationError(f"count_type must be one of: {', '.join(COUNT_TYPES)}")
    return count_type


def validate_pin(pin: Any) -> str:
    if not isinstance(pin, (str, int)) or isinstance(pin, bool):
        raise ValidationError("pin must be a string of digits")
    text = str(pin).strip()
    if not text.isdigit():
        raise ValidationError("pin must contain digits only")
    if not PIN_MIN_LENGTH <= len(text) <= PIN_MAX_LENGTH:
        raise ValidationError(f"pin must be {PIN_MIN_LENGTH}-{PIN_MAX_LENGTH} digits")
    return text


def enforce_rules_user(patch: dict) -> None:
    if "role" in patch and patch["role"] not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    if "pin" in patch:
        patch["pin"] = validate_pin(patch["pin"])
