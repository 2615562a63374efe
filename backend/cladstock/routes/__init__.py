# Overview: Small helpers shared by the API blueprints.

from flask import current_app, jsonify, request

from ..storage import get_storage
from ..time_utils import parse_iso_datetime


def fail(message: str, status: int):
    """Roll back the request's unit of work and answer with {"error": message}."""
    get_storage().rollback()
    return jsonify({"error": message}), status


def unexpected(exc: Exception, what: str):
    get_storage().rollback()
    current_app.logger.exception("%s failed", what)
    return jsonify({"error": f"Unexpected error: {exc}"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def date_range_args():
    """
    (start, end) from ?start=&end= query args.

    A bare date as end covers that whole day. Raises ValueError on bad input.
    """
    start_raw = request.args.get("start")
    end_raw = request.args.get("end")
    start = parse_iso_datetime(start_raw) if start_raw else None
    end = parse_iso_datetime(end_raw) if end_raw else None
    if end is not None and end_raw and len(end_raw.strip()) == 10:
        end = end.replace(hour=23, minute=59, second=59, microsecond=999999)
    return start, end
