# backend/cladstock/routes/system.py
"""
System health and version endpoints.

Health reports which storage backend is active and whether it answers;
"none" is reported as degraded rather than unhealthy so the UI can still load.
"""

import sys
import time

from flask import Blueprint, current_app

from ..storage import get_storage
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_storage_health() -> dict:
    start_time = time.time()
    storage = get_storage()
    try:
        if not storage.is_configured:
            return {
                "status": "degraded",
                "backend": storage.name,
                "warning": "No storage backend configured; writes are disabled",
            }

        item_count = storage.count_items()
        user_count = len(storage.list_users())

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "backend": storage.name,
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "items": item_count,
                "users": user_count,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Storage health check failed")
        return {
            "status": "unhealthy",
            "backend": storage.name,
            "latency_ms": round(elapsed_ms, 2),
            "error": "Storage error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: storage unreachable
    """
    storage_health = check_storage_health()
    http_status = 503 if storage_health["status"] == "unhealthy" else 200

    return {
        "status": storage_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "storage": storage_health,
        },
        "ai_assistant": "configured" if current_app.config.get("ANTHROPIC_API_KEY") else "demo",
    }, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment info: no keys, credentials or paths."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": API_VERSION,
        "environment": env,
        "storage_backend": get_storage().name,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
