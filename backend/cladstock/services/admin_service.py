# Overview: Destructive admin operations.

from __future__ import annotations

import logging

from ..storage import get_storage
from . import user_service

logger = logging.getLogger(__name__)


def reset_all_data() -> dict:
    """
    Wipe every entity and recreate the default admin so the install stays usable.

    Without a storage backend nothing is touched and a failure result is returned.
    """
    storage = get_storage()
    if not storage.is_configured:
        return {"success": False, "message": "Database not configured"}

    storage.delete_all()
    user_service.seed_default_user()
    logger.warning("All data reset; default admin recreated")
    return {"success": True, "message": "All data has been reset"}
