# Overview: Retry wrapper for read-modify-write operations that can lose a race.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..storage import get_storage

logger = logging.getLogger(__name__)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a storage operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts on Item.version_id). Each failed attempt
    rolls back the whole unit of work before the next one re-reads.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            get_storage().rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning("Concurrent update detected (attempt %d/%d): %s", attempt + 1, attempts, exc)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
