"""
Cache-then-generate: exact-match memoization of generation results per user.

Flow for one request:
1. look up the full key tuple (failure -> 500 "DB error (cache check)")
2. hit -> stored result + cached: true + updated_at
3. miss -> generate, then insert-if-absent (failure -> 500 "DB error (insert)")
4. if another request inserted first, its row wins and is returned as cached
"""

import logging
import sqlite3
from typing import Callable

from personaops.db import models
from personaops.errors import PersistenceError

logger = logging.getLogger("personaops.functions.cache")


def _annotate(result, updated_at) -> dict:
    body = dict(result) if isinstance(result, dict) else {"result": result}
    body["cached"] = True
    body["updated_at"] = updated_at
    return body


def cached_generate(table: str, key: dict, generate: Callable[[], dict],
                    function_name: str = None) -> dict:
    """Return the cached result for key, generating and storing it on a miss."""
    user_id = key.get("user_id")
    log_extra = {"user_id": user_id, "function_name": function_name or table}

    try:
        hit = models.find_cached_result(table, key)
    except sqlite3.Error as e:
        logger.error("Cache lookup failed on %s: %s", table, e, extra=log_extra)
        raise PersistenceError("DB error (cache check)", details=str(e)) from e

    if hit:
        logger.info("Cache hit on %s", table, extra=log_extra)
        return _annotate(hit["result"], hit["updated_at"])

    logger.info("Cache miss on %s, generating", table, extra=log_extra)
    result = generate()

    try:
        stored = models.insert_cached_result_if_absent(table, key, result)
    except sqlite3.Error as e:
        logger.error("Cache insert failed on %s: %s", table, e, extra=log_extra)
        raise PersistenceError("DB error (insert)", details=str(e)) from e

    if not stored["inserted"]:
        logger.info("Concurrent insert won on %s; returning stored row", table, extra=log_extra)
        return _annotate(stored["result"], stored["updated_at"])
    return result
