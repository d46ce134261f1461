from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from absence_bot.utils.registry import KeyValueStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "@childssn."


def cache_key(child_id: str) -> str:
    return f"{KEY_PREFIX}{child_id}"


class IdentityCache:
    """Remembers the last submitted personnummer for each child.

    Store failures never reach the caller: reads degrade to ``None`` and
    writes become no-ops.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, child_id: str) -> asyncio.Lock:
        lock = self._locks.get(child_id)
        if lock is None:
            lock = self._locks[child_id] = asyncio.Lock()
        return lock

    async def get(self, child_id: str) -> Optional[str]:
        async with self._lock_for(child_id):
            try:
                value = await self._store.get(cache_key(child_id))
            except Exception as exc:
                logger.warning("Identity cache read failed for child %s: %s", child_id, exc)
                return None
        return value or None

    async def set(self, child_id: str, canonical: str) -> None:
        async with self._lock_for(child_id):
            try:
                await self._store.set(cache_key(child_id), canonical)
            except Exception as exc:
                logger.warning("Identity cache write failed for child %s: %s", child_id, exc)
                return
        logger.debug("Cached identity number for child %s", child_id)


__all__ = ["IdentityCache", "KEY_PREFIX", "cache_key"]
