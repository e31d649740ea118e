"""Heartbeat-driven online presence.

A user is online while ``presence:{user_id}`` exists; clients must call
``set_user_online`` again before the presence TTL lapses. The ``online_users``
set is refreshed by every heartbeat, so it can keep ids of users whose own
presence key already expired; pass ``verify=True`` to ``get_online_users`` to
filter and prune those.
"""

from typing import Any, Dict, List, Optional

from ephemera.core.config import Settings
from ephemera.core.exceptions import StoreError
from ephemera.core.logging import get_logger
from ephemera.models.notifications import utc_now_iso
from ephemera.services.cache import CacheService, dumps
from ephemera.services.keys import ONLINE_USERS_KEY, presence_key

logger = get_logger(__name__)


class PresenceTracker:
    """Online/offline membership per user."""

    def __init__(self, cache: CacheService, settings: Settings):
        self.cache = cache
        self.store = cache.store
        self.presence_ttl = settings.presence_ttl
        self.online_set_ttl = settings.online_set_ttl

    async def set_user_online(self, user_id: str,
                              metadata: Optional[Dict[str, Any]] = None) -> bool:
        """Heartbeat: write the presence record and refresh set membership."""
        data = {"online": True, "lastSeen": utc_now_iso(), **(metadata or {})}
        try:
            await self.store.pipeline([
                ["SET", presence_key(user_id), dumps(data), "EX", self.presence_ttl],
                ["SADD", ONLINE_USERS_KEY, user_id],
                ["EXPIRE", ONLINE_USERS_KEY, self.online_set_ttl],
            ])
            return True
        except StoreError as e:
            logger.error("Set user online failed", user_id=user_id, error=str(e))
            return False

    async def set_user_offline(self, user_id: str) -> bool:
        """Explicit sign-off, independent of TTL expiry."""
        try:
            await self.store.pipeline([
                ["DEL", presence_key(user_id)],
                ["SREM", ONLINE_USERS_KEY, user_id],
            ])
            return True
        except StoreError as e:
            logger.error("Set user offline failed", user_id=user_id, error=str(e))
            return False

    async def is_user_online(self, user_id: str) -> bool:
        # The per-user key is authoritative, the set may be stale
        return await self.cache.exists(presence_key(user_id))

    async def get_presence(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.cache.get(presence_key(user_id))

    async def get_online_users(self, verify: bool = False) -> List[str]:
        """Members of the online set; with ``verify`` drop ids without a live presence key."""
        try:
            members = await self.store.execute(["SMEMBERS", ONLINE_USERS_KEY]) or []
            if not verify or not members:
                return list(members)

            alive = await self.store.pipeline(
                [["EXISTS", presence_key(user_id)] for user_id in members])
            stale = [u for u, flag in zip(members, alive) if not flag]
            if stale:
                await self.store.execute(["SREM", ONLINE_USERS_KEY, *stale])
                logger.debug("Pruned stale online users", count=len(stale))
            return [u for u, flag in zip(members, alive) if flag]
        except StoreError as e:
            logger.error("Get online users failed", error=str(e))
            return []
