"""Per-user notification feeds with read state and live fan-out.

Storage per user:
    notifications:{user_id}         LIST of ids, newest at the head, capped
    notification_items:{user_id}    HASH id -> record JSON

Marking one notification read rewrites only that record's hash field, so two
concurrent marks on different notifications cannot overwrite each other.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ephemera.core.config import Settings
from ephemera.core.exceptions import StoreError
from ephemera.core.logging import get_logger
from ephemera.models.notifications import NotificationRecord
from ephemera.services.cache import CacheService
from ephemera.services.keys import (
    notification_channel,
    notification_items_key,
    notifications_key,
)

logger = get_logger(__name__)


class NotificationStore:
    """Bounded most-recent-first notification feed per user."""

    def __init__(self, cache: CacheService, settings: Settings):
        self.cache = cache
        self.store = cache.store
        self.cap = settings.notification_list_cap
        self.ttl = settings.notification_ttl

    @staticmethod
    def _parse(raw: Optional[str], user_id: str) -> Optional[NotificationRecord]:
        if raw is None:
            return None
        try:
            return NotificationRecord.from_json(raw)
        except ValidationError as e:
            logger.error("Skipping malformed notification", user_id=user_id, error=str(e))
            return None

    async def store_notification(
        self,
        user_id: str,
        record: Union[NotificationRecord, Dict[str, Any]],
    ) -> bool:
        """Push a notification to the head of the user's feed and publish it.

        ``read`` defaults to False and ``createdAt`` to now. Re-storing an
        existing id replaces that record and moves it to the head.
        """
        if not isinstance(record, NotificationRecord):
            try:
                record = NotificationRecord.model_validate(record)
            except ValidationError as e:
                logger.error("Rejected malformed notification", user_id=user_id, error=str(e))
                return False
        ids_key = notifications_key(user_id)
        items_key = notification_items_key(user_id)
        payload = record.to_json()

        try:
            results = await self.store.pipeline([
                ["LREM", ids_key, 0, record.id],
                ["LPUSH", ids_key, record.id],
                ["HSET", items_key, record.id, payload],
                ["LRANGE", ids_key, self.cap, -1],
                ["LTRIM", ids_key, 0, self.cap - 1],
                ["EXPIRE", ids_key, self.ttl],
                ["EXPIRE", items_key, self.ttl],
            ])
        except StoreError as e:
            logger.error("Store notification failed", user_id=user_id,
                         notification_id=record.id, error=str(e))
            return False

        evicted = results[3] or []
        if evicted:
            try:
                await self.store.execute(["HDEL", items_key, *evicted])
            except StoreError as e:
                # Orphaned records are unreachable and expire with the hash
                logger.warning("Failed to drop evicted notifications", user_id=user_id,
                               evicted=len(evicted), error=str(e))

        await self.cache.publish(notification_channel(user_id), payload)
        return True

    async def get_notifications(self, user_id: str, limit: int = 20) -> List[NotificationRecord]:
        """Newest ``limit`` notifications, newest first; [] on failure."""
        if limit <= 0:
            return []
        try:
            ids = await self.store.execute(["LRANGE", notifications_key(user_id), 0, limit - 1])
            if not ids:
                return []
            raw_records = await self.store.execute(
                ["HMGET", notification_items_key(user_id), *ids])
        except StoreError as e:
            logger.error("Get notifications failed", user_id=user_id, error=str(e))
            return []

        records = []
        for raw in raw_records or []:
            parsed = self._parse(raw, user_id)
            if parsed is not None:
                records.append(parsed)
        return records

    async def mark_notification_read(self, user_id: str, notification_id: str) -> bool:
        """Flip ``read`` on one notification. False if it is unknown or the store failed."""
        items_key = notification_items_key(user_id)
        try:
            raw = await self.store.execute(["HGET", items_key, notification_id])
            record = self._parse(raw, user_id)
            if record is None:
                return False
            if not record.read:
                record.read = True
                await self.store.pipeline([
                    ["HSET", items_key, notification_id, record.to_json()],
                    ["EXPIRE", notifications_key(user_id), self.ttl],
                    ["EXPIRE", items_key, self.ttl],
                ])
            return True
        except StoreError as e:
            logger.error("Mark notification read failed", user_id=user_id,
                         notification_id=notification_id, error=str(e))
            return False

    async def clear_notifications(self, user_id: str) -> bool:
        try:
            await self.store.execute(
                ["DEL", notifications_key(user_id), notification_items_key(user_id)])
            return True
        except StoreError as e:
            logger.error("Clear notifications failed", user_id=user_id, error=str(e))
            return False

    async def get_unread_count(self, user_id: str) -> int:
        """Unread notifications currently in the feed; derived on every call."""
        notifications = await self.get_notifications(user_id, self.cap)
        return sum(1 for n in notifications if not n.read)
