"""Pydantic v2 models for user notification feeds."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class NotificationType(str, Enum):
    """Known notification kinds. Other strings are accepted as-is."""
    LESSON_COMPLETED = "lesson_completed"
    UNIT_COMPLETED = "unit_completed"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    PAYMENT_REMINDER = "payment_reminder"
    PAYMENT_APPROVED = "payment_approved"
    GROUP_JOINED = "group_joined"
    NEW_LESSON_AVAILABLE = "new_lesson_available"
    QUIZ_PASSED = "quiz_passed"
    SYSTEM = "system"


class NotificationRecord(BaseModel):
    """One entry of a user's notification feed.

    Serialized with camelCase ``createdAt`` so the stored JSON and the payload
    published to live listeners share one shape.
    """

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str
    type: Union[NotificationType, str] = NotificationType.SYSTEM
    title: str = ""
    message: str = ""
    data: Optional[Dict[str, Any]] = None
    read: bool = False
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str) -> "NotificationRecord":
        return cls.model_validate_json(raw)
