"""Environment-driven configuration with Pydantic v2."""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings for the ephemeral-state layer, driven by environment variables."""

    # Store REST endpoint (both required, absence disables the layer)
    upstash_redis_rest_url: Optional[str] = Field(default=None)
    upstash_redis_rest_token: Optional[str] = Field(default=None)
    store_timeout: float = Field(default=5.0, gt=0, le=120)

    # Cache
    cache_ttl: int = Field(default=30, ge=1)  # medium tier
    local_cache_max_entries: int = Field(default=500, ge=1)

    # Notifications
    notification_list_cap: int = Field(default=50, ge=1, le=1000)
    notification_ttl: int = Field(default=604800, ge=60)  # 7 days

    # Presence
    presence_ttl: int = Field(default=120, ge=10)
    online_set_ttl: int = Field(default=300, ge=10)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator("upstash_redis_rest_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normalize the endpoint so '/pipeline' can be appended."""
        if v:
            return v.rstrip("/")
        return v

    @property
    def store_configured(self) -> bool:
        """Both endpoint URL and bearer token are present."""
        return bool(self.upstash_redis_rest_url) and bool(self.upstash_redis_rest_token)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }
