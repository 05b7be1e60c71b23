"""Configuration model for ytchat."""

from typing import Optional

from pydantic import BaseModel, Field


class Config(BaseModel):
    """Configuration model."""

    # YouTube Data API credentials
    api_key: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    # OAuth settings
    oauth_port: int = Field(default=8080, ge=1, le=65535)
    oauth_scope: str = "https://www.googleapis.com/auth/youtube.readonly"

    # Polling settings
    default_poll_interval_ms: int = Field(default=5000, ge=0)
    min_retry_delay_sec: float = Field(default=1.0, gt=0)
    max_backoff_sec: float = Field(default=60.0, gt=0)

    # HTTP settings
    request_timeout_sec: float = Field(default=10.0, gt=0)
