from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LITEFS_", env_file=".env", extra="ignore")

    # LiteFS node
    url: str = "http://localhost:20202"
    events_path: str = "/events"

    # HTTP transport; reads on the event stream are unbounded by default
    connect_timeout: float = Field(default=5.0, gt=0)
    read_timeout: float | None = Field(default=None, gt=0)

    # Delay between consecutive subscription failures (0 = retry immediately)
    retry_backoff: float = Field(default=0.1, ge=0)

    # Observability
    log_level: str = "INFO"
    log_json: bool = False
    enable_metrics: bool = True


settings = Settings()
