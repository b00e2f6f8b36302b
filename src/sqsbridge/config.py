from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqsbridge.tasks.message import ConnectionDetails, PublishDetails


class Settings(BaseSettings):
    """
    Connector configuration.

    Loaded from (in order):
      - process env (``SQSBRIDGE_*``)
      - optional `.env` file
    """

    model_config = SettingsConfigDict(
        env_prefix="SQSBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["sqs", "redis"] = "sqs"

    # --- transport ---
    region: str | None = None
    access_key: str | None = None
    secret_key: str | None = Field(default=None, repr=False)
    # SQS queue URL, or a redis:// URL for the redis backend
    queue_url: str | None = None
    # Alternate SQS endpoint (localstack, elasticmq)
    endpoint_url: str | None = None

    # --- routing ---
    exchange: str = "celery"
    binding: str = "celery"

    # --- message format ---
    content_type: str = "application/json"
    result_prefix: str = "celery-task-meta-"

    log_level: str = "INFO"

    def connection_details(self) -> ConnectionDetails:
        return ConnectionDetails(
            vhost=self.region,
            login=self.access_key,
            password=self.secret_key,
            host=self.queue_url,
        )

    def publish_details(self) -> PublishDetails:
        return PublishDetails(binding=self.binding, exchange=self.exchange)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
