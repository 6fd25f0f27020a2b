"""
AuthStore - Configuration and settings.

Settings are read from the environment (prefix AUTHSTORE_) or a .env file.
The adapter reads them once at construction; nothing here is mutated later.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# DynamoDB BatchWriteItem accepts at most 25 requests per call
MAX_BATCH_SIZE = 25


class AdapterSettings(BaseSettings):
    """
    Adapter settings.

    Topology is chosen by `use_single_table`:
    - single-table: every model lives in `table_name`, keyed by PK/SK
    - multi-table: each model lives in `table_prefix + model`, keyed by id
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTHSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # DynamoDB connection
    region: str = "us-east-1"
    endpoint_url: str | None = None  # e.g. http://localhost:8000 for DynamoDB Local

    # Topology
    use_single_table: bool = False
    table_name: str = "auth-store"
    table_prefix: str = ""
    expose_type_field: bool = False  # Keep `_type` in returned entities

    # Bulk operations
    batch_size: int = Field(default=MAX_BATCH_SIZE, ge=1, le=MAX_BATCH_SIZE)
    max_concurrency: int = Field(default=10, ge=1)

    # Provisioning
    schema_file: str = "dynamodb-cloudformation.json"

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @property
    def topology(self) -> str:
        return "single-table" if self.use_single_table else "multi-table"


@lru_cache
def get_settings() -> AdapterSettings:
    """Get cached settings instance."""
    return AdapterSettings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for command-line use."""
    logging.basicConfig(
        level=getattr(logging, (level or get_settings().log_level).upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
