"""Suite settings with Pydantic validation and environment loading."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MYSQL_PASSWORD_WARNING = (
    "mysql: [Warning] Using a password on the command line interface can be insecure."
)

MYSQL_READY_PATTERN = (
    r"\[System\] \[MY-[0-9]+\] \[Server\] /usr/sbin/mysqld: ready for connections\."
)


class Settings(BaseSettings):
    """Suite settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MYSQL_TEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Image under test - env var is DOCKER_IMAGE, without the prefix
    docker_image: str = Field(
        default="squeakywheel/mysql:edge",
        min_length=1,
        alias="DOCKER_IMAGE",
        description="OCI image providing both the server and the mysql client",
    )
    pull_image: bool = Field(
        default=True, description="Pull the image once before the first scenario"
    )
    runtime_command: str = Field(
        default="docker",
        min_length=1,
        description="Container CLI used for piped client invocations",
    )

    # Naming
    network_prefix: str = Field(default="mysql_test", min_length=1)
    container_prefix: str = Field(default="mysql_test", min_length=1)
    data_dir: str = Field(
        default="/var/lib/mysql", description="Mount target of persistent volumes"
    )

    # Readiness (mysqld takes a long time to start)
    ready_pattern: str = Field(default=MYSQL_READY_PATTERN, min_length=1)
    ready_timeout: float = Field(
        default=300.0, gt=0, description="Seconds to wait for the readiness signal"
    )
    poll_interval: float = Field(
        default=1.0, gt=0, description="Seconds between two log fetches"
    )

    # Lifecycle
    stop_timeout: int = Field(
        default=10, ge=0, description="Seconds granted to mysqld before SIGKILL"
    )

    # Client
    client_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds before a client call is aborted (unset: runtime decides)",
    )
    client_noise: List[str] = Field(
        default_factory=lambda: [MYSQL_PASSWORD_WARNING],
        description="Exact client output lines dropped before assertions",
    )

    # Logging
    log_level: str = Field(
        default="INFO", description="Log level: DEBUG, INFO, WARNING, ERROR"
    )
    log_format: str = Field(default="text", description="Log format: json or text")
    debug: bool = Field(
        default=False, description="Narrate every scenario step and log source locations"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {valid}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        lower = v.lower()
        if lower not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return lower

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level


@lru_cache
def get_settings() -> Settings:
    """Cached settings factory."""
    return Settings()
