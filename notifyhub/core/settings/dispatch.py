"""Dispatch engine configuration settings.

Controls the default per-call deadline, outbound HTTP identity and TLS
verification for every adapter created by a dispatcher.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class DispatchSettings(BaseSettings):
    """Configuration for notification fan-out.

    Environment variables use NOTIFY_ prefix.
    Example: NOTIFY_TIMEOUT=10, NOTIFY_DEFAULT_TAGS=ops,oncall
    """

    timeout: float = Field(
        default=30.0,
        gt=0.0,
        le=600.0,
        description="Deadline applied to a whole notify() call (seconds)",
    )
    user_agent: str = Field(
        default="notifyhub/1.0",
        min_length=1,
        description="User-Agent header sent by every HTTP adapter",
    )
    verify_tls: bool = Field(
        default=True,
        description="Verify TLS certificates. Disable only for local testing.",
    )
    default_tags: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Tags attached to every request sent by a dispatcher",
    )

    @field_validator("default_tags", mode="before")
    @classmethod
    def split_tags(cls, v: object) -> object:
        """Accept comma-separated strings from the environment."""
        if isinstance(v, str):
            return [tag.strip() for tag in v.split(",") if tag.strip()]
        return v

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
