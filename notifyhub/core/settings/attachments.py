"""Attachment handling settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AttachmentSettings(BaseSettings):
    """Limits applied by the attachment manager.

    Environment variables use ATTACH_ prefix.
    Example: ATTACH_MAX_SIZE=5242880
    """

    max_size: int = Field(
        default=100 * 1024 * 1024,  # 100 MiB
        ge=1,
        description="Maximum size of a single attachment in bytes",
    )
    fetch_timeout: float = Field(
        default=30.0,
        gt=0.0,
        le=600.0,
        description="Timeout for fetching HTTP attachments (seconds)",
    )
    sniff_bytes: int = Field(
        default=512,
        ge=16,
        le=65536,
        description="Number of leading bytes inspected for MIME sniffing",
    )

    model_config = SettingsConfigDict(
        env_prefix="ATTACH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
