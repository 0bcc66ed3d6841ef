"""Centralized configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Optional, Set
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==================== Bot Wrapper Config ====================
    telegram_bot_token: Optional[str] = None
    # Comma separated Telegram user ids always treated as premium
    premium_user_ids: str = ""
    # Members of this chat/channel are treated as premium
    premium_chat_id: Optional[str] = None

    # ==================== Quota ====================
    free_tier_cap_seconds: int = 300
    premium_tier_cap_seconds: int = 3600
    quota_period: str = "lifetime"  # lifetime | monthly | daily
    quota_storage_path: str = "./data/quota.json"
    redis_url: Optional[str] = None
    strict_quota: bool = False

    # ==================== Messages ====================
    max_message_length: int = 4000
    messaging_rate_limit: int = 20
    messaging_rate_window: float = 1.0

    # ==================== Whisper Config (Voice Transcription) ====================
    whisper_model: str = "base"
    whisper_device: str = "auto"
    whisper_language: str = "auto"
    audio_download_dir: str = "./audio_downloads"
    cleanup_audio_files: bool = True
    transcription_timeout: float = 900.0

    # ==================== Server ====================
    host: str = "0.0.0.0"
    port: int = 8082
    log_file: str = "server.log"

    # Handle empty strings for optional string fields
    @field_validator(
        "telegram_bot_token",
        "premium_chat_id",
        "redis_url",
        mode="before",
    )
    @classmethod
    def parse_optional_str(cls, v):
        if v == "":
            return None
        return v

    @field_validator("quota_period", mode="before")
    @classmethod
    def parse_quota_period(cls, v):
        value = (v or "lifetime").strip().lower()
        if value not in ("lifetime", "monthly", "daily"):
            raise ValueError(f"Unsupported quota period: {v}")
        return value

    @property
    def premium_user_id_set(self) -> Set[str]:
        """Premium user ids as a set of strings."""
        return {uid.strip() for uid in self.premium_user_ids.split(",") if uid.strip()}

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
