"""Configuration management for the transcription bot."""

from .settings import Settings, get_settings

# Process-wide settings instance
settings = get_settings()

__all__ = ["Settings", "get_settings", "settings"]
