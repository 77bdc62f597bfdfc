"""Configuration: .env loading and typed classifier settings."""

from backend_argus.config.settings import ClassifierSettings, get_settings

__all__ = ["ClassifierSettings", "get_settings"]
