"""Configuration for the synthesis engine."""

from synthesis.config.settings import PROJECT_ROOT, Settings, settings

__all__ = ["PROJECT_ROOT", "Settings", "settings"]
