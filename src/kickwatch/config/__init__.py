"""
Configuration management module for kickwatch.

Handles application settings loaded from environment variables and
``.env`` files.
"""

from __future__ import annotations

from kickwatch.config.settings import Settings, get_settings, settings

__all__: list[str] = ["Settings", "get_settings", "settings"]
