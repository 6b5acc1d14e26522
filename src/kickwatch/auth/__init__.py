"""
Authentication module for kickwatch.

Handles the Kick OAuth 2.0 login flow, token caching and refresh, and
credential storage.
"""

from __future__ import annotations

from kickwatch.auth.oauth_flow import KickOAuthFlow, generate_pkce
from kickwatch.auth.storage import (
    CredentialStorage,
    FileCredentialStorage,
    HostSettingsStore,
    SettingsCredentialStorage,
    StorageProvider,
)
from kickwatch.auth.token_manager import TokenManager

__all__: list[str] = [
    "CredentialStorage",
    "FileCredentialStorage",
    "HostSettingsStore",
    "KickOAuthFlow",
    "SettingsCredentialStorage",
    "StorageProvider",
    "TokenManager",
    "generate_pkce",
]
