"""
Credential models for Kick OAuth.

Defines the persisted credential record. The JSON layout (camelCase
``serverMetadata``, ``clientId``, ``clientSecret`` and snake_case token
fields) is the storage format and must round-trip unchanged.
"""

from __future__ import annotations

import json
import time
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenSet(BaseModel):
    """OAuth token endpoint response, plus the computed ``expires_at``."""

    model_config = ConfigDict(extra="allow")

    access_token: Optional[str] = None
    token_type: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    expires_at: Optional[int] = None
    expires_in: Optional[int] = None

    def is_due_for_refresh(self, skew_seconds: float, now: float | None = None) -> bool:
        """
        Check whether the access token should be refreshed.

        A token without ``expires_at`` is never considered due.

        Parameters
        ----------
        skew_seconds : float
            Safety margin subtracted from the expiry.
        now : float | None, optional
            Current epoch seconds (default: ``time.time()``).
        """
        if not self.expires_at:
            return False
        current = int(time.time()) if now is None else now
        return self.expires_at - skew_seconds <= current

    def merged_with(
        self,
        refreshed: TokenSet,
        default_lifetime_seconds: int,
        now: float | None = None,
    ) -> TokenSet:
        """
        Merge a refresh response over this token set.

        The old refresh token is kept when the server omits one, and
        ``expires_at`` is derived from ``expires_in`` when not supplied.
        """
        current = int(time.time()) if now is None else now
        payload = refreshed.model_dump(exclude_none=True)
        payload["refresh_token"] = refreshed.refresh_token or self.refresh_token
        payload["expires_at"] = refreshed.expires_at or current + (
            refreshed.expires_in or default_lifetime_seconds
        )
        return TokenSet.model_validate(payload)


class ServerMetadata(BaseModel):
    """Authorization server metadata stored alongside the tokens."""

    model_config = ConfigDict(extra="allow")

    issuer: str = ""
    authorization_endpoint: Optional[str] = None
    token_endpoint: Optional[str] = None
    userinfo_endpoint: Optional[str] = None
    jwks_uri: Optional[str] = None
    scopes_supported: Optional[list[str]] = None


class CredentialSet(BaseModel):
    """The persisted Kick credential record."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    server_metadata: ServerMetadata = Field(alias="serverMetadata")
    client_id: str = Field(default="", alias="clientId")
    client_secret: str = Field(default="", alias="clientSecret")
    tokens: TokenSet = Field(default_factory=TokenSet)

    @classmethod
    def is_valid_record(cls, value: Any) -> bool:
        """Structural check applied to records read from host settings."""
        if not isinstance(value, Mapping):
            return False
        required = ("serverMetadata", "clientId", "clientSecret", "tokens")
        if not all(key in value for key in required):
            return False
        return isinstance(value["clientId"], str) and isinstance(
            value["clientSecret"], str
        )

    @classmethod
    def from_mapping(cls, value: Mapping[str, Any]) -> CredentialSet:
        """Validate a decoded JSON record."""
        return cls.model_validate(dict(value))

    def to_record(self) -> dict[str, Any]:
        """Dump to the storage layout (camelCase keys, no null token fields)."""
        return {
            "serverMetadata": self.server_metadata.model_dump(exclude_none=True),
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
            "tokens": self.tokens.model_dump(exclude_none=True),
        }

    def to_json(self) -> str:
        """Serialize to the JSON storage format."""
        return json.dumps(self.to_record(), indent=2)

    def with_tokens(self, tokens: TokenSet) -> CredentialSet:
        """Return a copy carrying a new token set."""
        return self.model_copy(update={"tokens": tokens})
