"""
Kick OAuth token manager.

Keeps the current credential record and token set in memory, refreshes
the access token shortly before it expires and persists refreshed tokens
through the configured :class:`~kickwatch.auth.storage.CredentialStorage`.
Concurrent refresh requests share a single in-flight request.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

import httpx
from pydantic import ValidationError

from kickwatch.auth.storage import CredentialStorage
from kickwatch.exceptions import (
    CredentialsMissingError,
    CredentialsNotFoundError,
    TokenRefreshError,
)
from kickwatch.models.credentials import CredentialSet, TokenSet

logger = logging.getLogger(__name__)

_DEFAULT_SKEW_SECONDS = 60
_DEFAULT_TOKEN_LIFETIME_SECONDS = 7200


class TokenManager:
    """
    Cached, single-flight access to Kick API tokens.

    Parameters
    ----------
    storage : CredentialStorage
        Backend the credential record is loaded from and saved to.
    worker_url : str
        Base URL of the auth worker exposing ``POST /refresh``.
    skew_seconds : int, optional
        Refresh when ``expires_at - skew_seconds <= now`` (default: 60).
    default_lifetime_seconds : int, optional
        Lifetime assumed when a refresh response omits ``expires_in``
        (default: 7200).
    timeout : float, optional
        HTTP timeout for refresh requests in seconds (default: 10.0).
    clock : Callable[[], float], optional
        Epoch-seconds clock (default: ``time.time``).
    """

    def __init__(
        self,
        storage: CredentialStorage,
        worker_url: str,
        skew_seconds: int = _DEFAULT_SKEW_SECONDS,
        default_lifetime_seconds: int = _DEFAULT_TOKEN_LIFETIME_SECONDS,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage
        self._worker_url = worker_url.rstrip("/")
        self._skew_seconds = skew_seconds
        self._default_lifetime_seconds = default_lifetime_seconds
        self._timeout = timeout
        self._clock = clock

        self._cached_credentials: CredentialSet | None = None
        self._cached_tokens: TokenSet | None = None
        self._refresh_task: asyncio.Task[TokenSet] | None = None

    @property
    def storage(self) -> CredentialStorage:
        return self._storage

    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None

    def invalidate(self) -> None:
        """Drop the in-memory credential and token cache."""
        self._cached_credentials = None
        self._cached_tokens = None

    async def logout(self) -> None:
        """Clear the cache and delete stored credentials."""
        self.invalidate()
        await self._storage.delete()

    async def get_access_token(self) -> str:
        """
        Return a usable access token, refreshing it first when due.

        Raises
        ------
        CredentialsMissingError
            If no credentials are stored or they hold no access token.
        TokenRefreshError
            If a due refresh failed.
        """
        _, tokens = await self._ensure_credentials()
        if not tokens.access_token:
            raise CredentialsMissingError(
                "Kick credentials missing access token. Run 'kickwatch auth login'."
            )
        return tokens.access_token

    async def refresh_current_tokens(self) -> TokenSet:
        """Force a refresh of the current tokens (used after a 401)."""
        credentials, tokens = await self._ensure_credentials()
        return await self._refresh(credentials, tokens)

    async def _ensure_credentials(self) -> tuple[CredentialSet, TokenSet]:
        credentials = await self._load_credentials()

        if self._cached_tokens is None:
            self._cached_tokens = credentials.tokens

        tokens = self._cached_tokens
        if not tokens.access_token and not tokens.refresh_token:
            raise CredentialsMissingError(
                "Kick credentials incomplete. Run 'kickwatch auth login' to generate tokens."
            )

        if tokens.refresh_token and tokens.is_due_for_refresh(
            self._skew_seconds, now=self._clock()
        ):
            logger.info("Kick access token is about to expire; refreshing")
            tokens = await self._refresh(credentials, tokens)

        return self._cached_credentials or credentials, tokens

    async def _load_credentials(self) -> CredentialSet:
        if self._cached_credentials is not None:
            return self._cached_credentials

        try:
            self._cached_credentials = await self._storage.load()
        except CredentialsNotFoundError as e:
            raise CredentialsMissingError(
                "Kick credentials not found. Run 'kickwatch auth login' to "
                "generate credentials.json."
            ) from e
        return self._cached_credentials

    async def _refresh(
        self, credentials: CredentialSet, current: TokenSet
    ) -> TokenSet:
        if not current.refresh_token:
            raise CredentialsMissingError(
                "Kick credentials missing refresh token. Run 'kickwatch auth login'."
            )

        if self._refresh_task is None:
            task = asyncio.ensure_future(self._perform_refresh(credentials, current))
            task.add_done_callback(self._clear_refresh_task)
            self._refresh_task = task

        # Shielded so a cancelled caller does not cancel the shared refresh.
        return await asyncio.shield(self._refresh_task)

    def _clear_refresh_task(self, task: asyncio.Task[TokenSet]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _perform_refresh(
        self, credentials: CredentialSet, current: TokenSet
    ) -> TokenSet:
        url = f"{self._worker_url}/refresh"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    url, json={"refresh_token": current.refresh_token}
                )
        except httpx.HTTPError as e:
            raise TokenRefreshError(f"Token refresh failed: {e}") from e

        if not response.is_success:
            raise TokenRefreshError(
                f"Token refresh failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            refreshed = TokenSet.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TokenRefreshError(f"Token refresh returned an invalid body: {e}") from e

        merged = current.merged_with(
            refreshed, self._default_lifetime_seconds, now=int(self._clock())
        )

        self._cached_tokens = merged
        self._cached_credentials = credentials.with_tokens(merged)
        await self._storage.save(self._cached_credentials)

        logger.info("Refreshed Kick access token (expires_at=%s)", merged.expires_at)
        return merged
