"""
Kick OAuth 2.0 login flow.

Handles PKCE generation, authorization URL construction, the code for
token exchange through the auth worker, and saving the resulting
credential record.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import webbrowser
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse

import httpx

from kickwatch.auth.storage import CredentialStorage
from kickwatch.config.settings import Settings
from kickwatch.exceptions import AuthFlowError
from kickwatch.models.credentials import CredentialSet, ServerMetadata, TokenSet

logger = logging.getLogger(__name__)


def _base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_pkce() -> tuple[str, str]:
    """
    Generate a PKCE verifier and its S256 challenge.

    Returns
    -------
    tuple[str, str]
        ``(code_verifier, code_challenge)``, both base64url without padding.
    """
    verifier = _base64url(secrets.token_bytes(32))
    challenge = _base64url(hashlib.sha256(verifier.encode("ascii")).digest())
    return verifier, challenge


class KickOAuthFlow:
    """
    Kick OAuth 2.0 authentication flow.

    The client id and secret live in the auth worker; this class only
    drives the browser step and stores the tokens the worker returns.

    Parameters
    ----------
    storage : CredentialStorage
        Where the credential record is saved after a successful login.
    settings : Settings
        Application settings (worker URL, redirect URI, issuer).
    """

    def __init__(self, storage: CredentialStorage, settings: Settings) -> None:
        self._storage = storage
        self._settings = settings
        self._worker_url = settings.auth_worker_url.rstrip("/")

    async def fetch_auth_params(self) -> dict[str, Any]:
        """
        Fetch ``clientId``, ``authEndpoint`` and ``scope`` from the worker.

        Raises
        ------
        AuthFlowError
            If the worker is unreachable or the response is incomplete.
        """
        try:
            async with httpx.AsyncClient(timeout=self._settings.request_timeout) as client:
                response = await client.get(f"{self._worker_url}/auth-params")
            params = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AuthFlowError(f"Failed to fetch auth params: {e}") from e

        if not response.is_success or not isinstance(params, dict):
            raise AuthFlowError(
                f"Failed to fetch auth params: status {response.status_code}"
            )

        missing = [k for k in ("clientId", "authEndpoint", "scope") if not params.get(k)]
        if missing:
            raise AuthFlowError(f"Auth params missing fields: {', '.join(missing)}")
        return params

    async def get_authorization_url(self) -> tuple[str, str, str, dict[str, Any]]:
        """
        Build the authorization URL for the browser step.

        Returns
        -------
        tuple[str, str, str, dict[str, Any]]
            ``(authorization_url, state, code_verifier, auth_params)``.
        """
        params = await self.fetch_auth_params()
        verifier, challenge = generate_pkce()
        state = secrets.token_hex(16)

        query = urlencode(
            {
                "response_type": "code",
                "client_id": params["clientId"],
                "redirect_uri": self._settings.oauth_redirect_uri,
                "scope": params["scope"],
                "code_challenge": challenge,
                "code_challenge_method": "S256",
                "state": state,
            }
        )
        separator = "&" if "?" in params["authEndpoint"] else "?"
        return f"{params['authEndpoint']}{separator}{query}", state, verifier, params

    async def authorize_from_callback(
        self,
        callback_url: str,
        expected_state: str,
        code_verifier: str,
        auth_endpoint: str | None = None,
    ) -> CredentialSet:
        """
        Complete the flow from the redirect URL the browser landed on.

        Parameters
        ----------
        callback_url : str
            Full redirect URL including the query string.
        expected_state : str
            State sent in the authorization request.
        code_verifier : str
            PKCE verifier matching the challenge that was sent.
        auth_endpoint : str | None, optional
            Authorization endpoint, stored in the server metadata.

        Returns
        -------
        CredentialSet
            The saved credential record.

        Raises
        ------
        AuthFlowError
            On state mismatch, denied authorization, missing code or a
            failed token exchange.
        """
        query = parse_qs(urlparse(callback_url).query)

        if "error" in query:
            raise AuthFlowError(f"Authorization denied: {query['error'][0]}")

        received_state = query.get("state", [None])[0]
        if received_state != expected_state:
            raise AuthFlowError("Invalid state parameter. Possible CSRF attack.")

        code = query.get("code", [None])[0]
        if not code:
            raise AuthFlowError("No authorization code found in callback URL.")

        try:
            async with httpx.AsyncClient(timeout=self._settings.request_timeout) as client:
                response = await client.post(
                    f"{self._worker_url}/token",
                    json={
                        "code": code,
                        "redirect_uri": self._settings.oauth_redirect_uri,
                        "code_verifier": code_verifier,
                    },
                )
        except httpx.HTTPError as e:
            raise AuthFlowError(f"Token exchange failed: {e}") from e

        if not response.is_success:
            raise AuthFlowError(f"Token exchange failed: {response.reason_phrase}")

        credentials = CredentialSet(
            server_metadata=ServerMetadata(
                issuer=self._settings.oauth_issuer,
                authorization_endpoint=auth_endpoint,
                token_endpoint=self._settings.oauth_token_endpoint,
            ),
            client_id="",
            client_secret="",
            tokens=TokenSet.model_validate(response.json()),
        )
        await self._storage.save(credentials)
        logger.info("Kick credentials saved")
        return credentials

    async def authorize_interactive(self) -> CredentialSet:
        """
        Perform interactive authorization.

        Opens the browser and waits for the callback URL to be pasted.
        """
        url, state, verifier, params = await self.get_authorization_url()

        print("🔐 Opening browser for Kick authorization...")
        print(f"If browser doesn't open, visit: {url}")
        webbrowser.open(url)

        print("\n📋 After authorizing, copy the full callback URL and paste it here:")
        callback_url = input("Callback URL: ").strip()

        return await self.authorize_from_callback(
            callback_url, state, verifier, auth_endpoint=params["authEndpoint"]
        )
