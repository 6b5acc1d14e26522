"""
Custom exceptions for the kickwatch application.

This module defines domain-specific exceptions for error handling
throughout the application, including credential failures, upstream
HTTP errors and credential persistence failures.
"""

from __future__ import annotations


class KickwatchError(Exception):
    """Base exception for all kickwatch errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize KickwatchError.

        Parameters
        ----------
        message : str
            Human-readable error message.
        """
        self.message = message
        super().__init__(message)


class CredentialsMissingError(KickwatchError):
    """
    Exception raised when Kick credentials are unavailable or unusable.

    Raised when nothing is stored, when the stored token set lacks an
    access or refresh token, or when the Kick API still answers 401 after
    the single built-in refresh-and-retry.

    Examples
    --------
    >>> try:
    ...     token = await token_manager.get_access_token()
    ... except CredentialsMissingError as e:
    ...     print(f"Run 'kickwatch auth login' first: {e.message}")
    """

    def __init__(
        self,
        message: str = "Kick credentials not found. Run 'kickwatch auth login'.",
    ) -> None:
        super().__init__(message)


class TokenRefreshError(KickwatchError):
    """
    Exception raised when a token refresh request fails.

    Attributes
    ----------
    message : str
        Human-readable error message.
    status_code : int | None
        HTTP status of the refresh response, or None for transport errors.
    """

    def __init__(
        self,
        message: str = "Token refresh failed",
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message)


class UpstreamHTTPError(KickwatchError):
    """
    Exception raised for non-2xx, non-401 responses from the Kick API.

    The channel is reported with an ``error`` status for that poll; the
    next poll retries normally.

    Attributes
    ----------
    message : str
        Human-readable error message.
    status_code : int
        HTTP status code returned by the upstream API.
    url : str
        The requested URL.
    """

    def __init__(self, status_code: int, url: str, message: str | None = None) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(
            message or f"Kick API request failed with status {status_code}"
        )


class CredentialsNotFoundError(KickwatchError):
    """Exception raised by a credential storage when no record exists."""

    def __init__(self, message: str = "No stored Kick credentials found") -> None:
        super().__init__(message)


class StorageWriteError(KickwatchError):
    """
    Exception raised when no persistence target accepted a credential write.

    Attributes
    ----------
    message : str
        Human-readable error message.
    targets : list[str]
        The targets that were attempted.
    """

    def __init__(
        self,
        message: str = "Failed to persist Kick credentials to disk.",
        targets: list[str] | None = None,
    ) -> None:
        self.targets = targets or []
        super().__init__(message)


class StorageConfigurationError(KickwatchError):
    """Exception raised when a second, different storage backend is configured."""

    def __init__(
        self,
        message: str = (
            "Credential storage has already been configured. "
            "It can only be set once during initialization."
        ),
    ) -> None:
        super().__init__(message)


class AuthFlowError(KickwatchError):
    """Exception raised when the interactive OAuth login flow fails."""
