"""
Pytest configuration and fixtures for kickwatch tests.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from kickwatch.auth.storage import CredentialStorage
from kickwatch.config.settings import Settings
from kickwatch.exceptions import CredentialsNotFoundError
from kickwatch.models.credentials import CredentialSet, ServerMetadata, TokenSet
from kickwatch.services.interfaces.button_host import ButtonHost


class InMemoryCredentialStorage(CredentialStorage):
    """Credential storage keeping the record in memory."""

    def __init__(self, credentials: CredentialSet | None = None) -> None:
        self.credentials = credentials
        self.save_count = 0
        self.delete_count = 0

    async def load(self) -> CredentialSet:
        if self.credentials is None:
            raise CredentialsNotFoundError("no credentials")
        return self.credentials

    async def save(self, credentials: CredentialSet) -> None:
        self.credentials = credentials
        self.save_count += 1

    async def delete(self) -> None:
        self.credentials = None
        self.delete_count += 1


class RecordingButtonHost(ButtonHost):
    """Button host that records every call."""

    def __init__(self) -> None:
        self.titles: list[str] = []
        self.images: list[str] = []
        self.urls: list[str] = []

    @property
    def title(self) -> str | None:
        return self.titles[-1] if self.titles else None

    @property
    def image(self) -> str | None:
        return self.images[-1] if self.images else None

    async def set_title(self, title: str) -> None:
        self.titles.append(title)

    async def set_image(self, image: str) -> None:
        self.images.append(image)

    async def open_url(self, url: str) -> None:
        self.urls.append(url)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_credentials(
    access_token: str | None = "access-1",
    refresh_token: str | None = "refresh-1",
    expires_at: int | None = None,
) -> CredentialSet:
    """Build a credential record with the given tokens."""
    return CredentialSet(
        server_metadata=ServerMetadata(issuer="https://id.kick.com/"),
        client_id="",
        client_secret="",
        tokens=TokenSet(
            access_token=access_token,
            token_type="Bearer",
            refresh_token=refresh_token,
            scope="user:read channel:read",
            expires_at=expires_at,
        ),
    )


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings writing into a temporary directory."""
    return Settings(
        data_dir=tmp_path / "data",
        cache_dir=tmp_path / "cache",
        auth_worker_url="https://worker.test",
        api_base_url="https://api.test/public/v1/",
    )


@pytest.fixture
def credentials() -> CredentialSet:
    return make_credentials()


@pytest.fixture
def memory_storage(credentials: CredentialSet) -> InMemoryCredentialStorage:
    return InMemoryCredentialStorage(credentials)


@pytest.fixture
def button_host() -> RecordingButtonHost:
    return RecordingButtonHost()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credential_factory():
    """Factory for credential records with custom tokens."""
    return make_credentials


@pytest.fixture
def storage_factory():
    """Factory for in-memory credential storage."""
    return InMemoryCredentialStorage


@pytest.fixture
def host_factory():
    """Factory for recording button hosts."""
    return RecordingButtonHost
