"""
Credential storage backends.

Two implementations of :class:`CredentialStorage` exist: a durable
file-backed store that writes the JSON record to every configured target,
and a host-settings store that keeps the record inside the button host's
global settings. The backend is chosen once at process start through
:class:`StorageProvider`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Protocol

from pydantic import ValidationError

from kickwatch.exceptions import (
    CredentialsNotFoundError,
    StorageConfigurationError,
    StorageWriteError,
)
from kickwatch.models.credentials import CredentialSet

logger = logging.getLogger(__name__)

_SETTINGS_KEY = "credentials"


class CredentialStorage(ABC):
    """Load, save and delete the persisted credential record."""

    @abstractmethod
    async def load(self) -> CredentialSet:
        """
        Load the stored credentials.

        Raises
        ------
        CredentialsNotFoundError
            If nothing is stored.
        """

    @abstractmethod
    async def save(self, credentials: CredentialSet) -> None:
        """
        Persist credentials.

        Raises
        ------
        StorageWriteError
            If the record could not be written anywhere.
        """

    @abstractmethod
    async def delete(self) -> None:
        """Remove stored credentials. Missing records are not an error."""


def _unique(paths: Iterable[Path]) -> list[Path]:
    return list(dict.fromkeys(Path(p) for p in paths))


class FileCredentialStorage(CredentialStorage):
    """
    File-backed credential storage.

    Reads the first existing candidate path. Saves write the record to
    every write target and succeed when at least one target accepts it;
    the first successful (or loaded) path is remembered and joins both
    lists for later calls. No locking is performed: the process is
    assumed to be the only writer.

    Parameters
    ----------
    candidate_paths : Iterable[Path]
        Paths probed in order by :meth:`load`.
    write_targets : Iterable[Path]
        Paths written by :meth:`save` and removed by :meth:`delete`.
    """

    def __init__(
        self, candidate_paths: Iterable[Path], write_targets: Iterable[Path]
    ) -> None:
        self._candidate_paths = _unique(candidate_paths)
        self._write_targets = _unique(write_targets)
        self._cached_path: Path | None = None

    @property
    def cached_path(self) -> Path | None:
        """Path the record was last read from or written to."""
        return self._cached_path

    def _candidates(self) -> list[Path]:
        extra = [self._cached_path] if self._cached_path else []
        return _unique([*self._candidate_paths, *extra])

    def _targets(self) -> list[Path]:
        extra = [self._cached_path] if self._cached_path else []
        return _unique([*self._write_targets, *extra])

    async def load(self) -> CredentialSet:
        for candidate in self._candidates():
            if not candidate.exists():
                continue

            try:
                record = json.loads(candidate.read_text(encoding="utf-8"))
                credentials = CredentialSet.from_mapping(record)
            except (OSError, ValueError, ValidationError) as e:
                raise CredentialsNotFoundError(
                    f"Credentials file {candidate} is unreadable: {e}"
                ) from e

            self._cached_path = candidate
            logger.debug("Loaded Kick credentials from %s", candidate)
            return credentials

        raise CredentialsNotFoundError(
            "Kick credentials not found. Run 'kickwatch auth login' to "
            "generate credentials.json."
        )

    async def save(self, credentials: CredentialSet) -> None:
        payload = credentials.to_json()
        targets = self._targets()
        successful: list[Path] = []

        for target in targets:
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(payload, encoding="utf-8")
                target.chmod(0o600)
                successful.append(target)
            except OSError:
                logger.debug("Could not write credentials to %s", target, exc_info=True)
                continue

        if not successful:
            raise StorageWriteError(targets=[str(t) for t in targets])

        self._cached_path = successful[0]
        logger.info("Saved Kick credentials to %s", successful[0])

    async def delete(self) -> None:
        for target in self._targets():
            if not target.exists():
                continue
            try:
                target.unlink()
            except OSError:
                logger.warning("Failed to delete credentials at %s", target, exc_info=True)
        self._cached_path = None


class HostSettingsStore(Protocol):
    """Global settings exposed by the button host."""

    async def get_global_settings(self) -> dict[str, Any]:
        ...

    async def set_global_settings(self, settings: dict[str, Any]) -> None:
        ...


class SettingsCredentialStorage(CredentialStorage):
    """
    Credential storage inside the host's global settings.

    Every operation is a read-modify-write of the whole settings dict, so
    all of them run under one ``asyncio.Lock``; waiters are served in FIFO
    order. When the settings hold no valid record, :meth:`load` falls back
    to a read-only seed file store and migrates what it finds.

    Parameters
    ----------
    host_store : HostSettingsStore
        Host global settings accessor.
    seed : CredentialStorage | None, optional
        Store consulted when settings hold no credentials (default: None).
    """

    def __init__(
        self, host_store: HostSettingsStore, seed: CredentialStorage | None = None
    ) -> None:
        self._host_store = host_store
        self._seed = seed
        self._lock = asyncio.Lock()

    async def load(self) -> CredentialSet:
        async with self._lock:
            settings = await self._host_store.get_global_settings()
            record = settings.get(_SETTINGS_KEY)
            if CredentialSet.is_valid_record(record):
                return CredentialSet.from_mapping(record)

            if self._seed is None:
                raise CredentialsNotFoundError(
                    "No credentials found in host settings."
                )

            try:
                credentials = await self._seed.load()
            except CredentialsNotFoundError as e:
                raise CredentialsNotFoundError(
                    f"No credentials found in settings or file. Original error: {e.message}"
                ) from e

            # Already holding the lock; write through the unlocked helper.
            await self._save(credentials)
            logger.info("Migrated Kick credentials from file into host settings")
            return credentials

    async def save(self, credentials: CredentialSet) -> None:
        async with self._lock:
            await self._save(credentials)

    async def _save(self, credentials: CredentialSet) -> None:
        settings = dict(await self._host_store.get_global_settings())
        settings[_SETTINGS_KEY] = credentials.to_record()
        await self._host_store.set_global_settings(settings)

    async def delete(self) -> None:
        async with self._lock:
            settings = dict(await self._host_store.get_global_settings())
            settings.pop(_SETTINGS_KEY, None)
            await self._host_store.set_global_settings(settings)


class StorageProvider:
    """
    Holds the process-wide credential storage backend.

    The backend may be configured once, before anything has used it;
    configuring the same instance again is a no-op. Once a backend was
    configured or handed out by :meth:`get`, configuring a different one
    fails fast.

    Parameters
    ----------
    default : CredentialStorage
        Backend returned by :meth:`get` until :meth:`configure` is called.
    """

    def __init__(self, default: CredentialStorage) -> None:
        self._storage = default
        self._configured = False
        self._in_use = False

    @property
    def configured(self) -> bool:
        return self._configured

    def configure(self, storage: CredentialStorage) -> None:
        """
        Select the storage backend.

        Raises
        ------
        StorageConfigurationError
            If a different backend was already configured or in use.
        """
        if (self._configured or self._in_use) and storage is not self._storage:
            raise StorageConfigurationError()
        self._storage = storage
        self._configured = True

    def get(self) -> CredentialStorage:
        self._in_use = True
        return self._storage
