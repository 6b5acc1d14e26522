"""
Dependency Injection Container for kickwatch.

Wires settings, credential storage, the token manager, the Kick API client,
the image compositor and the live-status action together. Services are
singletons cached via ``@cached_property`` and created lazily.

Usage
-----
    >>> from kickwatch.container import container
    >>> action = container.live_status_action
    >>> container.live_status_action is action
    True

For tests, swap the settings or storage first and call :meth:`Container.reset`
to drop every cached singleton.
"""

from __future__ import annotations

from functools import cached_property

from kickwatch.auth.oauth_flow import KickOAuthFlow
from kickwatch.auth.storage import FileCredentialStorage, StorageProvider
from kickwatch.auth.token_manager import TokenManager
from kickwatch.config.settings import Settings, get_settings
from kickwatch.services.channel_monitor import LiveStatusAction, MonitorOptions
from kickwatch.services.channel_status import ChannelStatusService
from kickwatch.services.image_compositor import ImageCompositor
from kickwatch.services.kick_api import KickApiClient
from kickwatch.services.profile_images import ProfileImageCache, ProfileImageConfig
from kickwatch.services.render_cache import RenderCache

_SINGLETONS = (
    "storage_provider",
    "token_manager",
    "oauth_flow",
    "kick_api_client",
    "profile_images",
    "compositor",
    "status_service",
    "live_status_action",
)


class Container:
    """
    Dependency injection container for kickwatch.

    Parameters
    ----------
    settings : Settings | None, optional
        Settings to wire from (default: loaded from the environment).

    Examples
    --------
    >>> container = Container(Settings(data_dir=tmp_path))
    >>> container.token_manager is container.token_manager
    True
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    @cached_property
    def storage_provider(self) -> StorageProvider:
        """
        Process-wide credential storage selection.

        Defaults to file storage; a host integration can call
        ``configure()`` once with a host-settings backed storage before
        the token manager is first used.
        """
        return StorageProvider(
            FileCredentialStorage(
                candidate_paths=self.settings.credential_candidate_paths,
                write_targets=self.settings.credential_write_targets,
            )
        )

    @cached_property
    def token_manager(self) -> TokenManager:
        return TokenManager(
            storage=self.storage_provider.get(),
            worker_url=self.settings.auth_worker_url,
            skew_seconds=self.settings.token_expiry_skew_seconds,
            default_lifetime_seconds=self.settings.default_token_lifetime_seconds,
            timeout=self.settings.request_timeout,
        )

    @cached_property
    def oauth_flow(self) -> KickOAuthFlow:
        return KickOAuthFlow(self.storage_provider.get(), self.settings)

    # -------------------------------------------------------------------------
    # Status and rendering
    # -------------------------------------------------------------------------

    @cached_property
    def kick_api_client(self) -> KickApiClient:
        return KickApiClient(
            token_manager=self.token_manager,
            api_base_url=self.settings.api_base_url,
            worker_url=self.settings.auth_worker_url,
            timeout=self.settings.request_timeout,
            web_info_ttl=self.settings.web_info_cache_ttl_seconds,
            debug_payloads=self.settings.debug_payloads,
        )

    @cached_property
    def profile_images(self) -> ProfileImageCache:
        return ProfileImageCache(
            ProfileImageConfig(
                image_dir=self.settings.profile_image_dir,
                timeout=self.settings.request_timeout,
            )
        )

    @cached_property
    def compositor(self) -> ImageCompositor:
        return ImageCompositor(
            RenderCache(
                ttl=self.settings.image_cache_ttl_seconds,
                capacity=self.settings.image_cache_max_entries,
            )
        )

    @cached_property
    def status_service(self) -> ChannelStatusService:
        return ChannelStatusService(
            self.kick_api_client, self.profile_images, self.compositor
        )

    @cached_property
    def live_status_action(self) -> LiveStatusAction:
        return LiveStatusAction(
            source=self.status_service,
            compositor=self.compositor,
            token_manager=self.token_manager,
            start_auth_flow=self.oauth_flow.authorize_interactive,
            options=MonitorOptions.from_settings(self.settings),
        )

    # -------------------------------------------------------------------------
    # Testing Support
    # -------------------------------------------------------------------------

    def reset(self, settings: Settings | None = None) -> None:
        """
        Clear all cached singletons, optionally switching settings.

        Examples
        --------
        >>> container.reset()
        >>> # All cached singletons are cleared
        """
        if settings is not None:
            self._settings = settings
        for prop in _SINGLETONS:
            self.__dict__.pop(prop, None)


# Global container instance
container = Container()
