"""
Async client for the qBittorrent Web API (v2) with transparent
re-authentication when the session cookie expires.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from qbit_renamer.exceptions import OperationTimeoutError
from qbit_renamer.models.config import AppConfig

from .auth import QBittorrentAuthenticator

log = logging.getLogger(__name__)


class QBittorrentClient:
    """
    Session-authenticated async client for the qBittorrent Web API.

    Features:
    - Lazily created connection pool shared by all requests
    - Session cookie cached process-wide and renewed on HTTP 403
    - Bounded retries for both logins and expired sessions
    - Explicit timeouts on every call
    """

    API_PREFIX = "/api/v2"

    def __init__(self, config: AppConfig):
        """
        Initializes the API client.

        Args:
            config: The validated application configuration.
        """
        self.config = config
        self.api_url = config.qbittorrent_url + self.API_PREFIX
        self.max_retries = config.max_retries

        # State set by the authenticator
        self.session_cookie: Optional[str] = None

        self._session: Optional[aiohttp.ClientSession] = None
        self._authenticator = QBittorrentAuthenticator(
            self, max_attempts=config.max_auth_retries
        )

    @property
    def authenticator(self) -> QBittorrentAuthenticator:
        """Provides access to the authentication helper."""
        return self._authenticator

    async def get_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.config.max_connections,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                # The session cookie is managed explicitly, never by a jar
                cookie_jar=aiohttp.DummyCookieJar(),
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            )
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def authenticate(self) -> bool:
        """Logs in to the daemon. See QBittorrentAuthenticator.authenticate."""
        return await self._authenticator.authenticate()

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Makes an authenticated API call, re-authenticating on an expired session.

        A 403 response clears the cached cookie and the request is retried
        with a fresh login, at most `max_retries` times. Any other error
        status, and a 403 once the retries are spent, is raised unmodified as
        `aiohttp.ClientResponseError`.

        Args:
            endpoint: API path below /api/v2, e.g. "/torrents/info".
            method: HTTP method.
            data: Form fields, sent as application/x-www-form-urlencoded.
            params: Query string parameters.

        Returns:
            The decoded JSON body, or the body text for non-JSON responses.

        Raises:
            AuthenticationError: If no session can be established.
            OperationTimeoutError: If the call exceeds its timeout.
        """
        session = await self.get_session()
        url = self.api_url + endpoint
        timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)

        attempt = 0
        while True:
            cookie = await self._authenticator.ensure_authenticated()
            try:
                async with session.request(
                    method,
                    url,
                    params=params,
                    data=data,
                    headers={"Cookie": cookie},
                    timeout=timeout,
                ) as r:
                    if r.status == 403 and attempt < self.max_retries:
                        attempt += 1
                        log.info(
                            f"qBittorrent session rejected on {endpoint}; "
                            f"re-authenticating (retry {attempt}/{self.max_retries})."
                        )
                        await self._authenticator.invalidate(cookie)
                        continue

                    r.raise_for_status()
                    if r.content_type == "application/json":
                        return await r.json()
                    return await r.text()
            except asyncio.TimeoutError as e:
                raise OperationTimeoutError(
                    f"qBittorrent request to {endpoint} timed out after "
                    f"{self.config.request_timeout:g}s"
                ) from e

    # Public API Methods
    async def fetch_torrents(self, **filters: Any) -> List[Dict[str, Any]]:
        return await self.request("/torrents/info", params=filters or None)

    async def fetch_torrent_properties(self, torrent_hash: str) -> Dict[str, Any]:
        return await self.request("/torrents/properties", params={"hash": torrent_hash})

    async def fetch_torrent_files(self, torrent_hash: str) -> List[Dict[str, Any]]:
        return await self.request("/torrents/files", params={"hash": torrent_hash})

    async def rename_file(self, torrent_hash: str, old_path: str, new_path: str) -> None:
        await self.request(
            "/torrents/renameFile",
            method="POST",
            data={"hash": torrent_hash, "oldPath": old_path, "newPath": new_path},
        )

    async def fetch_app_version(self) -> str:
        return await self.request("/app/version")
