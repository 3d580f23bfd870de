"""
Handles authentication with the qBittorrent Web API, including the cached
session cookie and the bounded login retry counter.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

import aiohttp

from qbit_renamer.exceptions import AuthenticationError

if TYPE_CHECKING:
    from .client import QBittorrentClient

log = logging.getLogger(__name__)


class QBittorrentAuthenticator:
    """
    Manages the login flow for the qBittorrent API client.

    The session cookie (stored on the client) and the retry counter are the
    only state shared between concurrent requests. Every read-modify-write of
    either goes through `_lock`, so two requests that find the session expired
    at the same time share a single login instead of overwriting each other's
    fresh cookie.
    """

    def __init__(self, api_client: "QBittorrentClient", max_attempts: int = 3):
        """
        Initializes the authenticator.

        Args:
            api_client: A reference to the main QBittorrentClient instance.
            max_attempts: Consecutive failed logins allowed before giving up.
        """
        self._api_client = api_client
        self.max_attempts = max_attempts
        self.attempts = 0
        self._lock = asyncio.Lock()

    async def authenticate(self) -> bool:
        """
        Logs in to the daemon and caches the session cookie.

        Returns:
            True on success. False on network errors, rejected credentials, or
            when the retry counter has already reached `max_attempts`. Never
            raises.
        """
        async with self._lock:
            return await self._login()

    async def ensure_authenticated(self) -> str:
        """
        Returns the cached session cookie, logging in first if there is none.

        Raises:
            AuthenticationError: If no session could be established.
        """
        async with self._lock:
            if self._api_client.session_cookie:
                return self._api_client.session_cookie
            if not await self._login():
                raise AuthenticationError("Failed to authenticate with qBittorrent")
            return self._api_client.session_cookie

    async def invalidate(self, stale_cookie: str) -> None:
        """
        Drops a cookie the daemon rejected and resets the retry counter.

        The cached cookie is only cleared if it is still the rejected one, so a
        session established concurrently by another request survives.
        """
        async with self._lock:
            if self._api_client.session_cookie == stale_cookie:
                self._api_client.session_cookie = None
            self.attempts = 0

    async def _login(self) -> bool:
        """Performs one login attempt. Must be called with `_lock` held."""
        if self.attempts >= self.max_attempts:
            log.error(
                f"Maximum qBittorrent authentication attempts ({self.max_attempts}) "
                "exceeded."
            )
            return False

        self.attempts += 1
        config = self._api_client.config
        session = await self._api_client.get_session()

        try:
            async with session.post(
                f"{self._api_client.api_url}/auth/login",
                data={
                    "username": config.qbittorrent_username,
                    "password": config.qbittorrent_password,
                },
                headers={"Referer": config.qbittorrent_url},
                timeout=aiohttp.ClientTimeout(total=config.auth_timeout),
            ) as r:
                cookies = r.headers.getall("Set-Cookie", [])
                if r.status != 200 or not cookies:
                    body = await r.text()
                    log.error(
                        f"qBittorrent authentication failed: HTTP {r.status}, "
                        f"{body.strip()!r}"
                    )
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.error(f"qBittorrent authentication failed: {e!r}")
            return False

        # Keep only the "name=value" pair, not the cookie attributes
        self._api_client.session_cookie = cookies[0].split(";", 1)[0].strip()
        self.attempts = 0
        log.debug("Authenticated with qBittorrent.")
        return True
