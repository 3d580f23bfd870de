"""
Concurrent enrichment of the torrent list with per-torrent properties and files.
"""

import asyncio
import logging
from typing import Any, Dict, List

from qbit_renamer.api.client import QBittorrentClient

log = logging.getLogger(__name__)


class TorrentEnricher:
    """
    Fetches the torrent list, then every torrent's properties and file listing
    in parallel. Enrichment is best-effort: a failed call only leaves its own
    key out of that torrent's record.
    """

    def __init__(self, api_client: QBittorrentClient):
        """
        Args:
            api_client: The QBittorrentClient instance.
        """
        self.api_client = api_client

    async def list_enriched_torrents(self) -> List[Dict[str, Any]]:
        """
        Returns all torrents with `properties` and `files` attached where available.

        The order matches the daemon's torrent list. A failure of the list call
        itself propagates, since there is nothing to enrich.
        """
        torrents = await self.api_client.fetch_torrents()
        if not torrents:
            return []

        log.debug(f"Enriching {len(torrents)} torrents...")
        tasks = [self._enrich(torrent) for torrent in torrents]
        return list(await asyncio.gather(*tasks))

    async def _enrich(self, torrent: Dict[str, Any]) -> Dict[str, Any]:
        torrent_hash = torrent.get("hash", "")
        properties, files = await asyncio.gather(
            self.api_client.fetch_torrent_properties(torrent_hash),
            self.api_client.fetch_torrent_files(torrent_hash),
            return_exceptions=True,
        )

        enriched = dict(torrent)
        for key, result in (("properties", properties), ("files", files)):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                log.warning(f"Failed to fetch {key} for torrent {torrent_hash}: {result}")
                continue
            enriched[key] = result
        return enriched
