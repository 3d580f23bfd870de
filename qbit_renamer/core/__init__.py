"""
Core application engine for mediating between qBittorrent and FileBot.

`TorrentEnricher` builds the torrent listing, `SuggestionEngine` runs FileBot
in test mode to propose new names, and `BatchRenameApplier` pushes accepted
renames back to the daemon.
"""

from .enrichment import TorrentEnricher
from .renamer import BatchRenameApplier
from .suggestions import SuggestionEngine

__all__ = ["BatchRenameApplier", "SuggestionEngine", "TorrentEnricher"]
