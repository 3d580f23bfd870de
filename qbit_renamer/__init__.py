"""
qbit-renamer: browse qBittorrent torrents and apply FileBot rename suggestions.
"""

__version__ = "1.0.0"
