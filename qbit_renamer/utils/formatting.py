"""
Helper functions for formatting data into human-readable strings.
"""

from typing import Any


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_progress(fraction: float) -> str:
    """Formats a progress fraction in [0, 1] as a percentage (e.g., '42.0%')."""
    fraction = min(max(fraction or 0.0, 0.0), 1.0)
    return f"{fraction * 100:.1f}%"


def format_tags(torrent: dict[str, Any]) -> str:
    """
    Returns the torrent's tags as a comma-separated string.
    The daemon reports tags as a single comma-separated string already.
    """
    tags = torrent.get("tags") or ""
    return ", ".join(t.strip() for t in tags.split(",") if t.strip())
