"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application, such as configuration and rename results.
"""

from .config import AppConfig
from .torrent import (
    BatchResult,
    MediaType,
    RenameResult,
    RenameSuggestion,
    SuggestionReport,
)

__all__ = [
    "AppConfig",
    "BatchResult",
    "MediaType",
    "RenameResult",
    "RenameSuggestion",
    "SuggestionReport",
]
