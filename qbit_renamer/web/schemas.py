"""
Request bodies accepted by the HTTP API.

Only the shape is checked here; hashes, media types and batch limits are
validated by the core so the CLI gets the same rules.
"""

from typing import List

from pydantic import BaseModel

from qbit_renamer.models.torrent import RenameSuggestion


class SuggestRequest(BaseModel):
    torrentHash: str
    type: str


class RenameRequest(BaseModel):
    torrentHash: str
    renames: List[RenameSuggestion]
