"""
Input validation shared by the suggestion engine and the batch rename applier.
"""

import re
from typing import Any

from qbit_renamer.exceptions import ValidationError
from qbit_renamer.models.torrent import MediaType

TORRENT_HASH_LENGTH = 40
_HASH_PATTERN = re.compile(rf"[0-9a-fA-F]{{{TORRENT_HASH_LENGTH}}}")


def validate_torrent_hash(torrent_hash: Any) -> str:
    """Ensures the value is a 40-character hexadecimal info hash."""
    if not isinstance(torrent_hash, str) or not _HASH_PATTERN.fullmatch(torrent_hash):
        raise ValidationError(
            "Validation error: \"torrentHash\" must be a "
            f"{TORRENT_HASH_LENGTH}-character hexadecimal string"
        )
    return torrent_hash


def validate_media_type(media_type: Any) -> MediaType:
    """Ensures the value is one of the supported media types."""
    try:
        return MediaType(media_type)
    except ValueError:
        allowed = ", ".join(m.value for m in MediaType)
        raise ValidationError(
            f"Validation error: \"type\" must be one of [{allowed}]"
        ) from None
