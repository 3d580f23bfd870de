"""
Parses FileBot's textual output into rename suggestions.

FileBot has no formal output grammar, so parsing is tolerant: any line that
does not look like a rename is skipped. Keep format knowledge in this module
only.
"""

import re
from typing import List

from qbit_renamer.models.torrent import RenameSuggestion

RENAME_SEPARATOR = " -> "
_TEST_MARKER = re.compile(r"^\[TEST\]\s*")


def parse_rename_output(output: str) -> List[RenameSuggestion]:
    """
    Extracts `old -> new` pairs from FileBot output, in order of appearance.

    A leading `[TEST]` marker is removed from the old path. Pairs with an
    empty side are dropped. An empty list means no renames are needed.
    """
    if not output or not isinstance(output, str):
        return []

    suggestions = []
    for line in output.splitlines():
        if RENAME_SEPARATOR not in line:
            continue

        old_path, _, new_path = line.partition(RENAME_SEPARATOR)
        old_path = _TEST_MARKER.sub("", old_path.strip()).strip()
        new_path = new_path.strip()

        if old_path and new_path:
            suggestions.append(RenameSuggestion(old_path=old_path, new_path=new_path))
    return suggestions
