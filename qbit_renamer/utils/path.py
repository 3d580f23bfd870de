"""
Utilities for sanitizing paths before they reach FileBot or the daemon.
"""

import posixpath
import re

from qbit_renamer.exceptions import InvalidPathError

# Shell metacharacters that are never allowed through
_DENYLIST_PATTERN = re.compile(r"[;&|`$(){}\[\]<>]")
_TRAVERSAL = ".."


def sanitize_path(path: str) -> str:
    """
    Normalizes a path and strips shell metacharacters and traversal sequences.

    Characters are stripped before `..` is removed so that split sequences
    such as `.;.` collapse instead of forming a new traversal.

    Args:
        path: A file path as reported by the daemon or submitted by a user.

    Returns:
        The sanitized path.

    Raises:
        InvalidPathError: If the input is not a non-empty string, or nothing
            is left after sanitization.
    """
    if not path or not isinstance(path, str):
        raise InvalidPathError("Invalid file path")

    sanitized = posixpath.normpath(path)
    sanitized = _DENYLIST_PATTERN.sub("", sanitized)
    sanitized = sanitized.replace(_TRAVERSAL, "")

    if not sanitized:
        raise InvalidPathError("Invalid file path after sanitization")
    return sanitized


def contains_traversal(path: str) -> bool:
    """Returns True if a parent-directory sequence survived in the path."""
    return _TRAVERSAL in path


def join_under(base: str, name: str) -> str:
    """
    Joins a relative name beneath a base directory.

    Leading separators are stripped from `name` so that an absolute-looking
    name can never replace `base`.
    """
    return posixpath.join(base, name.lstrip("/"))
