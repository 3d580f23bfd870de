"""
Applies a batch of file renames to a torrent through the daemon, one at a time.
"""

import logging
from typing import Any, Iterable, List, Tuple, Union

import aiohttp

from qbit_renamer.api.client import QBittorrentClient
from qbit_renamer.exceptions import (
    InvalidPathError,
    NoValidInputError,
    OperationTimeoutError,
    QbitRenamerError,
    ValidationError,
)
from qbit_renamer.models.config import AppConfig
from qbit_renamer.models.torrent import BatchResult, RenameResult, RenameSuggestion
from qbit_renamer.utils.path import contains_traversal, sanitize_path
from qbit_renamer.utils.timeouts import run_with_timeout
from qbit_renamer.utils.validation import validate_torrent_hash

log = logging.getLogger(__name__)

RenameEntry = Union[RenameSuggestion, dict]


def describe_error(error: Exception) -> str:
    """Turns a daemon call failure into a short description for the client."""
    if isinstance(error, aiohttp.ClientResponseError):
        return f"Request failed with status code {error.status}"
    if isinstance(error, OperationTimeoutError):
        return "Request timed out"
    if isinstance(error, QbitRenamerError):
        return str(error)
    if isinstance(error, aiohttp.ClientError):
        return "Could not reach qBittorrent"
    return "Unexpected error"


class BatchRenameApplier:
    """
    Validates, sanitizes and applies rename pairs.

    Renames run sequentially because the daemon does not guarantee that
    concurrent renames within one torrent are safe. Each rename is bounded by
    `rename_timeout` on its own, so a slow or failed entry never stops the
    remaining ones.
    """

    def __init__(self, api_client: QBittorrentClient, config: AppConfig):
        self.api_client = api_client
        self.config = config

    async def apply_renames(
        self, torrent_hash: str, renames: Iterable[RenameEntry]
    ) -> BatchResult:
        """
        Applies each rename and aggregates the per-entry outcomes.

        Raises:
            ValidationError: If the hash or the batch shape is invalid.
            NoValidInputError: If no entry survives sanitization.
        """
        torrent_hash = validate_torrent_hash(torrent_hash)
        pairs = self._validate_batch(renames)
        valid = self._sanitize_batch(pairs)
        if not valid:
            raise NoValidInputError("No valid renames after sanitization")

        results = []
        for old_path, new_path in valid:
            try:
                await run_with_timeout(
                    self.api_client.rename_file(torrent_hash, old_path, new_path),
                    self.config.rename_timeout,
                    f"Rename of {old_path}",
                )
                results.append(
                    RenameResult(success=True, old_path=old_path, new_path=new_path)
                )
            except Exception as e:
                log.error(f"Failed to rename {old_path}: {e}")
                results.append(
                    RenameResult(
                        success=False,
                        old_path=old_path,
                        new_path=new_path,
                        error=describe_error(e),
                    )
                )

        succeeded = sum(1 for r in results if r.success)
        failed = len(results) - succeeded
        message = f"{succeeded} files renamed successfully"
        if failed:
            message += f", {failed} failed"
        log.info(f"Torrent {torrent_hash}: {message}")

        return BatchResult(success=failed == 0, message=message, results=results)

    def _validate_batch(self, renames: Iterable[RenameEntry]) -> List[Tuple[str, str]]:
        if renames is None or isinstance(renames, (str, bytes, dict)):
            raise ValidationError('Validation error: "renames" must be an array')
        entries = list(renames)
        if not entries:
            raise ValidationError("No renames provided")
        limit = self.config.max_rename_batch_size
        if len(entries) > limit:
            raise ValidationError(
                f'Validation error: "renames" must contain less than or equal to '
                f"{limit} items"
            )
        return [self._validate_entry(i, entry) for i, entry in enumerate(entries)]

    def _validate_entry(self, index: int, entry: Any) -> Tuple[str, str]:
        if isinstance(entry, RenameSuggestion):
            old_path, new_path = entry.old_path, entry.new_path
        elif isinstance(entry, dict):
            old_path, new_path = entry.get("oldPath"), entry.get("newPath")
        else:
            raise ValidationError(
                f'Validation error: "renames[{index}]" must be an object'
            )

        max_length = self.config.max_path_length
        for field, value in (("oldPath", old_path), ("newPath", new_path)):
            if not isinstance(value, str) or not value:
                raise ValidationError(
                    f'Validation error: "renames[{index}].{field}" is required'
                )
            if len(value) > max_length:
                raise ValidationError(
                    f'Validation error: "renames[{index}].{field}" length must be '
                    f"less than or equal to {max_length} characters long"
                )
        return old_path, new_path

    def _sanitize_batch(self, pairs: List[Tuple[str, str]]) -> List[Tuple[str, str]]:
        valid = []
        for old_path, new_path in pairs:
            try:
                clean_old = sanitize_path(old_path)
                clean_new = sanitize_path(new_path)
            except InvalidPathError:
                log.warning(f"Skipping invalid rename: {old_path} -> {new_path}")
                continue

            if contains_traversal(clean_old) or contains_traversal(clean_new):
                log.warning(
                    f"Skipping potentially dangerous rename: {old_path} -> {new_path}"
                )
                continue
            valid.append((clean_old, clean_new))
        return valid
