"""
Generates rename suggestions for a torrent's files by running FileBot in test mode.
"""

import logging
from typing import Any, Dict, List

from qbit_renamer.api.client import QBittorrentClient
from qbit_renamer.exceptions import (
    ExternalToolError,
    InvalidPathError,
    NotFoundError,
    NoValidInputError,
)
from qbit_renamer.models.config import AppConfig
from qbit_renamer.models.torrent import MediaType, RenameSuggestion, SuggestionReport
from qbit_renamer.utils.path import join_under, sanitize_path
from qbit_renamer.utils.process import run_command
from qbit_renamer.utils.validation import validate_media_type, validate_torrent_hash

from .output_parser import parse_rename_output

log = logging.getLogger(__name__)


class SuggestionEngine:
    """
    Builds FileBot's argument vector from a torrent's files and parses the result.

    FileBot always runs with `--action test`, so nothing on disk is touched at
    this stage.
    """

    def __init__(self, api_client: QBittorrentClient, config: AppConfig):
        self.api_client = api_client
        self.config = config

    async def suggest(self, torrent_hash: str, media_type: str) -> List[RenameSuggestion]:
        """Returns the rename suggestions for a torrent, in FileBot's output order."""
        report = await self.generate(torrent_hash, media_type)
        return report.suggestions

    async def generate(self, torrent_hash: str, media_type: str) -> SuggestionReport:
        """
        Runs FileBot against a torrent's files and returns suggestions plus raw output.

        Raises:
            ValidationError: For a malformed hash or an unknown media type.
            NotFoundError: If the daemon reports no files or no save path.
            NoValidInputError: If every file fails path sanitization.
            OperationTimeoutError: If FileBot exceeds its timeout.
            ExternalToolError: If FileBot cannot start or exits non-zero.
        """
        torrent_hash = validate_torrent_hash(torrent_hash)
        media = validate_media_type(media_type)

        files = await self.api_client.fetch_torrent_files(torrent_hash)
        if not files:
            raise NotFoundError("No files found for this torrent")

        properties = await self.api_client.fetch_torrent_properties(torrent_hash)
        save_path = self._sanitized_save_path(properties)

        paths = self._candidate_paths(save_path, files)
        if not paths:
            raise NoValidInputError("No valid files found after sanitization")

        command = self.build_command(paths, media)
        log.info(
            f"Requesting {media.value} rename suggestions for {len(paths)} file(s) "
            f"of torrent {torrent_hash}"
        )
        result = await run_command(command, timeout=self.config.filebot_timeout)

        if result.returncode != 0:
            log.error(
                f"FileBot exited with status {result.returncode}: "
                f"{result.stderr.strip()}"
            )
            raise ExternalToolError("FileBot execution failed")
        if result.stderr.strip():
            log.debug(f"FileBot stderr: {result.stderr.strip()}")

        suggestions = parse_rename_output(result.stdout)
        log.info(f"FileBot proposed {len(suggestions)} rename(s) for {torrent_hash}")
        return SuggestionReport(suggestions=suggestions, output=result.stdout)

    def build_command(self, paths: List[str], media_type: MediaType) -> List[str]:
        """Builds FileBot's argument vector. Each value is its own element."""
        return [
            self.config.filebot_path,
            "-rename",
            *paths,
            "--db",
            self.config.database_for(media_type),
            "--format",
            self.config.format_for(media_type),
            "--action",
            "test",
            "-non-strict",
        ]

    def _sanitized_save_path(self, properties: Dict[str, Any]) -> str:
        save_path = (properties or {}).get("save_path")
        try:
            return sanitize_path(save_path)
        except InvalidPathError:
            raise NotFoundError("Could not determine torrent save path") from None

    def _candidate_paths(self, save_path: str, files: List[Dict[str, Any]]) -> List[str]:
        paths = []
        for file in files:
            name = file.get("name")
            try:
                paths.append(join_under(save_path, sanitize_path(name)))
            except InvalidPathError:
                log.warning(f"Skipping invalid file: {name!r}")
        return paths
