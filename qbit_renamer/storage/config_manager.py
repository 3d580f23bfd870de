"""
Manages loading, validation, and migration of the INI configuration file,
with environment variable overrides.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from qbit_renamer.exceptions import ConfigurationError
from qbit_renamer.models.config import AppConfig

log = logging.getLogger(__name__)

PLACEHOLDER_URL = "http://localhost:8080"


def _from_ms(value: str) -> float:
    return int(value) / 1000


# Environment variable -> (config key, converter)
ENV_OVERRIDES: dict[str, tuple[str, Callable[[str], Any]]] = {
    "QBITTORRENT_URL": ("qbittorrent_url", str),
    "QBITTORRENT_USERNAME": ("qbittorrent_username", str),
    "QBITTORRENT_PASSWORD": ("qbittorrent_password", str),
    "QB_MAX_AUTH_RETRIES": ("max_auth_retries", int),
    "QB_MAX_RETRIES": ("max_retries", int),
    "QB_AUTH_TIMEOUT_MS": ("auth_timeout", _from_ms),
    "QB_REQUEST_TIMEOUT_MS": ("request_timeout", _from_ms),
    "FILEBOT_PATH": ("filebot_path", str),
    "FILEBOT_TIMEOUT_MS": ("filebot_timeout", _from_ms),
    "FILEBOT_TV_DATABASE": ("tv_database", str),
    "FILEBOT_MOVIE_DATABASE": ("movie_database", str),
    "FILEBOT_TV_FORMAT": ("tv_format", str),
    "FILEBOT_MOVIE_FORMAT": ("movie_format", str),
    "MAX_PATH_LENGTH": ("max_path_length", int),
    "MAX_RENAME_BATCH_SIZE": ("max_rename_batch_size", int),
    "PORT": ("port", int),
    "RATE_LIMIT_WINDOW_MS": ("rate_limit_window", _from_ms),
    "RATE_LIMIT_MAX_REQUESTS": ("rate_limit_max_requests", int),
    "RATE_LIMIT_MESSAGE": ("rate_limit_message", str),
}

SENSITIVE_KEYS = {"qbittorrent_password"}


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path, environ: Mapping[str, str] | None = None):
        self.config_file_path = config_file_path
        self.environ = os.environ if environ is None else environ
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> AppConfig:
        """
        Loads configuration from the INI file, applies environment and CLI
        overrides (in that order), and validates it.

        Without a config file, the environment alone is used as long as it
        names the daemon URL.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated AppConfig object.

        Raises:
            ConfigurationError: If no configuration is available, or parsing or
            validation fails.
        """
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(f"Error parsing configuration file: {e}") from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            settings = self._get_config_as_dict()
        elif "QBITTORRENT_URL" in self.environ:
            log.debug("No configuration file found; using environment variables.")
            settings = {}
        else:
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'qbit-renamer init' first or set QBITTORRENT_URL."
            )

        settings.update(self._get_env_overrides())
        if cli_options:
            settings.update(cli_options)

        try:
            return AppConfig(
                **settings, config_path=str(self.config_file_path.parent)
            )
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save.
        """
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        defaults = self._defaults()
        for key in sorted(AppConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            if value is not None:
                config["DEFAULT"][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the known keys of the 'DEFAULT' section into a dictionary."""
        section = self._parser["DEFAULT"]
        known_keys = AppConfig.get_ini_keys()
        unknown = set(section) - known_keys
        if unknown:
            log.warning(f"Ignoring unknown configuration keys: {', '.join(sorted(unknown))}")
        return {key: section[key] for key in known_keys if key in section}

    def _get_env_overrides(self) -> dict[str, Any]:
        overrides = {}
        for env_name, (key, convert) in ENV_OVERRIDES.items():
            raw = self.environ.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                overrides[key] = convert(raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for environment variable {env_name}: {raw!r}"
                ) from e
        return overrides

    def _defaults(self) -> AppConfig:
        return AppConfig.model_construct(qbittorrent_url=PLACEHOLDER_URL)

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = self._defaults()
        needs_saving = False

        config_section = self._parser["DEFAULT"]

        for key in sorted(AppConfig.get_ini_keys()):
            if key in config_section or key == "qbittorrent_url":
                continue
            config_section[key] = str(getattr(defaults, key))
            needs_saving = True
            log.debug(
                f"Migrating config: added missing key '{key}' with "
                f"value '{config_section[key]}'."
            )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
