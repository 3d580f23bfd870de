"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from .torrent import MediaType

# Metadata databases and naming formats handed to FileBot, per media type
DEFAULT_DATABASES = {
    MediaType.TV: "TheTVDB",
    MediaType.MOVIE: "TheMovieDB",
}
DEFAULT_FORMAT = "{plex}"


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    # qBittorrent daemon
    qbittorrent_url: str
    qbittorrent_username: str = ""
    qbittorrent_password: str = ""
    max_auth_retries: int = 3
    max_retries: int = 2
    auth_timeout: float = 10.0
    request_timeout: float = 15.0
    max_connections: int = 10

    # FileBot
    filebot_path: str = "filebot"
    filebot_timeout: float = 30.0
    tv_database: str = DEFAULT_DATABASES[MediaType.TV]
    movie_database: str = DEFAULT_DATABASES[MediaType.MOVIE]
    tv_format: str = DEFAULT_FORMAT
    movie_format: str = DEFAULT_FORMAT

    # Request limits and caller-level timeouts
    max_path_length: int = 1000
    max_rename_batch_size: int = 100
    list_timeout: float = 60.0
    suggest_timeout: float = 60.0
    rename_timeout: float = 30.0

    # Web server
    host: str = "0.0.0.0"
    port: int = 3000
    rate_limit_window: float = 900.0
    rate_limit_max_requests: int = 100
    rate_limit_message: str = (
        "Too many requests from this IP, please try again later."
    )
    max_request_bytes: int = 10 * 1024 * 1024

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("qbittorrent_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensures the daemon URL is an http(s) URL without a trailing slash."""
        if not v:
            raise ValueError("qbittorrent_url cannot be empty.")
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"qbittorrent_url must start with http:// or https://, got: {v}"
            )
        return v.rstrip("/")

    @field_validator("max_auth_retries", "max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        """Keeps retry bounds small and non-negative."""
        if v < 0 or v > 10:
            raise ValueError("Retry limits must be between 0 and 10.")
        return v

    @field_validator(
        "auth_timeout",
        "request_timeout",
        "filebot_timeout",
        "list_timeout",
        "suggest_timeout",
        "rename_timeout",
        "rate_limit_window",
    )
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Every network and process call must have a positive bound."""
        if v <= 0:
            raise ValueError("Timeouts must be greater than zero.")
        return v

    @field_validator("max_connections")
    @classmethod
    def validate_connections(cls, v: int) -> int:
        """Ensures a reasonable connection pool size."""
        if v < 1 or v > 100:
            raise ValueError("max_connections must be between 1 and 100.")
        return v

    @field_validator(
        "max_path_length", "max_rename_batch_size", "rate_limit_max_requests"
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Limits must be at least 1.")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"Port must be between 1 and 65535, got: {v}")
        return v

    @model_validator(mode="after")
    def validate_filebot_settings(self) -> "AppConfig":
        """Checks that FileBot can be invoked with a database and a format."""
        if not self.filebot_path:
            raise ValueError("filebot_path cannot be empty.")
        for key in ("tv_database", "movie_database", "tv_format", "movie_format"):
            if not getattr(self, key):
                raise ValueError(f"'{key}' cannot be empty.")
        return self

    def database_for(self, media_type: MediaType) -> str:
        """Returns the FileBot metadata database for a media type."""
        return self.tv_database if media_type == MediaType.TV else self.movie_database

    def format_for(self, media_type: MediaType) -> str:
        """Returns the FileBot naming format for a media type."""
        return self.tv_format if media_type == MediaType.TV else self.movie_format

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
