"""omero-tiles configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
and .env files.
"""

from typing import TypeGuard

from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid.

    Example:
        >>> Settings(_env_file=None).require_omero_credentials()  # doctest: +ELLIPSIS
        Traceback (most recent call last):
        ...
        ConfigError: OMERO host not configured. Set it in .env file or
        OMERO_HOST environment variable.
    """

    def __init__(self, key_name: str, env_var: str) -> None:
        """Initialize configuration error.

        Args:
            key_name: Human-readable name of the missing key.
            env_var: Environment variable name to set.
        """
        self.key_name = key_name
        self.env_var = env_var
        message = (
            f"{key_name} not configured. "
            f"Set it in .env file or {env_var} environment variable."
        )
        super().__init__(message)


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # OMERO connection
    OMERO_HOST: str | None = None
    OMERO_PORT: int = 4064
    OMERO_USER: str | None = None
    OMERO_PASSWORD: str | None = None
    OMERO_GROUP_ID: int | None = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Retrieval
    MAX_TILE_EDGE: int = 5000  # Longest sub-tile edge requested from the server

    @staticmethod
    def _is_configured(value: str | None) -> TypeGuard[str]:
        return value is not None and value.strip() != ""

    def require_omero_credentials(self) -> tuple[str, str, str]:
        """Get OMERO host, user and password, raising ConfigError if unset.

        Returns:
            (host, user, password) tuple.

        Raises:
            ConfigError: If OMERO_HOST, OMERO_USER or OMERO_PASSWORD is
                not configured.
        """
        if not self._is_configured(self.OMERO_HOST):
            raise ConfigError("OMERO host", "OMERO_HOST")
        if not self._is_configured(self.OMERO_USER):
            raise ConfigError("OMERO user", "OMERO_USER")
        if not self._is_configured(self.OMERO_PASSWORD):
            raise ConfigError("OMERO password", "OMERO_PASSWORD")
        return self.OMERO_HOST, self.OMERO_USER, self.OMERO_PASSWORD


# Singleton instance for import convenience
settings = Settings()
