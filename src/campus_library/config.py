"""Configuration management for the Campus Library reservation service.

Settings are loaded from the environment (``CAMPUS_LIBRARY_`` prefix) or a
local ``.env`` file and validated with Pydantic v2:
1. Server metadata used by the MCP handshake
2. Database location
3. Listing defaults for the reservation query layer
4. Logging behaviour
"""

from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LibrarySettings(BaseSettings):
    """Runtime configuration for the reservation service.

    One instance is built at startup and shared through ``get_config()``.
    Tests construct their own instances and call ``reset_config()``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CAMPUS_LIBRARY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="campus-library",
        description="MCP server name used in protocol handshake",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version for capability negotiation",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    transport: str = Field(
        default="stdio",
        description="Transport used when running the MCP server",
        pattern=r"^(stdio|streamable_http)$",
    )

    # === Database Configuration ===

    database_path: Path = Field(
        default=Path("data/campus_library.db"),
        description="SQLite database file path",
    )

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides database_path when set",
    )

    # === Listing Defaults ===

    default_page_size: int = Field(
        default=10,
        description="Page size used when a listing request omits 'limit'",
        ge=1,
    )

    max_page_size: int = Field(
        default=100,
        description="Largest 'limit' a listing request may ask for",
        ge=1,
        le=1000,
    )

    # === Development Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lowercase level names from the environment."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("Server name must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Server name must not exceed 50 characters")
        return v

    @model_validator(mode="after")
    def validate_page_sizes(self) -> "LibrarySettings":
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size cannot exceed max_page_size")
        return self

    @property
    def is_development(self) -> bool:
        return self.debug or self.log_level == "DEBUG"

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: LibrarySettings | None = None


def get_config() -> LibrarySettings:
    """Get or create the process-wide configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = LibrarySettings()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
