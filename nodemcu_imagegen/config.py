"""Configuration settings for nodemcu_imagegen.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the NODEMCU_IMG_
    prefix. Relative paths are resolved against the working directory,
    which is normally the project checkout.
    """

    model_config = SettingsConfigDict(
        env_prefix="NODEMCU_IMG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Input layout
    firmware_dir: Path = Field(
        default=Path("firmware"),
        description="Core root of shared Lua modules",
    )
    site_dir: Path = Field(
        default=Path("site"),
        description="Site directory holding lib/ and devices/",
    )
    definition_filename: str = Field(
        default="firmware.json",
        description="Device definition document inside each device folder",
    )

    # Outputs
    dist_dir: Path = Field(
        default=Path("dist"),
        description="Output directory, cleared at the start of every build",
    )
    cache_dir: Path = Field(
        default=Path("imgcache"),
        description="Persistent cache of compiled LFS images",
    )

    # External tools
    luac_cross: str = Field(
        default="luac.cross",
        description="Lua cross compiler used to build LFS images",
    )
    luac_timeout: int = Field(
        default=300,
        ge=1,
        description="Timeout for a single luac.cross invocation (seconds)",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    @property
    def lib_dir(self) -> Path:
        """Directory of site library roots."""
        return self.site_dir / "lib"

    @property
    def devices_dir(self) -> Path:
        """Directory of device roots."""
        return self.site_dir / "devices"


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
