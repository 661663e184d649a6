"""Tests for configuration module."""

import json
import os
from pathlib import Path
from unittest.mock import patch

from nodemcu_imagegen.config import Settings, get_settings, print_settings_json


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should default to the conventional checkout layout."""
        settings = Settings()

        assert settings.firmware_dir == Path("firmware")
        assert settings.site_dir == Path("site")
        assert settings.dist_dir == Path("dist")
        assert settings.cache_dir == Path("imgcache")
        assert settings.definition_filename == "firmware.json"
        assert settings.luac_cross == "luac.cross"
        assert settings.log_level == "INFO"

    def test_derived_directories(self) -> None:
        """lib and devices directories live under the site directory."""
        settings = Settings(site_dir=Path("/srv/site"))

        assert settings.lib_dir == Path("/srv/site/lib")
        assert settings.devices_dir == Path("/srv/site/devices")

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "NODEMCU_IMG_DIST_DIR": "/tmp/out",
                "NODEMCU_IMG_LOG_LEVEL": "DEBUG",
                "NODEMCU_IMG_LUAC_CROSS": "/opt/nodemcu/luac.cross",
            },
        ):
            settings = Settings()
            assert settings.dist_dir == Path("/tmp/out")
            assert settings.log_level == "DEBUG"
            assert settings.luac_cross == "/opt/nodemcu/luac.cross"


class TestGetSettings:
    """Test get_settings function."""

    def test_get_settings_returns_settings(self) -> None:
        """get_settings should return a Settings instance."""
        assert isinstance(get_settings(), Settings)


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_print_settings_json(self) -> None:
        """print_settings_json should return valid JSON."""
        parsed = json.loads(print_settings_json(Settings()))

        assert "firmware_dir" in parsed
        assert "site_dir" in parsed
        assert "dist_dir" in parsed
        assert "cache_dir" in parsed

    def test_print_settings_json_default(self) -> None:
        """print_settings_json without args should use default settings."""
        parsed = json.loads(print_settings_json())
        assert "luac_cross" in parsed
