"""Tests for builds/lfs.py module.

Tests luac.cross command composition, the content-addressed image cache
and swapping bundled scripts for the image entry.
Uses mocked subprocess for compiler execution.
"""

import hashlib
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from nodemcu_imagegen.builds.cache_key import compute_lfs_cache_key
from nodemcu_imagegen.builds.lfs import (
    bundle_lfs_scripts,
    compose_luac_command,
    ensure_lfs_image,
    run_luac,
)
from nodemcu_imagegen.errors import ExternalToolError
from nodemcu_imagegen.roots.index import build_root
from nodemcu_imagegen.types import FileEntry, RootKind


def fake_luac(cmd, **kwargs):
    """Stand-in for luac.cross that writes the sources' names as output."""
    output = Path(cmd[3])
    output.write_bytes(b"LFS:" + ",".join(cmd[4:]).encode())
    return MagicMock(returncode=0, stdout="", stderr="")


@pytest.fixture
def make_script(write_file):
    """Write a script and return its entry."""

    def _make_script(base: Path, name: str, content: str) -> FileEntry:
        path = write_file(base, name, content)
        return FileEntry(
            path=name,
            base=base,
            hash=hashlib.sha1(path.read_bytes()).hexdigest(),
        )

    return _make_script


class TestComposeLuacCommand:
    """Tests for compose_luac_command function."""

    def test_command(self):
        """Should build a flash-image compile command."""
        cmd = compose_luac_command(
            "luac.cross", Path("out.img"), [Path("a.lua"), Path("b.lua")]
        )
        assert cmd == ["luac.cross", "-f", "-o", "out.img", "a.lua", "b.lua"]


class TestRunLuac:
    """Tests for run_luac function."""

    def test_success(self, tmp_path):
        """A zero exit status is success."""
        with patch("nodemcu_imagegen.builds.lfs.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
            run_luac([tmp_path / "a.lua"], tmp_path / "out.img", timeout=5)

        args, kwargs = mock_run.call_args
        assert args[0][0] == "luac.cross"
        assert kwargs["timeout"] == 5

    def test_non_zero_exit(self, tmp_path):
        """A failing compile raises ExternalToolError with stderr."""
        with patch("nodemcu_imagegen.builds.lfs.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(
                returncode=1, stdout="", stderr="a.lua:3: syntax error"
            )
            with pytest.raises(ExternalToolError) as exc_info:
                run_luac([tmp_path / "a.lua"], tmp_path / "out.img")

        assert exc_info.value.exit_code == 1
        assert "syntax error" in str(exc_info.value)

    def test_missing_tool(self, tmp_path):
        """A compiler that cannot start raises ExternalToolError."""
        with patch(
            "nodemcu_imagegen.builds.lfs.subprocess.run",
            side_effect=FileNotFoundError("luac.cross"),
        ):
            with pytest.raises(ExternalToolError) as exc_info:
                run_luac([tmp_path / "a.lua"], tmp_path / "out.img")

        assert exc_info.value.code == "external_tool_error"

    def test_timeout(self, tmp_path):
        """A hung compiler raises ExternalToolError."""
        with patch(
            "nodemcu_imagegen.builds.lfs.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="luac.cross", timeout=1),
        ):
            with pytest.raises(ExternalToolError) as exc_info:
                run_luac([tmp_path / "a.lua"], tmp_path / "out.img", timeout=1)

        assert exc_info.value.exit_code == -1


class TestEnsureLfsImage:
    """Tests for ensure_lfs_image function."""

    def test_miss_compiles_and_caches(self, tmp_path, settings, make_script):
        """A cache miss compiles into the keyed cache path."""
        entries = [
            make_script(tmp_path / "lib", "b.lua", "b"),
            make_script(tmp_path / "lib", "a.lua", "a"),
        ]

        with patch(
            "nodemcu_imagegen.builds.lfs.subprocess.run", side_effect=fake_luac
        ) as mock_run:
            cached = ensure_lfs_image(entries, "lamp01", settings)

        key = compute_lfs_cache_key({e.path: e.hash for e in entries})
        assert cached == settings.cache_dir / f"lamp01-lfs.img.{key}"
        assert cached.is_file()
        sources = mock_run.call_args.args[0][4:]
        assert [Path(s).name for s in sources] == ["a.lua", "b.lua"]
        assert not list(settings.cache_dir.glob(".*.tmp"))

    def test_hit_skips_compiler(self, tmp_path, settings, write_file, make_script):
        """An existing cached image is reused without compiling."""
        entries = [make_script(tmp_path / "lib", "a.lua", "a")]
        key = compute_lfs_cache_key({"a.lua": entries[0].hash})
        cached = write_file(settings.cache_dir, f"lamp01-lfs.img.{key}", b"cached")

        with patch("nodemcu_imagegen.builds.lfs.subprocess.run") as mock_run:
            result = ensure_lfs_image(entries, "lamp01", settings)

        mock_run.assert_not_called()
        assert result == cached
        assert cached.read_bytes() == b"cached"

    def test_failure_leaves_no_cache_entry(self, tmp_path, settings, make_script):
        """A failed compile stores nothing."""
        entries = [make_script(tmp_path / "lib", "a.lua", "a")]

        with patch("nodemcu_imagegen.builds.lfs.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=2, stdout="", stderr="bad")
            with pytest.raises(ExternalToolError):
                ensure_lfs_image(entries, "lamp01", settings)

        assert list(settings.cache_dir.iterdir()) == []

class TestBundleLfsScripts:
    """Tests for bundle_lfs_scripts function."""

    @pytest.fixture
    def net(self, settings, write_file):
        """An LFS library with two scripts and one asset."""
        lib = settings.lib_dir / "net"
        write_file(lib, "wifi.lua", "-- datafile: x.bin\n")
        write_file(lib, "mqtt.lua", "-- datafile: w.bin\n-- datafile: x.bin\n")
        write_file(lib, "page.html", "<html>")
        return build_root(lib, "net", RootKind.LIBRARY)

    def test_bundles_every_library_script(self, settings, net, make_script):
        """All scripts of the library are compiled, resolved or not."""
        files = {"init.lua": make_script(settings.firmware_dir, "init.lua", "x")}

        with patch(
            "nodemcu_imagegen.builds.lfs.subprocess.run", side_effect=fake_luac
        ) as mock_run:
            bundle_lfs_scripts(files, [net], "lamp01", settings)

        sources = [Path(s).name for s in mock_run.call_args.args[0][4:]]
        assert sources == ["mqtt.lua", "wifi.lua"]
        assert sorted(files) == ["init.lua", "lamp01-lfs.img", "page.html"]
        assert files["page.html"].base == net.base_path

    def test_resolved_scripts_are_swapped(self, settings, net):
        """Scripts already resolved from the library leave the loose set."""
        files = {"wifi.lua": net.files["wifi.lua"]}

        with patch(
            "nodemcu_imagegen.builds.lfs.subprocess.run", side_effect=fake_luac
        ):
            bundle_lfs_scripts(files, [net], "lamp01", settings)

        assert "wifi.lua" not in files
        image = files["lamp01-lfs.img"]
        assert image.datafiles == ("w.bin", "x.bin")
        assert image.source_path.parent == settings.cache_dir
        assert image.hash == hashlib.sha1(image.source_path.read_bytes()).hexdigest()

    def test_scripts_from_other_roots_stay_loose(self, settings, net, make_script):
        """A same-named core script is not touched."""
        core_wifi = make_script(settings.firmware_dir, "wifi.lua", "core")
        files = {"wifi.lua": core_wifi}

        with patch(
            "nodemcu_imagegen.builds.lfs.subprocess.run", side_effect=fake_luac
        ):
            bundle_lfs_scripts(files, [net], "lamp01", settings)

        assert files["wifi.lua"] is core_wifi
        assert "lamp01-lfs.img" in files

    def test_first_library_wins_on_same_path(self, settings, net, write_file):
        """Declared order decides which copy of a script is bundled."""
        write_file(settings.lib_dir / "extra", "wifi.lua", "other")
        extra = build_root(settings.lib_dir / "extra", "extra", RootKind.LIBRARY)

        with patch(
            "nodemcu_imagegen.builds.lfs.subprocess.run", side_effect=fake_luac
        ) as mock_run:
            bundle_lfs_scripts({}, [extra, net], "lamp01", settings)

        sources = mock_run.call_args.args[0][4:]
        assert str(extra.base_path / "wifi.lua") in sources
        assert str(net.base_path / "wifi.lua") not in sources

    def test_library_without_scripts(self, settings, write_file):
        """Assets still ship when there is nothing to compile."""
        write_file(settings.lib_dir / "www", "index.html", "<html>")
        www = build_root(settings.lib_dir / "www", "www", RootKind.LIBRARY)
        files: dict[str, FileEntry] = {}

        with patch("nodemcu_imagegen.builds.lfs.subprocess.run") as mock_run:
            bundle_lfs_scripts(files, [www], "lamp01", settings)

        mock_run.assert_not_called()
        assert list(files) == ["index.html"]
