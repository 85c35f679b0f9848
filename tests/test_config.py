"""Tests for specsync.config -- XDG paths, atomic writes, precedence, credentials."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from specsync.config import (
    atomic_write,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    load_global_config,
    load_project_config,
    resolve_credential,
    resolve_scan_config,
    save_global_config,
)
from specsync.exceptions import ConfigError
from specsync.models import GlobalConfig, OutputConfig, ScanConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("specsync.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "specsync"
        assert result.is_dir()

    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_config"
        monkeypatch.setattr("specsync.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(custom))

        assert get_config_dir() == custom / "specsync"

    def test_cache_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_cache"
        monkeypatch.setattr("specsync.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(custom))

        result = get_cache_dir()
        assert result == custom / "specsync"
        assert result.is_dir()

    def test_data_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("specsync.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_data_dir() == tmp_path / ".local" / "share" / "specsync"


class TestXDGPathsFallback:
    """Fallback paths on non-XDG platforms (macOS, Windows)."""

    def test_config_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("specsync.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".specsync"

    def test_cache_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("specsync.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_cache_dir() == tmp_path / ".specsync" / "cache"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        atomic_write(target, "hello world")
        assert target.read_text(encoding="utf-8") == "hello world"

    def test_writes_bytes_verbatim(self, tmp_path: Path) -> None:
        target = tmp_path / "spec.yaml"
        payload = b"openapi: 3.0.0\r\ninfo: {}\n"
        atomic_write(target, payload)
        assert target.read_bytes() == payload

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        target.write_text("old content", encoding="utf-8")
        atomic_write(target, "new content")
        assert target.read_text(encoding="utf-8") == "new content"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "c" / "test.txt"
        atomic_write(target, "deep write")
        assert target.read_text(encoding="utf-8") == "deep write"

    def test_no_temp_files_left_on_success(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        atomic_write(target, "content")
        assert list(tmp_path.iterdir()) == [target]

    def test_failure_keeps_old_content_and_cleans_up(self, tmp_path: Path) -> None:
        target = tmp_path / "registry.json"
        target.write_text("[]", encoding="utf-8")
        with patch("specsync.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                atomic_write(target, "will fail")

        assert target.read_text(encoding="utf-8") == "[]"
        assert [f for f in tmp_path.iterdir() if ".tmp" in f.name] == []


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_load_returns_defaults_when_missing(self, isolated_config: Path) -> None:
        cfg = load_global_config()
        assert cfg == GlobalConfig()
        assert cfg.scan.registry == "registry.json"
        assert cfg.output.format == "auto"

    def test_save_and_load_roundtrip(self, isolated_config: Path) -> None:
        original = GlobalConfig(
            scan=ScanConfig(registry="catalogue.json", concurrency=2),
            output=OutputConfig(format="json"),
        )
        save_global_config(original)
        assert load_global_config() == original

    def test_load_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        path = isolated_config / "config" / "specsync" / "config.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{invalid json!!!", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()

    def test_load_invalid_schema_raises_config_error(self, isolated_config: Path) -> None:
        _write_json(
            isolated_config / "config" / "specsync" / "config.json",
            {"scan": {"concurrency": "many"}},
        )
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()


# ---------------------------------------------------------------------------
# Project-local config
# ---------------------------------------------------------------------------


class TestProjectConfig:
    def test_load_returns_none_when_missing(self, isolated_config: Path) -> None:
        assert load_project_config() is None

    def test_load_valid_project_config(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "specsync.json", {"scan": {"registry": "c.json"}})
        assert load_project_config() == {"scan": {"registry": "c.json"}}

    def test_load_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        (isolated_config / "specsync.json").write_text("broken{", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config()

    def test_non_object_rejected(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "specsync.json", ["scan"])
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_project_config()


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveScanConfig:
    """CLI > env > project > global > defaults."""

    def test_defaults(self, isolated_config: Path) -> None:
        assert resolve_scan_config() == ScanConfig()

    def test_global_applies(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(scan=ScanConfig(output_dir="specs")))
        assert resolve_scan_config().output_dir == "specs"

    def test_project_overrides_global(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(scan=ScanConfig(output_dir="specs", concurrency=3)))
        _write_json(isolated_config / "specsync.json", {"scan": {"output_dir": "openapi-local"}})

        config = resolve_scan_config()
        assert config.output_dir == "openapi-local"
        assert config.concurrency == 3

    def test_env_overrides_project(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_json(isolated_config / "specsync.json", {"scan": {"registry": "project.json"}})
        monkeypatch.setenv("SPECSYNC_REGISTRY", "env.json")
        assert resolve_scan_config().registry == "env.json"

    def test_cli_overrides_env(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SPECSYNC_REGISTRY", "env.json")
        assert resolve_scan_config(registry="cli.json").registry == "cli.json"

    def test_none_cli_values_ignored(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SPECSYNC_OUTPUT_DIR", "env-out")
        assert resolve_scan_config(output_dir=None).output_dir == "env-out"

    def test_invalid_merged_value(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid scan settings"):
            resolve_scan_config(concurrency=0)

    def test_project_scan_section_must_be_object(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "specsync.json", {"scan": "registry.json"})
        with pytest.raises(ConfigError, match="must be an object"):
            resolve_scan_config()


# ---------------------------------------------------------------------------
# Credential resolution
# ---------------------------------------------------------------------------


class TestResolveCredential:
    def test_env_source(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECSYNC_TEST_TOKEN", "  ghp_abc \n")
        assert resolve_credential("env:SPECSYNC_TEST_TOKEN") == "ghp_abc"

    def test_env_source_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SPECSYNC_TEST_TOKEN", raising=False)
        with pytest.raises(ConfigError, match="not set"):
            resolve_credential("env:SPECSYNC_TEST_TOKEN")

    def test_empty_env_value_is_empty_credential(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECSYNC_TEST_TOKEN", "")
        assert resolve_credential("env:SPECSYNC_TEST_TOKEN") == ""

    def test_file_source(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        token_file.write_text("ghp_from_file\n", encoding="utf-8")
        assert resolve_credential(f"file:{token_file}") == "ghp_from_file"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'absent'}")

    def test_unknown_scheme(self) -> None:
        with pytest.raises(ConfigError, match="Unknown credential source"):
            resolve_credential("vault:github")
