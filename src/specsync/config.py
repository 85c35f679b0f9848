"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for specsync:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.specsync/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~specsync.models.GlobalConfig`
  JSON file storing scan defaults (catalogue path, output tree, timeouts).
* **Precedence resolution** -- :func:`resolve_scan_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  effective :class:`~specsync.models.ScanConfig`.
* **Credential resolution** -- :func:`resolve_credential` reads the host
  token from an environment variable or a file.

All file writes, including the catalogue rewrite and materialized specs, use
the atomic temp-file-then-rename strategy of :func:`atomic_write`.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from specsync.exceptions import ConfigError
from specsync.models import GlobalConfig, ScanConfig

_APP_NAME = "specsync"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "specsync.json"

_ENV_OVERRIDES = {
    "SPECSYNC_REGISTRY": "registry",
    "SPECSYNC_OUTPUT_DIR": "output_dir",
    "SPECSYNC_TOKEN_SOURCE": "token_source",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/specsync/`` (default ``~/.config/specsync/``).
    On macOS/Windows: ``~/.specsync/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory (catalogue locks), creating it if necessary.

    On Linux/BSD: ``$XDG_CACHE_HOME/specsync/`` (default ``~/.cache/specsync/``).
    On macOS/Windows: ``~/.specsync/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/specsync/`` (default ``~/.local/share/specsync/``).
    On macOS/Windows: ``~/.specsync/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: Union[str, bytes]) -> None:
    """Write *data* to *path* atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. Readers see either
    the old file or the new one, never a partial write. On any failure the
    temp file is removed and the exception propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = data.encode("utf-8") if isinstance(data, str) else data
    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = fd.name
        fd.write(payload)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~specsync.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./specsync.json``.

    The file holds a partial ``scan`` section, e.g.
    ``{"scan": {"registry": "connectors/registry.json"}}``, letting a
    repository pin its catalogue and output tree.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def resolve_scan_config(**cli_overrides: Any) -> ScanConfig:
    """Resolve the effective scan settings.

    Precedence (high to low):
        1. CLI flags (keyword arguments; ``None`` values are ignored)
        2. Environment variables (``SPECSYNC_REGISTRY``,
           ``SPECSYNC_OUTPUT_DIR``, ``SPECSYNC_TOKEN_SOURCE``)
        3. Project config (``./specsync.json``)
        4. User config (``~/.config/specsync/config.json``)
        5. Defaults

    Raises:
        ConfigError: If a config file is invalid or the merged settings fail
            validation.
    """
    merged = load_global_config().scan.model_dump()

    project = load_project_config()
    if project is not None:
        project_scan = project.get("scan", {})
        if not isinstance(project_scan, dict):
            raise ConfigError("Project config 'scan' section must be an object")
        merged.update(project_scan)

    for env_var, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            merged[key] = value

    merged.update({k: v for k, v in cli_overrides.items() if v is not None})

    try:
        return ScanConfig.model_validate(merged)
    except ValueError as exc:
        raise ConfigError(f"Invalid scan settings: {exc}") from exc


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace

    Returns:
        The credential string; may be empty if the source holds an empty value.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value.strip()

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    raise ConfigError(f"Unknown credential source format: {source}")
