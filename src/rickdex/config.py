"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for rickdex:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.rickdex/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`, :func:`get_store_dir`.
* **Global config** -- A single :class:`~rickdex.models.GlobalConfig`
  JSON file storing the API base URL, request settings, output format and
  store location.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the config file into the effective
  configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`), which the sync-metadata store reuses so that a
crash never leaves a half-written metadata file behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from rickdex.exceptions import ConfigError
from rickdex.models import GlobalConfig

_APP_NAME = "rickdex"
_CONFIG_FILENAME = "config.json"

ENV_BASE_URL = "RICKDEX_BASE_URL"
ENV_STORE_DIR = "RICKDEX_STORE_DIR"


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/rickdex/`` (default ``~/.config/rickdex/``).
    On macOS/Windows: ``~/.rickdex/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the entity store and sync metadata. Everything here can be
    deleted at any time; the next run simply behaves as a first run.

    On Linux/BSD: ``$XDG_CACHE_HOME/rickdex/`` (default ``~/.cache/rickdex/``).
    On macOS/Windows: ``~/.rickdex/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs, exports), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/rickdex/`` (default ``~/.local/share/rickdex/``).
    On macOS/Windows: ``~/.rickdex/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_store_dir(config: GlobalConfig) -> Path:
    """Return the entity store directory for *config*, creating it if necessary.

    Uses ``config.store.directory`` when set, otherwise ``<cache dir>/store``.
    """
    if config.store.directory:
        path = Path(config.store.directory).expanduser()
    else:
        path = get_cache_dir() / "store"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
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
        The deserialised :class:`~rickdex.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_base_url``, ``cli_format``)
        2. Environment variables (``RICKDEX_BASE_URL``, ``RICKDEX_STORE_DIR``)
        3. User config (``~/.config/rickdex/config.json``)
        4. Defaults

    Returns:
        The effective :class:`~rickdex.models.GlobalConfig`. The file on
        disk is never modified.
    """
    config = load_global_config()

    env_base_url = os.environ.get(ENV_BASE_URL)
    if env_base_url:
        config.base_url = env_base_url
    env_store_dir = os.environ.get(ENV_STORE_DIR)
    if env_store_dir:
        config.store.directory = env_store_dir

    if cli_base_url is not None:
        config.base_url = cli_base_url
    if cli_format is not None:
        config.output.format = cli_format

    config.base_url = config.base_url.rstrip("/")
    return config
