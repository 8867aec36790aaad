"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles the user-level configuration for basalt:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.basalt/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~basalt.models.GlobalConfig`
  JSON file storing request settings and the ``no_input`` default.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the global config into the effective
  configuration.
* **Companion CLI config** -- :func:`glab_config_path` locates the config
  file the ``glab`` CLI stores its per-host tokens in.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from basalt.exceptions import ConfigError
from basalt.models import GlobalConfig

_APP_NAME = "basalt"
_CONFIG_FILENAME = "config.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/basalt/`` (default ``~/.config/basalt/``).
    On macOS/Windows: ``~/.basalt/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/basalt/`` (default ``~/.local/share/basalt/``).
    On macOS/Windows: ``~/.basalt/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def glab_config_path() -> Path:
    """Return the path of the ``glab`` CLI config file.

    ``$GLAB_CONFIG_DIR/config.yml`` when that variable is set, otherwise
    ``~/.config/glab-cli/config.yml``. The file may not exist.
    """
    override = os.environ.get("GLAB_CONFIG_DIR", "")
    if override:
        return Path(override).expanduser() / "config.yml"
    return Path.home() / ".config" / "glab-cli" / "config.yml"


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is
    given it is applied to the temp file before any content is written,
    so the final file never exists with looser permissions.
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
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
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
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~basalt.models.GlobalConfig`, or a default
        instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
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


# --- Precedence resolution ---


def _env_bool(name: str) -> Optional[bool]:
    raw = os.environ.get(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {raw!r}")


def _env_float(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"Invalid number for {name}: {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def resolve_config(
    cli_timeout: Optional[float] = None,
    cli_no_input: Optional[bool] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_timeout``, ``cli_no_input``)
        2. Environment variables (``BASALT_TIMEOUT``, ``BASALT_VERIFY_SSL``,
           ``BASALT_NO_INPUT``)
        3. User config (``~/.config/basalt/config.json``)
        4. Defaults

    Returns:
        The effective :class:`~basalt.models.GlobalConfig`.

    Raises:
        ConfigError: If the config file or an environment override is invalid.
    """
    config = load_global_config()

    env_timeout = _env_float("BASALT_TIMEOUT")
    if env_timeout is not None:
        config.request.timeout = env_timeout
    env_verify = _env_bool("BASALT_VERIFY_SSL")
    if env_verify is not None:
        config.request.verify_ssl = env_verify
    env_no_input = _env_bool("BASALT_NO_INPUT")
    if env_no_input is not None:
        config.no_input = env_no_input

    if cli_timeout is not None:
        if cli_timeout <= 0:
            raise ConfigError(f"--timeout must be positive, got {cli_timeout}")
        config.request.timeout = cli_timeout
    if cli_no_input:
        config.no_input = True

    return config
