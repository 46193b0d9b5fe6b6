import os
import sys
import logging
import tempfile
from pathlib import Path
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

import hudson_desktop.settings as default_settings

log = logging.getLogger(__name__)


def _non_blank(value: Optional[str]) -> Optional[str]:
    """Returns the stripped value, or None when it is unset or whitespace only."""
    if value is None or not value.strip():
        return None
    return value.strip()


def is_truthy(value: Optional[str]) -> bool:
    """Interprets an environment flag the way the rest of the settings do."""
    return value is not None and value.strip().lower() in default_settings.TRUTHY_VALUES


@dataclass(frozen=True)
class SidecarConfig:
    """
    A snapshot of the environment overrides that shape one boot attempt.

    Precedence follows the settings module:
    1. Base values from `settings.py`.
    2. Overrides from a `.env` file (loaded by `python-dotenv` in settings.py).
    3. Overrides from the process environment at the time of the snapshot.
    """
    backend_bin: Optional[Path] = None
    backend_args: Optional[Tuple[str, ...]] = None
    enable_neon: bool = False
    neon_credentials_path: Optional[str] = None
    handshake_path: Optional[Path] = None
    resource_dir: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SidecarConfig":
        """
        Builds a configuration snapshot from an environment mapping.

        :param environ: The mapping to read, defaults to `os.environ`.
        :return: A frozen SidecarConfig.
        """
        env = os.environ if environ is None else environ

        backend_bin = _non_blank(env.get(default_settings.BACKEND_BIN_ENV))
        # An explicitly empty argument override means "no arguments", so only None is "unset".
        raw_args = env.get(default_settings.BACKEND_ARGS_ENV)
        handshake_path = _non_blank(env.get(default_settings.HANDSHAKE_PATH_ENV))
        resource_dir = _non_blank(env.get(default_settings.RESOURCE_DIR_ENV))

        config = cls(
            backend_bin=Path(backend_bin) if backend_bin else None,
            backend_args=tuple(raw_args.split()) if raw_args is not None else None,
            enable_neon=is_truthy(env.get(default_settings.ENABLE_NEON_ENV)),
            neon_credentials_path=_non_blank(env.get(default_settings.NEON_CREDENTIALS_ENV)),
            handshake_path=Path(handshake_path) if handshake_path else None,
            resource_dir=Path(resource_dir) if resource_dir else None,
        )
        log.debug(f"Sidecar configuration loaded: {config}")
        return config

    @property
    def storage_mode(self) -> str:
        """Returns the value passed to the backend's HUDSON_ENABLE_NEON variable."""
        return "true" if self.enable_neon else "false"


def handshake_path_for(platform: str = sys.platform, environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Returns the platform-dependent location of the backend's handshake file.

    :param platform: A `sys.platform` style identifier.
    :param environ: The mapping used to look up APPDATA, defaults to `os.environ`.
    """
    env = os.environ if environ is None else environ
    if platform == "darwin":
        return Path(default_settings.HANDSHAKE_MACOS_PATH)
    if platform == "win32":
        appdata = env.get("APPDATA")
        base = Path(appdata) if appdata else Path(tempfile.gettempdir())
        return base / default_settings.HANDSHAKE_APPDATA_DIR / default_settings.HANDSHAKE_APPDATA_FILE
    return Path(tempfile.gettempdir()) / default_settings.HANDSHAKE_FILE_NAME


def resolve_handshake_path(config: SidecarConfig, platform: str = sys.platform) -> Path:
    """Returns the configured handshake path, falling back to the platform default."""
    return config.handshake_path or handshake_path_for(platform)


def default_resource_dir(config: SidecarConfig) -> Optional[Path]:
    """
    Works out where bundled resources live for the running shell.

    Frozen builds (PyInstaller) keep their data under `sys._MEIPASS`; macOS app
    bundles additionally keep sidecar binaries next to `Contents/Resources`.
    Running from source has no resource directory unless one is configured.
    """
    if config.resource_dir:
        return config.resource_dir
    if not getattr(sys, "frozen", False):
        return None

    exe_dir = Path(sys.executable).resolve().parent
    if sys.platform == "darwin" and exe_dir.name == "MacOS":
        return exe_dir.parent / "Resources"
    meipass = getattr(sys, "_MEIPASS", None)
    return Path(meipass) if meipass else exe_dir
