import os
import sys
import logging
import threading
import subprocess
from pathlib import Path
from types import MappingProxyType
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

import hudson_desktop.settings as default_settings
from hudson_desktop.local.config import SidecarConfig
from hudson_desktop.local.supervisor.errors import SpawnFailed

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LaunchSpec:
    """Everything needed to start the backend once. Built per boot attempt."""
    executable: Path
    args: Tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def command(self) -> list:
        return [str(self.executable), *self.args]


def backend_env_overlay(config: SidecarConfig) -> Dict[str, str]:
    """
    Returns the variables the supervisor forces onto the backend's environment.
    Desktop builds default to offline (SQLite only) storage unless Neon is enabled.
    """
    overlay = {default_settings.ENABLE_NEON_ENV: config.storage_mode}
    if config.neon_credentials_path:
        overlay[default_settings.NEON_CREDENTIALS_ENV] = config.neon_credentials_path
    return overlay


def build_launch_spec(executable: Path, args: Sequence[str], config: SidecarConfig,
                      base_env: Optional[Mapping[str, str]] = None) -> LaunchSpec:
    """
    Combines the resolved executable, its arguments and the environment overlay.

    :param base_env: The environment the backend inherits, defaults to `os.environ`.
    """
    env = dict(os.environ if base_env is None else base_env)
    env.update(backend_env_overlay(config))
    return LaunchSpec(executable=Path(executable), args=tuple(args), env=MappingProxyType(env))


def _get_popen_creation_flags() -> Dict[str, Any]:
    """Returns platform-specific creation flags for subprocess.Popen."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NO_WINDOW}
    return {}


def _read_pipe(pipe, process_name: str, level: int, line_handler: Optional[Callable] = None):
    """Target function for reader threads. Reads and logs lines from a subprocess pipe."""
    proc_logger = logging.getLogger(f"proc.{process_name}")
    try:
        for line_bytes in iter(pipe.readline, b""):
            line = line_bytes.decode("utf-8", errors="replace").rstrip()
            if not line:
                continue
            if line_handler:
                line_handler(line)
            else:
                proc_logger.log(level, line)
    except (OSError, ValueError) as e:
        proc_logger.debug(f"Pipe reader for {process_name} stream exited: {e}")
    finally:
        pipe.close()


def log_process_output(process: subprocess.Popen, name: str, line_handler: Optional[Callable] = None) -> Optional[threading.Thread]:
    """Starts a background thread that forwards a process's captured stdout to logging."""
    if not process.stdout:
        return None
    reader = threading.Thread(
        target=_read_pipe,
        args=(process.stdout, name, logging.INFO, line_handler),
        daemon=True,
        name=f"{name}-stdout-reader",
    )
    reader.start()
    return reader


def launch_backend(spec: LaunchSpec, line_handler: Optional[Callable] = None) -> subprocess.Popen:
    """
    Starts the backend described by `spec`.

    Stdout is captured and forwarded to the `proc.backend` logger; stderr is
    inherited so backend errors reach the shell's own error stream unfiltered.

    :raises SpawnFailed: If the OS cannot create the process.
    """
    log.info(f"Starting backend: {' '.join(spec.command)}")
    try:
        p = subprocess.Popen(
            spec.command,
            stdout=subprocess.PIPE,
            stderr=None,
            stdin=subprocess.DEVNULL,
            env=dict(spec.env),
            **_get_popen_creation_flags(),
        )
    except (OSError, ValueError) as e:
        raise SpawnFailed(spec.executable, e) from e

    log_process_output(p, default_settings.BACKEND_PROCESS_NAME, line_handler)
    log.info(f"Backend spawned with PID: {p.pid}")
    return p
