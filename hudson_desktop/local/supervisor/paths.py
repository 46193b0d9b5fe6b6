import sys
import logging
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Tuple

import hudson_desktop.settings as default_settings
from hudson_desktop.local.config import SidecarConfig
from hudson_desktop.local.supervisor.errors import BackendNotFound

log = logging.getLogger(__name__)


class PlatformPaths(NamedTuple):
    """Where a platform's packaged and development backend builds can be found."""
    # Directory next to the resource dir that holds bundled executables, if any
    sibling_bin_dir: Optional[str]
    bundled_names: Tuple[str, ...]
    dev_paths: Tuple[Path, ...]


_POSIX_DEV_PATHS = (
    Path("..", "burrito_out", "hudson_macos_arm"),
    Path("..", "burrito_out", "hudson_macos_intel"),
    Path("..", "burrito_out", "hudson_linux"),
    Path("..", "_build", "prod", "rel", "hudson", "bin", "hudson"),
)

PLATFORM_PATHS: Dict[str, PlatformPaths] = {
    "darwin": PlatformPaths(
        sibling_bin_dir="MacOS",
        bundled_names=("hudson_macos_arm-aarch64-apple-darwin", "hudson_macos_arm", "hudson_backend"),
        dev_paths=_POSIX_DEV_PATHS,
    ),
    "win32": PlatformPaths(
        sibling_bin_dir=None,
        bundled_names=("hudson_windows-x86_64-pc-windows-msvc.exe", "hudson_windows.exe", "hudson_backend.exe"),
        dev_paths=(
            Path("..", "burrito_out", "hudson_windows.exe"),
            Path("..", "_build", "prod", "rel", "hudson", "bin", "hudson.bat"),
        ),
    ),
    "linux": PlatformPaths(
        sibling_bin_dir=None,
        bundled_names=("hudson_linux-x86_64-unknown-linux-gnu", "hudson_linux", "hudson_backend"),
        dev_paths=_POSIX_DEV_PATHS,
    ),
}


def platform_key(platform: str = sys.platform) -> str:
    """Maps a `sys.platform` value onto a key of PLATFORM_PATHS."""
    if platform == "darwin" or platform == "win32":
        return platform
    return "linux"


class PathResolver:
    """
    Produces the ordered list of places the backend executable may live and
    picks the first one that exists.
    """

    def __init__(self, config: SidecarConfig, platform: str = sys.platform) -> None:
        self.config = config
        self.platform = platform_key(platform)
        self.table = PLATFORM_PATHS[self.platform]

    def candidate_paths(self, resource_dir: Optional[Path] = None) -> List[Path]:
        """
        Returns candidate executable paths, highest priority first.

        :param resource_dir: The bundled resource directory, if the shell is packaged.
        """
        paths: List[Path] = []

        if self.config.backend_bin:
            paths.append(self.config.backend_bin)

        if resource_dir is not None:
            bundle_dirs = []
            if self.table.sibling_bin_dir:
                bundle_dirs.append(resource_dir.parent / self.table.sibling_bin_dir)
            bundle_dirs.extend([resource_dir / "binaries", resource_dir])
            for directory in bundle_dirs:
                paths.extend(directory / name for name in self.table.bundled_names)

        paths.extend(self.table.dev_paths)
        return paths

    def resolve(self, resource_dir: Optional[Path] = None) -> Path:
        """
        Returns the first candidate that exists on disk.

        :raises BackendNotFound: If no candidate exists.
        """
        candidates = self.candidate_paths(resource_dir)
        for path in candidates:
            if path.exists():
                log.info(f"Using backend executable: {path}")
                return path
        raise BackendNotFound(candidates)

    def launch_args(self, executable: Path) -> List[str]:
        """Returns the arguments for the executable, honouring the argument override."""
        if self.config.backend_args is not None:
            return list(self.config.backend_args)
        return default_args_for(executable)


def default_args_for(executable: Path) -> List[str]:
    """
    Self-contained native builds run in the foreground already; Mix release
    scripts need `foreground` so they do not daemonize.
    """
    if default_settings.NATIVE_BUILD_MARKER in Path(executable).parts:
        return []
    return [default_settings.RELEASE_FOREGROUND_ARG]
