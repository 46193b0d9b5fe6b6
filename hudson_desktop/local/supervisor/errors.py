"""Errors raised while booting the backend sidecar. All of them end the boot attempt."""
from pathlib import Path
from typing import List, Sequence


class BootError(Exception):
    """Base class for failures that abort a boot attempt."""


class BackendNotFound(BootError):
    """No candidate backend executable exists on disk."""

    def __init__(self, candidates: Sequence[Path]):
        self.candidates: List[Path] = list(candidates)
        tried = ", ".join(str(p) for p in self.candidates) or "<none>"
        super().__init__(f"No backend binary found. Tried: {tried}")


class SpawnFailed(BootError):
    """The OS refused to create the backend process."""

    def __init__(self, executable: Path, cause: BaseException):
        self.executable = executable
        self.cause = cause
        super().__init__(f"Failed to spawn backend process '{executable}': {cause}")


class HandshakeTimeout(BootError):
    """The backend never wrote a valid handshake file."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Timed out waiting for handshake file at '{path}'")


class HealthCheckTimeout(BootError):
    """The backend never answered its health endpoint successfully."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Timed out waiting for health check on {url}")


class PresentationMissing(BootError):
    """The window the backend should be shown in no longer exists."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Main window missing, cannot navigate to {url}")


class BootCancelled(Exception):
    """Shutdown was requested while the boot sequence was still running."""
