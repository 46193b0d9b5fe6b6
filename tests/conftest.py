import sys
import subprocess

import pytest

from hudson_desktop import settings

HUDSON_ENV_VARS = (
    settings.BACKEND_BIN_ENV,
    settings.BACKEND_ARGS_ENV,
    settings.ENABLE_NEON_ENV,
    settings.NEON_CREDENTIALS_ENV,
    settings.HANDSHAKE_PATH_ENV,
    settings.RESOURCE_DIR_ENV,
)


@pytest.fixture(autouse=True)
def clean_hudson_env(monkeypatch):
    """Keeps HUDSON_* variables from the developer's shell out of the tests."""
    for name in HUDSON_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def spawn_sleeper():
    """Starts long-running child processes and makes sure none outlive the test."""
    procs = []

    def _spawn(seconds: int = 60) -> subprocess.Popen:
        proc = subprocess.Popen(
            [sys.executable, "-c", f"import time; time.sleep({seconds})"],
            stdout=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
        )
        procs.append(proc)
        return proc

    yield _spawn

    for proc in procs:
        if proc.poll() is None:
            proc.kill()
            proc.wait(timeout=5)
        if proc.stdout:
            proc.stdout.close()


class FakePresenter:
    """Records navigation requests; `available=False` simulates a closed window."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.urls = []

    def navigate(self, url: str) -> bool:
        self.urls.append(url)
        return self.available


@pytest.fixture
def presenter():
    return FakePresenter()
