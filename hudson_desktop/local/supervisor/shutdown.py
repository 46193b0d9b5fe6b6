import psutil
import logging
import subprocess
from typing import List

import hudson_desktop.settings as default_settings

log = logging.getLogger(__name__)


def _collect_descendants(pid: int) -> List[psutil.Process]:
    """Returns every live descendant of `pid` (a release script runs the BEAM as a child)."""
    try:
        return psutil.Process(pid).children(recursive=True)
    except psutil.Error as e:
        log.debug(f"Could not list children of PID {pid}: {e}")
        return []


def _forceful_kill(processes: List[psutil.Process]) -> None:
    """Kills the given processes, ignoring ones that are already gone."""
    for proc in processes:
        try:
            log.debug(f"Killing backend descendant PID {proc.pid}.")
            proc.kill()
        except psutil.NoSuchProcess:
            continue
        except psutil.Error as e:
            log.warning(f"Could not kill PID {proc.pid}: {e}")


def kill_and_reap(process: subprocess.Popen, timeout: float = default_settings.GRACEFUL_SHUTDOWN_TIMEOUT) -> None:
    """
    Forcefully kills the backend and its descendants, then waits for the OS to
    confirm the exit so no zombie remains. Never raises: shutdown is best-effort.

    :param process: The handle returned by launch_backend.
    :param timeout: Seconds to wait for each group of processes to be reaped.
    """
    descendants = _collect_descendants(process.pid)

    try:
        process.kill()
        log.info(f"Kill signal sent to backend (PID {process.pid}).")
    except OSError as e:
        # ProcessLookupError when it already exited; the wait below still reaps it.
        log.debug(f"Kill of backend PID {process.pid} rejected: {e}")

    _forceful_kill(descendants)

    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        log.warning(f"Backend (PID {process.pid}) did not exit within {timeout}s of being killed.")
    except OSError as e:
        log.debug(f"Waiting on backend PID {process.pid} failed: {e}")

    if descendants:
        try:
            _, alive = psutil.wait_procs(descendants, timeout=timeout)
        except psutil.Error:
            alive = []
        for proc in alive:
            log.warning(f"Backend descendant PID {proc.pid} is still alive after kill.")

    log.info(f"Backend (PID {process.pid}) terminated with exit code {process.returncode}.")
