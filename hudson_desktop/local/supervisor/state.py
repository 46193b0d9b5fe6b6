import logging
import threading
import subprocess
from typing import Optional

from hudson_desktop.local.supervisor.shutdown import kill_and_reap

log = logging.getLogger(__name__)


class SupervisorState:
    """
    A single lock-guarded slot holding the live backend process, if any.

    The handle is only ever reached through publish/take/terminate, and the lock
    is held just long enough to swap the slot, never while waiting on the OS.
    Once terminated, the slot stays closed: a boot that finishes afterwards is
    refused and must dispose of its own process.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handle: Optional[subprocess.Popen] = None
        self._closed = False

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return self._handle is None

    @property
    def is_closed(self) -> bool:
        with self._lock:
            return self._closed

    def publish(self, handle: subprocess.Popen) -> bool:
        """
        Stores `handle` in the slot.

        :return: False if the slot was already closed by a shutdown; the caller still owns the handle.
        """
        with self._lock:
            if self._closed:
                return False
            previous, self._handle = self._handle, handle

        if previous is not None and previous is not handle:
            log.warning(f"Replacing published backend PID {previous.pid}; terminating the old one.")
            kill_and_reap(previous)
        return True

    def take(self) -> Optional[subprocess.Popen]:
        """Removes and returns the current handle, leaving the slot empty."""
        with self._lock:
            handle, self._handle = self._handle, None
        return handle

    def terminate(self) -> bool:
        """
        Takes the handle out of the slot, closes the slot and kills the process.
        Safe to call any number of times, from any thread.

        :return: True if this call found and terminated a process.
        """
        with self._lock:
            handle, self._handle = self._handle, None
            self._closed = True

        if handle is None:
            log.debug("No backend process to terminate.")
            return False

        kill_and_reap(handle)
        return True
