import sys
import time
import enum
import logging
import threading
import subprocess
from pathlib import Path
from typing import Optional, Tuple

import hudson_desktop.settings as default_settings
from hudson_desktop.local.config import SidecarConfig, default_resource_dir, resolve_handshake_path
from hudson_desktop.local.supervisor import process_utils, startup
from hudson_desktop.local.supervisor.paths import PathResolver
from hudson_desktop.local.supervisor.state import SupervisorState
from hudson_desktop.local.supervisor.shutdown import kill_and_reap
from hudson_desktop.local.supervisor.errors import BootCancelled, BootError, PresentationMissing

log = logging.getLogger(__name__)


class BootState(enum.Enum):
    NOT_STARTED = "not_started"
    LAUNCHING = "launching"
    AWAITING_HANDSHAKE = "awaiting_handshake"
    AWAITING_HEALTH = "awaiting_health"
    READY = "ready"
    TERMINATED = "terminated"
    FAILED = "failed"


# FAILED and TERMINATED are absorbing
_ALLOWED_TRANSITIONS = {
    BootState.NOT_STARTED: {BootState.LAUNCHING, BootState.TERMINATED},
    BootState.LAUNCHING: {BootState.AWAITING_HANDSHAKE, BootState.FAILED, BootState.TERMINATED},
    BootState.AWAITING_HANDSHAKE: {BootState.AWAITING_HEALTH, BootState.FAILED, BootState.TERMINATED},
    BootState.AWAITING_HEALTH: {BootState.READY, BootState.FAILED, BootState.TERMINATED},
    BootState.READY: {BootState.FAILED, BootState.TERMINATED},
    BootState.TERMINATED: set(),
    BootState.FAILED: set(),
}


class BackendSupervisor:
    """
    Boots the Hudson backend sidecar exactly once and guarantees it is torn
    down when the shell goes away.

    The presentation layer passed to `start_boot` only needs a
    `navigate(url) -> bool` method that returns False when its main surface
    no longer exists.
    """

    def __init__(self, config: Optional[SidecarConfig] = None, platform: str = sys.platform,
                 resource_dir: Optional[Path] = None) -> None:
        self.config = config
        self.platform = platform
        self.resource_dir = resource_dir

        self.state = SupervisorState()
        self.port: Optional[int] = None
        self.failure: Optional[BootError] = None
        self.start_time: Optional[float] = None

        self._boot_state = BootState.NOT_STARTED
        self._state_lock = threading.Lock()
        self._shutdown_requested = threading.Event()
        self._boot_thread: Optional[threading.Thread] = None

    #* --- State Machine ---
    @property
    def boot_state(self) -> BootState:
        with self._state_lock:
            return self._boot_state

    def _transition(self, new_state: BootState) -> bool:
        """Moves to `new_state` if the state machine allows it from the current state."""
        with self._state_lock:
            if new_state not in _ALLOWED_TRANSITIONS[self._boot_state]:
                log.debug(f"Ignoring boot state change {self._boot_state.name} -> {new_state.name}")
                return False
            log.debug(f"Boot state: {self._boot_state.name} -> {new_state.name}")
            self._boot_state = new_state
            return True

    def _check_cancelled(self) -> None:
        if self._shutdown_requested.is_set():
            raise BootCancelled()

    #* --- Boot ---
    def start_boot(self, presenter) -> threading.Thread:
        """
        Runs the boot sequence on a background thread. Only the first call
        starts a boot; later calls return the existing thread.
        """
        with self._state_lock:
            if self._boot_thread is None:
                self._boot_thread = threading.Thread(
                    target=self.boot, args=(presenter,), daemon=True, name="BackendBootThread"
                )
                self._boot_thread.start()
            return self._boot_thread

    def wait_for_boot(self, timeout: Optional[float] = None) -> BootState:
        """Blocks until the background boot thread finishes, then returns the boot state."""
        thread = self._boot_thread
        if thread is not None:
            thread.join(timeout)
        return self.boot_state

    def _launch(self, config: SidecarConfig) -> subprocess.Popen:
        resolver = PathResolver(config, self.platform)
        resource_dir = self.resource_dir or default_resource_dir(config)
        executable = resolver.resolve(resource_dir)
        spec = process_utils.build_launch_spec(executable, resolver.launch_args(executable), config)
        self._check_cancelled()
        return process_utils.launch_backend(spec)

    def boot(self, presenter) -> BootState:
        """
        Launches the backend, waits for its handshake and health check, publishes
        the process and navigates the presentation layer to it.

        Boot failures are logged and recorded in `failure`; they never propagate,
        leaving the shell open but without a backend.

        :return: The final boot state (READY, FAILED or TERMINATED).
        """
        if not self._transition(BootState.LAUNCHING):
            return self.boot_state

        log.info("=" * 20 + " Backend Boot Started " + "=" * 20)
        self.start_time = time.time()
        child: Optional[subprocess.Popen] = None
        config = self.config or SidecarConfig.from_env()
        handshake_path = resolve_handshake_path(config, self.platform)

        try:
            child = self._launch(config)
            self._transition(BootState.AWAITING_HANDSHAKE)

            port = startup.wait_for_handshake(handshake_path, cancel_event=self._shutdown_requested)
            self._transition(BootState.AWAITING_HEALTH)

            startup.wait_for_health(port, cancel_event=self._shutdown_requested)

            # Ownership of the child moves to the state slot here.
            if not self.state.publish(child):
                raise BootCancelled()
            child = None
            self.port = port
            if not self._transition(BootState.READY):
                return self.boot_state

            url = f"http://{default_settings.BACKEND_HOST}:{port}"
            log.info(f"Navigating window to {url}")
            if not presenter.navigate(url):
                raise PresentationMissing(url)
            log.info(f"Backend ready in {time.time() - self.start_time:.2f} seconds.")

        except BootCancelled:
            log.info("Shutdown requested while the backend was booting. Abandoning boot.")
            if child is not None:
                kill_and_reap(child)
            self._transition(BootState.TERMINATED)

        except BootError as e:
            log.critical(f"Backend boot failed: {e}")
            self.failure = e
            if child is not None:
                kill_and_reap(child)
            elif isinstance(e, PresentationMissing):
                # Nothing can show the backend any more, so do not leave it running.
                self.state.terminate()
            self._transition(BootState.FAILED)

        except Exception as e:
            log.critical(f"Backend boot failed due to an unexpected error: {e}", exc_info=True)
            if child is not None:
                kill_and_reap(child)
            self._transition(BootState.FAILED)

        return self.boot_state

    #* --- Shutdown ---
    def shutdown(self) -> None:
        """
        Terminates the backend if one is running. Idempotent, callable from the
        window-close handler, the explicit command and atexit alike, and never
        raises.
        """
        self._shutdown_requested.set()
        try:
            terminated = self.state.terminate()
        except Exception as e:
            log.error(f"Unexpected error while terminating the backend: {e}", exc_info=True)
            terminated = False

        self._transition(BootState.TERMINATED)
        if terminated and self.start_time:
            runtime = time.strftime('%H:%M:%S', time.gmtime(time.time() - self.start_time))
            log.info(f"Backend stop sequence completed. Total backend runtime: {runtime}")

    def shutdown_command(self) -> Tuple[bool, str]:
        """
        The explicit "shut down backend" operation exposed to the presentation layer.

        :return: (True, message) on success, (False, error text) otherwise.
        """
        try:
            self.shutdown()
        except Exception as e:
            message = f"Failed to shut down backend: {e}"
            log.error(message)
            return False, message
        return True, "Backend shut down."
