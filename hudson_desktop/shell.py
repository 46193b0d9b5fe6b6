"""
Presentation shells for the backend supervisor.

A shell owns the window (or console) the backend is shown in. It starts the
boot once its surface exists, asks the supervisor to shut the backend down
when it closes, and is told where to navigate once the backend is healthy.
"""
import logging
import threading
from typing import Any, Dict, Optional

import webview

import hudson_desktop.settings as default_settings
from hudson_desktop.local.supervisor import BackendSupervisor, BootState

log = logging.getLogger(__name__)


class ShellApi:
    """The JavaScript bridge exposed to the window as `window.pywebview.api`."""

    def __init__(self, supervisor: BackendSupervisor) -> None:
        self._supervisor = supervisor

    def shutdown_backend(self) -> Dict[str, Any]:
        ok, message = self._supervisor.shutdown_command()
        return {"ok": ok, "message": message}


class WebviewShell:
    """A native window via pywebview that shows a loading page until the backend is ready."""

    def __init__(self, supervisor: BackendSupervisor) -> None:
        self.supervisor = supervisor
        self.window: Optional[webview.Window] = None

    def _on_closing(self) -> None:
        log.info("Main window closing. Shutting down backend...")
        self.supervisor.shutdown()

    def navigate(self, url: str) -> bool:
        """Loads `url` into the main window. Returns False if the window is gone."""
        window = self.window
        if window is None or window not in webview.windows:
            return False
        try:
            window.load_url(url)
        except (AttributeError, RuntimeError, KeyError) as e:
            log.error(f"Failed to load {url} into the main window: {e}")
            return False
        return True

    def run(self, debug: bool = False) -> int:
        """Creates the window and blocks until it is closed."""
        self.window = webview.create_window(
            default_settings.WINDOW_TITLE,
            html=default_settings.LOADING_HTML,
            js_api=ShellApi(self.supervisor),
            width=default_settings.WINDOW_WIDTH,
            height=default_settings.WINDOW_HEIGHT,
            resizable=default_settings.WINDOW_RESIZABLE,
        )
        self.window.events.closing += self._on_closing

        # The boot runs on its own thread once the GUI loop is up.
        webview.start(self.supervisor.start_boot, (self,), debug=debug)
        log.info("Webview closed.")
        self.supervisor.shutdown()
        return 0


class HeadlessShell:
    """Runs the supervisor from a terminal: prints the backend URL and waits for Ctrl-C."""

    def __init__(self, supervisor: BackendSupervisor, poll_interval: float = 0.5) -> None:
        self.supervisor = supervisor
        self.poll_interval = poll_interval
        self.url: Optional[str] = None
        self.stop_event = threading.Event()

    def navigate(self, url: str) -> bool:
        self.url = url
        log.info(f"Hudson backend is available at {url}")
        return True

    def run(self) -> int:
        """Boots the backend and blocks until interrupted or the boot gives up."""
        self.supervisor.start_boot(self)
        try:
            while not self.stop_event.wait(self.poll_interval):
                if self.supervisor.boot_state in (BootState.FAILED, BootState.TERMINATED):
                    break
        except KeyboardInterrupt:
            log.warning("Interrupted by user.")
        finally:
            self.supervisor.shutdown()
        return 1 if self.supervisor.boot_state is BootState.FAILED else 0
