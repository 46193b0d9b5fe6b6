import json
import time
import logging
import threading
import requests
from pathlib import Path
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import hudson_desktop.settings as default_settings
from hudson_desktop.local.supervisor.errors import BootCancelled, HandshakeTimeout, HealthCheckTimeout

log = logging.getLogger(__name__)

T = TypeVar("T")


def _pause(delay: float, cancel_event: Optional[threading.Event]) -> None:
    """Sleeps between attempts, waking early if shutdown has been requested."""
    if cancel_event is None:
        time.sleep(delay)
    elif cancel_event.wait(delay):
        raise BootCancelled()


def poll_until(probe: Callable[[], Optional[T]], attempts: int, delay: float,
               cancel_event: Optional[threading.Event] = None) -> Optional[T]:
    """
    Calls `probe` up to `attempts` times, pausing `delay` seconds after each miss.

    A probe reports "not ready yet" by returning None; any other value ends the
    loop and is returned. Returns None once the budget is exhausted.

    :param cancel_event: When set during a pause, polling stops with BootCancelled.
    :raises BootCancelled: If `cancel_event` is set.
    """
    for _ in range(attempts):
        if cancel_event is not None and cancel_event.is_set():
            raise BootCancelled()
        result = probe()
        if result is not None:
            return result
        _pause(delay, cancel_event)
    return None


#* --- Handshake ---
@dataclass(frozen=True)
class Handshake:
    """The port announcement the backend writes once it is listening."""
    port: int

    @classmethod
    def from_json(cls, text: str) -> "Handshake":
        """
        Parses the handshake payload.

        :raises ValueError: If the payload is not an object with a valid TCP port.
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("Handshake payload is not a JSON object.")
        port = data.get("port")
        # bool is an int subclass, but `true` is not a port
        if isinstance(port, bool) or not isinstance(port, int) or not 0 < port <= 65535:
            raise ValueError(f"Handshake payload has an invalid port: {port!r}")
        return cls(port=port)


def read_handshake(path: Path) -> Optional[Handshake]:
    """
    Reads the handshake file once. A missing, unreadable or half-written file
    all mean the backend is not ready yet.
    """
    try:
        return Handshake.from_json(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.debug(f"Handshake not ready at '{path}': {e}")
        return None


def wait_for_handshake(path: Path,
                       attempts: int = default_settings.HANDSHAKE_ATTEMPTS,
                       delay: float = default_settings.HANDSHAKE_DELAY,
                       cancel_event: Optional[threading.Event] = None) -> int:
    """
    Waits for the backend to announce its port through the handshake file.

    :return: The announced port.
    :raises HandshakeTimeout: If no valid handshake appears within the budget.
    """
    log.info(f"Waiting for backend handshake at '{path}'...")
    handshake = poll_until(lambda: read_handshake(path), attempts, delay, cancel_event)
    if handshake is None:
        raise HandshakeTimeout(path)
    log.info(f"Got port from handshake: {handshake.port}")
    return handshake.port


#* --- Health Check ---
def health_url(port: int) -> str:
    return f"http://{default_settings.BACKEND_HOST}:{port}{default_settings.HEALTH_PATH}"


def check_health(session: requests.Session, url: str, timeout: float) -> Optional[bool]:
    """Performs one health request. Returns True when healthy, None otherwise."""
    try:
        response = session.get(url, timeout=timeout)
    except requests.exceptions.RequestException as e:
        log.debug(f"Health check on {url} failed: {e}")
        return None
    if 200 <= response.status_code < 300:
        return True
    log.debug(f"Health check on {url} returned status {response.status_code}")
    return None


def wait_for_health(port: int,
                    attempts: int = default_settings.HEALTH_ATTEMPTS,
                    delay: float = default_settings.HEALTH_DELAY,
                    request_timeout: float = default_settings.HEALTH_REQUEST_TIMEOUT,
                    cancel_event: Optional[threading.Event] = None,
                    session: Optional[requests.Session] = None) -> None:
    """
    Polls the backend's health endpoint until it answers with a 2xx status.

    Each request is bounded by `request_timeout` so a hung backend only costs
    one attempt, not the whole budget.

    :raises HealthCheckTimeout: If the backend never becomes healthy.
    """
    url = health_url(port)
    log.info(f"Waiting for backend health check at {url}...")
    owns_session = session is None
    session = session or requests.Session()
    try:
        healthy = poll_until(lambda: check_health(session, url, request_timeout), attempts, delay, cancel_event)
    finally:
        if owns_session:
            session.close()
    if not healthy:
        raise HealthCheckTimeout(url)
    log.info("Health check passed.")
