import sys
import socket
import logging
import requests
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional

import hudson_desktop.settings as config


class LokiHandler(logging.Handler):
    """
    A logging handler that ships records to a Grafana Loki instance in
    batches from a background thread. Forwarded backend output is labelled
    with the backend's process name so it can be told apart from the shell.
    """
    def __init__(self, url: str, org_id: Optional[str] = None,
                 flush_interval: float = config.LOG_BUFFER_FLUSH_INTERVAL,
                 batch_size: int = config.LOG_BUFFER_BATCH_SIZE):
        """
        :param url: The base URL of the Loki instance.
        :param org_id: The tenant ID for Loki (sent as 'X-Scope-OrgID').
        :param flush_interval: Seconds between background flushes.
        :param batch_size: Buffered records that trigger an immediate flush.
        """
        super().__init__()
        self.url = f"{url.rstrip('/')}/loki/api/v1/push"
        self.org_id = org_id
        self.flush_interval = flush_interval
        self.batch_size = batch_size
        self.hostname = socket.gethostname() or 'unknown-host'

        self.log_buffer: Deque[Dict[str, Any]] = deque()
        self.buffer_lock = threading.Lock()
        # Serialises pushes so batches reach Loki in order
        self.send_lock = threading.Lock()

        self.stop_event = threading.Event()
        self.flush_thread = threading.Thread(target=self._periodic_flush, daemon=True, name="LokiFlushThread")
        self.flush_thread.start()

    def _periodic_flush(self) -> None:
        while not self.stop_event.wait(self.flush_interval):
            self.flush()
        # Final flush on stop
        self.flush()

    def _build_entry(self, record: logging.LogRecord) -> Dict[str, Any]:
        if record.name.startswith('proc.'):
            msg = record.getMessage()
            source = record.name.split('.', 1)[1]
        else:
            msg = self.format(record)
            source = "shell"
        return {
            "stream": {
                "job": config.LOKI_JOB_NAME,
                "source": source,
                "level": record.levelname.lower(),
                "hostname": self.hostname,
                "logger": record.name,
            },
            "values": [[str(int(record.created * 1e9)), msg]],
        }

    def emit(self, record: logging.LogRecord) -> None:
        """Buffers a record, flushing straight away once the batch is full."""
        try:
            entry = self._build_entry(record)
            with self.buffer_lock:
                self.log_buffer.append(entry)
                should_flush = len(self.log_buffer) >= self.batch_size
            if should_flush:
                self.flush()
        except Exception:
            self.handleError(record)

    def _drain(self) -> List[Dict[str, Any]]:
        with self.buffer_lock:
            entries = list(self.log_buffer)
            self.log_buffer.clear()
        return entries

    def flush(self) -> None:
        """Sends everything buffered so far. The network call happens outside the buffer lock."""
        with self.send_lock:
            entries = self._drain()
            if not entries:
                return

            headers = {'Content-Type': 'application/json'}
            if self.org_id:
                headers['X-Scope-OrgID'] = self.org_id
            try:
                response = requests.post(self.url, json={"streams": entries}, headers=headers, timeout=5)
                # 204 No Content is the success status for Loki push
                if response.status_code != 204:
                    print(f"ERROR: Loki returned {response.status_code}: {response.text}", file=sys.stderr)
            except requests.RequestException as e:
                print(f"CRITICAL: Failed to send {len(entries)} logs to Loki: {e}", file=sys.stderr)

    def close(self) -> None:
        """Stops the flush thread after a final flush."""
        self.stop_event.set()
        if self.flush_thread.is_alive() and self.flush_thread is not threading.current_thread():
            self.flush_thread.join(timeout=self.flush_interval + 2)
        super().close()
