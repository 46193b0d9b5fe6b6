"""
This module contains the configuration settings for the Hudson desktop shell.
It defines the environment variable names, the retry budgets used while the
backend sidecar boots, window settings and logging configuration.
Values that must be read per boot attempt live in `hudson_desktop.local.config`.
"""

import os
from dotenv import load_dotenv

# Load HUDSON_* overrides from a .env file next to the working directory
load_dotenv()

#* --- Application ---
APP_NAME = "Hudson"
PROCESS_TITLE = "Hudson - Desktop Shell"

#* --- Environment Variable Names ---
BACKEND_BIN_ENV = "HUDSON_BACKEND_BIN"
BACKEND_ARGS_ENV = "HUDSON_BACKEND_ARGS"
ENABLE_NEON_ENV = "HUDSON_ENABLE_NEON"
NEON_CREDENTIALS_ENV = "HUDSON_NEON_CREDENTIALS_PATH"
HANDSHAKE_PATH_ENV = "HUDSON_HANDSHAKE_PATH"
RESOURCE_DIR_ENV = "HUDSON_RESOURCE_DIR"

# Values of HUDSON_ENABLE_NEON that switch the backend to networked storage
TRUTHY_VALUES = ('true', '1', 't', 'yes', 'y')

#* --- Backend Executable ---
# Self-contained builds are launched without arguments
NATIVE_BUILD_MARKER = "burrito_out"
RELEASE_FOREGROUND_ARG = "foreground"

#* --- Handshake ---
HANDSHAKE_FILE_NAME = "hudson_port.json"
HANDSHAKE_MACOS_PATH = "/tmp/hudson_port.json"
HANDSHAKE_APPDATA_DIR = "Hudson"
HANDSHAKE_APPDATA_FILE = "port.json"
HANDSHAKE_ATTEMPTS = 50
HANDSHAKE_DELAY = 0.2          # seconds

#* --- Health Check ---
BACKEND_HOST = "127.0.0.1"
HEALTH_PATH = "/healthz"
HEALTH_ATTEMPTS = 40
HEALTH_DELAY = 0.25            # seconds
HEALTH_REQUEST_TIMEOUT = 2.0   # seconds, per request

#* --- Shutdown ---
GRACEFUL_SHUTDOWN_TIMEOUT = 5  # seconds to wait for a killed process to be reaped

#* --- Window ---
WINDOW_TITLE = APP_NAME
WINDOW_WIDTH = 1440
WINDOW_HEIGHT = 900
WINDOW_RESIZABLE = True
LOADING_HTML = (
    "<body style='background:#0d1117;color:#e6edf3;"
    "font-family:-apple-system,sans-serif;display:flex;"
    "align-items:center;justify-content:center;height:100vh;"
    "font-size:18px'>Starting Hudson...</body>"
)

#* --- Logging ---
VERBOSE_LOGGING = False
BACKEND_PROCESS_NAME = "backend"  # forwarded output is logged under proc.backend

# Grafana Loki (optional log shipping)
LOKI_ENABLED = os.getenv("LOKI_ENABLED", "False").lower() in TRUTHY_VALUES
LOKI_URL = os.getenv("LOKI_URL", "http://localhost:3100")
LOKI_ORG_ID = os.getenv("LOKI_ORG_ID", "fake")
LOKI_JOB_NAME = "hudson-desktop"
LOG_BUFFER_FLUSH_INTERVAL = 10  # seconds
LOG_BUFFER_BATCH_SIZE = 200     # records
