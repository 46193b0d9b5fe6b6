"""
Hudson desktop shell.

Launches the Hudson backend as a sidecar process, waits for it to become
healthy, shows it in a native window and tears it down on exit.
"""

__version__ = "0.1.0"
