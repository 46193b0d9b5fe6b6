"""
Logging module for the desktop shell.
This module provides the root logger setup and the console formatter.
"""

from .setup import setup_logging, MainFormatter

__all__ = ["setup_logging", "MainFormatter"]
