"""
Logging handlers for the desktop shell.
This module provides handlers that ship log records to remote backends.
"""

from .loki import LokiHandler

__all__ = ["LokiHandler"]
