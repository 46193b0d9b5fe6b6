"""
Local package for the Hudson desktop shell.

This package provides the per-boot configuration snapshot and the backend
sidecar supervisor.
"""

from .config import SidecarConfig

__all__ = ["SidecarConfig"]
