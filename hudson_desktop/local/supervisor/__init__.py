"""
The Supervisor package.
Manages the lifecycle of the Hudson backend sidecar process.

This package contains the central BackendSupervisor class and its helper
modules, which together locate, launch, wait on and terminate the backend.
"""
from .supervisor import BackendSupervisor, BootState
from .state import SupervisorState
from .errors import (
    BootError, BackendNotFound, SpawnFailed, HandshakeTimeout,
    HealthCheckTimeout, PresentationMissing,
)

__all__ = [
    'BackendSupervisor', 'BootState', 'SupervisorState',
    'BootError', 'BackendNotFound', 'SpawnFailed', 'HandshakeTimeout',
    'HealthCheckTimeout', 'PresentationMissing',
]
