"""
SyncCtrl - SYNC Motor Peripheral Control Library

A Python library for discovering and controlling SYNC motor peripherals via Bluetooth.
"""

__version__ = "0.1.0"
__description__ = "CLI and REPL interface for controlling SYNC motor peripherals"

from .codec import Command
from .controller import SyncController
from .core import SyncConfig
from .display import DisplayManager
from .exceptions import (
    ConnectionFailed,
    InvalidState,
    NotConnected,
    PermissionDenied,
    RadioError,
    SyncError,
    UnknownCommand,
    WriteFailed,
)
from .registry import PeripheralRef
from .scanner import ScanState
from .session import ConnectionState

__all__ = [
    "Command",
    "ConnectionFailed",
    "ConnectionState",
    "DisplayManager",
    "InvalidState",
    "NotConnected",
    "PeripheralRef",
    "PermissionDenied",
    "RadioError",
    "ScanState",
    "SyncConfig",
    "SyncController",
    "SyncError",
    "UnknownCommand",
    "WriteFailed",
]
