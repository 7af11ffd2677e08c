"""
Core constants and configuration for SYNC peripheral control.
"""

from dataclasses import dataclass

# Advertised name of the target peripheral (exact, case-sensitive match)
TARGET_NAME = "SYNC"

# GATT layout exposed by the peripheral
SERVICE_UUID = "000000ff-0000-1000-8000-00805f9b34fb"
WRITE_CHAR_UUID = "0000ff03-0000-1000-8000-00805f9b34fb"
# Reserved; payload format is undocumented and never read
ANGLE_CHAR_UUID = "0000ff04-0000-1000-8000-00805f9b34fb"

# Timing (seconds)
SCAN_TIMEOUT = 5.0
CONNECT_TIMEOUT = 10.0

# Motor speed range (single unsigned byte)
MOTOR_SPEED_MIN = 0
MOTOR_SPEED_MAX = 255

# Application metadata
__version__ = "0.1.0"
__description__ = "CLI and REPL interface for controlling SYNC motor peripherals"


@dataclass(frozen=True)
class SyncConfig:
    """Runtime settings for a controller instance."""

    target_name: str = TARGET_NAME
    service_uuid: str = SERVICE_UUID
    write_char_uuid: str = WRITE_CHAR_UUID
    angle_char_uuid: str = ANGLE_CHAR_UUID
    scan_timeout: float = SCAN_TIMEOUT
    connect_timeout: float = CONNECT_TIMEOUT
