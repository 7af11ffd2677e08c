"""
Async facade for discovering and controlling a SYNC peripheral.

This module composes the scan controller, connection session and command
codec into the single interface the REPL (or any other UI) drives.
"""

import logging
from typing import Any, Callable, List, Optional

from .adapter import BleakRadioAdapter, PermissionGate, RadioAdapter, StaticPermissionGate
from .codec import Command
from .core import SyncConfig
from .exceptions import ConnectionFailed, InvalidState
from .registry import DeviceRegistry, PeripheralRef
from .scanner import ScanController, ScanState
from .session import ConnectionSession, ConnectionState

logger = logging.getLogger(__name__)


class SyncController:
    """Manages discovery, connection and control of a SYNC peripheral."""

    def __init__(
        self,
        adapter: Optional[RadioAdapter] = None,
        permission_gate: Optional[PermissionGate] = None,
        config: Optional[SyncConfig] = None,
    ) -> None:
        """Initialize controller with no device connection.

        Args:
            adapter: Radio adapter (bleak-backed if None)
            permission_gate: Permission check before scanning (always granted if None)
            config: Target name, UUIDs and timeouts
        """
        self.config = config or SyncConfig()
        self._adapter: RadioAdapter = adapter or BleakRadioAdapter()
        self._registry = DeviceRegistry()
        self._scanner = ScanController(
            self._adapter,
            permission_gate or StaticPermissionGate(),
            self._registry,
            target_name=self.config.target_name,
            timeout=self.config.scan_timeout,
        )
        self._session = ConnectionSession(self._adapter, self.config)
        self._breathing_mode = False

        # Callbacks
        self._on_state_change: Optional[Callable] = None
        self._on_disconnect: Optional[Callable] = None

        self._scanner.set_on_state_change(lambda _state: self._notify_state_change())
        self._session.set_on_state_change(lambda _state: self._notify_state_change())
        self._session.set_on_link_lost(self._on_device_disconnect)

    async def __aenter__(self) -> "SyncController":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def scan_state(self) -> ScanState:
        return self._scanner.state

    @property
    def connection_state(self) -> ConnectionState:
        return self._session.state

    @property
    def is_scanning(self) -> bool:
        return self._scanner.state is ScanState.SCANNING

    @property
    def is_connected(self) -> bool:
        """Check if a session is ready for commands."""
        return self._session.is_ready

    @property
    def devices(self) -> List[PeripheralRef]:
        """Peripherals found by the current (or last) scan."""
        return self._registry.list()

    @property
    def connected_peripheral(self) -> Optional[PeripheralRef]:
        return self._session.peripheral

    @property
    def breathing_mode(self) -> bool:
        """Last breathing mode successfully commanded (not read back)."""
        return self._breathing_mode

    def set_on_state_change(self, callback: Callable) -> None:
        """Set callback for scan or connection state changes.

        Args:
            callback: Function called with no arguments after any transition
        """
        self._on_state_change = callback

    def set_on_disconnect(self, callback: Callable) -> None:
        """Set callback for disconnect events.

        Args:
            callback: Function called when the device drops the connection
        """
        self._on_disconnect = callback

    async def start_scan(self) -> ScanState:
        return await self._scanner.start()

    async def stop_scan(self) -> None:
        await self._scanner.stop()

    async def scan(self) -> List[PeripheralRef]:
        """Run a full scan window.

        Returns:
            Matching peripherals in discovery order
        """
        await self._scanner.start()
        return await self._scanner.wait()

    async def connect(self, peripheral_id: str) -> PeripheralRef:
        """Connect to a peripheral found by the last scan.

        Args:
            peripheral_id: Identifier from ``devices``

        Returns:
            The connected peripheral
        """
        if self._session.state is not ConnectionState.DISCONNECTED:
            raise InvalidState(f"Cannot connect while {self._session.state.value}")

        peripheral = self._registry.get(peripheral_id)
        if peripheral is None:
            raise ConnectionFailed(f"unknown peripheral {peripheral_id}")

        if self.is_scanning:
            await self._scanner.stop()

        await self._session.connect(peripheral)
        return peripheral

    async def send_command(self, command: Command) -> None:
        await self._session.send(command)

    async def set_motor_speed(self, speed: int) -> None:
        """Set motor speed (0-255)."""
        await self._session.send(Command.set_motor_speed(speed))

    async def toggle_breathing(self) -> bool:
        """Start or stop breathing mode.

        The flag only flips once the peripheral acknowledges the command.

        Returns:
            New breathing mode
        """
        if self._breathing_mode:
            command = Command.STOP_BREATHING
        else:
            command = Command.START_BREATHING

        await self._session.send(command)
        self._breathing_mode = not self._breathing_mode
        self._notify_state_change()
        return self._breathing_mode

    async def disconnect(self) -> None:
        await self._session.disconnect()

    async def close(self) -> None:
        """Release the radio: stop scanning and disconnect."""
        await self._scanner.stop()
        await self._session.disconnect()

    def get_status(self) -> dict:
        """Get a snapshot of scan and connection state.

        Returns:
            Dictionary with scan, connection, device, devices and breathing keys
        """
        peripheral = self._session.peripheral
        return {
            "scan": self._scanner.state.value,
            "connection": self._session.state.value,
            "device": f"{peripheral.name} ({peripheral.id})" if peripheral else None,
            "devices": len(self._registry),
            "breathing": self._breathing_mode,
        }

    def _notify_state_change(self) -> None:
        if self._on_state_change:
            try:
                self._on_state_change()
            except Exception as e:
                logger.error(f"State change callback error: {e}")

    def _on_device_disconnect(self) -> None:
        if self._on_disconnect:
            try:
                self._on_disconnect()
            except Exception as e:
                logger.error(f"Disconnect callback error: {e}")
