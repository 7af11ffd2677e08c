"""
Time-boxed scanning for the target peripheral.

A single ``ScanController`` owns the scan window: it checks permissions,
feeds matching advertisements into the device registry and stops itself
after the configured timeout.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, List, Optional

from .adapter import PermissionGate, RadioAdapter
from .core import SCAN_TIMEOUT, TARGET_NAME
from .exceptions import PermissionDenied, RadioError
from .registry import DeviceRegistry, PeripheralRef

logger = logging.getLogger(__name__)


class ScanState(Enum):
    IDLE = "IDLE"
    SCANNING = "SCANNING"


class ScanController:
    """Owns at most one active scan session."""

    def __init__(
        self,
        adapter: RadioAdapter,
        permission_gate: PermissionGate,
        registry: Optional[DeviceRegistry] = None,
        target_name: str = TARGET_NAME,
        timeout: float = SCAN_TIMEOUT,
    ) -> None:
        self._adapter = adapter
        self._permission_gate = permission_gate
        self._registry = registry if registry is not None else DeviceRegistry()
        self._target_name = target_name
        self._timeout = timeout

        self._state = ScanState.IDLE
        self._started_at: Optional[float] = None
        self._timer: Optional[asyncio.Task] = None
        self._finished: Optional[asyncio.Event] = None
        self._error: Optional[RadioError] = None
        self._cleanup: Optional[asyncio.Task] = None

        self._on_state_change: Optional[Callable[[ScanState], None]] = None

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def started_at(self) -> Optional[float]:
        """Monotonic timestamp of the current (or last) scan start."""
        return self._started_at

    @property
    def discovered(self) -> List[PeripheralRef]:
        return self._registry.list()

    @property
    def last_error(self) -> Optional[RadioError]:
        return self._error

    def set_on_state_change(self, callback: Callable[[ScanState], None]) -> None:
        """Set callback invoked with the new state after each transition."""
        self._on_state_change = callback

    async def start(self) -> ScanState:
        """Start a scan window.

        Returns:
            The scan state after the call (SCANNING unless the scan
            was stopped while the adapter was starting)

        Raises:
            PermissionDenied: If the permission gate refuses
            RadioError: If the adapter cannot start scanning
        """
        if not await self._permission_gate.check_and_request():
            logger.error("Bluetooth permissions are required to scan")
            raise PermissionDenied("Bluetooth permissions are required to continue")

        if self._state is ScanState.SCANNING:
            logger.debug("Scan already in progress")
            return self._state

        self._registry.reset()
        self._error = None
        self._finished = asyncio.Event()
        self._started_at = time.monotonic()
        self._set_state(ScanState.SCANNING)

        logger.info(f"Scanning for '{self._target_name}' ({self._timeout:g}s)...")
        try:
            await self._adapter.start_scan(self.on_advertisement, self.on_radio_error)
        except Exception as e:
            logger.error(f"Scan failed to start: {e}")
            self._finish()
            raise RadioError(f"Scan failed to start: {e}") from e

        if self._state is not ScanState.SCANNING:
            # Stopped or failed while the adapter was starting
            await self._stop_adapter()
            return self._state

        self._timer = asyncio.create_task(self._auto_stop())
        return self._state

    async def stop(self) -> None:
        """Stop scanning. Safe to call when idle."""
        if self._state is ScanState.IDLE:
            return

        self._finish()
        await self._stop_adapter()
        logger.info(f"Scan stopped ({len(self._registry)} device(s) found)")

    async def wait(self) -> List[PeripheralRef]:
        """Wait for the current scan window to end.

        Returns:
            Peripherals discovered during the window

        Raises:
            RadioError: If the scan ended because the radio failed
        """
        if self._finished is not None:
            await self._finished.wait()
        if self._error is not None:
            raise self._error
        return self.discovered

    def on_advertisement(self, peripheral: PeripheralRef) -> None:
        """Handle an advertisement delivered by the adapter."""
        if self._state is not ScanState.SCANNING:
            return
        self._registry.on_advertisement(peripheral, self._target_name)

    def on_radio_error(self, error: Exception) -> None:
        """Handle a terminal radio failure reported during scanning."""
        if self._state is not ScanState.SCANNING:
            logger.debug(f"Radio error while idle ignored: {error}")
            return

        logger.error(f"Scan aborted by radio error: {error}")
        radio_error = RadioError(f"Scan aborted: {error}")
        radio_error.__cause__ = error
        self._finish(radio_error)
        self._cleanup = asyncio.get_running_loop().create_task(self._stop_adapter())

    async def _auto_stop(self) -> None:
        await asyncio.sleep(self._timeout)
        logger.debug("Scan timeout reached")
        await self.stop()

    async def _stop_adapter(self) -> None:
        try:
            await self._adapter.stop_scan()
        except Exception as e:
            logger.warning(f"Failed to stop scanner: {e}")

    def _finish(self, error: Optional[RadioError] = None) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()

        self._error = error
        self._set_state(ScanState.IDLE)
        if self._finished is not None:
            self._finished.set()

    def _set_state(self, state: ScanState) -> None:
        if state is self._state:
            return
        logger.debug(f"Scan state {self._state.value} -> {state.value}")
        self._state = state
        if self._on_state_change:
            try:
                self._on_state_change(state)
            except Exception as e:
                logger.error(f"State change callback error: {e}")
