"""
Connection session for a single SYNC peripheral.

Drives the connect -> discover -> ready lifecycle, writes encoded
commands with response, and tears the link down on request or when the
peripheral drops it.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .adapter import RadioAdapter
from .codec import Command, encode, frame_for_transport
from .core import SyncConfig
from .exceptions import ConnectionFailed, InvalidState, NotConnected, WriteFailed
from .registry import PeripheralRef

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    DISCOVERING = "DISCOVERING"
    READY = "READY"
    DISCONNECTING = "DISCONNECTING"


_CONNECT_STATES = (ConnectionState.CONNECTING, ConnectionState.DISCOVERING)


class ConnectionSession:
    """Owns at most one connection to a peripheral."""

    def __init__(self, adapter: RadioAdapter, config: Optional[SyncConfig] = None) -> None:
        self._adapter = adapter
        self._config = config or SyncConfig()

        self._state = ConnectionState.DISCONNECTED
        self._peripheral: Optional[PeripheralRef] = None
        self._write_target: Optional[Tuple[str, str]] = None
        self._attempt = 0
        self._connect_task: Optional[asyncio.Task] = None
        self._sending = False

        # Callbacks
        self._on_state_change: Optional[Callable[[ConnectionState], None]] = None
        self._on_link_lost: Optional[Callable[[], None]] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def peripheral(self) -> Optional[PeripheralRef]:
        return self._peripheral

    @property
    def is_ready(self) -> bool:
        return self._state is ConnectionState.READY

    def set_on_state_change(self, callback: Callable[[ConnectionState], None]) -> None:
        """Set callback invoked with the new state after each transition."""
        self._on_state_change = callback

    def set_on_link_lost(self, callback: Callable[[], None]) -> None:
        """Set callback for peripheral-initiated disconnects."""
        self._on_link_lost = callback

    async def connect(self, peripheral: PeripheralRef) -> None:
        """Connect and enumerate services.

        Args:
            peripheral: Peripheral to connect to

        Raises:
            InvalidState: If a session is already active or in progress
            ConnectionFailed: If connecting or discovery fails
        """
        if self._state is not ConnectionState.DISCONNECTED:
            raise InvalidState(f"Cannot connect while {self._state.value}")

        self._attempt += 1
        attempt = self._attempt
        self._peripheral = peripheral
        self._set_state(ConnectionState.CONNECTING)
        logger.info(f"Connecting to {peripheral.name} ({peripheral.id})...")

        # disconnect() cancels and awaits this task so a late link is released
        task = asyncio.create_task(self._establish(peripheral, attempt))
        self._connect_task = task
        try:
            await task
        except asyncio.CancelledError:
            if self._connect_task is task:
                # The caller was cancelled, not superseded by disconnect()
                raise
            raise ConnectionFailed("connection cancelled") from None
        finally:
            if self._connect_task is task:
                self._connect_task = None

    async def _establish(self, peripheral: PeripheralRef, attempt: int) -> None:
        try:
            await asyncio.wait_for(
                self._adapter.connect(peripheral.id, self.on_link_lost),
                timeout=self._config.connect_timeout,
            )
            self._check_attempt(attempt)

            self._set_state(ConnectionState.DISCOVERING)
            services = await self._adapter.discover_services()
            self._check_attempt(attempt)

            self._write_target = self._find_write_target(services)
        except ConnectionFailed as e:
            logger.error(f"Connection error: {e.reason}")
            await self._abort(attempt)
            raise
        except asyncio.CancelledError:
            await self._abort(attempt)
            raise
        except Exception as e:
            if isinstance(e, asyncio.TimeoutError):
                reason = f"timed out after {self._config.connect_timeout:g}s"
            else:
                reason = str(e) or type(e).__name__
            logger.error(f"Connection error: {reason}")
            await self._abort(attempt)
            raise ConnectionFailed(reason) from e

        self._set_state(ConnectionState.READY)
        logger.info(f"Connected to {peripheral.name}")

    async def send(self, command: Command) -> None:
        """Write a command and wait for the peripheral's acknowledgement.

        Raises:
            NotConnected: If the session is not ready
            InvalidState: If another write is still in flight
            UnknownCommand: If the command cannot be encoded
            WriteFailed: If the adapter reports a write error
        """
        if self._state is not ConnectionState.READY or self._write_target is None:
            raise NotConnected("Please connect to a device first")
        if self._sending:
            raise InvalidState("A command is already being sent")

        data = encode(command)
        payload = frame_for_transport(data)
        service_uuid, char_uuid = self._write_target

        self._sending = True
        try:
            await self._adapter.write(service_uuid, char_uuid, payload, response=True)
        except Exception as e:
            logger.error(f"Send command error: {e}")
            raise WriteFailed(str(e) or type(e).__name__) from e
        finally:
            self._sending = False

        logger.info(f"Command sent: {command} [{data.hex(' ')}]")

    async def disconnect(self) -> None:
        """Tear down the connection. Never fails; idempotent."""
        if self._state in (ConnectionState.DISCONNECTED, ConnectionState.DISCONNECTING):
            return

        logger.info("Disconnecting...")
        self._set_state(ConnectionState.DISCONNECTING)

        task, self._connect_task = self._connect_task, None
        if task is not None and not task.done():
            # Let the pending attempt release whatever link it brought up
            task.cancel()
            await asyncio.wait({task})

        try:
            await self._adapter.disconnect()
        except Exception as e:
            logger.warning(f"Disconnect error (ignored): {e}")
        finally:
            self._reset()
        logger.info("Disconnected")

    def on_link_lost(self) -> None:
        """Handle a disconnect initiated by the peripheral or the radio."""
        if self._state is not ConnectionState.READY:
            return

        logger.warning("Device disconnected")
        self._reset()
        if self._on_link_lost:
            try:
                self._on_link_lost()
            except Exception as e:
                logger.error(f"Disconnect callback error: {e}")

    def _check_attempt(self, attempt: int) -> None:
        if attempt != self._attempt or self._state not in _CONNECT_STATES:
            raise ConnectionFailed("connection cancelled")

    async def _abort(self, attempt: int) -> None:
        # A newer attempt owns the adapter now
        if attempt != self._attempt:
            return

        try:
            await self._adapter.disconnect()
        except Exception as e:
            logger.debug(f"Cleanup disconnect failed: {e}")

        if self._state in _CONNECT_STATES:
            self._reset()

    def _find_write_target(self, services: Dict[str, List[str]]) -> Tuple[str, str]:
        service_uuid = self._config.service_uuid.lower()
        char_uuid = self._config.write_char_uuid.lower()

        for uuid, characteristics in services.items():
            if uuid.lower() != service_uuid:
                continue
            if char_uuid in (c.lower() for c in characteristics):
                return uuid, next(c for c in characteristics if c.lower() == char_uuid)
            raise ConnectionFailed(f"write characteristic {char_uuid} not found")

        raise ConnectionFailed(f"service {service_uuid} not found")

    def _reset(self) -> None:
        self._peripheral = None
        self._write_target = None
        self._set_state(ConnectionState.DISCONNECTED)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.debug(f"Connection state {self._state.value} -> {state.value}")
        self._state = state
        if self._on_state_change:
            try:
                self._on_state_change(state)
            except Exception as e:
                logger.error(f"State change callback error: {e}")
