"""Pytest configuration and shared fixtures."""

import asyncio
from typing import Dict, List, Optional, Set, Tuple

import pytest

from syncctl import PeripheralRef, SyncConfig, SyncController
from syncctl.adapter import StaticPermissionGate
from syncctl.core import ANGLE_CHAR_UUID, SERVICE_UUID, WRITE_CHAR_UUID
from syncctl.scanner import ScanController
from syncctl.session import ConnectionSession


class FakeRadioAdapter:
    """In-memory radio adapter.

    Set the ``*_error`` attributes to make the matching call raise, and the
    ``*_gate`` events to hold a call until the test releases it.
    """

    def __init__(self) -> None:
        self.nearby: List[PeripheralRef] = []
        self.services: Dict[str, List[str]] = {
            SERVICE_UUID: [WRITE_CHAR_UUID, ANGLE_CHAR_UUID],
        }

        self.start_scan_error: Optional[Exception] = None
        self.connect_error: Optional[Exception] = None
        self.discover_error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None
        self.disconnect_error: Optional[Exception] = None

        self.connect_gate: Optional[asyncio.Event] = None
        self.write_gate: Optional[asyncio.Event] = None

        self.calls: List[str] = []
        self.writes: List[Tuple[str, str, str, bool]] = []
        self.scanning = False

        # Like bleak, every connect() creates its own link and disconnect()
        # only releases the most recent one
        self.open_links: Set[int] = set()
        self._links_created = 0
        self._current_link: Optional[int] = None

        self._on_advertisement = None
        self._on_error = None
        self._on_disconnected = None

    async def start_scan(self, on_advertisement, on_error) -> None:
        self.calls.append("start_scan")
        if self.start_scan_error:
            raise self.start_scan_error
        self.scanning = True
        self._on_advertisement = on_advertisement
        self._on_error = on_error
        for peripheral in self.nearby:
            on_advertisement(peripheral)

    async def stop_scan(self) -> None:
        self.calls.append("stop_scan")
        self.scanning = False

    async def connect(self, peripheral_id, on_disconnected) -> None:
        self.calls.append(f"connect:{peripheral_id}")
        self._links_created += 1
        link = self._links_created
        self._current_link = link
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        if self.connect_error:
            raise self.connect_error
        self.open_links.add(link)
        self._on_disconnected = on_disconnected

    async def discover_services(self) -> Dict[str, List[str]]:
        self.calls.append("discover_services")
        if self.discover_error:
            raise self.discover_error
        return self.services

    async def write(self, service_uuid, char_uuid, payload, response=True) -> None:
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.write_error:
            raise self.write_error
        self.writes.append((service_uuid, char_uuid, payload, response))

    async def disconnect(self) -> None:
        self.calls.append("disconnect")
        if self._current_link is not None:
            self.open_links.discard(self._current_link)
            self._current_link = None
        if self.disconnect_error:
            raise self.disconnect_error

    @property
    def connected(self) -> bool:
        return bool(self.open_links)

    def advertise(self, peripheral_id: str, name: str) -> None:
        """Deliver an advertisement to the active scan callback."""
        self._on_advertisement(PeripheralRef(peripheral_id, name))

    def fail_scan(self, error: Exception) -> None:
        """Report an asynchronous radio failure."""
        self._on_error(error)

    def drop_link(self) -> None:
        """Simulate the peripheral going away."""
        self.open_links.discard(self._current_link)
        self._on_disconnected()


@pytest.fixture
def adapter():
    return FakeRadioAdapter()


@pytest.fixture
def config():
    """Short timeouts so scan windows finish quickly."""
    return SyncConfig(scan_timeout=0.05, connect_timeout=0.5)


@pytest.fixture
def scanner(adapter, config):
    return ScanController(
        adapter,
        StaticPermissionGate(),
        target_name=config.target_name,
        timeout=config.scan_timeout,
    )


@pytest.fixture
def session(adapter, config):
    return ConnectionSession(adapter, config)


@pytest.fixture
def controller(adapter, config):
    return SyncController(adapter=adapter, config=config)


@pytest.fixture
def sync_device():
    return PeripheralRef("AA:BB:CC:DD:EE:01", "SYNC")
