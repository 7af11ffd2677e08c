"""
Radio adapter and permission gate capabilities.

The scan controller and connection session depend only on the narrow
``RadioAdapter`` protocol below. ``BleakRadioAdapter`` implements it on
top of bleak; tests substitute an in-memory adapter.
"""

import logging
from typing import Callable, Dict, List, Optional, Protocol, Union

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from .codec import unframe
from .registry import PeripheralRef

logger = logging.getLogger(__name__)

AdvertisementCallback = Callable[[PeripheralRef], None]
ErrorCallback = Callable[[Exception], None]
DisconnectCallback = Callable[[], None]


class RadioAdapter(Protocol):
    """Capabilities the core needs from a BLE stack."""

    async def start_scan(
        self, on_advertisement: AdvertisementCallback, on_error: ErrorCallback
    ) -> None: ...

    async def stop_scan(self) -> None: ...

    async def connect(
        self, peripheral_id: str, on_disconnected: DisconnectCallback
    ) -> None: ...

    async def discover_services(self) -> Dict[str, List[str]]: ...

    async def write(
        self, service_uuid: str, char_uuid: str, payload: str, response: bool = True
    ) -> None: ...

    async def disconnect(self) -> None: ...


class PermissionGate(Protocol):
    """Platform permission check consulted before scanning."""

    async def check_and_request(self) -> bool: ...


class StaticPermissionGate:
    """Permission gate with a fixed answer.

    Desktop BLE stacks grant access at the OS level, so the default is
    to allow.
    """

    def __init__(self, granted: bool = True) -> None:
        self.granted = granted

    async def check_and_request(self) -> bool:
        return self.granted


class BleakRadioAdapter:
    """RadioAdapter backed by bleak."""

    def __init__(self) -> None:
        self._scanner: Optional[BleakScanner] = None
        self._client: Optional[BleakClient] = None
        # Devices seen in the last scan, so connect() can skip a rescan
        self._seen: Dict[str, BLEDevice] = {}

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected

    async def start_scan(
        self, on_advertisement: AdvertisementCallback, on_error: ErrorCallback
    ) -> None:
        """Start delivering advertisements.

        bleak reports adapter failures by raising from ``start()``; it has
        no asynchronous error stream, so ``on_error`` is never invoked here.
        """
        if self._scanner is not None:
            await self.stop_scan()

        self._seen.clear()

        def detection_callback(device: BLEDevice, adv_data: AdvertisementData) -> None:
            name = device.name or adv_data.local_name
            if not name:
                return
            self._seen[device.address] = device
            on_advertisement(PeripheralRef(id=device.address, name=name))

        scanner = BleakScanner(detection_callback)
        await scanner.start()
        self._scanner = scanner
        logger.debug("Scanner started")

    async def stop_scan(self) -> None:
        scanner, self._scanner = self._scanner, None
        if scanner is None:
            return
        await scanner.stop()
        logger.debug("Scanner stopped")

    async def connect(
        self, peripheral_id: str, on_disconnected: DisconnectCallback
    ) -> None:
        """Connect to a peripheral by address.

        Args:
            peripheral_id: Address reported during the scan
            on_disconnected: Called if the link drops after connecting
        """
        target: Union[BLEDevice, str] = self._seen.get(peripheral_id, peripheral_id)

        def disconnected_callback(client: BleakClient) -> None:
            # Ignore drops reported for a client we already released
            if self._client is client:
                self._client = None
                on_disconnected()

        client = BleakClient(target, disconnected_callback=disconnected_callback)
        # Kept even if connect() fails or is cancelled, so disconnect() can
        # release a half-open link
        self._client = client
        await client.connect()

    async def discover_services(self) -> Dict[str, List[str]]:
        """Return service UUIDs mapped to their characteristic UUIDs."""
        client = self._require_client()
        return {
            service.uuid: [char.uuid for char in service.characteristics]
            for service in client.services
        }

    async def write(
        self, service_uuid: str, char_uuid: str, payload: str, response: bool = True
    ) -> None:
        """Write a base64-framed payload to a characteristic."""
        client = self._require_client()
        service = client.services.get_service(service_uuid)
        if service is None:
            raise BleakError(f"Service {service_uuid} not found")
        characteristic = service.get_characteristic(char_uuid)
        if characteristic is None:
            raise BleakError(f"Characteristic {char_uuid} not found")

        await client.write_gatt_char(characteristic, unframe(payload), response=response)

    async def disconnect(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        await client.disconnect()

    def _require_client(self) -> BleakClient:
        if self._client is None or not self._client.is_connected:
            raise BleakError("Not connected")
        return self._client
