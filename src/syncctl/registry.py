"""
Registry of peripherals discovered during a scan window.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeripheralRef:
    """A discovered peripheral, identified by its platform address."""

    id: str
    name: str


class DeviceRegistry:
    """Deduplicated, insertion-ordered set of matching peripherals."""

    def __init__(self) -> None:
        self._devices: Dict[str, PeripheralRef] = {}

    def on_advertisement(self, peripheral: PeripheralRef, name_filter: str) -> bool:
        """Record an advertisement if it matches the name filter.

        Args:
            peripheral: Advertising peripheral
            name_filter: Exact advertised name to accept

        Returns:
            True if the peripheral was newly added
        """
        if peripheral.name != name_filter:
            return False
        if peripheral.id in self._devices:
            return False

        self._devices[peripheral.id] = peripheral
        logger.info(f"Discovered {peripheral.name} ({peripheral.id})")
        return True

    def reset(self) -> None:
        self._devices.clear()

    def list(self) -> List[PeripheralRef]:
        """Discovered peripherals in first-seen order."""
        return list(self._devices.values())

    def get(self, peripheral_id: str) -> Optional[PeripheralRef]:
        return self._devices.get(peripheral_id)

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, peripheral_id: object) -> bool:
        return peripheral_id in self._devices
