"""Tests for the SyncController facade."""

import pytest

from syncctl import (
    Command,
    ConnectionFailed,
    ConnectionState,
    NotConnected,
    PeripheralRef,
    PermissionDenied,
    ScanState,
    SyncConfig,
    SyncController,
    WriteFailed,
)
from syncctl.adapter import StaticPermissionGate
from syncctl.core import SERVICE_UUID, WRITE_CHAR_UUID

DEVICE_A = PeripheralRef("A", "SYNC")
DEVICE_B = PeripheralRef("B", "OTHER")


@pytest.mark.asyncio
async def test_scan_connect_send_disconnect(controller, adapter):
    adapter.nearby = [DEVICE_A, DEVICE_B]

    devices = await controller.scan()
    assert devices == [DEVICE_A]
    assert controller.devices == [DEVICE_A]

    await controller.connect("A")
    assert controller.connection_state is ConnectionState.READY
    assert controller.connected_peripheral == DEVICE_A

    await controller.send_command(Command.FORWARD)
    assert adapter.writes == [(SERVICE_UUID, WRITE_CHAR_UUID, "AQM=", True)]

    await controller.disconnect()
    assert controller.connection_state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_toggle_breathing(controller, adapter):
    adapter.nearby = [DEVICE_A]
    await controller.scan()
    await controller.connect("A")

    assert controller.breathing_mode is False
    assert await controller.toggle_breathing() is True
    assert await controller.toggle_breathing() is False

    assert [w[2] for w in adapter.writes] == ["AQEB", "AQAB"]


@pytest.mark.asyncio
async def test_toggle_breathing_failure_keeps_mode(controller, adapter):
    adapter.nearby = [DEVICE_A]
    await controller.scan()
    await controller.connect("A")
    adapter.write_error = RuntimeError("no ack")

    with pytest.raises(WriteFailed):
        await controller.toggle_breathing()

    assert controller.breathing_mode is False


@pytest.mark.asyncio
async def test_toggle_breathing_requires_connection(controller):
    with pytest.raises(NotConnected):
        await controller.toggle_breathing()

    assert controller.breathing_mode is False


@pytest.mark.asyncio
async def test_scan_permission_denied(adapter, config):
    controller = SyncController(
        adapter=adapter,
        permission_gate=StaticPermissionGate(granted=False),
        config=config,
    )

    with pytest.raises(PermissionDenied):
        await controller.scan()

    assert controller.scan_state is ScanState.IDLE
    assert "start_scan" not in adapter.calls


@pytest.mark.asyncio
async def test_connect_unknown_peripheral(controller):
    with pytest.raises(ConnectionFailed):
        await controller.connect("missing")

    assert controller.connection_state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_connect_stops_active_scan(adapter):
    controller = SyncController(adapter=adapter, config=SyncConfig(scan_timeout=10.0))
    adapter.nearby = [DEVICE_A]

    await controller.start_scan()
    assert controller.is_scanning

    await controller.connect("A")

    assert controller.scan_state is ScanState.IDLE
    assert adapter.calls.index("stop_scan") < adapter.calls.index("connect:A")
    await controller.close()


@pytest.mark.asyncio
async def test_motor_speed(controller, adapter):
    adapter.nearby = [DEVICE_A]
    await controller.scan()
    await controller.connect("A")

    await controller.set_motor_speed(128)

    assert adapter.writes[-1][2] == "AoA="


@pytest.mark.asyncio
async def test_context_manager_releases_radio(adapter, config):
    adapter.nearby = [DEVICE_A]

    async with SyncController(adapter=adapter, config=config) as controller:
        await controller.scan()
        await controller.connect("A")
        assert adapter.connected

    assert controller.connection_state is ConnectionState.DISCONNECTED
    assert not adapter.connected


@pytest.mark.asyncio
async def test_disconnect_callback_on_link_loss(controller, adapter):
    events = []
    controller.set_on_disconnect(lambda: events.append("disconnected"))
    adapter.nearby = [DEVICE_A]
    await controller.scan()
    await controller.connect("A")

    adapter.drop_link()

    assert events == ["disconnected"]
    assert not controller.is_connected


@pytest.mark.asyncio
async def test_state_change_callback(controller, adapter):
    changes = []
    controller.set_on_state_change(lambda: changes.append(controller.get_status()))
    adapter.nearby = [DEVICE_A]

    await controller.scan()

    assert changes[0]["scan"] == "SCANNING"
    assert changes[-1]["scan"] == "IDLE"


@pytest.mark.asyncio
async def test_get_status(controller, adapter):
    assert controller.get_status() == {
        "scan": "IDLE",
        "connection": "DISCONNECTED",
        "device": None,
        "devices": 0,
        "breathing": False,
    }

    adapter.nearby = [DEVICE_A]
    await controller.scan()
    await controller.connect("A")

    status = controller.get_status()
    assert status["connection"] == "READY"
    assert status["device"] == "SYNC (A)"
    assert status["devices"] == 1
