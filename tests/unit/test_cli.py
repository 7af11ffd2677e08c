"""Tests for the REPL handlers and one-shot CLI commands."""

import io

import pytest
from rich.console import Console

from syncctl import PeripheralRef, SyncController
from syncctl.adapter import StaticPermissionGate
from syncctl.cli import SyncCtrlREPL, run_cli_command
from syncctl.display import DisplayManager

DEVICE_1 = PeripheralRef("AA:BB:CC:DD:EE:01", "SYNC")
DEVICE_2 = PeripheralRef("AA:BB:CC:DD:EE:02", "SYNC")


def make_repl(controller):
    buffer = io.StringIO()
    display = DisplayManager(Console(file=buffer, width=120, color_system=None))
    return SyncCtrlREPL(controller=controller, display=display), buffer


@pytest.fixture
def repl(controller):
    return make_repl(controller)


@pytest.mark.asyncio
async def test_unknown_command_is_reported(repl):
    repl, buffer = repl

    await repl._handle_input("warp 9")

    assert "Error: Unknown command: warp" in buffer.getvalue()


@pytest.mark.asyncio
async def test_sync_error_is_reported(adapter, config):
    controller = SyncController(
        adapter=adapter,
        permission_gate=StaticPermissionGate(granted=False),
        config=config,
    )
    repl, buffer = make_repl(controller)

    await repl._handle_input("scan")

    assert "Error: Bluetooth permissions are required to continue" in buffer.getvalue()
    assert "start_scan" not in adapter.calls


@pytest.mark.asyncio
async def test_connect_failure_is_reported(repl, adapter):
    repl, buffer = repl
    adapter.nearby = [DEVICE_1]
    adapter.connect_error = RuntimeError("peer refused")
    await repl._handle_input("scan")

    await repl._handle_input("connect 1")

    assert "Error: Connection failed: peer refused" in buffer.getvalue()
    assert not repl.controller.is_connected


@pytest.mark.asyncio
async def test_connect_by_number(repl, adapter):
    repl, buffer = repl
    adapter.nearby = [DEVICE_1, DEVICE_2]
    await repl._handle_input("scan")

    await repl._handle_input("connect 2")

    assert repl.controller.connected_peripheral == DEVICE_2
    assert f"connect:{DEVICE_2.id}" in adapter.calls
    assert "Connected to device SYNC" in buffer.getvalue()


@pytest.mark.asyncio
async def test_connect_by_id(repl, adapter):
    repl, _ = repl
    adapter.nearby = [DEVICE_1, DEVICE_2]
    await repl._handle_input("scan")

    await repl._handle_input(f"c {DEVICE_1.id}")

    assert repl.controller.connected_peripheral == DEVICE_1


@pytest.mark.asyncio
async def test_connect_rejects_unknown_device(repl, adapter):
    repl, buffer = repl
    adapter.nearby = [DEVICE_1, DEVICE_2]
    await repl._handle_input("scan")

    await repl._handle_input("connect 3")
    await repl._handle_input("connect FF:FF")
    await repl._handle_input("connect")

    output = buffer.getvalue()
    assert "No such device: 3" in output
    assert "No such device: FF:FF" in output
    assert "Usage: connect <number|id>" in output
    assert not any(call.startswith("connect:") for call in adapter.calls)


@pytest.mark.asyncio
async def test_speed_parsing(repl, adapter):
    repl, buffer = repl
    adapter.nearby = [DEVICE_1]
    await repl._handle_input("scan")
    await repl._handle_input("connect")

    await repl._handle_input("speed abc")
    await repl._handle_input("speed 300")
    await repl._handle_input("speed 3.7")
    assert adapter.writes == []

    await repl._handle_input("speed 128")

    output = buffer.getvalue()
    assert "Invalid speed: abc (expected 0-255)" in output
    assert "Invalid speed: 300 (expected 0-255)" in output
    assert "Invalid speed: 3.7 (expected 0-255)" in output
    assert "Speed 128 sent" in output
    assert [w[2] for w in adapter.writes] == ["AoA="]


@pytest.mark.asyncio
async def test_motor_command_requires_connection(repl, adapter):
    repl, buffer = repl

    await repl._handle_input("forward")

    assert "Not connected" in buffer.getvalue()
    assert adapter.writes == []


@pytest.mark.asyncio
async def test_quit_disconnects(repl, adapter):
    repl, _ = repl
    adapter.nearby = [DEVICE_1]
    await repl._handle_input("scan")
    await repl._handle_input("connect 1")

    await repl._handle_input("quit")

    assert repl.running is False
    assert not repl.controller.is_connected
    assert adapter.open_links == set()


@pytest.mark.asyncio
async def test_run_cli_command_forward(adapter, config):
    adapter.nearby = [DEVICE_1]

    await run_cli_command("forward", config, adapter=adapter)

    assert [w[2] for w in adapter.writes] == ["AQM="]
    assert adapter.open_links == set()
    assert adapter.calls[-1] == "disconnect"


@pytest.mark.asyncio
async def test_run_cli_command_speed(adapter, config):
    adapter.nearby = [DEVICE_1]

    await run_cli_command("speed", config, speed=128, adapter=adapter)

    assert [w[2] for w in adapter.writes] == ["AoA="]


@pytest.mark.asyncio
async def test_run_cli_command_scan_only(adapter, config):
    adapter.nearby = [DEVICE_1]

    await run_cli_command("scan", config, adapter=adapter)

    assert not any(call.startswith("connect:") for call in adapter.calls)
    assert adapter.writes == []


@pytest.mark.asyncio
async def test_run_cli_command_without_devices_exits(adapter, config):
    with pytest.raises(SystemExit) as exc_info:
        await run_cli_command("stop", config, adapter=adapter)

    assert exc_info.value.code == 1
    assert "start_scan" in adapter.calls
    assert adapter.writes == []


@pytest.mark.asyncio
@pytest.mark.parametrize("speed", [300, -1])
async def test_run_cli_command_bad_speed_fails_before_scanning(adapter, config, speed):
    adapter.nearby = [DEVICE_1]

    with pytest.raises(ValueError):
        await run_cli_command("speed", config, speed=speed, adapter=adapter)

    assert adapter.calls == []


@pytest.mark.asyncio
async def test_run_cli_command_unknown_exits_before_scanning(adapter, config):
    with pytest.raises(SystemExit):
        await run_cli_command("warp", config, adapter=adapter)

    assert adapter.calls == []
