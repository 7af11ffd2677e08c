"""
Main REPL application for SYNC device control.

Interactive command loop with async support and auto-completion, plus
one-shot command-line actions.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import InMemoryHistory

from .adapter import RadioAdapter
from .codec import Command
from .commands import COMMANDS, CommandCompleter, get_command
from .controller import SyncController
from .core import SyncConfig
from .display import DisplayManager
from .exceptions import SyncError
from .registry import PeripheralRef
from .session import ConnectionState

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)
logger = logging.getLogger(__name__)


class SyncCtrlREPL:
    """Interactive REPL for SYNC device control."""

    def __init__(
        self,
        config: Optional[SyncConfig] = None,
        controller: Optional[SyncController] = None,
        display: Optional[DisplayManager] = None,
    ) -> None:
        """Initialize REPL with controller and display manager."""
        self.controller = controller or SyncController(config=config)
        self.display = display or DisplayManager()
        self.running = False
        self.session: Optional[PromptSession] = None

        self.controller.set_on_disconnect(self._on_device_disconnect)

    async def run(self) -> None:
        """Run the main REPL loop."""
        self.running = True
        self.display.print_banner()

        # Create prompt session with auto-completion
        if self.session is None:
            self.session = PromptSession(
                completer=CommandCompleter(self._device_choices),
                history=InMemoryHistory(),
                enable_history_search=True,
            )

        try:
            while self.running:
                try:
                    prompt_text = self._get_prompt()
                    text = await self.session.prompt_async(prompt_text)

                    if text.strip():
                        await self._handle_input(text.strip())

                except KeyboardInterrupt:
                    # Just show new prompt on Ctrl+C
                    self.display.console.print()
                    continue

        except EOFError:
            # End of input (Ctrl+D)
            await self.cmd_quit([])
        finally:
            self.running = False
            await self.controller.close()

    def _get_prompt(self) -> FormattedText:
        """Get dynamic prompt based on connection state.

        Returns:
            FormattedText for prompt_toolkit
        """
        peripheral = self.controller.connected_peripheral
        if self.controller.is_connected and peripheral:
            return FormattedText([("class:prompt", f"[{peripheral.name}] > ")])
        if self.controller.is_scanning:
            return FormattedText([("class:prompt", "[scanning] > ")])
        return FormattedText([("class:prompt", "[disconnected] > ")])

    def _device_choices(self) -> List[str]:
        return [str(n) for n in range(1, len(self.controller.devices) + 1)]

    async def _handle_input(self, text: str) -> None:
        """Parse and dispatch command.

        Args:
            text: Raw user input text
        """
        parts = text.split(maxsplit=1)
        if not parts:
            return

        cmd_name = parts[0].lower()
        args = parts[1].split() if len(parts) > 1 else []

        cmd = get_command(cmd_name)
        if not cmd:
            self.display.print_error(
                f"Unknown command: {cmd_name}. Type 'help' for available commands."
            )
            return

        handler_name = cmd.handler
        if not hasattr(self, handler_name):
            self.display.print_error(f"Handler not found: {handler_name}")
            return

        handler = getattr(self, handler_name)

        try:
            await handler(args)
        except SyncError as e:
            self.display.print_error(str(e))
        except Exception as e:
            self.display.print_error(f"Command failed: {e}")
            logger.exception("Command exception")

    def _on_device_disconnect(self) -> None:
        """Callback when device drops the connection."""
        self.display.print_info("Device disconnected")

    def _resolve_device(self, arg: str) -> Optional[PeripheralRef]:
        devices = self.controller.devices
        if arg.isdigit():
            index = int(arg) - 1
            if 0 <= index < len(devices):
                return devices[index]
            return None
        for device in devices:
            if device.id == arg:
                return device
        return None

    async def _send(self, command: Command, label: str) -> None:
        if not self.controller.is_connected:
            self.display.print_error("Not connected. Use 'connect' first.")
            return

        await self.controller.send_command(command)
        self.display.print_success(f"{label} sent")

    # ========== Command Handlers ==========

    async def cmd_scan(self, args: list) -> None:
        """Scan for SYNC devices."""
        name = self.controller.config.target_name
        self.display.print_info(f"Scanning for {name}...")
        devices = await self.controller.scan()
        self.display.print_devices(devices)

    async def cmd_devices(self, args: list) -> None:
        """List devices found by the last scan."""
        self.display.print_devices(
            self.controller.devices, self.controller.connected_peripheral
        )

    async def cmd_connect(self, args: list) -> None:
        """Connect to a discovered device."""
        if self.controller.connection_state is not ConnectionState.DISCONNECTED:
            self.display.print_info("Already connected")
            return

        devices = self.controller.devices
        if not args:
            if len(devices) != 1:
                self.display.print_error("Usage: connect <number|id>")
                return
            device: Optional[PeripheralRef] = devices[0]
        else:
            device = self._resolve_device(args[0])

        if device is None:
            self.display.print_error(
                f"No such device: {args[0]}. Use 'scan' then 'devices'."
            )
            return

        self.display.print_info(f"Connecting to {device.name}...")
        await self.controller.connect(device.id)
        self.display.print_success(f"Connected to device {device.name}")

    async def cmd_disconnect(self, args: list) -> None:
        """Disconnect from device."""
        if self.controller.connection_state is ConnectionState.DISCONNECTED:
            self.display.print_info("Not connected")
            return

        await self.controller.disconnect()
        self.display.print_success("Device disconnected successfully")

    async def cmd_forward(self, args: list) -> None:
        """Run motor forward."""
        await self._send(Command.FORWARD, "Forward")

    async def cmd_reverse(self, args: list) -> None:
        """Run motor in reverse."""
        await self._send(Command.REVERSE, "Reverse")

    async def cmd_stop(self, args: list) -> None:
        """Stop motor."""
        await self._send(Command.STOP, "Stop")

    async def cmd_breathe(self, args: list) -> None:
        """Toggle breathing mode."""
        if not self.controller.is_connected:
            self.display.print_error("Not connected. Use 'connect' first.")
            return

        enabled = await self.controller.toggle_breathing()
        self.display.print_success(f"Breathing mode {'on' if enabled else 'off'}")

    async def cmd_speed(self, args: list) -> None:
        """Set motor speed."""
        if not args:
            self.display.print_error("Usage: speed <0-255>")
            return

        try:
            speed = int(args[0])
            command = Command.set_motor_speed(speed)
        except ValueError:
            self.display.print_error(f"Invalid speed: {args[0]} (expected 0-255)")
            return

        await self._send(command, f"Speed {speed}")

    async def cmd_status(self, args: list) -> None:
        """Show scan and connection state."""
        self.display.print_status(self.controller.get_status())

    async def cmd_help(self, args: list) -> None:
        """Show all available commands."""
        self.display.print_help(COMMANDS)

    async def cmd_quit(self, args: list) -> None:
        """Exit the REPL."""
        if self.controller.connection_state is not ConnectionState.DISCONNECTED:
            self.display.print_info("Disconnecting...")
            await self.controller.disconnect()

        self.display.console.print("[cyan]Goodbye![/cyan]")
        self.running = False


CLI_COMMANDS = {
    "forward": Command.FORWARD,
    "reverse": Command.REVERSE,
    "stop": Command.STOP,
    "breathe-on": Command.START_BREATHING,
    "breathe-off": Command.STOP_BREATHING,
}


async def run_cli_command(
    command: str,
    config: Optional[SyncConfig] = None,
    speed: Optional[int] = None,
    adapter: Optional[RadioAdapter] = None,
) -> None:
    """Run a single CLI command and exit.

    The command is validated before the radio is touched.
    """
    display = DisplayManager()

    to_send: Optional[Command] = None
    if command == "speed" and speed is not None:
        to_send = Command.set_motor_speed(speed)
        label = f"Speed {speed}"
    elif command in CLI_COMMANDS:
        to_send = CLI_COMMANDS[command]
        label = command
    elif command != "scan":
        display.print_error(f"Unknown command: {command}")
        sys.exit(1)

    async with SyncController(adapter=adapter, config=config) as controller:
        display.print_info(f"Scanning for {controller.config.target_name}...")
        devices = await controller.scan()

        if to_send is None:
            display.print_devices(devices)
            return

        if not devices:
            display.print_error("No device found")
            sys.exit(1)

        device = devices[0]
        display.print_info(f"Connecting to {device.name} ({device.id})...")
        await controller.connect(device.id)

        await controller.send_command(to_send)
        display.print_success(f"{label} sent")


def main() -> None:
    """Entry point for the REPL application."""
    parser = argparse.ArgumentParser(
        description="SYNC Device Control",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  syncctl                    # Start interactive REPL
  syncctl --scan             # List nearby SYNC devices
  syncctl --forward          # Run motor forward (connects to first device)
  syncctl --stop             # Stop motor
  syncctl --speed 128        # Set motor speed
  syncctl --breathe-on       # Start breathing mode
        """,
    )

    parser.add_argument("--scan", action="store_true", help="Scan and list devices")
    parser.add_argument("--forward", action="store_true", help="Run motor forward")
    parser.add_argument("--reverse", action="store_true", help="Run motor in reverse")
    parser.add_argument("--stop", action="store_true", help="Stop motor")
    parser.add_argument(
        "--breathe-on", action="store_true", help="Start breathing mode"
    )
    parser.add_argument(
        "--breathe-off", action="store_true", help="Stop breathing mode"
    )
    parser.add_argument("--speed", type=int, metavar="N", help="Set motor speed (0-255)")

    parser.add_argument(
        "--name", default=SyncConfig.target_name, help="Advertised device name"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=SyncConfig.scan_timeout,
        help="Scan window in seconds",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = SyncConfig(target_name=args.name, scan_timeout=args.timeout)

    # Check which command was requested
    commands = []
    if args.scan:
        commands.append("scan")
    for name in CLI_COMMANDS:
        if getattr(args, name.replace("-", "_")):
            commands.append(name)
    if args.speed is not None:
        commands.append("speed")

    # If no CLI commands, start REPL
    if not commands:
        try:
            repl = SyncCtrlREPL(config)
            asyncio.run(repl.run())
        except KeyboardInterrupt:
            print("\nInterrupted")
            sys.exit(0)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        if len(commands) > 1:
            print("Error: Only one command can be specified at a time", file=sys.stderr)
            sys.exit(1)

        try:
            asyncio.run(run_cli_command(commands[0], config, speed=args.speed))
        except KeyboardInterrupt:
            print("\nInterrupted")
            sys.exit(1)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
