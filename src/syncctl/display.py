"""
Display manager for Rich-based REPL output.

Handles all console output including the device list, status table,
command results and help.
"""

from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .registry import PeripheralRef


class DisplayManager:
    """Manages console output with Rich library."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize display manager.

        Args:
            console: Rich Console instance (creates one if None)
        """
        self.console = console or Console()

    def print_banner(self) -> None:
        """Print startup banner."""
        panel = Panel(
            "[bold cyan]SyncCtrl - SYNC Device Control[/bold cyan]\n"
            "[dim]Type 'help' for commands, 'quit' to exit[/dim]",
            expand=False,
        )
        self.console.print(panel)

    def print_status(self, data: dict) -> None:
        """Display scan and connection state.

        Args:
            data: Dictionary from SyncController.get_status()
        """
        table = self.format_status_table(data)
        self.console.print(table)

    def print_devices(
        self, devices: List[PeripheralRef], connected: Optional[PeripheralRef] = None
    ) -> None:
        """Display discovered devices with their selection numbers.

        Args:
            devices: Peripherals in discovery order
            connected: Currently connected peripheral, marked in the list
        """
        if not devices:
            self.console.print("[dim]No devices found[/dim]")
            return

        table = Table(title="Devices", show_header=True, header_style="bold cyan")
        table.add_column("#", style="magenta", justify="right")
        table.add_column("Name", style="cyan")
        table.add_column("ID", style="white")
        table.add_column("", style="green")

        for number, device in enumerate(devices, 1):
            marker = "connected" if connected and connected.id == device.id else ""
            table.add_row(str(number), device.name, device.id, marker)

        self.console.print(table)

    def print_success(self, message: str) -> None:
        """Print green confirmation.

        Args:
            message: Confirmation text
        """
        self.console.print(f"[green]✓[/green] {message}", highlight=False)

    def print_error(self, message: str) -> None:
        """Print red error message.

        Args:
            message: Error message text
        """
        self.console.print(f"[red]Error:[/red] {message}", highlight=False)

    def print_info(self, message: str) -> None:
        """Print blue info message.

        Args:
            message: Info message text
        """
        self.console.print(f"[cyan]Info:[/cyan] {message}", highlight=False)

    def print_help(self, commands: list) -> None:
        """Display command reference.

        Args:
            commands: List of REPLCommand objects
        """
        table = Table(title="Available Commands", show_header=True)
        table.add_column("Command", style="cyan")
        table.add_column("Aliases", style="magenta")
        table.add_column("Description", style="white")
        table.add_column("Usage", style="yellow")

        for cmd in commands:
            aliases = ", ".join(cmd.aliases) if cmd.aliases else "-"
            table.add_row(cmd.name, aliases, cmd.description, cmd.usage)

        self.console.print(table)
        self.console.print(
            "[dim]Keyboard shortcuts: Ctrl+C to interrupt, Ctrl+D to exit[/dim]"
        )

    def format_status_table(self, data: dict) -> Table:
        """Create Rich Table for state display.

        Args:
            data: Dictionary with scan, connection, device, devices, breathing

        Returns:
            Rich Table object
        """
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="yellow")

        table.add_row("Scan", self.format_state(data.get("scan", "UNKNOWN")))
        table.add_row(
            "Connection", self.format_state(data.get("connection", "UNKNOWN"))
        )
        table.add_row("Device", data.get("device") or "-")
        table.add_row("Devices found", str(data.get("devices", 0)))
        table.add_row("Breathing", "on" if data.get("breathing") else "off")

        return table

    @staticmethod
    def format_state(state: str) -> str:
        """Format an enum state value for display.

        Args:
            state: State value such as "READY" or "IDLE"

        Returns:
            Lower-cased, human readable state
        """
        return state.replace("_", " ").lower()
