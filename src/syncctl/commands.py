"""
Command definitions and auto-completion for REPL.

Defines all available commands with metadata and provides a completer
for prompt_toolkit auto-completion.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document


@dataclass
class REPLCommand:
    """Command definition with metadata."""

    name: str
    aliases: List[str]
    description: str
    usage: str
    handler: str


# Define all available commands
COMMANDS = [
    REPLCommand(
        name="scan",
        aliases=["sc"],
        description="Scan for SYNC devices",
        usage="scan",
        handler="cmd_scan",
    ),
    REPLCommand(
        name="devices",
        aliases=["ls"],
        description="List devices found by the last scan",
        usage="devices",
        handler="cmd_devices",
    ),
    REPLCommand(
        name="connect",
        aliases=["c"],
        description="Connect to a discovered device",
        usage="connect <number|id>",
        handler="cmd_connect",
    ),
    REPLCommand(
        name="disconnect",
        aliases=["dc"],
        description="Disconnect from device",
        usage="disconnect",
        handler="cmd_disconnect",
    ),
    REPLCommand(
        name="forward",
        aliases=["f"],
        description="Run motor forward",
        usage="forward",
        handler="cmd_forward",
    ),
    REPLCommand(
        name="reverse",
        aliases=["r"],
        description="Run motor in reverse",
        usage="reverse",
        handler="cmd_reverse",
    ),
    REPLCommand(
        name="stop",
        aliases=["x"],
        description="Stop motor",
        usage="stop",
        handler="cmd_stop",
    ),
    REPLCommand(
        name="breathe",
        aliases=["b"],
        description="Toggle breathing mode",
        usage="breathe",
        handler="cmd_breathe",
    ),
    REPLCommand(
        name="speed",
        aliases=["sp"],
        description="Set motor speed",
        usage="speed <0-255>",
        handler="cmd_speed",
    ),
    REPLCommand(
        name="status",
        aliases=["st"],
        description="Show scan and connection state",
        usage="status",
        handler="cmd_status",
    ),
    REPLCommand(
        name="help",
        aliases=["h", "?"],
        description="Show all available commands",
        usage="help",
        handler="cmd_help",
    ),
    REPLCommand(
        name="quit",
        aliases=["q", "exit"],
        description="Exit the REPL",
        usage="quit",
        handler="cmd_quit",
    ),
]

SPEED_SUGGESTIONS = ["0", "64", "128", "192", "255"]


def get_command(name: str) -> REPLCommand | None:
    """Get command by name or alias.

    Args:
        name: Command name or alias

    Returns:
        REPLCommand object if found, None otherwise
    """
    for cmd in COMMANDS:
        if cmd.name == name or name in cmd.aliases:
            return cmd
    return None


class CommandCompleter(Completer):
    """Auto-completion for commands and arguments."""

    def __init__(self, device_ids: Optional[Callable[[], List[str]]] = None) -> None:
        """Initialize completer.

        Args:
            device_ids: Returns identifiers of discovered devices for 'connect'
        """
        self._device_ids = device_ids or (lambda: [])
        self._command_names = set()
        self._command_aliases = set()

        for cmd in COMMANDS:
            self._command_names.add(cmd.name)
            self._command_aliases.update(cmd.aliases)

    def get_completions(self, document: Document, complete_event) -> Any:  # type: ignore[no-untyped-def]
        """Get completion suggestions for current input.

        Args:
            document: Current input document
            complete_event: Completion event

        Yields:
            Completion objects for matching commands/arguments
        """
        text = document.text_before_cursor.lstrip()
        parts = text.split()

        # If no text yet, suggest nothing (avoid spam)
        if not text:
            return []

        # First part: complete command name
        if len(parts) <= 1 and not text.endswith(" "):
            partial_cmd = parts[0].lower() if parts else ""
            all_names = self._command_names | self._command_aliases

            for name in sorted(all_names):
                if name.startswith(partial_cmd):
                    completion = name[len(partial_cmd) :]
                    yield Completion(
                        completion,
                        start_position=0,
                        display=f"({name})",
                    )
            return

        # Argument: device ids for connect, common values for speed
        first_cmd = parts[0].lower()
        partial = "" if text.endswith(" ") else parts[-1]

        if first_cmd in ("connect", "c"):
            candidates = self._device_ids()
        elif first_cmd in ("speed", "sp"):
            candidates = SPEED_SUGGESTIONS
        else:
            return

        for candidate in candidates:
            if candidate.startswith(partial):
                yield Completion(
                    candidate[len(partial) :],
                    start_position=0,
                    display=candidate,
                )
