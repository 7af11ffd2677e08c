"""
Command codec for the SYNC write characteristic.

Logical commands map to short fixed opcodes. The link layer expects the
raw bytes framed as base64 text, so every write goes through
``frame_for_transport`` before it reaches the adapter.
"""

import base64
from dataclasses import dataclass
from typing import ClassVar, Dict, Optional

from .core import MOTOR_SPEED_MAX, MOTOR_SPEED_MIN
from .exceptions import UnknownCommand

SET_MOTOR_SPEED = "set_motor_speed"
MOTOR_SPEED_OPCODE = 0x02

# Fixed opcode table for argument-less commands
COMMAND_BYTES: Dict[str, bytes] = {
    "forward": bytes([0x01, 0x03]),
    "reverse": bytes([0x01, 0x01]),
    "stop": bytes([0x01, 0x00]),
    "start_breathing": bytes([0x01, 0x01, 0x01]),
    "stop_breathing": bytes([0x01, 0x00, 0x01]),
}


@dataclass(frozen=True)
class Command:
    """A logical motor/pump action."""

    name: str
    value: Optional[int] = None

    FORWARD: ClassVar["Command"]
    REVERSE: ClassVar["Command"]
    STOP: ClassVar["Command"]
    START_BREATHING: ClassVar["Command"]
    STOP_BREATHING: ClassVar["Command"]

    @classmethod
    def set_motor_speed(cls, speed: int) -> "Command":
        """Build a motor speed command.

        Args:
            speed: Motor speed, 0 to 255

        Raises:
            TypeError: If speed is not an int
            ValueError: If speed is out of range
        """
        _check_speed_type(speed)
        if speed < MOTOR_SPEED_MIN or speed > MOTOR_SPEED_MAX:
            raise ValueError(
                f"Motor speed {speed} out of range [{MOTOR_SPEED_MIN}, {MOTOR_SPEED_MAX}]"
            )
        return cls(SET_MOTOR_SPEED, speed)

    @classmethod
    def from_name(cls, name: str) -> "Command":
        """Look up an argument-less command by name (case-insensitive).

        Raises:
            UnknownCommand: If no command has that name
        """
        key = name.strip().lower().replace("-", "_")
        if key not in COMMAND_BYTES:
            raise UnknownCommand(f"Unknown command: {name!r}")
        return cls(key)

    def __str__(self) -> str:
        if self.value is None:
            return self.name
        return f"{self.name}({self.value})"


Command.FORWARD = Command("forward")
Command.REVERSE = Command("reverse")
Command.STOP = Command("stop")
Command.START_BREATHING = Command("start_breathing")
Command.STOP_BREATHING = Command("stop_breathing")


def _check_speed_type(speed: object) -> None:
    # bool is an int subclass but never a valid speed
    if isinstance(speed, bool) or not isinstance(speed, int):
        raise TypeError(f"Motor speed must be an int, got {type(speed).__name__}")


def encode(command: Command) -> bytes:
    """Encode a command into its fixed byte sequence.

    Raises:
        UnknownCommand: If the command is not in the table
        TypeError, ValueError: If a motor speed value is not a valid int
    """
    if not isinstance(command, Command):
        raise UnknownCommand(f"Not a command: {command!r}")

    if command.name == SET_MOTOR_SPEED:
        speed = command.value
        _check_speed_type(speed)
        if not MOTOR_SPEED_MIN <= speed <= MOTOR_SPEED_MAX:
            raise ValueError(f"Invalid motor speed: {speed!r}")
        return bytes([MOTOR_SPEED_OPCODE, speed])

    try:
        return COMMAND_BYTES[command.name]
    except KeyError:
        raise UnknownCommand(f"Unknown command: {command.name!r}") from None


def frame_for_transport(data: bytes) -> str:
    """Frame raw bytes as base64 text for the write API."""
    return base64.b64encode(data).decode("ascii")


def unframe(payload: str) -> bytes:
    """Recover raw bytes from a base64 transport payload."""
    return base64.b64decode(payload, validate=True)
