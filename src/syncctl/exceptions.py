"""Exception hierarchy for scanning, connection and command failures."""


class SyncError(Exception):
    """Base exception for all syncctl failures."""


class PermissionDenied(SyncError):
    """Bluetooth permission was not granted."""


class RadioError(SyncError):
    """The radio layer failed while scanning."""


class InvalidState(SyncError):
    """The operation is not valid in the current state, or one is in flight."""


class NotConnected(SyncError):
    """A command was sent while no session is ready."""


class UnknownCommand(SyncError):
    """The codec has no byte sequence for this command."""


class ConnectionFailed(SyncError):
    """Connecting or enumerating services failed."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Connection failed: {reason}")
        self.reason = reason


class WriteFailed(SyncError):
    """The peripheral did not acknowledge a characteristic write."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Write failed: {reason}")
        self.reason = reason
