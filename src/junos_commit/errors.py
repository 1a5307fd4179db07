"""Error taxonomy for the configuration engine.

Every error carries enough context (offending lines, field, or the device's
own diagnostic) for the caller to decide what to do next. Nothing here is
retried automatically.
"""
from typing import Optional


class EngineError(Exception):
    """Base class for all engine errors."""
    pass


class DeviceConnectionError(EngineError, ConnectionError):
    """Transport or authentication failure. Fatal to the whole operation."""
    pass


class CommandError(EngineError):
    """A command round trip was rejected by the device."""

    def __init__(self, command: str, message: str):
        self.command = command
        self.message = message
        super().__init__(f"command '{command}' failed: {message}")


class LockError(EngineError):
    """The exclusive candidate lock could not be taken."""
    pass


class ApplyError(EngineError):
    """The device rejected one or more staged lines."""

    def __init__(self, lines: list[str], message: str):
        self.lines = list(lines)
        self.message = message
        super().__init__(message)


class CommitError(EngineError):
    """The candidate configuration was rejected at commit time."""

    def __init__(self, message: str, warnings: Optional[list] = None):
        self.message = message
        self.warnings = list(warnings or [])
        super().__init__(message)


class DecodeError(EngineError):
    """Device output could not be decoded into a record."""

    def __init__(self, line: str, field: str, reason: str = ""):
        self.line = line
        self.field = field
        self.reason = reason
        msg = f"failed to decode field '{field}' from line '{line}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UnsupportedFeatureError(EngineError):
    """The device does not support the requested feature."""

    def __init__(self, feature: str, hardware_model: str):
        self.feature = feature
        self.hardware_model = hardware_model
        super().__init__(
            f"{feature} not compatible with Junos device {hardware_model!r}"
        )


class TransactionStateError(EngineError):
    """A transaction primitive was called in the wrong state."""
    pass


class ResourceExistsError(EngineError):
    """Create found the resource already configured."""
    pass


class ResourceNotFoundError(EngineError):
    """The resource is missing where it was expected."""
    pass
