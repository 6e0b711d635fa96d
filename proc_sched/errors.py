from __future__ import annotations


class SchedulingError(Exception):
    """Base class for per-unit failures raised by the process controller."""


class SpawnError(SchedulingError):
    """The OS process for a unit could not be created."""

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"cannot spawn {command!r}: {reason}")
        self.command = command
        self.reason = reason


class ControlSignalError(SchedulingError):
    """A suspend or resume signal could not be delivered to a bound process."""

    def __init__(self, command: str, signal_name: str, reason: str) -> None:
        super().__init__(f"cannot {signal_name} {command!r}: {reason}")
        self.command = command
        self.signal_name = signal_name
        self.reason = reason


class ExitRequested(Exception):
    """Raised by an admission source when the termination line is read."""
