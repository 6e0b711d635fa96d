from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class UnitStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    PREEMPTED = "preempted"
    FINISHED = "finished"
    ERRORED = "errored"


TERMINAL_STATUSES = frozenset({UnitStatus.FINISHED, UnitStatus.ERRORED})


@dataclass(frozen=True, slots=True)
class UnitSpec:
    """Immutable description of one piece of work."""

    command: str
    sequence_index: int = 0

    def __post_init__(self) -> None:
        if not self.command.strip():
            msg = "command must not be empty"
            raise ValueError(msg)
        if self.sequence_index < 0:
            msg = "sequence_index cannot be negative"
            raise ValueError(msg)


@dataclass(slots=True)
class Unit:
    """Mutable runtime state for a unit bound to at most one OS process.

    All times are milliseconds relative to the engine epoch.
    """

    spec: UnitSpec
    arrival_time: int = 0
    start_time: Optional[int] = None
    completion_time: Optional[int] = None
    turnaround_time: int = 0
    waiting_time: int = 0
    response_time: int = 0
    burst_time: int = 0
    priority: int = 0
    estimate: Optional[int] = None
    started: bool = False
    finished: bool = False
    error: bool = False
    exit_code: Optional[int] = None
    status: UnitStatus = UnitStatus.PENDING
    process: Any = None

    @classmethod
    def from_command(cls, command: str, *, sequence_index: int = 0, arrival_time: int = 0) -> Unit:
        return cls(spec=UnitSpec(command=command, sequence_index=sequence_index), arrival_time=arrival_time)

    @property
    def command(self) -> str:
        return self.spec.command

    @property
    def sequence_index(self) -> int:
        return self.spec.sequence_index

    @property
    def has_exited(self) -> bool:
        return self.exit_code is not None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def mark_started(self, now: int) -> None:
        if self.start_time is None:
            self.start_time = now
            self.response_time = now - self.arrival_time

    def record_exit(self, exit_code: int) -> None:
        self.exit_code = exit_code
        if exit_code != 0:
            self.error = True

    def finalize(self, now: int) -> None:
        """Close the unit's life-cycle at ``now`` and derive its timing metrics."""

        if self.is_terminal:
            msg = f"unit {self.command!r} is already finalized"
            raise RuntimeError(msg)
        self.mark_started(now)
        self.completion_time = now
        self.turnaround_time = now - self.arrival_time
        self.waiting_time = self.turnaround_time - self.burst_time
        self.finished = not self.error
        self.status = UnitStatus.FINISHED if self.finished else UnitStatus.ERRORED
        self.process = None
