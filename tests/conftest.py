from __future__ import annotations

import itertools
from dataclasses import dataclass

import pytest

from proc_sched.controller import ProcessControl
from proc_sched.errors import ControlSignalError, SpawnError
from proc_sched.unit import Unit

_pids = itertools.count(1000)


class FakeClock:
    """Clock that only moves when slept or advanced."""

    def __init__(self, start: int = 1_000) -> None:
        self.now = start

    def now_ms(self) -> int:
        return self.now

    def sleep_ms(self, duration: int) -> None:
        if duration > 0:
            self.now += duration

    def advance_to(self, moment: int) -> None:
        self.now = max(self.now, moment)


@dataclass
class FakeProcess:
    remaining: int
    exit_code: int
    pid: int
    resumed_at: int = 0
    suspended: bool = False
    killed: bool = False


class FakeController(ProcessControl):
    """Simulated processes that need a fixed amount of run time each.

    ``jobs`` maps a command to its run time in ms, or to ``(run_time, exit_code)``.
    """

    def __init__(
        self,
        clock: FakeClock,
        jobs: dict[str, int | tuple[int, int]],
        *,
        unspawnable: set[str] | None = None,
        unresumable: set[str] | None = None,
    ) -> None:
        self.clock = clock
        self.jobs = jobs
        self.unspawnable = unspawnable or set()
        self.unresumable = unresumable or set()
        self.events: list[tuple[str, str]] = []

    def dispatch(self, unit: Unit) -> bool:
        if unit.started:
            if unit.command in self.unresumable:
                unit.error = True
                raise ControlSignalError(unit.command, "resume", "process vanished")
            self.events.append(("resume", unit.command))
            fresh = False
        else:
            if unit.command in self.unspawnable:
                unit.error = True
                raise SpawnError(unit.command, "No such file or directory")
            job = self.jobs[unit.command]
            run_time, exit_code = job if isinstance(job, tuple) else (job, 0)
            unit.process = FakeProcess(remaining=run_time, exit_code=exit_code, pid=next(_pids))
            unit.started = True
            self.events.append(("spawn", unit.command))
            fresh = True
        unit.process.suspended = False
        unit.process.resumed_at = self.clock.now_ms()
        return fresh

    def poll_completion(self, unit: Unit, deadline: int) -> bool:
        process = unit.process
        finish_at = process.resumed_at + process.remaining
        if finish_at <= max(deadline, self.clock.now_ms()):
            self.clock.advance_to(finish_at)
            process.remaining = 0
            unit.record_exit(process.exit_code)
            return True
        self.clock.advance_to(deadline)
        return False

    def wait(self, unit: Unit) -> None:
        process = unit.process
        self.clock.advance_to(process.resumed_at + process.remaining)
        process.remaining = 0
        unit.record_exit(process.exit_code)

    def preempt(self, unit: Unit) -> None:
        process = unit.process
        process.remaining -= self.clock.now_ms() - process.resumed_at
        process.suspended = True
        self.events.append(("suspend", unit.command))

    def kill(self, unit: Unit) -> None:
        if unit.process is not None:
            unit.process.killed = True
        self.events.append(("kill", unit.command))

    def dispatched(self) -> list[str]:
        return [command for kind, command in self.events if kind in ("spawn", "resume")]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def trace() -> list[str]:
    return []
