from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Collection, Iterable
from dataclasses import dataclass

from .admission import AdmissionSource
from .clock import MonotonicClock
from .controller import OsProcessController, ProcessControl
from .errors import ControlSignalError, ExitRequested, SpawnError
from .sink import MetricsSink
from .unit import Unit, UnitStatus

logger = logging.getLogger(__name__)

IDLE_INTERVAL_MS = 10

TraceFn = Callable[[str], None]


def _require_positive(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{name} must be an integer number of milliseconds"
        raise ValueError(msg)
    if value <= 0:
        msg = f"{name} must be strictly positive"
        raise ValueError(msg)


@dataclass(slots=True)
class RoundRobinConfig:
    quantum: int

    def __post_init__(self) -> None:
        _require_positive("quantum", self.quantum)


@dataclass(slots=True)
class MlfqConfig:
    quantum0: int
    quantum1: int
    quantum2: int
    boost_interval: int

    def __post_init__(self) -> None:
        _require_positive("quantum0", self.quantum0)
        _require_positive("quantum1", self.quantum1)
        _require_positive("quantum2", self.quantum2)
        _require_positive("boost_interval", self.boost_interval)
        if not self.quantum0 < self.quantum1 < self.quantum2:
            logger.warning(
                "MLFQ quanta are not increasing (%d, %d, %d); lower tiers will not get longer slices",
                self.quantum0,
                self.quantum1,
                self.quantum2,
            )

    def quantum_for(self, tier: int) -> int:
        return (self.quantum0, self.quantum1, self.quantum2)[tier]


@dataclass(slots=True)
class SliceOutcome:
    start: int
    end: int
    completed: bool

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass(slots=True)
class EngineResult:
    units: list[Unit]
    total_time: int
    cpu_busy_time: int
    slices: int

    @property
    def utilization(self) -> float:
        if self.total_time == 0:
            return 0.0
        return self.cpu_busy_time / self.total_time


class Engine(ABC):
    """A scheduling policy driving units through the process controller.

    Engines are single-use: one ``run()`` per instance. Times recorded on
    units are milliseconds since the start of that run.
    """

    name = "engine"

    def __init__(
        self,
        controller: ProcessControl | None = None,
        *,
        clock: MonotonicClock | None = None,
        sink: MetricsSink | None = None,
        trace: TraceFn | None = print,
    ) -> None:
        self.clock = clock or MonotonicClock()
        self.controller = controller or OsProcessController(clock=self.clock)
        self.sink = sink
        self._trace = trace
        self._epoch = self.clock.now_ms()
        self._completed: list[Unit] = []
        self._busy = 0
        self._slices = 0
        self._current: Unit | None = None

    @abstractmethod
    def run(self) -> EngineResult:
        """Schedule until the policy's termination condition and return the result."""

    def now(self) -> int:
        return self.clock.now_ms() - self._epoch

    @property
    def completed(self) -> list[Unit]:
        return list(self._completed)

    def _begin(self) -> None:
        self._epoch = self.clock.now_ms()
        logger.debug("%s engine started", self.name)

    def _run_slice(self, unit: Unit, quantum: int | None = None, *, sleep_through: bool = False) -> SliceOutcome:
        """Dispatch ``unit`` for one slice.

        With no quantum the unit runs to completion. Otherwise the controller
        polls until the quantum expires, or with ``sleep_through`` the engine
        sleeps the whole quantum before checking. Unfinished units are
        suspended. Per-unit failures end the slice with ``completed`` set.
        """

        start = self.now()
        self._current = unit
        try:
            fresh = self.controller.dispatch(unit)
        except SpawnError as exc:
            logger.warning("%s", exc)
            return SliceOutcome(start=start, end=start, completed=True)
        except ControlSignalError as exc:
            self._abandon(unit, exc)
            return SliceOutcome(start=start, end=self.now(), completed=True)

        if fresh:
            unit.mark_started(start)
        unit.status = UnitStatus.RUNNING
        try:
            if quantum is None:
                self.controller.wait(unit)
            elif sleep_through:
                self.clock.sleep_ms(quantum)
                if not self.controller.poll_completion(unit, self.clock.now_ms()):
                    self.controller.preempt(unit)
            elif not self.controller.poll_completion(unit, self.clock.now_ms() + quantum):
                self.controller.preempt(unit)
        except ControlSignalError as exc:
            self._abandon(unit, exc)

        end = self.now()
        completed = unit.has_exited or unit.error
        if not completed:
            unit.status = UnitStatus.PREEMPTED
        self._busy += end - start
        self._slices += 1
        if self._trace is not None:
            self._trace(f"{unit.command} | {start} | {end}")
        return SliceOutcome(start=start, end=end, completed=completed)

    def _abandon(self, unit: Unit, exc: ControlSignalError) -> None:
        logger.warning("%s; killing the process", exc)
        unit.error = True
        self.controller.kill(unit)

    def _finalize(self, unit: Unit, now: int, *, emit: bool = True) -> None:
        unit.finalize(now)
        self._completed.append(unit)
        if unit.error:
            logger.info("%r errored (exit status %s)", unit.command, unit.exit_code)
        if emit:
            self._emit(unit)

    def _emit(self, unit: Unit) -> None:
        if self.sink is not None:
            self.sink.write(unit)

    def _release(self, units: Iterable[Unit]) -> None:
        for unit in units:
            if unit.started and unit.process is not None:
                self.controller.kill(unit)
                unit.process = None

    def _shutdown(self, remaining: Iterable[Unit]) -> None:
        """Kill every process still bound to ``remaining`` or to the last dispatched unit.

        Runs on every exit from a run loop, including interrupts and sink
        failures.
        """

        units = list(remaining)
        if self._current is not None:
            units.append(self._current)
        self._release(units)

    def _serve(self, source: AdmissionSource, *, stop_when_drained: bool = False) -> None:
        """Continuous service loop shared by the online engines.

        Admission is polled before every scheduling step; the loop only ends
        on an exit line, or once the source is closed and nothing is queued
        when ``stop_when_drained`` is set.
        """

        try:
            while True:
                for command in source.poll():
                    self._admit(command)
                if self._backlog():
                    self._step()
                    continue
                if stop_when_drained and source.closed:
                    return
                self.clock.sleep_ms(IDLE_INTERVAL_MS)
        except ExitRequested:
            logger.info("exit requested with %d units still queued", len(self._backlog()))
        finally:
            self._shutdown(self._backlog())

    def _admit(self, command: str) -> None:
        """Queue a newly arrived command. Only the online engines, which run through ``_serve``, override this."""

        msg = f"{self.name} does not admit units while running"
        raise NotImplementedError(msg)

    def _step(self) -> None:
        """Make one scheduling decision. Required by ``_serve``; batch engines may use it for their own loop."""

        msg = f"{self.name} has no single scheduling step"
        raise NotImplementedError(msg)

    def _backlog(self) -> Collection[Unit]:
        return ()

    def _result(self) -> EngineResult:
        return EngineResult(
            units=list(self._completed),
            total_time=self.now(),
            cpu_busy_time=self._busy,
            slices=self._slices,
        )
