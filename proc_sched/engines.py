from __future__ import annotations

import logging
from collections.abc import Collection
from typing import Any, Sequence

from .admission import AdmissionSource
from .controller import ProcessControl
from .engine import Engine, EngineResult, MlfqConfig, RoundRobinConfig
from .estimator import BurstEstimator
from .queues import BOTTOM_TIER, EstimatePool, RunQueue, TieredQueue
from .unit import Unit
from .workload import build_units

logger = logging.getLogger(__name__)


class FcfsEngine(Engine):
    """Non-preemptive First-Come, First-Served over a fixed batch."""

    name = "FCFS"

    def __init__(self, commands: Sequence[str], controller: ProcessControl | None = None, **kwargs: Any) -> None:
        super().__init__(controller, **kwargs)
        self.units = build_units(commands)

    def run(self) -> EngineResult:
        self._begin()
        queue = RunQueue(self.units)
        try:
            while (unit := queue.pop()) is not None:
                outcome = self._run_slice(unit)
                unit.burst_time = outcome.duration
                self._finalize(unit, outcome.end)
        finally:
            self._shutdown(queue)
        return self._result()


class RoundRobinEngine(Engine):
    """Round-Robin with a fixed wall-clock quantum over a fixed batch."""

    name = "RR"

    def __init__(
        self,
        commands: Sequence[str],
        config: RoundRobinConfig,
        controller: ProcessControl | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(controller, **kwargs)
        self.config = config
        self.units = build_units(commands)

    def run(self) -> EngineResult:
        self._begin()
        queue = RunQueue(self.units)
        try:
            while (unit := queue.pop()) is not None:
                outcome = self._run_slice(unit, self.config.quantum, sleep_through=True)
                unit.burst_time += outcome.duration
                if outcome.completed:
                    self._finalize(unit, outcome.end)
                else:
                    queue.push(unit)
        finally:
            self._shutdown(queue)
        return self._result()


class MlfqEngine(Engine):
    """Three-tier Multi-Level Feedback Queue with periodic priority boost.

    Results go to the sink in input order once the whole batch is done.
    """

    name = "MLFQ"

    def __init__(
        self,
        commands: Sequence[str],
        config: MlfqConfig,
        controller: ProcessControl | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(controller, **kwargs)
        self.config = config
        self.queues = TieredQueue()
        self.units = build_units(commands)
        self._last_boost = 0

    def run(self) -> EngineResult:
        self._begin()
        self._last_boost = self.clock.now_ms()
        for unit in self.units:
            self.queues.push(unit)
        try:
            while self.queues:
                self._step()
            for unit in sorted(self._completed, key=lambda u: u.sequence_index):
                self._emit(unit)
        finally:
            self._shutdown(self.queues)
        return self._result()

    def _step(self) -> None:
        unit = self.queues.pop()
        if unit is None:
            return
        quantum = self.config.quantum_for(unit.priority)
        outcome = self._run_slice(unit, quantum)
        if outcome.completed:
            unit.burst_time += outcome.duration
            self._complete(unit, outcome.end)
        else:
            unit.burst_time += quantum
            unit.priority = min(unit.priority + 1, BOTTOM_TIER)
            self.queues.push(unit)
        self._maybe_boost()

    def _complete(self, unit: Unit, now: int) -> None:
        self._finalize(unit, now, emit=False)

    def _maybe_boost(self) -> None:
        now = self.clock.now_ms()
        if now - self._last_boost < self.config.boost_interval:
            return
        moved = self.queues.boost()
        self._last_boost = now
        if moved:
            logger.debug("priority boost moved %d units to tier 0", moved)

    def _backlog(self) -> Collection[Unit]:
        return list(self.queues)


class OnlineMlfqEngine(MlfqEngine):
    """MLFQ that keeps admitting commands from a live source until told to exit."""

    name = "MLFQ-online"

    def __init__(
        self,
        source: AdmissionSource,
        config: MlfqConfig,
        controller: ProcessControl | None = None,
        *,
        estimator: BurstEstimator | None = None,
        stop_when_drained: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__((), config, controller, **kwargs)
        self.source = source
        self.estimator = estimator or BurstEstimator()
        self.stop_when_drained = stop_when_drained
        self._admitted = 0

    def run(self) -> EngineResult:
        self._begin()
        self._last_boost = self.clock.now_ms()
        self._serve(self.source, stop_when_drained=self.stop_when_drained)
        return self._result()

    def _admit(self, command: str) -> None:
        unit = Unit.from_command(command, sequence_index=self._admitted, arrival_time=self.now())
        unit.priority = self.estimator.classify(command, self.config.quantum0, self.config.quantum1)
        unit.estimate = self.estimator.estimate(command)
        self._admitted += 1
        self.queues.push(unit)
        logger.debug("admitted %r into tier %d at %d ms", command, unit.priority, unit.arrival_time)

    def _complete(self, unit: Unit, now: int) -> None:
        self._finalize(unit, now)
        if unit.started:
            self.estimator.observe(unit.command, unit.burst_time)


class OnlineSjfEngine(Engine):
    """Non-preemptive Shortest-Job-First ranked by learned per-command burst estimates."""

    name = "SJF-online"

    def __init__(
        self,
        source: AdmissionSource,
        controller: ProcessControl | None = None,
        *,
        estimator: BurstEstimator | None = None,
        stop_when_drained: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(controller, **kwargs)
        self.source = source
        self.estimator = estimator or BurstEstimator()
        self.stop_when_drained = stop_when_drained
        self.pool = EstimatePool()
        self._admitted = 0

    def run(self) -> EngineResult:
        self._begin()
        self._serve(self.source, stop_when_drained=self.stop_when_drained)
        return self._result()

    def _admit(self, command: str) -> None:
        unit = Unit.from_command(command, sequence_index=self._admitted, arrival_time=self.now())
        unit.estimate = self.estimator.estimate(command)
        self._admitted += 1
        self.pool.add(unit)
        logger.debug("admitted %r with estimate %d ms at %d ms", command, unit.estimate, unit.arrival_time)

    def _step(self) -> None:
        unit = self.pool.pop_shortest()
        if unit is None:
            return
        outcome = self._run_slice(unit)
        unit.burst_time = outcome.duration
        self._finalize(unit, outcome.end)
        if not unit.started:
            return
        average = self.estimator.observe(unit.command, unit.burst_time)
        refreshed = self.pool.refresh(unit.command, average)
        if refreshed:
            logger.debug("refreshed %d queued %r units to %d ms", refreshed, unit.command, average)

    def _backlog(self) -> Collection[Unit]:
        return list(self.pool)
