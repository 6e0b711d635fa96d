from __future__ import annotations

import pytest

from proc_sched.admission import BatchSource, TimedSource
from proc_sched.engine import MlfqConfig
from proc_sched.engines import OnlineMlfqEngine, OnlineSjfEngine
from proc_sched.estimator import BurstEstimator
from proc_sched.sink import MemorySink
from proc_sched.workload import Arrival

from .conftest import FakeController

CONFIG = MlfqConfig(quantum0=50, quantum1=100, quantum2=200, boost_interval=10_000)


class TestOnlineMlfq:
    def test_admits_while_scheduling_and_places_recurring_commands_by_average(self, clock, trace):
        arrivals = [Arrival(0, "a"), Arrival(0, "b"), Arrival(120, "a"), Arrival(1_000, "exit")]
        controller = FakeController(clock, {"a": 80, "b": 30})
        sink = MemorySink()
        engine = OnlineMlfqEngine(
            TimedSource(arrivals, clock=clock),
            CONFIG,
            controller,
            clock=clock,
            sink=sink,
            trace=trace.append,
        )
        result = engine.run()

        assert sink.commands == ["b", "a", "a"]
        assert trace == ["a | 0 | 50", "b | 50 | 80", "a | 80 | 110", "a | 120 | 200"]
        first_a, second_a = result.units[1], result.units[2]
        assert first_a.burst_time == 80
        assert second_a.arrival_time == 120
        # the first run averaged 540 ms with the seed, above quantum1
        assert second_a.priority == 2
        assert engine.estimator.get("a").count == 3
        assert engine.estimator.get("b").average_ms == (1_000 + 30) // 2

    def test_new_commands_enter_the_top_tier(self, clock):
        controller = FakeController(clock, {"fresh": 10})
        engine = OnlineMlfqEngine(BatchSource(["fresh"]), CONFIG, controller, clock=clock, trace=None)
        engine._begin()
        engine._admit("fresh")
        assert engine.queues.sizes() == (1, 0, 0)

    def test_exit_stops_dispatching_and_kills_suspended_processes(self, clock):
        arrivals = [Arrival(0, "long"), Arrival(60, "exit")]
        controller = FakeController(clock, {"long": 1_000})
        sink = MemorySink()
        result = OnlineMlfqEngine(
            TimedSource(arrivals, clock=clock), CONFIG, controller, clock=clock, sink=sink, trace=None
        ).run()

        assert result.units == []
        assert sink.units == []
        assert controller.dispatched() == ["long", "long"]
        assert controller.events[-1] == ("kill", "long")

    def test_stop_when_drained_returns_after_the_batch(self, clock):
        controller = FakeController(clock, {"x": 70, "y": 20})
        engine = OnlineMlfqEngine(
            BatchSource(["x", "y"]), CONFIG, controller, clock=clock, trace=None, stop_when_drained=True
        )
        result = engine.run()

        assert [u.command for u in result.units] == ["y", "x"]
        for unit in result.units:
            assert unit.waiting_time == unit.turnaround_time - unit.burst_time

    def test_sink_failure_still_kills_queued_processes(self, clock):
        class FailingSink(MemorySink):
            def write(self, unit):
                raise OSError("disk full")

        controller = FakeController(clock, {"long": 300, "short": 30})
        engine = OnlineMlfqEngine(
            BatchSource(["long", "short"]), CONFIG, controller, clock=clock, sink=FailingSink(), trace=None
        )
        with pytest.raises(OSError, match="disk full"):
            engine.run()

        assert controller.events[-1] == ("kill", "long")
        assert engine.queues.sizes() == (0, 1, 0)
        assert next(iter(engine.queues)).process is None


class TestOnlineSjf:
    def _estimator(self) -> BurstEstimator:
        estimator = BurstEstimator()
        estimator.observe("fast", 0)
        estimator.observe("slow", 2_000)
        assert estimator.estimate("fast") == 500
        assert estimator.estimate("slow") == 1_500
        return estimator

    def test_picks_the_smallest_estimate_and_refreshes_queued_duplicates(self, clock, trace):
        arrivals = [Arrival(0, "slow"), Arrival(0, "fast"), Arrival(0, "fast"), Arrival(10_000, "exit")]
        controller = FakeController(clock, {"fast": 600, "slow": 100})
        engine = OnlineSjfEngine(
            TimedSource(arrivals, clock=clock),
            controller,
            estimator=self._estimator(),
            clock=clock,
            trace=trace.append,
        )
        result = engine.run()

        assert [u.command for u in result.units] == ["fast", "fast", "slow"]
        assert trace == ["fast | 0 | 600", "fast | 600 | 1200", "slow | 1200 | 1300"]
        first, second, slow = result.units
        assert first.sequence_index == 1
        assert second.estimate == (500 * 2 + 600) // 3
        assert engine.estimator.get("fast").count == 4
        assert engine.estimator.estimate("fast") == ((500 * 2 + 600) // 3 * 3 + 600) // 4
        assert second.waiting_time == 600
        assert slow.response_time == 1_200
        assert slow.turnaround_time == 1_300

    def test_unseen_commands_get_the_default_estimate_and_keep_fifo_order(self, clock):
        controller = FakeController(clock, {"p": 40, "q": 10})
        engine = OnlineSjfEngine(BatchSource(["p", "q"]), controller, clock=clock, trace=None, stop_when_drained=True)
        result = engine.run()

        assert [u.command for u in result.units] == ["p", "q"]
        assert [u.estimate for u in result.units] == [1_000, 1_000]
        assert engine.estimator.estimate("q") == (1_000 + 10) // 2

    def test_spawn_failure_does_not_update_the_estimator(self, clock):
        controller = FakeController(clock, {}, unspawnable={"ghost"})
        engine = OnlineSjfEngine(BatchSource(["ghost"]), controller, clock=clock, trace=None, stop_when_drained=True)
        result = engine.run()

        assert result.units[0].error
        assert engine.estimator.get("ghost").count == 1

    def test_exit_with_queued_work_dispatches_nothing(self, clock):
        controller = FakeController(clock, {"x": 10})
        engine = OnlineSjfEngine(BatchSource(["x", "exit"]), controller, clock=clock, trace=None)
        result = engine.run()

        assert result.units == []
        assert controller.events == []
