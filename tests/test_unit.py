from __future__ import annotations

import pytest

from proc_sched.unit import Unit, UnitSpec, UnitStatus


def test_spec_is_immutable_and_validated():
    spec = UnitSpec(command="sleep 1", sequence_index=2)
    with pytest.raises(AttributeError):
        spec.command = "ls"
    with pytest.raises(ValueError):
        UnitSpec(command="   ")
    with pytest.raises(ValueError):
        UnitSpec(command="ls", sequence_index=-1)


def test_mark_started_only_records_the_first_dispatch():
    unit = Unit.from_command("ls", arrival_time=5)
    unit.mark_started(20)
    unit.mark_started(90)
    assert unit.start_time == 20
    assert unit.response_time == 15


def test_finalize_derives_timing_metrics():
    unit = Unit.from_command("ls", arrival_time=10)
    unit.mark_started(30)
    unit.burst_time = 40
    unit.record_exit(0)
    unit.finalize(100)

    assert unit.completion_time == 100
    assert unit.turnaround_time == 90
    assert unit.waiting_time == 50
    assert unit.finished and not unit.error
    assert unit.status is UnitStatus.FINISHED


def test_nonzero_exit_finalizes_as_errored():
    unit = Unit.from_command("false")
    unit.mark_started(0)
    unit.record_exit(1)
    unit.finalize(5)

    assert unit.error and not unit.finished
    assert unit.status is UnitStatus.ERRORED


def test_finalize_without_dispatch_sets_start_time():
    unit = Unit.from_command("missing", arrival_time=3)
    unit.error = True
    unit.finalize(7)
    assert unit.start_time == 7
    assert unit.response_time == 4


def test_cannot_finalize_twice():
    unit = Unit.from_command("ls")
    unit.finalize(1)
    with pytest.raises(RuntimeError):
        unit.finalize(2)
