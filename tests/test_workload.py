from __future__ import annotations

import pytest

from proc_sched.workload import Arrival, build_units, periodic_arrivals, read_arrivals, read_commands


def test_read_commands_skips_blanks_and_comments(tmp_path):
    path = tmp_path / "batch.txt"
    path.write_text("# warm-up\nsleep 1\n\n  ls -l  \n")
    assert read_commands(path) == ["sleep 1", "ls -l"]


def test_read_arrivals_parses_offsets(tmp_path):
    path = tmp_path / "script.txt"
    path.write_text("0 sleep 1\n250 ls -l\n# done\n900 exit\n")
    assert read_arrivals(path) == [Arrival(0, "sleep 1"), Arrival(250, "ls -l"), Arrival(900, "exit")]


@pytest.mark.parametrize("line", ["soon ls", "-5 ls", "10"])
def test_read_arrivals_rejects_malformed_lines(tmp_path, line):
    path = tmp_path / "script.txt"
    path.write_text(line + "\n")
    with pytest.raises(ValueError, match="line 1"):
        read_arrivals(path)


def test_periodic_arrivals():
    assert periodic_arrivals("tick", 100, 3, start=50) == [Arrival(50, "tick"), Arrival(150, "tick"), Arrival(250, "tick")]


def test_build_units_keeps_input_positions():
    units = build_units(["a", "b"])
    assert [(u.command, u.sequence_index, u.arrival_time) for u in units] == [("a", 0, 0), ("b", 1, 0)]
