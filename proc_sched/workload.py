from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .unit import Unit

COMMENT_PREFIX = "#"


@dataclass(slots=True)
class Arrival:
    at: int
    command: str


def read_commands(path: str | Path) -> list[str]:
    """Read one command per line, skipping blank lines and ``#`` comments."""

    commands: list[str] = []
    for line in Path(path).read_text().splitlines():
        line = line.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            continue
        commands.append(line)
    return commands


def read_arrivals(path: str | Path) -> list[Arrival]:
    """Read ``<offset_ms> <command>`` lines into a timed arrival script."""

    arrivals: list[Arrival] = []
    for lineno, line in enumerate(Path(path).read_text().splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            continue
        offset, _, command = line.partition(" ")
        try:
            at = int(offset)
        except ValueError:
            msg = f"line {lineno}: arrival offset must be an integer, got {offset!r}"
            raise ValueError(msg) from None
        if at < 0 or not command.strip():
            msg = f"line {lineno}: expected '<offset_ms> <command>' with a non-negative offset"
            raise ValueError(msg)
        arrivals.append(Arrival(at=at, command=command.strip()))
    return arrivals


def periodic_arrivals(command: str, period: int, count: int, *, start: int = 0) -> list[Arrival]:
    return [Arrival(at=start + i * period, command=command) for i in range(count)]


def build_units(commands: Sequence[str]) -> list[Unit]:
    return [Unit.from_command(command, sequence_index=idx) for idx, command in enumerate(commands)]
