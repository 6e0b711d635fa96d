from __future__ import annotations

from dataclasses import dataclass

DEFAULT_ESTIMATE_MS = 1000


@dataclass(slots=True)
class BurstEstimate:
    count: int
    average_ms: int


class BurstEstimator:
    """Running average of observed service time per distinct command.

    The first sighting of a command seeds its entry with the default estimate,
    which then counts as one sample of the incremental mean.
    """

    def __init__(self, default_ms: int = DEFAULT_ESTIMATE_MS) -> None:
        if default_ms <= 0:
            msg = "default_ms must be strictly positive"
            raise ValueError(msg)
        self.default_ms = default_ms
        self._table: dict[str, BurstEstimate] = {}

    def __contains__(self, command: object) -> bool:
        return command in self._table

    def __len__(self) -> int:
        return len(self._table)

    def get(self, command: str) -> BurstEstimate | None:
        return self._table.get(command)

    def estimate(self, command: str) -> int:
        return self._entry(command).average_ms

    def observe(self, command: str, burst_ms: int) -> int:
        if burst_ms < 0:
            msg = "burst_ms cannot be negative"
            raise ValueError(msg)
        entry = self._entry(command)
        entry.count += 1
        entry.average_ms = (entry.average_ms * (entry.count - 1) + burst_ms) // entry.count
        return entry.average_ms

    def classify(self, command: str, quantum0: int, quantum1: int) -> int:
        """Pick the starting MLFQ tier for ``command``.

        Commands with no completed run yet start in tier 0; recurring ones
        start in the first tier whose quantum covers their average burst.
        """

        entry = self._entry(command)
        if entry.count == 1:
            return 0
        if entry.average_ms <= quantum0:
            return 0
        if entry.average_ms <= quantum1:
            return 1
        return 2

    def _entry(self, command: str) -> BurstEstimate:
        entry = self._table.get(command)
        if entry is None:
            entry = BurstEstimate(count=1, average_ms=self.default_ms)
            self._table[command] = entry
        return entry
