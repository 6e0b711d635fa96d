from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from .metrics import UnitMetrics
from .unit import Unit

logger = logging.getLogger(__name__)

CSV_HEADER = (
    "Command",
    "Finished",
    "Error",
    "Burst Time (ms)",
    "Turnaround Time (ms)",
    "Waiting Time (ms)",
    "Response Time (ms)",
)


class MetricsSink(ABC):
    """Receives each finalized unit."""

    @abstractmethod
    def write(self, unit: Unit) -> None:
        """Record one finalized unit."""

    def close(self) -> None:
        """Release any underlying resource."""

    def __enter__(self) -> MetricsSink:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class CsvSink(MetricsSink):
    """Writes one CSV row per unit, flushed immediately so online runs leave a usable file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._file = self.path.open("w", newline="")
        self._writer = csv.writer(self._file)
        self._writer.writerow(CSV_HEADER)
        self._file.flush()
        logger.debug("writing results to %s", self.path)

    def write(self, unit: Unit) -> None:
        self._writer.writerow(UnitMetrics.from_unit(unit).to_row())
        self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


class MemorySink(MetricsSink):
    def __init__(self) -> None:
        self.units: list[Unit] = []

    def write(self, unit: Unit) -> None:
        self.units.append(unit)

    @property
    def commands(self) -> list[str]:
        return [unit.command for unit in self.units]
