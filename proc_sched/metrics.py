from __future__ import annotations

from dataclasses import dataclass
from statistics import mean
from typing import Iterable, Sequence

from .unit import Unit


@dataclass(slots=True)
class UnitMetrics:
    command: str
    finished: bool
    error: bool
    burst_time: int
    turnaround_time: int
    waiting_time: int
    response_time: int

    @classmethod
    def from_unit(cls, unit: Unit) -> UnitMetrics:
        return cls(
            command=unit.command,
            finished=unit.finished,
            error=unit.error,
            burst_time=unit.burst_time,
            turnaround_time=unit.turnaround_time,
            waiting_time=unit.waiting_time,
            response_time=unit.response_time,
        )

    def to_row(self) -> list[str | int]:
        return [
            self.command,
            "Yes" if self.finished else "No",
            "Yes" if self.error else "No",
            self.burst_time,
            self.turnaround_time,
            self.waiting_time,
            self.response_time,
        ]


@dataclass(slots=True)
class AggregateMetrics:
    count: int
    errors: int
    mean_turnaround_time: float
    mean_waiting_time: float
    mean_response_time: float
    p50_wait: float
    p90_wait: float
    p99_wait: float
    throughput: float


def build_unit_metrics(units: Iterable[Unit]) -> list[UnitMetrics]:
    return [UnitMetrics.from_unit(unit) for unit in units if unit.is_terminal]


def summarise(metrics: Sequence[UnitMetrics], total_time: int) -> AggregateMetrics:
    """Aggregate per-unit metrics; throughput is units per second of run time."""

    if not metrics:
        return AggregateMetrics(
            count=0,
            errors=0,
            mean_turnaround_time=0.0,
            mean_waiting_time=0.0,
            mean_response_time=0.0,
            p50_wait=0.0,
            p90_wait=0.0,
            p99_wait=0.0,
            throughput=0.0,
        )
    wait_values = [float(m.waiting_time) for m in metrics]
    return AggregateMetrics(
        count=len(metrics),
        errors=sum(1 for m in metrics if m.error),
        mean_turnaround_time=mean(m.turnaround_time for m in metrics),
        mean_waiting_time=mean(wait_values),
        mean_response_time=mean(m.response_time for m in metrics),
        p50_wait=_percentile(wait_values, 50),
        p90_wait=_percentile(wait_values, 90),
        p99_wait=_percentile(wait_values, 99),
        throughput=len(metrics) * 1000 / total_time if total_time else 0.0,
    )


def _percentile(values: Sequence[float], percentile: float) -> float:
    if not values:
        return 0.0
    sorted_values = sorted(values)
    k = (len(sorted_values) - 1) * percentile / 100
    f = int(k)
    c = min(f + 1, len(sorted_values) - 1)
    if f == c:
        return sorted_values[f]
    d0 = sorted_values[f] * (c - k)
    d1 = sorted_values[c] * (k - f)
    return d0 + d1
