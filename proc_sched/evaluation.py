from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Sequence

from . import metrics
from .engine import Engine, EngineResult


EngineFactory = Callable[[Sequence[str]], Engine]


@dataclass(slots=True)
class EvaluationOutcome:
    name: str
    result: EngineResult
    per_unit: list[metrics.UnitMetrics]
    aggregate: metrics.AggregateMetrics


def evaluate_engine(name: str, factory: EngineFactory, commands: Sequence[str]) -> EvaluationOutcome:
    engine = factory(commands)
    result = engine.run()
    per_unit = metrics.build_unit_metrics(result.units)
    aggregate = metrics.summarise(per_unit, result.total_time)
    return EvaluationOutcome(name=name, result=result, per_unit=per_unit, aggregate=aggregate)


def evaluate_suite(
    factories: Sequence[tuple[str, EngineFactory]],
    commands: Sequence[str],
) -> list[EvaluationOutcome]:
    """Run every engine over the same batch, one after another."""

    return [evaluate_engine(name, factory, commands) for name, factory in factories]
