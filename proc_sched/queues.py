from __future__ import annotations

from collections import deque
from typing import Iterator

from .unit import Unit

TIER_COUNT = 3
TOP_TIER = 0
BOTTOM_TIER = TIER_COUNT - 1


class RunQueue:
    """FIFO of units in admission order."""

    def __init__(self, units: list[Unit] | None = None) -> None:
        self._queue: deque[Unit] = deque(units or ())

    def push(self, unit: Unit) -> None:
        self._queue.append(unit)

    def pop(self) -> Unit | None:
        if not self._queue:
            return None
        return self._queue.popleft()

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[Unit]:
        return iter(self._queue)


class TieredQueue:
    """Three FIFO tiers served in strict priority order, tier 0 first."""

    def __init__(self) -> None:
        self._tiers: tuple[deque[Unit], ...] = tuple(deque() for _ in range(TIER_COUNT))

    def push(self, unit: Unit) -> None:
        if not TOP_TIER <= unit.priority <= BOTTOM_TIER:
            msg = f"priority must be within [{TOP_TIER}, {BOTTOM_TIER}]"
            raise ValueError(msg)
        self._tiers[unit.priority].append(unit)

    def pop(self) -> Unit | None:
        for tier in self._tiers:
            if tier:
                return tier.popleft()
        return None

    def boost(self) -> int:
        """Move every unit in the lower tiers to tier 0, keeping their order."""

        top = self._tiers[TOP_TIER]
        moved = 0
        for tier in self._tiers[TOP_TIER + 1:]:
            while tier:
                unit = tier.popleft()
                unit.priority = TOP_TIER
                top.append(unit)
                moved += 1
        return moved

    def tier(self, priority: int) -> list[Unit]:
        return list(self._tiers[priority])

    def sizes(self) -> tuple[int, ...]:
        return tuple(len(tier) for tier in self._tiers)

    def __len__(self) -> int:
        return sum(len(tier) for tier in self._tiers)

    def __iter__(self) -> Iterator[Unit]:
        for tier in self._tiers:
            yield from tier


class EstimatePool:
    """Unordered pool that hands out the unit with the smallest burst estimate."""

    def __init__(self) -> None:
        self._units: list[Unit] = []

    def add(self, unit: Unit) -> None:
        if unit.estimate is None:
            msg = "units in an estimate pool need an estimate"
            raise ValueError(msg)
        self._units.append(unit)

    def pop_shortest(self) -> Unit | None:
        if not self._units:
            return None
        # min() keeps the first of equal keys, so earlier admissions win ties
        shortest = min(range(len(self._units)), key=lambda idx: self._units[idx].estimate)
        return self._units.pop(shortest)

    def refresh(self, command: str, estimate: int) -> int:
        """Apply a new estimate to every queued unit running ``command``."""

        updated = 0
        for unit in self._units:
            if unit.command == command:
                unit.estimate = estimate
                updated += 1
        return updated

    def __len__(self) -> int:
        return len(self._units)

    def __iter__(self) -> Iterator[Unit]:
        return iter(self._units)
