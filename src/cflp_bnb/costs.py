"""Staged opening costs and checked cost arithmetic.

Opening a facility at stage ``k`` provides ``k * max_bandwidth`` of
capacity. Its cost follows a damped Fibonacci recurrence::

    cost(0) = 0
    cost(1) = base
    cost(2) = ceil(1.5 * base)
    cost(k) = cost(k - 1) + cost(k - 2) + (4 - k) * base    for k >= 3

All costs are Python integers kept inside the signed 64-bit range; any
operation that would leave it raises :class:`ArithmeticOverflow`.
"""

import numpy as np

from cflp_bnb.errors import ArithmeticOverflow, InvariantViolation
from cflp_bnb.instance import CFLPInstance

MAX_COST = int(np.iinfo(np.int64).max)
MIN_COST = int(np.iinfo(np.int64).min)


def _check_range(value: int, operation: str) -> int:
    if value > MAX_COST or value < MIN_COST:
        error_msg = f"Cost {operation} overflowed the 64-bit range: {value}."
        raise ArithmeticOverflow(error_msg)
    return value


def checked_add(a: int, b: int) -> int:
    return _check_range(a + b, "addition")


def checked_sub(a: int, b: int) -> int:
    return _check_range(a - b, "subtraction")


def checked_mul(a: int, b: int) -> int:
    return _check_range(a * b, "multiplication")


class StageCostModel:
    """Per-facility memo of opening costs, indexed by stage.

    Each facility owns an append-only list seeded with the three base
    cases. The same model is shared by the bound estimators and the search.
    """

    def __init__(self, instance: CFLPInstance) -> None:
        self.instance = instance
        self._tables: list[list[int]] = []

        for fdx in range(instance.num_facilities):
            base = instance.base_opening_cost(fdx)
            # ceil(1.5 * base) without going through floats
            self._tables.append([0, base, (3 * base + 1) // 2])

    def opening_cost(self, facility: int, stage: int) -> int:
        """Returns the opening cost of ``facility`` operated at ``stage``.

        Raises:
            InvariantViolation: If ``stage`` is negative.
            ArithmeticOverflow: If the recurrence leaves the 64-bit range.
        """
        if stage < 0:
            error_msg = f"Negative stage {stage} queried for facility {facility}."
            raise InvariantViolation(error_msg)

        table = self._tables[facility]
        if stage < len(table):
            return table[stage]

        base = self.instance.base_opening_cost(facility)
        while len(table) <= stage:
            k = len(table)
            cost = checked_add(table[k - 1], table[k - 2])
            cost = checked_add(cost, checked_mul(4 - k, base))
            table.append(cost)

        return table[stage]

    def next_stage_delta(self, facility: int, stage: int) -> int:
        """Cost of upgrading ``facility`` from ``stage`` to ``stage + 1``."""
        return checked_sub(
            self.opening_cost(facility, stage + 1),
            self.opening_cost(facility, stage),
        )

    def cheapest_upgrade_from(self, facility: int, stage: int) -> int:
        """Smallest single-stage upgrade cost at or above ``stage``.

        Upgrade deltas are non-decreasing from the step into stage 4
        onwards, so only the steps up to stage 4 need to be compared.
        """
        last = max(stage, 3)
        return min(self.next_stage_delta(facility, s) for s in range(stage, last + 1))

    def cached_stages(self, facility: int) -> int:
        """Number of stages currently memoized for ``facility``."""
        return len(self._tables[facility])
