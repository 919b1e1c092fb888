import logging
from dataclasses import dataclass, field
from typing import Any

from cflp_bnb.costs import StageCostModel, checked_add, checked_mul
from cflp_bnb.instance import CFLPInstance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Solution:
    """A complete assignment, ``assignment[customer] == facility``."""

    cost: int
    assignment: tuple[int, ...]

    def as_mapping(self, instance: CFLPInstance) -> dict[str, str]:
        """Customer name -> facility name."""
        return {
            instance.customers[cdx]: instance.facilities[fdx]
            for cdx, fdx in enumerate(self.assignment)
        }


def required_stage(instance: CFLPInstance, facility: int, load: int) -> int:
    """Smallest stage whose capacity holds ``load``."""
    bandwidth = instance.max_bandwidth(facility)
    return -(-load // bandwidth)


def facility_loads(instance: CFLPInstance, assignment: list[int] | tuple[int, ...]) -> list[int]:
    loads = [0] * instance.num_facilities
    for cdx, fdx in enumerate(assignment):
        loads[fdx] += instance.bandwidth_demand(cdx)
    return loads


def evaluate_assignment(
    instance: CFLPInstance,
    assignment: list[int] | tuple[int, ...],
    costs: StageCostModel | None = None,
) -> int:
    """Recomputes the total cost of ``assignment`` from scratch.

    Every facility is opened at the smallest stage holding its load.
    """
    costs = costs or StageCostModel(instance)
    total = 0

    for fdx, load in enumerate(facility_loads(instance, assignment)):
        total = checked_add(total, costs.opening_cost(fdx, required_stage(instance, fdx, load)))

    for cdx, fdx in enumerate(assignment):
        total = checked_add(
            total,
            checked_mul(instance.distance(fdx, cdx), instance.distance_cost_factor),
        )

    return total


def check_assignment(
    instance: CFLPInstance,
    assignment: list[int] | tuple[int, ...],
    stages: list[int] | None = None,
) -> dict[str, Any]:
    """Checks constraint violations of an assignment.

    Args:
        instance: The instance the assignment belongs to.
        assignment: Facility index per customer.
        stages: Optional stage per facility; when omitted the minimal
            stage for each load is assumed, which never violates capacity.

    Returns:
        Mapping from violated constraint to a message; empty if valid.
    """
    violations = {}

    # Constraint #1: each customer assigned to exactly one existing facility
    if len(assignment) != instance.num_customers:
        violations["Assignment length"] = (
            f"Got {len(assignment)} entries for {instance.num_customers} customers."
        )
        return violations

    for cdx, fdx in enumerate(assignment):
        if not 0 <= fdx < instance.num_facilities:
            violations[f"Customer {cdx} assignment"] = f"Unknown facility {fdx}."

    if violations:
        return violations

    # Constraint #2: facility capacity at its stage not exceeded
    for fdx, load in enumerate(facility_loads(instance, assignment)):
        stage = stages[fdx] if stages is not None else required_stage(instance, fdx, load)
        capacity = stage * instance.max_bandwidth(fdx)
        if load > capacity:
            violations[f"Facility {fdx} capacity"] = (
                f"Load {load} exceeds capacity {capacity} at stage {stage}."
            )

    return violations


@dataclass
class SolutionRecorder:
    """Collects the solutions reported by the solver, in order of discovery.

    Pass an instance as ``on_improved_solution``.
    """

    history: list[Solution] = field(default_factory=list)

    def __call__(self, cost: int, assignment: list[int]) -> None:
        solution = Solution(cost=cost, assignment=tuple(assignment))
        self.history.append(solution)
        logger.debug(f"Recorded solution #{len(self.history)} with cost {cost}")

    @property
    def best(self) -> Solution | None:
        return self.history[-1] if self.history else None
