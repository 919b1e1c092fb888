"""Mutable assignment bookkeeping shared by the estimators and the search."""

from collections.abc import Iterator
from contextlib import contextmanager

from cflp_bnb.costs import StageCostModel, checked_add, checked_mul, checked_sub
from cflp_bnb.errors import ArithmeticOverflow, InvariantViolation
from cflp_bnb.instance import CFLPInstance


class FacilityState:
    """Tracks the customers assigned to one facility and its current stage.

    ``add_customer`` and ``remove_customer`` return the change they cause
    to the total cost; callers must nest them in strict LIFO order so that
    each remove exactly undoes the matching add.
    """

    def __init__(self, index: int, instance: CFLPInstance, costs: StageCostModel) -> None:
        self.index = index
        self.instance = instance
        self.costs = costs
        self.max_bandwidth = instance.max_bandwidth(index)

        self.stage = 0
        self.used_bandwidth = 0
        self.assigned_customers: list[int] = []

    @property
    def capacity(self) -> int:
        return self.stage * self.max_bandwidth

    @property
    def spare_bandwidth(self) -> int:
        return self.capacity - self.used_bandwidth

    @property
    def cost_contribution(self) -> int:
        """Opening cost at the current stage."""
        return self.costs.opening_cost(self.index, self.stage)

    def next_stage_delta(self) -> int:
        return self.costs.next_stage_delta(self.index, self.stage)

    def distance_cost(self, customer: int) -> int:
        return checked_mul(
            self.instance.distance(self.index, customer),
            self.instance.distance_cost_factor,
        )

    def _change_stage(self, step: int) -> int:
        new_cost = self.costs.opening_cost(self.index, self.stage + step)
        delta = checked_sub(new_cost, self.cost_contribution)
        self.stage += step
        return delta

    def add_customer(self, customer: int) -> int:
        """Assigns ``customer`` and returns the resulting cost delta.

        Raises:
            ArithmeticOverflow: If the required stage is too expensive; the
                facility is left exactly as it was before the call.
        """
        delta = self.distance_cost(customer)
        old_stage, old_used = self.stage, self.used_bandwidth
        self.used_bandwidth += self.instance.bandwidth_demand(customer)

        # Upgrade until the load fits again
        try:
            while self.used_bandwidth > self.capacity:
                delta = checked_add(delta, self._change_stage(+1))
        except ArithmeticOverflow:
            self.stage, self.used_bandwidth = old_stage, old_used
            raise

        self.assigned_customers.append(customer)
        return delta

    def remove_customer(self, customer: int) -> int:
        """Unassigns ``customer`` and returns the resulting cost delta.

        Raises:
            InvariantViolation: If ``customer`` is not the most recent assignment.
        """
        if not self.assigned_customers or self.assigned_customers[-1] != customer:
            error_msg = (
                f"Customer {customer} is not the last customer assigned to "
                f"facility {self.index} (stack: {self.assigned_customers})."
            )
            raise InvariantViolation(error_msg)

        delta = -self.distance_cost(customer)
        self.assigned_customers.pop()
        self.used_bandwidth -= self.instance.bandwidth_demand(customer)

        # Downgrade while the previous stage still holds the load
        while self.stage > 0 and self.used_bandwidth <= (self.stage - 1) * self.max_bandwidth:
            delta = checked_add(delta, self._change_stage(-1))

        return delta

    def __repr__(self) -> str:
        return (
            f"FacilityState(index={self.index}, stage={self.stage}, "
            f"used_bandwidth={self.used_bandwidth}, customers={self.assigned_customers})"
        )


class SearchState:
    """Facility states plus the running total cost and the incumbent.

    A fresh ``SearchState`` is created for every solve; it is the only
    object the estimators and the driver mutate.
    """

    def __init__(self, instance: CFLPInstance, costs: StageCostModel | None = None) -> None:
        self.instance = instance
        self.costs = costs or StageCostModel(instance)
        self.facilities = [
            FacilityState(fdx, instance, self.costs) for fdx in range(instance.num_facilities)
        ]

        self.total_cost = 0
        self.best_cost: int | None = None
        self.best_assignment: list[int] | None = None

    def assign(self, facility: int, customer: int) -> None:
        delta = self.facilities[facility].add_customer(customer)
        try:
            self.total_cost = checked_add(self.total_cost, delta)
        except ArithmeticOverflow:
            self.facilities[facility].remove_customer(customer)
            raise

    def unassign(self, facility: int, customer: int) -> None:
        delta = self.facilities[facility].remove_customer(customer)
        self.total_cost = checked_add(self.total_cost, delta)

    @contextmanager
    def assigned(self, facility: int, customer: int) -> Iterator[None]:
        """Keeps ``customer`` on ``facility`` for the duration of the block."""
        self.assign(facility, customer)
        try:
            yield
        finally:
            self.unassign(facility, customer)

    def improves(self, cost: int) -> bool:
        return self.best_cost is None or cost < self.best_cost

    def current_assignment(self) -> list[int]:
        """Reads the customer -> facility mapping off the facility stacks.

        Raises:
            InvariantViolation: If some customer is not assigned.
        """
        assignment = [-1] * self.instance.num_customers
        for facility in self.facilities:
            for customer in facility.assigned_customers:
                assignment[customer] = facility.index

        if -1 in assignment:
            error_msg = f"Customer {assignment.index(-1)} has no facility."
            raise InvariantViolation(error_msg)

        return assignment

    def is_empty(self) -> bool:
        return self.total_cost == 0 and all(
            f.stage == 0 and not f.assigned_customers for f in self.facilities
        )
