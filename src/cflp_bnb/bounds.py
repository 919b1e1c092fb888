"""Upper and lower bounds for the branch-and-bound search.

Both estimators work on the live :class:`SearchState` of the search and
leave it exactly as they found it.
"""

import logging

from cflp_bnb.costs import checked_add, checked_mul
from cflp_bnb.facility import SearchState
from cflp_bnb.solution import Solution

logger = logging.getLogger(__name__)


def greedy_upper_bound(state: SearchState) -> Solution | None:
    """Builds a feasible solution greedily, customer by customer.

    Each customer goes to the facility with the smallest marginal cost,
    i.e. the cost of upgrading it one stage plus the distance cost. The
    choice is committed before the next customer is considered and never
    revisited. All assignments are undone before returning.

    Args:
        state: An empty search state.

    Returns:
        The greedy solution, or ``None`` if customers exist but no
        facility can take them.
    """
    instance = state.instance
    if instance.num_customers and not state.facilities:
        return None

    order = []
    try:
        for cdx in range(instance.num_customers):
            cheapest = min(
                state.facilities,
                key=lambda f: checked_add(f.next_stage_delta(), f.distance_cost(cdx)),
            )
            state.assign(cheapest.index, cdx)
            order.append((cheapest.index, cdx))

        solution = Solution(cost=state.total_cost, assignment=tuple(state.current_assignment()))
    finally:
        # Undo in reverse to keep stack discipline
        for fdx, cdx in reversed(order):
            state.unassign(fdx, cdx)

    logger.debug(f"Greedy upper bound: {solution.cost}")
    return solution


class LowerBoundEstimator:
    """Admissible bound on the cost of completing a partial assignment.

    For customers ``customer_idx..end`` still unassigned the bound adds,
    on top of the cost already committed:

    * the cheapest distance cost each customer could have at any facility;
    * when the remaining demand does not fit into the spare capacity of
      the facilities at their current stages, the cheapest single-stage
      upgrade available, once for every upgrade the deficit forces.

    Bandwidth is otherwise relaxed, so the estimate never exceeds the cost
    of any feasible completion.
    """

    def __init__(self, state: SearchState) -> None:
        instance = state.instance
        num_customers = instance.num_customers
        factor = instance.distance_cost_factor

        self.min_distance_costs = [0] * num_customers
        if instance.num_facilities:
            for cdx in range(num_customers):
                self.min_distance_costs[cdx] = checked_mul(
                    int(instance.distances[:, cdx].min()), factor
                )

        # Suffix sums over the customers still to be assigned
        self._distance_suffix = [0] * (num_customers + 1)
        self._demand_suffix = [0] * (num_customers + 1)
        for cdx in reversed(range(num_customers)):
            self._distance_suffix[cdx] = checked_add(
                self._distance_suffix[cdx + 1], self.min_distance_costs[cdx]
            )
            self._demand_suffix[cdx] = (
                self._demand_suffix[cdx + 1] + instance.bandwidth_demand(cdx)
            )

        self.max_bandwidth = max(
            (f.max_bandwidth for f in state.facilities),
            default=0,
        )

    def opening_deficit(self, state: SearchState, customer_idx: int) -> int:
        """Opening cost the remaining demand forces on top of current stages."""
        deficit = self._demand_suffix[customer_idx] - sum(
            f.spare_bandwidth for f in state.facilities
        )
        if deficit <= 0 or not state.facilities:
            return 0

        upgrades = -(-deficit // self.max_bandwidth)
        cheapest = min(
            state.costs.cheapest_upgrade_from(f.index, f.stage) for f in state.facilities
        )
        return checked_mul(upgrades, cheapest)

    def __call__(self, state: SearchState, customer_idx: int) -> int:
        bound = checked_add(state.total_cost, self._distance_suffix[customer_idx])
        return checked_add(bound, self.opening_deficit(state, customer_idx))
