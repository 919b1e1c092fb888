"""Branch-and-bound solver for the staged Capacitated Facility Location Problem.

Customers are assigned one at a time, in index order, trying every
facility for each. A branch is only followed while its admissible lower
bound stays strictly below the best complete solution known so far; every
improvement is handed to the ``on_improved_solution`` callback.

The search is anytime: once :meth:`CFLPBranchAndBound.solve` has seeded the
incumbent, it can be interrupted between any two facility branches through
``should_stop`` and the best solution found so far remains valid.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass

from cflp_bnb.bounds import LowerBoundEstimator, greedy_upper_bound
from cflp_bnb.facility import SearchState
from cflp_bnb.instance import CFLPInstance
from cflp_bnb.solution import Solution

logger = logging.getLogger(__name__)

ImprovementCallback = Callable[[int, list[int]], None]


@dataclass
class BnBConfig:
    """Configuration of the branch-and-bound search.

    Attributes:
        max_nodes: Stop after exploring this many nodes; ``None`` for no limit.
        seed_with_greedy: Use the greedy solution as the initial incumbent.
    """

    max_nodes: int | None = None
    seed_with_greedy: bool = True


@dataclass
class SearchStats:
    """Counters collected during one solve."""

    nodes_explored: int = 0
    nodes_pruned: int = 0
    leaves_evaluated: int = 0
    incumbent_updates: int = 0
    runtime: float = 0.0


class CFLPBranchAndBound:
    """Depth-first branch-and-bound over customer-to-facility assignments."""

    def __init__(
        self,
        instance: CFLPInstance,
        on_improved_solution: ImprovementCallback | None = None,
        config: BnBConfig | None = None,
    ) -> None:
        """Initializes the solver.

        Args:
            instance: The problem instance, never modified.
            on_improved_solution: Called with ``(cost, assignment)`` for the
                seed and for every strictly better complete solution.
            config: Search configuration.
        """
        self.instance = instance
        self.on_improved_solution = on_improved_solution
        self.config = config or BnBConfig()

        self.stats = SearchStats()
        self.interrupted = False
        self._state: SearchState | None = None
        self._lower_bound: LowerBoundEstimator | None = None
        self._should_stop: Callable[[], bool] | None = None

    @property
    def best_cost(self) -> int | None:
        return self._state.best_cost if self._state else None

    @property
    def best_assignment(self) -> list[int] | None:
        if self._state is None or self._state.best_assignment is None:
            return None
        return list(self._state.best_assignment)

    @property
    def best_solution(self) -> Solution | None:
        if self._state is None or self._state.best_assignment is None:
            return None
        return Solution(cost=self._state.best_cost, assignment=tuple(self._state.best_assignment))

    @property
    def state(self) -> SearchState | None:
        """Search state of the last solve, empty again once it has returned."""
        return self._state

    def solve(self, should_stop: Callable[[], bool] | None = None) -> None:
        """Runs the search until it is exhausted or interrupted.

        Recursion goes one frame per customer, so roughly 1000 customers
        exceed the default recursion limit and raise ``RecursionError``.

        Args:
            should_stop: Polled before every facility branch; the search
                unwinds as soon as it returns ``True``.

        Raises:
            ArithmeticOverflow: If a cost leaves the 64-bit range.
            InvariantViolation: If the assignment bookkeeping is corrupted.
        """
        self.stats = SearchStats()
        self.interrupted = False
        self._should_stop = should_stop
        self._state = SearchState(self.instance)
        self._lower_bound = LowerBoundEstimator(self._state)

        start = time.monotonic()
        logger.info(
            f"Starting branch-and-bound: {self.instance.num_customers} customers, "
            f"{self.instance.num_facilities} facilities"
        )

        if self.config.seed_with_greedy:
            seed = greedy_upper_bound(self._state)
            if seed is not None:
                logger.info(f"Initial incumbent from greedy heuristic: cost={seed.cost}")
                self._update_incumbent(seed.cost, list(seed.assignment))

        completed = self._branch(0)
        self.interrupted = not completed
        self.stats.runtime = time.monotonic() - start

        if self.interrupted:
            logger.info(f"Search interrupted after {self.stats.nodes_explored} nodes")
        if self._state.best_cost is None:
            logger.warning("Search exhausted without a feasible solution")

        logger.info(f"Branch-and-bound finished: best_cost={self._state.best_cost}")
        logger.info(f"Search statistics: {asdict(self.stats)}")

    def _stop_requested(self) -> bool:
        max_nodes = self.config.max_nodes
        if max_nodes is not None and self.stats.nodes_explored >= max_nodes:
            logger.debug(f"Node limit {max_nodes} reached")
            return True
        return self._should_stop is not None and self._should_stop()

    def _branch(self, customer_idx: int) -> bool:
        """Explores all assignments of ``customer_idx`` and later customers.

        Returns:
            ``False`` if the search was interrupted, ``True`` otherwise.
        """
        state = self._state

        if customer_idx == self.instance.num_customers:
            self._evaluate_leaf()
            return True

        for facility in state.facilities:
            if self._stop_requested():
                return False

            with state.assigned(facility.index, customer_idx):
                self.stats.nodes_explored += 1

                # Committed cost alone already rules the branch out
                if not state.improves(state.total_cost):
                    self.stats.nodes_pruned += 1
                    continue

                bound = self._lower_bound(state, customer_idx + 1)
                if not state.improves(bound):
                    self.stats.nodes_pruned += 1
                    logger.debug(
                        f"Pruned customer {customer_idx} -> facility {facility.index}: "
                        f"bound {bound} >= {state.best_cost}"
                    )
                    continue

                if not self._branch(customer_idx + 1):
                    return False

        return True

    def _evaluate_leaf(self) -> None:
        state = self._state
        self.stats.leaves_evaluated += 1

        if state.improves(state.total_cost):
            self._update_incumbent(state.total_cost, state.current_assignment())

    def _update_incumbent(self, cost: int, assignment: list[int]) -> None:
        state = self._state
        state.best_cost = cost
        state.best_assignment = assignment
        self.stats.incumbent_updates += 1

        logger.info(f"New incumbent: cost={cost} after {self.stats.nodes_explored} nodes")
        logger.debug(f"Assignment: {assignment}")

        if self.on_improved_solution is not None:
            self.on_improved_solution(cost, list(assignment))
