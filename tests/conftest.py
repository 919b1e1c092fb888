import itertools

import numpy as np
import pytest

from cflp_bnb import CFLPInstance, evaluate_assignment


@pytest.fixture
def example_instance() -> CFLPInstance:
    """Two customers, two facilities; both customers on facility 0 is optimal."""
    return CFLPInstance(
        distances=[[1, 4], [4, 1]],
        bandwidth_demands=[3, 3],
        base_opening_costs=[10, 20],
        max_bandwidths=[5, 5],
        distance_cost_factor=2,
    )


@pytest.fixture
def myopic_instance() -> CFLPInstance:
    """Instance where the greedy seed (cost 8) misses the optimum (cost 6)."""
    return CFLPInstance(
        distances=[[0, 0], [0, 0]],
        bandwidth_demands=[10, 10],
        base_opening_costs=[5, 6],
        max_bandwidths=[10, 100],
        distance_cost_factor=1,
    )


@pytest.fixture
def make_random_instance():
    def _make(seed: int, num_customers: int = 4, num_facilities: int = 3) -> CFLPInstance:
        rng = np.random.default_rng(seed)
        return CFLPInstance(
            distances=rng.integers(0, 20, size=(num_facilities, num_customers)),
            bandwidth_demands=rng.integers(1, 8, size=num_customers),
            base_opening_costs=rng.integers(0, 30, size=num_facilities),
            max_bandwidths=rng.integers(3, 10, size=num_facilities),
            distance_cost_factor=int(rng.integers(0, 4)),
        )

    return _make


@pytest.fixture
def brute_force():
    """Returns a function computing the optimal completion of a prefix by enumeration."""

    def _solve(instance: CFLPInstance, prefix: tuple[int, ...] = ()) -> tuple[int, tuple[int, ...]]:
        best_cost, best_assignment = None, None
        free = instance.num_customers - len(prefix)
        for rest in itertools.product(range(instance.num_facilities), repeat=free):
            assignment = tuple(prefix) + rest
            cost = evaluate_assignment(instance, assignment)
            if best_cost is None or cost < best_cost:
                best_cost, best_assignment = cost, assignment
        return best_cost, best_assignment

    return _solve
