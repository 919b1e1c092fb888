import itertools

import pytest

from cflp_bnb import (
    CFLPInstance,
    LowerBoundEstimator,
    SearchState,
    check_assignment,
    evaluate_assignment,
    greedy_upper_bound,
)


def test_greedy_seed_on_example(example_instance):
    state = SearchState(example_instance)

    seed = greedy_upper_bound(state)

    assert seed.cost == 25
    assert seed.assignment == (0, 0)
    assert state.is_empty()


def test_greedy_seed_is_myopic(myopic_instance):
    seed = greedy_upper_bound(SearchState(myopic_instance))

    assert seed.assignment == (0, 0)
    assert seed.cost == 8


def test_greedy_without_facilities_is_infeasible():
    instance = CFLPInstance(
        distances=[],
        bandwidth_demands=[2, 3],
        base_opening_costs=[],
        max_bandwidths=[],
        distance_cost_factor=1,
    )

    assert greedy_upper_bound(SearchState(instance)) is None


@pytest.mark.parametrize("seed", range(6))
def test_greedy_seed_is_feasible_upper_bound(seed, make_random_instance, brute_force):
    instance = make_random_instance(seed)
    state = SearchState(instance)

    solution = greedy_upper_bound(state)
    optimum, _ = brute_force(instance)

    assert check_assignment(instance, solution.assignment) == {}
    assert evaluate_assignment(instance, solution.assignment) == solution.cost
    assert solution.cost >= optimum
    assert state.is_empty()


def test_lower_bound_of_empty_assignment(example_instance):
    state = SearchState(example_instance)
    estimator = LowerBoundEstimator(state)

    assert estimator.min_distance_costs == [2, 2]
    # Demand 6 with nothing open: two upgrades at the cheapest step (5)
    assert estimator(state, 0) == 2 + 2 + 2 * 5


def test_lower_bound_at_leaf_is_total_cost(example_instance):
    state = SearchState(example_instance)
    estimator = LowerBoundEstimator(state)
    state.assign(0, 0)
    state.assign(1, 1)

    assert estimator(state, 2) == state.total_cost


@pytest.mark.parametrize("seed", range(8))
def test_lower_bound_is_admissible(seed, make_random_instance, brute_force):
    instance = make_random_instance(seed, num_customers=4, num_facilities=3)
    state = SearchState(instance)
    estimator = LowerBoundEstimator(state)

    for depth in range(instance.num_customers + 1):
        for prefix in itertools.product(range(instance.num_facilities), repeat=depth):
            for cdx, fdx in enumerate(prefix):
                state.assign(fdx, cdx)

            before = state.total_cost
            bound = estimator(state, depth)
            optimum, _ = brute_force(instance, prefix)

            assert bound <= optimum, f"prefix {prefix}: bound {bound} > {optimum}"
            assert state.total_cost == before

            for cdx, fdx in reversed(list(enumerate(prefix))):
                state.unassign(fdx, cdx)

    assert state.is_empty()


def test_lower_bound_never_exceeds_tight_instance_optimum(myopic_instance, brute_force):
    state = SearchState(myopic_instance)
    estimator = LowerBoundEstimator(state)

    optimum, _ = brute_force(myopic_instance)
    assert estimator(state, 0) <= optimum
