"""Branch-and-bound solver for the Capacitated Facility Location Problem (CFLP) with staged facilities."""

from cflp_bnb.bnb import BnBConfig, CFLPBranchAndBound, SearchStats
from cflp_bnb.bounds import LowerBoundEstimator, greedy_upper_bound
from cflp_bnb.costs import StageCostModel
from cflp_bnb.errors import ArithmeticOverflow, CFLPError, InvariantViolation
from cflp_bnb.facility import FacilityState, SearchState
from cflp_bnb.instance import CFLPInstance
from cflp_bnb.solution import (
    Solution,
    SolutionRecorder,
    check_assignment,
    evaluate_assignment,
)

__all__ = [
    "ArithmeticOverflow",
    "BnBConfig",
    "CFLPBranchAndBound",
    "CFLPError",
    "CFLPInstance",
    "FacilityState",
    "InvariantViolation",
    "LowerBoundEstimator",
    "SearchState",
    "SearchStats",
    "Solution",
    "SolutionRecorder",
    "StageCostModel",
    "check_assignment",
    "evaluate_assignment",
    "greedy_upper_bound",
]
