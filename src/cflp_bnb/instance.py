from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

_INT64 = np.iinfo(np.int64)


def _as_int_array(values: Any, name: str, ndim: int) -> np.ndarray:
    """Converts ``values`` into a read-only int64 array of the given rank."""
    try:
        array = np.asarray(values)
    except OverflowError as err:
        error_msg = f"{name} must contain 64-bit integers only."
        raise ValueError(error_msg) from err

    if array.ndim != ndim:
        error_msg = f"{name} must be {ndim}-dimensional, got shape {array.shape}."
        raise ValueError(error_msg)

    error_msg = f"{name} must contain 64-bit integers only."
    if array.dtype == np.bool_:
        raise ValueError(error_msg)

    if array.size:
        if not np.issubdtype(array.dtype, np.integer):
            if not np.all(np.equal(np.mod(array, 1), 0)):
                raise ValueError(error_msg)
        # Compare as Python ints, uint64 and float maxima do not round-trip
        if int(array.min()) < _INT64.min or int(array.max()) > _INT64.max:
            raise ValueError(error_msg)

    try:
        array = np.array(array, dtype=np.int64)
    except OverflowError as err:
        raise ValueError(error_msg) from err
    array.flags.writeable = False
    return array


class CFLPInstance:
    """Read-only CFLP instance with staged facility capacities.

    Facilities and customers are addressed by index; ``facilities`` and
    ``customers`` hold display names aligned with those indices.
    """

    def __init__(
        self,
        distances: Sequence[Sequence[int]] | np.ndarray,
        bandwidth_demands: Sequence[int] | np.ndarray,
        base_opening_costs: Sequence[int] | np.ndarray,
        max_bandwidths: Sequence[int] | np.ndarray,
        distance_cost_factor: int,
        customers: list[str] | None = None,
        facilities: list[str] | None = None,
    ) -> None:
        """Initializes the instance and validates the problem data.

        Args:
            distances: Matrix indexed ``[facility][customer]``.
            bandwidth_demands: Demand of each customer.
            base_opening_costs: Stage-1 opening cost of each facility.
            max_bandwidths: Capacity added by each stage of each facility.
            distance_cost_factor: Cost per unit of distance.
            customers: Optional customer names, defaults to ``C0, C1, ...``.
            facilities: Optional facility names, defaults to ``F0, F1, ...``.

        Raises:
            ValueError: If shapes disagree or a value is out of its domain.
        """
        self._demands = _as_int_array(bandwidth_demands, "bandwidth_demands", 1)
        self._opening = _as_int_array(base_opening_costs, "base_opening_costs", 1)
        self._max_bandwidths = _as_int_array(max_bandwidths, "max_bandwidths", 1)

        num_customers = len(self._demands)
        num_facilities = len(self._opening)

        if len(self._max_bandwidths) != num_facilities:
            error_msg = (
                f"max_bandwidths has {len(self._max_bandwidths)} entries "
                f"but there are {num_facilities} facilities."
            )
            raise ValueError(error_msg)

        distance_array = np.asarray(distances)
        if distance_array.size == 0:
            distance_array = np.zeros((num_facilities, num_customers), dtype=np.int64)
        self._distances = _as_int_array(distance_array, "distances", 2)

        if self._distances.shape != (num_facilities, num_customers):
            error_msg = (
                f"distances must have shape ({num_facilities}, {num_customers}), "
                f"got {self._distances.shape}."
            )
            raise ValueError(error_msg)

        if int(distance_cost_factor) != distance_cost_factor or distance_cost_factor < 0:
            error_msg = "distance_cost_factor must be a non-negative integer."
            raise ValueError(error_msg)
        self._distance_cost_factor = int(distance_cost_factor)

        # Domain checks
        if np.any(self._distances < 0):
            raise ValueError("distances must be non-negative.")
        if np.any(self._demands <= 0):
            raise ValueError("bandwidth_demands must be positive.")
        if np.any(self._opening < 0):
            raise ValueError("base_opening_costs must be non-negative.")
        if np.any(self._max_bandwidths <= 0):
            raise ValueError("max_bandwidths must be positive.")

        self.customers = customers or [f"C{cdx}" for cdx in range(num_customers)]
        self.facilities = facilities or [f"F{fdx}" for fdx in range(num_facilities)]

        if len(self.customers) != num_customers or len(self.facilities) != num_facilities:
            error_msg = "customer and facility names must align with the data arrays."
            raise ValueError(error_msg)

    @classmethod
    def from_mappings(
        cls,
        customers: list[str],
        facilities: list[str],
        customer_demands: Mapping[str, int],
        facility_bandwidths: Mapping[str, int],
        facility_costs: Mapping[str, int],
        distances: Mapping[tuple[str, str], int],
        distance_cost_factor: int = 1,
    ) -> "CFLPInstance":
        """Builds an instance from name-keyed dictionaries.

        Args:
            customers: List of customer identifiers.
            facilities: List of facility identifiers.
            customer_demands: Dictionary mapping customers to their bandwidth demands.
            facility_bandwidths: Dictionary mapping facilities to their per-stage bandwidth.
            facility_costs: Dictionary mapping facilities to their base opening costs.
            distances: Dictionary mapping (customer, facility) tuples to distances.
            distance_cost_factor: Cost per unit of distance.

        Returns:
            The equivalent index-based instance.

        Raises:
            KeyError: If a customer or facility is missing from a mapping.
        """
        return cls(
            distances=[[distances[(c, f)] for c in customers] for f in facilities],
            bandwidth_demands=[customer_demands[c] for c in customers],
            base_opening_costs=[facility_costs[f] for f in facilities],
            max_bandwidths=[facility_bandwidths[f] for f in facilities],
            distance_cost_factor=distance_cost_factor,
            customers=list(customers),
            facilities=list(facilities),
        )

    @property
    def num_customers(self) -> int:
        return len(self._demands)

    @property
    def num_facilities(self) -> int:
        return len(self._opening)

    @property
    def distance_cost_factor(self) -> int:
        return self._distance_cost_factor

    @property
    def distances(self) -> np.ndarray:
        """Read-only ``[facility][customer]`` distance matrix."""
        return self._distances

    def distance(self, facility: int, customer: int) -> int:
        return int(self._distances[facility, customer])

    def bandwidth_demand(self, customer: int) -> int:
        return int(self._demands[customer])

    def base_opening_cost(self, facility: int) -> int:
        return int(self._opening[facility])

    def max_bandwidth(self, facility: int) -> int:
        return int(self._max_bandwidths[facility])

    def total_demand(self) -> int:
        return sum(int(d) for d in self._demands)

    def __repr__(self) -> str:
        return (
            f"CFLPInstance(num_customers={self.num_customers}, "
            f"num_facilities={self.num_facilities}, "
            f"distance_cost_factor={self.distance_cost_factor})"
        )
