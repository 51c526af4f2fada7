"""
TryAllVatRatePermutations strategy

Tries every assignment of vat rates to the lines to complete, per vat type,
first with the vat rates of that type only, then with a 0% rate added (prepaid
vouchers carry no vat, so discount lines may have a 0% rate).

The search is a depth first backtrack that only tests complete assignments:
amounts may be negative, so a partial sum says nothing about the outcome. The
number of visited nodes and the elapsed time are bounded by the configuration.
"""

import logging
import time
from typing import List

from vatcompletor.strategies_core.base import CompletorStrategyBase
from vatcompletor.strategies_core.models import StrategyOrder
from vatcompletor.strategies_core.registry import StrategyRegistry
from vatcompletor.utils.number import floats_are_equal, format_rate, is_zero, rate_key

logger = logging.getLogger(__name__)


class TryAllVatRatePermutations(CompletorStrategyBase):
    name = "TryAllVatRatePermutations"
    try_order = StrategyOrder.TRY_ALL_VAT_RATE_PERMUTATIONS

    def init(self) -> None:
        super().init()
        self.vat_rates: List[float] = []
        self.nodes_visited = 0
        self.budget_exhausted = False
        self.deadline = None

    def check_preconditions(self) -> bool:
        return bool(self.lines2complete) and bool(self.possible_vat_rates)

    def execute(self) -> bool:
        if self.config.max_permutation_seconds is not None:
            self.deadline = time.monotonic() + self.config.max_permutation_seconds

        for include0 in (False, True):
            for vat_type in self.possible_vat_types:
                if not self.set_vat_rates(vat_type, include0):
                    continue
                if self.try_all_permutations([]):
                    return True
                if self.budget_exhausted:
                    logger.warning(
                        f"{self.name}: search aborted after {self.nodes_visited} nodes "
                        f"({len(self.lines2complete)} lines)"
                    )
                    return False
        return False

    def set_vat_rates(self, vat_type: int, include0: bool) -> bool:
        """
        Initializes the list of vat rates to use for this vat type.

        Returns False if this combination adds nothing to what has been tried.
        """
        self.vat_rates = []
        seen = set()
        for candidate in self.possible_vat_rates:
            key = rate_key(candidate.vat_rate)
            if candidate.vat_type == vat_type and key not in seen:
                seen.add(key)
                self.vat_rates.append(candidate.vat_rate)
        if include0:
            if any(is_zero(vat_rate) for vat_rate in self.vat_rates):
                return False
            self.vat_rates.append(0.0)
        return bool(self.vat_rates)

    def try_all_permutations(self, permutation: List[float]) -> bool:
        if self._over_budget():
            return False
        if len(permutation) == len(self.lines2complete):
            return self.try_one_permutation(permutation)
        # Try all vat rates for the next line.
        for vat_rate in self.vat_rates:
            permutation.append(vat_rate)
            if self.try_all_permutations(permutation):
                return True
            permutation.pop()
            if self.budget_exhausted:
                return False
        return False

    def try_one_permutation(self, permutation: List[float]) -> bool:
        self.description = (
            f"TryAllVatRatePermutations({', '.join(format_rate(r) for r in permutation)})"
        )
        self.clear_replacing_lines()
        vat_amount = 0.0
        for index, line in enumerate(self.lines2complete):
            vat_amount += self.complete_line(index, line.model_copy(), permutation[index])

        # The strategy worked if the vat total equals the vat to divide.
        return floats_are_equal(
            vat_amount, self.vat2divide, self.config.permutation_epsilon
        )

    def _over_budget(self) -> bool:
        self.nodes_visited += 1
        if self.nodes_visited > self.config.max_permutation_nodes:
            self.budget_exhausted = True
        elif self.deadline is not None and time.monotonic() > self.deadline:
            self.budget_exhausted = True
        return self.budget_exhausted


# Register the strategy
StrategyRegistry.register_strategy(
    TryAllVatRatePermutations.name, TryAllVatRatePermutations
)
