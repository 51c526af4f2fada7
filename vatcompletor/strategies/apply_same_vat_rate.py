"""
ApplySameVatRate strategy

- Assumes all lines to complete share 1 vat rate
- Tries each possible vat rate in turn, followed by a 0% rate: prepaid vouchers
  carry no vat, so if the only lines to complete are voucher lines that may be
  the right answer
- Cheapest strategy, so it is tried first

Known usage: free shipping lines.
"""

import logging
from typing import List

from vatcompletor.strategies_core.base import CompletorStrategyBase
from vatcompletor.strategies_core.models import StrategyOrder
from vatcompletor.strategies_core.registry import StrategyRegistry
from vatcompletor.utils.number import floats_are_equal, format_rate, rate_key

logger = logging.getLogger(__name__)


class ApplySameVatRate(CompletorStrategyBase):
    name = "ApplySameVatRate"
    try_order = StrategyOrder.APPLY_SAME_VAT_RATE

    def check_preconditions(self) -> bool:
        return bool(self.lines2complete) and bool(self.possible_vat_rates)

    def execute(self) -> bool:
        for vat_rate in self._distinct_vat_rates():
            if self.try_vat_rate(vat_rate):
                return True
        return self.try_vat_rate(0.0)

    def _distinct_vat_rates(self) -> List[float]:
        seen = set()
        vat_rates = []
        for candidate in self.possible_vat_rates:
            key = rate_key(candidate.vat_rate)
            if key not in seen:
                seen.add(key)
                vat_rates.append(candidate.vat_rate)
        return vat_rates

    def try_vat_rate(self, vat_rate: float) -> bool:
        self.description = f"ApplySameVatRate({format_rate(vat_rate)})"
        self.clear_replacing_lines()
        vat_amount = 0.0
        for index, line in enumerate(self.lines2complete):
            vat_amount += self.complete_line(index, line.model_copy(), vat_rate)
        logger.debug(
            f"tryVatRate({format_rate(vat_rate)}): {vat_amount} (vat2divide={self.vat2divide})"
        )
        return floats_are_equal(vat_amount, self.vat2divide, self.config.same_rate_epsilon)


# Register the strategy
StrategyRegistry.register_strategy(ApplySameVatRate.name, ApplySameVatRate)
