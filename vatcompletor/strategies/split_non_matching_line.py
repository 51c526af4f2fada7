"""
SplitNonMatchingLine strategy

A discount line (or an ultra correct shipping line) whose vat does not match
any allowed vat rate may be the sum of parts taxed at the vat rates that
appear on the invoice, e.g. a discount spread over products with different
vat rates.

Preconditions:
- Exactly 2 vat rates appear on the other lines of the invoice.

Only lines that may be split and that an earlier correction pass found not to
match a single allowed vat rate are handled. Each such line must carry enough
amounts to be divided on its own. The line is split over the 2 vat rates such
that the amounts and vat of the parts add up to those of the line.

This is a partial solution: lines that cannot be split are left to the next
strategies. Known usage: PrestaShop discount lines.
"""

import logging

from vatcompletor.strategies_core.base import CompletorStrategyBase
from vatcompletor.strategies_core.models import Line, StrategyOrder
from vatcompletor.strategies_core.registry import StrategyRegistry
from vatcompletor.utils.number import (
    format_rate,
    have_same_sign,
    is_zero,
    split_amount_over_2_vat_rates,
)

logger = logging.getLogger(__name__)


class SplitNonMatchingLine(CompletorStrategyBase):
    name = "SplitNonMatchingLine"
    try_order = StrategyOrder.SPLIT_NON_MATCHING_LINE

    def check_preconditions(self) -> bool:
        return len(self.vat_breakdown) == 2

    def execute(self) -> bool:
        self.min_vat_rate = self.get_vat_breakdown_min_rate().vat_rate
        self.max_vat_rate = self.get_vat_breakdown_max_rate().vat_rate
        self.description = (
            f"SplitNonMatchingLine({format_rate(self.min_vat_rate)}, "
            f"{format_rate(self.max_vat_rate)})"
        )
        result = False
        for index, line in enumerate(self.lines2complete):
            if line.strategy_split and line.vat_rate_mismatch:
                if self.split_non_matching_line(index, line):
                    result = True
        return result

    def split_non_matching_line(self, index: int, line: Line) -> bool:
        amount = line.amount_ex()
        amount_inc = line.amount_inc()
        if amount is None or amount_inc is None or is_zero(amount):
            logger.debug(f"Line '{line.description}' cannot be divided on its own")
            return False

        low_amount, high_amount = split_amount_over_2_vat_rates(
            amount, amount_inc - amount, self.min_vat_rate, self.max_vat_rate
        )
        # Dividing was possible if both amounts have the same sign.
        if not have_same_sign(
            amount, low_amount, high_amount, max_diff=self.config.split_sign_epsilon
        ):
            logger.debug(
                f"Line '{line.description}' not split: {low_amount:.4f} at "
                f"{format_rate(self.min_vat_rate)}%, {high_amount:.4f} at "
                f"{format_rate(self.max_vat_rate)}%"
            )
            return False

        for vat_rate, part in (
            (self.max_vat_rate, high_amount),
            (self.min_vat_rate, low_amount),
        ):
            split_line = line.model_copy(
                update={
                    "description": f"{line.description} ({format_rate(vat_rate)}% VAT)",
                    "quantity": 1,
                    "unit_price": part,
                    "unit_price_inc": None,
                    "vat_amount": None,
                    "line_amount": None,
                    "line_amount_inc": None,
                    "vat_rate_mismatch": False,
                }
            )
            self.complete_line(index, split_line, vat_rate)
        return True


# Register the strategy
StrategyRegistry.register_strategy(SplitNonMatchingLine.name, SplitNonMatchingLine)
