"""
SplitLine strategy

A (discount) line can have any vat rate between the minimum and maximum vat
rate on the invoice, as the discount may be divided over products with
different vat rates.

Preconditions:
- Exactly 2 vat rates appear on the other lines of the invoice.
- At least 1 line to complete may be split, and the amount ex vat of each of
  those lines is known.

Strategy:
The other lines to complete, typically shipping and other fees, all get the
same vat rate: first the maximum rate (what most shops use), then the rate of
the key component (NL: hoofdbestanddeel) if that differs. The vat that then
remains is divided over the split lines. Multiple split lines are divided by
the same percentage, as we cannot compute a division per line.

This strategy has a lot of freedom, so it will easily "succeed". It is
therefore tried after TryAllVatRatePermutations, when we may assume that
splitting is the only way left. Known usage: OpenCart discount coupons.
"""

import logging
from typing import Dict

from vatcompletor.strategies_core.base import CompletorStrategyBase
from vatcompletor.strategies_core.models import Line, StrategyOrder
from vatcompletor.strategies_core.registry import StrategyRegistry
from vatcompletor.utils.number import (
    format_rate,
    have_same_sign,
    split_amount_over_2_vat_rates,
)

logger = logging.getLogger(__name__)


class SplitLine(CompletorStrategyBase):
    name = "SplitLine"
    try_order = StrategyOrder.SPLIT_LINE

    def init(self) -> None:
        super().init()
        self.split_lines: Dict[int, Line] = {}
        self.other_lines2complete: Dict[int, Line] = {}
        for index, line in enumerate(self.lines2complete):
            if line.strategy_split:
                self.split_lines[index] = line
            else:
                self.other_lines2complete[index] = line

        amounts = [line.amount_ex() for line in self.split_lines.values()]
        self.split_lines_amount = (
            None if None in amounts else sum(amounts)
        )

        self.min_vat_rate = self.get_vat_breakdown_min_rate()
        self.max_vat_rate = self.get_vat_breakdown_max_rate()
        self.key_component = self.get_vat_breakdown_max_amount()

    def check_preconditions(self) -> bool:
        return (
            len(self.vat_breakdown) == 2
            and len(self.split_lines) >= 1
            and self.split_lines_amount is not None
        )

    def execute(self) -> bool:
        if self.try_vat_rate(self.max_vat_rate.vat_rate):
            return True
        return self.key_component.vat_rate != self.max_vat_rate.vat_rate and self.try_vat_rate(
            self.key_component.vat_rate
        )

    def try_vat_rate(self, vat_rate_for_other_lines: float) -> bool:
        low_vat_rate = self.min_vat_rate.vat_rate
        high_vat_rate = self.max_vat_rate.vat_rate
        self.description = (
            f"SplitLine({format_rate(vat_rate_for_other_lines)}, "
            f"{format_rate(low_vat_rate)}, {format_rate(high_vat_rate)})"
        )
        self.clear_replacing_lines()
        other_vat_amount = 0.0
        for index, line in self.other_lines2complete.items():
            other_vat_amount += self.complete_line(
                index, line.model_copy(), vat_rate_for_other_lines
            )

        low_amount, high_amount = split_amount_over_2_vat_rates(
            self.split_lines_amount,
            self.vat2divide - other_vat_amount,
            low_vat_rate,
            high_vat_rate,
        )
        # Dividing was possible if both amounts have the same sign.
        if not have_same_sign(
            self.split_lines_amount,
            low_amount,
            high_amount,
            max_diff=self.config.split_sign_epsilon,
        ):
            logger.debug(
                f"{self.description}: no valid division ({low_amount:.4f}, {high_amount:.4f})"
            )
            return False

        # All split lines are split by the same percentage.
        high_percentage = high_amount / self.split_lines_amount
        low_percentage = low_amount / self.split_lines_amount
        for index, line in self.split_lines.items():
            for vat_rate, percentage in (
                (high_vat_rate, high_percentage),
                (low_vat_rate, low_percentage),
            ):
                split_line = line.model_copy(
                    update={
                        "description": f"{line.description} ({format_rate(vat_rate)}% VAT)",
                        "quantity": 1,
                        "unit_price": percentage * line.amount_ex(),
                        "unit_price_inc": None,
                        "vat_amount": None,
                        "line_amount": None,
                        "line_amount_inc": None,
                    }
                )
                self.complete_line(index, split_line, vat_rate)
        return True


# Register the strategy
StrategyRegistry.register_strategy(SplitLine.name, SplitLine)
