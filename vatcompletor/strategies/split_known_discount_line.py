"""
SplitKnownDiscountLine strategy

Splits an order level discount line over the vat rates of the lines the
discount was given on, using the per line discount amounts (inc vat) the shop
recorded on those lines.

Preconditions:
- Exactly 1 of the lines to complete may be split.
- Other lines with a reliable vat rate carry a discount amount, and these add
  up to the amount of the line to split.

As the preconditions already guarantee the answer this is a controlled win,
so it comes right after the cheapest strategy. It only completes the split
line, the other lines to complete are left to the next strategies.

Known usages: Magento, PrestaShop (if its order detail tax table is filled).
"""

import logging
from typing import Dict, Optional

from vatcompletor.strategies_core.base import CompletorStrategyBase
from vatcompletor.strategies_core.models import (
    CORRECT_VAT_RATE_SOURCES,
    Line,
    StrategyOrder,
)
from vatcompletor.strategies_core.registry import StrategyRegistry
from vatcompletor.utils.number import (
    floats_are_equal,
    format_amount,
    format_rate,
    rate_key,
    vat_in_amount,
)

logger = logging.getLogger(__name__)


class SplitKnownDiscountLine(CompletorStrategyBase):
    name = "SplitKnownDiscountLine"
    try_order = StrategyOrder.SPLIT_KNOWN_DISCOUNT_LINE

    def init(self) -> None:
        super().init()
        self.split_line: Optional[Line] = None
        self.split_line_index: Optional[int] = None
        self.split_line_count = 0
        self.known_discount_amount_inc = 0.0
        self.known_discount_vat_amount = 0.0
        self.discounts_per_vat_rate: Dict[str, float] = {}

        for index, line in enumerate(self.lines2complete):
            if line.strategy_split:
                self.split_line = line
                self.split_line_index = index
                self.split_line_count += 1

        if self.split_line_count != 1:
            return
        for line in self.other_lines:
            if (
                line.discount_amount_inc is not None
                and line.vat_rate is not None
                and line.vat_rate_source in CORRECT_VAT_RATE_SOURCES
            ):
                discount = line.discount_amount_inc
                self.known_discount_amount_inc += discount
                self.known_discount_vat_amount += vat_in_amount(line.vat_rate, discount)
                key = rate_key(line.vat_rate)
                self.discounts_per_vat_rate[key] = (
                    self.discounts_per_vat_rate.get(key, 0.0) + discount
                )

    def check_preconditions(self) -> bool:
        if self.split_line_count != 1 or not self.discounts_per_vat_rate:
            return False
        line = self.split_line
        epsilon = self.config.default_epsilon
        if line.unit_price is not None:
            return floats_are_equal(
                line.unit_price * line.quantity,
                self.known_discount_amount_inc - self.known_discount_vat_amount,
                epsilon,
            )
        if line.unit_price_inc is not None:
            return floats_are_equal(
                line.unit_price_inc * line.quantity,
                self.known_discount_amount_inc,
                epsilon,
            )
        return False

    def execute(self) -> bool:
        self.description = (
            f"SplitKnownDiscountLine({format_amount(self.known_discount_amount_inc)}, "
            f"{format_amount(self.known_discount_vat_amount)})"
        )
        split_over_rates = len(self.discounts_per_vat_rate) > 1
        for key, discount_amount_inc in self.discounts_per_vat_rate.items():
            vat_rate = float(key)
            description = self.split_line.description
            if split_over_rates:
                description = f"{description} ({format_rate(vat_rate)}%)"
            line = self.split_line.model_copy(
                update={
                    "description": description,
                    "quantity": 1,
                    "unit_price": None,
                    "unit_price_inc": discount_amount_inc,
                    "vat_amount": None,
                    "line_amount": None,
                    "line_amount_inc": None,
                }
            )
            self.complete_line(self.split_line_index, line, vat_rate)
        logger.debug(f"{self.description}: split over {list(self.discounts_per_vat_rate)}")
        return True


# Register the strategy
StrategyRegistry.register_strategy(SplitKnownDiscountLine.name, SplitKnownDiscountLine)
