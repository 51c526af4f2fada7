import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from vatcompletor.strategies_core.models import (
    CompletionInput,
    Line,
    StrategyResult,
    VatBreakdownEntry,
)
from vatcompletor.utils.config import CompletorConfig, get_config
from vatcompletor.utils.number import vat_in_amount, vat_over_amount

logger = logging.getLogger(__name__)


class CompletorStrategyBase(ABC):
    """
    Base class for all strategies that might be able to complete invoice lines
    by dividing the remaining vat amount over the lines without a vat rate.

    A strategy instance is used for 1 attempt only. It works on private copies
    of the lines, so the input is never changed, whatever the outcome.
    """

    name = "base"
    try_order = 50
    # Set on strategies whose success still means that a human should check.
    needs_review = False

    def __init__(
        self,
        completion_input: CompletionInput,
        config: Optional[CompletorConfig] = None,
    ):
        self.config = config or get_config()
        self.lines2complete: List[Line] = [
            line.model_copy(deep=True) for line in completion_input.lines2complete
        ]
        self.other_lines: List[Line] = [
            line.model_copy(deep=True) for line in completion_input.other_lines
        ]
        self.possible_vat_rates = list(completion_input.possible_vat_rates)
        self.possible_vat_types = completion_input.possible_vat_types
        self.vat_breakdown: Dict[str, VatBreakdownEntry] = {
            key: entry.model_copy()
            for key, entry in (completion_input.vat_breakdown or {}).items()
        }
        self.vat2divide = float(completion_input.vat2divide)
        self.description = "Not yet set"
        self.replacing_lines: Dict[int, List[Line]] = {}

    def apply(self) -> StrategyResult:
        """
        Applies the strategy to see if it results in a valid solution.
        """
        self.init()
        if self.check_preconditions():
            success = self.execute()
        else:
            logger.debug(f"{self.name}: preconditions not met")
            success = False
        return StrategyResult(
            strategy_name=self.name,
            description=self.description,
            success=success,
            replacing_lines=self.replacing_lines if success else {},
            needs_review=self.needs_review and success,
        )

    def init(self) -> None:
        """Strategy dependent initialization."""
        self.clear_replacing_lines()

    def check_preconditions(self) -> bool:
        """
        Some strategies can only be tried when some conditions are met, e.g. if
        there's only 1 line to complete. Those cheap checks go here instead of
        in execute().
        """
        return True

    @abstractmethod
    def execute(self) -> bool:
        """
        Tries to apply the strategy.

        A strategy might be parameterised, most likely by 1 or more vat rates,
        and thus involve multiple tries. Implementations should try them all
        and return True as soon as 1 of them is successful, leaving the lines
        replacing the completed lines in self.replacing_lines.
        """
        pass

    def clear_replacing_lines(self) -> None:
        self.replacing_lines = {}

    def add_replacing_line(self, index: int, line: Line) -> None:
        self.replacing_lines.setdefault(index, []).append(line)

    def complete_line(self, index: int, line: Line, vat_rate: float) -> float:
        """
        Completes a line by filling in the given vat rate and calculating the
        other possibly missing fields (vat amount, unit price).

        Args:
            index (int): Index of the line being replaced in lines2complete.
            line (Line): A copy of the line to complete, it is added to the
                replacing lines.
            vat_rate (float): The vat rate to give the line.

        Returns:
            float: The vat amount for the whole completed line.
        """
        line.vat_rate = vat_rate
        if line.unit_price is not None:
            # The price ex vat rules over a given price inc vat.
            line.vat_amount = vat_over_amount(vat_rate, line.unit_price)
            line.unit_price_inc = line.unit_price + line.vat_amount
        else:
            line.vat_amount = vat_in_amount(vat_rate, line.unit_price_inc)
            line.unit_price = line.unit_price_inc - line.vat_amount
        self.add_replacing_line(index, line)
        return line.vat_amount * line.quantity

    def get_vat_breakdown_min_rate(self) -> Optional[VatBreakdownEntry]:
        """Returns the breakdown entry with the lowest vat rate."""
        if not self.vat_breakdown:
            return None
        return min(self.vat_breakdown.values(), key=lambda entry: entry.vat_rate)

    def get_vat_breakdown_max_rate(self) -> Optional[VatBreakdownEntry]:
        """Returns the breakdown entry with the highest vat rate."""
        if not self.vat_breakdown:
            return None
        return max(self.vat_breakdown.values(), key=lambda entry: entry.vat_rate)

    def get_vat_breakdown_max_amount(self) -> Optional[VatBreakdownEntry]:
        """Returns the key component (NL: hoofdbestanddeel) of the invoice."""
        if not self.vat_breakdown:
            return None
        return max(self.vat_breakdown.values(), key=lambda entry: entry.amount)
