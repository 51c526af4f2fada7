"""
Fail strategy

Always succeeds by passing the lines to complete through unchanged. It is
tried last, so a run always ends with a result, but that result is flagged:
the vat division of the invoice could not be verified and needs a human.
"""

from vatcompletor.strategies_core.base import CompletorStrategyBase
from vatcompletor.strategies_core.models import StrategyOrder
from vatcompletor.strategies_core.registry import StrategyRegistry


class Fail(CompletorStrategyBase):
    name = "Fail"
    try_order = StrategyOrder.FAIL
    needs_review = True

    def execute(self) -> bool:
        self.description = "Fail"
        for index, line in enumerate(self.lines2complete):
            self.add_replacing_line(index, line)
        return True


# Register the strategy
StrategyRegistry.register_strategy(Fail.name, Fail)
