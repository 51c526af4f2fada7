"""
Strategy runner

Tries the registered strategies in their try order on the lines to complete.
A strategy may complete only some of the lines (a partial solution); the lines
it did not complete are offered to the next strategies, with the vat to divide
reduced by the vat of the completed lines. The run ends when no lines are left
to complete. As Fail always succeeds, a run always ends with a result.

Usage:
    from vatcompletor.strategies_core.runner import complete_strategy_lines
    result = complete_strategy_lines(completion_input)
    if result.needs_review:
        ...
"""

import logging
from typing import Dict, List, Optional, Sequence, Type

from vatcompletor.strategies_core.base import CompletorStrategyBase
from vatcompletor.strategies_core.models import (
    CompletionInput,
    CompletionResult,
    Line,
    VatRateSource,
    add_to_vat_breakdown,
)
from vatcompletor.strategies_core.registry import StrategyRegistry
from vatcompletor.utils.config import CompletorConfig, get_config
from vatcompletor.utils.number import floats_are_equal, format_amount

logger = logging.getLogger(__name__)

MANUAL_REVIEW_WARNING = "Vat division could not be verified: manual review required"
UNRECONCILED_WARNING = (
    "Vat of the completed lines ({}) does not match the vat to divide ({})"
)


class InvalidLineError(ValueError):
    """A line to complete lacks the data any strategy needs."""


def validate_lines2complete(lines: Sequence[Line]) -> None:
    """
    Raises InvalidLineError if a line to complete has neither a unit price ex
    vat nor a unit price inc vat: no strategy can compute its vat.
    """
    for index, line in enumerate(lines):
        if not line.has_unit_price():
            raise InvalidLineError(
                f"Line {index} ('{line.description}') has no unit price (ex or inc vat)"
            )


class StrategyRunner:
    def __init__(
        self,
        config: Optional[CompletorConfig] = None,
        strategies: Optional[Sequence[Type[CompletorStrategyBase]]] = None,
    ):
        self.config = config or get_config()
        if strategies is None:
            if not StrategyRegistry.list_strategies():
                from vatcompletor.strategies_core.autodiscover import (
                    autodiscover_strategies,
                )

                autodiscover_strategies()
            strategies = StrategyRegistry.ordered_strategies()
        self.strategies = sorted(
            strategies, key=lambda strategy_cls: (strategy_cls.try_order, strategy_cls.name)
        )

    def run(self, completion_input: CompletionInput) -> CompletionResult:
        validate_lines2complete(completion_input.lines2complete)

        result = CompletionResult(vat2divide=completion_input.vat2divide)
        pending: List[int] = list(range(len(completion_input.lines2complete)))
        completed: Dict[int, List[Line]] = {}
        vat2divide = completion_input.vat2divide
        vat_breakdown = {
            key: entry.model_copy()
            for key, entry in completion_input.vat_breakdown.items()
        }

        for strategy_cls in self.strategies:
            if not pending:
                break
            attempt_input = completion_input.model_copy(
                update={
                    "lines2complete": [
                        completion_input.lines2complete[i] for i in pending
                    ],
                    "vat2divide": vat2divide,
                    "vat_breakdown": vat_breakdown,
                }
            )
            strategy = strategy_cls(attempt_input, self.config)
            strategy_result = strategy.apply()
            if not strategy_result.success:
                logger.debug(f"{strategy_cls.name} did not succeed")
                continue

            for local_index, lines in strategy_result.replacing_lines.items():
                original_index = pending[local_index]
                if not strategy_result.needs_review:
                    for line in lines:
                        line.vat_rate_source = VatRateSource.STRATEGY_COMPLETED
                        line.strategy_used = strategy_result.strategy_name
                        vat2divide -= line.vat_contribution()
                        add_to_vat_breakdown(vat_breakdown, line)
                completed[original_index] = lines
            pending = [i for i in pending if i not in completed]

            result.strategies_used.append(strategy_result.strategy_name)
            result.descriptions.append(strategy_result.description)
            if strategy_result.needs_review:
                result.needs_review = True
                result.warnings.append(MANUAL_REVIEW_WARNING)
                logger.warning(
                    f"{strategy_result.description}: {len(strategy_result.replacing_lines)} "
                    f"line(s) left uncompleted, {MANUAL_REVIEW_WARNING}"
                )
            else:
                logger.info(
                    f"Strategy {strategy_result.description} completed "
                    f"{len(strategy_result.replacing_lines)} line(s)"
                )

        if pending:
            # Only possible without the Fail strategy.
            result.needs_review = True
            result.warnings.append(MANUAL_REVIEW_WARNING)
            logger.warning(f"{len(pending)} line(s) left uncompleted: {MANUAL_REVIEW_WARNING}")

        result.lines = [
            line
            for index, original in enumerate(completion_input.lines2complete)
            for line in completed.get(index, [original.model_copy(deep=True)])
        ]
        if not result.needs_review:
            self.check_reconciliation(result, completion_input.vat2divide)
        return result

    def check_reconciliation(self, result: CompletionResult, vat2divide: float) -> None:
        """
        Flags the result for review if the vat of its lines does not add up to
        the vat to divide. The tolerance is the widest one a strategy accepts.
        """
        vat_amount = sum(line.vat_contribution() for line in result.lines)
        max_diff = max(self.config.default_epsilon, self.config.same_rate_epsilon)
        if floats_are_equal(vat_amount, vat2divide, max_diff):
            return
        warning = UNRECONCILED_WARNING.format(
            format_amount(vat_amount), format_amount(vat2divide)
        )
        result.needs_review = True
        result.warnings.append(warning)
        logger.warning(f"{result.description}: {warning}")


def complete_strategy_lines(
    completion_input: CompletionInput, config: Optional[CompletorConfig] = None
) -> CompletionResult:
    """Runs all registered strategies on the given input."""
    return StrategyRunner(config).run(completion_input)
