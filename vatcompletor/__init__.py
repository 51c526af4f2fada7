"""
vatcompletor: completes the vat rates of invoice lines such that the vat of
the lines adds up to the known vat total of the invoice.
"""

from vatcompletor.strategies_core.models import (
    CompletionInput,
    CompletionResult,
    Line,
    VatRateCandidate,
    VatRateSource,
    VatType,
)
from vatcompletor.strategies_core.runner import (
    InvalidLineError,
    StrategyRunner,
    complete_strategy_lines,
)

__version__ = "0.1.0"
