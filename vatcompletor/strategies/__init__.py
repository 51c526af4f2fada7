"""
Strategies that complete invoice lines by dividing the remaining vat amount
over the lines without a vat rate. Each module registers its strategy with the
StrategyRegistry on import, see vatcompletor.strategies_core.autodiscover.
"""
