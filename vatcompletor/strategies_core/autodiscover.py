"""
Strategy Autodiscovery Utility

This module provides autodiscover_strategies(), which imports all modules in
vatcompletor.strategies, ensuring all register_strategy calls are executed and
the strategy registry is fully populated.

Usage:
    from vatcompletor.strategies_core.autodiscover import autodiscover_strategies
    autodiscover_strategies()  # Populates StrategyRegistry

    # List all registered strategy names in try order:
    from vatcompletor.strategies_core.registry import StrategyRegistry
    print(StrategyRegistry.list_strategies())
"""

import importlib
import logging
import pkgutil

from vatcompletor.strategies_core.registry import StrategyRegistry

logger = logging.getLogger(__name__)


def autodiscover_strategies():
    """
    Import all strategy modules in vatcompletor.strategies (except __init__.py).
    Returns the strategy registry dict for inspection.
    """
    import vatcompletor.strategies

    package = vatcompletor.strategies
    for module_info in sorted(
        pkgutil.iter_modules(package.__path__), key=lambda info: info.name
    ):
        modname = f"{package.__name__}.{module_info.name}"
        logger.debug(f"Importing strategy module: {modname}")
        importlib.import_module(modname)
    logger.debug(f"Registered strategies: {StrategyRegistry.list_strategies()}")
    return StrategyRegistry._strategies
