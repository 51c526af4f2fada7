import logging
from typing import Dict, List, Type

from .base import CompletorStrategyBase

logger = logging.getLogger(__name__)


class StrategyRegistry:
    _strategies: Dict[str, Type[CompletorStrategyBase]] = {}

    @classmethod
    def register_strategy(cls, name: str, strategy_cls: Type[CompletorStrategyBase]):
        logger.debug(f"Registering strategy: {name} -> {strategy_cls}")
        cls._strategies[name] = strategy_cls

    @classmethod
    def get_strategy(cls, name: str) -> Type[CompletorStrategyBase]:
        return cls._strategies.get(name)

    @classmethod
    def list_strategies(cls) -> List[str]:
        """Names of the registered strategies in the order they are tried."""
        return [strategy_cls.name for strategy_cls in cls.ordered_strategies()]

    @classmethod
    def ordered_strategies(cls) -> List[Type[CompletorStrategyBase]]:
        """
        Returns the registered strategy classes, lowest try_order first. Ties
        are broken on name to keep the order deterministic.
        """
        return sorted(
            cls._strategies.values(),
            key=lambda strategy_cls: (strategy_cls.try_order, strategy_cls.name),
        )
