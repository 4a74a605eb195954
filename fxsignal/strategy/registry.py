"""Strategy registry — maps strategy names to evaluator classes.

Used by SignalEngine to build its default evaluator set.
"""

from fxsignal.strategy.base import StrategyEvaluator
from fxsignal.strategy.ema_momentum import EMAMomentumStrategy
from fxsignal.strategy.session_breakout import SessionBreakoutStrategy
from fxsignal.strategy.smc import SMCStrategy


STRATEGY_REGISTRY: dict[str, type] = {
    "SMC": SMCStrategy,
    "EMA": EMAMomentumStrategy,
    "KILLZONE": SessionBreakoutStrategy,
}


def get_strategy(name: str, **kwargs) -> StrategyEvaluator:
    """Look up and instantiate a strategy by registry key.

    Keyword arguments are passed to the strategy constructor.
    Raises ``KeyError`` if the strategy name is not registered.
    """
    if name not in STRATEGY_REGISTRY:
        raise KeyError(
            f"Unknown strategy '{name}'. "
            f"Available: {', '.join(STRATEGY_REGISTRY.keys())}"
        )
    return STRATEGY_REGISTRY[name](**kwargs)
