"""Detector and evaluator protocols plus shared scoring helpers.

Defines the interfaces every pattern detector and strategy evaluator
must implement, so the engine never needs to know which concrete
implementation (or threshold set) produced a result.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Protocol, runtime_checkable

from fxsignal.strategy.models import Candle, PatternResult, StrategyResult


def clamp_score(value: float) -> float:
    """Clamp a strength / confidence score to ``[0, 100]``.

    Non-finite input collapses to 0.
    """
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(100.0, value))


def ratio_bonus(value: float, reference: float, tiers: tuple[tuple[float, float], ...]) -> float:
    """Return the bonus of the first tier whose multiple ``value / reference`` exceeds.

    *tiers* is ordered from the largest multiple down, e.g.
    ``((1.5, 20.0), (1.2, 10.0))``.  A non-positive *reference* earns nothing.
    """
    if reference <= 0:
        return 0.0
    for multiple, bonus in tiers:
        if value > reference * multiple:
            return bonus
    return 0.0


@runtime_checkable
class PatternDetector(Protocol):
    """Interface for price-pattern detectors (sweeps, structure breaks)."""

    def detect(self, candles: list[Candle], pip_value: float) -> PatternResult:
        """Scan *candles* and return the strongest pattern found."""
        ...


@runtime_checkable
class StrategyEvaluator(Protocol):
    """Interface that all strategy evaluators must satisfy."""

    name: str

    def evaluate(
        self,
        candles: list[Candle],
        pip_value: float,
        now: datetime,
    ) -> StrategyResult:
        """Evaluate market conditions and return a verdict (never raises on thin data)."""
        ...
