"""Liquidity sweep detection — stop-hunt-and-reverse through a prior swing.

A sweep is a candle that trades beyond a recent swing high (or low) by
more than the instrument-scaled threshold and is rejected: the candle
itself, or the one after it, closes back on the near side of the
level.  Price that breaks the level and *holds* is not a sweep.
"""

from typing import Optional

from fxsignal.strategy.base import clamp_score, ratio_bonus
from fxsignal.strategy.indicators import atr_or_range, average_volume, trailing
from fxsignal.strategy.models import DEFAULT_PIP_VALUE, Candle, PatternResult, SwingPoint
from fxsignal.strategy.swings import find_swings
from fxsignal.strategy.thresholds import SweepConfig, SwingConfig


_ATR_TIERS = ((0.5, 25.0), (0.3, 15.0), (0.1, 8.0))
_VOLUME_TIERS = ((1.5, 15.0), (1.2, 8.0))


def _rejection_wick(candle: Candle, side: str) -> float:
    if side == "high":
        return candle.high - max(candle.open, candle.close)
    return min(candle.open, candle.close) - candle.low


def _is_rejected(candles: list[Candle], idx: int, level: float, side: str) -> bool:
    """True if the sweeping candle, or the next one, closes back across *level*."""
    closes = [candles[idx].close]
    if idx + 1 < len(candles):
        closes.append(candles[idx + 1].close)
    if side == "high":
        return any(c < level for c in closes)
    return any(c > level for c in closes)


class LiquiditySweepDetector:
    """Canonical liquidity sweep detector (implements ``PatternDetector``)."""

    def __init__(
        self,
        config: Optional[SweepConfig] = None,
        swing_config: Optional[SwingConfig] = None,
    ) -> None:
        self.config = config or SweepConfig()
        self.swing_config = swing_config or SwingConfig()

    def detect(self, candles: list[Candle], pip_value: float = DEFAULT_PIP_VALUE) -> PatternResult:
        """Return the strongest recent sweep of a swing high or low.

        Ties on strength go to the most recent sweeping candle.  Candidates
        below ``min_report_strength`` come back with ``detected=False``.
        """
        cfg = self.config
        if len(candles) < cfg.min_candles:
            return PatternResult.not_found("insufficient data")

        swings = find_swings(
            candles,
            strength=self.swing_config.strength,
            lookback=self.swing_config.lookback,
        )
        highs = [s for s in swings if s.kind == "high"][-cfg.levels_per_side:]
        lows = [s for s in swings if s.kind == "low"][-cfg.levels_per_side:]

        atr = atr_or_range(candles)
        threshold = cfg.min_sweep_pips * pip_value

        best: Optional[PatternResult] = None
        for swing in highs + lows:
            candidate = self._best_at_level(candles, swing, atr, threshold)
            if candidate is None:
                continue
            if best is None or (candidate.strength, candidate.index) > (best.strength, best.index):
                best = candidate

        if best is None:
            return PatternResult.not_found("no liquidity sweep of recent swings")
        if best.strength < cfg.min_report_strength:
            return PatternResult.not_found(
                f"sweep of {best.kind} {best.level:.5f} too weak "
                f"({best.strength:.0f} < {cfg.min_report_strength:.0f})",
                strength=best.strength,
            )
        return best

    def _best_at_level(
        self,
        candles: list[Candle],
        swing: SwingPoint,
        atr: float,
        threshold: float,
    ) -> Optional[PatternResult]:
        cfg = self.config
        n = len(candles)
        side = swing.kind
        level = swing.price

        best: Optional[PatternResult] = None
        for idx in range(max(n - cfg.scan_window, swing.index + 1), n):
            candle = candles[idx]
            if side == "high":
                excess = candle.high - level
            else:
                excess = level - candle.low
            if excess <= threshold or not _is_rejected(candles, idx, level, side):
                continue

            confirmations = self._count_confirmations(candles, idx, level, side)
            strength = self._strength(candles, idx, swing, excess, atr, confirmations)
            if best is None or strength >= best.strength:
                best = PatternResult(
                    detected=True,
                    level=level,
                    kind=side,
                    strength=strength,
                    confirmation_count=confirmations,
                    description=(
                        f"Liquidity sweep of swing {side} {level:.5f} with "
                        f"{confirmations} confirming candle(s) (strength {strength:.0f})"
                    ),
                    index=idx,
                )
        return best

    def _count_confirmations(self, candles: list[Candle], idx: int, level: float, side: str) -> int:
        """Count following candles that close on the rejected side of *level*."""
        end = min(len(candles), idx + 1 + self.config.confirmation_lookahead)
        count = 0
        for candle in candles[idx + 1:end]:
            if (side == "high" and candle.close < level) or (side == "low" and candle.close > level):
                count += 1
        return count

    def _strength(
        self,
        candles: list[Candle],
        idx: int,
        swing: SwingPoint,
        excess: float,
        atr: float,
        confirmations: int,
    ) -> float:
        """Score a sweep 0–100 from excursion, rejection wick, volume and follow-through."""
        candle = candles[idx]
        strength = 40.0

        # Excursion beyond the level relative to volatility
        strength += ratio_bonus(excess, atr, _ATR_TIERS)

        # Rejection wick vs body
        wick = _rejection_wick(candle, swing.kind)
        body = candle.body
        if wick > 0 and wick > 2 * body:
            strength += 20.0
        elif wick > 0 and wick > body:
            strength += 10.0

        strength += ratio_bonus(candle.volume, average_volume(trailing(candles, idx, 20)), _VOLUME_TIERS)
        strength += 5.0 * min(confirmations, self.config.max_confirmations)
        strength += (swing.strength - 50.0) * 0.3

        return clamp_score(strength)


_DEFAULT_DETECTOR = LiquiditySweepDetector()


def detect_sweep(candles: list[Candle], pip_value: float = DEFAULT_PIP_VALUE) -> PatternResult:
    """Detect the strongest liquidity sweep with the default thresholds."""
    return _DEFAULT_DETECTOR.detect(candles, pip_value)
