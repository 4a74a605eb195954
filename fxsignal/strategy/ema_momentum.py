"""EMA momentum strategy — EMA(50/100/200) stack, RSI(14) and volume.

Checklist (5 items): ``ema_crossover``, ``ema_alignment``,
``price_near_ema200``, ``rsi_extreme``, ``high_volume``.
"""

from datetime import datetime
from typing import Optional

from fxsignal.strategy.base import clamp_score
from fxsignal.strategy.indicators import (
    average_volume,
    calculate_atr,
    calculate_ema,
    calculate_rsi,
)
from fxsignal.strategy.models import Candle, StrategyResult
from fxsignal.strategy.thresholds import EMAConfig


STRATEGY_NAME = "EMA"
CRITERIA = ("ema_crossover", "ema_alignment", "price_near_ema200", "rsi_extreme", "high_volume")


def evaluate_ema(candles: list[Candle], config: Optional[EMAConfig] = None) -> StrategyResult:
    """Evaluate the EMA momentum checklist on *candles*.

    Rules:
        - **Buy**: bullish 50/100 cross on the last bar, or bullish
          alignment (50 > 100 > 200) with RSI below 50.
        - **Sell**: bearish cross, or bearish alignment with RSI above 50.
        - **Hold**: fewer than two criteria, or no directional bias.

    Needs at least ``slow`` (200) candles; fewer yields the
    insufficient-data hold.
    """
    cfg = config or EMAConfig()
    if len(candles) < max(cfg.slow, cfg.mid + 1, cfg.fast + 1, cfg.rsi_period + 1, cfg.atr_period + 1):
        return StrategyResult.insufficient_data(
            STRATEGY_NAME,
            f"Insufficient data for EMA strategy (need {cfg.slow}+ candles, got {len(candles)})",
        )

    ema_fast = calculate_ema(candles, cfg.fast)
    ema_mid = calculate_ema(candles, cfg.mid)
    ema_slow = calculate_ema(candles, cfg.slow)
    rsi = calculate_rsi(candles, cfg.rsi_period)[-1]
    atr = calculate_atr(candles, cfg.atr_period)

    fast, mid, slow = ema_fast[-1], ema_mid[-1], ema_slow[-1]
    prev_fast, prev_mid = ema_fast[-2], ema_mid[-2]
    price = candles[-1].close

    bullish_cross = prev_fast <= prev_mid and fast > mid
    bearish_cross = prev_fast >= prev_mid and fast < mid
    bullish_alignment = fast > mid > slow
    bearish_alignment = fast < mid < slow

    volume_avg = average_volume(candles[-cfg.volume_window:])

    checks = {
        "ema_crossover": bullish_cross or bearish_cross,
        "ema_alignment": bullish_alignment or bearish_alignment,
        "price_near_ema200": slow != 0 and abs(price - slow) / abs(slow) * 100.0 < cfg.near_ema200_pct,
        "rsi_extreme": rsi < cfg.rsi_oversold or rsi > cfg.rsi_overbought,
        "high_volume": candles[-1].volume > volume_avg * cfg.volume_mult,
    }
    passed = frozenset(k for k, ok in checks.items() if ok)
    failed = frozenset(k for k, ok in checks.items() if not ok)
    fraction = len(passed) / len(CRITERIA)

    details = {
        "rsi": round(rsi, 2),
        "atr": atr,
        "ema50": fast,
        "ema100": mid,
        "ema200": slow,
    }

    if len(passed) < cfg.min_criteria:
        return StrategyResult(
            strategy=STRATEGY_NAME,
            signal="hold",
            confidence=clamp_score(fraction * 100.0),
            criteria_passed=passed,
            criteria_failed=failed,
            explanation=(
                f"EMA momentum insufficient: {len(passed)}/{len(CRITERIA)} criteria. "
                f"Missing: {', '.join(k for k in CRITERIA if k in failed)}."
            ),
            details=details,
        )

    if bullish_cross or (bullish_alignment and rsi < 50):
        signal = "buy"
    elif bearish_cross or (bearish_alignment and rsi > 50):
        signal = "sell"
    else:
        return StrategyResult(
            strategy=STRATEGY_NAME,
            signal="hold",
            confidence=clamp_score(fraction * 100.0),
            criteria_passed=passed,
            criteria_failed=failed,
            explanation="EMA criteria met but no clear directional bias",
            details=details,
        )

    details["direction"] = signal
    return StrategyResult(
        strategy=STRATEGY_NAME,
        signal=signal,
        confidence=clamp_score(cfg.base_confidence + fraction * cfg.criteria_weight),
        criteria_passed=passed,
        criteria_failed=failed,
        explanation=(
            f"EMA momentum {signal.upper()}: {', '.join(k for k in CRITERIA if k in passed)}. "
            f"RSI {rsi:.1f}."
        ),
        details=details,
    )


class EMAMomentumStrategy:
    """Trend-following EMA stack strategy (implements ``StrategyEvaluator``)."""

    name = STRATEGY_NAME

    def __init__(self, config: Optional[EMAConfig] = None) -> None:
        self.config = config or EMAConfig()

    def evaluate(self, candles: list[Candle], pip_value: float, now: datetime) -> StrategyResult:
        return evaluate_ema(candles, self.config)
