"""Entry, stop-loss and take-profit calculation — pure math, no I/O.

Entry anticipates slightly beyond the last close (0.15 × ATR in the trade
direction).  The stop sits behind the 30-candle extreme with an 8-pip
buffer.  Targets are fixed multiples of the resulting risk:

    TP1 = entry ± 1.5 × risk
    TP2 = entry ± 2.5 × risk

A degenerate setup (zero or non-finite risk) yields a sentinel with
``ratio = 0`` and both targets at entry instead of propagating NaN.
"""

import math
from typing import Optional

from fxsignal.strategy.indicators import atr_or_range
from fxsignal.strategy.models import Candle, RiskReward
from fxsignal.strategy.thresholds import RiskConfig


def _check_direction(direction: str) -> None:
    if direction not in ("buy", "sell"):
        raise ValueError(f"direction must be 'buy' or 'sell', got '{direction}'")


def levels_from_entry(
    entry: float,
    stop_loss: float,
    direction: str,
    pip_value: float,
    config: Optional[RiskConfig] = None,
) -> RiskReward:
    """Derive targets, ratio and pip distances from an entry and a stop.

    Args:
        entry: Trade entry price.
        stop_loss: Stop-loss price.
        direction: ``"buy"`` or ``"sell"``.
        pip_value: Pip size for the instrument (0 reports pip distances as 0).
        config: Target multiples (defaults to 1.5R / 2.5R).

    Returns:
        ``RiskReward`` with prices rounded to 5 decimal places.

    Raises:
        ValueError: If *direction* is not ``"buy"`` or ``"sell"``.
    """
    _check_direction(direction)
    cfg = config or RiskConfig()

    risk = abs(entry - stop_loss)
    if risk == 0 or not math.isfinite(risk):
        return RiskReward(
            entry=round(entry, 5),
            stop_loss=round(stop_loss, 5),
            tp1=round(entry, 5),
            tp2=round(entry, 5),
            ratio=0.0,
            pip_risk=0.0,
            pip_reward=0.0,
        )

    sign = 1.0 if direction == "buy" else -1.0
    tp1 = entry + sign * cfg.tp1_multiple * risk
    tp2 = entry + sign * cfg.tp2_multiple * risk
    reward = abs(tp1 - entry)

    pip_risk = risk / pip_value if pip_value > 0 else 0.0
    pip_reward = reward / pip_value if pip_value > 0 else 0.0

    return RiskReward(
        entry=round(entry, 5),
        stop_loss=round(stop_loss, 5),
        tp1=round(tp1, 5),
        tp2=round(tp2, 5),
        ratio=round(reward / risk, 4),
        pip_risk=round(pip_risk, 1),
        pip_reward=round(pip_reward, 1),
    )


def compute_rr(
    candles: list[Candle],
    direction: str,
    pip_value: float,
    config: Optional[RiskConfig] = None,
) -> RiskReward:
    """Place entry, stop and targets for a *direction* trade on *candles*.

    - **Buy**:  entry = close + 0.15 × ATR, SL = lowest low (30) − 8 pips
    - **Sell**: entry = close − 0.15 × ATR, SL = highest high (30) + 8 pips

    Raises:
        ValueError: If *direction* is invalid or *candles* is empty.
    """
    _check_direction(direction)
    if not candles:
        raise ValueError("Need at least 1 candle to place risk levels")
    cfg = config or RiskConfig()

    recent = candles[-cfg.stop_lookback:]
    atr = atr_or_range(candles, cfg.atr_period)
    close = candles[-1].close
    buffer = cfg.stop_buffer_pips * pip_value

    if direction == "buy":
        entry = close + atr * cfg.entry_atr_offset
        stop_loss = min(c.low for c in recent) - buffer
    else:
        entry = close - atr * cfg.entry_atr_offset
        stop_loss = max(c.high for c in recent) + buffer

    return levels_from_entry(entry, stop_loss, direction, pip_value, cfg)
