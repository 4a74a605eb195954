"""Swing point detection and swing-based trend structure — pure functions."""

from typing import Optional

from fxsignal.strategy.base import clamp_score, ratio_bonus
from fxsignal.strategy.indicators import average_range, average_volume, trailing
from fxsignal.strategy.models import Candle, SwingPoint, TrendStructure


_VOLUME_TIERS = ((1.5, 20.0), (1.2, 10.0))
_RANGE_TIERS = ((1.5, 15.0), (1.2, 8.0))


def _is_swing_high(candles: list[Candle], i: int, strength: int) -> bool:
    high = candles[i].high
    for j in range(1, strength + 1):
        if candles[i - j].high >= high or candles[i + j].high >= high:
            return False
    return True


def _is_swing_low(candles: list[Candle], i: int, strength: int) -> bool:
    low = candles[i].low
    for j in range(1, strength + 1):
        if candles[i - j].low <= low or candles[i + j].low <= low:
            return False
    return True


def swing_strength(candles: list[Candle], index: int) -> float:
    """Score a swing candle 0–100.

    Base 50, plus:
        - volume vs the trailing 20-candle average (+20 above 1.5×, +10 above 1.2×);
        - range vs the trailing 20-candle average range (+15 above 1.5×, +8 above 1.2×);
        - +10 when the swing is neither fresh nor ancient (20 < age < 100).
    """
    candle = candles[index]
    history = trailing(candles, index, 20)

    strength = 50.0
    strength += ratio_bonus(candle.volume, average_volume(history), _VOLUME_TIERS)
    strength += ratio_bonus(candle.high - candle.low, average_range(history), _RANGE_TIERS)

    age = len(candles) - index
    if 20 < age < 100:
        strength += 10.0

    return clamp_score(strength)


def find_swings(
    candles: list[Candle],
    strength: int = 3,
    lookback: Optional[int] = None,
) -> list[SwingPoint]:
    """Identify swing highs and lows.

    A swing high is a candle whose high is strictly higher than the highs
    of the *strength* candles on each side; a swing low is strictly lower
    than the lows on each side.  When *lookback* is given only the
    trailing *lookback* candles are scanned (indices remain absolute).

    Returns swings ordered by index; a high is listed before a low at the
    same index.  A series shorter than ``2 * strength + 1`` yields ``[]``.

    Raises ``ValueError`` if *strength* < 1.
    """
    if strength < 1:
        raise ValueError(f"strength must be >= 1, got {strength}")

    n = len(candles)
    start = 0 if lookback is None else max(0, n - lookback)

    swings: list[SwingPoint] = []
    for i in range(start + strength, n - strength):
        if _is_swing_high(candles, i, strength):
            swings.append(
                SwingPoint(index=i, price=candles[i].high, kind="high",
                           strength=swing_strength(candles, i))
            )
        if _is_swing_low(candles, i, strength):
            swings.append(
                SwingPoint(index=i, price=candles[i].low, kind="low",
                           strength=swing_strength(candles, i))
            )
    return swings


def classify_trend(
    swings: list[SwingPoint],
    window: int = 6,
    threshold_pct: float = 70.0,
) -> TrendStructure:
    """Classify market structure from the last *window* swings.

    Each consecutive pair among the last three highs and the last three
    lows votes bullish (higher high / higher low) or bearish (lower or
    equal).  At least *threshold_pct* bullish votes → ``"bullish"``; at
    most ``100 - threshold_pct`` → ``"bearish"``; otherwise ``"sideways"``.
    """
    if len(swings) < 4:
        return TrendStructure(direction="sideways", strength=0.0)

    recent = swings[-window:]
    highs = [s for s in recent if s.kind == "high"][-3:]
    lows = [s for s in recent if s.kind == "low"][-3:]

    bullish = 0
    bearish = 0
    for series in (highs, lows):
        for prev, curr in zip(series, series[1:]):
            if curr.price > prev.price:
                bullish += 1
            else:
                bearish += 1

    total = bullish + bearish
    if total == 0:
        return TrendStructure(direction="sideways", strength=0.0)

    bullish_pct = bullish / total * 100.0
    if bullish_pct >= threshold_pct:
        return TrendStructure(direction="bullish", strength=bullish_pct)
    if bullish_pct <= 100.0 - threshold_pct:
        return TrendStructure(direction="bearish", strength=100.0 - bullish_pct)
    return TrendStructure(direction="sideways", strength=50.0)
