"""Technical indicators over candle series — ATR, EMA, RSI and plain averages.

Pure functions backed by numpy arrays.  Every series-valued indicator
returns a list the same length as its input, padded with ``nan`` where
the indicator is not yet defined.
"""

import numpy as np

from fxsignal.strategy.models import Candle


def _require(candles: list[Candle], needed: int, label: str) -> None:
    if len(candles) < needed:
        raise ValueError(f"Need at least {needed} candles for {label}, got {len(candles)}")


def _closes(candles: list[Candle]) -> np.ndarray:
    return np.fromiter((c.close for c in candles), dtype=float, count=len(candles))


def true_ranges(candles: list[Candle]) -> np.ndarray:
    """True range of every candle after the first.

    ``TR = max(high - low, |high - prev_close|, |low - prev_close|)``
    """
    highs = np.fromiter((c.high for c in candles[1:]), dtype=float)
    lows = np.fromiter((c.low for c in candles[1:]), dtype=float)
    prev_close = _closes(candles)[:-1]
    return np.maximum.reduce([highs - lows, np.abs(highs - prev_close), np.abs(lows - prev_close)])


def calculate_atr(candles: list[Candle], period: int = 14) -> float:
    """Simple average of the last *period* true ranges.

    Raises ``ValueError`` with fewer than ``period + 1`` candles.
    """
    _require(candles, period + 1, f"ATR({period})")
    return float(true_ranges(candles[-(period + 1):]).mean())


def atr_or_range(candles: list[Candle], period: int = 14) -> float:
    """ATR(*period*) when enough candles exist, else the mean candle range.

    Returns 0.0 for an empty series.
    """
    if len(candles) >= period + 1:
        return calculate_atr(candles, period)
    return average_range(candles)


def calculate_ema(candles: list[Candle], period: int) -> list[float]:
    """Exponential moving average of closes, ``k = 2 / (period + 1)``.

    Seeded with the SMA of the first *period* closes at index
    ``period - 1``.  Raises ``ValueError`` with fewer than *period* candles.
    """
    _require(candles, period, f"EMA({period})")
    closes = _closes(candles)
    k = 2.0 / (period + 1)

    ema = np.full(closes.shape, np.nan)
    ema[period - 1] = closes[:period].mean()
    for i in range(period, closes.size):
        ema[i] = closes[i] * k + ema[i - 1] * (1 - k)
    return ema.tolist()


# ── RSI ──────────────────────────────────────────────────────────────────


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        # no movement at all reads as neutral
        return 50.0 if avg_gain == 0 else 100.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)


def calculate_rsi(candles: list[Candle], period: int = 14) -> list[float]:
    """Wilder's RSI of closes.

    The first *period* close-to-close changes seed simple averages of
    gains and losses; each later change updates them as
    ``avg = (avg * (period - 1) + x) / period``.  The first defined value
    sits at index *period*.

    Raises ``ValueError`` with fewer than ``period + 1`` candles.
    """
    _require(candles, period + 1, f"RSI({period})")
    deltas = np.diff(_closes(candles))
    gains = np.clip(deltas, 0.0, None)
    losses = np.clip(-deltas, 0.0, None)

    rsi = np.full(len(candles), np.nan)
    avg_gain = float(gains[:period].mean())
    avg_loss = float(losses[:period].mean())
    rsi[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period, deltas.size):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        rsi[i + 1] = _rsi_value(avg_gain, avg_loss)
    return rsi.tolist()


# ── Rolling averages ─────────────────────────────────────────────────────


def average_volume(candles: list[Candle]) -> float:
    """Mean volume (0.0 when empty)."""
    if not candles:
        return 0.0
    return sum(c.volume for c in candles) / len(candles)


def average_range(candles: list[Candle]) -> float:
    """Mean high-low range (0.0 when empty)."""
    if not candles:
        return 0.0
    return sum(c.high - c.low for c in candles) / len(candles)


def trailing(candles: list[Candle], index: int, window: int = 20) -> list[Candle]:
    """Up to *window* candles strictly before *index*."""
    return candles[max(0, index - window):index]
