"""Shared candle fixtures."""

from datetime import datetime, timezone

import pytest

from fxsignal.strategy.models import Candle


BASE_TIME = 1_709_596_800  # 2024-03-05T00:00:00Z
STEP = 900  # M15

LONDON_OPEN = datetime(2024, 3, 5, 8, 0, tzinfo=timezone.utc)
ASIAN_NIGHT = datetime(2024, 3, 5, 0, 30, tzinfo=timezone.utc)


def build_sell_setup() -> list[Candle]:
    """250 M15 candles ending in a bearish Asian-range breakout.

    Layout:
        0-219    steady decline, 3 pips per bar (descending EMA 50/100/200)
        220-239  flat-close consolidation: the Asian range 1.0990-1.1010,
                 swing highs at 224/231, swing lows at 226/233
        240      sweep of the range high (wick to 1.1016, close 1.0995)
        241      bearish displacement closing at 1.0867 (BOS + FVG + order block)
        242-249  8 bullish 15-pip bars, last close 1.0987 still below the range;
                 242's low equals 241's low so neither is a swing low
    """
    candles: list[Candle] = []

    def add(o, h, l, c, vol=1000.0):
        i = len(candles)
        candles.append(Candle(BASE_TIME + i * STEP, o, h, l, c, vol))

    for i in range(220):
        close = round(1.1000 + 0.0003 * (220 - i), 5)
        open_ = round(close + 0.0003, 5)
        add(open_, round(open_ + 0.0004, 5), round(close - 0.0004, 5), close)

    for i in range(220, 240):
        high = {224: 1.1010, 231: 1.1009}.get(i, 1.1007)
        low = {226: 1.0990, 233: 1.0991}.get(i, 1.0993)
        add(1.1000, high, low, 1.1000)

    add(1.1000, 1.1016, 1.0994, 1.0995, vol=1500.0)
    add(1.0995, 1.0996, 1.0865, 1.0867, vol=2500.0)

    close = 1.0867
    for i in range(242, 250):
        open_ = close
        close = round(open_ + 0.0015, 5)
        low = 1.0865 if i == 242 else round(open_ - 0.0001, 5)
        add(open_, round(close + 0.0001, 5), low, close, vol=3000.0 if i == 249 else 1000.0)

    return candles


def mirror(candles: list[Candle], pivot: float = 2.2) -> list[Candle]:
    """Reflect prices around *pivot / 2* (high and low swap roles)."""
    return [
        Candle(c.time, round(pivot - c.open, 5), round(pivot - c.low, 5),
               round(pivot - c.high, 5), round(pivot - c.close, 5), c.volume)
        for c in candles
    ]


def build_buy_setup() -> list[Candle]:
    """The sell setup reflected around 1.1: an Asian-range breakout to the upside."""
    return mirror(build_sell_setup())


def build_flat(count: int, price: float = 1.1000, vol: float = 1000.0) -> list[Candle]:
    """*count* identical doji candles (no swings, no gains, no losses)."""
    return [
        Candle(BASE_TIME + i * STEP, price, price + 0.0005, price - 0.0005, price, vol)
        for i in range(count)
    ]


@pytest.fixture
def sell_setup() -> list[Candle]:
    return build_sell_setup()


@pytest.fixture
def buy_setup() -> list[Candle]:
    return build_buy_setup()


@pytest.fixture
def london_open() -> datetime:
    return LONDON_OPEN


@pytest.fixture
def asian_night() -> datetime:
    return ASIAN_NIGHT


@pytest.fixture
def flat_candles():
    return build_flat


@pytest.fixture
def mirrored():
    return mirror
