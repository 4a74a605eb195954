"""Candle series validation and input adapters.

The market-data collaborator hands over candles either as plain records
(JSON payloads) or as a ``pandas.DataFrame`` with ``time, open, high, low,
close, volume`` columns.  Both paths end in ``validate_candles`` so a bad
batch fails fast, before any strategy sees it.
"""

from typing import Iterable

import numpy as np
import pandas as pd

from fxsignal.strategy.models import Candle


_COLUMNS = ["time", "open", "high", "low", "close", "volume"]


class MalformedCandlesError(ValueError):
    """Raised when a candle batch violates ordering or OHLC invariants."""


def validate_candles(candles: list[Candle]) -> None:
    """Check that *candles* form a well-formed series.

    Rules:
        - every price and volume is finite, volume is non-negative;
        - ``low <= min(open, close) <= max(open, close) <= high``;
        - timestamps are strictly ascending (sorted, no duplicates).

    An empty series is valid (strategies report it as insufficient data).

    Raises ``MalformedCandlesError`` naming the first offending index.
    """
    if not candles:
        return

    arr = np.array(
        [[c.time, c.open, c.high, c.low, c.close, c.volume] for c in candles],
        dtype=float,
    )
    times, opens, highs, lows, closes, volumes = arr.T

    bad = np.flatnonzero(~np.isfinite(arr).all(axis=1))
    if bad.size:
        raise MalformedCandlesError(f"Candle {bad[0]} has a non-finite value")

    bad = np.flatnonzero(volumes < 0)
    if bad.size:
        raise MalformedCandlesError(
            f"Candle {bad[0]} has negative volume {volumes[bad[0]]}"
        )

    body_low = np.minimum(opens, closes)
    body_high = np.maximum(opens, closes)
    bad = np.flatnonzero((lows > body_low) | (body_high > highs))
    if bad.size:
        i = int(bad[0])
        c = candles[i]
        raise MalformedCandlesError(
            f"Candle {i} violates OHLC bounds "
            f"(open={c.open}, high={c.high}, low={c.low}, close={c.close})"
        )

    bad = np.flatnonzero(np.diff(times) <= 0)
    if bad.size:
        i = int(bad[0]) + 1
        raise MalformedCandlesError(
            f"Candle {i} time {candles[i].time} is not after "
            f"previous time {candles[i - 1].time}"
        )


def candles_from_records(records: Iterable[dict]) -> list[Candle]:
    """Build candles from dicts with ``time/open/high/low/close[/volume]`` keys.

    Missing volume defaults to 0.  Raises ``MalformedCandlesError`` when a
    required key is missing or a value is not numeric.
    """
    candles: list[Candle] = []
    for i, rec in enumerate(records):
        try:
            candles.append(
                Candle(
                    time=int(rec["time"]),
                    open=float(rec["open"]),
                    high=float(rec["high"]),
                    low=float(rec["low"]),
                    close=float(rec["close"]),
                    volume=float(rec.get("volume", 0.0)),
                )
            )
        except KeyError as exc:
            raise MalformedCandlesError(f"Candle {i} is missing field {exc}") from exc
        except (TypeError, ValueError) as exc:
            raise MalformedCandlesError(f"Candle {i} has a non-numeric field: {exc}") from exc
    return candles


def candles_from_dataframe(df: pd.DataFrame) -> list[Candle]:
    """Convert an OHLCV DataFrame into candles.

    A datetime ``time`` column is converted to epoch seconds (UTC).
    Raises ``MalformedCandlesError`` when a required column is absent.
    """
    missing = [c for c in _COLUMNS if c != "volume" and c not in df.columns]
    if missing:
        raise MalformedCandlesError(
            f"DataFrame is missing column(s): {', '.join(missing)}"
        )

    frame = df.copy()
    if "volume" not in frame.columns:
        frame["volume"] = 0.0
    if pd.api.types.is_datetime64_any_dtype(frame["time"]):
        times = pd.to_datetime(frame["time"], utc=True)
        frame["time"] = (times - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(seconds=1)

    return [
        Candle(
            time=int(row.time),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for row in frame[_COLUMNS].itertuples(index=False)
    ]
