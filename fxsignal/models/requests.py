"""Request bodies for the HTTP surface.

Field-level problems (missing keys, non-numeric prices) are rejected by
pydantic before the engine runs; series-level problems (ordering, OHLC
bounds) are left to ``validate_candles``.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CandleIn(BaseModel):
    """One OHLCV bar as posted by the market-data collaborator."""

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class AnalyzeRequest(BaseModel):
    """Body of ``POST /analyze``.

    ``pip_value`` falls back to the instrument's pip size, ``now`` to the
    server clock.
    """

    instrument: Optional[str] = None
    pip_value: Optional[float] = Field(default=None, gt=0)
    now: Optional[datetime] = None
    candles: list[CandleIn]


class ConfluenceRequest(BaseModel):
    """Body of ``POST /confluence``: one candle series per timeframe, e.g. ``M15``, ``H1``, ``H4``."""

    instrument: Optional[str] = None
    pip_value: Optional[float] = Field(default=None, gt=0)
    timeframes: dict[str, list[CandleIn]]
