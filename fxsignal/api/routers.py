"""Internal API routers — /analyze, /confluence and /session endpoints.

No business logic. Delegates to the signal engine and the session clock.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from fxsignal.config import Config
from fxsignal.engine import SignalEngine
from fxsignal.models.requests import AnalyzeRequest, ConfluenceRequest
from fxsignal.strategy.models import DEFAULT_PIP_VALUE, INSTRUMENT_PIP_VALUES
from fxsignal.strategy.series import MalformedCandlesError, candles_from_records
from fxsignal.strategy.session_clock import session_status

logger = logging.getLogger("fxsignal")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_engine: Optional[SignalEngine] = None  # Set via configure_routers()
_config: Optional[Config] = None  # Set via configure_routers()


def configure_routers(engine: Optional[SignalEngine] = None, config: Optional[Config] = None) -> None:
    """Inject dependencies from the application startup.

    Args:
        engine: The ``SignalEngine`` used by ``/analyze``.  Built from
            *config* (or defaults) when omitted.
        config: Application configuration.
    """
    global _engine, _config  # noqa: PLW0603
    _config = config
    if engine is not None:
        _engine = engine
    else:
        _engine = SignalEngine.from_config(config) if config else SignalEngine()


def _get_engine() -> SignalEngine:
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = SignalEngine()
    return _engine


def _default_instrument() -> str:
    return _config.instrument if _config else "EUR_USD"


def _timezone_offset() -> float:
    return _config.session_utc_offset_hours if _config else 0.0


# ── Endpoints ────────────────────────────────────────────────────────────


@router.post("/analyze")
async def analyze(body: AnalyzeRequest):
    """Run every strategy over the posted candles and return the merged signal.

    Malformed series (unsorted timestamps, OHLC violations, negative
    volume) are rejected with 422.
    """
    instrument = body.instrument or _default_instrument()
    pip_value = body.pip_value or INSTRUMENT_PIP_VALUES.get(instrument, DEFAULT_PIP_VALUE)

    try:
        candles = candles_from_records(c.model_dump() for c in body.candles)
        engine = _get_engine()
        if _config and _config.evaluate_concurrently:
            signal = await engine.analyze_async(candles, pip_value, body.now)
        else:
            signal = engine.analyze(candles, pip_value, body.now)
    except MalformedCandlesError as exc:
        logger.warning("Rejected %s candle batch: %s", instrument, exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return {"instrument": instrument, "pip_value": pip_value, **signal.to_dict()}


@router.post("/confluence")
async def confluence(body: ConfluenceRequest):
    """Score sweep and break-of-structure agreement across the posted timeframes."""
    instrument = body.instrument or _default_instrument()
    pip_value = body.pip_value or INSTRUMENT_PIP_VALUES.get(instrument, DEFAULT_PIP_VALUE)

    try:
        candle_map = {
            tf: candles_from_records(c.model_dump() for c in series)
            for tf, series in body.timeframes.items()
        }
        results = _get_engine().confluence(candle_map, pip_value)
    except MalformedCandlesError as exc:
        logger.warning("Rejected %s timeframe batch: %s", instrument, exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return {
        "instrument": instrument,
        "pip_value": pip_value,
        **{name: result.to_dict() for name, result in results.items()},
    }


@router.get("/session")
async def get_session(now: Optional[datetime] = Query(default=None)):
    """Return the current trading session, killzone flag and next session."""
    ts = now or datetime.now(timezone.utc)
    status = session_status(ts, _timezone_offset())
    return {
        "session": status.current,
        "is_killzone": status.in_killzone,
        "next_session": status.next_session,
        "minutes_until_next": status.minutes_until_next,
        "local_time": status.local_time.isoformat(),
        "timezone_offset": _timezone_offset(),
    }
