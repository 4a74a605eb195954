"""Asian range / killzone strategy.

The Asian range is the high/low of a fixed earlier slice of the series
(``candles[-30:-10]``).  During the London and New York killzones a sweep
of that range followed by a close outside it is traded in the breakout
direction.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fxsignal.strategy.base import clamp_score
from fxsignal.strategy.indicators import average_range, average_volume
from fxsignal.strategy.models import Candle, StrategyResult
from fxsignal.strategy.session_clock import (
    DEFAULT_WINDOWS,
    KILLZONE_SESSIONS,
    SessionWindow,
    Timestamp,
    classify_session,
)
from fxsignal.strategy.thresholds import SessionConfig


STRATEGY_NAME = "KILLZONE"
CRITERIA = ("in_killzone", "valid_asian_range", "range_sweep", "breakout_confirmed", "momentum_volume")


@dataclass(frozen=True)
class AsianRange:
    high: float
    low: float
    valid: bool


def find_asian_range(candles: list[Candle], config: SessionConfig) -> AsianRange:
    """Return the high/low of the Asian slice and whether its size is tradeable.

    Valid when the range is strictly between ``min_range_mult`` and
    ``max_range_mult`` times the slice's average candle range.
    """
    window = candles[config.range_start:config.range_end]
    if not window:
        return AsianRange(high=0.0, low=0.0, valid=False)

    high = max(c.high for c in window)
    low = min(c.low for c in window)
    size = high - low
    avg = average_range(window)
    valid = avg > 0 and avg * config.min_range_mult < size < avg * config.max_range_mult
    return AsianRange(high=high, low=low, valid=valid)


def evaluate_session(
    candles: list[Candle],
    now: Timestamp,
    timezone_offset: float = 0.0,
    config: Optional[SessionConfig] = None,
    windows: tuple[SessionWindow, ...] = DEFAULT_WINDOWS,
) -> StrategyResult:
    """Evaluate the Asian range breakout checklist at time *now*."""
    cfg = config or SessionConfig()
    if len(candles) < cfg.min_candles:
        return StrategyResult.insufficient_data(
            STRATEGY_NAME,
            f"Insufficient data for Asian/Killzone strategy (need {cfg.min_candles}, got {len(candles)})",
        )

    session = classify_session(now, timezone_offset, windows)
    in_killzone = session in KILLZONE_SESSIONS
    asian = find_asian_range(candles, cfg)
    recent = candles[-cfg.recent_window:]
    last = candles[-1]

    swept = any(
        (c.high > asian.high and c.close < asian.high) or (c.low < asian.low and c.close > asian.low)
        for c in recent
    )
    above = last.close > asian.high
    below = last.close < asian.low

    volume_avg = average_volume(recent)
    volume_spike = volume_avg > 0 and any(
        c.volume >= volume_avg * cfg.volume_mult for c in recent[-cfg.volume_window:]
    )

    checks = {
        "in_killzone": in_killzone,
        "valid_asian_range": asian.valid,
        "range_sweep": swept,
        "breakout_confirmed": above or below,
        "momentum_volume": volume_spike,
    }
    passed = frozenset(k for k, ok in checks.items() if ok)
    failed = frozenset(k for k, ok in checks.items() if not ok)
    fraction = len(passed) / len(CRITERIA)

    details = {
        "session": session,
        "asian_high": asian.high,
        "asian_low": asian.low,
        "asian_range_valid": asian.valid,
    }

    def _hold(explanation: str) -> StrategyResult:
        return StrategyResult(
            strategy=STRATEGY_NAME,
            signal="hold",
            confidence=clamp_score(fraction * 100.0),
            criteria_passed=passed,
            criteria_failed=failed,
            explanation=explanation,
            details=details,
        )

    if not in_killzone:
        return _hold(
            f"Outside the London and New York killzones (session: {session}); "
            "waiting for institutional hours."
        )
    if len(passed) < cfg.min_criteria:
        return _hold(
            f"Range respected: {len(passed)}/{len(CRITERIA)} criteria. "
            f"Missing: {', '.join(k for k in CRITERIA if k in failed)}."
        )

    if above and swept:
        signal = "buy"
    elif below and swept:
        signal = "sell"
    else:
        return _hold("In a killzone but the breakout direction is not confirmed by a range sweep")

    details["direction"] = signal
    confidence = min(cfg.max_confidence, cfg.base_confidence + fraction * cfg.criteria_weight)
    side = "above" if signal == "buy" else "below"
    return StrategyResult(
        strategy=STRATEGY_NAME,
        signal=signal,
        confidence=clamp_score(confidence),
        criteria_passed=passed,
        criteria_failed=failed,
        explanation=(
            f"{session.replace('_', ' ').title()} killzone {signal.upper()}: Asian range "
            f"{asian.low:.5f}-{asian.high:.5f} swept and closed {side}. "
            f"{len(passed)}/{len(CRITERIA)} criteria met."
        ),
        details=details,
    )


class SessionBreakoutStrategy:
    """Asian range killzone strategy (implements ``StrategyEvaluator``)."""

    name = STRATEGY_NAME

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        timezone_offset: float = 0.0,
        windows: tuple[SessionWindow, ...] = DEFAULT_WINDOWS,
    ) -> None:
        self.config = config or SessionConfig()
        self.timezone_offset = timezone_offset
        self.windows = windows

    def evaluate(self, candles: list[Candle], pip_value: float, now: datetime) -> StrategyResult:
        return evaluate_session(
            candles,
            now,
            timezone_offset=self.timezone_offset,
            config=self.config,
            windows=self.windows,
        )
