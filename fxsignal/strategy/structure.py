"""Break of structure (BOS) detection.

A BOS is a candle that *closes* beyond the most significant recent
opposing swing (a swing high for a bullish break, a swing low for a
bearish one) and is confirmed, either by follow-through candles that keep
closing beyond the level or by the breaking candle's own conviction.
Breaks against the prevailing swing structure earn a counter-trend bonus:
reversals are the most valuable structure events.

A market structure shift (MSS) is read from the swing sequence alone:
mostly higher highs and higher lows, or mostly lower ones.
"""

from typing import Literal, Optional

from fxsignal.strategy.base import clamp_score, ratio_bonus
from fxsignal.strategy.indicators import atr_or_range, average_volume, trailing
from fxsignal.strategy.models import (
    DEFAULT_PIP_VALUE,
    Candle,
    PatternResult,
    SwingPoint,
    TrendStructure,
)
from fxsignal.strategy.swings import classify_trend, find_swings
from fxsignal.strategy.thresholds import BOSConfig, MSSConfig, SwingConfig


_ATR_TIERS = ((1.0, 25.0), (0.5, 15.0), (0.2, 10.0))
_VOLUME_TIERS = ((1.5, 20.0), (1.2, 10.0))


class BreakOfStructureDetector:
    """Canonical BOS detector (implements ``PatternDetector``)."""

    def __init__(
        self,
        config: Optional[BOSConfig] = None,
        swing_config: Optional[SwingConfig] = None,
    ) -> None:
        self.config = config or BOSConfig()
        self.swing_config = swing_config or SwingConfig()

    def detect(self, candles: list[Candle], pip_value: float = DEFAULT_PIP_VALUE) -> PatternResult:
        """Return the stronger of the bullish and bearish break candidates.

        The bullish break wins only when strictly stronger.  Nothing is
        reported as detected below ``min_report_strength``.
        """
        cfg = self.config
        if len(candles) < cfg.min_candles:
            return PatternResult.not_found("insufficient data")

        swings = find_swings(
            candles,
            strength=self.swing_config.strength,
            lookback=self.swing_config.lookback,
        )
        trend = classify_trend(
            swings,
            window=self.swing_config.trend_window,
            threshold_pct=self.swing_config.trend_threshold_pct,
        )
        atr = atr_or_range(candles)

        bullish = self._analyze(candles, swings, trend, atr, pip_value, "bullish")
        bearish = self._analyze(candles, swings, trend, atr, pip_value, "bearish")

        if bullish.strength > bearish.strength and bullish.strength >= cfg.min_report_strength:
            return bullish
        if bearish.strength >= cfg.min_report_strength:
            return bearish

        best = max(bullish.strength, bearish.strength)
        return PatternResult.not_found(
            f"structure intact ({trend.direction} trend, best break strength {best:.0f})",
            strength=best,
        )

    def _analyze(
        self,
        candles: list[Candle],
        swings: list[SwingPoint],
        trend: TrendStructure,
        atr: float,
        pip_value: float,
        direction: Literal["bullish", "bearish"],
    ) -> PatternResult:
        cfg = self.config
        side = "high" if direction == "bullish" else "low"
        candidates = [s for s in swings if s.kind == side][-cfg.candidate_swings:]
        if not candidates:
            return PatternResult.not_found(f"no recent swing {side} to break")

        target = max(candidates, key=lambda s: (s.strength, s.index))
        threshold = cfg.min_break_pips * pip_value
        n = len(candles)

        best = PatternResult.not_found(f"no close beyond swing {side} {target.price:.5f}")
        for idx in range(max(n - cfg.scan_window, target.index + 1), n):
            candle = candles[idx]
            if direction == "bullish":
                distance = candle.close - target.price
            else:
                distance = target.price - candle.close
            if distance <= threshold:
                continue

            confirmations = self._count_confirmations(candles, idx, target.price, direction)
            if confirmations == 0 and not self._self_confirms(candle, direction):
                continue

            strength = self._strength(candles, idx, target, distance, atr, confirmations, trend, direction)
            if strength > best.strength:
                best = PatternResult(
                    detected=True,
                    level=target.price,
                    kind=direction,
                    strength=strength,
                    confirmation_count=confirmations,
                    description=(
                        f"{direction.capitalize()} break of structure at {target.price:.5f} "
                        f"with {confirmations} confirming candle(s) (strength {strength:.0f})"
                    ),
                    index=idx,
                )
        return best

    def _count_confirmations(
        self, candles: list[Candle], idx: int, level: float, direction: str
    ) -> int:
        """Count following candles that keep closing beyond *level*."""
        end = min(len(candles), idx + 1 + self.config.confirmation_lookahead)
        count = 0
        for candle in candles[idx + 1:end]:
            if (direction == "bullish" and candle.close > level) or (
                direction == "bearish" and candle.close < level
            ):
                count += 1
        return count

    def _self_confirms(self, candle: Candle, direction: str) -> bool:
        """A decisive body in the break direction confirms the break on its own."""
        if candle.range <= 0:
            return False
        if direction == "bullish" and not candle.is_bullish:
            return False
        if direction == "bearish" and not candle.is_bearish:
            return False
        return candle.body / candle.range >= self.config.implicit_body_ratio

    def _strength(
        self,
        candles: list[Candle],
        idx: int,
        swing: SwingPoint,
        distance: float,
        atr: float,
        confirmations: int,
        trend: TrendStructure,
        direction: str,
    ) -> float:
        cfg = self.config
        candle = candles[idx]
        strength = 45.0

        strength += ratio_bonus(distance, atr, _ATR_TIERS)
        strength += 10.0 * min(confirmations, cfg.max_confirmations)

        body_ratio = candle.body / candle.range if candle.range > 0 else 0.0
        if body_ratio > 0.7:
            strength += 20.0
        elif body_ratio > 0.5:
            strength += 10.0

        strength += ratio_bonus(candle.volume, average_volume(trailing(candles, idx, 20)), _VOLUME_TIERS)

        if (direction == "bullish" and trend.direction == "bearish") or (
            direction == "bearish" and trend.direction == "bullish"
        ):
            strength += cfg.counter_trend_bonus

        strength += (swing.strength - 50.0) * 0.4
        return clamp_score(strength)


_DEFAULT_DETECTOR = BreakOfStructureDetector()


def detect_bos(candles: list[Candle], pip_value: float = DEFAULT_PIP_VALUE) -> PatternResult:
    """Detect a confirmed break of structure with the default thresholds."""
    return _DEFAULT_DETECTOR.detect(candles, pip_value)


# ── Market structure shift ───────────────────────────────────────────────


class MarketStructureShiftDetector:
    """Swing-sequence structure shift detector (implements ``PatternDetector``).

    Consecutive swing highs and consecutive swing lows each vote bullish
    (higher) or bearish (lower).  A lower swing within ``near_miss_ratio``
    of its predecessor flags a partial break; votes in both directions
    flag a complex pattern.  One-sided sequences earn the clean-pattern
    bonus.  ``details`` always carries ``partial_bos``,
    ``complex_pattern`` and ``swing_count``.
    """

    def __init__(self, config: Optional[MSSConfig] = None) -> None:
        self.config = config or MSSConfig()

    def detect(self, candles: list[Candle], pip_value: float = DEFAULT_PIP_VALUE) -> PatternResult:
        cfg = self.config
        flags = {"partial_bos": False, "complex_pattern": False, "swing_count": 0}
        if len(candles) < cfg.min_candles:
            return PatternResult.not_found("insufficient data", **flags)

        swings = find_swings(candles, strength=cfg.swing_strength, lookback=cfg.lookback)
        swings = swings[-cfg.recent_swings:]
        flags["swing_count"] = len(swings)
        if len(swings) < cfg.min_swings:
            return PatternResult.not_found(f"only {len(swings)} recent swing(s)", **flags)

        bullish = bearish = 0
        for side in ("high", "low"):
            prices = [s.price for s in swings if s.kind == side][-cfg.swings_per_side:]
            if len(prices) < cfg.min_side_swings:
                continue
            for prev, curr in zip(prices, prices[1:]):
                if curr > prev:
                    bullish += 1
                elif curr > prev * cfg.near_miss_ratio:
                    flags["partial_bos"] = True
                if curr < prev:
                    bearish += 1
        flags["complex_pattern"] = bullish > 0 and bearish > 0

        total = bullish + bearish
        if total == 0:
            return PatternResult.not_found("no directional swing sequence", **flags)

        bullish_pct = bullish / total * 100.0
        if bullish_pct >= cfg.threshold_pct:
            kind, strength, votes = "bullish", bullish_pct, bullish
        elif bullish_pct <= 100.0 - cfg.threshold_pct:
            kind, strength, votes = "bearish", 100.0 - bullish_pct, bearish
        else:
            return PatternResult.not_found(
                f"mixed swing sequence ({bullish_pct:.0f}% bullish)", **flags
            )

        if not flags["complex_pattern"]:
            strength += cfg.clean_pattern_bonus
        strength = clamp_score(strength)
        if strength < cfg.min_report_strength:
            return PatternResult.not_found(
                f"{kind} shift too weak ({strength:.0f})", strength=strength, **flags
            )

        anchor = [s for s in swings if s.kind == ("high" if kind == "bullish" else "low")][-1]
        return PatternResult(
            detected=True,
            level=anchor.price,
            kind=kind,
            strength=strength,
            confirmation_count=votes,
            description=(
                f"{kind.capitalize()} market structure shift: {votes}/{total} swing votes "
                f"(strength {strength:.0f})"
            ),
            index=anchor.index,
            details=flags,
        )


_DEFAULT_MSS_DETECTOR = MarketStructureShiftDetector()


def detect_mss(candles: list[Candle], pip_value: float = DEFAULT_PIP_VALUE) -> PatternResult:
    """Detect a market structure shift with the default thresholds."""
    return _DEFAULT_MSS_DETECTOR.detect(candles, pip_value)
