"""SMC/ICT strategy — liquidity sweep, break of structure, order block, fair value gap.

Checklist (4 items):
    - ``liquidity_sweep``: a detected sweep with strength >= 70
    - ``break_of_structure``: a detected BOS with strength >= 60
    - ``order_block``: an impulsive high-volume candle in the last 10,
      followed by an opposite-colour candle
    - ``fair_value_gap``: a 3-candle imbalance of at least 30% of the
      local average range

Fewer than two passed criteria → hold.  Direction follows the BOS when it
passed, otherwise the last candle's close vs the prior close.

A market structure shift and a fair value gap retest are reported in
``details`` alongside the checklist; they do not vote.
"""

from datetime import datetime
from typing import Optional

from fxsignal.strategy.base import clamp_score
from fxsignal.strategy.indicators import average_range, average_volume
from fxsignal.strategy.liquidity import LiquiditySweepDetector
from fxsignal.strategy.models import DEFAULT_PIP_VALUE, Candle, PatternResult, StrategyResult
from fxsignal.strategy.structure import BreakOfStructureDetector, MarketStructureShiftDetector
from fxsignal.strategy.thresholds import FVGRetestConfig, SMCConfig


STRATEGY_NAME = "SMC"
CRITERIA = ("liquidity_sweep", "break_of_structure", "order_block", "fair_value_gap")


def has_order_block(candles: list[Candle], avg_volume: float, config: SMCConfig) -> bool:
    """Return True if an impulsive, high-volume candle is followed by a reversal candle.

    Only the last ``order_block_window`` candles are examined; the final
    candle cannot qualify because it has no successor yet.
    """
    window = candles[-config.order_block_window:]
    for candle, nxt in zip(window, window[1:]):
        if candle.range <= 0:
            continue
        impulsive = candle.body / candle.range > config.order_block_body_ratio
        heavy = candle.volume > avg_volume * config.order_block_volume_mult
        reversal = (candle.is_bullish and nxt.is_bearish) or (candle.is_bearish and nxt.is_bullish)
        if impulsive and heavy and reversal:
            return True
    return False


def has_fair_value_gap(candles: list[Candle], config: SMCConfig) -> bool:
    """Return True if any 3-candle run leaves an unfilled gap of meaningful size.

    Bullish gap: ``c3.low - c1.high``; bearish gap: ``c1.low - c3.high``.
    The gap must be positive and at least ``fvg_min_range_fraction`` of
    the window's average range.
    """
    min_gap = average_range(candles) * config.fvg_min_range_fraction
    for c1, c3 in zip(candles, candles[2:]):
        gap = max(c3.low - c1.high, c1.low - c3.high)
        if gap > 0 and gap >= min_gap:
            return True
    return False


# ── FVG retest ───────────────────────────────────────────────────────────


def _retest_confirmed(
    window: list[Candle], start: int, top: float, bottom: float, bullish: bool
) -> Optional[int]:
    """Index (within *window*) of the candle confirming a rejection from the gap."""
    mid = (top + bottom) / 2
    for j in range(start, len(window) - 1):
        candle = window[j]
        if candle.low > top or candle.high < bottom:
            continue
        close = window[j + 1].close
        if (bullish and close > mid) or (not bullish and close < mid):
            return j + 1
    return None


class FVGRetestDetector:
    """Fair value gap retest detector (implements ``PatternDetector``).

    Scans the trailing window oldest-first for a 3-candle gap, then for a
    later candle trading back into the gap whose successor closes on the
    gap's side of its midpoint.  The first confirmed retest is reported
    at the configured fixed strength, with the gap midpoint as level.
    """

    def __init__(self, config: Optional[FVGRetestConfig] = None) -> None:
        self.config = config or FVGRetestConfig()

    def detect(self, candles: list[Candle], pip_value: float = DEFAULT_PIP_VALUE) -> PatternResult:
        cfg = self.config
        if len(candles) < cfg.window:
            return PatternResult.not_found("insufficient data", retest_confirmed=False)

        window = candles[-cfg.window:]
        offset = len(candles) - len(window)
        for i in range(len(window) - 3):
            c1, c3 = window[i], window[i + 2]
            for bullish, top, bottom in (
                (True, c3.low, c1.high),
                (False, c1.low, c3.high),
            ):
                if top <= bottom:
                    continue
                confirm = _retest_confirmed(window, i + 3, top, bottom, bullish)
                if confirm is None:
                    continue
                kind = "bullish" if bullish else "bearish"
                mid = (top + bottom) / 2
                return PatternResult(
                    detected=True,
                    level=mid,
                    kind=kind,
                    strength=cfg.strength,
                    confirmation_count=1,
                    description=f"{kind.capitalize()} FVG {bottom:.5f}-{top:.5f} retested and respected",
                    index=offset + confirm,
                    details={"retest_confirmed": True, "gap_top": top, "gap_bottom": bottom},
                )
        return PatternResult.not_found("no retested fair value gap", retest_confirmed=False)


_DEFAULT_FVG_RETEST = FVGRetestDetector()


def detect_fvg_retest(candles: list[Candle], pip_value: float = DEFAULT_PIP_VALUE) -> PatternResult:
    """Detect a confirmed fair value gap retest with the default thresholds."""
    return _DEFAULT_FVG_RETEST.detect(candles, pip_value)


def evaluate_smc(
    candles: list[Candle],
    pip_value: float = DEFAULT_PIP_VALUE,
    config: Optional[SMCConfig] = None,
    sweep_detector: Optional[LiquiditySweepDetector] = None,
    bos_detector: Optional[BreakOfStructureDetector] = None,
    mss_detector: Optional[MarketStructureShiftDetector] = None,
    fvg_retest_detector: Optional[FVGRetestDetector] = None,
) -> StrategyResult:
    """Evaluate the SMC/ICT checklist on *candles*."""
    cfg = config or SMCConfig()
    if len(candles) < cfg.min_candles:
        return StrategyResult.insufficient_data(
            STRATEGY_NAME,
            f"Insufficient candle data for SMC analysis (need {cfg.min_candles}, got {len(candles)})",
        )

    sweep = (sweep_detector or LiquiditySweepDetector()).detect(candles, pip_value)
    bos = (bos_detector or BreakOfStructureDetector()).detect(candles, pip_value)
    mss = (mss_detector or MarketStructureShiftDetector()).detect(candles, pip_value)
    retest = (fvg_retest_detector or FVGRetestDetector()).detect(candles, pip_value)
    recent = candles[-cfg.window:]

    bos_ok = bos.detected and bos.strength >= cfg.min_bos_strength
    checks = {
        "liquidity_sweep": sweep.detected and sweep.strength >= cfg.min_sweep_strength,
        "break_of_structure": bos_ok,
        "order_block": has_order_block(recent, average_volume(recent), cfg),
        "fair_value_gap": has_fair_value_gap(recent, cfg),
    }
    passed = frozenset(k for k, ok in checks.items() if ok)
    failed = frozenset(k for k, ok in checks.items() if not ok)
    fraction = len(passed) / len(CRITERIA)

    details = {
        "sweep": sweep.description,
        "sweep_strength": round(sweep.strength, 1),
        "bos": bos.description,
        "bos_strength": round(bos.strength, 1),
        "mss": mss.kind if mss.detected else None,
        "mss_strength": round(mss.strength, 1),
        "fvg_retest": retest.kind if retest.detected else None,
        "passed_count": len(passed),
    }

    if len(passed) < cfg.min_criteria:
        return StrategyResult(
            strategy=STRATEGY_NAME,
            signal="hold",
            confidence=clamp_score(fraction * 100.0),
            criteria_passed=passed,
            criteria_failed=failed,
            explanation=(
                f"SMC analysis incomplete: only {len(passed)}/{len(CRITERIA)} criteria met. "
                f"Waiting for {', '.join(k for k in CRITERIA if k in failed)}."
            ),
            details=details,
        )

    if bos_ok:
        signal = "buy" if bos.kind == "bullish" else "sell"
    else:
        signal = "buy" if candles[-1].close > candles[-2].close else "sell"

    confidence = clamp_score(cfg.base_confidence + fraction * cfg.criteria_weight)
    if sweep.detected:
        confidence = clamp_score(confidence + sweep.strength / 100.0 * cfg.pattern_weight)
    if bos.detected:
        confidence = clamp_score(confidence + bos.strength / 100.0 * cfg.pattern_weight)

    details["direction"] = signal
    return StrategyResult(
        strategy=STRATEGY_NAME,
        signal=signal,
        confidence=confidence,
        criteria_passed=passed,
        criteria_failed=failed,
        explanation=(
            f"SMC {signal.upper()}: {', '.join(k for k in CRITERIA if k in passed)} detected. "
            f"{len(passed)}/{len(CRITERIA)} criteria met."
        ),
        details=details,
    )


class SMCStrategy:
    """Institutional order-flow strategy (implements ``StrategyEvaluator``)."""

    name = STRATEGY_NAME

    def __init__(
        self,
        config: Optional[SMCConfig] = None,
        sweep_detector: Optional[LiquiditySweepDetector] = None,
        bos_detector: Optional[BreakOfStructureDetector] = None,
        mss_detector: Optional[MarketStructureShiftDetector] = None,
        fvg_retest_detector: Optional[FVGRetestDetector] = None,
    ) -> None:
        self.config = config or SMCConfig()
        self.sweep_detector = sweep_detector or LiquiditySweepDetector()
        self.bos_detector = bos_detector or BreakOfStructureDetector()
        self.mss_detector = mss_detector or MarketStructureShiftDetector()
        self.fvg_retest_detector = fvg_retest_detector or FVGRetestDetector()

    def evaluate(self, candles: list[Candle], pip_value: float, now: datetime) -> StrategyResult:
        return evaluate_smc(
            candles,
            pip_value,
            config=self.config,
            sweep_detector=self.sweep_detector,
            bos_detector=self.bos_detector,
            mss_detector=self.mss_detector,
            fvg_retest_detector=self.fvg_retest_detector,
        )
