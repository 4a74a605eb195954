"""Multi-timeframe confluence for liquidity sweeps and structure breaks.

Takes one candle series per timeframe (``{"M15": [...], "H1": [...],
"H4": [...]}``), runs the single-timeframe detector on each and keeps
the best result after higher-timeframe and agreement bonuses.
"""

from dataclasses import replace
from typing import Optional

from fxsignal.strategy.base import clamp_score
from fxsignal.strategy.liquidity import LiquiditySweepDetector
from fxsignal.strategy.models import DEFAULT_PIP_VALUE, Candle, PatternResult
from fxsignal.strategy.structure import BreakOfStructureDetector
from fxsignal.strategy.thresholds import TimeframeConfig

CandleMap = dict[str, list[Candle]]


class MultiTimeframeAnalyzer:
    """Runs sweep and BOS detection across timeframes and scores their agreement."""

    def __init__(
        self,
        config: Optional[TimeframeConfig] = None,
        sweep_detector: Optional[LiquiditySweepDetector] = None,
        bos_detector: Optional[BreakOfStructureDetector] = None,
    ) -> None:
        self.config = config or TimeframeConfig()
        self.sweep_detector = sweep_detector or LiquiditySweepDetector()
        self.bos_detector = bos_detector or BreakOfStructureDetector()

    def _per_timeframe(self, candle_map: CandleMap, detector, min_candles: int, pip_value: float):
        results: dict[str, PatternResult] = {}
        for tf in self.config.timeframes:
            candles = candle_map.get(tf)
            if candles is None or len(candles) < min_candles:
                continue
            results[tf] = detector.detect(candles, pip_value)
        return results

    def sweep_confluence(self, tf: str, sweep: PatternResult, per_tf: dict[str, PatternResult]) -> float:
        """Bonus for each other higher timeframe sweeping the same side at about the same level."""
        cfg = self.config
        base = cfg.timeframes[0]
        reference = sweep.level or 1.0
        confirming = 0
        for other_tf, other in per_tf.items():
            if other_tf in (base, tf) or not other.detected or other.kind != sweep.kind:
                continue
            if abs((other.level or 0.0) - (sweep.level or 0.0)) / reference < cfg.level_tolerance:
                confirming += 1
        return confirming * cfg.sweep_confluence_bonus

    def sweep(self, candle_map: CandleMap, pip_value: float = DEFAULT_PIP_VALUE) -> PatternResult:
        """Best liquidity sweep across timeframes.

        Higher timeframes add their ``sweep_bonus``; each other higher
        timeframe sweeping the same level adds ``sweep_confluence_bonus``.  The
        winning timeframe is reported in ``details["timeframe"]``.
        """
        cfg = self.config
        per_tf = self._per_timeframe(candle_map, self.sweep_detector, cfg.sweep_min_candles, pip_value)
        bonuses = dict(cfg.sweep_bonus)

        best = PatternResult.not_found("no sweep on any timeframe", timeframe=None)
        for tf, result in per_tf.items():
            if not result.detected:
                continue
            adjusted = result.strength + bonuses.get(tf, 0.0) + self.sweep_confluence(tf, result, per_tf)
            if adjusted > best.strength:
                best = replace(result, strength=clamp_score(adjusted), details={"timeframe": tf})
        return best

    def bos(self, candle_map: CandleMap, pip_value: float = DEFAULT_PIP_VALUE) -> PatternResult:
        """Best break of structure across timeframes.

        Higher timeframes add their ``bos_bonus``.  ``details`` carries the
        per-timeframe agreement (``confirmations``) and the share of
        timeframes agreeing (``multi_timeframe_strength``); at least
        ``min_bos_confluence`` agreeing timeframes add
        ``bos_confluence_bonus`` each.
        """
        cfg = self.config
        per_tf = self._per_timeframe(candle_map, self.bos_detector, cfg.bos_min_candles, pip_value)
        bonuses = dict(cfg.bos_bonus)

        best: Optional[PatternResult] = None
        best_tf = None
        for tf, result in per_tf.items():
            if not result.detected:
                continue
            adjusted = clamp_score(result.strength + bonuses.get(tf, 0.0))
            if best is None or adjusted > best.strength:
                best, best_tf = replace(result, strength=adjusted), tf
        if best is None:
            return PatternResult.not_found(
                "no break of structure on any timeframe",
                timeframe=None,
                confirmations={tf: False for tf in cfg.timeframes},
                multi_timeframe_strength=0.0,
            )

        confirmations = {
            tf: tf in per_tf and per_tf[tf].detected and per_tf[tf].kind == best.kind
            for tf in cfg.timeframes
        }
        agreeing = sum(confirmations.values())
        strength = best.strength
        if agreeing >= cfg.min_bos_confluence:
            strength = clamp_score(strength + agreeing * cfg.bos_confluence_bonus)
        return replace(
            best,
            strength=strength,
            details={
                "timeframe": best_tf,
                "confirmations": confirmations,
                "multi_timeframe_strength": agreeing / len(cfg.timeframes) * 100.0,
            },
        )


_DEFAULT_ANALYZER = MultiTimeframeAnalyzer()


def detect_sweep_multi_timeframe(
    candle_map: CandleMap, pip_value: float = DEFAULT_PIP_VALUE
) -> PatternResult:
    return _DEFAULT_ANALYZER.sweep(candle_map, pip_value)


def detect_bos_multi_timeframe(
    candle_map: CandleMap, pip_value: float = DEFAULT_PIP_VALUE
) -> PatternResult:
    return _DEFAULT_ANALYZER.bos(candle_map, pip_value)
