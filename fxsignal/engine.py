"""fxsignal — Signal engine (orchestration).

Validates a candle batch, samples the clock once, runs every strategy
evaluator, merges their verdicts and, only for a directional result,
attaches entry / stop / target levels and a grade.
"""

import asyncio
import logging
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from fxsignal.config import Config
from fxsignal.risk.grading import grade
from fxsignal.risk.risk_reward import compute_rr
from fxsignal.strategy.base import StrategyEvaluator
from fxsignal.strategy.confluence import CandleMap, MultiTimeframeAnalyzer
from fxsignal.strategy.consensus import merge
from fxsignal.strategy.liquidity import LiquiditySweepDetector
from fxsignal.strategy.models import Candle, MergedSignal, PatternResult, StrategyResult
from fxsignal.strategy.registry import get_strategy
from fxsignal.strategy.series import validate_candles
from fxsignal.strategy.session_clock import Timestamp, classify_session, to_utc
from fxsignal.strategy.smc import FVGRetestDetector
from fxsignal.strategy.structure import BreakOfStructureDetector, MarketStructureShiftDetector
from fxsignal.strategy.thresholds import EngineThresholds

logger = logging.getLogger("fxsignal.engine")


def _check_pip_value(pip_value: float) -> None:
    if not math.isfinite(pip_value) or pip_value <= 0:
        raise ValueError(f"pip_value must be a positive number, got {pip_value}")


class SignalEngine:
    """Runs the strategy evaluators over one candle batch per call.

    Args:
        thresholds: Detector / strategy / risk thresholds.  Defaults to
            ``EngineThresholds()``.
        timezone_offset: Hours east of UTC for the session windows.
        strategies: Evaluators to run.  Defaults to SMC, EMA and KILLZONE
            built from *thresholds*.
    """

    def __init__(
        self,
        thresholds: Optional[EngineThresholds] = None,
        timezone_offset: float = 0.0,
        strategies: Optional[list[StrategyEvaluator]] = None,
    ) -> None:
        self._thresholds = thresholds or EngineThresholds()
        self._timezone_offset = timezone_offset
        self._strategies = strategies if strategies is not None else self._default_strategies()
        t = self._thresholds
        self._timeframe_analyzer = MultiTimeframeAnalyzer(
            t.timeframes,
            sweep_detector=LiquiditySweepDetector(t.sweep, t.swing),
            bos_detector=BreakOfStructureDetector(t.bos, t.swing),
        )

    @classmethod
    def from_config(cls, config: Config) -> "SignalEngine":
        """Build an engine from application configuration."""
        return cls(
            thresholds=config.thresholds(),
            timezone_offset=config.session_utc_offset_hours,
        )

    def _default_strategies(self) -> list[StrategyEvaluator]:
        t = self._thresholds
        return [
            get_strategy(
                "SMC",
                config=t.smc,
                sweep_detector=LiquiditySweepDetector(t.sweep, t.swing),
                bos_detector=BreakOfStructureDetector(t.bos, t.swing),
                mss_detector=MarketStructureShiftDetector(t.mss),
                fvg_retest_detector=FVGRetestDetector(t.fvg_retest),
            ),
            get_strategy("EMA", config=t.ema),
            get_strategy("KILLZONE", config=t.session, timezone_offset=self._timezone_offset),
        ]

    @property
    def strategies(self) -> list[StrategyEvaluator]:
        return list(self._strategies)

    # ── Analysis ─────────────────────────────────────────────────────────

    def analyze(
        self,
        candles: list[Candle],
        pip_value: float,
        now: Optional[Timestamp] = None,
    ) -> MergedSignal:
        """Evaluate every strategy sequentially and return the merged signal.

        Args:
            candles: Oldest-first OHLCV series for one instrument.
            pip_value: Pip size for the instrument.
            now: Evaluation time.  Defaults to ``datetime.now(UTC)``;
                 sampled once and shared by every evaluator.

        Raises:
            MalformedCandlesError: If *candles* is not a valid series.
            ValueError: If *pip_value* is not a positive finite number.
        """
        _check_pip_value(pip_value)
        validate_candles(candles)
        utc_now = self._sample_clock(now)
        results = [s.evaluate(candles, pip_value, utc_now) for s in self._strategies]
        return self._finalize(candles, pip_value, utc_now, results)

    async def analyze_async(
        self,
        candles: list[Candle],
        pip_value: float,
        now: Optional[Timestamp] = None,
    ) -> MergedSignal:
        """Like ``analyze`` but runs the evaluators concurrently in worker threads."""
        _check_pip_value(pip_value)
        validate_candles(candles)
        utc_now = self._sample_clock(now)
        results = await asyncio.gather(
            *(asyncio.to_thread(s.evaluate, candles, pip_value, utc_now) for s in self._strategies)
        )
        return self._finalize(candles, pip_value, utc_now, list(results))

    def confluence(self, candle_map: CandleMap, pip_value: float) -> dict[str, PatternResult]:
        """Multi-timeframe sweep and BOS confluence over ``{timeframe: candles}``.

        Raises:
            MalformedCandlesError: If any series is not valid.
            ValueError: If *pip_value* is not a positive finite number.
        """
        _check_pip_value(pip_value)
        for candles in candle_map.values():
            validate_candles(candles)
        return {
            "sweep": self._timeframe_analyzer.sweep(candle_map, pip_value),
            "bos": self._timeframe_analyzer.bos(candle_map, pip_value),
        }

    # ── Internals ────────────────────────────────────────────────────────

    @staticmethod
    def _sample_clock(now: Optional[Timestamp]) -> datetime:
        if now is None:
            return datetime.now(timezone.utc)
        return to_utc(now)

    def _finalize(
        self,
        candles: list[Candle],
        pip_value: float,
        utc_now: datetime,
        results: list[StrategyResult],
    ) -> MergedSignal:
        for r in results:
            logger.debug(
                "%s → %s (%.1f%%) passed=%s failed=%s",
                r.strategy, r.signal, r.confidence,
                sorted(r.criteria_passed), sorted(r.criteria_failed),
            )

        session = classify_session(utc_now, self._timezone_offset)
        is_killzone = any(
            r.strategy == "KILLZONE" and "in_killzone" in r.criteria_passed for r in results
        )
        merged = merge(
            results,
            self._thresholds.consensus,
            is_killzone=is_killzone,
            session=session,
        )

        if merged.signal == "hold":
            logger.info(
                "SIGNAL_REJECTED hold (%.1f%%) — failed: %s",
                merged.confidence, ", ".join(sorted(merged.criteria_failed)) or "none",
            )
            return merged

        rr = compute_rr(candles, merged.signal, pip_value, self._thresholds.risk)
        signal = replace(
            merged,
            grade=grade(merged.confidence, rr.ratio),
            entry=rr.entry,
            stop_loss=rr.stop_loss,
            tp1=rr.tp1,
            tp2=rr.tp2,
            ratio=rr.ratio,
        )
        logger.info(
            "SIGNAL_GENERATED %s via %s — confidence %.1f%%, grade %s, R:R %.2f, "
            "entry %.5f SL %.5f TP1 %.5f | passed: %s | failed: %s",
            signal.signal.upper(), signal.strategy, signal.confidence, signal.grade,
            rr.ratio, rr.entry, rr.stop_loss, rr.tp1,
            ", ".join(sorted(signal.criteria_passed)) or "none",
            ", ".join(sorted(signal.criteria_failed)) or "none",
        )
        return signal


def analyze(
    candles: list[Candle],
    pip_value: float,
    now: Optional[Timestamp] = None,
    config: Optional[Config] = None,
) -> MergedSignal:
    """Analyze *candles* with a one-off engine (defaults when *config* is None)."""
    engine = SignalEngine.from_config(config) if config else SignalEngine()
    return engine.analyze(candles, pip_value, now)
