"""Detector and strategy thresholds.

Every tunable constant of the signal engine lives here as a named field
with its default.  Pip-denominated thresholds are multiplied by the
instrument's pip value at evaluation time, so the same config is tighter
for FX pairs and wider for metals.
"""

from dataclasses import dataclass, field
from typing import Literal


@dataclass(frozen=True)
class SwingConfig:
    """Swing point detection."""

    strength: int = 3  # candles required on each side
    lookback: int = 100  # trailing candles scanned for swings
    trend_window: int = 6  # swings used for trend classification
    trend_threshold_pct: float = 70.0  # same-direction votes to call a trend


@dataclass(frozen=True)
class SweepConfig:
    """Liquidity sweep detection."""

    min_candles: int = 30
    levels_per_side: int = 5  # most recent swing highs / lows examined
    scan_window: int = 20  # trailing candles searched for the sweep
    min_sweep_pips: float = 0.8  # minimum excursion beyond the level
    confirmation_lookahead: int = 5
    max_confirmations: int = 3
    min_report_strength: float = 55.0


@dataclass(frozen=True)
class BOSConfig:
    """Break-of-structure detection."""

    min_candles: int = 40
    candidate_swings: int = 3  # most recent opposing swings considered
    scan_window: int = 15
    min_break_pips: float = 1.5  # minimum close beyond the level
    confirmation_lookahead: int = 5
    max_confirmations: int = 3
    implicit_body_ratio: float = 0.6  # breaking candle body/range that self-confirms
    counter_trend_bonus: float = 15.0
    min_report_strength: float = 60.0


@dataclass(frozen=True)
class MSSConfig:
    """Market structure shift detection from the swing sequence."""

    min_candles: int = 50
    swing_strength: int = 4
    lookback: int = 50
    recent_swings: int = 8
    min_swings: int = 6
    swings_per_side: int = 4
    min_side_swings: int = 3  # a side votes only with this many swings
    near_miss_ratio: float = 0.9995  # lower swing within this fraction = partial break
    threshold_pct: float = 70.0
    clean_pattern_bonus: float = 15.0
    min_report_strength: float = 60.0


@dataclass(frozen=True)
class FVGRetestConfig:
    """Fair value gap retest detection."""

    window: int = 20
    strength: float = 75.0


@dataclass(frozen=True)
class TimeframeConfig:
    """Multi-timeframe sweep / BOS confluence."""

    timeframes: tuple[str, ...] = ("M15", "H1", "H4")  # base timeframe first
    sweep_min_candles: int = 20
    bos_min_candles: int = 30
    sweep_bonus: tuple[tuple[str, float], ...] = (("H1", 10.0), ("H4", 20.0))
    bos_bonus: tuple[tuple[str, float], ...] = (("H1", 15.0), ("H4", 25.0))
    sweep_confluence_bonus: float = 15.0  # per higher timeframe sweeping the same level
    level_tolerance: float = 0.001  # relative distance for "same level"
    bos_confluence_bonus: float = 10.0  # per agreeing timeframe
    min_bos_confluence: int = 2


@dataclass(frozen=True)
class SMCConfig:
    """SMC/ICT strategy checklist thresholds."""

    min_candles: int = 30
    window: int = 20
    min_sweep_strength: float = 70.0
    min_bos_strength: float = 60.0
    order_block_window: int = 10
    order_block_body_ratio: float = 0.6
    order_block_volume_mult: float = 1.3
    fvg_min_range_fraction: float = 0.3
    min_criteria: int = 2
    base_confidence: float = 50.0
    criteria_weight: float = 30.0
    pattern_weight: float = 15.0  # max boost from each of sweep / BOS strength


@dataclass(frozen=True)
class EMAConfig:
    """EMA momentum strategy thresholds."""

    fast: int = 50
    mid: int = 100
    slow: int = 200
    rsi_period: int = 14
    atr_period: int = 14
    near_ema200_pct: float = 1.0
    rsi_oversold: float = 35.0
    rsi_overbought: float = 65.0
    volume_window: int = 20
    volume_mult: float = 1.2
    min_criteria: int = 2
    base_confidence: float = 45.0
    criteria_weight: float = 50.0


@dataclass(frozen=True)
class SessionConfig:
    """Asian range / killzone strategy thresholds."""

    min_candles: int = 50
    range_start: int = -30  # Asian range slice, relative to the series end
    range_end: int = -10
    min_range_mult: float = 0.5
    max_range_mult: float = 5.0
    recent_window: int = 10
    volume_window: int = 3
    volume_mult: float = 1.3
    min_criteria: int = 3
    base_confidence: float = 50.0
    criteria_weight: float = 45.0
    max_confidence: float = 95.0


@dataclass(frozen=True)
class RiskConfig:
    """Entry / stop / target placement."""

    atr_period: int = 14
    entry_atr_offset: float = 0.15
    stop_lookback: int = 30
    stop_buffer_pips: float = 8.0
    tp1_multiple: float = 1.5
    tp2_multiple: float = 2.5


@dataclass(frozen=True)
class ConsensusConfig:
    """Merge of strategy votes."""

    tie_break: Literal["buy", "sell"] = "sell"


@dataclass(frozen=True)
class EngineThresholds:
    """Bundle of every config consumed by one engine run."""

    swing: SwingConfig = field(default_factory=SwingConfig)
    sweep: SweepConfig = field(default_factory=SweepConfig)
    bos: BOSConfig = field(default_factory=BOSConfig)
    mss: MSSConfig = field(default_factory=MSSConfig)
    fvg_retest: FVGRetestConfig = field(default_factory=FVGRetestConfig)
    timeframes: TimeframeConfig = field(default_factory=TimeframeConfig)
    smc: SMCConfig = field(default_factory=SMCConfig)
    ema: EMAConfig = field(default_factory=EMAConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    consensus: ConsensusConfig = field(default_factory=ConsensusConfig)


# The simpler sweep variant only reports high-conviction sweeps.
SIMPLE_SWEEP_CONFIG = SweepConfig(min_report_strength=70.0)
