"""Deterministic tests for the pattern detectors.

Covers liquidity sweeps, break of structure (including the counter-trend
bonus), market structure shift and fair value gap retests.
"""

import pytest

from fxsignal.strategy import structure
from fxsignal.strategy.base import PatternDetector, clamp_score, ratio_bonus
from fxsignal.strategy.liquidity import LiquiditySweepDetector, detect_sweep
from fxsignal.strategy.models import Candle, TrendStructure
from fxsignal.strategy.smc import FVGRetestDetector, detect_fvg_retest
from fxsignal.strategy.structure import (
    BreakOfStructureDetector,
    MarketStructureShiftDetector,
    detect_bos,
    detect_mss,
)
from fxsignal.strategy.thresholds import SIMPLE_SWEEP_CONFIG, BOSConfig, SweepConfig


# ── Candle builders ──────────────────────────────────────────────────────


def _make_candle(i: int, o: float, h: float, l: float, c: float, vol: float = 1000.0) -> Candle:
    return Candle(time=1_700_000_000 + i * 900, open=o, high=h, low=l, close=c, volume=vol)


def _double_sweep() -> list[Candle]:
    """Flat range with a swing high at 10, poked and rejected at 30 and again at 35."""
    candles = [_make_candle(i, 1.1000, 1.1005, 1.0995, 1.1000) for i in range(40)]
    candles[10] = _make_candle(10, 1.1000, 1.1010, 1.0995, 1.1000)
    for i in (30, 35):
        candles[i] = _make_candle(i, 1.1000, 1.1020, 1.0995, 1.1000)
    return candles


def _zigzag(count: int = 80, drift: float = 0.0, expanding: bool = False) -> list[Candle]:
    """Triangle wave with a 10-bar period: peaks at i % 10 == 5, troughs at i % 10 == 0.

    *drift* tilts the whole wave; *expanding* widens it so highs rise
    while lows fall.
    """
    candles = []
    for i in range(count):
        phase = i % 10
        offset = phase if phase <= 5 else 10 - phase
        if expanding:
            mid = 1.1000 + (offset - 2.5) * 0.0004 * (1 + i / 100)
        else:
            mid = 1.1000 + drift * i + 0.0004 * offset
        candles.append(_make_candle(i, mid, mid + 0.0002, mid - 0.0002, mid))
    return candles


def _gap_then(retest: list[tuple[float, float, float, float]]) -> list[Candle]:
    """15 flat candles, a bullish gap 1.1005-1.1015 (candles 15-17), then *retest*."""
    rows = [(1.1000, 1.1005, 1.0995, 1.1000)] * 15 + [
        (1.1000, 1.1005, 1.0995, 1.1004),
        (1.1004, 1.1040, 1.1003, 1.1038),
        (1.1038, 1.1045, 1.1015, 1.1042),
    ] + retest
    return [_make_candle(i, *row) for i, row in enumerate(rows)]


_RETEST_AND_HOLD = [(1.1042, 1.1044, 1.1008, 1.1020), (1.1020, 1.1035, 1.1018, 1.1030)]
_NO_RETEST = [(1.1042, 1.1050, 1.1030, 1.1048), (1.1048, 1.1055, 1.1040, 1.1050)]
_RETEST_FAILS = [(1.1042, 1.1044, 1.1008, 1.1020), (1.1020, 1.1022, 1.1000, 1.1005)]


# ── Scoring helpers ──────────────────────────────────────────────────────


class TestScoringHelpers:
    """Unit tests for clamp_score() and ratio_bonus()."""

    def test_clamp_score(self):
        assert clamp_score(-5.0) == 0.0
        assert clamp_score(150.0) == 100.0
        assert clamp_score(42.5) == 42.5
        assert clamp_score(float("nan")) == 0.0
        assert clamp_score(float("inf")) == 0.0

    def test_ratio_bonus_first_matching_tier(self):
        """Tiers are tried largest first; a multiple must be strictly exceeded."""
        tiers = ((1.5, 20.0), (1.2, 10.0))
        assert ratio_bonus(2.0, 1.0, tiers) == 20.0
        assert ratio_bonus(1.3, 1.0, tiers) == 10.0
        assert ratio_bonus(1.2, 1.0, tiers) == 0.0
        assert ratio_bonus(5.0, 0.0, tiers) == 0.0

    def test_atr_tier_boundary_is_exclusive(self):
        """An excursion of exactly 0.5 ATR earns the 0.3x tier, not the 0.5x one."""
        tiers = ((0.5, 25.0), (0.3, 15.0), (0.1, 8.0))
        assert ratio_bonus(0.5, 1.0, tiers) == 15.0
        assert ratio_bonus(0.51, 1.0, tiers) == 25.0


# ── Liquidity sweep ──────────────────────────────────────────────────────


class TestLiquiditySweep:
    """Unit tests for LiquiditySweepDetector / detect_sweep()."""

    def test_detectors_satisfy_protocol(self):
        for detector in (
            LiquiditySweepDetector(),
            BreakOfStructureDetector(),
            MarketStructureShiftDetector(),
            FVGRetestDetector(),
        ):
            assert isinstance(detector, PatternDetector)

    def test_sweep_of_range_high(self, sell_setup):
        """The 1.1016 wick through the 1.1010 range high closes back inside."""
        result = detect_sweep(sell_setup, pip_value=0.0001)
        assert result.detected is True
        assert result.kind == "high"
        assert result.index == 240
        assert result.level == pytest.approx(1.1010)
        assert result.confirmation_count == 5
        assert 70.0 <= result.strength <= 100.0

    def test_sweep_of_range_low(self, buy_setup, mirrored):
        """Mirrored setup: the wick undercuts the 1.0990 range low instead."""
        result = detect_sweep(buy_setup, pip_value=0.0001)
        assert result.detected is True
        assert result.kind == "low"
        assert result.index == 240
        assert result.level == pytest.approx(1.0990)
        assert result.strength == pytest.approx(detect_sweep(mirrored(buy_setup)).strength)

    def test_equal_strength_prefers_most_recent_sweep(self, monkeypatch):
        """Two sweeps of the same level at equal strength: the later candle wins."""
        monkeypatch.setattr(LiquiditySweepDetector, "_strength", lambda self, *args: 80.0)
        result = LiquiditySweepDetector().detect(_double_sweep())
        assert result.detected is True
        assert result.level == pytest.approx(1.1010)
        assert result.index == 35

    def test_held_break_is_not_a_sweep(self, sell_setup):
        # 1 pip = 0.01 → threshold 0.008: the 6-pip poke above the range high no
        # longer counts, and the 125-pip break of the lows closes beyond and holds.
        result = detect_sweep(sell_setup, pip_value=0.01)
        assert result.detected is False

    def test_flat_market_has_no_sweep(self, flat_candles):
        result = detect_sweep(flat_candles(60))
        assert result.detected is False
        assert result.strength == 0.0

    def test_insufficient_data(self, sell_setup):
        result = detect_sweep(sell_setup[:29])
        assert result.detected is False
        assert result.description == "insufficient data"

    def test_below_floor_reports_strength(self, sell_setup):
        """A candidate under the report floor keeps its strength but is not detected."""
        detector = LiquiditySweepDetector(SweepConfig(min_report_strength=101.0))
        result = detector.detect(sell_setup)
        assert result.detected is False
        assert result.strength > 0.0

    def test_simple_variant_floor(self):
        assert SIMPLE_SWEEP_CONFIG.min_report_strength == 70.0
        assert SweepConfig().min_report_strength == 55.0


# ── Break of structure ───────────────────────────────────────────────────


class TestBreakOfStructure:
    """Unit tests for BreakOfStructureDetector / detect_bos()."""

    def test_bearish_break_of_range_low(self, sell_setup):
        """Candle 241 closes 123 pips under the 1.0990 swing low."""
        result = detect_bos(sell_setup, pip_value=0.0001)
        assert result.detected is True
        assert result.kind == "bearish"
        assert result.level == pytest.approx(1.0990)
        assert result.index == 241
        assert result.confirmation_count == 5
        assert result.strength >= 60.0

    def test_bullish_break_of_range_high(self, buy_setup):
        """Mirrored setup: candle 241 closes above the 1.1010 swing high."""
        result = detect_bos(buy_setup, pip_value=0.0001)
        assert result.detected is True
        assert result.kind == "bullish"
        assert result.level == pytest.approx(1.1010)
        assert result.index == 241
        assert result.confirmation_count == 5
        assert result.strength == pytest.approx(100.0)

    def test_flat_market_has_no_break(self, flat_candles):
        result = detect_bos(flat_candles(80))
        assert result.detected is False

    def test_insufficient_data(self, sell_setup):
        result = detect_bos(sell_setup[:39])
        assert result.detected is False
        assert result.description == "insufficient data"

    def test_floor_is_authoritative(self, sell_setup):
        detector = BreakOfStructureDetector(BOSConfig(min_report_strength=101.0))
        result = detector.detect(sell_setup)
        assert result.detected is False
        assert result.strength == pytest.approx(100.0)

    def test_pip_scaled_threshold(self, sell_setup):
        # 200-pip minimum break on a 1-pip = 0.0001 scale: nothing qualifies
        detector = BreakOfStructureDetector(BOSConfig(min_break_pips=200.0))
        assert detector.detect(sell_setup).detected is False

    def test_deterministic(self, sell_setup):
        assert detect_bos(sell_setup) == detect_bos(sell_setup)
        assert detect_sweep(sell_setup) == detect_sweep(sell_setup)


class TestCounterTrendBonus:
    """The same break scored under a trend it confirms and a trend it reverses.

    ATR and volume tiers are zeroed and confirmations are not scored so the
    strength stays below the 100 clamp.
    """

    @pytest.fixture(autouse=True)
    def _no_ratio_tiers(self, monkeypatch):
        monkeypatch.setattr(structure, "ratio_bonus", lambda *args: 0.0)

    @staticmethod
    def _detect(monkeypatch, candles, trend: str):
        monkeypatch.setattr(
            structure,
            "classify_trend",
            lambda *args, **kwargs: TrendStructure(direction=trend, strength=100.0),
        )
        detector = BreakOfStructureDetector(BOSConfig(max_confirmations=0, min_report_strength=0.0))
        return detector.detect(candles)

    @pytest.mark.parametrize(
        "setup, kind, aligned, counter",
        [
            ("sell_setup", "bearish", "bearish", "bullish"),
            ("buy_setup", "bullish", "bullish", "bearish"),
        ],
    )
    def test_break_against_trend_earns_bonus(self, request, monkeypatch, setup, kind, aligned, counter):
        candles = request.getfixturevalue(setup)
        with_trend = self._detect(monkeypatch, candles, aligned)
        against_trend = self._detect(monkeypatch, candles, counter)
        assert with_trend.kind == against_trend.kind == kind
        assert with_trend.index == against_trend.index == 241
        assert against_trend.strength < 100.0
        assert against_trend.strength - with_trend.strength == pytest.approx(
            BOSConfig().counter_trend_bonus
        )

    def test_sideways_trend_earns_nothing(self, monkeypatch, sell_setup):
        assert self._detect(monkeypatch, sell_setup, "sideways").strength == pytest.approx(
            self._detect(monkeypatch, sell_setup, "bearish").strength
        )


# ── Market structure shift ───────────────────────────────────────────────


class TestMarketStructureShift:
    """Unit tests for MarketStructureShiftDetector / detect_mss()."""

    def test_rising_swings_are_bullish(self):
        """Four higher highs and four higher lows: a clean bullish shift."""
        result = detect_mss(_zigzag(drift=0.00005))
        assert result.detected is True
        assert result.kind == "bullish"
        assert result.strength == pytest.approx(100.0)
        assert result.confirmation_count == 6
        assert result.index == 75
        assert result.level == pytest.approx(1.10595)
        assert result.details == {"partial_bos": False, "complex_pattern": False, "swing_count": 8}

    def test_falling_swings_are_bearish(self):
        result = detect_mss(_zigzag(drift=-0.00005))
        assert result.detected is True
        assert result.kind == "bearish"
        assert result.index == 70
        assert result.level == pytest.approx(1.0963)

    def test_equal_swings_flag_partial_break(self):
        """Equal highs and lows cast no votes but count as near misses."""
        result = detect_mss(_zigzag(drift=0.0))
        assert result.detected is False
        assert result.details["partial_bos"] is True
        assert result.details["complex_pattern"] is False

    def test_expanding_swings_are_complex(self):
        """Higher highs with lower lows split the vote 50/50."""
        result = detect_mss(_zigzag(expanding=True))
        assert result.detected is False
        assert result.details["complex_pattern"] is True

    def test_insufficient_data(self):
        result = detect_mss(_zigzag(count=49, drift=0.00005))
        assert result.detected is False
        assert result.description == "insufficient data"

    def test_too_few_swings(self, flat_candles):
        result = detect_mss(flat_candles(60))
        assert result.detected is False
        assert result.details["swing_count"] == 0


# ── FVG retest ───────────────────────────────────────────────────────────


class TestFVGRetest:
    """Unit tests for FVGRetestDetector / detect_fvg_retest()."""

    def test_bullish_gap_retested_and_held(self):
        """Candle 18 dips into the gap, candle 19 closes back above its midpoint."""
        result = detect_fvg_retest(_gap_then(_RETEST_AND_HOLD))
        assert result.detected is True
        assert result.kind == "bullish"
        assert result.level == pytest.approx(1.1010)
        assert result.index == 19
        assert result.strength == 75.0
        assert result.details["retest_confirmed"] is True

    def test_bearish_gap_retested_and_held(self, mirrored):
        result = detect_fvg_retest(mirrored(_gap_then(_RETEST_AND_HOLD)))
        assert result.detected is True
        assert result.kind == "bearish"
        assert result.level == pytest.approx(1.0990)

    def test_gap_never_revisited(self):
        assert detect_fvg_retest(_gap_then(_NO_RETEST)).detected is False

    def test_retest_that_closes_through_the_gap(self):
        """The candle after the retest closes below the midpoint: no confirmation."""
        result = detect_fvg_retest(_gap_then(_RETEST_FAILS))
        assert result.detected is False
        assert result.details["retest_confirmed"] is False

    def test_insufficient_data(self):
        result = detect_fvg_retest(_gap_then(_RETEST_AND_HOLD)[1:])
        assert result.detected is False
        assert result.description == "insufficient data"

    def test_only_trailing_window_scanned(self, flat_candles):
        """Flat candles prepended push nothing out of the 20-candle window."""
        head = flat_candles(30)
        candles = head + [
            Candle(head[-1].time + (k + 1) * 900, c.open, c.high, c.low, c.close, c.volume)
            for k, c in enumerate(_gap_then(_RETEST_AND_HOLD))
        ]
        result = detect_fvg_retest(candles)
        assert result.detected is True
        assert result.index == 49
