"""Strategy data models — typed representations for detector, strategy and signal outputs."""

from dataclasses import dataclass, field
from typing import Literal, Optional


Direction = Literal["buy", "sell", "hold"]
Grade = Literal["A+", "A", "B+", "B", "C"]


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar, oldest-first within a series."""

    time: int  # epoch timestamp
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


@dataclass(frozen=True)
class SwingPoint:
    """A local extremum confirmed by *strength* candles on each side."""

    index: int
    price: float
    kind: Literal["high", "low"]
    strength: float  # 0–100


@dataclass(frozen=True)
class TrendStructure:
    """Trend classification derived from the most recent swing sequence."""

    direction: Literal["bullish", "bearish", "sideways"]
    strength: float


@dataclass(frozen=True)
class PatternResult:
    """Outcome of a pattern detector (sweep, structure break or shift, FVG retest).

    ``detected`` is authoritative: a result with ``detected=False`` may still
    carry the strength of the best below-floor candidate.
    """

    detected: bool
    level: Optional[float]
    kind: Optional[str]  # "high"/"low" for sweeps, "bullish"/"bearish" otherwise
    strength: float
    confirmation_count: int
    description: str
    index: Optional[int] = None  # position of the sweeping / breaking candle
    details: dict = field(default_factory=dict, compare=False)

    @classmethod
    def not_found(cls, description: str, strength: float = 0.0, **details) -> "PatternResult":
        return cls(
            detected=False,
            level=None,
            kind=None,
            strength=strength,
            confirmation_count=0,
            description=description,
            details=details,
        )

    def to_dict(self) -> dict:
        return {
            "detected": self.detected,
            "level": self.level,
            "kind": self.kind,
            "strength": round(self.strength, 2),
            "confirmation_count": self.confirmation_count,
            "description": self.description,
            "index": self.index,
            **self.details,
        }


@dataclass(frozen=True)
class StrategyResult:
    """One evaluator's verdict.

    ``criteria_passed`` and ``criteria_failed`` are disjoint and together
    cover the evaluator's checklist.  The insufficient-data outcome is the
    one exception: its failed set is exactly ``{"insufficient_data"}``.
    """

    strategy: str
    signal: Direction
    confidence: float
    criteria_passed: frozenset[str]
    criteria_failed: frozenset[str]
    explanation: str
    details: dict = field(default_factory=dict, compare=False)

    @classmethod
    def insufficient_data(cls, strategy: str, explanation: str) -> "StrategyResult":
        return cls(
            strategy=strategy,
            signal="hold",
            confidence=0.0,
            criteria_passed=frozenset(),
            criteria_failed=frozenset({"insufficient_data"}),
            explanation=explanation,
        )


@dataclass(frozen=True)
class RiskReward:
    """Entry, stop and target levels for a directional signal."""

    entry: float
    stop_loss: float
    tp1: float
    tp2: float
    ratio: float
    pip_risk: float
    pip_reward: float


@dataclass(frozen=True)
class MergedSignal:
    """Final output of the signal engine.

    Price levels and ``ratio`` are ``None`` exactly when ``signal`` is
    ``"hold"``.
    """

    signal: Direction
    strategy: str
    confidence: float
    grade: Grade
    entry: Optional[float]
    stop_loss: Optional[float]
    tp1: Optional[float]
    tp2: Optional[float]
    ratio: Optional[float]
    explanation: str
    criteria_passed: frozenset[str]
    criteria_failed: frozenset[str]
    is_killzone: bool
    session: str = "none"

    def to_dict(self) -> dict:
        """Return a JSON-ready representation (criteria as sorted lists)."""
        return {
            "signal": self.signal,
            "strategy": self.strategy,
            "confidence": round(self.confidence, 2),
            "grade": self.grade,
            "entry": self.entry,
            "stop_loss": self.stop_loss,
            "tp1": self.tp1,
            "tp2": self.tp2,
            "ratio": self.ratio,
            "explanation": self.explanation,
            "criteria_passed": sorted(self.criteria_passed),
            "criteria_failed": sorted(self.criteria_failed),
            "is_killzone": self.is_killzone,
            "session": self.session,
        }


# ── Instrument metadata ──────────────────────────────────────────────────

DEFAULT_PIP_VALUE = 0.0001

INSTRUMENT_PIP_VALUES: dict[str, float] = {
    "EUR_USD": 0.0001,
    "GBP_USD": 0.0001,
    "USD_JPY": 0.01,
    "USD_CHF": 0.0001,
    "AUD_USD": 0.0001,
    "NZD_USD": 0.0001,
    "USD_CAD": 0.0001,
    "EUR_GBP": 0.0001,
    "GBP_JPY": 0.01,
    "XAU_USD": 0.01,
    "XAG_USD": 0.001,
}
