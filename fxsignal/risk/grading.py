"""Signal grading — strict (confidence, R:R) lookup table."""

from fxsignal.strategy.models import Grade


# (grade, minimum confidence %, minimum R:R), best tier first.
GRADE_TABLE: tuple[tuple[Grade, float, float], ...] = (
    ("A+", 85.0, 2.0),
    ("A", 75.0, 1.8),
    ("B+", 65.0, 1.5),
    ("B", 55.0, 1.3),
)

GRADE_ORDER: tuple[Grade, ...] = ("C", "B", "B+", "A", "A+")


def grade(confidence: float, ratio: float) -> Grade:
    """Return the best tier whose confidence **and** ratio minimums both hold.

    Falls through to ``"C"`` when no tier matches.
    """
    for tier, min_confidence, min_ratio in GRADE_TABLE:
        if confidence >= min_confidence and ratio >= min_ratio:
            return tier
    return "C"


def grade_at_least(value: str, minimum: str) -> bool:
    """Return True if grade *value* is the same tier as *minimum* or better.

    Raises ``ValueError`` for an unknown grade.
    """
    for g in (value, minimum):
        if g not in GRADE_ORDER:
            raise ValueError(f"Unknown grade '{g}'. Expected one of: {', '.join(GRADE_ORDER)}")
    return GRADE_ORDER.index(value) >= GRADE_ORDER.index(minimum)
