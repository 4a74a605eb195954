"""Consensus merge — combine the strategy verdicts into one signal.

Rules:
    - All hold → hold; confidence is the mean of every confidence and the
      criteria are the union across all strategies.
    - Otherwise the majority of buy vs sell voters wins (a tie goes to
      ``ConsensusConfig.tie_break``).  Confidence is the mean of the
      winning voters only; passed criteria come from the winners, failed
      criteria from **every** strategy, losers included.

Price levels are attached later by the engine; the merged result carries
none.
"""

from typing import Optional

from fxsignal.strategy.base import clamp_score
from fxsignal.strategy.models import MergedSignal, StrategyResult
from fxsignal.strategy.thresholds import ConsensusConfig


HOLD_STRATEGY_NAME = "HYBRID"


def _union(sets) -> frozenset[str]:
    merged: set[str] = set()
    for s in sets:
        merged |= s
    return frozenset(merged)


def merge(
    results: list[StrategyResult],
    config: Optional[ConsensusConfig] = None,
    is_killzone: bool = False,
    session: str = "none",
) -> MergedSignal:
    """Merge strategy results into a level-less ``MergedSignal`` (grade ``C``).

    Raises ``ValueError`` if *results* is empty.
    """
    if not results:
        raise ValueError("Cannot merge an empty list of strategy results")
    cfg = config or ConsensusConfig()

    voters = [r for r in results if r.signal != "hold"]
    all_failed = _union(r.criteria_failed for r in results)

    if not voters:
        confidence = sum(r.confidence for r in results) / len(results)
        return MergedSignal(
            signal="hold",
            strategy=HOLD_STRATEGY_NAME,
            confidence=clamp_score(confidence),
            grade="C",
            entry=None,
            stop_loss=None,
            tp1=None,
            tp2=None,
            ratio=None,
            explanation=(
                "No strategy produced a directional setup; mixed or incomplete "
                "conditions across SMC, EMA momentum and session analysis. Standing aside."
            ),
            criteria_passed=_union(r.criteria_passed for r in results),
            criteria_failed=all_failed,
            is_killzone=is_killzone,
            session=session,
        )

    buys = sum(1 for r in voters if r.signal == "buy")
    sells = len(voters) - buys
    if buys > sells:
        winner = "buy"
    elif sells > buys:
        winner = "sell"
    else:
        winner = cfg.tie_break

    agreeing = [r for r in voters if r.signal == winner]
    confidence = sum(r.confidence for r in agreeing) / len(agreeing)
    names = " + ".join(r.strategy for r in agreeing)

    if len(agreeing) == len(results):
        lead = f"All {len(agreeing)} strategies agree on a {winner} setup"
    else:
        lead = f"{len(agreeing)} of {len(results)} strategies favour a {winner} setup"
    reasons = " ".join(r.explanation for r in agreeing)

    return MergedSignal(
        signal=winner,
        strategy=names,
        confidence=clamp_score(confidence),
        grade="C",
        entry=None,
        stop_loss=None,
        tp1=None,
        tp2=None,
        ratio=None,
        explanation=f"{lead} ({names}). {reasons}",
        criteria_passed=_union(r.criteria_passed for r in agreeing),
        criteria_failed=all_failed,
        is_killzone=is_killzone,
        session=session,
    )
