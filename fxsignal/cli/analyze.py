"""CLI — analyze a candle file and print the merged signal.

Usage::

    python -m fxsignal.cli.analyze candles.json --instrument EUR_USD
    python -m fxsignal.cli.analyze candles.csv --now 2024-03-05T08:30:00Z --summary

JSON files hold either a list of candle objects or ``{"candles": [...]}``;
CSV files need ``time, open, high, low, close[, volume]`` columns.
"""

import argparse
import json
import logging
import pathlib
import sys
from datetime import datetime
from typing import Optional

import pandas as pd

from fxsignal.config import load_config
from fxsignal.engine import SignalEngine
from fxsignal.strategy.models import DEFAULT_PIP_VALUE, INSTRUMENT_PIP_VALUES, Candle, MergedSignal
from fxsignal.strategy.series import (
    MalformedCandlesError,
    candles_from_dataframe,
    candles_from_records,
)

logger = logging.getLogger("fxsignal")


def load_candles(path: pathlib.Path) -> list[Candle]:
    """Read candles from a JSON or CSV file."""
    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path)
        if "time" in df.columns and not pd.api.types.is_numeric_dtype(df["time"]):
            df["time"] = pd.to_datetime(df["time"], utc=True)
        return candles_from_dataframe(df)

    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("candles", [])
    return candles_from_records(data)


def format_signal(signal: MergedSignal, instrument: str) -> str:
    """Format the merged signal as a console panel.

    Returns:
        The formatted string (also printed to stdout).
    """
    def _price(value: Optional[float]) -> str:
        return f"{value:.5f}" if value is not None else "N/A"

    lines = [
        f"──────────────── fxsignal {instrument} ────────────────",
        f"  Signal:      {signal.signal.upper()}",
        f"  Strategy:    {signal.strategy}",
        f"  Confidence:  {signal.confidence:.1f}%",
        f"  Grade:       {signal.grade}",
        f"  Entry:       {_price(signal.entry)}",
        f"  Stop Loss:   {_price(signal.stop_loss)}",
        f"  TP1 / TP2:   {_price(signal.tp1)} / {_price(signal.tp2)}",
        f"  R:R:         {signal.ratio if signal.ratio is not None else 'N/A'}",
        f"  Session:     {signal.session}{' (killzone)' if signal.is_killzone else ''}",
        f"  Passed:      {', '.join(sorted(signal.criteria_passed)) or '—'}",
        f"  Failed:      {', '.join(sorted(signal.criteria_failed)) or '—'}",
        "──────────────────────────────────────────────────",
        f"  {signal.explanation}",
    ]
    output = "\n".join(lines)
    print(output)
    return output


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Analyze a candle file with fxsignal")
    parser.add_argument("path", type=pathlib.Path, help="JSON or CSV candle file")
    parser.add_argument("--instrument", help="Instrument, e.g. EUR_USD (default: FXSIGNAL_INSTRUMENT)")
    parser.add_argument("--pip-value", type=float, help="Pip size (default: from the instrument)")
    parser.add_argument("--now", help="Evaluation time as ISO-8601 (default: current UTC time)")
    parser.add_argument("--env-file", help="Path to a .env file (default: ./.env)")
    parser.add_argument("--summary", action="store_true", help="Print a console panel instead of JSON")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.env_file)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.pip_value is not None and not args.pip_value > 0:
        print(f"error: invalid --pip-value {args.pip_value}, must be positive", file=sys.stderr)
        return 2

    instrument = args.instrument or config.instrument
    pip_value = args.pip_value or INSTRUMENT_PIP_VALUES.get(instrument, DEFAULT_PIP_VALUE)

    try:
        now = datetime.fromisoformat(args.now.replace("Z", "+00:00")) if args.now else None
    except ValueError:
        print(f"error: invalid --now '{args.now}', expected ISO-8601", file=sys.stderr)
        return 2

    try:
        candles = load_candles(args.path)
        signal = SignalEngine.from_config(config).analyze(candles, pip_value, now)
    except FileNotFoundError:
        print(f"error: no such file '{args.path}'", file=sys.stderr)
        return 1
    except (MalformedCandlesError, json.JSONDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.summary:
        format_signal(signal, instrument)
    else:
        print(json.dumps({"instrument": instrument, "pip_value": pip_value, **signal.to_dict()}, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
