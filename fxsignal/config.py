"""fxsignal — application configuration.

Loads .env variables into a typed config object.
Validates every variable on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from fxsignal.strategy.thresholds import (
    SIMPLE_SWEEP_CONFIG,
    ConsensusConfig,
    EngineThresholds,
    SweepConfig,
)


_SWEEP_VARIANTS = ("strict", "simple")
_DIRECTIONS = ("buy", "sell")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    instrument: str
    session_utc_offset_hours: float
    sweep_variant: str  # "strict" or "simple"
    consensus_tie_break: str  # "buy" or "sell"
    evaluate_concurrently: bool
    log_level: str
    api_port: int

    def thresholds(self) -> EngineThresholds:
        """Return the engine threshold bundle implied by this config."""
        sweep = SIMPLE_SWEEP_CONFIG if self.sweep_variant == "simple" else SweepConfig()
        return EngineThresholds(
            sweep=sweep,
            consensus=ConsensusConfig(tie_break=self.consensus_tie_break),
        )


def _choice(name: str, default: str, allowed: tuple[str, ...], upper: bool = False) -> str:
    raw = os.environ.get(name, default).strip()
    value = raw.upper() if upper else raw.lower()
    if value not in allowed:
        raise ValueError(
            f"Invalid {name}='{raw}'. Expected one of: {', '.join(allowed)}"
        )
    return value


def _number(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}='{raw}': not a valid {cast.__name__}") from exc


def _flag(name: str, default: str) -> bool:
    raw = os.environ.get(name, default).strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(f"Invalid {name}='{raw}'. Expected true or false")


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the offending variable when
    a value cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    offset = _number("SESSION_UTC_OFFSET_HOURS", "0", float)
    if not -12.0 <= offset <= 14.0:
        raise ValueError(
            f"Invalid SESSION_UTC_OFFSET_HOURS='{offset}': must be between -12 and 14"
        )
    port = _number("API_PORT", "8080", int)
    if not 0 < port < 65536:
        raise ValueError(f"Invalid API_PORT='{port}': must be between 1 and 65535")

    return Config(
        instrument=os.environ.get("FXSIGNAL_INSTRUMENT", "EUR_USD"),
        session_utc_offset_hours=offset,
        sweep_variant=_choice("SWEEP_VARIANT", "strict", _SWEEP_VARIANTS),
        consensus_tie_break=_choice("CONSENSUS_TIE_BREAK", "sell", _DIRECTIONS),
        evaluate_concurrently=_flag("EVALUATE_CONCURRENTLY", "false"),
        log_level=_choice("LOG_LEVEL", "INFO", _LOG_LEVELS, upper=True),
        api_port=port,
    )
