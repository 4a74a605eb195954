"""Session clock — pure functions mapping a timestamp to a trading session.

Windows are expressed on the local clock given by *timezone_offset*
(hours east of UTC; ``0`` means the windows are UTC).  Default windows:

    Asian     23:00–02:00  (spans midnight)
    London    07:00–10:00  killzone
    New York  12:00–15:00  killzone

Every window is inclusive of its start and exclusive of its end.  Nothing
is cached: callers sample the time once per evaluation and pass it in.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Literal, Optional, Union


SessionName = Literal["asian", "london", "new_york", "none"]
Timestamp = Union[datetime, int, float]

KILLZONE_SESSIONS: frozenset[str] = frozenset({"london", "new_york"})


@dataclass(frozen=True)
class SessionWindow:
    """A named daily window on the local session clock."""

    name: SessionName
    start: time
    end: time

    def contains(self, t: time) -> bool:
        """Return True if *t* falls inside the window (overnight windows supported)."""
        if self.start <= self.end:
            return self.start <= t < self.end
        return t >= self.start or t < self.end


DEFAULT_WINDOWS: tuple[SessionWindow, ...] = (
    SessionWindow("asian", time(23, 0), time(2, 0)),
    SessionWindow("london", time(7, 0), time(10, 0)),
    SessionWindow("new_york", time(12, 0), time(15, 0)),
)


@dataclass(frozen=True)
class SessionStatus:
    """Snapshot of where a timestamp sits in the trading day."""

    current: SessionName
    in_killzone: bool
    next_session: SessionName
    minutes_until_next: int
    local_time: datetime


def to_utc(ts: Timestamp) -> datetime:
    """Normalise *ts* to an aware UTC datetime.

    Integers and floats are epoch seconds (values above 1e11 are treated
    as epoch milliseconds).  Naive datetimes are assumed to be UTC.
    """
    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            return ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(timezone.utc)
    seconds = float(ts)
    if seconds > 1e11:
        seconds /= 1000.0
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _local(ts: Timestamp, timezone_offset: float) -> datetime:
    return to_utc(ts) + timedelta(hours=timezone_offset)


def classify_session(
    ts: Timestamp,
    timezone_offset: float = 0.0,
    windows: tuple[SessionWindow, ...] = DEFAULT_WINDOWS,
) -> SessionName:
    """Return the session *ts* falls in, or ``"none"``.

    When windows overlap the first matching window wins.
    """
    local = _local(ts, timezone_offset).time()
    for window in windows:
        if window.contains(local):
            return window.name
    return "none"


def is_in_killzone(
    ts: Timestamp,
    timezone_offset: float = 0.0,
    windows: tuple[SessionWindow, ...] = DEFAULT_WINDOWS,
) -> bool:
    """Return True if *ts* is inside the London or New York killzone."""
    return classify_session(ts, timezone_offset, windows) in KILLZONE_SESSIONS


def session_status(
    ts: Timestamp,
    timezone_offset: float = 0.0,
    windows: tuple[SessionWindow, ...] = DEFAULT_WINDOWS,
) -> SessionStatus:
    """Describe the current session and the next one to open.

    ``minutes_until_next`` counts whole minutes to the next window start
    after *ts* (wrapping to tomorrow when needed).
    """
    local = _local(ts, timezone_offset)
    current = classify_session(ts, timezone_offset, windows)

    now_minutes = local.hour * 60 + local.minute
    next_name: Optional[SessionName] = None
    best_wait = 24 * 60 + 1
    for window in windows:
        start_minutes = window.start.hour * 60 + window.start.minute
        wait = (start_minutes - now_minutes) % (24 * 60)
        if wait == 0:
            wait = 24 * 60
        if wait < best_wait:
            best_wait = wait
            next_name = window.name

    return SessionStatus(
        current=current,
        in_killzone=current in KILLZONE_SESSIONS,
        next_session=next_name or "none",
        minutes_until_next=best_wait if next_name else 0,
        local_time=local,
    )
