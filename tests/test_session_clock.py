"""Deterministic tests for the session clock — pure functions of an explicit time."""

from datetime import datetime, time, timedelta, timezone

import pytest

from fxsignal.strategy.session_clock import (
    SessionWindow,
    classify_session,
    is_in_killzone,
    session_status,
    to_utc,
)


def _utc(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 3, 5, hour, minute, tzinfo=timezone.utc)


class TestClassifySession:
    """Unit tests for classify_session() and is_in_killzone()."""

    @pytest.mark.parametrize(
        "hour, minute, expected",
        [
            (7, 0, "london"),
            (8, 30, "london"),
            (9, 59, "london"),
            (10, 0, "none"),
            (12, 0, "new_york"),
            (14, 59, "new_york"),
            (15, 0, "none"),
            (23, 0, "asian"),
            (0, 30, "asian"),
            (1, 59, "asian"),
            (2, 0, "none"),
            (5, 0, "none"),
        ],
    )
    def test_default_windows(self, hour, minute, expected):
        assert classify_session(_utc(hour, minute)) == expected

    def test_killzone_only_london_and_new_york(self):
        """The Asian session is never a killzone."""
        assert is_in_killzone(_utc(8)) is True
        assert is_in_killzone(_utc(13)) is True
        assert is_in_killzone(_utc(0, 30)) is False
        assert is_in_killzone(_utc(5)) is False

    def test_timezone_offset_shifts_windows(self):
        # 06:00 UTC is 08:00 on a UTC+2 clock
        assert classify_session(_utc(6), timezone_offset=2.0) == "london"
        assert classify_session(_utc(6), timezone_offset=0.0) == "none"
        assert classify_session(_utc(4), timezone_offset=-5.0) == "asian"

    def test_aware_non_utc_input(self):
        """Aware datetimes in another zone are converted before classifying."""
        tokyo = timezone(timedelta(hours=9))
        assert classify_session(datetime(2024, 3, 5, 17, 0, tzinfo=tokyo)) == "london"

    def test_custom_windows(self):
        windows = (SessionWindow("london", time(8, 0), time(9, 0)),)
        assert classify_session(_utc(7, 30), windows=windows) == "none"
        assert classify_session(_utc(8, 30), windows=windows) == "london"


class TestToUtc:
    """Unit tests for to_utc()."""

    def test_naive_is_utc(self):
        assert to_utc(datetime(2024, 3, 5, 8, 0)) == _utc(8)

    def test_epoch_seconds_and_millis(self):
        """Epoch values above 1e11 are read as milliseconds."""
        seconds = int(_utc(8).timestamp())
        assert to_utc(seconds) == _utc(8)
        assert to_utc(seconds * 1000) == _utc(8)


class TestSessionStatus:
    """Unit tests for session_status()."""

    def test_before_london(self):
        """05:00 UTC falls between sessions; London opens in two hours."""
        status = session_status(_utc(5))
        assert status.current == "none"
        assert status.in_killzone is False
        assert status.next_session == "london"
        assert status.minutes_until_next == 120

    def test_inside_london(self):
        status = session_status(_utc(8))
        assert status.current == "london"
        assert status.in_killzone is True
        assert status.next_session == "new_york"
        assert status.minutes_until_next == 240

    def test_wraps_to_asian(self):
        """After New York the next session is the following Asian open."""
        status = session_status(_utc(16))
        assert status.next_session == "asian"
        assert status.minutes_until_next == 420

    def test_inside_asian_next_is_london(self):
        """The Asian window wraps midnight."""
        status = session_status(_utc(23, 30))
        assert status.current == "asian"
        assert status.next_session == "london"
        assert status.minutes_until_next == 450

    def test_local_time_carries_offset(self):
        status = session_status(_utc(6), timezone_offset=2.0)
        assert status.current == "london"
        assert status.local_time.hour == 8
