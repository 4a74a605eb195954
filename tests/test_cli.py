"""Tests for the analyze CLI."""

import json
from dataclasses import asdict

import pandas as pd
import pytest

from fxsignal.cli.analyze import format_signal, load_candles, main
from fxsignal.engine import analyze


@pytest.fixture
def env_file(tmp_path):
    # A non-existent path so load_dotenv doesn't pick up a real .env
    return str(tmp_path / "nonexistent.env")


@pytest.fixture
def candle_file(tmp_path, sell_setup):
    path = tmp_path / "candles.json"
    path.write_text(json.dumps([asdict(c) for c in sell_setup]), encoding="utf-8")
    return path


class TestLoadCandles:
    """Unit tests for load_candles()."""

    def test_json_list(self, candle_file, sell_setup):
        assert load_candles(candle_file) == sell_setup

    def test_json_object(self, tmp_path, sell_setup):
        """``{"candles": [...]}`` files are unwrapped."""
        path = tmp_path / "wrapped.json"
        path.write_text(json.dumps({"candles": [asdict(c) for c in sell_setup[:5]]}), encoding="utf-8")
        assert load_candles(path) == sell_setup[:5]

    def test_csv_with_iso_times(self, tmp_path, sell_setup):
        """ISO-8601 time columns are parsed back to epoch seconds."""
        df = pd.DataFrame([asdict(c) for c in sell_setup[:3]])
        df["time"] = pd.to_datetime(df["time"], unit="s", utc=True).dt.strftime("%Y-%m-%dT%H:%M:%SZ")
        path = tmp_path / "candles.csv"
        df.to_csv(path, index=False)
        candles = load_candles(path)
        assert [c.time for c in candles] == [c.time for c in sell_setup[:3]]


class TestMain:
    """Unit tests for main() exit codes and output."""

    def test_prints_json(self, candle_file, env_file, capsys):
        """Default output is the merged signal as JSON."""
        code = main([str(candle_file), "--now", "2024-03-05T08:00:00Z", "--env-file", env_file])
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["signal"] == "sell"
        assert data["instrument"] == "EUR_USD"

    def test_summary_panel(self, candle_file, env_file, capsys):
        code = main([str(candle_file), "--now", "2024-03-05T08:00:00Z", "--env-file", env_file, "--summary"])
        assert code == 0
        out = capsys.readouterr().out
        assert "Signal:      SELL" in out
        assert "Grade:       B+" in out

    def test_malformed_exits_non_zero(self, tmp_path, sell_setup, env_file, capsys):
        """Out-of-order candles exit 1 with the validation message on stderr."""
        rows = [asdict(c) for c in sell_setup[:10]]
        rows[2], rows[3] = rows[3], rows[2]
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(rows), encoding="utf-8")
        assert main([str(path), "--env-file", env_file]) == 1
        assert "not after" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, env_file):
        assert main([str(tmp_path / "missing.json"), "--env-file", env_file]) == 1

    def test_bad_now(self, candle_file, env_file):
        """An unparseable --now is a usage error."""
        assert main([str(candle_file), "--now", "yesterday", "--env-file", env_file]) == 2

    @pytest.mark.parametrize("pip_value", ["0", "-0.0001", "nan"])
    def test_non_positive_pip_value(self, candle_file, env_file, capsys, pip_value):
        """A pip value that is not positive is a usage error, checked before any analysis."""
        assert main([str(candle_file), f"--pip-value={pip_value}", "--env-file", env_file]) == 2
        assert "--pip-value" in capsys.readouterr().err

    def test_explicit_pip_value(self, candle_file, env_file, capsys):
        code = main([str(candle_file), "--pip-value=0.01", "--env-file", env_file])
        assert code == 0
        assert json.loads(capsys.readouterr().out)["pip_value"] == 0.01


class TestFormatSignal:
    """Unit tests for format_signal()."""

    def test_hold_shows_na(self, flat_candles, asian_night):
        """A hold has no levels to print."""
        output = format_signal(analyze(flat_candles(60), 0.0001, now=asian_night), "EUR_USD")
        assert "Signal:      HOLD" in output
        assert "Entry:       N/A" in output
