"""Tests for the click command line."""

import json
import logging
import os

import pandas as pd
import pytest
from click.testing import CliRunner

from poissonlab.__main__ import cli


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.delenv("PL_SEED", raising=False)
    root = logging.getLogger()
    before = list(root.handlers)
    yield CliRunner()
    # handlers installed by the command point at the runner's closed streams
    for handler in [h for h in root.handlers if h not in before]:
        root.removeHandler(handler)
        handler.close()


class TestTheoryCommand:
    def test_prints_rounded_moments(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["theory", "--lam", "2", "--mu", "0.5", "--t-max", "20"])
        assert result.exit_code == 0, result.output
        assert "E[S(T)] = 80\n" in result.output
        assert "Var[S(T)] = 320\n" in result.output

    def test_invalid_rate(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["theory", "--lam", "0", "--mu", "0.5", "--t-max", "20"])
        assert result.exit_code != 0
        assert "lam" in result.output


class TestSimulateCommand:
    def test_text_summary(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["simulate", "-n", "2000", "--seed", "1"])
        assert result.exit_code == 0, result.output
        assert "E[S(T)] = λT/μ:      80\n" in result.output
        assert "arrivals" in result.output

    def test_json_summary(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, [
                "simulate", "--lam", "1", "--mu", "1", "--t-max", "10",
                "-n", "1500", "--seed", "3", "--method", "order_statistics",
                "--sampler", "sum", "--json",
            ])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output[result.output.index("{"):])
        assert payload["params"]["num_simulations"] == 1500
        assert payload["theory"]["mean"] == 10.0
        assert payload["arrival_method"] == "order_statistics"
        assert payload["terminal_sampler"] == "sum"
        assert payload["terminal_stats"]["num_simulations"] == 1500

    def test_writes_charts(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, [
                "simulate", "-n", "1000", "--seed", "4",
                "--path-png", "out/path.png", "--hist-png", "out/hist.png", "--density",
            ])
            assert result.exit_code == 0, result.output
            for name in ("out/path.png", "out/hist.png"):
                assert os.path.exists(name)
                with open(name, "rb") as fh:
                    assert fh.read(4) == b"\x89PNG"

    def test_writes_path_csv(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, [
                "simulate", "-n", "1000", "--seed", "6", "--json", "--path-csv", "out/path.csv",
            ])
            assert result.exit_code == 0, result.output
            frame = pd.read_csv("out/path.csv")
        payload = json.loads(result.output[result.output.index("{"):])
        assert list(frame.columns) == ["Time", "S_t"]
        assert len(frame) == 2 * payload["num_arrivals"] + 2
        assert frame.iloc[0].tolist() == [0.0, 0.0]
        assert frame["Time"].iloc[-1] == 20.0
        assert frame["S_t"].iloc[-1] == pytest.approx(payload["path_terminal_value"])
        assert frame["S_t"].is_monotonic_increasing

    def test_huge_expected_arrivals_rejected(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["simulate", "--lam", "1e15", "--t-max", "1e6", "-n", "10"])
        assert result.exit_code != 0
        assert "lam * t_max" in result.output

    def test_invalid_parameters(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["simulate", "--mu", "-1"])
        assert result.exit_code != 0
        assert "mu" in result.output

    def test_batch_truncation_reported(self, runner, monkeypatch):
        monkeypatch.setenv("PL_BATCH_SIZE", "10")
        with runner.isolated_filesystem():
            result = runner.invoke(cli, [
                "simulate", "--lam", "5", "--t-max", "50", "-n", "1000", "--method", "batch",
            ])
        assert result.exit_code == 0, result.output
        assert "truncated" in result.output
