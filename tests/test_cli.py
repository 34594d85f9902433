"""
Tests for the command line interface.
"""

import json

import pytest
from click.testing import CliRunner

from p2p_datagen import __version__
from p2p_datagen.main import cli, parse_anomalies, parse_seed

SMALL = ["--seed", "42", "--vendors", "100", "--pos", "200", "--start-year", "2023", "--end-year", "2024"]


@pytest.fixture
def runner():
    return CliRunner()


class TestParsing:
    """Tests for option parsing helpers."""

    def test_parse_seed(self):
        assert parse_seed("42") == 42
        assert parse_seed("audit-7") == "audit-7"

    def test_leading_zero_seed_stays_string(self):
        assert parse_seed("042") == "042"
        assert parse_seed("0") == 0

    def test_parse_anomalies(self):
        assert parse_anomalies(("missing_pan_pct=10", "pr_bypass=2.5")) == {
            "missing_pan_pct": 10.0,
            "pr_bypass_pct": 2.5,
        }


class TestGenerateCommand:
    """Tests for `generate`."""

    def test_writes_output(self, runner, tmp_path):
        result = runner.invoke(cli, ["generate", *SMALL, "--anomaly", "missing_pan_pct=10", "-o", str(tmp_path)])
        assert result.exit_code == 0, result.output
        manifest = json.loads((tmp_path / "manifest.json").read_text())
        assert manifest["seed"] == 42
        assert manifest["counts_by_file"]["purchase_orders.csv"] == 200
        assert manifest["anomaly_config"]["missing_pan_pct"] == 10.0
        assert "Anomalies planted" in result.output

    def test_rows_alias_and_validate_flag(self, runner, tmp_path):
        args = ["generate", "--vendors", "100", "--rows", "150", "--start-year", "2023", "--end-year", "2024",
                "--no-anomalies", "--validate", "-o", str(tmp_path)]
        result = runner.invoke(cli, args)
        assert result.exit_code == 0, result.output
        assert "Dataset validation" in result.output
        manifest = json.loads((tmp_path / "manifest.json").read_text())
        assert manifest["counts_by_file"]["purchase_orders.csv"] == 150
        assert manifest["counts_by_file"]["anomaly_truth.csv"] == 0

    def test_scenario_overlay(self, runner, tmp_path):
        result = runner.invoke(cli, ["generate", *SMALL, "--scenario", "TS-002", "-o", str(tmp_path)])
        assert result.exit_code == 0, result.output
        manifest = json.loads((tmp_path / "manifest.json").read_text())
        assert manifest["scenario_id"] == "TS-002"
        assert manifest["pack_name"] == "vendor_master_pack"

    def test_explicit_anomaly_overrides_scenario(self, runner, tmp_path):
        args = ["generate", *SMALL, "--scenario", "TS-002", "--anomaly", "missing_pan_pct=3", "-o", str(tmp_path)]
        result = runner.invoke(cli, args)
        assert result.exit_code == 0, result.output
        manifest = json.loads((tmp_path / "manifest.json").read_text())
        assert manifest["anomaly_config"]["missing_pan_pct"] == 3.0

    def test_leading_zero_seed_is_a_different_stream(self, runner, tmp_path):
        padded = ["--seed", "042", *SMALL[2:]]
        out_42, out_042 = tmp_path / "s42", tmp_path / "s042"
        assert runner.invoke(cli, ["generate", *SMALL, "--no-anomalies", "-o", str(out_42)]).exit_code == 0
        result = runner.invoke(cli, ["generate", *padded, "--no-anomalies", "-o", str(out_042)])
        assert result.exit_code == 0, result.output
        assert json.loads((out_042 / "manifest.json").read_text())["seed"] == "042"
        assert (out_42 / "vendors.csv").read_text() != (out_042 / "vendors.csv").read_text()

    def test_invalid_years_exit_2(self, runner, tmp_path):
        args = ["generate", "--start-year", "2025", "--end-year", "2024", "-o", str(tmp_path)]
        result = runner.invoke(cli, args)
        assert result.exit_code == 2
        assert "end_year" in result.output

    def test_limits_enforced(self, runner, tmp_path):
        result = runner.invoke(cli, ["generate", "--pos", "500000", "-o", str(tmp_path)])
        assert result.exit_code == 2
        assert "po_count" in result.output

    def test_unknown_anomaly_key(self, runner, tmp_path):
        result = runner.invoke(cli, ["generate", *SMALL, "--anomaly", "bogus=5", "-o", str(tmp_path)])
        assert result.exit_code == 2

    def test_unknown_scenario(self, runner, tmp_path):
        result = runner.invoke(cli, ["generate", *SMALL, "--scenario", "TS-999", "-o", str(tmp_path)])
        assert result.exit_code == 2
        assert "TS-999" in result.output

    def test_ratio_out_of_range(self, runner, tmp_path):
        result = runner.invoke(cli, ["generate", *SMALL, "--grn-ratio", "1.5", "-o", str(tmp_path)])
        assert result.exit_code == 2


class TestOtherCommands:
    """Tests for `validate`, `scenarios` and `--version`."""

    def test_validate_passes(self, runner):
        result = runner.invoke(cli, ["validate", *SMALL])
        assert result.exit_code == 0, result.output
        assert "PASSED" in result.output

    def test_validate_without_constraints_fails(self, runner):
        result = runner.invoke(cli, ["validate", *SMALL, "--no-constraints"])
        assert result.exit_code == 1
        assert "FAILED" in result.output

    def test_scenarios(self, runner):
        result = runner.invoke(cli, ["scenarios"])
        assert result.exit_code == 0
        assert "vendor_master_pack" in result.output
        assert "TS-002" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert __version__ in result.output
