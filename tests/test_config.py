"""
Tests for configuration, presets and scenario overlays.
"""

import pytest

from p2p_datagen.config import (
    ANOMALY_KEYS,
    PRESETS,
    AnomalyConfig,
    ConfigError,
    GeneratorConfig,
    apply_preset,
    validate_config,
)
from p2p_datagen.scenarios import PACKS, apply_pack, apply_scenario, find_scenario, get_scenario


def _paths(errors):
    return {error["path"] for error in errors}


class TestGeneratorConfig:
    """Tests for GeneratorConfig defaults and derived values."""

    def test_defaults(self):
        config = GeneratorConfig()
        assert config.seed == 42
        assert (config.grn_ratio, config.invoice_ratio, config.payment_ratio) == (0.8, 0.9, 0.85)
        assert config.chunk_size == 10_000
        assert config.constraints.credit_days == 30
        assert config.timing.grn_window_days == 120

    def test_user_count(self):
        assert GeneratorConfig(vendor_count=100).user_count == 50
        assert GeneratorConfig(vendor_count=1).user_count == 1

    def test_years(self):
        assert GeneratorConfig(start_year=2023, end_year=2025).years == [2023, 2024, 2025]

    def test_valid_config_passes(self, config):
        assert validate_config(config) == []
        assert config.validate() is config


class TestValidateConfig:
    """Tests for field-level validation."""

    def test_end_before_start(self, config):
        config.start_year, config.end_year = 2025, 2024
        assert "end_year" in _paths(validate_config(config))

    def test_non_positive_counts(self, config):
        config.vendor_count = 0
        config.po_count = -5
        config.chunk_size = 0
        assert {"vendor_count", "po_count", "chunk_size"} <= _paths(validate_config(config))

    def test_bad_seed(self, config):
        config.seed = "   "
        assert "seed" in _paths(validate_config(config))
        config.seed = True
        assert "seed" in _paths(validate_config(config))

    def test_string_seed_allowed(self, config):
        config.seed = "audit-run-7"
        assert validate_config(config) == []

    def test_ratio_bounds(self, config):
        config.grn_ratio = 1.5
        assert "grn_ratio" in _paths(validate_config(config))

    def test_anomaly_percentage_bounds(self, config):
        config.anomalies.missing_pan_pct = 150
        assert "anomalies.missing_pan_pct" in _paths(validate_config(config))

    def test_limits_only_when_enforced(self, config):
        config.po_count = 300_000
        config.start_year = 1990
        assert validate_config(config) == []
        paths = _paths(validate_config(config, enforce_limits=True))
        assert {"po_count", "start_year"} <= paths

    def test_unknown_pack_and_scenario(self, config):
        config.pack_name = "no_such_pack"
        config.scenario_id = "TS-999"
        assert {"pack_name", "scenario_id"} <= _paths(validate_config(config))

    def test_validate_raises_config_error(self, config):
        config.end_year = config.start_year - 1
        with pytest.raises(ConfigError) as excinfo:
            config.validate()
        assert excinfo.value.errors[0]["path"] == "end_year"
        assert isinstance(excinfo.value, ValueError)


class TestAnomalyConfig:
    """Tests for AnomalyConfig."""

    def test_all_keys_default_to_none(self):
        config = AnomalyConfig()
        assert len(ANOMALY_KEYS) == 25
        assert all(config.get(key) is None for key in ANOMALY_KEYS)
        assert config.active_keys() == []

    def test_update_and_active_keys(self):
        config = AnomalyConfig().update({"missing_pan_pct": 10, "payment_high_volume_pct": 0})
        assert config.active_keys() == ["missing_pan_pct"]

    def test_update_unknown_key_raises(self):
        with pytest.raises(KeyError):
            AnomalyConfig().update({"not_a_key_pct": 5})

    def test_get_unknown_key_raises(self):
        with pytest.raises(KeyError):
            AnomalyConfig().get("pr_approval_threshold")


class TestPresets:
    """Tests for size presets."""

    def test_apply_preset(self, config):
        apply_preset(config, "small")
        assert config.vendor_count == PRESETS["small"]["vendor_count"]
        assert config.po_count == PRESETS["small"]["po_count"]

    def test_preset_keeps_other_fields(self, config):
        apply_preset(config, "large")
        assert config.seed == 42
        assert (config.start_year, config.end_year) == (2023, 2024)

    def test_presets_within_boundary_limits(self, config):
        for name in PRESETS:
            apply_preset(config, name)
            assert validate_config(config, enforce_limits=True) == []

    def test_unknown_preset(self, config):
        with pytest.raises(ValueError, match="Unknown dataset size"):
            apply_preset(config, "gigantic")


class TestScenarios:
    """Tests for scenario packs and overlays."""

    def test_pack_catalog(self):
        assert set(PACKS) == {
            "vendor_master_pack",
            "pr_controls_pack",
            "po_controls_pack",
            "grn_controls_pack",
            "invoice_pack",
            "payment_pack",
            "fraud_sod_pack",
        }

    def test_find_scenario(self):
        pack, scenario = find_scenario("TS-002")
        assert pack.pack_name == "vendor_master_pack"
        assert scenario.anomalies == {"missing_pan_pct": 10}
        assert find_scenario("TS-999") is None

    def test_get_scenario_unknown(self):
        with pytest.raises(ValueError):
            get_scenario("TS-999")

    def test_apply_scenario(self, config):
        apply_scenario(config, "TS-002")
        assert config.pack_name == "vendor_master_pack"
        assert config.scenario_id == "TS-002"
        assert config.anomalies.missing_pan_pct == 10
        assert config.policy.require_pan_for_vendor is True
        assert config.vendor_count == 100

    def test_apply_scenario_with_shape(self, config):
        apply_scenario(config, "TS-002", use_shape=True)
        assert (config.vendor_count, config.po_count) == (1000, 5000)

    def test_overrides_after_overlay_win(self, config):
        apply_scenario(config, "TS-002")
        config.anomalies.update({"missing_pan_pct": 3})
        assert config.anomalies.missing_pan_pct == 3

    def test_apply_pack(self, config):
        apply_pack(config, "vendor_master_pack")
        assert config.pack_name == "vendor_master_pack"
        assert config.anomalies.duplicate_vendor_pan_pct == 5
        assert config.anomalies.inactive_vendor_used_pct == 5

    def test_every_scenario_overlay_validates(self):
        for pack in PACKS.values():
            for scenario in pack.scenarios:
                config = apply_scenario(GeneratorConfig(), scenario.scenario_id)
                assert validate_config(config) == [], scenario.scenario_id
