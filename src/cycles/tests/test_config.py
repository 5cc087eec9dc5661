"""Tests for cycle_config.yaml loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.cycles import config_loader
from src.cycles.config_loader import (
    ConfigValidationError,
    CycleConfig,
    _validate_and_build,
    get_cycle_config,
    load_cycle_config,
    reload_cycle_config,
)


class TestConfigLoading:
    """Tests for loading cycle_config.yaml."""

    def test_load_default_config(self, cycle_config: CycleConfig) -> None:
        """The bundled cycle_config.yaml loads without errors."""
        assert cycle_config.version == "1.0"

    def test_prediction_bounds(self, cycle_config: CycleConfig) -> None:
        assert cycle_config.prediction.min_cycle_days == 21
        assert cycle_config.prediction.max_cycle_days == 45

    def test_default_ovulation_anchor(self, cycle_config: CycleConfig) -> None:
        """Ovulation is anchored on the predicted next period by default."""
        assert cycle_config.fertile_window.ovulation_anchor == "next_period"

    def test_history_defaults(self, cycle_config: CycleConfig) -> None:
        assert cycle_config.history.lookback_months == 6
        assert cycle_config.history.recent_periods == 6

    def test_insights_defaults(self, cycle_config: CycleConfig) -> None:
        assert cycle_config.insights.top_symptoms == 3

    def test_singleton_returns_same_instance(self) -> None:
        assert get_cycle_config() is get_cycle_config()


class TestConfigValidation:
    """Tests for config validation logic."""

    def test_empty_config_uses_defaults(self) -> None:
        """Every section is optional."""
        config = _validate_and_build({})
        assert config.version == "1.0"
        assert config.prediction.min_cycle_days == 21
        assert config.fertile_window.ovulation_anchor == "next_period"

    def test_valid_minimal_config(self) -> None:
        raw = {"version": "1.1", "fertile_window": {"ovulation_anchor": "today_pivot"}}
        config = _validate_and_build(raw)
        assert config.version == "1.1"
        assert config.fertile_window.ovulation_anchor == "today_pivot"

    def test_unknown_anchor_raises(self) -> None:
        raw = {"fertile_window": {"ovulation_anchor": "luteal_phase"}}
        with pytest.raises(ConfigValidationError, match="ovulation_anchor"):
            _validate_and_build(raw)

    def test_non_numeric_bound_raises(self) -> None:
        raw = {"prediction": {"min_cycle_days": "three weeks"}}
        with pytest.raises(ConfigValidationError, match="must be an integer"):
            _validate_and_build(raw)

    def test_non_positive_value_raises(self) -> None:
        raw = {"insights": {"top_symptoms": 0}}
        with pytest.raises(ConfigValidationError, match="must be positive"):
            _validate_and_build(raw)

    def test_inverted_bounds_raise(self) -> None:
        raw = {"prediction": {"min_cycle_days": 45, "max_cycle_days": 21}}
        with pytest.raises(ConfigValidationError, match="must be below"):
            _validate_and_build(raw)

    def test_section_must_be_mapping(self) -> None:
        raw = {"history": [6, 6]}
        with pytest.raises(ConfigValidationError, match="'history' must be a mapping"):
            _validate_and_build(raw)

    def test_errors_reported_together(self) -> None:
        raw = {
            "prediction": {"min_cycle_days": -1},
            "fertile_window": {"ovulation_anchor": "nope"},
        }
        with pytest.raises(ConfigValidationError, match="2 validation error"):
            _validate_and_build(raw)

    def test_malformed_yaml_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "cycle_config.yaml"
        config_file.write_text("prediction: [unclosed")
        with pytest.raises(ConfigValidationError, match="YAML parse error"):
            load_cycle_config(path=config_file)

    def test_hot_reload(self, tmp_path: Path) -> None:
        """reload_cycle_config() should replace the global singleton."""
        config_content = """
version: "2.0-test"
prediction:
  min_cycle_days: 20
  max_cycle_days: 40
fertile_window:
  ovulation_anchor: today_pivot
"""
        config_file = tmp_path / "cycle_config.yaml"
        config_file.write_text(config_content.strip())

        try:
            new_config = reload_cycle_config(path=config_file)
            assert new_config.version == "2.0-test"
            assert get_cycle_config() is new_config
            assert get_cycle_config().prediction.max_cycle_days == 40
        finally:
            reload_cycle_config()

    def test_failed_reload_keeps_old_config(self, tmp_path: Path) -> None:
        before = get_cycle_config()
        config_file = tmp_path / "cycle_config.yaml"
        config_file.write_text("fertile_window:\n  ovulation_anchor: sometime\n")

        with pytest.raises(ConfigValidationError):
            reload_cycle_config(path=config_file)
        assert config_loader._config is before

    def test_load_nonexistent_file_raises(self) -> None:
        """Loading a nonexistent file should raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_cycle_config(path=Path("/nonexistent/path/cycle_config.yaml"))
