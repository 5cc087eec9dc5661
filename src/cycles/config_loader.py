"""Load, validate, and hot-reload the cycle engine configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_cycle_config()`` to re-read from
disk after an update, no restart required.

Usage::

    from src.cycles.config_loader import get_cycle_config

    config = get_cycle_config()
    config.prediction.min_cycle_days        # 21
    config.fertile_window.ovulation_anchor  # 'next_period'
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger("fitglide.cycles.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"

OVULATION_ANCHORS = ("next_period", "today_pivot")


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class PredictionConfig:
    """Sanity bounds used to flag unusual cycle lengths."""

    min_cycle_days: int = 21
    max_cycle_days: int = 45


@dataclass
class FertileWindowConfig:
    """How the ovulation date is anchored to the period prediction."""

    ovulation_anchor: str = "next_period"


@dataclass
class HistoryConfig:
    """History loading and display settings."""

    lookback_months: int = 6
    recent_periods: int = 6


@dataclass
class InsightsConfig:
    """Insight generation settings."""

    top_symptoms: int = 3


@dataclass
class CycleConfig:
    """Complete, validated cycle engine configuration.

    This is the single in-memory representation of cycle_config.yaml.
    The prediction engine, insight generator, loader and store all read
    from this object.

    Attributes:
        version:        Config schema version string.
        prediction:     Cycle length sanity bounds.
        fertile_window: Ovulation anchoring mode.
        history:        Lookback window and recent-period count.
        insights:       Insight generation settings.
    """

    version: str
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    fertile_window: FertileWindowConfig = field(default_factory=FertileWindowConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    insights: InsightsConfig = field(default_factory=InsightsConfig)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when cycle_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Cycle config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CycleConfig:
    """Validate the raw YAML dict and construct a CycleConfig.

    Performs structural validation and applies defaults for optional fields.
    All problems are collected and reported together.

    Args:
        raw: Parsed YAML dict.

    Returns:
        Validated CycleConfig instance.

    Raises:
        ConfigValidationError: If any field is missing or invalid.
    """
    errors: list[str] = []

    def _positive_int(section: dict, key: str, default: int, section_name: str) -> int:
        value = section.get(key, default)
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors.append(f"{section_name}.{key} must be an integer, got {value!r}")
            return default
        if number <= 0:
            errors.append(f"{section_name}.{key} must be positive, got {number}")
        return number

    def _section(name: str) -> dict:
        section = raw.get(name) or {}
        if not isinstance(section, dict):
            errors.append(f"'{name}' must be a mapping")
            return {}
        return section

    version = str(raw.get("version", "1.0"))

    # ── Prediction ──
    pr_raw = _section("prediction")
    prediction = PredictionConfig(
        min_cycle_days=_positive_int(pr_raw, "min_cycle_days", 21, "prediction"),
        max_cycle_days=_positive_int(pr_raw, "max_cycle_days", 45, "prediction"),
    )
    if prediction.min_cycle_days >= prediction.max_cycle_days:
        errors.append(
            f"prediction.min_cycle_days ({prediction.min_cycle_days}) must be "
            f"below prediction.max_cycle_days ({prediction.max_cycle_days})"
        )

    # ── Fertile window ──
    fw_raw = _section("fertile_window")
    anchor = fw_raw.get("ovulation_anchor", "next_period")
    if anchor not in OVULATION_ANCHORS:
        errors.append(
            f"fertile_window.ovulation_anchor must be one of {OVULATION_ANCHORS}, got {anchor!r}"
        )
    fertile_window = FertileWindowConfig(ovulation_anchor=anchor)

    # ── History ──
    hi_raw = _section("history")
    history = HistoryConfig(
        lookback_months=_positive_int(hi_raw, "lookback_months", 6, "history"),
        recent_periods=_positive_int(hi_raw, "recent_periods", 6, "history"),
    )

    # ── Insights ──
    in_raw = _section("insights")
    insights = InsightsConfig(
        top_symptoms=_positive_int(in_raw, "top_symptoms", 3, "insights"),
    )

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CycleConfig(
        version=version,
        prediction=prediction,
        fertile_window=fertile_window,
        history=history,
        insights=insights,
    )


def load_cycle_config(path: Path | None = None) -> CycleConfig:
    """Load and validate the cycle config from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_config.yaml by default.

    Returns:
        Validated CycleConfig instance.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded cycle config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: CycleConfig | None = None
_config_lock = threading.Lock()


def get_cycle_config() -> CycleConfig:
    """Return the global CycleConfig singleton, loading it on first call.

    Thread-safe.  Use ``reload_cycle_config()`` to refresh after YAML changes.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_cycle_config()
    return _config


def reload_cycle_config(path: Path | None = None) -> CycleConfig:
    """Reload the cycle config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Args:
        path: Override path to YAML. Defaults to bundled cycle_config.yaml.

    Returns:
        The newly loaded CycleConfig.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_cycle_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded cycle config: %s → %s", old_version, new_config.version)
    return new_config
