"""Cycle prediction engine.

Forecasts the next period onset from period history using:
- A recency-weighted average cycle length (most recent cycle weighs 1.0,
  each older cycle 0.8× the one after it)
- A trend adjustment comparing the earlier and later halves of history
- Cycle-length variability to score confidence and size the forecast window

The fertile window is derived from the forecast with a fixed ovulation day
of 14 and a window running from 5 days before ovulation to 1 day after.

Every operation is a pure function of its inputs.  ``today`` is always an
explicit argument so results never depend on the system clock.
"""

from __future__ import annotations

import logging
import math
import statistics
from datetime import date, timedelta
from typing import Iterable, Sequence

from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.models import (
    ConfidenceLabel,
    CyclePrediction,
    CycleTrend,
    FertilityPrediction,
    PeriodRecord,
)

logger = logging.getLogger("fitglide.cycles.prediction")

RECENCY_WEIGHT_BASE = 0.8
RECENT_CYCLES = 3
MIN_TREND_LENGTHS = 4
TREND_STABLE_DAYS = 1.0
TREND_FULL_STRENGTH_DAYS = 5.0
TREND_ADJUSTMENT_FACTOR = 0.5
SIGNIFICANT_TREND_STRENGTH = 0.3

FULL_CONFIDENCE_RECORDS = 6.0
VARIABILITY_PENALTY_DAYS = 7.0
MAX_VARIABILITY_PENALTY = 0.3
MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0
FALLBACK_CONFIDENCE = 0.3

MIN_INTERVAL_DAYS = 3.0
INTERVAL_VARIABILITY_FACTOR = 1.5
HIGH_VARIABILITY_DAYS = 5.0

DEFAULT_CYCLE_LENGTH = 28
DEFAULT_PERIOD_LENGTH = 5

OVULATION_DAY = 14
FERTILE_DAYS_BEFORE_OVULATION = 5
FERTILE_DAYS_AFTER_OVULATION = 1
FERTILITY_CONFIDENCE_FACTOR = 0.8

INSUFFICIENT_DATA_REASONING = "insufficient data"


# ---------------------------------------------------------------------------
# Statistics over cycle lengths
# ---------------------------------------------------------------------------


def sort_history(history: Iterable[PeriodRecord]) -> list[PeriodRecord]:
    """Return a new list of records sorted ascending by start date."""
    return sorted(history, key=lambda r: r.start_date)


def round_days(value: float) -> int:
    """Round to the nearest whole day, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def cycle_lengths(records: Sequence[PeriodRecord]) -> list[int]:
    """Days between consecutive period onsets.

    Args:
        records: Period records sorted ascending by start date.

    Returns:
        ``len(records) - 1`` cycle lengths, oldest first.
    """
    return [
        (later.start_date - earlier.start_date).days
        for earlier, later in zip(records, records[1:])
    ]


def weighted_average_cycle_length(lengths: Sequence[int]) -> float:
    """Recency-weighted mean: the i-th length (oldest first) weighs 0.8^(n-1-i)."""
    if not lengths:
        return float(DEFAULT_CYCLE_LENGTH)
    n = len(lengths)
    weights = [RECENCY_WEIGHT_BASE ** (n - 1 - i) for i in range(n)]
    return sum(l * w for l, w in zip(lengths, weights)) / sum(weights)


def recent_average_cycle_length(lengths: Sequence[int]) -> float:
    """Plain mean of the last three cycle lengths (or all, if fewer)."""
    if not lengths:
        return float(DEFAULT_CYCLE_LENGTH)
    return statistics.mean(lengths[-RECENT_CYCLES:])


def calculate_trend(lengths: Sequence[int]) -> CycleTrend:
    """Compare the mean of the later half of history against the earlier half.

    Fewer than four lengths is always stable.  With an odd count the
    earlier half takes the smaller share.
    """
    if len(lengths) < MIN_TREND_LENGTHS:
        return CycleTrend()

    mid = len(lengths) // 2
    earlier_mean = statistics.mean(lengths[:mid])
    later_mean = statistics.mean(lengths[mid:])
    difference = later_mean - earlier_mean
    strength = min(abs(difference) / TREND_FULL_STRENGTH_DAYS, 1.0)

    if abs(difference) < TREND_STABLE_DAYS:
        return CycleTrend(direction="stable", adjustment=0.0, strength=strength)

    direction = "increasing" if difference > 0 else "decreasing"
    return CycleTrend(
        direction=direction,
        adjustment=difference * TREND_ADJUSTMENT_FACTOR,
        strength=strength,
    )


def calculate_variability(lengths: Sequence[int]) -> float:
    """Population standard deviation of cycle lengths (0.0 with < 2 values)."""
    if len(lengths) < 2:
        return 0.0
    return statistics.pstdev(lengths)


def calculate_confidence(record_count: int, variability: float) -> float:
    """Data-volume score minus a variability penalty, clamped to [0.1, 1.0]."""
    data_score = min(record_count / FULL_CONFIDENCE_RECORDS, 1.0)
    penalty = min(variability / VARIABILITY_PENALTY_DAYS, MAX_VARIABILITY_PENALTY)
    return max(MIN_CONFIDENCE, min(data_score - penalty, MAX_CONFIDENCE))


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def current_cycle_day(today: date, last_period_start: date) -> int:
    """Day within the current cycle, 1 on the day the last period started."""
    return (today - last_period_start).days + 1


def average_cycle_length(history: Iterable[PeriodRecord]) -> float:
    """Unweighted mean cycle length, 28 with fewer than two records."""
    lengths = cycle_lengths(sort_history(history))
    if not lengths:
        return float(DEFAULT_CYCLE_LENGTH)
    return statistics.mean(lengths)


def average_period_length(history: Iterable[PeriodRecord]) -> float:
    """Mean bleeding duration, 5 with no records."""
    durations = [r.duration_days for r in history]
    if not durations:
        return float(DEFAULT_PERIOD_LENGTH)
    return statistics.mean(durations)


def cycle_progress(history: Iterable[PeriodRecord], today: date) -> float:
    """Fraction of the average cycle elapsed, clamped to [0.0, 1.0]."""
    records = sort_history(history)
    if not records:
        return 0.0
    day = current_cycle_day(today, records[-1].start_date)
    return max(0.0, min(day / average_cycle_length(records), 1.0))


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class CyclePredictionEngine:
    """Predict next period and fertile window from period history.

    The engine holds only its configuration; it keeps no state between
    calls and is safe to share.

    Usage::

        engine = CyclePredictionEngine()
        prediction = engine.predict_next_period(history, today=date(2026, 3, 1))
        print(prediction.predicted_date, prediction.confidence_label)
        window = engine.predict_fertility_window(history, today=date(2026, 3, 1))
    """

    def __init__(self, config: CycleConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    @property
    def config(self) -> CycleConfig:
        return self._config

    def predict_next_period(
        self, history: Iterable[PeriodRecord], today: date
    ) -> CyclePrediction:
        """Forecast the next period onset.

        Args:
            history: Period records in any order.
            today:   Reference date (only used when history is empty).

        Returns:
            CyclePrediction; a low-confidence 28-day fallback when fewer
            than two records are available.
        """
        records = sort_history(history)

        if len(records) < 2:
            return self._fallback_prediction(records, today)

        lengths = cycle_lengths(records)
        weighted = weighted_average_cycle_length(lengths)
        recent = recent_average_cycle_length(lengths)
        trend = calculate_trend(lengths)
        variability = calculate_variability(lengths)

        predicted = (
            records[-1].start_date
            + timedelta(days=round_days(weighted))
            + timedelta(days=round_days(trend.adjustment))
        )

        confidence = calculate_confidence(len(records), variability)
        half_width = timedelta(
            days=round_days(max(MIN_INTERVAL_DAYS, variability * INTERVAL_VARIABILITY_FACTOR))
        )

        logger.debug(
            "Predicted %s from %d records (weighted=%.2f, trend=%s %.2f, sd=%.2f)",
            predicted, len(records), weighted, trend.direction, trend.adjustment, variability,
        )

        return CyclePrediction(
            predicted_date=predicted,
            confidence=confidence,
            confidence_label=ConfidenceLabel.from_confidence(confidence),
            reasoning=self._reasoning(len(records), weighted, trend, variability),
            interval_low=predicted - half_width,
            interval_high=predicted + half_width,
            weighted_average=weighted,
            recent_average=recent,
            trend=trend,
            variability=variability,
            records_used=len(records),
            warnings=self._length_warnings(lengths),
        )

    def predict_fertility_window(
        self, history: Iterable[PeriodRecord], today: date
    ) -> FertilityPrediction:
        """Derive the fertile window from the next-period forecast.

        Ovulation is placed 14 days before the predicted onset; the window
        runs from 5 days before ovulation through 1 day after it.
        """
        prediction = self.predict_next_period(history, today)
        predicted = prediction.predicted_date

        if self._config.fertile_window.ovulation_anchor == "today_pivot":
            days_until_period = (predicted - today).days
            ovulation = predicted - timedelta(days=days_until_period - OVULATION_DAY)
        else:
            ovulation = predicted - timedelta(days=OVULATION_DAY)

        return FertilityPrediction(
            fertile_start=ovulation - timedelta(days=FERTILE_DAYS_BEFORE_OVULATION),
            fertile_end=ovulation + timedelta(days=FERTILE_DAYS_AFTER_OVULATION),
            ovulation_date=ovulation,
            confidence=prediction.confidence * FERTILITY_CONFIDENCE_FACTOR,
        )

    def is_in_fertility_window(
        self, today: date, history: Iterable[PeriodRecord]
    ) -> bool:
        return self.predict_fertility_window(history, today).contains(today)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fallback_prediction(
        self, records: list[PeriodRecord], today: date
    ) -> CyclePrediction:
        anchor = records[-1].start_date if records else today
        predicted = anchor + timedelta(days=DEFAULT_CYCLE_LENGTH)
        half_width = timedelta(days=int(MIN_INTERVAL_DAYS))
        logger.debug("Only %d period record(s); using 28-day fallback", len(records))
        return CyclePrediction(
            predicted_date=predicted,
            confidence=FALLBACK_CONFIDENCE,
            confidence_label=ConfidenceLabel.low,
            reasoning=INSUFFICIENT_DATA_REASONING,
            interval_low=predicted - half_width,
            interval_high=predicted + half_width,
            records_used=len(records),
        )

    @staticmethod
    def _reasoning(
        record_count: int, weighted: float, trend: CycleTrend, variability: float
    ) -> str:
        parts = [
            f"Based on {record_count} recorded periods with an average cycle "
            f"length of {weighted:.1f} days"
        ]
        if trend.strength > SIGNIFICANT_TREND_STRENGTH:
            parts.append(f"your cycles are trending {trend.direction}")
        if variability > HIGH_VARIABILITY_DAYS:
            parts.append(
                f"cycle length shows moderate to high variability (±{variability:.1f} days)"
            )
        else:
            parts.append(f"your cycles are regular (±{variability:.1f} days)")
        return "; ".join(parts) + "."

    def _length_warnings(self, lengths: Sequence[int]) -> list[str]:
        pc = self._config.prediction
        warnings: list[str] = []
        short = [l for l in lengths if l < pc.min_cycle_days]
        long = [l for l in lengths if l > pc.max_cycle_days]
        if short:
            warnings.append(
                f"Short cycle detected: {min(short)} days (below {pc.min_cycle_days} day minimum)"
            )
        if long:
            warnings.append(
                f"Long cycle detected: {max(long)} days (above {pc.max_cycle_days} day maximum)"
            )
        return warnings


# ---------------------------------------------------------------------------
# Module-level shortcuts using the global cycle config
# ---------------------------------------------------------------------------


def predict_next_period(history: Iterable[PeriodRecord], today: date) -> CyclePrediction:
    return CyclePredictionEngine().predict_next_period(history, today)


def predict_fertility_window(
    history: Iterable[PeriodRecord], today: date
) -> FertilityPrediction:
    return CyclePredictionEngine().predict_fertility_window(history, today)


def is_in_fertility_window(today: date, history: Iterable[PeriodRecord]) -> bool:
    return CyclePredictionEngine().is_in_fertility_window(today, history)
