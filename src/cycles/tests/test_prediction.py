"""Tests for the cycle prediction engine: next period, trend, confidence,
and fertile window."""

from __future__ import annotations

import random
from datetime import date, timedelta

import pytest

from src.cycles.config_loader import CycleConfig, FertileWindowConfig
from src.cycles.models import ConfidenceLabel, PeriodRecord
from src.cycles.prediction import (
    CyclePredictionEngine,
    average_cycle_length,
    average_period_length,
    calculate_confidence,
    calculate_trend,
    calculate_variability,
    current_cycle_day,
    cycle_lengths,
    cycle_progress,
    is_in_fertility_window,
    predict_next_period,
    recent_average_cycle_length,
    round_days,
    weighted_average_cycle_length,
)
from src.cycles.tests.conftest import TEST_DATE, build_history, make_period


# ---------------------------------------------------------------------------
# Cycle-length statistics
# ---------------------------------------------------------------------------


class TestCycleStatistics:
    def test_cycle_lengths_between_consecutive_onsets(self) -> None:
        records = build_history([28, 30, 26])
        assert cycle_lengths(records) == [28, 30, 26]

    def test_single_length_weighted_average_is_that_length(self) -> None:
        assert weighted_average_cycle_length([28]) == pytest.approx(28.0)

    def test_weighted_average_favours_recent_cycles(self) -> None:
        # (20 * 0.8 + 30 * 1.0) / 1.8
        assert weighted_average_cycle_length([20, 30]) == pytest.approx(46 / 1.8)
        assert weighted_average_cycle_length([20, 30]) > 25.0

    def test_recent_average_uses_last_three(self) -> None:
        assert recent_average_cycle_length([40, 27, 28, 29]) == pytest.approx(28.0)
        assert recent_average_cycle_length([26, 30]) == pytest.approx(28.0)

    def test_variability_is_population_std(self) -> None:
        assert calculate_variability([26, 30]) == pytest.approx(2.0)
        assert calculate_variability([28, 28, 28]) == 0.0
        assert calculate_variability([28]) == 0.0

    @pytest.mark.parametrize(
        "value, expected",
        [(2.5, 3), (-2.5, -3), (5.25, 5), (33.24, 33), (-0.4, 0), (0.5, 1)],
    )
    def test_round_days_half_away_from_zero(self, value: float, expected: int) -> None:
        assert round_days(value) == expected


class TestTrend:
    def test_fewer_than_four_lengths_is_stable(self) -> None:
        trend = calculate_trend([20, 30, 40])
        assert trend.direction == "stable"
        assert trend.adjustment == 0.0
        assert trend.strength == 0.0

    def test_identical_lengths_are_stable(self) -> None:
        trend = calculate_trend([28, 28, 28, 28, 28])
        assert trend.direction == "stable"
        assert trend.adjustment == 0.0

    def test_small_difference_is_stable(self) -> None:
        trend = calculate_trend([28, 28, 28, 29])  # halves 28.0 vs 28.5
        assert trend.direction == "stable"
        assert trend.adjustment == 0.0
        assert trend.strength == pytest.approx(0.1)

    def test_decreasing_trend(self) -> None:
        trend = calculate_trend([30, 30, 28, 28])
        assert trend.direction == "decreasing"
        assert trend.adjustment == pytest.approx(-1.0)
        assert trend.strength == pytest.approx(0.4)

    def test_odd_count_gives_earlier_half_the_smaller_share(self) -> None:
        # earlier [25, 26] → 25.5, later [35, 36, 37] → 36.0
        trend = calculate_trend([25, 26, 35, 36, 37])
        assert trend.direction == "increasing"
        assert trend.adjustment == pytest.approx(5.25)
        assert trend.strength == pytest.approx(1.0)


class TestConfidence:
    @pytest.mark.parametrize(
        "confidence, label",
        [
            (0.69, ConfidenceLabel.medium),
            (0.70, ConfidenceLabel.high),
            (1.0, ConfidenceLabel.high),
            (0.4, ConfidenceLabel.medium),
            (0.39, ConfidenceLabel.low),
            (0.1, ConfidenceLabel.low),
        ],
    )
    def test_label_thresholds(self, confidence: float, label: ConfidenceLabel) -> None:
        assert ConfidenceLabel.from_confidence(confidence) == label

    def test_confidence_clamped_to_minimum(self) -> None:
        assert calculate_confidence(1, 10.0) == pytest.approx(0.1)

    def test_variability_penalty_capped(self) -> None:
        assert calculate_confidence(6, 100.0) == pytest.approx(0.7)

    def test_confidence_never_decreases_with_more_regular_data(
        self, engine: CyclePredictionEngine
    ) -> None:
        previous = 0.0
        for n in range(2, 10):
            history = build_history([28] * (n - 1))
            confidence = engine.predict_next_period(history, TEST_DATE).confidence
            assert confidence >= previous
            previous = confidence
        assert previous == pytest.approx(1.0)


# ---------------------------------------------------------------------------
# Next period prediction
# ---------------------------------------------------------------------------


class TestPredictNextPeriod:
    def test_empty_history_falls_back_to_today(self, engine: CyclePredictionEngine) -> None:
        prediction = engine.predict_next_period([], TEST_DATE)
        assert prediction.predicted_date == TEST_DATE + timedelta(days=28)
        assert prediction.confidence == pytest.approx(0.3)
        assert prediction.confidence_label == ConfidenceLabel.low
        assert prediction.reasoning == "insufficient data"
        assert prediction.interval_low == prediction.predicted_date - timedelta(days=3)
        assert prediction.interval_high == prediction.predicted_date + timedelta(days=3)

    def test_single_record_falls_back_to_last_start(
        self, engine: CyclePredictionEngine
    ) -> None:
        record = make_period(date(2026, 2, 1))
        prediction = engine.predict_next_period([record], TEST_DATE)
        assert prediction.predicted_date == date(2026, 3, 1)
        assert prediction.confidence == pytest.approx(0.3)
        assert prediction.confidence_label == ConfidenceLabel.low
        assert prediction.records_used == 1

    def test_two_records_28_days_apart(self, engine: CyclePredictionEngine) -> None:
        history = build_history([28])
        prediction = engine.predict_next_period(history, TEST_DATE)
        assert prediction.weighted_average == pytest.approx(28.0)
        assert prediction.trend.direction == "stable"
        assert prediction.predicted_date == history[-1].start_date + timedelta(days=28)
        assert prediction.confidence == pytest.approx(2 / 6)
        assert prediction.confidence_label == ConfidenceLabel.low

    def test_perfectly_regular_six_records(
        self, engine: CyclePredictionEngine, regular_history: list[PeriodRecord]
    ) -> None:
        prediction = engine.predict_next_period(regular_history, TEST_DATE)
        expected = regular_history[-1].start_date + timedelta(days=28)
        assert prediction.variability == 0.0
        assert prediction.trend.direction == "stable"
        assert prediction.trend.adjustment == 0.0
        assert prediction.confidence == pytest.approx(1.0)
        assert prediction.confidence_label == ConfidenceLabel.high
        assert prediction.predicted_date == expected
        assert prediction.interval_low == expected - timedelta(days=3)
        assert prediction.interval_high == expected + timedelta(days=3)
        assert "regular" in prediction.reasoning

    def test_upward_trend_shifts_prediction_later(
        self, engine: CyclePredictionEngine, lengthening_history: list[PeriodRecord]
    ) -> None:
        prediction = engine.predict_next_period(lengthening_history, TEST_DATE)
        last_start = lengthening_history[-1].start_date
        raw_date = last_start + timedelta(days=round_days(prediction.weighted_average))

        assert prediction.trend.direction == "increasing"
        assert prediction.trend.strength == pytest.approx(1.0)
        assert prediction.weighted_average == pytest.approx(111.752 / 3.3616)
        assert prediction.predicted_date > raw_date
        assert prediction.predicted_date == last_start + timedelta(days=33 + 5)

    def test_variable_history_widens_interval_and_lowers_confidence(
        self, engine: CyclePredictionEngine, lengthening_history: list[PeriodRecord]
    ) -> None:
        prediction = engine.predict_next_period(lengthening_history, TEST_DATE)
        # pstdev([25, 26, 35, 36, 37]) ≈ 5.19 → half-width round(7.79) = 8
        assert prediction.variability == pytest.approx(5.1923, abs=1e-3)
        assert (prediction.interval_high - prediction.predicted_date).days == 8
        assert (prediction.predicted_date - prediction.interval_low).days == 8
        assert prediction.confidence == pytest.approx(0.7)
        assert "increasing" in prediction.reasoning
        assert "variability" in prediction.reasoning
        assert "6 recorded periods" in prediction.reasoning
        assert "33.2" in prediction.reasoning

    def test_unsorted_history_is_sorted_first(
        self, engine: CyclePredictionEngine, lengthening_history: list[PeriodRecord]
    ) -> None:
        shuffled = list(lengthening_history)
        random.Random(7).shuffle(shuffled)
        assert engine.predict_next_period(shuffled, TEST_DATE) == engine.predict_next_period(
            lengthening_history, TEST_DATE
        )

    def test_input_history_is_not_mutated(
        self, engine: CyclePredictionEngine, regular_history: list[PeriodRecord]
    ) -> None:
        reversed_history = list(reversed(regular_history))
        snapshot = list(reversed_history)
        engine.predict_next_period(reversed_history, TEST_DATE)
        assert reversed_history == snapshot

    def test_prediction_ignores_today_with_enough_history(
        self, engine: CyclePredictionEngine, regular_history: list[PeriodRecord]
    ) -> None:
        a = engine.predict_next_period(regular_history, date(2025, 11, 1))
        b = engine.predict_next_period(regular_history, date(2026, 6, 1))
        assert a == b

    def test_short_cycles_flagged(self, engine: CyclePredictionEngine) -> None:
        prediction = engine.predict_next_period(build_history([20, 20, 20]), TEST_DATE)
        assert any("short" in w.lower() for w in prediction.warnings)

    def test_long_cycles_flagged(self, engine: CyclePredictionEngine) -> None:
        prediction = engine.predict_next_period(build_history([28, 50]), TEST_DATE)
        assert any("long" in w.lower() for w in prediction.warnings)

    def test_regular_cycles_have_no_warnings(
        self, engine: CyclePredictionEngine, regular_history: list[PeriodRecord]
    ) -> None:
        assert engine.predict_next_period(regular_history, TEST_DATE).warnings == []

    def test_module_level_shortcut_matches_engine(
        self, engine: CyclePredictionEngine, regular_history: list[PeriodRecord]
    ) -> None:
        assert predict_next_period(regular_history, TEST_DATE) == engine.predict_next_period(
            regular_history, TEST_DATE
        )


# ---------------------------------------------------------------------------
# Fertile window
# ---------------------------------------------------------------------------


class TestFertilityWindow:
    def test_window_is_six_days_wide(
        self, engine: CyclePredictionEngine, regular_history: list[PeriodRecord]
    ) -> None:
        for history in ([], regular_history[:1], regular_history, build_history([25, 26, 35, 36, 37])):
            window = engine.predict_fertility_window(history, TEST_DATE)
            assert window.fertile_end - window.fertile_start == timedelta(days=6)

    def test_ovulation_fourteen_days_before_predicted_period(
        self, engine: CyclePredictionEngine, regular_history: list[PeriodRecord]
    ) -> None:
        prediction = engine.predict_next_period(regular_history, TEST_DATE)
        window = engine.predict_fertility_window(regular_history, TEST_DATE)
        assert window.ovulation_date == prediction.predicted_date - timedelta(days=14)
        assert window.fertile_start == window.ovulation_date - timedelta(days=5)
        assert window.fertile_end == window.ovulation_date + timedelta(days=1)

    def test_confidence_scaled_from_period_prediction(
        self, engine: CyclePredictionEngine, regular_history: list[PeriodRecord]
    ) -> None:
        window = engine.predict_fertility_window(regular_history, TEST_DATE)
        assert window.confidence == pytest.approx(0.8)

    def test_in_window_on_ovulation_day(
        self, engine: CyclePredictionEngine, regular_history: list[PeriodRecord]
    ) -> None:
        window = engine.predict_fertility_window(regular_history, TEST_DATE)
        assert engine.is_in_fertility_window(window.ovulation_date, regular_history)
        assert engine.is_in_fertility_window(window.fertile_start, regular_history)
        assert engine.is_in_fertility_window(window.fertile_end, regular_history)

    def test_not_in_window_outside_bounds(
        self, engine: CyclePredictionEngine, regular_history: list[PeriodRecord]
    ) -> None:
        window = engine.predict_fertility_window(regular_history, TEST_DATE)
        day_before = window.fertile_start - timedelta(days=1)
        day_after = window.fertile_end + timedelta(days=1)
        assert not engine.is_in_fertility_window(day_before, regular_history)
        assert not engine.is_in_fertility_window(day_after, regular_history)
        assert not is_in_fertility_window(day_before, regular_history)

    def test_today_pivot_anchor_reproduces_legacy_arithmetic(
        self, regular_history: list[PeriodRecord]
    ) -> None:
        config = CycleConfig(
            version="test", fertile_window=FertileWindowConfig(ovulation_anchor="today_pivot")
        )
        legacy = CyclePredictionEngine(config)
        today = date(2025, 10, 25)
        window = legacy.predict_fertility_window(regular_history, today)
        prediction = legacy.predict_next_period(regular_history, today)
        days_until = (prediction.predicted_date - today).days
        assert window.ovulation_date == prediction.predicted_date - timedelta(days=days_until - 14)
        assert window.ovulation_date == today + timedelta(days=14)
        assert window.fertile_end - window.fertile_start == timedelta(days=6)


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


class TestDerivedHelpers:
    def test_current_cycle_day_is_one_indexed(self) -> None:
        assert current_cycle_day(date(2026, 2, 1), date(2026, 2, 1)) == 1
        assert current_cycle_day(date(2026, 2, 10), date(2026, 2, 1)) == 10

    def test_average_cycle_length_defaults(self) -> None:
        assert average_cycle_length([]) == 28
        assert average_cycle_length([make_period(date(2026, 1, 1))]) == 28

    def test_average_cycle_length_is_unweighted(self) -> None:
        assert average_cycle_length(build_history([20, 30])) == pytest.approx(25.0)

    def test_average_period_length(self) -> None:
        assert average_period_length([]) == 5
        records = [make_period(date(2026, 1, 1), 4), make_period(date(2026, 1, 29), 6)]
        assert average_period_length(records) == pytest.approx(5.0)

    def test_cycle_progress_midway(self, regular_history: list[PeriodRecord]) -> None:
        today = regular_history[-1].start_date + timedelta(days=13)  # day 14 of 28
        assert cycle_progress(regular_history, today) == pytest.approx(0.5)

    def test_cycle_progress_clamped(self, regular_history: list[PeriodRecord]) -> None:
        last_start = regular_history[-1].start_date
        assert cycle_progress(regular_history, last_start + timedelta(days=60)) == 1.0
        assert cycle_progress(regular_history, last_start - timedelta(days=10)) == 0.0
        assert cycle_progress([], TEST_DATE) == 0.0
