"""Natural-language cycle insights and health correlations.

Turns period history, logged symptoms and the engine's predictions into
short sentences for display, such as:
- "Your cycles are very regular (±1.2 days of variation)"
- "Your fertile window begins in 4 days"
- "You log the most symptoms on cycle day 2"

The amount of detail scales with how much history is available: nothing,
one or two periods, or three or more.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from typing import Iterable, Sequence

from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.models import (
    ConfidenceLabel,
    CycleInsights,
    CyclePhase,
    PeriodRecord,
    SymptomRecord,
)
from src.cycles.prediction import (
    SIGNIFICANT_TREND_STRENGTH,
    CyclePredictionEngine,
    average_cycle_length,
    average_period_length,
    current_cycle_day,
    sort_history,
)

logger = logging.getLogger("fitglide.cycles.insights")

VERY_REGULAR_DAYS = 3.0
MODERATELY_REGULAR_DAYS = 7.0

NO_DATA_CYCLE_INSIGHTS = [
    "Not enough data yet: log your first period to start tracking your cycle",
    "Cycle predictions appear after at least two logged periods",
    "The more periods you log, the more accurate your predictions become",
]

NO_DATA_CORRELATIONS = [
    "Health correlations need more cycle data",
    "Log symptoms daily to discover patterns across your cycle",
    "Connect your health data to enrich cycle insights",
]

CONFIDENCE_GUIDANCE = {
    ConfidenceLabel.high: (
        "Prediction confidence is high: your recent cycles follow a consistent pattern"
    ),
    ConfidenceLabel.medium: (
        "Prediction confidence is medium: keep logging periods to sharpen the forecast"
    ),
    ConfidenceLabel.low: (
        "Prediction confidence is low: treat the predicted date as a rough estimate"
    ),
}

PHASE_DESCRIPTIONS = {
    CyclePhase.menstrual: "menstrual phase",
    CyclePhase.follicular: "follicular phase",
    CyclePhase.ovulatory: "ovulatory phase",
    CyclePhase.luteal: "luteal phase",
}

PHASE_TIPS = {
    CyclePhase.menstrual: "Energy is often lower during menstruation; favour rest and light movement",
    CyclePhase.follicular: "Workout performance tends to peak in the follicular phase",
    CyclePhase.ovulatory: "Energy often peaks around ovulation (days 12-16)",
    CyclePhase.luteal: "Cravings for sweets are more common in the luteal phase",
}


def format_date(day: date) -> str:
    """Format a date for display, e.g. 'March 5, 2026'."""
    return f"{day.strftime('%B')} {day.day}, {day.year}"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def regularity_label(variability: float) -> str:
    if variability <= VERY_REGULAR_DAYS:
        return "very regular"
    if variability <= MODERATELY_REGULAR_DAYS:
        return "moderately regular"
    return "irregular"


def symptom_cycle_days(
    symptoms: Iterable[SymptomRecord], last_period_start: date
) -> Counter:
    """Count symptoms per cycle day relative to the last period start.

    Symptoms logged before the last period started are not counted.
    """
    counts: Counter = Counter()
    for symptom in symptoms:
        day = current_cycle_day(symptom.day, last_period_start)
        if day >= 1:
            counts[day] += 1
    return counts


class InsightGenerator:
    """Generate cycle insights and health correlations.

    Usage::

        generator = InsightGenerator()
        cycle_insights, correlations = generator.generate_insights(
            history, symptoms, today=date(2026, 3, 1)
        )
    """

    def __init__(
        self,
        engine: CyclePredictionEngine | None = None,
        config: CycleConfig | None = None,
    ) -> None:
        self._config = config or (engine.config if engine else get_cycle_config())
        self._engine = engine or CyclePredictionEngine(self._config)

    def generate_insights(
        self,
        history: Iterable[PeriodRecord],
        symptoms: Sequence[SymptomRecord],
        today: date,
    ) -> CycleInsights:
        """Build insight strings appropriate to the amount of history.

        Args:
            history:  Period records in any order.
            symptoms: Logged symptoms (may be empty).
            today:    Reference date.

        Returns:
            CycleInsights(cycle_insights, health_correlations).
        """
        records = sort_history(history)

        if not records:
            return CycleInsights(list(NO_DATA_CYCLE_INSIGHTS), list(NO_DATA_CORRELATIONS))

        if len(records) < 3:
            return self._early_insights(records, today)

        return self._full_insights(records, symptoms, today)

    # ------------------------------------------------------------------
    # Limited history
    # ------------------------------------------------------------------

    def _early_insights(self, records: list[PeriodRecord], today: date) -> CycleInsights:
        prediction = self._engine.predict_next_period(records, today)
        cycle_insights = [
            f"You have logged {_plural(len(records), 'period')} so far",
            (
                f"Your average cycle length is {average_cycle_length(records):.0f} days "
                f"with {average_period_length(records):.0f} days of bleeding"
            ),
            (
                f"Your next period is predicted for {format_date(prediction.predicted_date)} "
                f"({prediction.confidence_label.value} confidence)"
            ),
        ]
        health_correlations = [
            "Keep tracking your periods to unlock health correlations",
            "Log at least 3 periods to see how regular your cycle is",
            "Logging symptoms helps reveal patterns across your cycle",
        ]
        return CycleInsights(cycle_insights, health_correlations)

    # ------------------------------------------------------------------
    # Full history
    # ------------------------------------------------------------------

    def _full_insights(
        self,
        records: list[PeriodRecord],
        symptoms: Sequence[SymptomRecord],
        today: date,
    ) -> CycleInsights:
        prediction = self._engine.predict_next_period(records, today)
        fertility = self._engine.predict_fertility_window(records, today)
        last_start = records[-1].start_date
        cycle_day = current_cycle_day(today, last_start)
        phase = CyclePhase.for_cycle_day(cycle_day)

        cycle_insights = [
            (
                f"Your cycles are {regularity_label(prediction.variability)} "
                f"(±{prediction.variability:.1f} days of variation)"
            ),
            (
                f"Your average cycle length is {average_cycle_length(records):.1f} days "
                f"with {average_period_length(records):.0f} days of bleeding"
            ),
            self._next_period_phrase(prediction.predicted_date, today),
            CONFIDENCE_GUIDANCE[prediction.confidence_label],
            f"You're on day {cycle_day} of your cycle, in the {PHASE_DESCRIPTIONS[phase]}",
        ]

        health_correlations: list[str] = []

        if fertility.contains(today):
            health_correlations.append("You are currently in your fertile window")
        else:
            days_until_fertile = (fertility.fertile_start - today).days
            if days_until_fertile > 0:
                health_correlations.append(
                    f"Your fertile window begins in {_plural(days_until_fertile, 'day')}"
                )

        if symptoms:
            health_correlations.extend(self._symptom_correlations(symptoms, last_start))

        if prediction.trend.strength > SIGNIFICANT_TREND_STRENGTH:
            change = "longer" if prediction.trend.direction == "increasing" else "shorter"
            health_correlations.append(
                f"Your cycles have been getting {change} ({prediction.trend.direction} trend), "
                "which can reflect hormonal or lifestyle changes such as stress or sleep"
            )

        health_correlations.append(PHASE_TIPS[phase])

        logger.debug(
            "Generated %d cycle insights and %d correlations from %d records",
            len(cycle_insights), len(health_correlations), len(records),
        )
        return CycleInsights(cycle_insights, health_correlations)

    @staticmethod
    def _next_period_phrase(predicted: date, today: date) -> str:
        days_until_next = (predicted - today).days
        if days_until_next <= 0:
            return "Your next period is expected today"
        return (
            f"Your next period is expected in {_plural(days_until_next, 'day')} "
            f"({format_date(predicted)})"
        )

    def _symptom_correlations(
        self, symptoms: Sequence[SymptomRecord], last_period_start: date
    ) -> list[str]:
        correlations = []

        top_n = self._config.insights.top_symptoms
        frequent = Counter(s.name for s in symptoms).most_common(top_n)
        summary = ", ".join(f"{name} ({count})" for name, count in frequent)
        correlations.append(f"Your most frequent symptoms: {summary}")

        by_day = symptom_cycle_days(symptoms, last_period_start)
        if by_day:
            peak_day = max(sorted(by_day), key=lambda d: by_day[d])
            correlations.append(
                f"Cycle day {peak_day} is your most symptomatic day "
                f"({_plural(by_day[peak_day], 'symptom')} logged)"
            )

        return correlations


def generate_insights(
    history: Iterable[PeriodRecord],
    symptoms: Sequence[SymptomRecord],
    today: date,
) -> CycleInsights:
    """Module-level shortcut using the global cycle config."""
    return InsightGenerator().generate_insights(history, symptoms, today)
