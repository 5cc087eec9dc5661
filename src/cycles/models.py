"""Canonical data models for cycle tracking.

Period and symptom records are supplied by callers (user entry, the device
health source, the remote period API) and are never mutated in place;
an update is modelled as replacing the record.  Predictions are derived on
demand and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import NamedTuple


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class FlowIntensity(str, Enum):
    light = "light"
    medium = "medium"
    heavy = "heavy"

    @classmethod
    def from_health_value(cls, value: int) -> FlowIntensity:
        """Map a device health flow value (1 light, 2 medium, 3 heavy).

        Unspecified or unknown values fall back to medium.
        """
        return {1: cls.light, 2: cls.medium, 3: cls.heavy}.get(value, cls.medium)

    @classmethod
    def from_label(cls, label: str | None) -> FlowIntensity:
        """Case-insensitive lookup by name, medium when unrecognised."""
        try:
            return cls((label or "").strip().lower())
        except ValueError:
            return cls.medium


class SymptomSeverity(str, Enum):
    mild = "mild"
    moderate = "moderate"
    severe = "severe"


class ConfidenceLabel(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"

    @classmethod
    def from_confidence(cls, confidence: float) -> ConfidenceLabel:
        """Bucket a continuous confidence: ≥ 0.7 High, ≥ 0.4 Medium, else Low."""
        if confidence >= 0.7:
            return cls.high
        if confidence >= 0.4:
            return cls.medium
        return cls.low


class CyclePhase(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    ovulatory = "ovulatory"
    luteal = "luteal"

    @classmethod
    def for_cycle_day(cls, cycle_day: int) -> CyclePhase:
        """Classify a 1-indexed cycle day into its phase."""
        if 1 <= cycle_day <= 5:
            return cls.menstrual
        if 6 <= cycle_day <= 14:
            return cls.follicular
        if 15 <= cycle_day <= 17:
            return cls.ovulatory
        return cls.luteal


# Icons shown next to logged symptoms
SYMPTOM_ICONS: dict[str, str] = {
    "cramps": "bolt.fill",
    "bloating": "circle.fill",
    "fatigue": "bed.double.fill",
    "mood swings": "heart.fill",
    "headache": "brain.head.profile",
    "back pain": "figure.walk",
    "breast tenderness": "heart.circle.fill",
    "acne": "face.smiling",
}
DEFAULT_SYMPTOM_ICON = "exclamationmark.circle.fill"


def icon_for_symptom(name: str) -> str:
    return SYMPTOM_ICONS.get(name.strip().lower(), DEFAULT_SYMPTOM_ICON)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PeriodRecord:
    """A single period, from onset through the last bleeding day.

    Attributes:
        id:             Opaque identifier, unique per record.
        start_date:     First day of bleeding.
        duration_days:  Number of bleeding days (positive).
        flow_intensity: Reported flow.
        remote_id:      Id assigned by the remote period API, None until stored.
    """

    id: str
    start_date: date
    duration_days: int
    flow_intensity: FlowIntensity = FlowIntensity.medium
    remote_id: str | None = None

    def __post_init__(self) -> None:
        if self.duration_days <= 0:
            raise ValueError(
                f"duration_days must be positive, got {self.duration_days} for period {self.id}"
            )

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(days=self.duration_days - 1)


@dataclass(frozen=True)
class SymptomRecord:
    """A symptom logged by the user at a point in time."""

    id: str
    name: str
    severity: SymptomSeverity
    date: datetime

    @property
    def day(self) -> date:
        return self.date.date()

    @property
    def icon(self) -> str:
        return icon_for_symptom(self.name)


@dataclass
class SymptomHistoryEntry:
    """All symptom names logged on one calendar day."""

    date: date
    symptoms: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Derived predictions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CycleTrend:
    """Direction of change between the earlier and later halves of history.

    Attributes:
        direction:  'stable', 'increasing' or 'decreasing'.
        adjustment: Days added to the predicted date (half the difference).
        strength:   0.0–1.0, the difference scaled so 5 days = 1.0.
    """

    direction: str = "stable"
    adjustment: float = 0.0
    strength: float = 0.0


@dataclass
class CyclePrediction:
    """Forecast of the next period onset.

    Attributes:
        predicted_date:   Best estimate of the next period start.
        confidence:       0.1–1.0 confidence score.
        confidence_label: Low / Medium / High bucket of ``confidence``.
        reasoning:        Human-readable summary of the inputs.
        interval_low:     Earliest date of the confidence window.
        interval_high:    Latest date of the confidence window.
        weighted_average: Recency-weighted mean cycle length.
        recent_average:   Plain mean of the last three cycle lengths.
        trend:            Trend over the cycle-length history.
        variability:      Population standard deviation of cycle lengths.
        records_used:     Number of period records behind the prediction.
        warnings:         Flags such as unusually short or long cycles.
    """

    predicted_date: date
    confidence: float
    confidence_label: ConfidenceLabel
    reasoning: str
    interval_low: date
    interval_high: date
    weighted_average: float = 28.0
    recent_average: float = 28.0
    trend: CycleTrend = field(default_factory=CycleTrend)
    variability: float = 0.0
    records_used: int = 0
    warnings: list[str] = field(default_factory=list)


@dataclass
class FertilityPrediction:
    """Fertile window derived from a CyclePrediction."""

    fertile_start: date
    fertile_end: date
    ovulation_date: date
    confidence: float

    def contains(self, day: date) -> bool:
        return self.fertile_start <= day <= self.fertile_end


class CycleInsights(NamedTuple):
    """Natural-language insights, unpackable as (cycle, correlations)."""

    cycle_insights: list[str]
    health_correlations: list[str]
