"""Pydantic request/response models for the cycle prediction endpoints."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import Field

from src.cycles.models import (
    ConfidenceLabel,
    FlowIntensity,
    PeriodRecord,
    SymptomRecord,
    SymptomSeverity,
)
from src.models.base import FitglideBase


# ---------- Requests ----------

class PeriodRecordIn(FitglideBase):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    start_date: date
    duration_days: int = Field(..., gt=0, le=31)
    flow_intensity: FlowIntensity = FlowIntensity.medium

    def to_domain(self) -> PeriodRecord:
        return PeriodRecord(
            id=self.id,
            start_date=self.start_date,
            duration_days=self.duration_days,
            flow_intensity=self.flow_intensity,
        )


class SymptomRecordIn(FitglideBase):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1, max_length=100)
    severity: SymptomSeverity = SymptomSeverity.mild
    date: datetime

    def to_domain(self) -> SymptomRecord:
        return SymptomRecord(
            id=self.id, name=self.name, severity=self.severity, date=self.date
        )


class CycleRequest(FitglideBase):
    history: list[PeriodRecordIn] = Field(default_factory=list)
    symptoms: list[SymptomRecordIn] = Field(default_factory=list)
    today: date | None = None  # defaults to the server's current date

    def periods(self) -> list[PeriodRecord]:
        return [p.to_domain() for p in self.history]

    def symptom_records(self) -> list[SymptomRecord]:
        return [s.to_domain() for s in self.symptoms]


# ---------- Responses ----------

class CycleTrendRead(FitglideBase):
    direction: str
    adjustment: float
    strength: float


class CyclePredictionRead(FitglideBase):
    predicted_date: date
    confidence: float
    confidence_label: ConfidenceLabel
    reasoning: str
    interval_low: date
    interval_high: date
    weighted_average: float
    recent_average: float
    trend: CycleTrendRead
    variability: float
    records_used: int
    warnings: list[str] = Field(default_factory=list)


class FertilityPredictionRead(FitglideBase):
    fertile_start: date
    fertile_end: date
    ovulation_date: date
    confidence: float
    in_window: bool


class CycleInsightsRead(FitglideBase):
    cycle_insights: list[str]
    health_correlations: list[str]


class CycleStatusRead(FitglideBase):
    today: date
    current_cycle_day: int | None = None
    cycle_phase: str | None = None
    cycle_progress: float
    average_cycle_length: float
    average_period_length: float
    in_fertility_window: bool
