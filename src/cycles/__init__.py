"""Menstrual cycle tracking for Fitglide.

This package predicts the next period and fertile window from period
history, and turns predictions and logged symptoms into readable insights.

Modules:
    models        — Period/symptom records and derived prediction types
    prediction    — Cycle prediction engine (weighted average, trend, confidence)
    insights      — Cycle insights and health correlations
    sources       — Device health / remote API collaborators and history loading
    store         — In-memory history with recompute-on-write
    config_loader — Load/validate/hot-reload cycle_config.yaml
"""

from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.insights import InsightGenerator, generate_insights
from src.cycles.models import (
    ConfidenceLabel,
    CycleInsights,
    CyclePhase,
    CyclePrediction,
    CycleTrend,
    FertilityPrediction,
    FlowIntensity,
    PeriodRecord,
    SymptomRecord,
    SymptomSeverity,
)
from src.cycles.prediction import (
    CyclePredictionEngine,
    is_in_fertility_window,
    predict_fertility_window,
    predict_next_period,
)
from src.cycles.store import CycleSnapshot, CycleStore

__all__ = [
    "CycleConfig",
    "get_cycle_config",
    "CyclePredictionEngine",
    "predict_next_period",
    "predict_fertility_window",
    "is_in_fertility_window",
    "InsightGenerator",
    "generate_insights",
    "CycleStore",
    "CycleSnapshot",
    "PeriodRecord",
    "SymptomRecord",
    "FlowIntensity",
    "SymptomSeverity",
    "ConfidenceLabel",
    "CyclePhase",
    "CyclePrediction",
    "CycleTrend",
    "FertilityPrediction",
    "CycleInsights",
]
