"""Cycle prediction endpoints: next period, fertile window, insights, status.

The POST endpoints are stateless: the caller posts the period (and optionally
symptom) history and receives freshly computed results.  The GET endpoint
reads the history stored in the remote period API instead.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter

from src.cycles.models import CyclePhase
from src.cycles.prediction import (
    average_cycle_length,
    average_period_length,
    current_cycle_day,
    cycle_progress,
    sort_history,
)
from src.cycles.sources import load_history
from src.dependencies import Engine, Insights, Periods
from src.models.cycles import (
    CycleInsightsRead,
    CyclePredictionRead,
    CycleRequest,
    CycleStatusRead,
    FertilityPredictionRead,
)

router = APIRouter(prefix="/cycles", tags=["cycles"])
logger = logging.getLogger("fitglide.routers.cycles")


def _today(body: CycleRequest) -> date:
    return body.today or date.today()


@router.post("/prediction", response_model=CyclePredictionRead)
async def next_period(body: CycleRequest, engine: Engine) -> Any:
    prediction = engine.predict_next_period(body.periods(), _today(body))
    return CyclePredictionRead.model_validate(prediction)


@router.post("/fertility", response_model=FertilityPredictionRead)
async def fertility_window(body: CycleRequest, engine: Engine) -> Any:
    today = _today(body)
    fertility = engine.predict_fertility_window(body.periods(), today)
    return FertilityPredictionRead(
        fertile_start=fertility.fertile_start,
        fertile_end=fertility.fertile_end,
        ovulation_date=fertility.ovulation_date,
        confidence=fertility.confidence,
        in_window=fertility.contains(today),
    )


@router.post("/insights", response_model=CycleInsightsRead)
async def insights(body: CycleRequest, generator: Insights) -> Any:
    cycle_insights, health_correlations = generator.generate_insights(
        body.periods(), body.symptom_records(), _today(body)
    )
    return CycleInsightsRead(
        cycle_insights=cycle_insights, health_correlations=health_correlations
    )


@router.post("/status", response_model=CycleStatusRead)
async def status(body: CycleRequest, engine: Engine) -> Any:
    today = _today(body)
    records = sort_history(body.periods())

    cycle_day = current_cycle_day(today, records[-1].start_date) if records else None
    # no phase when today precedes the last logged period start
    phase = None
    if cycle_day is not None and cycle_day >= 1:
        phase = CyclePhase.for_cycle_day(cycle_day)
    logger.debug("Cycle status for %d records as of %s", len(records), today)

    return CycleStatusRead(
        today=today,
        current_cycle_day=cycle_day,
        cycle_phase=phase.value if phase is not None else None,
        cycle_progress=cycle_progress(records, today),
        average_cycle_length=average_cycle_length(records),
        average_period_length=average_period_length(records),
        in_fertility_window=engine.is_in_fertility_window(today, records),
    )


@router.get("/users/{user_id}/prediction", response_model=CyclePredictionRead)
async def stored_prediction(
    user_id: str, engine: Engine, repository: Periods, today: date | None = None
) -> Any:
    """Predict from the period history stored remotely for ``user_id``."""
    today = today or date.today()
    result = await load_history(None, repository, user_id, today, engine.config)
    logger.info("Loaded %d stored periods for user %s", len(result.records), user_id)
    prediction = engine.predict_next_period(result.records, today)
    return CyclePredictionRead.model_validate(prediction)
