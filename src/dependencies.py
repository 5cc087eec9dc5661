"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends

from src.config import Settings, get_settings
from src.cycles.config_loader import CycleConfig, get_cycle_config, load_cycle_config
from src.cycles.insights import InsightGenerator
from src.cycles.prediction import CyclePredictionEngine
from src.cycles.sources import PeriodRepository, StrapiPeriodRepository


@lru_cache
def _override_config(path: str) -> CycleConfig:
    return load_cycle_config(Path(path))


def get_engine(settings: Annotated[Settings, Depends(get_settings)]) -> CyclePredictionEngine:
    """Build the prediction engine, honouring a configured YAML override."""
    if settings.cycle_config_path:
        return CyclePredictionEngine(_override_config(settings.cycle_config_path))
    return CyclePredictionEngine(get_cycle_config())


def get_insight_generator(
    engine: Annotated[CyclePredictionEngine, Depends(get_engine)],
) -> InsightGenerator:
    return InsightGenerator(engine)


def get_period_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> PeriodRepository:
    return StrapiPeriodRepository(
        settings.strapi_base_url,
        api_token=settings.strapi_api_token or None,
        timeout=settings.request_timeout_seconds,
    )


# Annotated shortcuts for route signatures
Engine = Annotated[CyclePredictionEngine, Depends(get_engine)]
Insights = Annotated[InsightGenerator, Depends(get_insight_generator)]
Periods = Annotated[PeriodRepository, Depends(get_period_repository)]
