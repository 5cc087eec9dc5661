"""Shared fixtures and history builders for cycle engine tests."""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta
from pathlib import Path

import httpx
import pytest

from src.cycles.config_loader import CycleConfig, load_cycle_config
from src.cycles.insights import InsightGenerator
from src.cycles.models import FlowIntensity, PeriodRecord, SymptomRecord, SymptomSeverity
from src.cycles.prediction import CyclePredictionEngine

# Fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"

TEST_DATE = date(2026, 2, 23)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_period(
    start: date, duration: int = 5, flow: FlowIntensity = FlowIntensity.medium
) -> PeriodRecord:
    return PeriodRecord(
        id=f"period-{start.isoformat()}",
        start_date=start,
        duration_days=duration,
        flow_intensity=flow,
    )


def build_history(lengths: list[int], start: date = date(2025, 6, 1)) -> list[PeriodRecord]:
    """Build len(lengths) + 1 periods whose onsets are separated by ``lengths``."""
    records = [make_period(start)]
    for length in lengths:
        start = start + timedelta(days=length)
        records.append(make_period(start))
    return records


def make_symptom(name: str, when: datetime, severity: SymptomSeverity = SymptomSeverity.mild) -> SymptomRecord:
    return SymptomRecord(
        id=f"{name}-{when.isoformat()}", name=name, severity=severity, date=when
    )


# ---------------------------------------------------------------------------
# Config / engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cycle_config() -> CycleConfig:
    """Load the bundled cycle config for tests."""
    return load_cycle_config()


@pytest.fixture
def engine(cycle_config: CycleConfig) -> CyclePredictionEngine:
    return CyclePredictionEngine(cycle_config)


@pytest.fixture
def insight_generator(engine: CyclePredictionEngine) -> InsightGenerator:
    return InsightGenerator(engine)


# ---------------------------------------------------------------------------
# History fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def regular_history() -> list[PeriodRecord]:
    """Six periods exactly 28 days apart."""
    return build_history([28, 28, 28, 28, 28])


@pytest.fixture
def lengthening_history() -> list[PeriodRecord]:
    """Cycles clearly getting longer."""
    return build_history([25, 26, 35, 36, 37])


@pytest.fixture
def strapi_periods_raw() -> dict:
    return json.loads((FIXTURES_DIR / "strapi_periods.json").read_text())


# ---------------------------------------------------------------------------
# Remote period API
# ---------------------------------------------------------------------------


class InMemoryStrapi:
    """Minimal stand-in for the Strapi periods collection, served over httpx.MockTransport."""

    def __init__(self) -> None:
        self.rows: dict[int, dict] = {}
        self.requests: list[httpx.Request] = []
        self._next_id = 1

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            data = [{"id": rid, "attributes": attrs} for rid, attrs in sorted(self.rows.items())]
            return httpx.Response(200, json={"data": data})

        body = json.loads(request.content)["data"]
        if request.method == "POST":
            rid = self._next_id
            self._next_id += 1
        else:
            rid = int(request.url.path.rsplit("/", 1)[-1])
            if rid not in self.rows:
                return httpx.Response(404, json={"error": {"status": 404}})
        self.rows[rid] = body
        return httpx.Response(200, json={"data": {"id": rid, "attributes": body}})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))


@pytest.fixture
def strapi() -> InMemoryStrapi:
    return InMemoryStrapi()
