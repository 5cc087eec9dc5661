"""Period data sources: device health data and the remote period API.

Two collaborators feed the prediction engine:

    HealthDataSource  — menstrual flow samples recorded on the device
    PeriodRepository  — period entries stored in the remote (Strapi) API

``load_history()`` merges both into one de-duplicated, date-sorted list of
PeriodRecord.  A failing fetch never aborts loading; it is logged and the
source contributes no records, which the engine handles as short history.
"""

from __future__ import annotations

import calendar
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any
from uuid import uuid4

import httpx

from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.models import FlowIntensity, PeriodRecord

logger = logging.getLogger("fitglide.cycles.sources")


# ---------------------------------------------------------------------------
# Collaborator interfaces
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FlowSample:
    """One menstrual flow sample from the device health store.

    Attributes:
        start: First day covered by the sample.
        end:   Day the sample ends.
        value: 1 light, 2 medium, 3 heavy, 0 unspecified.
    """

    start: date
    end: date
    value: int = 0


class HealthDataSource(ABC):
    """Device health store exposing menstrual flow history."""

    @abstractmethod
    async def get_menstrual_flow_history(self, start: date, end: date) -> list[FlowSample]:
        """Return flow samples starting within [start, end], oldest first."""


class PeriodRepository(ABC):
    """Remote persistence for period records."""

    @abstractmethod
    async def get_periods(self, user_id: str) -> list[PeriodRecord]:
        """Return all period records stored for a user."""

    @abstractmethod
    async def sync_period(self, user_id: str, record: PeriodRecord) -> str:
        """Create or update a period record for a user.

        Records with a ``remote_id`` update the stored entry; records
        without one are created.

        Returns:
            The remote id of the stored entry.
        """


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def period_from_flow_sample(sample: FlowSample) -> PeriodRecord:
    """Convert a device flow sample into a period record (at least one day)."""
    return PeriodRecord(
        id=str(uuid4()),
        start_date=sample.start,
        duration_days=max(1, (sample.end - sample.start).days),
        flow_intensity=FlowIntensity.from_health_value(sample.value),
    )


def _parse_iso_date(value: str) -> date:
    """Parse an ISO-8601 date or datetime string to a calendar date."""
    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text.replace("Z", "+00:00")).date()


def period_from_api_entry(entry: dict[str, Any]) -> PeriodRecord:
    """Convert a remote API period entry into a period record.

    Accepts both flat entries and Strapi's ``{"id", "attributes": {...}}``
    shape.

    Raises:
        ValueError: If the start date is missing or unparseable.
    """
    attributes = entry.get("attributes") or entry
    start_raw = attributes.get("startDate")
    if not start_raw:
        raise ValueError(f"Period entry {entry.get('id')!r} has no startDate")
    remote_id = entry.get("id")
    remote_id = str(remote_id) if remote_id is not None else None
    return PeriodRecord(
        id=remote_id or str(uuid4()),
        start_date=_parse_iso_date(str(start_raw)),
        duration_days=max(1, int(attributes.get("duration") or 1)),
        flow_intensity=FlowIntensity.from_label(attributes.get("flowIntensity")),
        remote_id=remote_id,
    )


def period_to_api_payload(user_id: str, record: PeriodRecord) -> dict[str, Any]:
    """Build the remote API body for a period record."""
    return {
        "data": {
            "startDate": record.start_date.isoformat(),
            "endDate": record.end_date.isoformat(),
            "duration": record.duration_days,
            "flowIntensity": record.flow_intensity.value,
            "users_permissions_user": user_id,
        }
    }


# ---------------------------------------------------------------------------
# Strapi client
# ---------------------------------------------------------------------------


class StrapiPeriodRepository(PeriodRepository):
    """Period repository backed by the Strapi content API.

    Endpoints used:
        GET  /api/periods?filters[users_permissions_user][id][$eq]={user_id}
        POST /api/periods
        PUT  /api/periods/{remote_id}
    """

    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            base_url:    Strapi base URL, without the ``/api`` suffix.
            api_token:   Bearer token for the API.
            timeout:     Request timeout in seconds.
            http_client: Optional pre-configured httpx client (for testing).
        """
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token
        self._timeout = timeout
        self._http_client = http_client

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}{path}"
        if self._http_client is not None:
            response = await self._http_client.request(
                method, url, headers=self._headers(), **kwargs
            )
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, headers=self._headers(), **kwargs)
        response.raise_for_status()
        return response

    async def get_periods(self, user_id: str) -> list[PeriodRecord]:
        response = await self._request(
            "GET",
            "/api/periods",
            params={
                "filters[users_permissions_user][id][$eq]": user_id,
                "pagination[pageSize]": 100,
                "sort": "startDate:asc",
            },
        )
        records: list[PeriodRecord] = []
        for entry in response.json().get("data") or []:
            try:
                records.append(period_from_api_entry(entry))
            except ValueError as exc:
                logger.warning("Skipping unparseable period entry: %s", exc)
        logger.info("Strapi: fetched %d periods for user %s", len(records), user_id)
        return records

    async def sync_period(self, user_id: str, record: PeriodRecord) -> str:
        payload = period_to_api_payload(user_id, record)
        if record.remote_id is not None:
            await self._request("PUT", f"/api/periods/{record.remote_id}", json=payload)
            logger.info("Strapi: updated period %s for user %s", record.remote_id, user_id)
            return record.remote_id

        response = await self._request("POST", "/api/periods", json=payload)
        created = (response.json().get("data") or {}).get("id")
        if created is None:
            raise ValueError(f"Strapi did not return an id for period {record.start_date}")
        logger.info(
            "Strapi: created period %s (%s) for user %s", created, record.start_date, user_id
        )
        return str(created)


# ---------------------------------------------------------------------------
# History loading
# ---------------------------------------------------------------------------


@dataclass
class HistoryLoadResult:
    """Merged period history plus a user-facing error, if any fetch failed."""

    records: list[PeriodRecord] = field(default_factory=list)
    error_message: str | None = None


def months_before(day: date, months: int) -> date:
    """Same calendar day ``months`` earlier, clamped to the month's length."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def merge_period_records(*sources: list[PeriodRecord]) -> list[PeriodRecord]:
    """Merge record lists, keeping the first record seen for each start date.

    A kept record without a ``remote_id`` takes the remote id of a skipped
    duplicate, so the stored entry is updated rather than created again.

    Returns:
        De-duplicated records sorted ascending by start date.
    """
    merged: dict[date, PeriodRecord] = {}
    for records in sources:
        for record in records:
            kept = merged.get(record.start_date)
            if kept is None:
                merged[record.start_date] = record
                continue
            logger.debug("Skipping duplicate period starting %s", record.start_date)
            if kept.remote_id is None and record.remote_id is not None:
                merged[record.start_date] = replace(kept, remote_id=record.remote_id)
    return sorted(merged.values(), key=lambda r: r.start_date)


async def load_history(
    health_source: HealthDataSource | None,
    repository: PeriodRepository | None,
    user_id: str | None,
    today: date,
    config: CycleConfig | None = None,
) -> HistoryLoadResult:
    """Fetch, convert, and merge period history from both collaborators.

    Args:
        health_source: Device health store (skipped if None).
        repository:    Remote period API (skipped if None or no user_id).
        user_id:       Remote user identifier.
        today:         End of the health lookback window.
        config:        Cycle config; defaults to the global singleton.

    Returns:
        HistoryLoadResult with merged records; ``error_message`` is set when
        the health fetch failed.
    """
    cfg = config or get_cycle_config()
    result = HistoryLoadResult()

    health_records: list[PeriodRecord] = []
    if health_source is not None:
        start = months_before(today, cfg.history.lookback_months)
        try:
            samples = await health_source.get_menstrual_flow_history(start, today)
        except Exception as exc:
            logger.warning("Health data fetch failed: %s", exc)
            result.error_message = f"Failed to fetch periods data: {exc}"
        else:
            health_records = [period_from_flow_sample(s) for s in samples]
            logger.info(
                "Loaded %d flow samples between %s and %s", len(samples), start, today
            )

    remote_records: list[PeriodRecord] = []
    if repository is not None and user_id:
        try:
            remote_records = await repository.get_periods(user_id)
        except Exception as exc:
            logger.warning("Remote period fetch failed for user %s: %s", user_id, exc)

    result.records = merge_period_records(health_records, remote_records)
    return result
