"""In-memory cycle state with recompute-on-write.

The store owns the working period and symptom history for one user.  Every
write (adding or replacing a period, logging a symptom, replacing history
after a load) recomputes a CycleSnapshot with the prediction engine and
hands it to each subscriber.  The engine itself stays pure; this is the
only place history is mutated.

Usage::

    store = CycleStore()
    unsubscribe = store.subscribe(lambda snap: render(snap))
    store.add_period(date(2026, 2, 1), duration_days=5, flow=FlowIntensity.medium)
    store.add_symptom("Cramps", SymptomSeverity.moderate)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Iterable
from uuid import uuid4

from src.cycles.insights import InsightGenerator
from src.cycles.models import (
    CycleInsights,
    CyclePrediction,
    FertilityPrediction,
    FlowIntensity,
    PeriodRecord,
    SymptomHistoryEntry,
    SymptomRecord,
    SymptomSeverity,
)
from src.cycles.prediction import (
    CyclePredictionEngine,
    average_cycle_length,
    average_period_length,
    current_cycle_day,
    cycle_progress,
    round_days,
    sort_history,
)
from src.cycles.sources import PeriodRepository

logger = logging.getLogger("fitglide.cycles.store")

# Calendar fertile marks span cycle days (avg - 14) through (avg - 10)
_FERTILE_DAYS_BEFORE_END = 14
_FERTILE_DAYS_BEFORE_END_LAST = 10


@dataclass
class CycleSnapshot:
    """Everything derived from the current history at one point in time."""

    prediction: CyclePrediction
    fertility: FertilityPrediction
    insights: CycleInsights
    current_cycle_day: int
    cycle_progress: float
    average_cycle_length: float
    average_period_length: float


Subscriber = Callable[[CycleSnapshot], None]


class CycleStore:
    """Hold period/symptom history and publish recomputed predictions."""

    def __init__(
        self,
        engine: CyclePredictionEngine | None = None,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._engine = engine or CyclePredictionEngine()
        self._insights = InsightGenerator(self._engine)
        self._today = today
        self._now = now
        self._periods: list[PeriodRecord] = []
        self._symptoms: list[SymptomRecord] = []
        self._subscribers: list[Subscriber] = []
        self._snapshot: CycleSnapshot | None = None

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for new snapshots; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def snapshot(self) -> CycleSnapshot:
        if self._snapshot is None:
            self._snapshot = self._compute()
        return self._snapshot

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_period(
        self,
        start_date: date,
        duration_days: int,
        flow: FlowIntensity = FlowIntensity.medium,
    ) -> PeriodRecord:
        record = PeriodRecord(
            id=str(uuid4()),
            start_date=start_date,
            duration_days=duration_days,
            flow_intensity=flow,
        )
        self._periods = sort_history([*self._periods, record])
        self._recompute()
        return record

    def replace_period(self, record: PeriodRecord) -> None:
        """Swap the stored record with the same id for ``record``.

        The stored record's ``remote_id`` carries over when ``record`` has
        none, so the next save updates the remote entry in place.

        Raises:
            KeyError: If no period with that id is stored.
        """
        current = next((p for p in self._periods if p.id == record.id), None)
        if current is None:
            raise KeyError(f"No period with id {record.id}")
        if record.remote_id is None and current.remote_id is not None:
            record = replace(record, remote_id=current.remote_id)
        self._periods = sort_history(
            record if p.id == record.id else p for p in self._periods
        )
        self._recompute()

    def replace_history(self, records: Iterable[PeriodRecord]) -> None:
        self._periods = sort_history(records)
        self._recompute()

    def add_symptom(
        self,
        name: str,
        severity: SymptomSeverity,
        when: datetime | None = None,
    ) -> SymptomRecord:
        record = SymptomRecord(
            id=str(uuid4()),
            name=name,
            severity=severity,
            date=when or self._now(),
        )
        self._symptoms.append(record)
        self._recompute()
        return record

    async def save(self, repository: PeriodRepository, user_id: str | None) -> int:
        """Push every stored period to the remote repository.

        Periods already stored remotely are updated; new ones are created
        and remember the remote id they were given.

        Returns:
            Number of periods synced (0 when there is no user).
        """
        if not user_id:
            logger.info("No user id; skipping period sync")
            return 0
        remote_ids: dict[str, str] = {}
        for record in self._periods:
            remote_ids[record.id] = await repository.sync_period(user_id, record)
        self._periods = [
            replace(p, remote_id=remote_ids[p.id])
            if p.id in remote_ids and p.remote_id != remote_ids[p.id]
            else p
            for p in self._periods
        ]
        logger.info("Synced %d periods for user %s", len(remote_ids), user_id)
        return len(remote_ids)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def periods(self) -> list[PeriodRecord]:
        return list(self._periods)

    @property
    def symptoms(self) -> list[SymptomRecord]:
        return list(self._symptoms)

    @property
    def recent_periods(self) -> list[PeriodRecord]:
        count = self._engine.config.history.recent_periods
        return self._periods[-count:]

    @property
    def today_symptoms(self) -> list[SymptomRecord]:
        today = self._today()
        return [s for s in self._symptoms if s.day == today]

    @property
    def symptom_history(self) -> list[SymptomHistoryEntry]:
        """Symptom names grouped by calendar day, newest day first."""
        grouped: dict[date, list[str]] = defaultdict(list)
        for symptom in self._symptoms:
            grouped[symptom.day].append(symptom.name)
        return [
            SymptomHistoryEntry(date=day, symptoms=names)
            for day, names in sorted(grouped.items(), reverse=True)
        ]

    def is_period_day(self, day: int) -> bool:
        """True if calendar cell ``day`` falls within the last period's span."""
        if not self._periods:
            return False
        last = self._periods[-1]
        cycle_day = current_cycle_day(self._today(), last.start_date)
        return cycle_day - last.duration_days <= day <= cycle_day

    def is_fertile_day(self, day: int) -> bool:
        """True if cycle day ``day`` falls in the average-cycle fertile span."""
        avg = round_days(average_cycle_length(self._periods))
        return avg - _FERTILE_DAYS_BEFORE_END <= day <= avg - _FERTILE_DAYS_BEFORE_END_LAST

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _compute(self) -> CycleSnapshot:
        today = self._today()
        periods = self._periods
        return CycleSnapshot(
            prediction=self._engine.predict_next_period(periods, today),
            fertility=self._engine.predict_fertility_window(periods, today),
            insights=self._insights.generate_insights(periods, self._symptoms, today),
            current_cycle_day=(
                current_cycle_day(today, periods[-1].start_date) if periods else 1
            ),
            cycle_progress=cycle_progress(periods, today),
            average_cycle_length=average_cycle_length(periods),
            average_period_length=average_period_length(periods),
        )

    def _recompute(self) -> None:
        self._snapshot = self._compute()
        for callback in list(self._subscribers):
            callback(self._snapshot)
