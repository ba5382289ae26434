"""
Deadline reminder scheduler.

Two cron-style jobs (top of every hour, and once a day at
``ALERT_DAILY_HOUR``) sweep active processes for hearings, appeal/embargo
deadlines and distribution dates falling in the next ``ALERT_WINDOW_HOURS``
and raise alerts through the shared deduplication policy.

The scheduler is an ordinary object owned by the FastAPI app
(``app.state.scheduler``). Jobs are asyncio tasks on the server loop; the
sweep itself is blocking SQLAlchemy work and runs in a worker thread. A tick
never waits for the previous sweep, so overlapping sweeps can happen and are
harmless because alert creation is deduplicated.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from sqlalchemy.orm import Session

from .alert_dedupe import DEADLINE_ALERTS, ensure_deadline_alert
from .config import settings
from .date_utils import appeal_deadline, embargo_deadline, format_date, local_now
from .models import Processo
from .stores import AlertStore, CaseStore, SqlAlertStore, SqlCaseStore

logger = logging.getLogger(__name__)


def next_fire_time(now: datetime, minute: int, hour: int | None = None) -> datetime:
    """Next wall-clock time strictly after ``now`` matching ``[hour:]minute``."""
    candidate = now.replace(minute=minute, second=0, microsecond=0)
    if hour is None:
        if candidate <= now:
            candidate += timedelta(hours=1)
        return candidate

    candidate = candidate.replace(hour=hour)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def raise_due_alerts(
    alert_store: AlertStore,
    processo: Processo,
    now: datetime,
    window: timedelta,
) -> tuple[int, int]:
    """Alert on every tracked date of ``processo`` inside ``[now, now + window]``.

    Returns ``(created, failed)``.
    """
    end = now + window
    created = failed = 0
    for field_name in DEADLINE_ALERTS:
        due = getattr(processo, field_name)
        if due is None or not (now <= due <= end):
            continue
        outcome = ensure_deadline_alert(alert_store, processo, field_name, due, now)
        if outcome.error:
            failed += 1
        elif outcome.created:
            created += 1
    return created, failed


def schedule_sentence_deadlines(case_store: CaseStore, processo: Processo) -> Processo:
    """Recompute appeal and embargo deadlines from the sentence date."""
    if processo.data_sentenca is None:
        return processo

    prazo_recurso = appeal_deadline(processo.data_sentenca)
    prazo_embargos = embargo_deadline(processo.data_sentenca)
    updated = case_store.update(
        processo, {"prazo_recurso": prazo_recurso, "prazo_embargos": prazo_embargos}
    )
    logger.info(
        "Deadlines for process %s: recurso %s, embargos %s",
        processo.numero,
        format_date(prazo_recurso),
        format_date(prazo_embargos),
    )
    return updated


@dataclass
class SweepResult:
    started_at: datetime
    cases_scanned: int = 0
    alerts_created: int = 0
    errors: int = 0
    failed_cases: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "cases_scanned": self.cases_scanned,
            "alerts_created": self.alerts_created,
            "errors": self.errors,
            "failed_cases": list(self.failed_cases),
        }


class DeadlineScheduler:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        clock: Callable[[], datetime] = local_now,
        daily_hour: int | None = None,
        window_hours: int | None = None,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.daily_hour = (
            settings.ALERT_DAILY_HOUR if daily_hour is None else daily_hour
        )
        self.window = timedelta(
            hours=settings.ALERT_WINDOW_HOURS if window_hours is None else window_hours
        )
        self.jobs: dict[str, asyncio.Task[None]] = {}
        self.is_running = False
        self.last_result: SweepResult | None = None
        self._sweeps: set[asyncio.Task[SweepResult]] = set()

    def start(self) -> None:
        """Schedule the jobs on the running event loop."""
        if self.is_running:
            logger.warning("Alert scheduler is already running")
            return

        logger.info("Starting alert scheduler")
        loop = asyncio.get_running_loop()
        self.jobs["hourly"] = loop.create_task(
            self._job_loop("hourly", minute=0), name="alert-scheduler-hourly"
        )
        self.jobs["daily"] = loop.create_task(
            self._job_loop("daily", minute=0, hour=self.daily_hour),
            name="alert-scheduler-daily",
        )
        self.is_running = True
        logger.info("Alert scheduler started (daily run at %02d:00)", self.daily_hour)

    def stop(self) -> None:
        if not self.is_running:
            logger.warning("Alert scheduler is not running")
            return

        logger.info("Stopping alert scheduler")
        for job in self.jobs.values():
            job.cancel()
        self.jobs.clear()
        self.is_running = False
        logger.info("Alert scheduler stopped")

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self.is_running,
            "active_jobs": list(self.jobs.keys()),
            "total_jobs": len(self.jobs),
            "last_sweep": self.last_result.to_dict() if self.last_result else None,
        }

    async def _job_loop(self, name: str, minute: int, hour: int | None = None) -> None:
        while True:
            now = self.clock()
            fire_at = next_fire_time(now, minute, hour)
            await asyncio.sleep(max((fire_at - now).total_seconds(), 0.0))
            logger.debug("Alert scheduler job %s fired", name)
            self.trigger()

    def trigger(self) -> asyncio.Task[SweepResult]:
        """Launch a sweep in the background and return its task."""
        task = asyncio.get_running_loop().create_task(self.run_sweep_async())
        self._sweeps.add(task)
        task.add_done_callback(self._sweeps.discard)
        return task

    async def run_sweep_async(self) -> SweepResult:
        return await asyncio.to_thread(self.run_sweep)

    def run_sweep(self, now: datetime | None = None) -> SweepResult:
        """One pass over active processes; per-case failures are logged and skipped."""
        now = now or self.clock()
        result = SweepResult(started_at=now)
        logger.info("Processing pending deadline alerts")

        db = self.session_factory()
        try:
            case_store = SqlCaseStore(db)
            alert_store = SqlAlertStore(db)
            try:
                processos = case_store.find_with_deadlines_between(
                    now, now + self.window
                )
            except Exception:
                logger.exception("Failed to query processes with upcoming deadlines")
                result.errors += 1
                return result

            for processo in processos:
                result.cases_scanned += 1
                try:
                    created, failed = raise_due_alerts(
                        alert_store, processo, now, self.window
                    )
                except Exception as exc:
                    logger.error(
                        "Failed to create alerts for processo %s: %s", processo.id, exc
                    )
                    db.rollback()
                    created, failed = 0, 1
                result.alerts_created += created
                if failed:
                    result.errors += failed
                    result.failed_cases.append(processo.id)
        finally:
            db.close()
            self.last_result = result

        logger.info(
            "Processed %s processes with upcoming deadlines (%s alerts created, %s errors)",
            result.cases_scanned,
            result.alerts_created,
            result.errors,
        )
        return result
