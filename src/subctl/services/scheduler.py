"""Daily reconciliation: the one-shot job and the in-process timer thread."""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, tzinfo
from threading import Event, Thread
from typing import TYPE_CHECKING, Any

from structlog.contextvars import bound_contextvars

from subctl.services.base import BaseService
from subctl.services.lifecycle import LifecycleService
from subctl.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from subctl.infrastructure.store import Store

logger = logging.getLogger(__name__)


class ReconcileService(BaseService):
    """Runs the daily reconciliation steps in order.

    No lock is held across runs. Every step re-derives its candidates from
    current rows, so overlapping or repeated runs are harmless.
    """

    def run_daily(
        self,
        *,
        due: bool = True,
        overdue: bool = True,
        grace_period_days: int | None = None,
    ) -> ServiceResult:
        op = "reconcile"
        lifecycle = LifecycleService(self._store)
        warnings: list[str] = []
        data: dict[str, Any] = {"date": self._store.today().isoformat()}
        steps: list[ServiceResult] = []

        if due:
            steps.append(lifecycle.reconcile_due_today())
        if overdue:
            steps.append(lifecycle.reconcile_lapsed(grace_period_days))
            steps.append(lifecycle.reconcile_overdue(grace_period_days))

        failed: ServiceResult | None = None
        for step in steps:
            warnings.extend(step.warnings)
            if not step.ok:
                failed = failed or step
                continue
            data[step.op] = {"count": step.data["count"], "items": step.data["items"]}
            if "deferred" in step.data:
                data[step.op]["deferred"] = step.data["deferred"]

        counts = {
            "due_today": data.get("reconcile_due_today", {}).get("count", 0),
            "lapsed": data.get("reconcile_lapsed", {}).get("count", 0),
            "revoked": data.get("reconcile_overdue", {}).get("count", 0),
        }
        logger.info("reconcile.finished", extra={**counts, "failed": failed is not None})
        self._dispatch_event("post_reconcile", counts, warnings)

        if failed is not None:
            assert failed.error is not None
            return ServiceResult(
                ok=False,
                op=op,
                data=data,
                warnings=warnings,
                error=ServiceError(
                    code=failed.error.code,
                    message=f"{failed.op}: {failed.error.message}",
                    detail=failed.error.detail,
                ),
            )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings, meta=counts)


def seconds_until(daily_at: time, tz: tzinfo, now: datetime | None = None) -> float:
    """Seconds from *now* to the next occurrence of *daily_at* in *tz*."""
    now = now.astimezone(tz) if now is not None else datetime.now(tz)
    target = datetime.combine(now.date(), daily_at, tzinfo=tz)
    if target <= now:
        target = datetime.combine(now.date() + timedelta(days=1), daily_at, tzinfo=tz)
    return max((target - now).total_seconds(), 0.0)


class DailyScheduler(Thread):
    """Fires ``run_daily`` once a day at the configured wall-clock time.

    The delay is recomputed before every run so clock changes do not
    accumulate drift. A failing run is logged and the schedule continues.
    """

    def __init__(
        self,
        store: Store,
        *,
        on_result: Callable[[ServiceResult], None] | None = None,
        wait_for: Callable[[], float] | None = None,
    ) -> None:
        super().__init__(name="subctl-scheduler", daemon=True)
        self._store = store
        self._on_result = on_result
        self._wait_for = wait_for or self._next_delay
        self._stop_event = Event()
        self.runs = 0

    def _next_delay(self) -> float:
        schedule = self._store.settings.schedule
        return seconds_until(schedule.daily_at, self._store.settings.tz)

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def run_once(self) -> ServiceResult | None:
        """One reconciliation pass; every log record inside carries ``scheduler_run``."""
        with bound_contextvars(scheduler_run=self.runs + 1):
            try:
                result = ReconcileService(self._store).run_daily()
            except Exception:
                logger.exception("scheduler.run_failed")
                return None
            self.runs += 1
            if not result.ok:
                logger.warning(
                    "scheduler.run_incomplete",
                    extra={
                        "error": result.error.message if result.error else None,
                        "retryable": result.retryable,
                    },
                )
        if self._on_result is not None:
            self._on_result(result)
        return result

    def run(self) -> None:
        while not self._stop_event.is_set():
            delay = self._wait_for()
            logger.info("scheduler.sleeping", extra={"seconds": round(delay, 2)})
            if self._stop_event.wait(delay):
                break
            self.run_once()
