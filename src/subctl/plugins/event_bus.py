"""WAL-backed hook dispatch via pluggy, inline or on a thread pool.

Every lifecycle event is written to ``event_wal`` as ``pending`` before any
plugin runs, so an event interrupted by a crash is still there for
:meth:`EventBus.drain` to retry. Status flow::

    pending -> completed
    pending -> failed -> ... -> dead_letter   (after max_retries attempts)

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, insert, select, update

from subctl.infrastructure.database.schema import event_wal
from subctl.services._helpers import now_iso

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from subctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"
DEAD_LETTER = "dead_letter"
RETRYABLE = (PENDING, FAILED)


class EventBus:
    """Persist-then-dispatch event bus.

    Parameters:
        engine: SQLAlchemy engine with the ``event_wal`` table.
        plugin_manager: Loaded PluginManager for hook dispatch.
        sync: Run hooks inline in ``dispatch`` instead of on the pool.
        max_retries: Attempts before an event is marked ``dead_letter``.
        max_workers: Thread pool size when not ``sync``.
    """

    def __init__(
        self,
        engine: Engine,
        plugin_manager: PluginManager,
        *,
        sync: bool = True,
        max_retries: int = 3,
        max_workers: int = 2,
    ) -> None:
        self._engine = engine
        self._pm = plugin_manager
        self._sync = sync
        self._max_retries = max_retries
        self._executor: ThreadPoolExecutor | None = (
            None
            if sync
            else ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="subctl-hook")
        )
        self._futures: set[Future[str]] = set()
        self._lock = threading.Lock()

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> int:
        """Record the event, then run its hooks. Returns the WAL row id."""
        event_id = self._write_wal(hook_name, payload)
        if self._executor is None:
            self._execute_hook(event_id, hook_name, payload)
        else:
            future = self._executor.submit(self._execute_hook, event_id, hook_name, payload)
            with self._lock:
                self._futures.add(future)
            future.add_done_callback(self._forget)
        return event_id

    def drain(self) -> list[dict[str, Any]]:
        """Wait for in-flight hooks, then retry pending and failed events inline.

        Returns ``{id, hook_name, status}`` for each retried event.
        """
        self._wait_futures()

        with self._engine.connect() as conn:
            rows = conn.execute(
                select(event_wal.c.id, event_wal.c.hook_name, event_wal.c.payload)
                .where(event_wal.c.status.in_(RETRYABLE))
                .order_by(event_wal.c.id)
            ).fetchall()

        results: list[dict[str, Any]] = []
        for row in rows:
            status = self._execute_hook(row.id, row.hook_name, json.loads(row.payload))
            results.append({"id": row.id, "hook_name": row.hook_name, "status": status})
        return results

    def counts(self) -> dict[str, int]:
        """Number of WAL rows per status."""
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(event_wal.c.status, func.count()).group_by(event_wal.c.status)
            ).fetchall()
        return {status: count for status, count in rows}

    def shutdown(self) -> None:
        self._wait_futures()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # WAL bookkeeping
    # ------------------------------------------------------------------

    def _write_wal(self, hook_name: str, payload: dict[str, Any]) -> int:
        with self._engine.begin() as conn:
            return conn.execute(
                insert(event_wal)
                .values(
                    hook_name=hook_name,
                    payload=json.dumps(payload),
                    status=PENDING,
                    retries=0,
                    created=now_iso(),
                )
                .returning(event_wal.c.id)
            ).scalar_one()

    def _execute_hook(self, event_id: int, hook_name: str, payload: dict[str, Any]) -> str:
        """Call every implementation of *hook_name*. Returns the new WAL status."""
        caller = getattr(self._pm.hook, hook_name, None)
        try:
            if caller is not None:
                caller(**payload)
        except Exception as exc:
            logger.warning(
                "hook.failed", extra={"hook": hook_name, "event_id": event_id, "error": str(exc)}
            )
            return self._record_failure(event_id, str(exc))
        self._set(event_id, status=COMPLETED, error=None, completed=now_iso())
        return COMPLETED

    def _record_failure(self, event_id: int, error: str) -> str:
        with self._engine.begin() as conn:
            retries = conn.execute(
                update(event_wal)
                .where(event_wal.c.id == event_id)
                .values(retries=event_wal.c.retries + 1, error=error)
                .returning(event_wal.c.retries)
            ).scalar_one()
            if retries < self._max_retries:
                conn.execute(
                    update(event_wal).where(event_wal.c.id == event_id).values(status=FAILED)
                )
                return FAILED
            conn.execute(
                update(event_wal)
                .where(event_wal.c.id == event_id)
                .values(status=DEAD_LETTER, completed=now_iso())
            )
        logger.error("hook.dead_letter", extra={"event_id": event_id, "retries": retries})
        return DEAD_LETTER

    def _set(self, event_id: int, **values: Any) -> None:
        with self._engine.begin() as conn:
            conn.execute(update(event_wal).where(event_wal.c.id == event_id).values(**values))

    def _forget(self, future: Future[str]) -> None:
        with self._lock:
            self._futures.discard(future)

    def _wait_futures(self) -> None:
        with self._lock:
            pending = list(self._futures)
        for future in pending:
            try:
                future.result(timeout=30)
            except Exception:
                # _execute_hook records hook errors itself, so this is a lost WAL write.
                logger.warning("hook.dispatch_lost", exc_info=True)
