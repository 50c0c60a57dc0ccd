"""LifecycleService — registration, renewal, reconciliation, and stats.

Every state change happens inside one ``Store.transaction()``; messages to
the platform go out only after that transaction has committed. Candidate
sets for reconciliation are re-derived from current rows on every call,
so a skipped, delayed, or repeated run converges on the same state.

Status flow (see :mod:`subctl.domain.lifecycle`)::

    pending --renew--> active --lapse--> expired --overdue--> removed
                         ^                  |                    |
                         +------renew-------+--------renew-------+
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import func, select

from subctl.domain.lifecycle import (
    MAX_DURATION_DAYS,
    MAX_GRACE_PERIOD_DAYS,
    SubscriptionStatus,
    UserStatus,
    is_overdue,
    overdue_cutoff,
    renewal_end_date,
)
from subctl.domain.money import format_amount, from_cents, to_cents
from subctl.infrastructure.database.schema import payments, subscriptions, users
from subctl.infrastructure.notifications import NotificationFailure
from subctl.infrastructure.store import StoreUnavailable
from subctl.services._helpers import now_iso, parse_date, user_ref
from subctl.services.base import BaseService
from subctl.services.result import (
    NOT_FOUND,
    STORE_UNAVAILABLE,
    VALIDATION_FAILED,
    ServiceResult,
)

logger = logging.getLogger(__name__)


def _invalid(op: str, message: str) -> ServiceResult:
    return ServiceResult.failure(op, VALIDATION_FAILED, message)


def _grace_error(value: int | None) -> str:
    return f"grace period must be 0 to {MAX_GRACE_PERIOD_DAYS} days, got {value}"


def _due_item(row: Any) -> dict[str, Any]:
    return {
        "user_id": row.user_id,
        "external_id": row.external_id,
        "handle": row.handle,
        "end_date": row.end_date,
    }


class LifecycleService(BaseService):
    """Owns every entitlement state transition."""

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_user(
        self,
        external_id: str,
        *,
        handle: str | None = None,
        display_name: str | None = None,
    ) -> ServiceResult:
        """Record a first-seen account as ``pending``.

        Idempotent: an existing external id is reported with
        ``created=False`` and triggers no notification.
        """
        op = "register_user"
        warnings: list[str] = []
        external_id = external_id.strip()
        if not external_id:
            return _invalid(op, "external id must not be empty")

        try:
            with self._store.transaction() as txn:
                existing = txn.find_user(external_id)
                if existing is not None:
                    return ServiceResult(
                        ok=True,
                        op=op,
                        data={
                            "created": False,
                            "user_id": existing.id,
                            "external_id": external_id,
                            "status": existing.status,
                        },
                    )
                user_id = txn.insert_user(
                    external_id,
                    handle=handle,
                    display_name=display_name,
                    now=now_iso(),
                )
        except StoreUnavailable as exc:
            return self._store_fault(op, exc)

        logger.info("user.registered", extra={"user_id": user_id, "external_id": external_id})

        who = display_name or user_ref(handle, external_id)
        self._notify_admin(
            f"New user detected: {who} (@{handle or '-'}, id {external_id})",
            warnings,
        )
        self._dispatch_event(
            "post_register",
            {"user_id": user_id, "external_id": external_id, "handle": handle},
            warnings,
        )

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "created": True,
                "user_id": user_id,
                "external_id": external_id,
                "status": str(UserStatus.PENDING),
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Renewal
    # ------------------------------------------------------------------

    def renew(
        self,
        external_id: str,
        duration_days: int,
        *,
        amount: Decimal | int | str | None = None,
        method: str | None = None,
    ) -> ServiceResult:
        """Extend a user's entitlement by *duration_days* from today.

        One transaction closes the prior active subscription, opens the new
        one, records its payment, and updates the user's denormalized
        status and end date. Either all of it commits or none of it does.
        """
        op = "renew"
        warnings: list[str] = []
        policy = self._store.settings.policy

        if isinstance(duration_days, bool) or not isinstance(duration_days, int):
            return _invalid(op, f"duration must be a whole number of days, got {duration_days!r}")
        if duration_days <= 0:
            return _invalid(op, f"duration must be greater than 0 days, got {duration_days}")
        if duration_days > MAX_DURATION_DAYS:
            return _invalid(
                op, f"duration must be at most {MAX_DURATION_DAYS} days, got {duration_days}"
            )

        try:
            paid = Decimal(str(policy.default_amount if amount is None else amount))
        except InvalidOperation:
            return _invalid(op, f"amount is not a number: {amount!r}")
        if not paid.is_finite() or paid < 0:
            return _invalid(op, f"amount must be >= 0, got {amount}")

        amount_cents = to_cents(paid)
        method = method or policy.default_method
        currency = policy.currency
        today = self._store.today()
        start_date = today.isoformat()
        end_date = renewal_end_date(today, duration_days).isoformat()
        now = now_iso()

        try:
            with self._store.transaction() as txn:
                user = txn.find_user(external_id)
                if user is None:
                    return ServiceResult.failure(
                        op,
                        NOT_FOUND,
                        f"No user found with id: {external_id}",
                        external_id=external_id,
                    )

                prior = txn.active_subscription(user.id)
                if prior is not None:
                    txn.expire_subscription(prior.id, now=now)

                subscription_id = txn.open_subscription(
                    user.id, start_date=start_date, end_date=end_date, now=now
                )
                payment_id = txn.record_payment(
                    subscription_id,
                    amount_cents=amount_cents,
                    currency=currency,
                    method=method,
                    now=now,
                )
                txn.set_user_state(
                    user.id,
                    current=user.status,
                    status=UserStatus.ACTIVE,
                    end_date=end_date,
                    now=now,
                )
        except StoreUnavailable as exc:
            return self._store_fault(op, exc)

        logger.info(
            "user.renewed",
            extra={
                "user_id": user.id,
                "external_id": external_id,
                "end_date": end_date,
                "amount_cents": amount_cents,
            },
        )
        self._dispatch_event(
            "post_renew",
            {
                "user_id": user.id,
                "external_id": external_id,
                "end_date": end_date,
                "amount": str(from_cents(amount_cents)),
                "currency": currency,
            },
            warnings,
        )

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "user_id": user.id,
                "external_id": external_id,
                "handle": user.handle,
                "subscription_id": subscription_id,
                "payment_id": payment_id,
                "start_date": start_date,
                "new_end_date": end_date,
                "amount": float(from_cents(amount_cents)),
                "currency": currency,
                "method": method,
                "previous_status": user.status,
                "previous_end_date": prior.end_date if prior is not None else None,
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _grace(self, override: int | None) -> int | None:
        """Effective grace period, or None when *override* is out of range."""
        grace = self._store.settings.policy.grace_period_days if override is None else override
        return grace if 0 <= grace <= MAX_GRACE_PERIOD_DAYS else None

    def _active_ledger(self) -> Any:
        """Users joined to their active subscription."""
        return (
            select(
                users.c.id.label("user_id"),
                users.c.external_id,
                users.c.handle,
                users.c.status.label("user_status"),
                subscriptions.c.id.label("subscription_id"),
                subscriptions.c.end_date,
            )
            .select_from(users.join(subscriptions, subscriptions.c.user_id == users.c.id))
            .where(subscriptions.c.status == SubscriptionStatus.ACTIVE)
        )

    def reconcile_due_today(self) -> ServiceResult:
        """Warn users whose active subscription ends today. No state change."""
        op = "reconcile_due_today"
        warnings: list[str] = []
        today = self._store.today().isoformat()

        try:
            with self._store.transaction() as txn:
                rows = txn.conn.execute(
                    self._active_ledger()
                    .where(subscriptions.c.end_date == today)
                    .order_by(users.c.id)
                ).fetchall()
        except StoreUnavailable as exc:
            return self._store_fault(op, exc)

        items = [_due_item(r) for r in rows]
        for item in items:
            self._send(
                item["external_id"],
                "Your subscription expires today. Renew to keep your access to the group.",
                warnings,
            )
        if items:
            names = ", ".join(user_ref(i["handle"], i["external_id"]) for i in items)
            self._notify_admin(f"Expiring today ({len(items)}): {names}", warnings)

        return ServiceResult(
            ok=True,
            op=op,
            data={"date": today, "count": len(items), "items": items},
            warnings=warnings,
        )

    def reconcile_lapsed(self, grace_period_days: int | None = None) -> ServiceResult:
        """Move active users whose subscription ended before today to ``expired``.

        Only users still inside the grace period are lapsed; anyone already
        past it is left for :meth:`reconcile_overdue` in the same run.

        The subscription row stays active until the grace period is over and
        :meth:`reconcile_overdue` revokes it.
        """
        op = "reconcile_lapsed"
        warnings: list[str] = []
        grace = self._grace(grace_period_days)
        if grace is None:
            return _invalid(op, _grace_error(grace_period_days))
        today = self._store.today()
        now = now_iso()

        try:
            with self._store.transaction() as txn:
                rows = txn.conn.execute(
                    self._active_ledger()
                    .where(
                        subscriptions.c.end_date < today.isoformat(),
                        subscriptions.c.end_date >= overdue_cutoff(today, grace).isoformat(),
                        users.c.status == UserStatus.ACTIVE,
                    )
                    .order_by(users.c.id)
                ).fetchall()
                for row in rows:
                    txn.set_user_state(
                        row.user_id,
                        current=row.user_status,
                        status=UserStatus.EXPIRED,
                        end_date=row.end_date,
                        now=now,
                    )
        except StoreUnavailable as exc:
            return self._store_fault(op, exc)

        items = [_due_item(r) for r in rows]
        for item in items:
            logger.info("user.lapsed", extra={"user_id": item["user_id"]})
            removal_day = renewal_end_date(parse_date(item["end_date"]), grace + 1)
            self._send(
                item["external_id"],
                f"Your subscription ended on {item['end_date']}. "
                f"Renew before {removal_day.isoformat()} to keep your access to the group.",
                warnings,
            )

        return ServiceResult(
            ok=True,
            op=op,
            data={"date": today.isoformat(), "count": len(items), "items": items},
            warnings=warnings,
        )

    def reconcile_overdue(self, grace_period_days: int | None = None) -> ServiceResult:
        """Revoke users whose active subscription ended more than the grace period ago.

        Each revocation is its own transaction: the subscription is marked
        expired and the user removed, then (after commit) the platform
        membership is revoked and the administrator told. A revoked user
        has no active subscription left, so later runs skip them. If the
        run is interrupted, the remaining users are picked up next time.
        """
        op = "reconcile_overdue"
        warnings: list[str] = []
        grace = self._grace(grace_period_days)
        if grace is None:
            return _invalid(op, _grace_error(grace_period_days))

        today = self._store.today()
        cutoff = overdue_cutoff(today, grace).isoformat()
        base_data: dict[str, Any] = {
            "date": today.isoformat(),
            "grace_period_days": grace,
            "cutoff": cutoff,
        }

        try:
            channel_id = self._store.group_channel_id()
            with self._store.transaction() as txn:
                candidates = txn.conn.execute(
                    self._active_ledger()
                    .where(
                        subscriptions.c.end_date < cutoff,
                        users.c.status != UserStatus.REMOVED,
                    )
                    .order_by(users.c.id)
                ).fetchall()
        except StoreUnavailable as exc:
            return self._store_fault(op, exc)

        if candidates and channel_id is None:
            msg = (
                f"Group id unknown; {len(candidates)} overdue user(s) left in place "
                "until the group is identified"
            )
            logger.warning("reconcile.no_group", extra={"pending": len(candidates)})
            warnings.append(msg)
            return ServiceResult(
                ok=True,
                op=op,
                data={**base_data, "count": 0, "items": [], "deferred": len(candidates)},
                warnings=warnings,
            )

        revoked: list[dict[str, Any]] = []
        for candidate in candidates:
            try:
                done = self._revoke_one(candidate.user_id, today, grace)
            except StoreUnavailable as exc:
                return ServiceResult.failure(
                    op,
                    STORE_UNAVAILABLE,
                    (
                        f"Store unavailable after {len(revoked)} revocation(s); "
                        f"the rest are retried on the next run: {exc}"
                    ),
                    warnings=warnings,
                    retryable=True,
                    items=revoked,
                )
            if done is None:
                continue  # renewed or revoked concurrently
            revoked.append(done)
            self._after_revoke(channel_id or "", done, warnings)

        return ServiceResult(
            ok=True,
            op=op,
            data={**base_data, "count": len(revoked), "items": revoked},
            warnings=warnings,
        )

    def _revoke_one(self, user_id: int, today: date, grace: int) -> dict[str, Any] | None:
        """Close the overdue subscription and mark the user removed, atomically.

        Re-reads the user's active subscription inside the transaction and
        returns None if it no longer qualifies.
        """
        now = now_iso()
        with self._store.transaction() as txn:
            active = txn.active_subscription(user_id)
            if active is None or not is_overdue(parse_date(active.end_date), today, grace):
                return None
            user = txn.conn.execute(select(users).where(users.c.id == user_id)).one()
            if user.status == UserStatus.REMOVED:
                return None
            txn.expire_subscription(active.id, now=now)
            txn.set_user_state(
                user_id,
                current=user.status,
                status=UserStatus.REMOVED,
                end_date=active.end_date,
                now=now,
            )
        return {
            "user_id": user_id,
            "external_id": user.external_id,
            "handle": user.handle,
            "end_date": active.end_date,
        }

    def _after_revoke(self, channel_id: str, item: dict[str, Any], warnings: list[str]) -> None:
        """Post-commit side effects of one revocation."""
        external_id = item["external_id"]
        logger.info("user.removed", extra={"user_id": item["user_id"], "external_id": external_id})
        try:
            self._store.notifier.revoke_membership(channel_id, external_id)
        except NotificationFailure as exc:
            logger.warning(
                "notification.failed",
                extra={"operation": exc.operation, "target": exc.target, "reason": exc.reason},
            )
            warnings.append(str(exc))

        self._send(
            external_id,
            f"Your subscription ended on {item['end_date']} and you have been removed "
            "from the group. Renew to rejoin.",
            warnings,
        )
        self._notify_admin(
            f"Removed {user_ref(item['handle'], external_id)} (id {external_id}), "
            f"subscription ended {item['end_date']}",
            warnings,
        )
        self._dispatch_event(
            "post_revoke",
            {"user_id": item["user_id"], "external_id": external_id},
            warnings,
        )

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def compute_stats(self) -> ServiceResult:
        """Status counts and revenue aggregates. Read-only.

        Empty payment sets aggregate to zero.
        """
        op = "stats"
        today = self._store.today()
        month_start = date(today.year, today.month, 1)
        # paid_at is a UTC timestamp; compare against the UTC instant of local midnight.
        month_since = (
            datetime.combine(month_start, time.min, tzinfo=self._store.settings.tz)
            .astimezone(UTC)
            .isoformat()
        )

        try:
            with self._store.transaction() as txn:
                status_rows = txn.conn.execute(
                    select(users.c.status, func.count()).group_by(users.c.status)
                ).fetchall()
                total_cents, payment_count = txn.conn.execute(
                    select(func.coalesce(func.sum(payments.c.amount_cents), 0), func.count())
                ).one()
                mtd_cents = txn.conn.execute(
                    select(func.coalesce(func.sum(payments.c.amount_cents), 0)).where(
                        payments.c.paid_at >= month_since
                    )
                ).scalar_one()
        except StoreUnavailable as exc:
            return self._store_fault(op, exc)

        counts = {str(s): 0 for s in UserStatus}
        for status, count in status_rows:
            counts[status] = count

        average_cents = round(total_cents / payment_count) if payment_count else 0
        currency = self._store.settings.policy.currency

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "active_count": counts[UserStatus.ACTIVE],
                "pending_count": counts[UserStatus.PENDING],
                "expired_count": counts[UserStatus.EXPIRED],
                "removed_count": counts[UserStatus.REMOVED],
                "user_count": sum(counts.values()),
                "payment_count": payment_count,
                "total_revenue": float(from_cents(total_cents)),
                "month_to_date_revenue": float(from_cents(mtd_cents)),
                "average_payment": float(from_cents(average_cents)),
                "currency": currency,
                "month_start": month_start.isoformat(),
                "total_revenue_display": format_amount(total_cents, currency),
            },
        )
