"""Entitlement status models and transition rules.

User status is denormalized from the subscription ledger and changed only
by the lifecycle service:

- ``pending``: seen in the group, never paid.
- ``active``: holds an active subscription whose end date is not past.
- ``expired``: the active subscription ended, still inside the grace period.
- ``removed``: grace period elapsed, platform membership revoked.

A renewal re-activates from any status. Users are never deleted.
"""

from __future__ import annotations

from datetime import date, timedelta
from enum import StrEnum


class UserStatus(StrEnum):
    """Denormalized entitlement status of a user."""

    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    REMOVED = "removed"


class SubscriptionStatus(StrEnum):
    """Status of a single entitlement interval."""

    ACTIVE = "active"
    EXPIRED = "expired"


# --- Transitions ---

USER_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["active"],
    "active": ["active", "expired", "removed"],
    "expired": ["active", "removed"],
    "removed": ["active"],
}


class InvalidTransition(ValueError):
    """A user status change the lifecycle does not allow."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"user status cannot go from {current!r} to {target!r}")
        self.current = current
        self.target = target


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]] = USER_TRANSITIONS,
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    return target in transitions.get(current, [])


# --- Calendar arithmetic ---

# Largest accepted renewal duration and grace period, in days.
MAX_DURATION_DAYS = 36_500
MAX_GRACE_PERIOD_DAYS = 3_650


def renewal_end_date(today: date, duration_days: int) -> date:
    """End date of a renewal of *duration_days* starting *today*."""
    return today + timedelta(days=duration_days)


def overdue_cutoff(today: date, grace_period_days: int) -> date:
    """Subscriptions ending strictly before this date are past grace."""
    return today - timedelta(days=grace_period_days)


def is_overdue(end_date: date, today: date, grace_period_days: int) -> bool:
    """True when *end_date* is older than today minus the grace period."""
    return end_date < overdue_cutoff(today, grace_period_days)

