"""Pluggy hook specifications for subctl lifecycle events.

Hooks fire after the originating transaction has committed. Plugins
implement them with :data:`hookimpl`::

    from subctl.plugins import hookimpl

    class AuditPlugin:
        @hookimpl
        def post_renew(self, user_id, external_id, end_date, amount, currency):
            ...
"""

from __future__ import annotations

import pluggy

hookspec = pluggy.HookspecMarker("subctl")
hookimpl = pluggy.HookimplMarker("subctl")


class SubctlHookSpec:
    """Hook specifications for the subctl plugin system."""

    @hookspec
    def post_register(self, user_id: int, external_id: str, handle: str | None) -> None:
        """Called after a new user is recorded as pending."""

    @hookspec
    def post_renew(
        self,
        user_id: int,
        external_id: str,
        end_date: str,
        amount: str,
        currency: str,
    ) -> None:
        """Called after a renewal commits. ``amount`` is a decimal string."""

    @hookspec
    def post_revoke(self, user_id: int, external_id: str) -> None:
        """Called after a user is removed for non-renewal."""

    @hookspec
    def post_reconcile(self, due_today: int, lapsed: int, revoked: int) -> None:
        """Called once per daily reconciliation run with per-step counts."""
