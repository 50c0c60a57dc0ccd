"""ServiceResult and ServiceError — the contract every service method returns.

The CLI, the scheduler, and the event handler all consume this type.
Expected operator mistakes (bad arguments, unknown user) and store faults
are reported through ``error``; notification and hook failures never fail
an operation and appear in ``warnings`` instead.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

VALIDATION_FAILED = "VALIDATION_FAILED"
NOT_FOUND = "NOT_FOUND"
STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


class ServiceError(BaseModel):
    """Why an operation did not happen.

    ``detail["retryable"]`` is True when the same call may succeed later
    without any change on the caller's side (store faults).
    """

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one service operation.

    Attributes:
        ok: Whether the operation took effect.
        op: Operation name, also the renderer key (e.g. ``"renew"``).
        data: Operation payload; may be partial on failure.
        warnings: Side effects that did not go through (messages, hooks).
        error: Set exactly when ``ok`` is False.
        meta: Run-level counters (the daily reconciliation).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: str,
        message: str,
        *,
        warnings: list[str] | None = None,
        **detail: Any,
    ) -> ServiceResult:
        return cls(
            ok=False,
            op=op,
            warnings=warnings or [],
            error=ServiceError(code=code, message=message, detail=detail),
        )

    @property
    def retryable(self) -> bool:
        return bool(self.error is not None and self.error.detail.get("retryable"))
