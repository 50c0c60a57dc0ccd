"""Tests for ServiceResult and ServiceError."""

import json

import pytest

from subctl.services.result import (
    NOT_FOUND,
    STORE_UNAVAILABLE,
    VALIDATION_FAILED,
    ServiceError,
    ServiceResult,
)


class TestServiceResult:
    def test_success_construction(self) -> None:
        result = ServiceResult(ok=True, op="register_user", data={"user_id": 1})
        assert result.ok is True
        assert result.data == {"user_id": 1}
        assert result.warnings == []
        assert result.error is None
        assert result.meta is None

    def test_error_construction(self) -> None:
        result = ServiceResult(
            ok=False, op="renew", error=ServiceError(code=NOT_FOUND, message="No such user")
        )
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"
        assert result.error.detail == {}

    def test_json_serialization(self) -> None:
        result = ServiceResult(
            ok=True, op="reconcile", data={"date": "2026-03-15"}, meta={"revoked": 2}
        )
        parsed = json.loads(result.model_dump_json())
        assert parsed["op"] == "reconcile"
        assert parsed["meta"]["revoked"] == 2

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="stats")
        with pytest.raises(Exception):
            result.ok = False  # type: ignore[misc]

    def test_error_codes(self) -> None:
        assert {VALIDATION_FAILED, NOT_FOUND, STORE_UNAVAILABLE} == {
            "VALIDATION_FAILED",
            "NOT_FOUND",
            "STORE_UNAVAILABLE",
        }


class TestFailure:
    def test_failure_builds_error(self) -> None:
        result = ServiceResult.failure(op="renew", code=NOT_FOUND, message="gone", external_id="7")
        assert result.ok is False
        assert result.op == "renew"
        assert result.error == ServiceError(
            code=NOT_FOUND, message="gone", detail={"external_id": "7"}
        )
        assert result.retryable is False

    def test_failure_keeps_warnings(self) -> None:
        result = ServiceResult.failure(
            "reconcile_overdue", STORE_UNAVAILABLE, "locked", warnings=["w"], retryable=True
        )
        assert result.warnings == ["w"]
        assert result.retryable is True

    def test_success_is_not_retryable(self) -> None:
        assert ServiceResult(ok=True, op="stats").retryable is False
