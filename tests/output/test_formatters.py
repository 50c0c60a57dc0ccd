"""Tests for output mode selection."""

import json

from subctl.output.formatters import OutputSettings, format_result
from subctl.services.result import ServiceError, ServiceResult

_RENEW = ServiceResult(
    ok=True,
    op="renew",
    data={
        "user_id": 1,
        "external_id": "42",
        "handle": "alice",
        "subscription_id": 3,
        "payment_id": 5,
        "start_date": "2026-03-15",
        "new_end_date": "2026-04-14",
        "amount": 20.0,
        "currency": "USD",
        "method": "manual",
        "previous_status": "pending",
        "previous_end_date": None,
    },
)


class TestFormatResult:
    def test_json_mode_dumps_model(self) -> None:
        out = format_result(_RENEW, settings=OutputSettings(json_output=True))
        parsed = json.loads(out)
        assert parsed["ok"] is True
        assert parsed["op"] == "renew"
        assert parsed["data"]["new_end_date"] == "2026-04-14"

    def test_json_mode_includes_error(self) -> None:
        result = ServiceResult(
            ok=False,
            op="renew",
            error=ServiceError(code="NOT_FOUND", message="No user with external id 9"),
        )
        parsed = json.loads(format_result(result, settings=OutputSettings(json_output=True)))
        assert parsed["error"]["code"] == "NOT_FOUND"

    def test_quiet_mode(self) -> None:
        assert format_result(_RENEW, settings=OutputSettings(quiet=True)) == "2026-04-14"

    def test_default_renders(self) -> None:
        out = format_result(_RENEW)
        assert "OK" in out
        assert "renew" in out
        assert "20.00 USD" in out

    def test_json_wins_over_quiet(self) -> None:
        out = format_result(_RENEW, settings=OutputSettings(json_output=True, quiet=True))
        assert json.loads(out)["op"] == "renew"

    def test_settings_frozen(self) -> None:
        settings = OutputSettings()
        try:
            settings.quiet = True  # type: ignore[misc]
        except Exception:
            return
        raise AssertionError("OutputSettings should be frozen")
