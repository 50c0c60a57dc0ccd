"""Operation-specific Rich renderers for ServiceResult.

Renderers are chosen by ``result.op`` in :func:`render_result`; unknown
ops fall back to a key-value listing.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from subctl.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from subctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a string. Plain text when not on a terminal."""
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: external ids for list results, else a status line."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    items = result.data.get("items")
    if isinstance(items, list):
        ids = [i["external_id"] for i in items if isinstance(i, dict) and "external_id" in i]
        return "\n".join(str(i) for i in ids)
    if result.op == "renew":
        return str(result.data.get("new_end_date", ""))
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="sub.ok"), Text(f"  {result.op}", style="sub.op"))


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="sub.key")
    if key.endswith("_id"):
        v = Text(str(value), style="sub.id")
    elif key.endswith("date"):
        v = Text(str(value), style="sub.date")
    elif key == "status":
        v = Text(str(value), style=style_for_status(str(value)))
    else:
        v = Text(str(value))
    console.print(Text.assemble(k, v))


def _money(value: float, currency: str) -> Text:
    return Text(f"{value:,.2f} {currency}", style="sub.money")


def _user_table(items: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("User", style="sub.id", no_wrap=True)
    table.add_column("External ID", no_wrap=True)
    table.add_column("Handle")
    table.add_column("End date", style="sub.date")
    for item in items:
        handle = item.get("handle")
        table.add_row(
            str(item.get("user_id", "")),
            str(item.get("external_id", "")),
            f"@{handle}" if handle else "",
            str(item.get("end_date", "")),
        )
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = f" [{err.code}]" if err else ""
    console.print(
        Text("ERROR", style="sub.error"), Text(f"  {result.op}", style="sub.op"), f"{code}: {msg}"
    )
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Lifecycle renderers ───────────────────────────────────────────────


def _render_register(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "user_id", d["user_id"])
    _field(console, "external_id", d["external_id"])
    _field(console, "status", d["status"])
    if not d.get("created"):
        console.print(Text("  already registered", style="dim"))


def _render_renew(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "external_id", d["external_id"])
    _field(console, "start_date", d["start_date"])
    _field(console, "new_end_date", d["new_end_date"])
    amount = _money(d["amount"], d["currency"])
    console.print(Text.assemble(Text("  amount: ", style="sub.key"), amount))
    _field(console, "method", d["method"])
    if verbose:
        _field(console, "subscription_id", d["subscription_id"])
        _field(console, "payment_id", d["payment_id"])
        _field(console, "previous_status", d["previous_status"])
        _field(console, "previous_end_date", d.get("previous_end_date") or "-")


def _render_stats(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    currency = d.get("currency", "")

    users = Table(title="Users", show_header=True, pad_edge=False, expand=False)
    for status in ("active", "pending", "expired", "removed"):
        users.add_column(status.title(), style=style_for_status(status), justify="right")
    users.add_row(*(str(d[f"{s}_count"]) for s in ("active", "pending", "expired", "removed")))
    console.print(users)

    revenue = Table(title="Revenue", show_header=False, pad_edge=False, expand=False)
    revenue.add_column("Metric", style="sub.key")
    revenue.add_column("Value", justify="right")
    revenue.add_row("Total", _money(d["total_revenue"], currency))
    revenue.add_row("Month to date", _money(d["month_to_date_revenue"], currency))
    revenue.add_row("Average payment", _money(d["average_payment"], currency))
    revenue.add_row("Payments", str(d["payment_count"]))
    console.print(revenue)


def _render_step(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Single reconciliation step: count plus affected users."""
    d = result.data
    _status_line(console, result)
    _field(console, "date", d["date"])
    if "cutoff" in d:
        _field(console, "cutoff", d["cutoff"])
    _field(console, "count", d["count"])
    if d.get("items"):
        console.print(_user_table(d["items"]))


_STEP_TITLES = {
    "reconcile_due_today": "Expiring today",
    "reconcile_lapsed": "Lapsed (in grace period)",
    "reconcile_overdue": "Removed",
}


def _render_reconcile(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "date", d["date"])
    for op, title in _STEP_TITLES.items():
        step = d.get(op)
        if step is None:
            continue
        line = f"  {title}: {step['count']}"
        if step.get("deferred"):
            line += f" ({step['deferred']} deferred)"
        console.print(line)
        if step["items"] and (verbose or op == "reconcile_overdue"):
            console.print(_user_table(step["items"]))


def _render_command(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    reply = result.data.get("reply")
    if reply is None:
        _status_line(console, result)
        _field(console, "ignored", result.data.get("ignored", ""))
        return
    console.print(reply, markup=False)


def _render_event(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "kind", d.get("kind") or "-")
    _field(console, "action", d.get("action", ""))
    for member in d.get("members", []):
        state = "registered" if member.get("created") else "known"
        console.print(f"  {member['external_id']}: {state}")
    if "channel_id" in d:
        _field(console, "channel_id", d["channel_id"])


def _render_upgrade(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    for key in (
        "pending_count",
        "applied_count",
        "current",
        "head",
        "backup_dir",
        "backup_path",
        "message",
    ):
        if key in d:
            _field(console, key, d[key])
    if verbose and d.get("pending"):
        for p in d["pending"]:
            console.print(f"  {p['revision']}: {p['description']}")


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "register_user": _render_register,
    "renew": _render_renew,
    "stats": _render_stats,
    "reconcile": _render_reconcile,
    "reconcile_due_today": _render_step,
    "reconcile_lapsed": _render_step,
    "reconcile_overdue": _render_step,
    "command": _render_command,
    "event": _render_event,
    "upgrade": _render_upgrade,
}
