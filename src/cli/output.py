"""
Human-readable run output for the terminal.

Warnings are prefixed with "WARNING:" so they stand out in cron mail.
"""

from __future__ import annotations

from execution.reconciler import NO_UPDATES_WARNING, RunReport
from trail_core.contracts import InvestorAccount, UpdateResult


def format_accounts(accounts: list[InvestorAccount]) -> str:
    if not accounts:
        return "No investor accounts found."
    return "\n".join(
        f"Account Name: {a.name} -> Investor ID: {a.id}" for a in accounts
    )


def format_result(result: UpdateResult) -> str:
    u = result.update
    if result.ok:
        return f"Trailing stop-loss order updated for {u.product}. New stop-loss value: {u.new_quote:.2f}"
    detail = result.detail or "unknown error"
    return (
        f"Could not update the trailing stop-loss order for {u.product} "
        f"(order {u.order_id}): {detail}"
    )


def format_missing_stop_loss(name: str) -> str:
    return (
        f"WARNING: No stop-loss found for {name} so I can not update it. "
        "Please set a stop-loss order manually in the Darwinex website."
    )


def format_run_report(report: RunReport, *, verbose: bool = False) -> str:
    """Summary of one reconciliation pass."""
    lines = [format_result(r) for r in report.results]
    lines.extend(format_missing_stop_loss(name) for name in report.plan.missing_stop_loss)
    if verbose:
        lines.extend(f"Stop-loss checked but not modified for {name}" for name in report.plan.unchanged)
    for w in report.summary_warnings():
        lines.append(w if w == NO_UPDATES_WARNING else f"WARNING: {w}")
    if report.failed:
        lines.append(f"{len(report.failed)} of {len(report.results)} stop-loss updates failed.")
    return "\n".join(lines)
