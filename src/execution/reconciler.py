"""
Run orchestrator: resolve account -> fetch positions -> decide -> dispatch.

Owns the retry-on-unauthorized policy. Each authorized GET is a small state
machine: Fetching -> Fetched on 200, or Refreshing on 401 and back to
Fetching exactly once. A second 401 is fatal. Refresh always completes
before the fan-out, so dispatched tasks never refresh on their own.

Fatal conditions are raised as TrailStopError subclasses; nothing here
exits the process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from broker.endpoints import ACCOUNTS_PATH, parse_accounts, parse_positions, positions_path
from broker.transport import Failure, Unauthorized
from execution.dispatcher import dispatch_updates
from trail_core.contracts import CurrentPosition, InvestorAccount, UpdateResult
from trail_core.decision import UpdatePlan, plan_updates
from trail_core.errors import AuthExpiredError, TransportFailureError

if TYPE_CHECKING:
    from broker.auth import CredentialRefresher
    from broker.transport import BrokerTransport
    from cli.structured_log import StructuredEventLogger
    from config.trail_config import TrailConfig

logger = logging.getLogger("trailstop.reconciler")

NO_STOP_LOSS_WARNING = "No stop-loss order found for any of the Darwins in the config file."
NO_UPDATES_WARNING = "No updates needed."


@dataclass
class RunReport:
    """Outcome of one reconciliation pass."""

    investor_id: int
    positions: list[CurrentPosition] = field(default_factory=list)
    plan: UpdatePlan = field(default_factory=UpdatePlan)
    results: list[UpdateResult] = field(default_factory=list)
    refreshed: bool = False

    @property
    def applied(self) -> list[UpdateResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[UpdateResult]:
        return [r for r in self.results if not r.ok]

    def summary_warnings(self) -> list[str]:
        if not self.plan.stop_loss_seen:
            return [NO_STOP_LOSS_WARNING]
        if not self.plan.updates:
            return [NO_UPDATES_WARNING]
        return []


class Reconciler:
    """
    One batch pass over a snapshot of positions for a single investor account.

    Parameters
    ----------
    transport:
        Authenticated transport (DarwinexTransport or a test fake).
    config:
        Validated config snapshot; never mutated.
    refresher:
        Performs and persists token refreshes on 401.
    events:
        Optional structured event logger.
    """

    def __init__(
        self,
        transport: BrokerTransport,
        config: TrailConfig,
        refresher: CredentialRefresher,
        events: StructuredEventLogger | None = None,
    ) -> None:
        self._transport = transport
        self._config = config
        self._refresher = refresher
        self._events = events
        self._credentials = config.credentials
        self._refreshed = False

    def _authorized_get(self, path: str, what: str) -> bytes:
        outcome = self._transport.get(path, self._credentials)
        if isinstance(outcome, Unauthorized):
            self._credentials = self._refresher.refresh(self._credentials)
            self._refreshed = True
            if self._events:
                self._events.token_refreshed()
            outcome = self._transport.get(path, self._credentials)
            if isinstance(outcome, Unauthorized):
                raise AuthExpiredError(
                    f"Still unauthorized getting the {what} after refreshing the token. Can not proceed!"
                )
        if isinstance(outcome, Failure):
            raise TransportFailureError(
                f"Error getting the {what} ({outcome.reason}). Can not proceed!",
                status_code=outcome.status_code,
            )
        return outcome.body

    def list_accounts(self) -> list[InvestorAccount]:
        return parse_accounts(self._authorized_get(ACCOUNTS_PATH, "investor accounts"))

    def resolve_investor_id(self) -> int:
        """Configured investor id, else the first account the API returns."""
        if self._config.investor_id:
            return self._config.investor_id
        accounts = self.list_accounts()
        if not accounts:
            raise TransportFailureError("No investor accounts found for these credentials")
        first = accounts[0]
        logger.warning(
            "No investorid configured; using the first account %r (%d). "
            "Run with --accounts to pick one explicitly.",
            first.name, first.id,
        )
        return first.id

    def fetch_positions(self, investor_id: int) -> list[CurrentPosition]:
        return parse_positions(self._authorized_get(positions_path(investor_id), "current positions"))

    def run(self) -> RunReport:
        investor_id = self.resolve_investor_id()
        if self._events:
            self._events.run_start(investor_id=investor_id, rules=len(self._config.rules))

        positions = self.fetch_positions(investor_id)
        logger.debug("Fetched %d positions for investor %d", len(positions), investor_id)

        plan = plan_updates(self._config.rules, positions)
        if self._events:
            for name in plan.missing_stop_loss:
                self._events.stop_loss_missing(name)

        results = dispatch_updates(
            self._transport,
            investor_id,
            plan.updates,
            self._credentials,
            on_result=self._record_result,
        )

        report = RunReport(
            investor_id=investor_id,
            positions=positions,
            plan=plan,
            results=results,
            refreshed=self._refreshed,
        )
        for warning in report.summary_warnings():
            logger.debug(warning)
        if self._events:
            self._events.run_complete(
                positions=len(positions),
                updated=len(report.applied),
                failed=len(report.failed),
                unchanged=len(plan.unchanged),
            )
        return report

    def _record_result(self, result: UpdateResult) -> None:
        if self._events is None:
            return
        if result.ok:
            self._events.update_applied(
                result.update.product, result.update.order_id, result.update.new_quote
            )
        else:
            self._events.update_failed(
                result.update.product, result.update.order_id, result.detail
            )
