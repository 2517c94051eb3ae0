"""
Concurrent dispatcher: one PUT per StopLossUpdate, all in flight at once, single join.

Each task is independent: a failed or crashing update is recorded in its own
UpdateResult and never aborts its siblings. No retries, no cancellation.
"""

from __future__ import annotations

import concurrent.futures
import logging
from typing import TYPE_CHECKING, Callable

from broker.endpoints import conditional_order_body, conditional_order_path
from broker.transport import Success, Unauthorized
from trail_core.contracts import Credentials, StopLossUpdate, UpdateResult

if TYPE_CHECKING:
    from broker.transport import BrokerTransport

logger = logging.getLogger("trailstop.dispatcher")


def submit_update(
    transport: BrokerTransport,
    investor_id: int,
    update: StopLossUpdate,
    credentials: Credentials,
) -> UpdateResult:
    """PUT one conditional-order modification and classify the outcome."""
    outcome = transport.put(
        conditional_order_path(investor_id, update.order_id),
        conditional_order_body(update.amount, update.new_quote),
        credentials,
    )
    if isinstance(outcome, Success):
        logger.debug(
            "Trailing stop-loss order updated for %s. New stop-loss value: %.2f",
            update.product, update.new_quote,
        )
        return UpdateResult(update=update, ok=True, status_code=200)
    if isinstance(outcome, Unauthorized):
        logger.debug("Unauthorized while updating the stop-loss order for %s", update.product)
        return UpdateResult(update=update, ok=False, status_code=401, detail="401 Unauthorized")
    logger.debug(
        "Error while updating the trailing stop-loss order for %s: %s",
        update.product, outcome.reason,
    )
    return UpdateResult(update=update, ok=False, status_code=outcome.status_code, detail=outcome.reason)


def dispatch_updates(
    transport: BrokerTransport,
    investor_id: int,
    updates: list[StopLossUpdate],
    credentials: Credentials,
    *,
    on_result: Callable[[UpdateResult], None] | None = None,
) -> list[UpdateResult]:
    """
    Submit every update in parallel and block until all of them finish.

    The pool has one worker per update. ``credentials`` must already be
    refreshed; tasks only read it. Results come back in input order.
    ``on_result`` is called from the joining thread as each task completes.
    """
    if not updates:
        return []

    results: list[UpdateResult | None] = [None] * len(updates)
    logger.debug("Dispatching %d stop-loss updates", len(updates))

    with concurrent.futures.ThreadPoolExecutor(
        max_workers=len(updates), thread_name_prefix="stoploss"
    ) as executor:
        future_to_index = {
            executor.submit(submit_update, transport, investor_id, update, credentials): i
            for i, update in enumerate(updates)
        }
        for future in concurrent.futures.as_completed(future_to_index):
            i = future_to_index[future]
            try:
                result = future.result()
            except Exception as exc:
                logger.error("Update task for %s crashed: %s", updates[i].product, exc)
                result = UpdateResult(update=updates[i], ok=False, detail=str(exc))
            results[i] = result
            if on_result is not None:
                try:
                    on_result(result)
                except Exception as exc:
                    logger.warning("Result callback failed for %s: %s", updates[i].product, exc)

    return [r for r in results if r is not None]
