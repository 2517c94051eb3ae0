"""
Trailing-stop decision engine: (rule, position, stop-loss) -> StopLossUpdate | None.

The stop-loss trails the current quote at a fixed distance. An update is
warranted only once the live gap exceeds that distance by more than EPSILON,
so sub-cent drift never produces an order modification.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from trail_core.contracts import (
    CurrentPosition,
    StopLossUpdate,
    Threshold,
    ThresholdType,
    TrailingRule,
)
from trail_core.errors import ConfigInvalidError

logger = logging.getLogger("trailstop.decision")

# Quotes are 2-dp on the wire; anything below half a cent is noise.
EPSILON = 0.005


def trailing_distance(spec: str, current_quote: float) -> float:
    """Absolute distance between quote and stop for a rule spec.

    "46.5" -> 46.5, "2%" at quote 200 -> 4.0.
    """
    text = spec.strip()
    try:
        if "%" in text:
            pct = float(text.replace("%", ""))
            return (pct / 100) * current_quote
        return float(text)
    except ValueError as exc:
        raise ConfigInvalidError(f"Cannot parse trailingSL value {spec!r}") from exc


def find_stop_loss(position: CurrentPosition) -> Threshold | None:
    """First STOP_LOSS threshold on the position, or None."""
    stops = [t for t in position.thresholds if t.type is ThresholdType.STOP_LOSS]
    if not stops:
        return None
    if len(stops) > 1:
        logger.warning(
            "%s has %d stop-loss orders; only order %d is trailed",
            position.product_name, len(stops), stops[0].order_id,
        )
    return stops[0]


def decide(
    rule: TrailingRule,
    position: CurrentPosition,
    threshold: Threshold,
) -> StopLossUpdate | None:
    """Return the update for *threshold* if the trailing distance has been exceeded."""
    distance = trailing_distance(rule.spec, position.current_quote)
    candidate = position.current_quote - distance
    gap = position.current_quote - threshold.quote

    if not distance + EPSILON < gap:
        return None

    return StopLossUpdate(
        product=rule.name,
        order_id=threshold.order_id,
        amount=threshold.amount,
        new_quote=candidate,
        previous_quote=threshold.quote,
        distance=distance,
    )


@dataclass
class UpdatePlan:
    """Everything the decision pass found for one snapshot of positions."""

    updates: list[StopLossUpdate] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    missing_stop_loss: list[str] = field(default_factory=list)
    stop_loss_seen: bool = False

    @property
    def matched(self) -> int:
        return len(self.updates) + len(self.unchanged) + len(self.missing_stop_loss)


def plan_updates(
    rules: Iterable[TrailingRule],
    positions: Iterable[CurrentPosition],
) -> UpdatePlan:
    """Join positions to rules by base product name and decide each one.

    Positions with no configured rule are ignored. A matched position
    without a stop-loss is recorded in ``missing_stop_loss``, not raised.
    """
    by_name: dict[str, TrailingRule] = {}
    for rule in rules:
        by_name.setdefault(rule.name, rule)

    plan = UpdatePlan()
    for position in positions:
        rule = by_name.get(position.base_name)
        if rule is None:
            continue

        threshold = find_stop_loss(position)
        if threshold is None:
            logger.debug("No stop-loss found for %s; cannot trail it", rule.name)
            plan.missing_stop_loss.append(rule.name)
            continue

        plan.stop_loss_seen = True
        update = decide(rule, position, threshold)
        if update is None:
            logger.debug("Stop-loss checked but not modified for %s", rule.name)
            plan.unchanged.append(rule.name)
        else:
            logger.debug(
                "%s: quote %.2f, stop %.2f -> %.2f (distance %.4f)",
                rule.name, position.current_quote, threshold.quote,
                update.new_quote, update.distance,
            )
            plan.updates.append(update)
    return plan
