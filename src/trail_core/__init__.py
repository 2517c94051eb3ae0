"""
trail-core: trailing stop-loss decision engine.

No I/O, no network, no side effects. Consumes positions and configured
trailing rules, produces StopLossUpdates. Fully deterministic and unit-testable.
"""

from trail_core.contracts import (
    CurrentPosition,
    Credentials,
    InvestorAccount,
    StopLossUpdate,
    Threshold,
    ThresholdType,
    TrailingRule,
    UpdateResult,
)
from trail_core.decision import EPSILON, UpdatePlan, decide, find_stop_loss, plan_updates

__all__ = [
    "CurrentPosition",
    "Credentials",
    "decide",
    "EPSILON",
    "find_stop_loss",
    "InvestorAccount",
    "plan_updates",
    "StopLossUpdate",
    "Threshold",
    "ThresholdType",
    "TrailingRule",
    "UpdatePlan",
    "UpdateResult",
]
