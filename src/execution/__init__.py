"""
Execution: fetch -> decide -> concurrent dispatch of stop-loss updates.
One investor account, one snapshot of positions per run.
"""

from execution.dispatcher import dispatch_updates, submit_update
from execution.reconciler import Reconciler, RunReport

__all__ = ["Reconciler", "RunReport", "dispatch_updates", "submit_update"]
