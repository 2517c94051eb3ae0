"""
Structured JSON event logger for cron/container observability.

Emits one JSON object per line to stderr. Events are designed to be
parsed by log aggregators (Grafana Loki, CloudWatch, ELK).

Optional webhook: when configured, order-level events (update_applied,
update_failed, error) are POSTed to the URL.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

import requests

logger = logging.getLogger("trailstop.events")


class StructuredEventLogger:
    """Emit structured JSON events to stderr and optional webhook."""

    def __init__(
        self,
        *,
        enabled: bool = True,
        webhook_url: str = "",
        stream: Any = None,
    ) -> None:
        self._enabled = enabled
        self._webhook_url = webhook_url.strip()
        self._stream = stream or sys.stderr
        self._ALERT_EVENTS = {
            "update_applied",
            "update_failed",
            "error",
        }

    def _emit(self, event_type: str, **fields: Any) -> dict:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event_type,
            **fields,
        }
        if self._enabled:
            self._stream.write(json.dumps(record) + "\n")
            self._stream.flush()

        if self._webhook_url and event_type in self._ALERT_EVENTS:
            self._post_webhook(record)

        return record

    def _post_webhook(self, record: dict) -> None:
        try:
            requests.post(self._webhook_url, json=record, timeout=5)
        except requests.RequestException as exc:
            logger.warning("Webhook POST failed: %s", exc)

    def run_start(self, investor_id: int, rules: int) -> dict:
        return self._emit("run_start", investor_id=investor_id, rules=rules)

    def token_refreshed(self) -> dict:
        return self._emit("token_refreshed")

    def stop_loss_missing(self, darwin: str) -> dict:
        return self._emit("stop_loss_missing", darwin=darwin)

    def update_applied(self, darwin: str, order_id: int, quote: float) -> dict:
        return self._emit(
            "update_applied",
            darwin=darwin,
            order_id=order_id,
            quote=round(quote, 2),
        )

    def update_failed(self, darwin: str, order_id: int, reason: str) -> dict:
        return self._emit(
            "update_failed",
            darwin=darwin,
            order_id=order_id,
            reason=reason,
        )

    def run_complete(self, positions: int, updated: int, failed: int, unchanged: int) -> dict:
        return self._emit(
            "run_complete",
            positions=positions,
            updated=updated,
            failed=failed,
            unchanged=unchanged,
        )

    def error(self, message: str, detail: str = "") -> dict:
        return self._emit("error", message=message, detail=detail)
