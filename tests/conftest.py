"""Pytest fixtures: a scripted fake transport, rules, positions, config files."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Callable

import pytest

from broker.transport import Failure, Outcome, Success, TokenPair, Unauthorized
from config import TrailConfig, parse_trail_config
from trail_core.contracts import (
    Credentials,
    CurrentPosition,
    Threshold,
    ThresholdType,
    TrailingRule,
)


class FakeTransport:
    """
    Scripted BrokerTransport.

    ``gets`` maps a path to a list of outcomes returned in order (the last
    one repeats). PUTs succeed unless ``put_handler`` says otherwise.
    """

    def __init__(
        self,
        gets: dict[str, list[Outcome]] | None = None,
        *,
        put_handler: Callable[[str, str], Outcome] | None = None,
        tokens: TokenPair | None = None,
    ) -> None:
        self.gets = {k: list(v) for k, v in (gets or {}).items()}
        self.put_handler = put_handler
        self.tokens = tokens or TokenPair("new-access", "new-refresh")
        self.get_calls: list[tuple[str, Credentials]] = []
        self.put_calls: list[tuple[str, str, Credentials]] = []
        self.refresh_calls: list[Credentials] = []
        self._lock = threading.Lock()

    def get(self, path: str, credentials: Credentials) -> Outcome:
        self.get_calls.append((path, credentials))
        queue = self.gets.get(path)
        if not queue:
            return Failure(404, "404 Not Found")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def put(self, path: str, body: str, credentials: Credentials) -> Outcome:
        with self._lock:
            self.put_calls.append((path, body, credentials))
        if self.put_handler is not None:
            return self.put_handler(path, body)
        return Success(b"{}")

    def refresh_exchange(self, credentials: Credentials) -> TokenPair:
        self.refresh_calls.append(credentials)
        return self.tokens


def json_body(data: object) -> Success:
    return Success(json.dumps(data).encode())


UNAUTHORIZED = Unauthorized()


def position_json(
    name: str,
    quote: float,
    stop_quote: float | None = None,
    *,
    order_id: int = 1,
    amount: float = 100.0,
    extra: list[dict] | None = None,
) -> dict:
    thresholds = list(extra or [])
    if stop_quote is not None:
        thresholds.append(
            {"type": "STOP_LOSS", "orderId": order_id, "amount": amount, "quote": stop_quote}
        )
    return {"productName": name, "currentQuote": quote, "thresholds": thresholds}


def stop_loss(quote: float, *, order_id: int = 1, amount: float = 100.0) -> Threshold:
    return Threshold(type=ThresholdType.STOP_LOSS, order_id=order_id, amount=amount, quote=quote)


def raw_config(**overrides: object) -> dict:
    data = {
        "authtoken": "access-1",
        "refreshtoken": "refresh-1",
        "consumerkey": "key",
        "consumersecret": "secret",
        "investorid": 4242,
        "darwins": [
            {"name": "EURUSD", "trailingSL": "5"},
            {"name": "SYO", "trailingSL": "2%"},
        ],
    }
    data.update(overrides)
    return data


@pytest.fixture
def credentials() -> Credentials:
    return Credentials("access-1", "refresh-1", "key", "secret")


@pytest.fixture
def trail_config() -> TrailConfig:
    return parse_trail_config(raw_config())


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(raw_config(), indent=1))
    return path


@pytest.fixture
def absolute_rule() -> TrailingRule:
    return TrailingRule(name="EURUSD", spec="5")


@pytest.fixture
def percent_rule() -> TrailingRule:
    return TrailingRule(name="SYO", spec="2%")


@pytest.fixture
def eurusd_position() -> CurrentPosition:
    return CurrentPosition(product_name="EURUSD", current_quote=100.0, thresholds=[stop_loss(90.0)])
