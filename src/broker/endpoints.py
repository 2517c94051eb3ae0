"""
Darwinex API paths and wire mapping: JSON bodies <-> trail_core contracts.
"""

from __future__ import annotations

import json
from typing import Any

from trail_core.contracts import CurrentPosition, InvestorAccount, Threshold, ThresholdType
from trail_core.errors import ResponseFormatError

API_BASE_URL = "https://api.darwinex.com"
TOKEN_PATH = "/token"
ACCOUNTS_PATH = "/investoraccountinfo/2.0/investoraccounts"


def positions_path(investor_id: int) -> str:
    return f"{ACCOUNTS_PATH}/{investor_id}/currentpositions"


def conditional_order_path(investor_id: int, order_id: int) -> str:
    return f"/trading/1.1/investoraccounts/{investor_id}/conditionalorders/{order_id}"


def conditional_order_body(amount: float, quote: float) -> str:
    """PUT body with both values at 2 decimal places, as the API quotes them."""
    return f'{{"amount":{amount:.2f},"quote":{quote:.2f}}}'


def _field(raw: dict[str, Any], *names: str) -> Any:
    # The API is not consistent about key casing (productName vs productname).
    lowered = {k.lower(): v for k, v in raw.items()}
    for name in names:
        if name.lower() in lowered:
            return lowered[name.lower()]
    raise KeyError(names[0])


def _decode_list(body: bytes, what: str) -> list[dict[str, Any]]:
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ResponseFormatError(f"Error parsing JSON response for the {what} query: {exc}") from exc
    if not isinstance(data, list) or not all(isinstance(d, dict) for d in data):
        raise ResponseFormatError(f"Expected a JSON list of objects for the {what} query")
    return data


def parse_accounts(body: bytes) -> list[InvestorAccount]:
    try:
        return [
            InvestorAccount(id=int(_field(d, "id")), name=str(_field(d, "name")))
            for d in _decode_list(body, "investor accounts")
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise ResponseFormatError(f"Malformed investor account entry: {exc}") from exc


def _parse_threshold(raw: dict[str, Any]) -> Threshold:
    return Threshold(
        type=ThresholdType.parse(_field(raw, "type")),
        order_id=int(_field(raw, "orderId")),
        amount=float(_field(raw, "amount")),
        quote=float(_field(raw, "quote")),
    )


def parse_positions(body: bytes) -> list[CurrentPosition]:
    positions: list[CurrentPosition] = []
    try:
        for d in _decode_list(body, "current positions"):
            thresholds = d.get("thresholds") or []
            positions.append(
                CurrentPosition(
                    product_name=str(_field(d, "productName")),
                    current_quote=float(_field(d, "currentQuote")),
                    thresholds=[_parse_threshold(t) for t in thresholds],
                )
            )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ResponseFormatError(f"Malformed current position entry: {exc}") from exc
    return positions
