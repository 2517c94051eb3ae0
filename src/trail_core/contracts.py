"""
Data contracts for trail-core: rules, credentials, accounts, positions, updates.

Everything here is rebuilt each run from the config file and API responses.
No I/O; these are plain dataclasses.
"""

from dataclasses import dataclass, field
from enum import Enum


# ---------------------------------------------------------------------------
# Configuration side
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrailingRule:
    """Trailing distance for one Darwin: absolute ("46.5") or percentage ("2.53%")."""

    name: str
    spec: str


@dataclass(frozen=True)
class Credentials:
    access_token: str
    refresh_token: str
    consumer_key: str
    consumer_secret: str

    def with_tokens(self, access_token: str, refresh_token: str) -> "Credentials":
        return Credentials(
            access_token=access_token,
            refresh_token=refresh_token,
            consumer_key=self.consumer_key,
            consumer_secret=self.consumer_secret,
        )

    def __repr__(self) -> str:
        return "Credentials(access_token=***, refresh_token=***, consumer_key=***, consumer_secret=***)"


# ---------------------------------------------------------------------------
# Broker side
# ---------------------------------------------------------------------------


class ThresholdType(str, Enum):
    """Kind of conditional order attached to a position."""

    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw: str) -> "ThresholdType":
        try:
            return cls(str(raw).upper())
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class InvestorAccount:
    id: int
    name: str


@dataclass(frozen=True)
class Threshold:
    """An existing conditional order on a position."""

    type: ThresholdType
    order_id: int
    amount: float
    quote: float


@dataclass(frozen=True)
class CurrentPosition:
    product_name: str
    current_quote: float
    thresholds: list[Threshold] = field(default_factory=list)

    @property
    def base_name(self) -> str:
        """Product name without the share-class suffix: "EURUSD.A" -> "EURUSD"."""
        return self.product_name.split(".", 1)[0]


# ---------------------------------------------------------------------------
# Decision / dispatch side
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StopLossUpdate:
    """A warranted move of one stop-loss order."""

    product: str
    order_id: int
    amount: float
    new_quote: float
    previous_quote: float
    distance: float


@dataclass(frozen=True)
class UpdateResult:
    """Terminal outcome of one dispatched update task."""

    update: StopLossUpdate
    ok: bool
    status_code: int | None = None
    detail: str = ""
