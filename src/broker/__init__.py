"""
Broker access: authenticated Darwinex transport, wire mapping, token refresh.

Depends on trail_core.contracts; no dependency from trail_core back to broker.
"""

from broker.auth import CredentialRefresher
from broker.transport import (
    BrokerTransport,
    DarwinexTransport,
    Failure,
    Outcome,
    Success,
    TokenPair,
    Unauthorized,
)

__all__ = [
    "BrokerTransport",
    "CredentialRefresher",
    "DarwinexTransport",
    "Failure",
    "Outcome",
    "Success",
    "TokenPair",
    "Unauthorized",
]
