"""
Credential refresh: refresh-token exchange + write-back of the full config.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from trail_core.contracts import Credentials

if TYPE_CHECKING:
    from broker.transport import BrokerTransport
    from config.trail_config import TrailConfig

logger = logging.getLogger("trailstop.auth")


class CredentialRefresher:
    """
    Exchange the refresh token and persist the result before it is reused.

    ``persist`` receives the whole updated TrailConfig (not just the tokens)
    and is called exactly once per refresh. ``config`` always holds the
    latest snapshot, so a second refresh in the same run builds on the first.
    """

    def __init__(
        self,
        transport: BrokerTransport,
        config: TrailConfig,
        persist: Callable[[TrailConfig], None],
    ) -> None:
        self._transport = transport
        self._persist = persist
        self.config = config

    def refresh(self, credentials: Credentials) -> Credentials:
        logger.info("Expired authentication token. Refreshing...")
        tokens = self._transport.refresh_exchange(credentials)
        refreshed = credentials.with_tokens(tokens.access_token, tokens.refresh_token)

        updated = self.config.with_credentials(refreshed)
        self._persist(updated)
        self.config = updated
        logger.info("New authentication tokens saved")
        return refreshed
