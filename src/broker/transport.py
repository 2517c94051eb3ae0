"""
Authenticated transport for the Darwinex REST API.

GET/PUT responses are classified into Success / Unauthorized / Failure so
the caller decides what a 401 means. The refresh-token exchange is the one
call that raises instead: there is no way to recover from a refresh that
failed, the operator has to re-authenticate on the Darwinex website.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Union

import requests

from broker.endpoints import API_BASE_URL, TOKEN_PATH
from trail_core.contracts import Credentials
from trail_core.errors import RefreshFailedError

logger = logging.getLogger("trailstop.transport")

DEFAULT_TIMEOUT = 20.0


@dataclass(frozen=True)
class Success:
    body: bytes


@dataclass(frozen=True)
class Unauthorized:
    pass


@dataclass(frozen=True)
class Failure:
    status_code: int | None
    reason: str


Outcome = Union[Success, Unauthorized, Failure]


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class BrokerTransport(Protocol):
    """Protocol for the authenticated transport. Tests implement fakes of this."""

    def get(self, path: str, credentials: Credentials) -> Outcome:
        ...

    def put(self, path: str, body: str, credentials: Credentials) -> Outcome:
        ...

    def refresh_exchange(self, credentials: Credentials) -> TokenPair:
        ...


def _bearer_headers(credentials: Credentials) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {credentials.access_token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


def classify(resp: requests.Response) -> Outcome:
    if resp.status_code == 200:
        return Success(resp.content)
    if resp.status_code == 401:
        return Unauthorized()
    return Failure(resp.status_code, f"{resp.status_code} {resp.reason}")


class DarwinexTransport:
    """
    Bearer-token client for the Darwinex API over a shared requests.Session.

    The dispatcher's worker threads share this one session. requests does
    not document Session as thread-safe; this relies on each call being an
    independent request that never touches session headers or cookies.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def get(self, path: str, credentials: Credentials) -> Outcome:
        try:
            resp = self.session.get(
                self._url(path),
                headers=_bearer_headers(credentials),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.debug("GET %s failed: %s", path, exc)
            return Failure(None, str(exc))
        return classify(resp)

    def put(self, path: str, body: str, credentials: Credentials) -> Outcome:
        try:
            resp = self.session.put(
                self._url(path),
                data=body,
                headers=_bearer_headers(credentials),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.debug("PUT %s failed: %s", path, exc)
            return Failure(None, str(exc))
        return classify(resp)

    def refresh_exchange(self, credentials: Credentials) -> TokenPair:
        """Trade the refresh token for a new access/refresh token pair."""
        try:
            resp = self.session.post(
                self._url(TOKEN_PATH),
                data={"grant_type": "refresh_token", "refresh_token": credentials.refresh_token},
                auth=(credentials.consumer_key, credentials.consumer_secret),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise RefreshFailedError(f"Error refreshing the authentication token: {exc}") from exc

        if resp.status_code != 200:
            raise RefreshFailedError(
                f"Error refreshing the authentication token. Got status code "
                f"{resp.status_code} {resp.reason}. Please refresh the tokens manually "
                "from the Darwinex website, and try again."
            )

        try:
            payload = resp.json()
            return TokenPair(
                access_token=str(payload["access_token"]),
                refresh_token=str(payload["refresh_token"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise RefreshFailedError(
                f"Error parsing the response of the token refresh: {exc}"
            ) from exc
