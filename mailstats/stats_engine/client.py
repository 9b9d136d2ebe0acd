"""
Acelle Mail API client.

Fetches one campaign's raw statistics payload. Transport-level retries
live here and only here: one retry with alternate auth headers after a
401, and the legacy endpoint variants after a 404. Every failure surfaces
as an ApiError subclass.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx

from mailstats.common.config import get_settings
from mailstats.common.exceptions import (
    ApiTimeoutError,
    AuthError,
    MalformedResponseError,
    NetworkError,
    UpstreamStatusError,
)
from mailstats.common.logger import get_logger
from mailstats.common.utils import Timer, current_timestamp_ms
from mailstats.schemas.internal import Account

logger = get_logger(__name__)

# Freshness is owned by the statistics store, never by HTTP caches
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
}


@dataclass(frozen=True)
class AuthStrategy:
    """A header combination carrying the Acelle API token."""

    name: str
    token_headers: tuple[str, ...]
    bearer: bool = False

    def headers(self, token: str) -> dict[str, str]:
        headers = {name: token for name in self.token_headers}
        if self.bearer:
            headers["Authorization"] = f"Bearer {token}"
        return headers


PRIMARY_AUTH = AuthStrategy("primary", ("X-Acelle-Token",), bearer=True)
ALTERNATE_AUTH = AuthStrategy("alternate", ("api-token",))


def build_base_url(api_endpoint: str) -> str:
    """Strip trailing slashes and collapse a duplicated /api/v1 segment."""
    base = api_endpoint.strip().rstrip("/")
    while "/api/v1/api/v1" in base:
        base = base.replace("/api/v1/api/v1", "/api/v1")
    return base


class AcelleClient:
    """
    Async client for the Acelle campaign endpoints.

    One pooled httpx.AsyncClient is created lazily and reused; close it with
    `close()` or use the client as an async context manager.
    """

    def __init__(
        self,
        timeout: float | None = None,
        legacy_paths: list[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.timeout = timeout if timeout is not None else settings.acelle.timeout_seconds
        self.connect_timeout = min(settings.acelle.connect_timeout_seconds, self.timeout)
        self.legacy_paths = (
            legacy_paths if legacy_paths is not None else list(settings.acelle.legacy_paths)
        )
        self._max_connections = settings.acelle.max_connections
        self._user_agent = settings.acelle.user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
                limits=httpx.Limits(max_connections=self._max_connections),
                headers={
                    "Accept": "application/json",
                    "User-Agent": self._user_agent,
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> AcelleClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def campaign_paths(self, campaign_uid: str) -> list[str]:
        """Main campaign path followed by the legacy variants."""
        main = f"campaigns/{campaign_uid}"
        return [main, *(f"{main}/{suffix}" for suffix in self.legacy_paths)]

    async def fetch(self, campaign_uid: str, account: Account) -> dict[str, Any]:
        """
        Fetch the raw campaign payload.

        Raises:
            AuthError: missing credentials or both auth strategies rejected.
            ApiTimeoutError: no answer within the timeout.
            NetworkError: connection failure.
            UpstreamStatusError: unexpected HTTP status.
            MalformedResponseError: body is not a JSON object.
        """
        if not account.has_credentials:
            raise AuthError(
                "Account has no API endpoint or token",
                {"account_id": account.id},
            )

        with Timer() as timer:
            try:
                # One budget for every path and auth retry of this fetch
                payload, path = await asyncio.wait_for(
                    self._fetch_paths(campaign_uid, account),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError as e:
                raise ApiTimeoutError(
                    f"Upstream timed out after {self.timeout}s",
                    {"campaign_uid": campaign_uid, "account_id": account.id},
                ) from e

        logger.info(
            "Campaign statistics fetched",
            campaign_uid=campaign_uid,
            account_id=account.id,
            path=path,
            duration_ms=round(timer.elapsed_ms, 2),
        )
        return payload

    async def _fetch_paths(
        self, campaign_uid: str, account: Account
    ) -> tuple[dict[str, Any], str]:
        """Try the main path, then each legacy path while the upstream answers 404."""
        base_url = build_base_url(account.api_endpoint)
        paths = self.campaign_paths(campaign_uid)

        for index, path in enumerate(paths):
            url = f"{base_url}/{path}"
            response = await self._get_authenticated(url, account.api_token)
            if response.status_code != 404 or index == len(paths) - 1:
                break
            logger.info(
                "Campaign endpoint not found, trying legacy path",
                campaign_uid=campaign_uid,
                path=path,
                next_path=paths[index + 1],
            )

        return self._parse(response, campaign_uid), path

    async def _get_authenticated(self, url: str, token: str) -> httpx.Response:
        """GET with the primary auth headers, retrying once with the alternate set on 401."""
        response = await self._send(url, token, PRIMARY_AUTH)
        if response.status_code != 401:
            return response

        logger.info("Upstream rejected primary auth, retrying", url=url)
        response = await self._send(url, token, ALTERNATE_AUTH)
        if response.status_code == 401:
            raise AuthError("Upstream rejected every auth strategy", {"url": url})
        return response

    async def _send(self, url: str, token: str, strategy: AuthStrategy) -> httpx.Response:
        params = {"api_token": token, "_t": str(current_timestamp_ms())}
        headers = {**NO_CACHE_HEADERS, **strategy.headers(token)}
        try:
            return await self.client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            raise ApiTimeoutError(
                f"Upstream timed out after {self.timeout}s",
                {"url": url, "auth": strategy.name},
            ) from e
        except (httpx.TransportError, httpx.InvalidURL) as e:
            raise NetworkError(
                f"Upstream unreachable: {e}",
                {"url": url, "auth": strategy.name},
            ) from e

    @staticmethod
    def _parse(response: httpx.Response, campaign_uid: str) -> dict[str, Any]:
        if not response.is_success:
            raise UpstreamStatusError(
                response.status_code,
                details={"campaign_uid": campaign_uid, "body": response.text[:200]},
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                "Upstream body is not JSON",
                {"campaign_uid": campaign_uid, "body": response.text[:200]},
            ) from e
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                "Upstream body is not a JSON object",
                {"campaign_uid": campaign_uid, "type": type(payload).__name__},
            )
        return payload
