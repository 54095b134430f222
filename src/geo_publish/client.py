# Copyright 2025 geo-publish contributors - SPDX-License-Identifier: Apache-2.0
"""HTTP transport for the broker's publish and release endpoints.

The broker answers a publish with a JSON value. The JSON string ``"fail"``
means the message was not accepted; any other value is a success payload.
A request without a timely answer is a timeout, which is ambiguous: the
broker may or may not have stored the message.

Example::

    async with BrokerClient("http://localhost:8080") as broker:
        attempt = await broker.publish(envelope, timeout=3.0)
        if attempt.outcome is Outcome.SUCCESS:
            await broker.release(envelope.request_id, timeout=3.0)
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any

import aiohttp

from .config_loader import DEFAULT_PUBLISH_PATH, DEFAULT_RELEASE_PATH, DEFAULT_TOKEN_COOKIE
from .exceptions import BrokerUnavailableError
from .logger import get_logger
from .models import PublishEnvelope, ReleaseEnvelope
from .semantics import Outcome

FAILURE_TOKEN = "fail"

logger = get_logger("broker_client")


@dataclass(frozen=True)
class AttemptResult:
    """Classification of one publish request.

    Attributes:
        outcome: SUCCESS, EXPLICIT_FAIL or TIMEOUT.
        payload: Decoded response body (None on timeout).
    """

    outcome: Outcome
    payload: Any = None


def decode_publish_response(body: str) -> AttemptResult:
    """Classify a publish response body.

    Args:
        body: Raw response text.

    Returns:
        EXPLICIT_FAIL for the failure token (JSON-encoded or bare),
        SUCCESS with the decoded payload otherwise.
    """
    try:
        payload: Any = json.loads(body)
    except ValueError:
        payload = body.strip()
    if payload == FAILURE_TOKEN:
        return AttemptResult(Outcome.EXPLICIT_FAIL, payload)
    return AttemptResult(Outcome.SUCCESS, payload)


class BrokerClient:
    """Async client for the broker endpoints.

    Attributes:
        base_url: Broker base URL without trailing slash.
        token: Optional access token, sent as bearer header and cookie.
        token_cookie: Cookie name carrying the token (None to skip the cookie).
        publish_url: Full URL of the publish endpoint.
        release_url: Full URL of the release endpoint.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        token_cookie: str | None = DEFAULT_TOKEN_COOKIE,
        publish_path: str = DEFAULT_PUBLISH_PATH,
        release_path: str = DEFAULT_RELEASE_PATH,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.token_cookie = token_cookie
        self.publish_url = f"{self.base_url}{publish_path}"
        self.release_url = f"{self.base_url}{release_path}"
        self._session = session
        self._owns_session = session is None

    def _headers(self) -> dict[str, str]:
        """Build request headers."""
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _cookies(self) -> dict[str, str] | None:
        """Build request cookies; the broker reads its session token from a cookie."""
        if self.token and self.token_cookie:
            return {self.token_cookie: self.token}
        return None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def publish(self, envelope: PublishEnvelope, timeout: float) -> AttemptResult:
        """Send one publish attempt.

        Args:
            envelope: Request body for this attempt.
            timeout: Seconds before the attempt counts as timed out.

        Returns:
            The attempt classification.

        Raises:
            BrokerUnavailableError: On connection errors or HTTP error statuses.
        """
        session = self._get_session()
        try:
            async with session.post(
                self.publish_url,
                json=envelope.to_wire(),
                headers=self._headers(),
                cookies=self._cookies(),
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as resp:
                resp.raise_for_status()
                body = await resp.text()
        except asyncio.TimeoutError:
            logger.debug("Publish to %s timed out after %.3fs", self.publish_url, timeout)
            return AttemptResult(Outcome.TIMEOUT)
        except aiohttp.ClientError as exc:
            raise BrokerUnavailableError(f"Publish to {self.publish_url} failed: {exc}") from exc
        return decode_publish_response(body)

    async def release(self, request_id: str, timeout: float) -> None:
        """Ask the broker to forget the dedupe record of ``request_id``.

        The response is not inspected.

        Raises:
            aiohttp.ClientError: If the request cannot be delivered.
            asyncio.TimeoutError: If the request times out.
        """
        session = self._get_session()
        async with session.post(
            self.release_url,
            json=ReleaseEnvelope(request_id=request_id).to_wire(),
            headers=self._headers(),
            cookies=self._cookies(),
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            logger.debug("Release of %s answered with status %d", request_id, resp.status)

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> BrokerClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<BrokerClient '{self.base_url}'>"
