# Copyright 2025 geo-publish contributors - SPDX-License-Identifier: Apache-2.0
"""Delivery controller: drives one publish intent to completion.

A logical publish is a sequential retry loop. Exactly one request is in
flight at a time; the next attempt is sent only once the previous one has
been answered or has timed out. Logical publishes share nothing but the HTTP
session and the key factory, so many of them may run concurrently on one
controller.

Example::

    config = load_publisher_config("config.ini")
    async with DeliveryController(config) as controller:
        result = await controller.publish(intent, DeliveryMode.EXACTLY_ONCE)
        if result.ok:
            print("published", result.request_id)
"""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp

from .client import BrokerClient
from .config_loader import PublisherConfig
from .exceptions import BrokerUnavailableError, PublishExhaustedError
from .logger import get_logger
from .models import MessageIntent, PublishEnvelope, RequestIdFactory
from .prometheus import PublishMetrics
from .semantics import Decision, DeliveryMode, Outcome, PublishResult, RetryState


class DeliveryController:
    """Publishes message intents under a chosen delivery guarantee.

    Attributes:
        config: Timeouts, ceilings and the default mode.
        broker: Transport for the publish and release endpoints.
        metrics: Prometheus counters.
        request_ids: Idempotency key factory.
    """

    def __init__(
        self,
        config: PublisherConfig | None = None,
        broker: BrokerClient | None = None,
        metrics: PublishMetrics | None = None,
        request_ids: RequestIdFactory | None = None,
    ):
        self.config = config or PublisherConfig()
        self.broker = broker or BrokerClient(
            self.config.base_url,
            token=self.config.token,
            token_cookie=self.config.token_cookie,
            publish_path=self.config.publish_path,
            release_path=self.config.release_path,
        )
        self.metrics = metrics or PublishMetrics()
        self.request_ids = request_ids or RequestIdFactory(self.config.client_id)
        self.logger = get_logger("controller")
        self._release_tasks: set[asyncio.Task[None]] = set()

    @property
    def pending_releases(self) -> int:
        """Number of release calls still running in the background."""
        return len(self._release_tasks)

    async def publish(self, intent: MessageIntent, mode: DeliveryMode | str | None = None) -> PublishResult:
        """Publish ``intent`` until it completes or the retry ceiling is hit.

        Args:
            intent: What to publish.
            mode: Delivery guarantee; the configured mode when None.

        Returns:
            PublishResult with status ``completed`` or ``exhausted``.

        Raises:
            BrokerUnavailableError: If an attempt fails without a response
                and without timing out.
            pydantic.ValidationError: If the intent holds out-of-range values.
        """
        mode = self.config.mode if mode is None else DeliveryMode.parse(mode)
        request_id = self.request_ids.new() if mode.uses_request_id else None
        state = RetryState(
            mode=mode,
            retry_limit=self.config.retry_limit,
            max_attempts=self.config.max_attempts,
        )
        payload: Any = None

        while True:
            envelope = PublishEnvelope.build(intent, request_id)
            self.metrics.inc_attempt(mode.value)
            try:
                attempt = await self.broker.publish(envelope, self.config.request_timeout)
            except BrokerUnavailableError as exc:
                exc.attempts = state.attempts + 1
                exc.request_id = request_id
                self.logger.warning(
                    "Publish to topic %s abandoned on attempt %d (%s): %s",
                    intent.topic, exc.attempts, mode.value, exc,
                )
                raise

            decision = state.record(attempt.outcome)
            if attempt.outcome is Outcome.TIMEOUT:
                self.metrics.inc_timeout(mode.value)
            elif attempt.outcome is Outcome.EXPLICIT_FAIL:
                self.metrics.inc_explicit_failure(mode.value)

            if decision is Decision.COMPLETE:
                payload = attempt.payload
                break
            if decision is Decision.EXHAUST:
                break

            self.logger.debug(
                "Attempt %d for topic %s ended with %s, retrying (%s, request_id=%s)",
                state.attempts, intent.topic, attempt.outcome.value, mode.value, request_id,
            )
            if self.config.retry_delay:
                await asyncio.sleep(self.config.retry_delay)

        result = PublishResult.from_state(state, request_id, payload)
        if result.ok:
            self.metrics.inc_completed(mode.value)
            self.logger.info(
                "Published to topic %s after %d attempt(s) (%s, request_id=%s)",
                intent.topic, result.attempts, mode.value, request_id,
            )
            if mode.releases_on_success:
                self._schedule_release(request_id)
        else:
            self.metrics.inc_exhausted(mode.value)
            self.logger.warning(
                "Gave up publishing to topic %s after %d attempt(s), %d timeout(s) (%s, request_id=%s)",
                intent.topic, result.attempts, result.timeouts, mode.value, request_id,
            )
        return result

    async def publish_or_raise(self, intent: MessageIntent, mode: DeliveryMode | str | None = None) -> PublishResult:
        """Like :meth:`publish` but raise when the publish was abandoned.

        Raises:
            PublishExhaustedError: If the retry ceiling was reached.
        """
        result = await self.publish(intent, mode)
        if not result.ok:
            raise PublishExhaustedError(result)
        return result

    def _schedule_release(self, request_id: str | None) -> None:
        """Dispatch the dedupe release without waiting for it."""
        if request_id is None:
            return
        task = asyncio.create_task(self._release(request_id))
        self._release_tasks.add(task)
        task.add_done_callback(self._release_tasks.discard)

    async def _release(self, request_id: str) -> None:
        try:
            await self.broker.release(request_id, self.config.request_timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            self.metrics.inc_release_failure()
            self.logger.warning("Release of request %s failed: %s", request_id, exc)

    async def drain(self) -> None:
        """Wait for every background release call to finish."""
        while self._release_tasks:
            await asyncio.gather(*list(self._release_tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Finish pending releases and close the broker session."""
        await self.drain()
        await self.broker.close()

    async def __aenter__(self) -> DeliveryController:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


_background_closes: set[asyncio.Task[None]] = set()


async def publish(
    intent: MessageIntent,
    mode: DeliveryMode | str | None = None,
    config: PublisherConfig | None = None,
    controller: DeliveryController | None = None,
) -> PublishResult:
    """One-shot publish with a throwaway controller.

    Returns as soon as the publish has completed or been exhausted. A pending
    release keeps running in the background; the controller is closed once it
    has finished.
    """
    controller = controller or DeliveryController(config)
    try:
        result = await controller.publish(intent, mode)
    except BaseException:
        await controller.aclose()
        raise
    if controller.pending_releases:
        task = asyncio.create_task(controller.aclose())
        _background_closes.add(task)
        task.add_done_callback(_background_closes.discard)
    else:
        await controller.aclose()
    return result
