"""Shared fixtures for geo-publish tests."""

import asyncio
from typing import Any

import pytest

from geo_publish.client import AttemptResult
from geo_publish.config_loader import PublisherConfig
from geo_publish.controller import DeliveryController
from geo_publish.models import MessageIntent, RequestIdFactory
from geo_publish.semantics import Outcome


class ScriptedBroker:
    """Broker stand-in answering publishes from a fixed script.

    Each script entry is an Outcome or an exception instance to raise.
    """

    def __init__(self, script, release_error: Exception | None = None):
        self.script = list(script)
        self.release_error = release_error
        self.calls: list[tuple[str, Any]] = []
        self.envelopes = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def publish(self, envelope, timeout):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            self.calls.append(("publish", envelope.request_id))
            self.envelopes.append(envelope)
            step = self.script.pop(0)
            if isinstance(step, Exception):
                raise step
            payload = "fail" if step is Outcome.EXPLICIT_FAIL else None
            if step is Outcome.SUCCESS:
                payload = "success"
            return AttemptResult(step, payload)
        finally:
            self.in_flight -= 1

    async def release(self, request_id, timeout):
        self.calls.append(("release", request_id))
        if self.release_error is not None:
            raise self.release_error

    async def close(self):
        self.closed = True

    @property
    def publish_calls(self):
        return [c for c in self.calls if c[0] == "publish"]

    @property
    def release_calls(self):
        return [c for c in self.calls if c[0] == "release"]


@pytest.fixture
def intent() -> MessageIntent:
    return MessageIntent(
        message="Road closed near the station",
        topic="traffic",
        radius=500,
        lifetime=10,
        latitude=41.9028,
        longitude=12.4964,
        title="Closure",
    )


@pytest.fixture
def make_controller():
    """Factory for a controller wired to a ScriptedBroker and a deterministic key clock."""

    def _make(script, release_error=None, **config_kwargs) -> tuple[DeliveryController, ScriptedBroker]:
        broker = ScriptedBroker(script, release_error=release_error)
        config = PublisherConfig(client_id="alice@example.com", **config_kwargs)
        ticks = iter(range(1_700_000_000_000, 1_700_000_100_000, 1000))
        controller = DeliveryController(
            config,
            broker=broker,
            request_ids=RequestIdFactory(config.client_id, clock=lambda: next(ticks)),
        )
        return controller, broker

    return _make
