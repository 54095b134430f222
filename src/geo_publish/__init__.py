# Copyright 2025 geo-publish contributors - SPDX-License-Identifier: Apache-2.0
"""Publish-side delivery semantics for a geolocated message broker.

Features:
    - At-least-once, at-most-once and exactly-once publishing
    - Idempotency keys stable across the retries of one logical publish
    - Bounded timeout retries for at-most-once
    - Best-effort dedupe release after exactly-once success
    - Prometheus metrics and an INI/environment configuration loader

Example::

    from geo_publish import DeliveryController, DeliveryMode, MessageIntent

    intent = MessageIntent(message="Road closed", topic="traffic", radius=500,
                           lifetime=10, latitude=41.9, longitude=12.5)
    async with DeliveryController() as controller:
        result = await controller.publish(intent, DeliveryMode.AT_MOST_ONCE)
"""

from geo_publish.client import BrokerClient
from geo_publish.config_loader import PublisherConfig, load_publisher_config
from geo_publish.controller import DeliveryController, publish
from geo_publish.exceptions import (
    BrokerUnavailableError,
    ConfigurationError,
    PublishError,
    PublishExhaustedError,
)
from geo_publish.models import MessageIntent, RequestIdFactory
from geo_publish.semantics import DeliveryMode, Outcome, PublishResult, PublishStatus

__all__ = [
    "BrokerClient",
    "BrokerUnavailableError",
    "ConfigurationError",
    "DeliveryController",
    "DeliveryMode",
    "MessageIntent",
    "Outcome",
    "PublishError",
    "PublishExhaustedError",
    "PublishResult",
    "PublishStatus",
    "PublisherConfig",
    "RequestIdFactory",
    "load_publisher_config",
    "publish",
]
