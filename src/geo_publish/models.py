# Copyright 2025 geo-publish contributors - SPDX-License-Identifier: Apache-2.0
"""Message intents, wire envelopes and idempotency keys.

A :class:`MessageIntent` is what the caller wants published. It is never
modified: every physical attempt builds a fresh :class:`PublishEnvelope`
from the intent and the idempotency key of the logical publish.

Wire format expected by the broker::

    {"Message": "...", "Topic": "traffic", "Radius": "500", "LifeTime": "10",
     "Latitude": 41.9, "Longitude": 12.5, "Title": "...", "RequestID": "..."}

``Radius`` and ``LifeTime`` travel as decimal strings; ``Title`` and
``RequestID`` are omitted when unset.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer


@dataclass(frozen=True)
class MessageIntent:
    """A message the caller wants published.

    Attributes:
        message: Body text.
        topic: Topic subscribers follow.
        radius: Geofence radius around the coordinates.
        lifetime: Minutes the broker keeps the message alive.
        latitude: Publisher latitude.
        longitude: Publisher longitude.
        title: Optional display title.
    """

    message: str
    topic: str
    radius: int
    lifetime: int
    latitude: float
    longitude: float
    title: str | None = None

    def __repr__(self) -> str:
        return f"MessageIntent(topic='{self.topic}', message='{self.message[:30]}', radius={self.radius})"


class PublishEnvelope(BaseModel):
    """Request body for one publish attempt."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    message: Annotated[str, Field(alias="Message", description="Message body")]
    topic: Annotated[str, Field(alias="Topic", min_length=1, description="Target topic")]
    radius: Annotated[int, Field(alias="Radius", ge=0, description="Geofence radius")]
    lifetime: Annotated[int, Field(alias="LifeTime", ge=0, description="Lifetime in minutes")]
    latitude: Annotated[float, Field(alias="Latitude", ge=-90, le=90)]
    longitude: Annotated[float, Field(alias="Longitude", ge=-180, le=180)]
    title: Annotated[str | None, Field(default=None, alias="Title")]
    request_id: Annotated[
        str | None,
        Field(default=None, alias="RequestID", description="Idempotency key"),
    ]

    @field_serializer("radius", "lifetime")
    def _serialize_as_string(self, value: int) -> str:
        return str(value)

    @classmethod
    def build(cls, intent: MessageIntent, request_id: str | None = None) -> PublishEnvelope:
        """Build the envelope for one attempt of a logical publish.

        Raises:
            pydantic.ValidationError: If the intent holds out-of-range values.
        """
        return cls(
            message=intent.message,
            topic=intent.topic,
            radius=intent.radius,
            lifetime=intent.lifetime,
            latitude=intent.latitude,
            longitude=intent.longitude,
            title=intent.title,
            request_id=request_id,
        )

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the broker's field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ReleaseEnvelope(BaseModel):
    """Request body for the exactly-once dedupe release."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    request_id: Annotated[str, Field(alias="RequestID", min_length=1)]

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the broker's field names."""
        return self.model_dump(mode="json", by_alias=True)


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class RequestIdFactory:
    """Generates idempotency keys as ``<client_id><epoch millis>``.

    Timestamps handed out by one factory are strictly increasing, so two
    logical publishes started within the same millisecond still get
    distinct keys.

    Example:
        >>> factory = RequestIdFactory("alice@example.com", clock=lambda: 1700000000000)
        >>> factory.new()
        'alice@example.com1700000000000'
        >>> factory.new()
        'alice@example.com1700000000001'
    """

    def __init__(self, client_id: str, clock: Callable[[], int] | None = None):
        self.client_id = client_id
        self._clock = clock or _epoch_millis
        self._last_stamp = 0
        self._lock = threading.Lock()

    def new(self) -> str:
        """Return the key for a new logical publish."""
        with self._lock:
            stamp = max(int(self._clock()), self._last_stamp + 1)
            self._last_stamp = stamp
        return f"{self.client_id}{stamp}"
