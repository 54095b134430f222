# Copyright 2025 geo-publish contributors - SPDX-License-Identifier: Apache-2.0
"""Delivery guarantees and the retry rule that realizes them.

Each logical publish owns one :class:`RetryState`. Every physical attempt is
classified as an :class:`Outcome` and fed to :meth:`RetryState.record`, which
answers with a :class:`Decision`:

============  ===============  ==========================================
Mode          Explicit fail    Timeout
============  ===============  ==========================================
at-least-once retry            retry
at-most-once  retry            count it; exhaust once ``retry_limit`` hit
exactly-once  retry            retry
============  ===============  ==========================================

A success always completes the publish. Only timeouts count towards the
at-most-once ceiling: an explicit failure is an unambiguous rejection and
carries no duplicate risk, whereas a timed-out request may already have been
accepted by the broker.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import ConfigurationError

DEFAULT_REQUEST_TIMEOUT = 3.0
DEFAULT_RETRY_LIMIT = 5


class DeliveryMode(str, Enum):
    """Delivery guarantee selected for a logical publish.

    Attributes:
        AT_LEAST_ONCE: Retry until success, duplicates accepted.
        AT_MOST_ONCE: Bound timeout retries, tag requests with a RequestID.
        EXACTLY_ONCE: Retry until success with a RequestID, then release it.
    """

    AT_LEAST_ONCE = "at-least-once"
    AT_MOST_ONCE = "at-most-once"
    EXACTLY_ONCE = "exactly-once"

    @property
    def uses_request_id(self) -> bool:
        """Whether requests carry an idempotency key in this mode."""
        return self is not DeliveryMode.AT_LEAST_ONCE

    @property
    def releases_on_success(self) -> bool:
        """Whether the broker's dedupe record is released after success."""
        return self is DeliveryMode.EXACTLY_ONCE

    @classmethod
    def parse(cls, value: str | DeliveryMode) -> DeliveryMode:
        """Resolve a mode from its config spelling.

        Accepts ``at-least-once``, ``at_least_once``, ``AtLeastOnce`` and the
        like.

        Raises:
            ConfigurationError: If the value names no known mode.
        """
        if isinstance(value, DeliveryMode):
            return value
        wanted = re.sub(r"[^a-z]", "", str(value).lower())
        for mode in cls:
            if mode.value.replace("-", "") == wanted:
                return mode
        choices = ", ".join(m.value for m in cls)
        raise ConfigurationError(f"Unknown delivery semantic {value!r} (expected one of: {choices})")


class Outcome(str, Enum):
    """Result of one physical attempt, or the last known state of a publish."""

    PENDING = "pending"
    SUCCESS = "success"
    EXPLICIT_FAIL = "explicit-fail"
    TIMEOUT = "timeout"
    EXHAUSTED = "exhausted"


class Decision(str, Enum):
    """What the retry loop does after an attempt."""

    RETRY = "retry"
    COMPLETE = "complete"
    EXHAUST = "exhaust"


class PublishStatus(str, Enum):
    """Terminal state of a logical publish."""

    COMPLETED = "completed"
    EXHAUSTED = "exhausted"


@dataclass
class RetryState:
    """Mutable bookkeeping for one logical publish.

    Attributes:
        mode: Delivery guarantee in force.
        retry_limit: Timeout ceiling, consulted only in at-most-once mode.
        max_attempts: Optional hard cap on physical attempts in any mode.
        timeouts: Attempt counter, incremented only on timeout.
        explicit_failures: Number of explicit rejections seen.
        attempts: Number of physical attempts sent.
        last_outcome: Most recent outcome.
    """

    mode: DeliveryMode
    retry_limit: int = DEFAULT_RETRY_LIMIT
    max_attempts: int | None = None
    timeouts: int = 0
    explicit_failures: int = 0
    attempts: int = 0
    last_outcome: Outcome = Outcome.PENDING

    def record(self, outcome: Outcome) -> Decision:
        """Account for one attempt and decide how the publish proceeds.

        Args:
            outcome: Classification of the attempt that just resolved.

        Returns:
            The decision for the retry loop.
        """
        if outcome not in (Outcome.SUCCESS, Outcome.EXPLICIT_FAIL, Outcome.TIMEOUT):
            raise ValueError(f"Not an attempt outcome: {outcome!r}")

        self.attempts += 1
        self.last_outcome = outcome

        if outcome is Outcome.SUCCESS:
            return Decision.COMPLETE

        if outcome is Outcome.TIMEOUT:
            self.timeouts += 1
            if self.mode is DeliveryMode.AT_MOST_ONCE and self.timeouts >= self.retry_limit:
                self.last_outcome = Outcome.EXHAUSTED
                return Decision.EXHAUST
        else:
            self.explicit_failures += 1

        if self.max_attempts is not None and self.attempts >= self.max_attempts:
            self.last_outcome = Outcome.EXHAUSTED
            return Decision.EXHAUST
        return Decision.RETRY


@dataclass(frozen=True)
class PublishResult:
    """What a caller learns once a logical publish has ended.

    Attributes:
        status: ``completed`` or ``exhausted``.
        mode: Delivery guarantee that was applied.
        request_id: Idempotency key shared by every attempt, if any.
        attempts: Physical publish requests sent.
        timeouts: How many of them timed out.
        explicit_failures: How many were explicitly rejected.
        payload: Broker success payload (None when exhausted).
    """

    status: PublishStatus
    mode: DeliveryMode
    request_id: str | None = None
    attempts: int = 0
    timeouts: int = 0
    explicit_failures: int = 0
    payload: Any = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        """True when the message was accepted by the broker."""
        return self.status is PublishStatus.COMPLETED

    @classmethod
    def from_state(cls, state: RetryState, request_id: str | None, payload: Any = None) -> PublishResult:
        """Build the result from a finished retry state."""
        status = PublishStatus.COMPLETED if state.last_outcome is Outcome.SUCCESS else PublishStatus.EXHAUSTED
        return cls(
            status=status,
            mode=state.mode,
            request_id=request_id,
            attempts=state.attempts,
            timeouts=state.timeouts,
            explicit_failures=state.explicit_failures,
            payload=payload,
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict view for printing and logging."""
        return {
            "status": self.status.value,
            "mode": self.mode.value,
            "request_id": self.request_id,
            "attempts": self.attempts,
            "timeouts": self.timeouts,
            "explicit_failures": self.explicit_failures,
            "payload": self.payload,
        }
