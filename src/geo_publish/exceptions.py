# Copyright 2025 geo-publish contributors - SPDX-License-Identifier: Apache-2.0
"""Exceptions raised by the geo-publish client."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .semantics import PublishResult


class PublishError(RuntimeError):
    """Base class for every error surfaced to a publishing caller."""


class ConfigurationError(PublishError, ValueError):
    """Raised when the publisher configuration cannot be used."""


class BrokerUnavailableError(PublishError):
    """Raised when an attempt fails without a response and without timing out.

    Connection failures and HTTP error statuses fall outside the
    success/explicit-fail/timeout taxonomy, so the logical publish is
    abandoned and the error is handed to the caller.
    """

    def __init__(self, message: str, attempts: int = 0, request_id: str | None = None):
        super().__init__(message)
        self.attempts = attempts
        self.request_id = request_id


class PublishExhaustedError(PublishError):
    """Raised by ``publish_or_raise`` when the retry ceiling was reached."""

    def __init__(self, result: PublishResult):
        super().__init__(
            f"Publish abandoned after {result.attempts} attempt(s) "
            f"({result.timeouts} timeout(s), request_id={result.request_id})"
        )
        self.result = result
