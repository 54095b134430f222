# Copyright 2025 geo-publish contributors - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for monitoring the publisher.

All metrics use the ``gpp_`` prefix (geo-publish publisher) and are labelled
by delivery mode.

Metrics exposed:
    - ``gpp_attempts_total``: Counter of physical publish requests.
    - ``gpp_explicit_failures_total``: Counter of explicit broker rejections.
    - ``gpp_timeouts_total``: Counter of timed-out attempts.
    - ``gpp_completed_total``: Counter of logical publishes that succeeded.
    - ``gpp_exhausted_total``: Counter of logical publishes abandoned at the ceiling.
    - ``gpp_release_failures_total``: Counter of failed dedupe release calls.
"""

from prometheus_client import CollectorRegistry, Counter, generate_latest


class PublishMetrics:
    """Prometheus metrics collector for the delivery controller.

    Attributes:
        registry: The Prometheus CollectorRegistry holding all metrics.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize metrics with an optional custom registry.

        Args:
            registry: Optional Prometheus CollectorRegistry. A new registry is
                created when omitted, so several controllers can coexist.
        """
        self.registry = registry or CollectorRegistry()
        self.attempts = Counter(
            "gpp_attempts_total",
            "Total publish attempts",
            ["mode"],
            registry=self.registry,
        )
        self.explicit_failures = Counter(
            "gpp_explicit_failures_total",
            "Total explicit publish failures",
            ["mode"],
            registry=self.registry,
        )
        self.timeouts = Counter(
            "gpp_timeouts_total",
            "Total timed-out publish attempts",
            ["mode"],
            registry=self.registry,
        )
        self.completed = Counter(
            "gpp_completed_total",
            "Total completed logical publishes",
            ["mode"],
            registry=self.registry,
        )
        self.exhausted = Counter(
            "gpp_exhausted_total",
            "Total logical publishes abandoned after the retry ceiling",
            ["mode"],
            registry=self.registry,
        )
        self.release_failures = Counter(
            "gpp_release_failures_total",
            "Total failed dedupe release calls",
            registry=self.registry,
        )

    def inc_attempt(self, mode: str) -> None:
        self.attempts.labels(mode=mode).inc()

    def inc_explicit_failure(self, mode: str) -> None:
        self.explicit_failures.labels(mode=mode).inc()

    def inc_timeout(self, mode: str) -> None:
        self.timeouts.labels(mode=mode).inc()

    def inc_completed(self, mode: str) -> None:
        self.completed.labels(mode=mode).inc()

    def inc_exhausted(self, mode: str) -> None:
        self.exhausted.labels(mode=mode).inc()

    def inc_release_failure(self) -> None:
        self.release_failures.inc()

    def generate_latest(self) -> bytes:
        """Export all metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)
