# Copyright 2025 geo-publish contributors - SPDX-License-Identifier: Apache-2.0
"""Configuration loader for publisher settings.

This module loads the publisher configuration from an INI-style file or
environment variables.

Example:
    Configuration file format (config.ini)::

        [publisher]
        base_url = http://localhost:8080
        client_id = alice@example.com
        delivery_semantic = exactly-once
        delivery_timeout = 3000
        retry_limit = 5

    Loading the configuration::

        config = load_publisher_config("/etc/geo-publish/config.ini")
        # Returns PublisherConfig dataclass
"""

from __future__ import annotations

import configparser
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from geo_publish.exceptions import ConfigurationError
from geo_publish.logger import get_logger
from geo_publish.semantics import DEFAULT_REQUEST_TIMEOUT, DEFAULT_RETRY_LIMIT, DeliveryMode

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_PUBLISH_PATH = "/publish"
DEFAULT_RELEASE_PATH = "/removeRequest"
DEFAULT_TOKEN_COOKIE = "access_token"


@dataclass
class PublisherConfig:
    """Configuration for the delivery controller.

    Attributes:
        base_url: Broker base URL.
        client_id: Stable client identifier prefixed to idempotency keys.
        token: Optional access token sent to the broker.
        token_cookie: Cookie carrying the token (empty or None = header only).
        mode: Default delivery guarantee.
        request_timeout: Per-attempt timeout in seconds.
        retry_limit: Timeout ceiling for at-most-once.
        max_attempts: Optional cap on attempts in every mode (None = unbounded).
        retry_delay: Seconds to wait before each retry.
        publish_path: Path of the publish endpoint.
        release_path: Path of the dedupe release endpoint.
    """

    base_url: str = DEFAULT_BASE_URL
    client_id: str = "anonymous"
    token: str | None = None
    token_cookie: str | None = DEFAULT_TOKEN_COOKIE
    mode: DeliveryMode = DeliveryMode.AT_LEAST_ONCE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    retry_limit: int = DEFAULT_RETRY_LIMIT
    max_attempts: int | None = None
    retry_delay: float = 0.0
    publish_path: str = DEFAULT_PUBLISH_PATH
    release_path: str = DEFAULT_RELEASE_PATH

    def __post_init__(self) -> None:
        self.mode = DeliveryMode.parse(self.mode)
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if self.retry_limit < 0:
            raise ConfigurationError("retry_limit must not be negative")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1 when set")
        if self.retry_delay < 0:
            raise ConfigurationError("retry_delay must not be negative")

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict view with the token masked."""
        data = asdict(self)
        data["mode"] = self.mode.value
        if data["token"]:
            data["token"] = "***"
        return data


logger = get_logger("config_loader")


def _millis_to_seconds(value: str) -> float:
    return int(value) / 1000.0


def _optional_int(value: str) -> int | None:
    value = value.strip()
    if not value or value.lower() in ("none", "unbounded"):
        return None
    return int(value)


def load_publisher_config(config_path: str | None = None) -> PublisherConfig:
    """Load publisher configuration from config file or environment.

    Priority: config file > environment variables > defaults.

    Environment variables:
        GEO_PUBLISH_BASE_URL: Broker base URL
        GEO_PUBLISH_CLIENT_ID: Client identifier used in idempotency keys
        GEO_PUBLISH_TOKEN: Access token for the broker
        GEO_PUBLISH_TOKEN_COOKIE: Cookie name carrying the token (default: access_token)
        GEO_PUBLISH_DELIVERY_SEMANTIC: at-least-once, at-most-once or exactly-once
        GEO_PUBLISH_DELIVERY_TIMEOUT: Per-attempt timeout in milliseconds
        GEO_PUBLISH_RETRY_LIMIT: Timeout ceiling for at-most-once
        GEO_PUBLISH_MAX_ATTEMPTS: Attempt cap for every mode (empty = unbounded)
        GEO_PUBLISH_RETRY_DELAY: Seconds between retries

    Args:
        config_path: Optional path to config.ini file

    Returns:
        PublisherConfig with parsed settings, using defaults for missing values.

    Raises:
        ConfigurationError: If the delivery semantic is unknown or a value is
            out of range.
    """
    config_values: dict[str, Any] = {}

    env_mapping = {
        "base_url": ("GEO_PUBLISH_BASE_URL", str, DEFAULT_BASE_URL),
        "client_id": ("GEO_PUBLISH_CLIENT_ID", str, "anonymous"),
        "token": ("GEO_PUBLISH_TOKEN", str, None),
        "token_cookie": ("GEO_PUBLISH_TOKEN_COOKIE", str, DEFAULT_TOKEN_COOKIE),
        "mode": ("GEO_PUBLISH_DELIVERY_SEMANTIC", str, DeliveryMode.AT_LEAST_ONCE.value),
        "request_timeout": ("GEO_PUBLISH_DELIVERY_TIMEOUT", _millis_to_seconds, DEFAULT_REQUEST_TIMEOUT),
        "retry_limit": ("GEO_PUBLISH_RETRY_LIMIT", int, DEFAULT_RETRY_LIMIT),
        "max_attempts": ("GEO_PUBLISH_MAX_ATTEMPTS", _optional_int, None),
        "retry_delay": ("GEO_PUBLISH_RETRY_DELAY", float, 0.0),
    }

    for key, (env_var, type_fn, default) in env_mapping.items():
        env_value = os.environ.get(env_var)
        if env_value is not None:
            try:
                config_values[key] = type_fn(env_value)
            except (ValueError, TypeError):
                logger.warning(f"Invalid value for {env_var}, using default")
                config_values[key] = default
        else:
            config_values[key] = default

    if config_path and Path(config_path).exists():
        config = configparser.ConfigParser()
        config.read(config_path)

        if config.has_section("publisher"):
            def get_int(key: str, default: int) -> int:
                try:
                    return config.getint("publisher", key, fallback=default)
                except ValueError:
                    return default

            def get_float(key: str, default: float) -> float:
                try:
                    return config.getfloat("publisher", key, fallback=default)
                except ValueError:
                    return default

            def get_str(key: str, default: str | None = None) -> str | None:
                value = config.get("publisher", key, fallback=default)
                return value.strip() if value else default

            config_values["base_url"] = get_str("base_url", config_values["base_url"])
            config_values["client_id"] = get_str("client_id", config_values["client_id"])
            config_values["token"] = get_str("token", config_values["token"])
            if config.has_option("publisher", "token_cookie"):
                config_values["token_cookie"] = config.get("publisher", "token_cookie").strip() or None
            config_values["mode"] = get_str("delivery_semantic", config_values["mode"])
            if config.has_option("publisher", "delivery_timeout"):
                timeout_ms = get_int("delivery_timeout", int(config_values["request_timeout"] * 1000))
                config_values["request_timeout"] = timeout_ms / 1000.0
            config_values["retry_limit"] = get_int("retry_limit", config_values["retry_limit"])
            if config.has_option("publisher", "max_attempts"):
                try:
                    config_values["max_attempts"] = _optional_int(config.get("publisher", "max_attempts"))
                except ValueError:
                    logger.warning("Invalid max_attempts in %s, keeping %s", config_path, config_values["max_attempts"])
            config_values["retry_delay"] = get_float("retry_delay", config_values["retry_delay"])
            config_values["publish_path"] = get_str("publish_path", DEFAULT_PUBLISH_PATH)
            config_values["release_path"] = get_str("release_path", DEFAULT_RELEASE_PATH)
    elif config_path:
        logger.warning("Config file %s not found, using environment and defaults", config_path)

    return PublisherConfig(**config_values)
