# Copyright 2025 geo-publish contributors - SPDX-License-Identifier: Apache-2.0
"""Logging utilities for the geo-publish client.

This module provides a centralized logging helper. The actual logging setup
(level, handlers, format) is configured via ``logging.basicConfig()`` in the
CLI entry point to avoid duplicate handlers.

Example:
    Typical usage in a module::

        from geo_publish.logger import get_logger

        logger = get_logger("controller")
        logger.info("Publish completed")
"""

import logging


def get_logger(name: str = "GeoPublish") -> logging.Logger:
    """Retrieve a logger instance.

    Handlers and formatters are not configured here; that responsibility lies
    with the application entry point.

    Args:
        name: The logger name. Defaults to "GeoPublish".

    Returns:
        A ``logging.Logger`` instance bound to the given name.
    """
    return logging.getLogger(name)
