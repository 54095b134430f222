# Copyright 2025 geo-publish contributors - SPDX-License-Identifier: Apache-2.0
"""Command-line interface for geo-publish.

Usage:
    geo-publish send --topic traffic --message "Road closed" \\
        --radius 500 --lifetime 10 --lat 41.9 --lon 12.5
    geo-publish --config config.ini send ... --mode exactly-once
    geo-publish config

Example:
    $ geo-publish send -t traffic -m "Accident on A1" -r 1000 -l 30 \\
        --lat 43.77 --lon 11.25 --mode at-most-once --retry-limit 3
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from typing import Any

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from geo_publish.config_loader import PublisherConfig, load_publisher_config
from geo_publish.controller import DeliveryController
from geo_publish.exceptions import BrokerUnavailableError, ConfigurationError
from geo_publish.models import MessageIntent
from geo_publish.semantics import DeliveryMode, PublishResult

console = Console()
err_console = Console(stderr=True)

MODE_CHOICES = [m.value for m in DeliveryMode]


def run_async(coro):
    """Execute an async coroutine synchronously from CLI context."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    """Print a formatted error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a formatted success message with checkmark."""
    console.print(f"[green]✓[/green] {message}")


def print_json(data: Any) -> None:
    """Print data as syntax-highlighted JSON."""
    console.print_json(json.dumps(data, indent=2, default=str))


def _configure_logging(level: str | None) -> None:
    level = (level or os.getenv("GEO_PUBLISH_LOG_LEVEL", "WARNING")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _result_table(result: PublishResult) -> Table:
    table = Table(title="Publish Result")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    status = "[green]completed[/green]" if result.ok else "[red]exhausted[/red]"
    table.add_row("Status", status)
    table.add_row("Mode", result.mode.value)
    table.add_row("Request ID", result.request_id or "-")
    table.add_row("Attempts", str(result.attempts))
    table.add_row("Timeouts", str(result.timeouts))
    table.add_row("Explicit failures", str(result.explicit_failures))
    return table


@click.group()
@click.version_option(package_name="geo-publish")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False),
              envvar="GEO_PUBLISH_CONFIG", help="Path to config.ini.")
@click.option("--log-level", help="Logging level (default: WARNING or $GEO_PUBLISH_LOG_LEVEL).")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """geo-publish: publish geolocated messages with delivery guarantees."""
    _configure_logging(log_level)
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_publisher_config(config_path)
    except ConfigurationError as e:
        print_error(str(e))
        sys.exit(1)


@main.command("send")
@click.option("--message", "-m", required=True, help="Message body.")
@click.option("--topic", "-t", required=True, help="Topic to publish to.")
@click.option("--radius", "-r", type=int, required=True, help="Geofence radius.")
@click.option("--lifetime", "-l", type=int, required=True, help="Message lifetime in minutes.")
@click.option("--lat", "latitude", type=float, required=True, help="Latitude.")
@click.option("--lon", "longitude", type=float, required=True, help="Longitude.")
@click.option("--title", help="Optional display title.")
@click.option("--mode", type=click.Choice(MODE_CHOICES), help="Delivery semantic (default from config).")
@click.option("--timeout", "timeout_ms", type=int, help="Per-attempt timeout in milliseconds.")
@click.option("--retry-limit", type=int, help="Timeout ceiling for at-most-once.")
@click.option("--max-attempts", type=int, help="Cap on attempts in every mode.")
@click.option("--base-url", help="Broker base URL.")
@click.option("--client-id", help="Client identifier used in request IDs.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def send_cmd(
    ctx: click.Context,
    message: str,
    topic: str,
    radius: int,
    lifetime: int,
    latitude: float,
    longitude: float,
    title: str | None,
    mode: str | None,
    timeout_ms: int | None,
    retry_limit: int | None,
    max_attempts: int | None,
    base_url: str | None,
    client_id: str | None,
    as_json: bool,
) -> None:
    """Publish one message and wait for the outcome."""
    base: PublisherConfig = ctx.obj["config"]
    overrides = base.to_dict()
    overrides["token"] = base.token
    if mode:
        overrides["mode"] = mode
    if timeout_ms is not None:
        overrides["request_timeout"] = timeout_ms / 1000.0
    if retry_limit is not None:
        overrides["retry_limit"] = retry_limit
    if max_attempts is not None:
        overrides["max_attempts"] = max_attempts
    if base_url:
        overrides["base_url"] = base_url
    if client_id:
        overrides["client_id"] = client_id

    try:
        config = PublisherConfig(**overrides)
    except ConfigurationError as e:
        print_error(str(e))
        sys.exit(1)

    intent = MessageIntent(
        message=message,
        topic=topic,
        radius=radius,
        lifetime=lifetime,
        latitude=latitude,
        longitude=longitude,
        title=title,
    )

    async def _send() -> PublishResult:
        async with DeliveryController(config) as controller:
            return await controller.publish(intent)

    try:
        result = run_async(_send())
    except ValidationError as e:
        print_error(f"Invalid message: {e}")
        sys.exit(1)
    except BrokerUnavailableError as e:
        print_error(str(e))
        sys.exit(1)

    if as_json:
        print_json(result.to_dict())
    else:
        console.print(_result_table(result))

    if not result.ok:
        print_error(f"Message not delivered after {result.attempts} attempt(s)")
        sys.exit(1)
    if not as_json:
        print_success(f"Message published to '{topic}'")


@main.command("config")
@click.pass_context
def config_cmd(ctx: click.Context) -> None:
    """Show the effective publisher configuration."""
    print_json(ctx.obj["config"].to_dict())


if __name__ == "__main__":
    main()
