"""Terminal output for the ``notifyhub`` command."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from notifyhub.features.dispatch import Destination, NotifyResponse


def success(message: str) -> None:
    click.secho(f"✓ {message}", fg="green")


def error(message: str) -> None:
    """Print to stderr in red."""
    click.secho(f"✗ {message}", fg="red", err=True)


def info(message: str) -> None:
    click.secho(f"ℹ {message}", fg="blue")


def report_response(response: NotifyResponse) -> None:
    """One line per destination outcome; failures go to stderr."""
    if response.success:
        success(f"{response.service_id}: delivered in {response.duration_ms} ms")
    else:
        error(f"{response.service_id}: {type(response.error).__name__}: {response.error}")


def describe_destination(destination: Destination) -> str:
    tags = ",".join(sorted(destination.tags)) or "-"
    return f"{destination.service_id:<16} {destination.url}  tags={tags}"


def describe_service(entry: dict) -> str:
    """Format one ``ServiceRegistry.describe()`` entry."""
    attachments = entry["attachments"] or "none"
    limit = entry["max_body_length"] or "-"
    return f"{entry['scheme']:<16} {entry['name']:<24} attachments={attachments:<9} max_body={limit}"
