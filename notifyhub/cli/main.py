"""``notifyhub`` command: send one notification to URLs or a config file.

Examples:
  notifyhub -t "Deploy" -b "v1.4.2 is live" discord://id/token
  echo "disk at 91%" | notifyhub -n warning -c ~/.notifyhub.yml --tag ops
  notifyhub --dry-run -c notifyhub.yml
  notifyhub --list-services
"""

from __future__ import annotations

import logging

import click

from notifyhub import __version__
from notifyhub.cli.utils.async_runner import coro
from notifyhub.cli.utils.formatters import (
    describe_destination,
    describe_service,
    error,
    info,
    report_response,
)
from notifyhub.core.exceptions import NotifyError
from notifyhub.core.types import NotifyType
from notifyhub.features.config import find_default_config, load_config
from notifyhub.features.dispatch import Dispatcher, with_body_format, with_tags
from notifyhub.features.services.registry import get_service_registry
from notifyhub.infra.logging import setup_logging

logger = logging.getLogger(__name__)

_VERBOSITY = {0: "WARNING", 1: "INFO"}


def _list_services() -> None:
    for entry in get_service_registry().describe():
        click.echo(describe_service(entry))


@coro
async def _send(
    dispatcher: Dispatcher,
    title: str,
    body: str,
    notify_type: str,
    tags: tuple[str, ...],
    body_format: str | None,
) -> bool:
    options = [with_tags(*tags)]
    if body_format:
        options.append(with_body_format(body_format))
    try:
        responses = await dispatcher.notify(title, body, notify_type, *options)
    finally:
        await dispatcher.pool.close_idle()

    if not responses:
        error("No destinations matched the given tags")
        return False
    for response in responses:
        report_response(response)
    return all(response.success for response in responses)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="notifyhub")
@click.argument("urls", nargs=-1)
@click.option("-t", "--title", default="", help="Notification title.")
@click.option("-b", "--body", default=None, help="Notification body. Read from stdin when omitted.")
@click.option(
    "-n",
    "--type",
    "notify_type",
    type=click.Choice([t.value for t in NotifyType], case_sensitive=False),
    default=NotifyType.INFO.value,
    show_default=True,
    help="Severity.",
)
@click.option("--tag", "tags", multiple=True, help="Only notify destinations with this tag. Repeatable.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Config file. Default locations are searched when no URL is given.",
)
@click.option("-a", "--attach", "attachments", multiple=True, help="File path or URL to attach. Repeatable.")
@click.option(
    "-f",
    "--format",
    "body_format",
    type=click.Choice(["text", "markdown", "md", "html"], case_sensitive=False),
    default=None,
    help="Body format.",
)
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Deadline in seconds.")
@click.option("--dry-run", is_flag=True, help="Parse the destinations and exit without sending.")
@click.option("-v", "--verbose", count=True, help="Increase log output (-v info, -vv debug).")
@click.option("--list-services", is_flag=True, help="Print the supported URL schemes and exit.")
@click.pass_context
def cli(
    ctx: click.Context,
    urls: tuple[str, ...],
    title: str,
    body: str | None,
    notify_type: str,
    tags: tuple[str, ...],
    config_path: str | None,
    attachments: tuple[str, ...],
    body_format: str | None,
    timeout: float | None,
    dry_run: bool,
    verbose: int,
    list_services: bool,
) -> None:
    """Send a notification to every destination URL.

    Exits 0 when every destination accepted the notification, 1 otherwise.
    """
    setup_logging(log_level=_VERBOSITY.get(verbose, "DEBUG"), force=True)

    if list_services:
        _list_services()
        return

    dispatcher = Dispatcher(timeout=timeout)
    try:
        for url in urls:
            dispatcher.add(url)

        path = config_path or (None if urls else find_default_config())
        if path is not None:
            dispatcher.add_many(load_config(path))

        for source in attachments:
            dispatcher.attachments.add(source)
    except NotifyError as e:
        error(str(e))
        ctx.exit(1)

    if not dispatcher.count():
        error("No destinations given. Pass URLs or --config.")
        ctx.exit(1)

    if dry_run:
        for destination in dispatcher.destinations():
            info(describe_destination(destination))
        return

    if body is None:
        body = click.get_text_stream("stdin").read()
    if not title and not body.strip():
        error("Nothing to send: title and body are both empty")
        ctx.exit(1)

    ok = _send(dispatcher, title, body, notify_type.lower(), tags, body_format)
    logger.debug("CLI finished", extra={"ok": ok})
    ctx.exit(0 if ok else 1)


__all__ = ["cli"]
