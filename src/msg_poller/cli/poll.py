"""Long-poll a queue and dispatch messages to a handler.

This module provides a CLI that loads a handler from a handlers directory,
polls an SQS queue until it has been idle for the idle timeout (or until
--max-messages were received), and deletes every message the handler accepted.
Failed messages are left on the queue for redelivery.
"""

import importlib
import json
import logging
import os
import sys
from typing import Any

import click
from psycopg_pool import ConnectionPool
from pydantic import ValidationError

from msg_poller.config import Settings, get_settings
from msg_poller.exceptions import InvalidConfigurationError
from msg_poller.notifier import Notifier, setup_sentry
from msg_poller.poller import QueuePoller
from msg_poller.queue_model_dto import PollerConfig
from msg_poller.sqs_client import SqsQueueClient


def get_dsn(dsn: str | None, settings: Settings | None = None) -> str:
    """Return the DSN argument, falling back to settings; raise if neither is set."""
    if dsn:
        return dsn
    if settings is not None and settings.database_dsn:
        return str(settings.database_dsn)
    raise click.ClickException("No DSN provided and MSG_POLLER_DATABASE_DSN environment variable is not set")


def get_handler(handler_name: str, handlers_path: list[str]) -> Any:
    """Load handlers.<handler_name> from the handlers path and return its Handler instance.

    Args:
        handler_name: Module name inside the handlers package.
        handlers_path: Directories containing a handlers package.

    Raises:
        click.ClickException: If the module or its Handler class cannot be found.
    """
    for path in handlers_path:
        if os.path.exists(path) and path not in sys.path:
            sys.path.append(path)
    try:
        handler_module = importlib.import_module(f"handlers.{handler_name}")
    except ModuleNotFoundError as err:
        raise click.ClickException(f"No handler module named {handler_name}: {err}") from err
    if not hasattr(handler_module, "Handler"):
        raise click.ClickException(f"Handler module {handler_name} does not define Handler")
    return handler_module.Handler()


def parse_options(options: tuple[str, ...]) -> dict[str, Any]:
    """Parse KEY=VALUE pairs; values are decoded as JSON when possible."""
    parsed: dict[str, Any] = {}
    for option in options:
        key, sep, value = option.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got {option!r}", param_hint="--option")
        try:
            parsed[key] = json.loads(value)
        except json.JSONDecodeError:
            parsed[key] = value
    return parsed


def first_set(*values: Any) -> Any:
    """Return the first value that is not None."""
    return next((value for value in values if value is not None), None)


@click.command()
@click.option("--queue-endpoint", type=str, required=False, help="The URL of the queue to poll")
@click.option("--format", "format_", type=str, required=False, help="Payload format inside the envelope: json or csv")
@click.option(
    "--max-messages",
    type=click.IntRange(min=1),
    required=False,
    help="Stop requesting batches once this many messages were received",
)
@click.option("--wait-time-seconds", type=int, required=False, help="Long-poll wait per receive request")
@click.option("--idle-timeout", type=int, required=False, help="Stop after this many seconds without messages")
@click.option("--handler", type=str, required=True, help="Name of the handler module in the handlers package")
@click.option(
    "--handlers-path",
    type=str,
    required=True,
    multiple=True,
    help="The path to a directory with a handlers directory, multiple allowed",
)
@click.option("--option", "options", type=str, multiple=True, help="Extra receive option as KEY=VALUE, multiple allowed")
@click.option(
    "--connection-pool",
    is_flag=True,
    default=False,
    help="Hold one pooled database connection for the whole polling run",
)
@click.option("--dsn", type=str, required=False, help="The DSN of the database used with --connection-pool")
@click.option("--endpoint-url", type=str, required=False, help="Override the SQS endpoint (e.g. LocalStack)")
@click.option("--region", type=str, required=False, help="AWS region of the queue")
def main(**kwargs: Any) -> None:
    """Long-poll a queue and hand every decoded message to the handler.

    Messages are deleted only after the handler returns without raising.
    Polling ends after --idle-timeout seconds without messages, or once
    --max-messages were received (the last batch is still fully handled).
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    setup_sentry(settings.sentry_dsn, settings.sentry_environment)

    queue_endpoint = kwargs["queue_endpoint"] or settings.queue_endpoint
    if not queue_endpoint:
        raise click.ClickException("No queue endpoint provided and MSG_POLLER_QUEUE_ENDPOINT is not set")

    try:
        config = PollerConfig(
            queue_endpoint=queue_endpoint,
            format=first_set(kwargs["format_"], settings.format),
            max_messages=first_set(kwargs["max_messages"], settings.max_messages),
            wait_time_seconds=first_set(kwargs["wait_time_seconds"], settings.wait_time_seconds),
            idle_timeout_seconds=first_set(kwargs["idle_timeout"], settings.idle_timeout),
            connection_pool_block=kwargs["connection_pool"],
            extra_options=parse_options(kwargs["options"]),
        )
    except ValidationError as err:
        raise click.ClickException(f"Invalid poller configuration: {err}") from err

    handler = get_handler(kwargs["handler"], list(kwargs["handlers_path"]))

    dsn = get_dsn(kwargs["dsn"], settings) if config.connection_pool_block else None

    queue_client = SqsQueueClient(
        region_name=kwargs["region"] or settings.aws_region,
        endpoint_url=kwargs["endpoint_url"] or settings.sqs_endpoint_url,
    )
    pool = None
    try:
        if dsn is not None:
            pool = ConnectionPool(dsn, open=True)
        poller = QueuePoller(config, handler, queue_client, notifier=Notifier(), connection_pool=pool)
        stats = poller.poll()
    except InvalidConfigurationError as err:
        raise click.ClickException(str(err)) from err
    finally:
        queue_client.close()
        if pool is not None:
            pool.close()

    click.echo(
        f"Received {stats.received_message_count} messages in {stats.request_count} requests, "
        f"handled {stats.deleted_count}, failed {stats.failed_count} (stopped: {stats.stop_reason.value})"
    )
    if stats.failed_count:
        click.secho(
            f"{stats.failed_count} messages were left on the queue for redelivery",
            err=True,
            color=True,
            fg="red",
        )


if __name__ == "__main__":
    main()
