"""Enqueue a message to a queue.

CLI that creates the queue if needed and sends the payload wrapped in the
{"Message": "<payload>"} envelope the poller expects.
"""

import csv
import io
import json

import click

from msg_poller.config import get_settings
from msg_poller.sqs_client import SqsQueueClient as QueueRepository


def build_envelope(message: str, format: str) -> str:
    """Check the payload against its format and wrap it in the envelope."""
    match format:
        case "json":
            json.loads(message)
        case "csv":
            rows = list(csv.reader(io.StringIO(message, newline="")))
            if not rows:
                raise ValueError("CSV payload needs at least a header row")
    return json.dumps({"Message": message})


@click.command()
@click.option(
    "--queue-name",
    type=str,
    required=True,
    help="The name of the queue to enqueue the message to",
)
@click.option("--message", type=str, required=True, help="The payload to enqueue (JSON or CSV text)")
@click.option("--format", "format_", type=click.Choice(["json", "csv"]), default="json", help="Payload format")
@click.option("--endpoint-url", type=str, required=False, help="Override the SQS endpoint (e.g. LocalStack)")
@click.option("--region", type=str, required=False, help="AWS region of the queue")
def main(queue_name: str, message: str, format_: str, endpoint_url: str | None, region: str | None) -> None:
    """Enqueue a payload to the specified queue; creates the queue if it does not exist."""
    click.echo(f"queue-name: {queue_name}")
    click.echo(f"message: {message}")

    settings = get_settings()
    queue_repo = QueueRepository(
        region_name=region or settings.aws_region,
        endpoint_url=endpoint_url or settings.sqs_endpoint_url,
    )
    try:
        try:
            body = build_envelope(message, format_)
        except json.JSONDecodeError as err:
            raise click.ClickException(f"Invalid JSON: {message}") from err
        except (ValueError, csv.Error) as err:
            raise click.ClickException(f"Invalid CSV: {err}") from err

        queue_url = queue_repo.get_queue_url(queue_name)
        if queue_url is None:
            try:
                queue_url = queue_repo.create_queue(queue_name)
            except Exception as e:
                raise click.ClickException(f"Error creating queue: {e}") from e

        try:
            message_id = queue_repo.send(queue_url, body)
            click.echo(f"Message enqueued with ID: {message_id}")
        except Exception as e:
            raise click.ClickException(f"Error: {e}") from e
    finally:
        queue_repo.close()


if __name__ == "__main__":
    main()
