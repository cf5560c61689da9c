"""Amazon SQS queue client.

Uses boto3 to long-poll queues, delete handled messages and send envelopes.
Transport retries and backoff are left to botocore's retry configuration.
"""

import logging
from typing import Any

import boto3
from botocore.client import BaseClient
from botocore.config import Config

from msg_poller.exceptions import InvalidConfigurationError
from msg_poller.queue_client import QueueClient
from msg_poller.queue_model_dto import RawMessage

logger = logging.getLogger(__name__)

RECEIVE_OPTIONS = {
    "visibility_timeout": "VisibilityTimeout",
    "max_number_of_messages": "MaxNumberOfMessages",
    "attribute_names": "AttributeNames",
    "message_attribute_names": "MessageAttributeNames",
}


class SqsQueueClient(QueueClient):
    """QueueClient backed by an SQS queue.

    Endpoints are queue URLs. Pass an existing boto3 SQS client to share one,
    otherwise a client is built from region_name and endpoint_url.
    """

    def __init__(
        self,
        sqs: BaseClient | None = None,
        region_name: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """Use the given SQS client or build one with standard-mode retries."""
        super().__init__()
        self.sqs = sqs or boto3.client(
            "sqs",
            region_name=region_name,
            endpoint_url=endpoint_url,
            config=Config(retries={"mode": "standard"}),
        )

    def receive(
        self,
        queue_endpoint: str,
        max_messages: int = 10,
        wait_time_seconds: int = 10,
        options: dict[str, Any] | None = None,
    ) -> list[RawMessage]:
        """Receive up to max_messages.

        options may set visibility_timeout (seconds), max_number_of_messages,
        attribute_names and message_attribute_names. Any other key raises
        InvalidConfigurationError.
        """
        options = dict(options or {})
        unknown = set(options) - set(RECEIVE_OPTIONS)
        if unknown:
            raise InvalidConfigurationError(
                f"Unsupported SQS receive options: {sorted(unknown)}. Valid options: {sorted(RECEIVE_OPTIONS)}"
            )
        params: dict[str, Any] = {
            "QueueUrl": queue_endpoint,
            "MaxNumberOfMessages": max_messages,
            "WaitTimeSeconds": wait_time_seconds,
            "AttributeNames": ["All"],
        }
        for option, value in options.items():
            if value is not None:
                params[RECEIVE_OPTIONS[option]] = value
        if "VisibilityTimeout" in params:
            params["VisibilityTimeout"] = int(params["VisibilityTimeout"])

        response = self.sqs.receive_message(**params)
        messages = response.get("Messages", [])
        logger.debug("Received %d messages from %s", len(messages), queue_endpoint)
        return [
            RawMessage(
                message_id=m["MessageId"],
                body=m["Body"],
                receipt_handle=m["ReceiptHandle"],
                queue_endpoint=queue_endpoint,
                attributes=m.get("Attributes", {}),
                message_attributes=m.get("MessageAttributes", {}),
            )
            for m in messages
        ]

    def delete(self, message: RawMessage) -> None:
        """Delete the message from the queue it was received from."""
        self.sqs.delete_message(
            QueueUrl=message.queue_endpoint,
            ReceiptHandle=message.receipt_handle,
        )

    def send(self, queue_endpoint: str, body: str) -> str:
        """Send body to the queue. Returns the SQS message ID."""
        response = self.sqs.send_message(QueueUrl=queue_endpoint, MessageBody=body)
        return response["MessageId"]

    def get_queue_url(self, queue_name: str) -> str | None:
        """Return the URL of the named queue, or None if it does not exist."""
        try:
            return self.sqs.get_queue_url(QueueName=queue_name)["QueueUrl"]
        except self.sqs.exceptions.QueueDoesNotExist:
            return None

    def create_queue(self, queue_name: str) -> str:
        """Create the named queue (idempotent) and return its URL."""
        return self.sqs.create_queue(QueueName=queue_name)["QueueUrl"]

    def close(self) -> None:
        """Close the underlying HTTP connections."""
        self.sqs.close()
