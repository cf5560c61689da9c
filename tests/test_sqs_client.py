"""Tests for the SQS queue client, against moto and a mocked boto3 client."""

import json
from unittest import TestCase
from unittest.mock import MagicMock

import boto3
from moto import mock_aws

from msg_poller.exceptions import InvalidConfigurationError
from msg_poller.handlers.base import BaseHandler
from msg_poller.notifier import Notifier
from msg_poller.poller import QueuePoller
from msg_poller.queue_model_dto import PollerConfig, RawMessage, StopReason
from msg_poller.sqs_client import SqsQueueClient


class TestSqsQueueClientParams(TestCase):
    """Tests for the parameters passed to boto3."""

    def setUp(self):
        self.sqs = MagicMock()
        self.client = SqsQueueClient(sqs=self.sqs)

    def test_receive_passes_batch_wait_and_visibility(self):
        self.sqs.receive_message.return_value = {}
        result = self.client.receive("https://queue/orders", 5, 3, options={"visibility_timeout": 45})

        self.assertEqual(result, [])
        kwargs = self.sqs.receive_message.call_args.kwargs
        self.assertEqual(kwargs["QueueUrl"], "https://queue/orders")
        self.assertEqual(kwargs["MaxNumberOfMessages"], 5)
        self.assertEqual(kwargs["WaitTimeSeconds"], 3)
        self.assertEqual(kwargs["VisibilityTimeout"], 45)

    def test_receive_omits_visibility_by_default(self):
        self.sqs.receive_message.return_value = {
            "Messages": [{"MessageId": "m1", "Body": "{}", "ReceiptHandle": "r1"}]
        }
        result = self.client.receive("https://queue/orders")

        self.assertNotIn("VisibilityTimeout", self.sqs.receive_message.call_args.kwargs)
        self.assertEqual(result[0].receipt_handle, "r1")
        self.assertEqual(result[0].queue_endpoint, "https://queue/orders")

    def test_poller_extra_options_map_onto_receive_params(self):
        self.sqs.receive_message.return_value = {}
        poller = QueuePoller(
            PollerConfig(
                queue_endpoint="https://queue/orders",
                idle_timeout_seconds=0,
                extra_options={
                    "max_number_of_messages": 1,
                    "attribute_names": ["SentTimestamp"],
                    "message_attribute_names": ["All"],
                    "visibility_timeout": "15",
                },
            ),
            BaseHandler(),
            self.client,
            notifier=MagicMock(spec=Notifier),
        )
        poller.poll()

        kwargs = self.sqs.receive_message.call_args.kwargs
        self.assertEqual(kwargs["MaxNumberOfMessages"], 1)
        self.assertEqual(kwargs["AttributeNames"], ["SentTimestamp"])
        self.assertEqual(kwargs["MessageAttributeNames"], ["All"])
        self.assertEqual(kwargs["VisibilityTimeout"], 15)
        self.assertEqual(kwargs["WaitTimeSeconds"], 10)

    def test_receive_keeps_message_attributes(self):
        self.sqs.receive_message.return_value = {
            "Messages": [
                {
                    "MessageId": "m1",
                    "Body": "{}",
                    "ReceiptHandle": "r1",
                    "MessageAttributes": {"tenant": {"DataType": "String", "StringValue": "acme"}},
                }
            ]
        }
        result = self.client.receive("https://queue/orders", options={"message_attribute_names": ["tenant"]})
        self.assertEqual(result[0].message_attributes["tenant"]["StringValue"], "acme")

    def test_unknown_receive_option_raises(self):
        with self.assertRaises(InvalidConfigurationError) as ctx:
            self.client.receive("https://queue/orders", options={"visiblity_timeout": 30})
        self.assertIn("visiblity_timeout", str(ctx.exception))
        self.sqs.receive_message.assert_not_called()

    def test_unknown_option_aborts_poll(self):
        poller = QueuePoller(
            PollerConfig(queue_endpoint="https://queue/orders", extra_options={"bogus": 1}),
            BaseHandler(),
            self.client,
            notifier=MagicMock(spec=Notifier),
        )
        with self.assertRaises(InvalidConfigurationError):
            poller.poll()

    def test_delete_uses_receipt_handle(self):
        message = RawMessage(message_id="m1", body="{}", receipt_handle="r1", queue_endpoint="https://queue/orders")
        self.client.delete(message)
        self.sqs.delete_message.assert_called_once_with(QueueUrl="https://queue/orders", ReceiptHandle="r1")


@mock_aws
class TestSqsQueueClientMoto(TestCase):
    """Tests against an in-memory SQS."""

    def setUp(self):
        self.client = SqsQueueClient(sqs=boto3.client("sqs", region_name="us-east-1"))
        self.queue_url = self.client.create_queue("orders-queue")

    def tearDown(self):
        self.client.close()

    def test_get_queue_url(self):
        self.assertEqual(self.client.get_queue_url("orders-queue"), self.queue_url)
        self.assertIsNone(self.client.get_queue_url("missing-queue"))

    def test_send_receive_delete(self):
        body = json.dumps({"Message": '{"id": 42}'})
        message_id = self.client.send(self.queue_url, body)

        messages = self.client.receive(self.queue_url, wait_time_seconds=0)
        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0].message_id, message_id)
        self.assertEqual(messages[0].body, body)

        self.client.delete(messages[0])
        attributes = self.client.sqs.get_queue_attributes(
            QueueUrl=self.queue_url,
            AttributeNames=["ApproximateNumberOfMessages", "ApproximateNumberOfMessagesNotVisible"],
        )["Attributes"]
        self.assertEqual(attributes["ApproximateNumberOfMessages"], "0")
        self.assertEqual(attributes["ApproximateNumberOfMessagesNotVisible"], "0")

    def test_poller_deletes_only_handled_messages(self):
        class OrdersHandler(BaseHandler):
            def __init__(self):
                self.ids = []

            def handle(self, message):
                if message["id"] == 2:
                    raise ValueError("rejected")
                self.ids.append(message["id"])

        for n in (1, 2, 3):
            self.client.send(self.queue_url, json.dumps({"Message": json.dumps({"id": n})}))

        handler = OrdersHandler()
        poller = QueuePoller(
            PollerConfig(queue_endpoint=self.queue_url, wait_time_seconds=0, idle_timeout_seconds=0),
            handler,
            self.client,
            notifier=Notifier(tag="moto"),
        )
        with self.assertLogs("msg_poller", level="INFO"):
            stats = poller.poll()

        self.assertEqual(stats.stop_reason, StopReason.IDLE_TIMEOUT)
        self.assertEqual(sorted(handler.ids), [1, 3])
        self.assertEqual(stats.deleted_count, 2)
        self.assertEqual(stats.failed_count, 1)
        attributes = self.client.sqs.get_queue_attributes(
            QueueUrl=self.queue_url,
            AttributeNames=["ApproximateNumberOfMessages", "ApproximateNumberOfMessagesNotVisible"],
        )["Attributes"]
        # The rejected message waits out its visibility timeout for redelivery.
        self.assertEqual(attributes["ApproximateNumberOfMessagesNotVisible"], "1")
        self.assertEqual(attributes["ApproximateNumberOfMessages"], "0")
