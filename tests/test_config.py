"""Tests for environment-driven settings."""

from unittest import TestCase
from unittest.mock import patch

from pydantic import ValidationError

from msg_poller.config import get_settings


class TestSettings(TestCase):
    """Tests for Settings defaults and overrides."""

    @patch.dict("os.environ", {}, clear=True)
    def test_defaults(self):
        settings = get_settings()
        self.assertIsNone(settings.queue_endpoint)
        self.assertEqual(settings.format, "json")
        self.assertEqual(settings.wait_time_seconds, 10)
        self.assertEqual(settings.idle_timeout, 20)
        self.assertIsNone(settings.max_messages)

    @patch.dict(
        "os.environ",
        {
            "MSG_POLLER_QUEUE_ENDPOINT": "https://queue/orders",
            "MSG_POLLER_FORMAT": "csv",
            "MSG_POLLER_MAX_MESSAGES": "25",
            "MSG_POLLER_DATABASE_DSN": "postgresql://user:pass@db:5432/orders",
        },
        clear=True,
    )
    def test_environment_overrides(self):
        settings = get_settings()
        self.assertEqual(settings.queue_endpoint, "https://queue/orders")
        self.assertEqual(settings.format, "csv")
        self.assertEqual(settings.max_messages, 25)
        self.assertEqual(settings.database_dsn.hosts()[0]["host"], "db")

    @patch.dict("os.environ", {"MSG_POLLER_MAX_MESSAGES": "0"}, clear=True)
    def test_max_messages_must_be_positive(self):
        with self.assertRaises(ValidationError):
            get_settings()
