"""Long-polling consumer loop.

QueuePoller receives batches from a QueueClient, decodes each message, hands
it to the injected handler and deletes it only after the handler succeeded.
A failing message is logged, reported and left on the queue so the queue's
own redelivery policy applies; the rest of the batch is still processed.

Polling stops when no message arrived for idle_timeout seconds, when a
before_request hook vetoes the next receive (max_messages registers one),
or when stop() is called.
"""

import contextlib
import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from msg_poller.decoder import decode
from msg_poller.exceptions import InvalidConfigurationError
from msg_poller.notifier import Notifier
from msg_poller.queue_client import QueueClient
from msg_poller.queue_model_dto import PollerConfig, PollStats, RawMessage, StopReason

_current_connection: ContextVar[Any] = ContextVar("msg_poller_connection", default=None)


def current_connection() -> Any:
    """Return the pooled connection held by the running poll().

    Only available while a poller configured with connection_pool_block is
    polling; raises RuntimeError otherwise.
    """
    connection = _current_connection.get()
    if connection is None:
        raise RuntimeError("No pooled connection is held; poll with connection_pool_block enabled")
    return connection


class QueuePoller:
    """Poll one queue endpoint and dispatch decoded messages to a handler."""

    def __init__(
        self,
        config: PollerConfig,
        handler: Any,
        queue_client: QueueClient,
        notifier: Notifier | None = None,
        connection_pool: Any = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not config.queue_endpoint:
            raise InvalidConfigurationError("must specify non-empty queue_endpoint")
        if not callable(getattr(handler, "handle", None)):
            raise InvalidConfigurationError(f"handler {handler!r} has no handle() method")
        if config.connection_pool_block and connection_pool is None:
            raise InvalidConfigurationError("connection_pool_block requires a connection_pool")

        self.config = config
        self.handler = handler
        self.queue_client = queue_client
        self.notifier = notifier or Notifier()
        self.connection_pool = connection_pool
        self.clock = clock
        self._stop_requested = threading.Event()

        if config.max_messages:
            queue_client.before_request(self._max_messages_reached)

    @property
    def queue_endpoint(self) -> str:
        return self.config.queue_endpoint

    def _max_messages_reached(self, stats: PollStats) -> bool:
        return stats.received_message_count >= self.config.max_messages

    def stop(self) -> None:
        """Ask poll() to return before its next receive.

        A stop requested before poll() starts makes it return without receiving.
        """
        self._stop_requested.set()

    def poll(self) -> PollStats:
        """Poll until a stop condition fires. Returns the session's stats."""
        stats = PollStats(started_at=datetime.now(timezone.utc))
        self.notifier.log(logging.INFO, f"Long-polling for messages on {self.queue_endpoint}")
        try:
            with self._connection_scope():
                stats.stop_reason = self._poll_batches(stats)
        finally:
            self._stop_requested.clear()
        self.notifier.log(logging.INFO, self._finished_message(stats))
        return stats

    def _poll_batches(self, stats: PollStats) -> StopReason:
        options = self.config.poller_configuration
        wait_time_seconds = options.pop("wait_time_seconds")
        idle_timeout = options.pop("idle_timeout")
        options.pop("skip_delete")
        max_batch_size = options.pop("max_number_of_messages", self.config.max_batch_size)
        last_activity = self.clock()

        while True:
            if self._stop_requested.is_set():
                return StopReason.CANCELLED
            if self.queue_client.should_stop(stats):
                if self.config.max_messages and self._max_messages_reached(stats):
                    return StopReason.MAX_MESSAGES
                return StopReason.HOOK

            stats.request_count += 1
            messages = self.queue_client.receive(
                self.queue_endpoint,
                max_messages=max_batch_size,
                wait_time_seconds=wait_time_seconds,
                options=options,
            )
            if not messages:
                if idle_timeout is not None and self.clock() - last_activity >= idle_timeout:
                    return StopReason.IDLE_TIMEOUT
                continue

            last_activity = self.clock()
            stats.received_message_count += len(messages)
            stats.last_message_received_at = datetime.now(timezone.utc)
            for message in messages:
                self.process_message(message, stats)

    def process_message(self, message: RawMessage, stats: PollStats) -> bool:
        """Decode, validate and handle one message; delete it on success.

        Returns True if the message was handled and deleted. Decode and handler
        failures are reported and swallowed; delete failures propagate.
        """
        data: Any = message.body
        try:
            data = decode(message.body, self.config.format, self.notifier)
            validate = getattr(self.handler, "validate", None)
            if callable(validate):
                validate(data)
            self.handler.handle(data)
        except Exception as e:
            stats.failed_count += 1
            self.notifier.report_error(e, f"{type(self.handler).__name__} failed to process message", data)
            return False

        self.queue_client.delete(message)
        stats.deleted_count += 1
        return True

    @contextlib.contextmanager
    def _connection_scope(self) -> Iterator[None]:
        if not self.config.connection_pool_block:
            yield
            return
        with self.connection_pool.connection() as connection:
            token = _current_connection.set(connection)
            try:
                yield
            finally:
                _current_connection.reset(token)

    def _finished_message(self, stats: PollStats) -> str:
        match stats.stop_reason:
            case StopReason.IDLE_TIMEOUT:
                detail = f"after {self.config.poller_configuration['idle_timeout']} seconds idle"
            case StopReason.MAX_MESSAGES:
                detail = f"after receiving {stats.received_message_count} messages (max_messages={self.config.max_messages})"
            case StopReason.HOOK:
                detail = "after a before_request hook stopped polling"
            case _:
                detail = "after stop was requested"
        return (
            f"Finished long-polling on {self.queue_endpoint} {detail}: "
            f"{stats.deleted_count} handled, {stats.failed_count} failed."
        )
