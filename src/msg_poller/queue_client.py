"""Abstract base for queue clients.

Defines the interface the poller needs from a queue backend: batched long-poll
receives, explicit deletes and before_request hooks that can stop polling.
Implementations (e.g. SqsQueueClient) provide the transport, including its
retry and backoff.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from msg_poller.queue_model_dto import PollStats, RawMessage

BeforeRequestHook = Callable[[PollStats], bool]


class QueueClient(ABC):
    """Abstract base class for queue clients.

    Hooks registered with before_request are called with the current PollStats
    before every receive; a hook returning True stops the poll loop.
    """

    def __init__(self) -> None:
        self._before_request_hooks: list[BeforeRequestHook] = []

    def before_request(self, hook: BeforeRequestHook) -> BeforeRequestHook:
        """Register a hook run before each receive. Usable as a decorator."""
        self._before_request_hooks.append(hook)
        return hook

    def should_stop(self, stats: PollStats) -> bool:
        """Return True if any registered hook vetoes the next receive."""
        return any(hook(stats) for hook in self._before_request_hooks)

    @abstractmethod
    def receive(
        self,
        queue_endpoint: str,
        max_messages: int = 10,
        wait_time_seconds: int = 10,
        options: dict[str, Any] | None = None,
    ) -> list[RawMessage]:
        """Long-poll for up to max_messages, waiting at most wait_time_seconds."""
        pass

    @abstractmethod
    def delete(self, message: RawMessage) -> None:
        """Permanently delete a received message from its queue."""
        pass

    @abstractmethod
    def send(self, queue_endpoint: str, body: str) -> str:
        """Send a raw body to the queue. Returns the message ID."""
        pass

    def close(self) -> None:
        """Release transport resources; call when done."""
        return None
