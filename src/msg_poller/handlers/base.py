"""Base handler interface for decoded queue messages.

A handler is injected into the QueuePoller. The poller calls validate then
handle on each decoded message and deletes the message only if neither raises.
"""

from typing import Any


class BaseHandler:
    """Default extension point for message handlers.

    Subclasses may override validate to check the message before handling.
    handle is required and performs the actual work (e.g. call an API, update DB).
    The message is a Record, or a list of Records for array and CSV payloads.
    """

    def validate(self, message: Any) -> None:
        """Optionally validate the message; raise if invalid."""
        return None

    def handle(self, message: Any) -> None:
        """Process the message. Raise on failure to leave it on the queue."""
        raise NotImplementedError(f"{type(self).__name__} must implement handle()")
