"""Errors raised by the poller, the payload decoder and record navigation.

Configuration errors are fatal and raised at construction. Decode and handler
errors are raised per message and isolated by the poll loop.
"""

from typing import Any


class PollerError(Exception):
    """Base class for all msg_poller errors."""


class InvalidConfigurationError(PollerError, ValueError):
    """The poller cannot be built from the given configuration."""


class DecodeError(PollerError, ValueError):
    """A raw message body could not be turned into records."""


class UnsupportedFormatError(DecodeError):
    """The declared payload format is not one of the known formats."""

    def __init__(self, format: Any) -> None:
        self.format = format
        super().__init__(f"Unknown format {format!r}. Valid formats: json, csv.")


class MalformedEnvelopeError(DecodeError):
    """The outer body is not a JSON object with a string "Message" field."""


class MalformedPayloadError(DecodeError):
    """The inner payload does not parse in its declared format."""


class HandlerError(PollerError):
    """Raised by handlers to signal that a message could not be processed."""


class MissingPathError(PollerError, KeyError, IndexError):
    """A key or index lookup on a record did not resolve."""

    def __init__(self, path: tuple, segment: Any) -> None:
        self.path = path
        self.segment = segment
        super().__init__(f"No value at {segment!r} in path {list(path)!r}")

    def __str__(self) -> str:
        return self.args[0]
