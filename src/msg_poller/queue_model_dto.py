"""Queue message data transfer objects.

Defines the raw message handed out by a queue client, the immutable poller
configuration and the statistics collected over one poll() invocation.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

DEFAULT_WAIT_TIME_SECONDS = 10
DEFAULT_IDLE_TIMEOUT_SECONDS = 20
MAX_SQS_BATCH_SIZE = 10


class Format(str, Enum):
    """Format of the inner payload carried in the envelope's Message field."""

    JSON = "json"
    CSV = "csv"


class StopReason(str, Enum):
    """Why a poll() invocation stopped requesting batches."""

    IDLE_TIMEOUT = "idle_timeout"
    MAX_MESSAGES = "max_messages"
    HOOK = "hook"
    CANCELLED = "cancelled"


class RawMessage(BaseModel):
    """A message as received from the queue, before decoding.

    The body is the envelope text; the receipt handle is what the queue needs
    to delete the message once it has been handled.
    """

    model_config = ConfigDict(frozen=True)

    message_id: str = Field(..., description="Queue-assigned message identifier")
    body: str = Field(..., description='Envelope JSON text, {"Message": "<payload>"}')
    receipt_handle: str = Field(..., description="Handle used to delete the message")
    queue_endpoint: str | None = Field(None, description="Endpoint the message was received from")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Transport metadata")
    message_attributes: dict[str, Any] = Field(default_factory=dict, description="Sender-supplied message attributes")


class PollerConfig(BaseModel):
    """Immutable configuration for a QueuePoller.

    queue_endpoint is checked by the poller itself so that a missing endpoint
    surfaces as InvalidConfigurationError. format is not validated here; an
    unknown format fails per message when the payload is decoded.
    """

    model_config = ConfigDict(frozen=True)

    queue_endpoint: str | None = Field(None, description="Queue URL or name to poll")
    format: Format | str = Field(Format.JSON, description="Inner payload format (json or csv)")
    max_messages: PositiveInt | None = Field(None, description="Stop requesting once this many were received")
    wait_time_seconds: int = Field(DEFAULT_WAIT_TIME_SECONDS, ge=0, description="Long-poll wait per receive")
    idle_timeout_seconds: int | None = Field(
        DEFAULT_IDLE_TIMEOUT_SECONDS, ge=0, description="Stop after this long without messages"
    )
    max_batch_size: int = Field(MAX_SQS_BATCH_SIZE, ge=1, le=MAX_SQS_BATCH_SIZE, description="Messages per receive")
    connection_pool_block: bool = Field(False, description="Hold one pooled connection for the whole poll")
    extra_options: dict[str, Any] = Field(default_factory=dict, description="Overrides merged over the defaults")

    @property
    def skip_delete(self) -> bool:
        """Messages are always deleted explicitly after a successful handle."""
        return True

    @property
    def poller_configuration(self) -> dict[str, Any]:
        """Receive options: the defaults with extra_options merged over them."""
        return {
            "wait_time_seconds": self.wait_time_seconds,
            "idle_timeout": self.idle_timeout_seconds,
            **self.extra_options,
            "skip_delete": self.skip_delete,
        }


class PollStats(BaseModel):
    """Counters for one poll() invocation."""

    received_message_count: int = 0
    request_count: int = 0
    deleted_count: int = 0
    failed_count: int = 0
    started_at: datetime | None = None
    last_message_received_at: datetime | None = None
    stop_reason: StopReason | None = None
