"""Logging and error reporting for pollers.

A Notifier is created once per poller (or process) and passed to the poller
explicitly. Every line it logs carries the notifier's correlation tag, and
reported errors are forwarded to Sentry when it has been initialized.
"""

import logging
import traceback
import uuid
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from msg_poller.records import unwrap

logger = logging.getLogger(__name__)


class TaggedLoggerAdapter(logging.LoggerAdapter):
    """Prefix every message with the adapter's tag."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        return f"[{self.extra['tag']}] {msg}", kwargs


def setup_sentry(dsn: str | None, environment: str | None = None) -> bool:
    """Initialize sentry_sdk when a DSN is configured. Returns True if enabled."""
    if not dsn:
        logger.info("Sentry disabled: no DSN configured")
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[
            # Errors are captured explicitly by Notifier.report_error.
            LoggingIntegration(level=logging.INFO, event_level=None),
        ],
        send_default_pii=False,
        attach_stacktrace=True,
    )
    logger.info("Sentry enabled (environment=%s)", environment or "default")
    return True


class Notifier:
    """Tagged logger plus error reporting sink."""

    def __init__(self, tag: str | None = None, logger: logging.Logger | None = None) -> None:
        self.tag = tag or f"msg_poller_{uuid.uuid4()}"
        self.logger = TaggedLoggerAdapter(logger or logging.getLogger("msg_poller"), {"tag": self.tag})

    def log(self, level: int | str, text: str) -> None:
        """Log text at level, given as a logging constant or a name such as "info"."""
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                raise ValueError(f"Unknown log level: {level}")
        self.logger.log(level, text)

    def report_error(self, error: BaseException, context_label: str, payload: Any = None) -> None:
        """Log the error with its traceback and send it to Sentry with the payload."""
        self.log(logging.ERROR, context_label)
        self.log(logging.ERROR, f"Exception: {error!r}")
        self.log(logging.ERROR, "".join(traceback.format_exception(error)).rstrip())

        with sentry_sdk.new_scope() as scope:
            scope.set_tag("poller_tag", self.tag)
            scope.set_context("message", {"label": context_label, "payload": unwrap(payload)})
            sentry_sdk.capture_exception(error)
