"""Decode raw message bodies into records.

Bodies arrive wrapped in a notification envelope, {"Message": "<payload>"}.
The envelope is always JSON; the declared format applies to the inner payload
only.
"""

import csv
import io
import json
import logging

from msg_poller.exceptions import MalformedEnvelopeError, MalformedPayloadError, UnsupportedFormatError
from msg_poller.notifier import Notifier
from msg_poller.queue_model_dto import Format
from msg_poller.records import Record

logger = logging.getLogger(__name__)

DecodedMessage = Record | list[Record]


def resolve_format(format: Format | str) -> Format:
    """Return the Format for a declared value; raise UnsupportedFormatError if unknown."""
    if isinstance(format, Format):
        return format
    try:
        return Format(format.lower() if isinstance(format, str) else format)
    except (ValueError, TypeError):
        raise UnsupportedFormatError(format) from None


def unwrap_envelope(raw_body: str) -> str:
    """Return the inner payload string carried in the envelope's Message field."""
    try:
        envelope = json.loads(raw_body)
    except (TypeError, json.JSONDecodeError) as err:
        raise MalformedEnvelopeError(f"Envelope is not valid JSON: {err}") from err
    if not isinstance(envelope, dict) or "Message" not in envelope:
        raise MalformedEnvelopeError('Envelope has no "Message" field')
    message = envelope["Message"]
    if not isinstance(message, str):
        raise MalformedEnvelopeError(f'Envelope "Message" must be a string, got {type(message).__name__}')
    return message


def parse_json(message_contents: str) -> DecodedMessage:
    try:
        parsed_body = json.loads(message_contents)
    except json.JSONDecodeError as err:
        raise MalformedPayloadError(f"Invalid JSON payload: {err}") from err
    if isinstance(parsed_body, list):
        for index, item in enumerate(parsed_body):
            if not isinstance(item, dict):
                raise MalformedPayloadError(
                    f"JSON array element {index} must be an object, got {type(item).__name__}"
                )
        return [Record(item) for item in parsed_body]
    if not isinstance(parsed_body, dict):
        raise MalformedPayloadError(f"JSON payload must be an object or an array, got {type(parsed_body).__name__}")
    return Record(parsed_body)


def parse_csv(message_contents: str) -> list[Record]:
    """One record per data row, keyed by the header row. Values stay strings."""
    try:
        reader = csv.DictReader(io.StringIO(message_contents, newline=""))
        return [Record(row) for row in reader]
    except csv.Error as err:
        raise MalformedPayloadError(f"Invalid CSV payload: {err}") from err


def decode(raw_body: str, format: Format | str = Format.JSON, notifier: Notifier | None = None) -> DecodedMessage:
    """Decode an envelope body into a Record or a list of Records."""
    if notifier is not None:
        notifier.log(logging.INFO, f"Received JSON payload: {raw_body}")
    else:
        logger.info("Received JSON payload: %s", raw_body)

    message_contents = unwrap_envelope(raw_body)
    match resolve_format(format):
        case Format.CSV:
            return parse_csv(message_contents)
        case Format.JSON:
            return parse_json(message_contents)
