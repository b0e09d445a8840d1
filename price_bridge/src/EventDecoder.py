"""EventDecoder: Typed records from raw ledger event records.

Each raw record is a mapping produced by the ledger client with the
emitting module, the event name and its attributes. Attributes arrive
either positionally or by field name depending on the runtime metadata:

.. code-block:: python

    >>> decode_record({"module_id": "ChainlinkFeed", "event_id": "NewRound",
    ...                "attributes": [0, 7, "5FLSig...", 120]})
    RoundEvent(feed_id=0, round_id=7)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

FEED_MODULE = "ChainlinkFeed"
NEW_ROUND_EVENT = "NewRound"


class DecodeError(ValueError):
    """Raised when a raw event record cannot be decoded."""

    pass


@dataclass(frozen=True)
class RoundEvent:
    """A feed is waiting for submissions for a new round.

    :ivar feed_id: Feed the round belongs to.
    :ivar round_id: Round id to echo back in the submission.
    """

    feed_id: int
    round_id: int


@dataclass(frozen=True)
class OtherEvent:
    """Any event the bridge does not act on.

    :ivar module: Emitting runtime module.
    :ivar name: Event name.
    """

    module: str
    name: str


LedgerEvent = RoundEvent | OtherEvent


def _as_uint(value: Any, field: str) -> int:
    # bool is an int subclass but never a valid id
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DecodeError(f"{field} must be an unsigned integer, got {value!r}")
    return value


def _round_fields(attributes: Any) -> tuple[Any, Any]:
    if isinstance(attributes, Mapping):
        try:
            return attributes["feed_id"], attributes["round_id"]
        except KeyError as e:
            raise DecodeError(f"NewRound attributes missing {e}") from None
    if isinstance(attributes, (list, tuple)):
        if len(attributes) < 2:
            raise DecodeError(f"NewRound needs at least 2 attributes, got {len(attributes)}")
        return attributes[0], attributes[1]
    raise DecodeError(f"Unexpected attribute container {type(attributes).__name__}")


def decode_record(record: Any) -> LedgerEvent:
    """Decode one raw event record.

    :param record: Raw record from the ledger client.
    :returns: RoundEvent for new rounds, OtherEvent otherwise.
    :raises DecodeError: If the record is malformed.
    """
    if not isinstance(record, Mapping):
        raise DecodeError(f"Event record must be a mapping, got {type(record).__name__}")

    # Some client versions nest the event body one level down.
    body = record.get("event") if "module_id" not in record else record
    if not isinstance(body, Mapping):
        raise DecodeError("Event record has no event body")

    module = body.get("module_id")
    name = body.get("event_id")
    if not isinstance(module, str) or not isinstance(name, str):
        raise DecodeError(f"Event record without module/event name: {record!r}")

    if module != FEED_MODULE or name != NEW_ROUND_EVENT:
        return OtherEvent(module, name)

    feed_id, round_id = _round_fields(body.get("attributes"))
    return RoundEvent(_as_uint(feed_id, "feed_id"), _as_uint(round_id, "round_id"))


def decode_batch(records: Iterable[Any]) -> list[LedgerEvent]:
    """Decode a batch, dropping records that fail to decode.

    :param records: Raw records of one block.
    :returns: Decoded records in their original order.
    """
    decoded: list[LedgerEvent] = []
    for index, record in enumerate(records):
        try:
            decoded.append(decode_record(record))
        except DecodeError as e:
            logger.warning(f"Dropping undecodable event #{index}: {e}")
    return decoded
