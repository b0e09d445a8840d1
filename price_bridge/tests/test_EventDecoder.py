"""Unit tests for EventDecoder."""

import logging

import pytest

from price_bridge.src.EventDecoder import (
    DecodeError,
    OtherEvent,
    RoundEvent,
    decode_batch,
    decode_record,
)
from price_bridge.tests.fakes import new_round, other_event


class TestDecodeRecord:
    """Test decoding of single records."""

    def test_new_round_positional(self) -> None:
        """Positional attributes yield feed and round ids."""
        assert decode_record(new_round(2, 17)) == RoundEvent(feed_id=2, round_id=17)

    def test_new_round_named(self) -> None:
        """Named attributes are supported as well."""
        record = {
            "module_id": "ChainlinkFeed",
            "event_id": "NewRound",
            "attributes": {"feed_id": 1, "round_id": 3, "started_by": "5F...", "started_at": 9},
        }
        assert decode_record(record) == RoundEvent(1, 3)

    def test_nested_event_body(self) -> None:
        """Records carrying the event under an 'event' key decode the same."""
        record = {"phase": "Initialization", "event": new_round(0, 1), "topics": []}
        assert decode_record(record) == RoundEvent(0, 1)

    def test_other_event(self) -> None:
        """Unrelated events decode to OtherEvent."""
        assert decode_record(other_event()) == OtherEvent("System", "ExtrinsicSuccess")

    def test_other_event_same_module(self) -> None:
        """Other events of the feed module are not rounds."""
        record = other_event("ChainlinkFeed", "SubmissionReceived")
        assert decode_record(record) == OtherEvent("ChainlinkFeed", "SubmissionReceived")

    @pytest.mark.parametrize(
        "record",
        [
            None,
            "NewRound",
            {"phase": "Initialization"},
            {"module_id": "ChainlinkFeed"},
            {"module_id": 5, "event_id": "NewRound"},
            {"module_id": "ChainlinkFeed", "event_id": "NewRound", "attributes": [1]},
            {"module_id": "ChainlinkFeed", "event_id": "NewRound", "attributes": None},
            {"module_id": "ChainlinkFeed", "event_id": "NewRound", "attributes": {"feed_id": 1}},
            {"module_id": "ChainlinkFeed", "event_id": "NewRound", "attributes": [-1, 2]},
            {"module_id": "ChainlinkFeed", "event_id": "NewRound", "attributes": ["0", 2]},
            {"module_id": "ChainlinkFeed", "event_id": "NewRound", "attributes": [True, 2]},
        ],
    )
    def test_malformed(self, record) -> None:
        """Malformed records raise DecodeError."""
        with pytest.raises(DecodeError):
            decode_record(record)


class TestDecodeBatch:
    """Test batch decoding."""

    def test_bad_record_dropped(self, caplog) -> None:
        """One bad record out of three leaves the other two intact."""
        batch = [new_round(0, 5), {"garbage": True}, new_round(3, 8)]
        with caplog.at_level(logging.WARNING):
            events = decode_batch(batch)

        assert events == [RoundEvent(0, 5), RoundEvent(3, 8)]
        assert "Dropping undecodable event #1" in caplog.text

    def test_order_preserved(self) -> None:
        """Decoded events keep their batch order."""
        batch = [other_event(), new_round(1, 1), other_event("Balances", "Transfer")]
        assert decode_batch(batch) == [
            OtherEvent("System", "ExtrinsicSuccess"),
            RoundEvent(1, 1),
            OtherEvent("Balances", "Transfer"),
        ]

    def test_empty(self) -> None:
        assert decode_batch([]) == []
