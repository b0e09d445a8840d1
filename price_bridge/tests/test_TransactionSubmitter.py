"""Unit tests for TransactionSubmitter."""

from unittest.mock import MagicMock

import pytest

from price_bridge.src.LedgerClient import LedgerConnectionError, Mortality, SubmissionError
from price_bridge.src.SequenceTracker import SequenceTracker
from price_bridge.src.TransactionSubmitter import SubmissionHandle, TransactionSubmitter


def make_submitter(ledger, mortality_period: int = 5) -> TransactionSubmitter:
    tracker = SequenceTracker.initialize(ledger, ledger.signer_address)
    return TransactionSubmitter(ledger, tracker, mortality_period=mortality_period)


class TestSubmit:
    """Test building and sending submissions."""

    def test_submit_call(self, ledger) -> None:
        """The submit call carries feed id, round id and scaled price."""
        submitter = make_submitter(ledger)

        handle = submitter.submit(3, 12, 64_000 * 10**18)

        call, sequence, mortality = ledger.submitted[0]
        assert call == {
            "module": "ChainlinkFeed",
            "method": "submit",
            "params": {"feed_id": 3, "round_id": 12, "submission": 64_000 * 10**18},
        }
        assert sequence == 7
        assert mortality == Mortality(period=5, current=100)
        assert handle == SubmissionHandle(
            tx_hash="0x" + "0" * 63 + "1",
            feed_id=3,
            round_id=12,
            sequence=7,
            scaled_price=64_000 * 10**18,
        )

    def test_mortality_from_finalized_head(self, ledger) -> None:
        """The validity window starts at the current finalized block."""
        submitter = make_submitter(ledger, mortality_period=8)
        ledger.finalized_number = 4242

        submitter.submit(0, 1, 1)

        assert ledger.submitted[0][2] == Mortality(8, 4242)
        assert Mortality(8, 4242).as_era() == {"period": 8, "current": 4242}

    def test_consecutive_sequences(self, ledger) -> None:
        """Back-to-back submissions use S, S+1, S+2 without waiting."""
        submitter = make_submitter(ledger)

        for round_id in range(1, 4):
            submitter.submit(0, round_id, 10**18)

        assert [s for _, s, _ in ledger.submitted] == [7, 8, 9]
        assert submitter.sequence.current() == 10

    def test_advances_on_rejection(self, ledger) -> None:
        """A rejected send still consumes its sequence number."""
        submitter = make_submitter(ledger)
        ledger.reject_sequences = {7}

        with pytest.raises(SubmissionError) as excinfo:
            submitter.submit(0, 1, 10**18)
        assert excinfo.value.sequence == 7
        assert submitter.sequence.current() == 8

        submitter.submit(0, 2, 10**18)
        assert ledger.submitted[0][1] == 8

    def test_other_ledger_errors_wrapped(self, ledger) -> None:
        """Connection trouble while sending surfaces as SubmissionError."""
        submitter = make_submitter(ledger)
        ledger.sign_and_submit = MagicMock(side_effect=LedgerConnectionError("gone"))

        with pytest.raises(SubmissionError, match="Transaction not sent: gone"):
            submitter.submit(0, 1, 1)
        assert submitter.sequence.current() == 8

    def test_no_advance_without_finalized_head(self, ledger) -> None:
        """Nothing is sent and no nonce is used if the head cannot be read."""
        submitter = make_submitter(ledger)
        ledger.get_finalized_head = MagicMock(side_effect=LedgerConnectionError("down"))

        with pytest.raises(SubmissionError, match="Cannot read finalized head"):
            submitter.submit(0, 1, 1)
        assert submitter.sequence.current() == 7
        assert ledger.submitted == []

    def test_invalid_mortality(self, ledger) -> None:
        with pytest.raises(ValueError, match="mortality_period must be at least 1"):
            make_submitter(ledger, mortality_period=0)
