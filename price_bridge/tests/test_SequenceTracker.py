"""Unit tests for SequenceTracker."""

import pytest

from price_bridge.src.SequenceTracker import SequenceTracker
from price_bridge.tests.fakes import FakeLedgerClient


class TestSequenceTracker:
    """Test nonce ownership and advancement."""

    def test_initialize_from_ledger(self) -> None:
        """The tracker starts at the ledger's authoritative nonce."""
        ledger = FakeLedgerClient(nonce=42)
        tracker = SequenceTracker.initialize(ledger, ledger.signer_address)
        assert tracker.current() == 42
        assert tracker.account == ledger.signer_address

    def test_advance_without_gaps(self) -> None:
        """N advances from S yield S, S+1, ..., S+N-1 with no repeats."""
        tracker = SequenceTracker("alice", 10)
        used = []
        for _ in range(25):
            used.append(tracker.current())
            tracker.advance()
        assert used == list(range(10, 35))
        assert tracker.current() == 35

    def test_current_is_stable(self) -> None:
        """current() does not consume a number."""
        tracker = SequenceTracker("alice", 3)
        assert tracker.current() == 3
        assert tracker.current() == 3

    def test_never_requeries_ledger(self) -> None:
        """After startup the ledger value is not consulted again."""
        ledger = FakeLedgerClient(nonce=5)
        tracker = SequenceTracker.initialize(ledger, ledger.signer_address)
        ledger.nonce = 99
        tracker.advance()
        assert tracker.current() == 6

    def test_resync(self) -> None:
        """resync adopts the ledger value and reports the drift."""
        tracker = SequenceTracker("alice", 10)
        assert tracker.resync(8) == -2
        assert tracker.current() == 8
        assert tracker.resync(8) == 0

    def test_negative_start_rejected(self) -> None:
        with pytest.raises(ValueError, match="must not be negative"):
            SequenceTracker("alice", -1)
