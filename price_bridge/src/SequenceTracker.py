"""SequenceTracker: Local mirror of the signing account's nonce.

The tracker is seeded once from the ledger and then advanced locally after
every submission attempt, so consecutive submissions never wait for the
previous one to be included. Only the bridge's single event-processing
task touches it; there is no locking.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .LedgerClient import LedgerClient

logger = logging.getLogger(__name__)


class SequenceTracker:
    """Owns the next transaction sequence number (nonce).

    :ivar account: Address of the signing account.
    """

    def __init__(self, account: str, start: int) -> None:
        """Initialize the tracker.

        :param account: Address of the signing account.
        :param start: Authoritative nonce reported by the ledger.
        :raises ValueError: If start is negative.
        """
        if start < 0:
            raise ValueError(f"Sequence number must not be negative, got {start}")
        self.account = account
        self._next = start

    @classmethod
    def initialize(cls, ledger: LedgerClient, account: str) -> SequenceTracker:
        """Create a tracker seeded from the ledger's current account nonce.

        :param ledger: Ledger client to query.
        :param account: Address of the signing account.
        :returns: New tracker.
        """
        start = ledger.get_account_sequence(account)
        logger.info(f"Sequence for {account} starts at {start}")
        return cls(account, start)

    def current(self) -> int:
        """Return the sequence number the next transaction must carry."""
        return self._next

    def advance(self) -> None:
        """Move to the next sequence number."""
        self._next += 1

    def resync(self, authoritative: int) -> int:
        """Reset the local counter to the ledger's value.

        :param authoritative: Nonce freshly read from the ledger.
        :returns: Signed difference between the ledger and the local value.
        """
        drift = authoritative - self._next
        if drift:
            logger.warning(
                f"Sequence for {self.account} diverged: local={self._next}, "
                f"ledger={authoritative}"
            )
        self._next = authoritative
        return drift

    def __repr__(self) -> str:
        return f"SequenceTracker({self.account!r}, next={self._next})"
