"""LedgerClient: Abstract interface to the ledger node.

The bridge only needs a handful of capabilities from the ledger: an event
stream, the finalized head, account nonces, storage reads, call
composition and signed submission. Encoding, signing and transport live
in the concrete implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .FeedRegistry import Feed


class LedgerError(Exception):
    """Base exception for ledger errors."""

    pass


class LedgerConnectionError(LedgerError):
    """Raised when the node cannot be reached or a subscription breaks."""

    pass


class SubmissionError(LedgerError):
    """Raised when a transaction is rejected or cannot be sent.

    :ivar sequence: Sequence number the rejected transaction carried, if any.
    """

    def __init__(self, message: str, sequence: int | None = None):
        """Initialize the submission error.

        :param message: Error message.
        :param sequence: Sequence number used for the attempt.
        """
        self.sequence = sequence
        super().__init__(message)


@dataclass(frozen=True)
class Mortality:
    """Validity window of a transaction.

    :ivar period: Number of blocks the transaction stays valid.
    :ivar current: Block number the window starts at.
    """

    period: int
    current: int

    def as_era(self) -> dict[str, int]:
        """Return the era dict understood by Substrate signers."""
        return {"period": self.period, "current": self.current}


class LedgerClient(ABC):
    """Abstract base class for ledger client implementations."""

    @property
    @abstractmethod
    def signer_address(self) -> str:
        """Address of the account that signs price submissions."""
        pass

    @abstractmethod
    def subscribe_events(self) -> AsyncIterator[list[Any]]:
        """Subscribe to the ledger's event stream.

        Yields one list of raw event records per block.

        :raises LedgerConnectionError: If the subscription cannot be opened
            or breaks while iterating.
        """
        pass

    @abstractmethod
    def get_finalized_head(self) -> str:
        """Return the hash of the latest finalized block."""
        pass

    @abstractmethod
    def get_header(self, block_hash: str) -> dict[str, Any]:
        """Return the header of a block; must contain ``number``."""
        pass

    @abstractmethod
    def get_account_sequence(self, account: str) -> int:
        """Return the authoritative next nonce of an account."""
        pass

    @abstractmethod
    def get_storage_value(
        self, module: str, key: str, params: list[Any] | None = None
    ) -> Any:
        """Read a storage value; returns None when it does not exist."""
        pass

    @abstractmethod
    def compose_call(self, module: str, method: str, params: dict[str, Any]) -> Any:
        """Compose an unsigned call for later signing."""
        pass

    @abstractmethod
    def sign_and_submit(self, call: Any, sequence: int, mortality: Mortality) -> str:
        """Sign a call and hand it to the node without waiting for inclusion.

        :param call: Call returned by compose_call().
        :param sequence: Nonce to sign with.
        :param mortality: Validity window.
        :returns: Transaction hash.
        :raises SubmissionError: If the node rejects the transaction.
        """
        pass

    @abstractmethod
    def create_feed(self, feed: Feed) -> str:
        """Create a feed through the admin account and wait for inclusion.

        :param feed: Feed to create.
        :returns: Transaction hash.
        :raises SubmissionError: If creation fails.
        """
        pass

    def close(self) -> None:
        """Release connections. Default implementation does nothing."""
        pass
