"""TransactionSubmitter: Mortal, fire-and-forget feed submissions.

Every submission is anchored at the latest finalized block and stays
valid for ``mortality_period`` blocks. The local sequence number is
advanced right after the send attempt whether the node accepted the
transaction or not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .FixedPoint import from_scaled
from .LedgerClient import LedgerError, Mortality, SubmissionError

if TYPE_CHECKING:
    from .LedgerClient import LedgerClient
    from .SequenceTracker import SequenceTracker

logger = logging.getLogger(__name__)

DEFAULT_MORTALITY_PERIOD = 5

FEED_MODULE = "ChainlinkFeed"
SUBMIT_CALL = "submit"


@dataclass(frozen=True)
class SubmissionHandle:
    """Receipt of a transaction handed to the node.

    :ivar tx_hash: Transaction hash returned by the node.
    :ivar feed_id: Feed the value was submitted to.
    :ivar round_id: Round the value answers.
    :ivar sequence: Sequence number the transaction carried.
    :ivar scaled_price: Submitted value.
    """

    tx_hash: str
    feed_id: int
    round_id: int
    sequence: int
    scaled_price: int


class TransactionSubmitter:
    """Builds, signs and sends ``ChainlinkFeed.submit`` transactions.

    :ivar ledger: Ledger client used for signing and sending.
    :ivar sequence: Tracker owning the signer's nonce.
    :ivar mortality_period: Blocks a transaction stays valid.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        sequence: SequenceTracker,
        mortality_period: int = DEFAULT_MORTALITY_PERIOD,
    ) -> None:
        """Initialize the submitter.

        :raises ValueError: If mortality_period is not positive.
        """
        if mortality_period < 1:
            raise ValueError("mortality_period must be at least 1")
        self.ledger = ledger
        self.sequence = sequence
        self.mortality_period = mortality_period

    def _mortality(self) -> Mortality:
        """Validity window starting at the latest finalized block.

        :raises SubmissionError: If the finalized block cannot be read.
        """
        try:
            head = self.ledger.get_finalized_head()
            header = self.ledger.get_header(head)
            return Mortality(self.mortality_period, int(header["number"]))
        except (LedgerError, KeyError, TypeError, ValueError) as e:
            raise SubmissionError(f"Cannot read finalized head: {e}") from e

    def submit(self, feed_id: int, round_id: int, scaled_price: int) -> SubmissionHandle:
        """Submit a value for a feed round without waiting for inclusion.

        :param feed_id: Target feed.
        :param round_id: Round announced by the ledger.
        :param scaled_price: Price at 10^18 scale.
        :returns: Handle describing the sent transaction.
        :raises SubmissionError: If the transaction could not be built or
            was rejected. The sequence number is advanced in the latter case.
        """
        mortality = self._mortality()
        try:
            call = self.ledger.compose_call(
                FEED_MODULE,
                SUBMIT_CALL,
                {"feed_id": feed_id, "round_id": round_id, "submission": scaled_price},
            )
        except LedgerError as e:
            raise SubmissionError(f"Cannot compose submission: {e}") from e

        sequence = self.sequence.current()
        try:
            tx_hash = self.ledger.sign_and_submit(call, sequence, mortality)
        except SubmissionError:
            raise
        except LedgerError as e:
            raise SubmissionError(f"Transaction not sent: {e}", sequence) from e
        finally:
            self.sequence.advance()

        logger.info(
            f"Feed {feed_id} round {round_id}: submitted {from_scaled(scaled_price)} "
            f"(nonce={sequence}, valid from block {mortality.current} "
            f"for {mortality.period} blocks, tx={tx_hash})"
        )
        return SubmissionHandle(tx_hash, feed_id, round_id, sequence, scaled_price)
