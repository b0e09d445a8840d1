"""PriceBridge: Main orchestrator feeding quotes into on-chain price feeds.

This module listens for new-round events of the ledger's feed pallet,
fetches current quotes for the affected assets and submits the scaled
prices back to the ledger.

Architecture:
    - Feeds are created once, in registry order, if none exist yet
    - A single EventSubscription delivers decoded events per block
    - Each batch is processed completely before the next one is read
    - Quotes for all rounds of a batch come from one PriceSource call
    - Submissions are fire-and-forget, using a locally tracked nonce
    - Repeated submission failures trigger a nonce resync with the ledger
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .EventDecoder import LedgerEvent, RoundEvent
from .EventSubscription import DEFAULT_RECONNECT_DELAY, EventSubscription
from .FeedRegistry import Asset, FeedRegistry, FeedRegistryError
from .FixedPoint import PriceOutOfRangeError, to_scaled
from .LedgerClient import LedgerError, SubmissionError
from .PriceSource import QuoteFetchError
from .SequenceTracker import SequenceTracker
from .TransactionSubmitter import (
    DEFAULT_MORTALITY_PERIOD,
    SubmissionHandle,
    TransactionSubmitter,
)
from .fetchers import BaseFetcher

if TYPE_CHECKING:
    from .LedgerClient import LedgerClient
    from .PriceSource import PriceSource

logger = logging.getLogger(__name__)

FEED_MODULE = "ChainlinkFeed"
FEED_COUNTER = "FeedCounter"

# Consecutive failed submissions before the nonce is re-read from the ledger.
DEFAULT_RESYNC_AFTER = 3


class PriceBridge:
    """Bridges external quotes into the ledger's price feeds.

    :ivar ledger: Ledger client.
    :ivar price_source: Source of USD quotes.
    :ivar registry: Asset <-> feed id mapping.
    :ivar subscription: Reconnecting event subscription.
    :ivar resync_after: Failed submissions in a row before resyncing the
        nonce, 0 to only sync at startup.
    :ivar sequence: Nonce tracker, set by start().
    :ivar submitter: Transaction submitter, set by start().
    """

    def __init__(
        self,
        ledger: LedgerClient,
        price_source: PriceSource,
        registry: FeedRegistry | None = None,
        mortality_period: int = DEFAULT_MORTALITY_PERIOD,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        max_reconnects: int | None = None,
        resync_after: int = DEFAULT_RESYNC_AFTER,
        create_feeds: bool = True,
    ) -> None:
        """Initialize the bridge.

        :param ledger: Ledger client.
        :param price_source: Source of USD quotes.
        :param registry: Feed registry (default: ETH, DOT, KSM, BTC).
        :param mortality_period: Blocks a submission stays valid (default: 5).
        :param reconnect_delay: Seconds between reconnect attempts (default: 1.0).
        :param max_reconnects: Consecutive reconnects before giving up
            (default: None, retry forever).
        :param resync_after: Failed submissions in a row before the nonce
            is re-read from the ledger (default: 3, 0 to disable).
        :param create_feeds: Create feeds on startup if none exist.
        :raises ValueError: If resync_after is negative.
        """
        if resync_after < 0:
            raise ValueError("resync_after must not be negative")

        self.ledger = ledger
        self.price_source = price_source
        self.registry = registry or FeedRegistry.default()
        self.mortality_period = mortality_period
        self.resync_after = resync_after
        self.create_feeds = create_feeds
        self.subscription = EventSubscription(
            ledger, reconnect_delay=reconnect_delay, max_reconnects=max_reconnects
        )

        self.sequence: SequenceTracker | None = None
        self.submitter: TransactionSubmitter | None = None

        # Latest round handled per feed; rounds are monotonic per feed.
        self._last_round: dict[int, int] = {}
        self._consecutive_failures = 0

        logger.info(f"PriceBridge initialized: {self.registry}")

    def feed_count(self) -> int:
        """Number of feeds created on the ledger so far."""
        return int(self.ledger.get_storage_value(FEED_MODULE, FEED_COUNTER) or 0)

    def feeds_exist(self) -> bool:
        """Check whether any feed was ever created on the ledger."""
        return self.feed_count() > 0

    def bootstrap(self) -> int:
        """Create one feed per registered asset if none exist yet.

        Feeds are created in registry order with blocking calls, so the ids
        the ledger assigns match the registry. An interrupted run can leave
        only some feeds created; that state is reported, not repaired.

        :returns: Number of feeds created.
        :raises SubmissionError: If a feed cannot be created.
        :raises FeedRegistryError: If the ledger holds fewer feeds than
            the registry but more than none.
        """
        existing = self.feed_count()
        if existing >= len(self.registry):
            logger.info(f"{existing} feeds already exist, skipping creation")
            return 0
        if existing:
            missing = ", ".join(feed.description for feed in self.registry.feeds[existing:])
            logger.error(
                f"Only {existing} of {len(self.registry)} feeds exist on the ledger; "
                f"missing: {missing}"
            )
            raise FeedRegistryError(
                f"Partial feed set: {existing} of {len(self.registry)} feeds created"
            )

        for feed in self.registry:
            try:
                tx_hash = self.ledger.create_feed(feed)
            except SubmissionError:
                logger.error(
                    f"Creating feed {feed.feed_id} ({feed.description}) failed; "
                    f"feeds before it may already exist"
                )
                raise
            logger.info(f"Created feed {feed.feed_id} ({feed.description}), tx={tx_hash}")
        return len(self.registry)

    def start(self) -> None:
        """Seed the nonce from the ledger and set up the submitter."""
        self.sequence = SequenceTracker.initialize(
            self.ledger, self.ledger.signer_address
        )
        self.submitter = TransactionSubmitter(
            self.ledger, self.sequence, mortality_period=self.mortality_period
        )

    def _pending_rounds(self, events: list[LedgerEvent]) -> list[tuple[RoundEvent, Asset]]:
        """Select the round events of a batch that still need a submission."""
        pending: list[tuple[RoundEvent, Asset]] = []
        for event in events:
            if not isinstance(event, RoundEvent):
                continue
            last = self._last_round.get(event.feed_id)
            if last is not None and event.round_id <= last:
                logger.debug(
                    f"Feed {event.feed_id} round {event.round_id} already handled"
                )
                continue
            try:
                asset = self.registry.asset_of(event.feed_id)
            except FeedRegistryError as e:
                logger.warning(f"Ignoring round {event.round_id}: {e}")
                continue
            self._last_round[event.feed_id] = event.round_id
            pending.append((event, asset))
        return pending

    def _note_submission_failure(self) -> None:
        """Count a failed submission and resync the nonce when due."""
        self._consecutive_failures += 1
        if not self.resync_after or self._consecutive_failures < self.resync_after:
            return

        assert self.sequence is not None
        try:
            authoritative = self.ledger.get_account_sequence(self.sequence.account)
        except LedgerError as e:
            logger.warning(f"Cannot read nonce for resync: {e}")
            return
        drift = self.sequence.resync(authoritative)
        logger.info(
            f"Nonce resynced to {authoritative} after "
            f"{self._consecutive_failures} failed submissions (drift={drift})"
        )
        self._consecutive_failures = 0

    async def handle_events(self, events: list[LedgerEvent]) -> list[SubmissionHandle]:
        """Process one decoded batch.

        Fetches quotes for every asset with a new round in the batch and
        submits one value per round. Quote failures skip the batch's rounds,
        submission failures skip only the affected round.

        :param events: Decoded events of one block.
        :returns: Handles of the submitted transactions.
        """
        if self.submitter is None:
            raise RuntimeError("PriceBridge.start() must be called first")

        pending = self._pending_rounds(events)
        if not pending:
            return []

        try:
            quotes = await self.price_source.fetch_quotes(asset for _, asset in pending)
        except QuoteFetchError as e:
            logger.error(f"Skipping {len(pending)} round(s), quote fetch failed: {e}")
            return []

        handles: list[SubmissionHandle] = []
        for event, asset in pending:
            quote = quotes[asset]
            try:
                scaled = to_scaled(quote.usd_price)
            except PriceOutOfRangeError as e:
                logger.error(f"{asset.name}: cannot submit ${quote.usd_price}: {e}")
                continue

            try:
                handles.append(
                    self.submitter.submit(event.feed_id, event.round_id, scaled)
                )
            except SubmissionError as e:
                logger.error(
                    f"{asset.name}: submission for round {event.round_id} failed: {e}"
                )
                self._note_submission_failure()
                continue
            self._consecutive_failures = 0
        return handles

    async def run(self) -> None:
        """Run the bridge until the process is stopped.

        Creates feeds if needed, seeds the nonce and processes events from
        the subscription forever.
        """
        try:
            if self.create_feeds:
                self.bootstrap()
            self.start()
            logger.info("Listening for new rounds")

            async for events in self.subscription:
                await self.handle_events(events)
        finally:
            # Clean up shared HTTP client
            await BaseFetcher.close_shared_client()
            self.ledger.close()
