"""
Price Bridge - On-Chain Feed Submission Module

This module feeds external USD quotes into the ledger's price feeds:
- FeedRegistry: Fixed asset <-> feed id mapping
- FixedPoint: Decimal to 10^18 fixed-point conversion
- PriceSource: Quote fetching from external APIs
- SequenceTracker: Local nonce management
- TransactionSubmitter: Mortal, fire-and-forget submissions
- EventSubscription: Reconnecting ledger event stream
- PriceBridge: Main orchestrator
- fetchers: Modular quote fetcher implementations
"""

from .EventDecoder import DecodeError, OtherEvent, RoundEvent, decode_batch, decode_record
from .EventSubscription import EventSubscription, SubscriptionExhaustedError, SubscriptionState
from .FeedRegistry import Asset, Feed, FeedRegistry, FeedRegistryError
from .FixedPoint import NUM_DECIMALS, PriceOutOfRangeError, from_scaled, to_scaled
from .LedgerClient import (
    LedgerClient,
    LedgerConnectionError,
    LedgerError,
    Mortality,
    SubmissionError,
)
from .PriceBridge import PriceBridge
from .PriceSource import PriceQuote, PriceSource, QuoteFetchError
from .SequenceTracker import SequenceTracker
from .TransactionSubmitter import SubmissionHandle, TransactionSubmitter

__all__ = [
    "Asset",
    "DecodeError",
    "EventSubscription",
    "Feed",
    "FeedRegistry",
    "FeedRegistryError",
    "LedgerClient",
    "LedgerConnectionError",
    "LedgerError",
    "Mortality",
    "NUM_DECIMALS",
    "OtherEvent",
    "PriceBridge",
    "PriceOutOfRangeError",
    "PriceQuote",
    "PriceSource",
    "QuoteFetchError",
    "RoundEvent",
    "SequenceTracker",
    "SubmissionError",
    "SubmissionHandle",
    "SubscriptionExhaustedError",
    "SubscriptionState",
    "TransactionSubmitter",
    "decode_batch",
    "decode_record",
    "from_scaled",
    "to_scaled",
]
