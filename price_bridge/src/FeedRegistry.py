"""FeedRegistry: Fixed mapping between assets and on-chain feed ids.

Feed ids are handed out by the ledger in the order feeds are created. The
bridge creates them in registry order exactly once, so the mapping below
is the single source of truth and is never looked up on-chain.

.. code-block:: python

    >>> registry = FeedRegistry.default()
    >>> registry.feed_id_of(Asset.KSM)
    2
    >>> registry.asset_of(3)
    <Asset.BTC: 'btc'>
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum


class Asset(Enum):
    """Assets the bridge reports prices for. Values are lowercase symbols."""

    ETH = "eth"
    DOT = "dot"
    KSM = "ksm"
    BTC = "btc"

    @property
    def symbol(self) -> str:
        """Return the ticker symbol (e.g. "eth")."""
        return self.value


class FeedRegistryError(LookupError):
    """Raised when the registry is queried outside its fixed asset set."""

    pass


@dataclass(frozen=True)
class Feed:
    """A ledger-side price feed.

    :ivar feed_id: Id assigned by the ledger at creation time.
    :ivar asset: Asset the feed reports.
    :ivar description: Human-readable description (e.g. "ETH / USD").
    """

    feed_id: int
    asset: Asset
    description: str


# Creation order on the ledger. Never reorder: ids are positional.
DEFAULT_ASSET_ORDER: tuple[Asset, ...] = (Asset.ETH, Asset.DOT, Asset.KSM, Asset.BTC)


class FeedRegistry:
    """Bijection between assets and feed ids, built once at startup.

    :ivar feeds: Registered feeds in creation order.
    """

    def __init__(self, assets: Iterable[Asset]) -> None:
        """Build the registry from assets in on-chain creation order.

        :param assets: Assets in the order their feeds were created.
        :raises FeedRegistryError: If an asset is listed twice or the list is empty.
        """
        feeds: list[Feed] = []
        by_asset: dict[Asset, Feed] = {}
        for feed_id, asset in enumerate(assets):
            if asset in by_asset:
                raise FeedRegistryError(f"Asset {asset.name} registered twice")
            feed = Feed(feed_id, asset, f"{asset.name} / USD")
            feeds.append(feed)
            by_asset[asset] = feed

        if not feeds:
            raise FeedRegistryError("At least one asset must be registered")

        self.feeds: tuple[Feed, ...] = tuple(feeds)
        self._by_asset = by_asset

    @classmethod
    def default(cls) -> FeedRegistry:
        """Return the registry matching the feeds created on the ledger."""
        return cls(DEFAULT_ASSET_ORDER)

    @property
    def assets(self) -> tuple[Asset, ...]:
        """Registered assets in creation order."""
        return tuple(feed.asset for feed in self.feeds)

    def feed_id_of(self, asset: Asset) -> int:
        """Return the feed id for an asset.

        :raises FeedRegistryError: If the asset is not registered.
        """
        try:
            return self._by_asset[asset].feed_id
        except KeyError:
            raise FeedRegistryError(f"Asset {asset!r} is not registered") from None

    def asset_of(self, feed_id: int) -> Asset:
        """Return the asset for a feed id.

        :raises FeedRegistryError: If no feed has this id.
        """
        return self.feed(feed_id).asset

    def feed(self, feed_id: int) -> Feed:
        """Return the feed with the given id.

        :raises FeedRegistryError: If no feed has this id.
        """
        if not isinstance(feed_id, int) or not 0 <= feed_id < len(self.feeds):
            raise FeedRegistryError(f"Unknown feed id {feed_id!r}")
        return self.feeds[feed_id]

    def __contains__(self, asset: object) -> bool:
        return asset in self._by_asset

    def __iter__(self) -> Iterator[Feed]:
        return iter(self.feeds)

    def __len__(self) -> int:
        return len(self.feeds)

    def __repr__(self) -> str:
        mapping = ", ".join(f"{f.asset.name}={f.feed_id}" for f in self.feeds)
        return f"FeedRegistry({mapping})"
