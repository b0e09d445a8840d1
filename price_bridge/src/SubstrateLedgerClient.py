"""SubstrateLedgerClient: LedgerClient backed by substrate-interface."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from substrateinterface import Keypair, SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException
from websocket import WebSocketException

from .LedgerClient import (
    LedgerClient,
    LedgerConnectionError,
    LedgerError,
    Mortality,
    SubmissionError,
)

if TYPE_CHECKING:
    from .FeedRegistry import Feed

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Substrate generic address format.
DEFAULT_SS58_FORMAT = 42

FEED_MODULE = "ChainlinkFeed"
FEED_MANAGER_MODULE = "ChainlinkPriceManager"

# Errors that mean the websocket is gone and must be reopened.
_CONNECTION_ERRORS = (WebSocketException, ConnectionError, OSError)

_STREAM_CLOSED = object()


class SubstrateLedgerClient(LedgerClient):
    """Ledger client for a Substrate node exposing the chainlink-feed pallet.

    Uses one websocket for queries and submissions and a dedicated
    websocket per event subscription.

    :ivar url: Websocket URL of the node.
    :ivar signer: Keypair that signs price submissions.
    :ivar admin: Sudo keypair used to create feeds.
    :ivar oracle_admin: Account registered as admin of created feeds.
    """

    def __init__(
        self,
        url: str,
        signer_uri: str = "//Charlie",
        admin_uri: str = "//Alice",
        oracle_admin_uri: str = "//Bob",
        ss58_format: int = DEFAULT_SS58_FORMAT,
    ) -> None:
        """Initialize the client. The connection is opened lazily.

        :param url: Websocket URL (e.g. "ws://127.0.0.1:9944").
        :param signer_uri: Secret URI of the submitting account.
        :param admin_uri: Secret URI of the sudo account.
        :param oracle_admin_uri: Secret URI of the feed admin account.
        :param ss58_format: Address format of the chain.
        """
        self.url = url
        self.ss58_format = ss58_format
        self.signer = Keypair.create_from_uri(signer_uri, ss58_format=ss58_format)
        self.admin = Keypair.create_from_uri(admin_uri, ss58_format=ss58_format)
        self.oracle_admin = Keypair.create_from_uri(
            oracle_admin_uri, ss58_format=ss58_format
        )
        self._substrate: SubstrateInterface | None = None

    @property
    def signer_address(self) -> str:
        return self.signer.ss58_address

    def _connect(self) -> SubstrateInterface:
        """Open a new websocket connection to the node.

        :raises LedgerConnectionError: If the node is unreachable.
        """
        try:
            substrate = SubstrateInterface(url=self.url, ss58_format=self.ss58_format)
        except _CONNECTION_ERRORS as e:
            raise LedgerConnectionError(f"Cannot connect to {self.url}: {e}") from e
        logger.debug(f"Connected to {self.url} (chain={substrate.chain})")
        return substrate

    @property
    def substrate(self) -> SubstrateInterface:
        """Shared connection for queries and submissions."""
        if self._substrate is None:
            self._substrate = self._connect()
        return self._substrate

    def _request(self, what: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a node request, mapping library errors to LedgerError kinds.

        A broken connection is dropped so the next request reconnects.
        """
        try:
            return fn(*args, **kwargs)
        except SubstrateRequestException as e:
            raise LedgerError(f"{what} failed: {e}") from e
        except _CONNECTION_ERRORS as e:
            self.close()
            raise LedgerConnectionError(f"{what} failed: {e}") from e

    def get_finalized_head(self) -> str:
        return self._request(
            "chain_getFinalizedHead", lambda: self.substrate.get_chain_finalised_head()
        )

    def get_header(self, block_hash: str) -> dict[str, Any]:
        response = self._request(
            "chain_getHeader",
            lambda: self.substrate.rpc_request("chain_getHeader", [block_hash]),
        )
        header = response.get("result")
        if not header:
            raise LedgerError(f"No header for block {block_hash}")
        return {
            "hash": block_hash,
            "number": int(header["number"], 16),
            "parent_hash": header["parentHash"],
        }

    def get_account_sequence(self, account: str) -> int:
        return self._request(
            "account_nextIndex", lambda: self.substrate.get_account_nonce(account)
        )

    def get_storage_value(
        self, module: str, key: str, params: list[Any] | None = None
    ) -> Any:
        result = self._request(
            f"{module}.{key}",
            lambda: self.substrate.query(module, key, params or []),
        )
        return None if result is None else result.value

    def compose_call(self, module: str, method: str, params: dict[str, Any]) -> Any:
        return self._request(
            f"compose {module}.{method}",
            lambda: self.substrate.compose_call(
                call_module=module, call_function=method, call_params=params
            ),
        )

    def sign_and_submit(self, call: Any, sequence: int, mortality: Mortality) -> str:
        try:
            extrinsic = self.substrate.create_signed_extrinsic(
                call=call,
                keypair=self.signer,
                era=mortality.as_era(),
                nonce=sequence,
            )
            receipt = self.substrate.submit_extrinsic(
                extrinsic, wait_for_inclusion=False, wait_for_finalization=False
            )
        except SubstrateRequestException as e:
            raise SubmissionError(f"Transaction rejected: {e}", sequence) from e
        except _CONNECTION_ERRORS as e:
            self.close()
            raise SubmissionError(f"Transaction not sent: {e}", sequence) from e
        return receipt.extrinsic_hash

    def create_feed(self, feed: Feed) -> str:
        inner = self.compose_call(
            FEED_MANAGER_MODULE,
            "create_minterest_feed",
            {
                "currency_id": {"UnderlyingAsset": feed.asset.name},
                "min_submissions": 1,
                "oracles": [
                    [self.signer.ss58_address, self.oracle_admin.ss58_address]
                ],
            },
        )
        call = self.compose_call("Sudo", "sudo", {"call": inner})
        try:
            extrinsic = self.substrate.create_signed_extrinsic(
                call=call, keypair=self.admin
            )
            receipt = self.substrate.submit_extrinsic(
                extrinsic, wait_for_inclusion=True
            )
        except SubstrateRequestException as e:
            raise SubmissionError(f"Feed creation for {feed.description} rejected: {e}") from e
        except _CONNECTION_ERRORS as e:
            self.close()
            raise SubmissionError(f"Feed creation for {feed.description} not sent: {e}") from e

        if not receipt.is_success:
            raise SubmissionError(
                f"Feed creation for {feed.description} failed: {receipt.error_message}"
            )
        return receipt.extrinsic_hash

    async def subscribe_events(self) -> AsyncIterator[list[Any]]:
        """Stream System.Events, one list of event dicts per block.

        The library's subscription call blocks, so it runs on a daemon
        thread with its own connection and hands updates to the event loop
        through a queue.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[Any] = asyncio.Queue()
        substrate = self._connect()

        def deliver(item: Any) -> None:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, item)
            except RuntimeError:
                logger.debug("Event loop closed, dropping subscription update")

        def handler(events: Any, update_nr: int, subscription_id: str) -> None:
            deliver(list(events.value or []))

        def reader() -> None:
            try:
                substrate.query("System", "Events", subscription_handler=handler)
            except Exception as e:  # Forwarded to the consuming coroutine
                deliver(e)
            else:
                deliver(_STREAM_CLOSED)

        thread = threading.Thread(target=reader, name="event-subscription", daemon=True)
        thread.start()
        try:
            while True:
                item = await queue.get()
                if item is _STREAM_CLOSED:
                    raise LedgerConnectionError("Event subscription ended")
                if isinstance(item, BaseException):
                    raise LedgerConnectionError(
                        f"Event subscription broke: {item}"
                    ) from item
                yield item
        finally:
            substrate.close()

    def close(self) -> None:
        if self._substrate is not None:
            self._substrate.close()
            self._substrate = None
